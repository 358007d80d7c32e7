"""Eligibility rules for server deletion.

Pure functions: a server is eligible when it lives on one of the target
nodes and its name does not contain the excluded keyword.
"""

from collections.abc import Collection

from pteropurge.models.server import Server


def parse_node_ids(raw: str) -> tuple[str, ...]:
    """Parse a comma-separated node-id string.

    Each piece is stripped of surrounding whitespace. Duplicates and empty
    pieces are kept as given; nothing is validated.

    Args:
        raw: Node ids as typed by the operator, e.g. ``"1, 2,3"``.

    Returns:
        Tuple of node id strings, e.g. ``("1", "2", "3")``.
    """
    return tuple(piece.strip() for piece in raw.split(","))


def is_eligible(
    server: Server,
    target_node_ids: Collection[str],
    excluded_keyword: str,
) -> bool:
    """Decide whether a server should be deleted.

    Args:
        server: Server to evaluate.
        target_node_ids: Node ids (as strings) whose servers may be deleted.
        excluded_keyword: Case-sensitive substring protecting a server by name.
            An empty keyword protects nothing.

    Returns:
        True if the server is on a target node and not protected by name.
    """
    if str(server.node) not in target_node_ids:
        return False
    return not excluded_keyword or excluded_keyword not in server.name
