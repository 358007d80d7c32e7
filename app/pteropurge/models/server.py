"""Server model for panel resources.

This module defines the data structure for a server as returned by the
panel's Application API.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Server:
    """Represents a server listed by the panel.

    Sourced verbatim from the ``attributes`` object of the API payload and
    never mutated locally.

    Attributes:
        id: Numeric server identifier used by the Application API.
        name: Display name of the server.
        node: Identifier of the node the server is allocated on.
        uuid: Full server UUID (if present in the payload).
        identifier: Short server identifier (if present in the payload).
    """

    id: int
    name: str
    node: int
    uuid: str | None = field(default=None)
    identifier: str | None = field(default=None)

    @classmethod
    def from_api(cls, attributes: dict[str, Any]) -> "Server":
        """Build a Server from an API ``attributes`` object.

        Args:
            attributes: Mapping with at least ``id``, ``name`` and ``node``.

        Returns:
            Server instance.

        Raises:
            ValueError: If a required attribute is missing or not numeric.
        """
        try:
            return cls(
                id=int(attributes["id"]),
                name=str(attributes["name"]),
                node=int(attributes["node"]),
                uuid=attributes.get("uuid"),
                identifier=attributes.get("identifier"),
            )
        except KeyError as e:
            msg = f"Server attributes missing field {e.args[0]!r}"
            raise ValueError(msg) from e
        except (TypeError, ValueError) as e:
            msg = f"Invalid server attributes: {e}"
            raise ValueError(msg) from e
