"""Server listing across pages.

Gathers the complete server set by walking the paginated listing until an
empty page is observed.
"""

import logging
import threading

from pteropurge.models.run import ErrorLog
from pteropurge.models.server import Server
from pteropurge.panel.client import PanelClient, TransportError

logger = logging.getLogger(__name__)


class ServerLister:
    """Collects all servers from the panel, page by page.

    Listing is best-effort: the first failed page stops pagination and the
    servers gathered so far are returned. Recovery is a later run, not an
    internal retry loop.

    Attributes:
        max_pages: Page-count ceiling, or None for no ceiling.
    """

    def __init__(
        self,
        client: PanelClient,
        *,
        max_pages: int | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Initialize the lister.

        Args:
            client: Client used to fetch pages.
            max_pages: Stop after this many pages even if the last was not empty.
            cancel: Token checked before each page fetch.
        """
        self._client = client
        self.max_pages = max_pages
        self._cancel = cancel

    def list_all(self, error_log: ErrorLog) -> list[Server]:
        """Fetch every page, starting at page 1, until a page is empty.

        Args:
            error_log: Log that receives the listing error, if any.

        Returns:
            All servers gathered, in API order. Partial on error,
            cancellation or page ceiling.
        """
        servers: list[Server] = []
        page = 1

        while True:
            if self._cancel is not None and self._cancel.is_set():
                logger.info("Listing cancelled before page %d", page)
                break

            if self.max_pages is not None and page > self.max_pages:
                message = (
                    f"Error fetching servers: stopped after {self.max_pages} page(s) "
                    "without reaching an empty page"
                )
                logger.warning(message)
                error_log.append(message)
                break

            try:
                result = self._client.list_page(page)
            except TransportError as e:
                logger.warning("Listing failed on page %d: %s", page, e)
                error_log.append(f"Error fetching servers: {e}")
                break

            if not result.has_more:
                break

            servers.extend(result.servers)
            logger.debug("Page %d returned %d server(s)", page, len(result.servers))
            page += 1

        logger.info("Listed %d server(s) from %d non-empty page(s)", len(servers), page - 1)
        return servers
