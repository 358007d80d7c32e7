"""Panel API access.

This package provides the HTTP client and the paginated server lister.
"""

from pteropurge.panel.client import (
    PER_PAGE,
    DeleteError,
    PanelClient,
    PanelError,
    ServerPage,
    TransportError,
)
from pteropurge.panel.lister import ServerLister

__all__ = [
    "PER_PAGE",
    "DeleteError",
    "PanelClient",
    "PanelError",
    "ServerLister",
    "ServerPage",
    "TransportError",
]
