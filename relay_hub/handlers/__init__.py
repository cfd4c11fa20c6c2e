from .status_handler import HealthHandler, StatusHandler
from .docs_handler import DocsHandler
from .hub_ws_handler import HubWebSocketHandler

__all__ = [
    "HealthHandler",
    "StatusHandler",
    "DocsHandler",
    "HubWebSocketHandler",
]
