import logging
from typing import Any

import tornado.ioloop
import tornado.iostream
import tornado.websocket

from relay_hub.bus import encode_frame
from relay_hub.lifecycle import LifecycleController

logger = logging.getLogger(__name__)

# Only these are reported as socket errors; the rest go to Tornado's own logging.
TRANSPORT_ERRORS = (tornado.iostream.StreamClosedError, tornado.websocket.WebSocketClosedError, ConnectionError)


class HubWebSocketHandler(tornado.websocket.WebSocketHandler):
    """One operator or device connection. All protocol logic lives in the controller."""

    def initialize(self, controller: LifecycleController):
        self.controller = controller
        self.connection_id = controller.new_connection_id()

    def check_origin(self, origin: str) -> bool:
        # Allow cross-origin WebSocket connections (lock down in production).
        return True

    async def open(self):
        await self.controller.connect(self)

    async def on_message(self, message: str | bytes):
        await self.controller.handle_frame(self.connection_id, message)

    def on_close(self):
        # Registry cleanup happens now; only the announcement waits for the loop.
        departure = self.controller.drop(self.connection_id, reason=self.close_reason)
        tornado.ioloop.IOLoop.current().spawn_callback(self.controller.announce_departure, departure)

    async def send_event(self, event: str, data: Any) -> None:
        # Raises WebSocketClosedError right away when already closed; flushing is not awaited.
        future = self.write_message(encode_frame(event, data))
        future.add_done_callback(self._on_write_done)

    def _on_write_done(self, future) -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Write to {self.connection_id} failed: {future.exception()!r}")

    def log_exception(self, typ, value, tb):
        if isinstance(value, TRANSPORT_ERRORS):
            self.controller.transport_error(self.connection_id, value)
            return
        super().log_exception(typ, value, tb)
