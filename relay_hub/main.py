import logging
import os
from typing import Optional

import tornado.ioloop
import tornado.web

from relay_hub.handlers import DocsHandler, HealthHandler, HubWebSocketHandler, StatusHandler
from relay_hub.lifecycle import LifecycleController
from relay_hub.services.authenticators import Authenticator, authenticator_from_env


def make_app(
    controller: Optional[LifecycleController] = None,
    authenticator: Optional[Authenticator] = None,
) -> tornado.web.Application:
    if controller is None:
        controller = LifecycleController(authenticator=authenticator or authenticator_from_env())

    return tornado.web.Application(
        [
            (r"/health", HealthHandler),
            (r"/docs", DocsHandler),
            (r"/api/status", StatusHandler, dict(registry=controller.registry)),
            (r"/ws", HubWebSocketHandler, dict(controller=controller)),
        ]
    )


def setup_logger(name):
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
        logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    return logger


def main() -> None:
    # Configure the package logger so every relay_hub.* module inherits it.
    logger = setup_logger("relay_hub")
    logger.info(f"Started server process {os.getpid()}")
    port = int(os.environ.get("PORT", "3000"))
    address = os.environ.get("ADDRESS", "0.0.0.0")
    app = make_app()
    logger.info(f"Waiting for application startup...")
    app.listen(port=port, address=address)
    logger.info(f"Application startup complete.")
    logger.info(f"Relay hub running on http://{address}:{port} (WebSocket at /ws, Press Ctrl+C to quit)")
    tornado.ioloop.IOLoop.current().start()


if __name__ == "__main__":
    main()
