import tornado.web

from relay_hub.models import HubStatus
from relay_hub.registry import SessionRegistry


class StatusHandler(tornado.web.RequestHandler):
    def initialize(self, registry: SessionRegistry):
        self.registry = registry

    def get(self):
        status = HubStatus(clients=self.registry.list_operators(), devices=self.registry.list_devices())
        self.set_header("Content-Type", "application/json")
        self.write(status.model_dump(mode="json", by_alias=True))


class HealthHandler(tornado.web.RequestHandler):
    def get(self):
        self.write({"status": "ok"})
