from typing import Any, List, Tuple

import pytest
import tornado.websocket

from relay_hub.lifecycle import LifecycleController
from relay_hub.services.authenticators import AssertedRoleAuthenticator


class FakeConnection:
    """Stands in for the Tornado handler: records every frame the bus pushes."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        self.received: List[Tuple[str, Any]] = []
        self.closed = False

    async def send_event(self, event: str, data: Any) -> None:
        if self.closed:
            raise tornado.websocket.WebSocketClosedError()
        self.received.append((event, data))

    def names(self) -> List[str]:
        return [event for event, _ in self.received]

    def payloads(self, event: str) -> List[Any]:
        return [data for name, data in self.received if name == event]

    def clear(self) -> None:
        self.received.clear()


class HubHarness:
    def __init__(self, controller: LifecycleController):
        self.controller = controller
        self._count = 0

    async def connect(self) -> FakeConnection:
        self._count += 1
        connection = FakeConnection(f"conn-{self._count}")
        await self.controller.connect(connection)
        return connection

    async def send(self, connection: FakeConnection, event: str, data: Any = None) -> None:
        await self.controller.dispatch(connection.connection_id, event, data)

    async def operator(self, username: str = "admin", role: str | None = "admin") -> FakeConnection:
        connection = await self.connect()
        payload = {"username": username}
        if role is not None:
            payload["role"] = role
        await self.send(connection, "client-login", payload)
        return connection

    async def device(self, name: str = "device", **extra: Any) -> FakeConnection:
        connection = await self.connect()
        await self.send(connection, "device-register", {"name": name, **extra})
        return connection


@pytest.fixture
def fake_connection():
    return FakeConnection


@pytest.fixture
def controller() -> LifecycleController:
    return LifecycleController(authenticator=AssertedRoleAuthenticator())


@pytest.fixture
def hub(controller) -> HubHarness:
    return HubHarness(controller)
