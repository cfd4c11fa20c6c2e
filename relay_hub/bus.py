import json
import logging
from enum import Enum
from typing import Any, Dict, List, Protocol

import tornado.websocket
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """Anything the bus can push frames to. The Tornado handler is the real one."""

    connection_id: str

    async def send_event(self, event: str, data: Any) -> None:
        ...


def to_wire(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", by_alias=True)
    if isinstance(payload, (list, tuple)):
        return [to_wire(item) for item in payload]
    return payload


def encode_frame(event: str, data: Any) -> str:
    return json.dumps({"event": event, "data": data})


def _event_name(event: Any) -> str:
    return event.value if isinstance(event, Enum) else str(event)


class EventBus:
    """Unicast/broadcast of named events to live connections.

    Best-effort and at-most-once: a send to a connection that has already
    closed is dropped and that connection is detached.
    """

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def attach(self, connection: Connection) -> None:
        self._connections[connection.connection_id] = connection

    def detach(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)

    def is_attached(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def connection_ids(self) -> List[str]:
        return list(self._connections)

    async def unicast(self, connection_id: str, event: Any, payload: Any = None) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        return await self._deliver(connection, _event_name(event), to_wire(payload))

    async def broadcast(self, event: Any, payload: Any = None) -> int:
        name = _event_name(event)
        data = to_wire(payload)
        delivered = 0
        for connection in list(self._connections.values()):
            if await self._deliver(connection, name, data):
                delivered += 1
        return delivered

    async def _deliver(self, connection: Connection, event: str, data: Any) -> bool:
        try:
            await connection.send_event(event, data)
            return True
        except tornado.websocket.WebSocketClosedError:
            logger.debug(f"Dropping {event} for closed connection {connection.connection_id}")
            self.detach(connection.connection_id)
            return False
