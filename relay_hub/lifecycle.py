"""
Per-connection lifecycle for the relay hub.

A connection starts CONNECTED, becomes either an OPERATOR (``client-login``)
or a DEVICE (``device-register``) and ends CLOSED. It never switches
between operator and device.

Every inbound message is handled under one lock so that a registry change
and the snapshot broadcast it causes are observed as a unit.
"""

import asyncio
import json
import logging
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from relay_hub.bus import Connection, EventBus
from relay_hub.errors import (
    AlreadyRegistered,
    HubError,
    IdentityConflict,
    InvalidMessage,
    Unauthenticated,
    UnregisteredSender,
)
from relay_hub.models import (
    ClientDisconnected,
    ClientLoginMessage,
    CommandSent,
    DeviceConnected,
    DeviceDisconnected,
    DeviceIPMessage,
    DeviceRegistered,
    DeviceRegisterMessage,
    DeviceSession,
    ErrorNotification,
    Event,
    InboundEnvelope,
    LoginSuccess,
    OperatorSession,
    Welcome,
)
from relay_hub.registry import SessionRegistry
from relay_hub.relay import CommandRelay
from relay_hub.services.authenticators import AssertedRoleAuthenticator, Authenticator

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    OPERATOR = "operator"
    DEVICE = "device"
    CLOSED = "closed"


class Departure(BaseModel):
    """What was removed when a connection closed."""

    connection_id: str
    reason: Optional[str] = None
    operator: Optional[OperatorSession] = None
    device: Optional[DeviceSession] = None


class LifecycleController:
    def __init__(
        self,
        registry: Optional[SessionRegistry] = None,
        bus: Optional[EventBus] = None,
        authenticator: Optional[Authenticator] = None,
    ):
        self.registry = registry or SessionRegistry()
        self.bus = bus or EventBus()
        self.relay = CommandRelay(self.registry, self.bus)
        self.authenticator = authenticator or AssertedRoleAuthenticator()
        self._states: Dict[str, ConnectionState] = {}
        self._lock = asyncio.Lock()
        self._handlers: Dict[str, Callable[[str, Any], Awaitable[None]]] = {
            Event.CLIENT_LOGIN.value: self._on_client_login,
            Event.DEVICE_REGISTER.value: self._on_device_register,
            Event.START_COMMAND.value: self._on_start_command,
            Event.DEVICE_IP.value: self._on_device_ip,
            Event.GET_DEVICES.value: self._on_get_devices,
            Event.GET_CLIENTS.value: self._on_get_clients,
        }

    @staticmethod
    def new_connection_id() -> str:
        return uuid.uuid4().hex

    def state_of(self, connection_id: str) -> ConnectionState:
        return self._states.get(connection_id, ConnectionState.CLOSED)

    async def connect(self, connection: Connection) -> None:
        connection_id = connection.connection_id
        self._states[connection_id] = ConnectionState.CONNECTED
        self.bus.attach(connection)
        logger.info(f"New connection: {connection_id}")
        await self.bus.unicast(connection_id, Event.WELCOME, Welcome(connection_id=connection_id))

    async def handle_frame(self, connection_id: str, raw: str | bytes) -> None:
        """Decode one raw WebSocket frame and dispatch it."""
        try:
            envelope = InboundEnvelope.model_validate(json.loads(raw))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
            await self.bus.unicast(
                connection_id,
                Event.ERROR,
                ErrorNotification(code=InvalidMessage.code, message="Frames must be JSON objects with an 'event' field"),
            )
            return
        await self.dispatch(connection_id, envelope.event, envelope.data)

    async def dispatch(self, connection_id: str, event: str, data: Any = None) -> None:
        async with self._lock:
            # Checked under the lock: the connection may have closed while this message waited.
            if self.state_of(connection_id) == ConnectionState.CLOSED:
                logger.debug(f"Ignoring {event} from closed connection {connection_id}")
                return
            try:
                handler = self._handlers.get(event)
                if handler is None:
                    raise InvalidMessage(f"Unknown event: {event}")
                await handler(connection_id, data)
            except UnregisteredSender:
                # Late or early reports are tolerated and never answered.
                logger.info(f"{event} received from unregistered device: {connection_id}")
            except HubError as exc:
                logger.info(f"{event} from {connection_id} rejected: {exc.code}")
                await self.bus.unicast(
                    connection_id, Event.ERROR, ErrorNotification(code=exc.code, message=exc.message)
                )

    def drop(self, connection_id: str, reason: Optional[str] = None) -> Departure:
        """Forget a closed connection right away; announcing it is left to ``announce_departure``."""
        self._states.pop(connection_id, None)
        self.bus.detach(connection_id)
        departure = Departure(
            connection_id=connection_id,
            reason=reason,
            operator=self.registry.remove_operator(connection_id),
            device=self.registry.remove_device(connection_id),
        )
        logger.info(f"Disconnected: {connection_id} Reason: {reason}")
        return departure

    async def announce_departure(self, departure: Departure) -> None:
        async with self._lock:
            if departure.operator is not None:
                logger.info(f"Client disconnected: {departure.operator.username}")
                await self.bus.broadcast(
                    Event.CLIENT_DISCONNECTED, ClientDisconnected(username=departure.operator.username)
                )
                await self.bus.broadcast(Event.CLIENTS_UPDATE, self.registry.list_operators())
            if departure.device is not None:
                logger.info(f"Device disconnected: {departure.device.device_id}")
                await self.bus.broadcast(
                    Event.DEVICE_DISCONNECTED, DeviceDisconnected(device_id=departure.device.device_id)
                )
                await self.bus.broadcast(Event.DEVICES_UPDATE, self.registry.list_devices())
        logger.info(
            f"Remaining - Clients: {self.registry.operator_count} Devices: {self.registry.device_count}"
        )

    async def disconnect(self, connection_id: str, reason: Optional[str] = None) -> Departure:
        departure = self.drop(connection_id, reason)
        await self.announce_departure(departure)
        return departure

    def transport_error(self, connection_id: str, error: BaseException) -> None:
        logger.error(f"Socket error: {connection_id} {error!r}")

    async def _on_client_login(self, connection_id: str, data: Any) -> None:
        if self.state_of(connection_id) == ConnectionState.DEVICE:
            raise IdentityConflict("Registered devices cannot log in as operators")

        login = self._validate(ClientLoginMessage, data)
        role = self.authenticator.authenticate(login)
        if role is None:
            logger.info(f"Login failed: {login.username}")
            raise Unauthenticated("Invalid credentials")

        self.registry.upsert_operator(
            connection_id, OperatorSession(connection_id=connection_id, username=login.username, role=role)
        )
        self._states[connection_id] = ConnectionState.OPERATOR
        logger.info(f"Client login: {login.username} ({role.value})")

        await self.bus.unicast(connection_id, Event.LOGIN_SUCCESS, LoginSuccess(username=login.username, role=role))
        await self.bus.unicast(connection_id, Event.DEVICES_UPDATE, self.registry.list_devices())
        await self.bus.broadcast(Event.CLIENTS_UPDATE, self.registry.list_operators())
        logger.info(f"Connected clients: {self.registry.operator_count}")

    async def _on_device_register(self, connection_id: str, data: Any) -> None:
        state = self.state_of(connection_id)
        if state == ConnectionState.OPERATOR:
            raise IdentityConflict("Operators cannot register as devices")
        if state == ConnectionState.DEVICE:
            raise AlreadyRegistered()

        registration = self._validate(DeviceRegisterMessage, data)
        device_id = self.registry.upsert_device(
            connection_id, {**registration.extra_fields(), "name": registration.name}
        )
        self._states[connection_id] = ConnectionState.DEVICE
        logger.info(f"Device registered: {device_id}")

        await self.bus.unicast(connection_id, Event.DEVICE_REGISTERED, DeviceRegistered(device_id=device_id))
        await self.bus.broadcast(
            Event.DEVICE_CONNECTED, DeviceConnected(device_id=device_id, device_name=registration.name)
        )
        await self.bus.broadcast(Event.DEVICES_UPDATE, self.registry.list_devices())
        logger.info(f"Connected devices: {self.registry.device_count}")

    async def _on_start_command(self, connection_id: str, data: Any) -> None:
        result = await self.relay.broadcast_start(connection_id)
        count = result.devices_notified
        await self.bus.unicast(
            connection_id,
            Event.COMMAND_SENT,
            CommandSent(message=f"Start command sent to {count} device(s)", devices_count=count),
        )

    async def _on_device_ip(self, connection_id: str, data: Any) -> None:
        if self.state_of(connection_id) != ConnectionState.DEVICE:
            raise UnregisteredSender()
        report = self._validate(DeviceIPMessage, data)
        await self.relay.report_device_ip(connection_id, report.ip)

    async def _on_get_devices(self, connection_id: str, data: Any) -> None:
        await self.bus.unicast(connection_id, Event.DEVICES_UPDATE, self.registry.list_devices())

    async def _on_get_clients(self, connection_id: str, data: Any) -> None:
        await self.bus.unicast(connection_id, Event.CLIENTS_UPDATE, self.registry.list_operators())

    @staticmethod
    def _validate(model: Type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data if data is not None else {})
        except ValidationError as exc:
            raise InvalidMessage(f"Invalid {model.__name__}: {exc.error_count()} error(s)") from exc
