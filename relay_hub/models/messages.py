from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class DeviceStatus(str, Enum):
    CONNECTED = "connected"
    READY = "ready"


class Event(str, Enum):
    """Event names carried in the `event` field of every WebSocket frame."""

    # inbound
    CLIENT_LOGIN = "client-login"
    DEVICE_REGISTER = "device-register"
    START_COMMAND = "start-command"
    DEVICE_IP = "device-ip"
    GET_DEVICES = "get-devices"
    GET_CLIENTS = "get-clients"

    # outbound
    WELCOME = "welcome"
    LOGIN_SUCCESS = "login-success"
    DEVICE_REGISTERED = "device-registered"
    DEVICE_CONNECTED = "device-connected"
    DEVICES_UPDATE = "devices-update"
    CLIENTS_UPDATE = "clients-update"
    START_DEVICE = "start-device"
    COMMAND_SENT = "command-sent"
    DEVICE_IP_RECEIVED = "device-ip-received"
    CLIENT_DISCONNECTED = "client-disconnected"
    DEVICE_DISCONNECTED = "device-disconnected"
    ERROR = "error"


class WireModel(BaseModel):
    """Base for everything that goes over the wire: camelCase keys, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OperatorSession(WireModel):
    """A logged-in dashboard user bound to one connection."""

    connection_id: str = Field(..., description="Server-assigned connection identity.")
    username: str = Field(..., description="Username asserted or verified at login.")
    role: Role = Field(default=Role.USER, description="Role fixed for the lifetime of the connection.")
    type: Literal["client"] = "client"
    connected_at: datetime = Field(default_factory=utc_now)


class DeviceSession(WireModel):
    """A registered remote agent. Any extra register fields are kept verbatim."""

    model_config = ConfigDict(extra="allow")

    connection_id: str = Field(..., description="Server-assigned connection identity.")
    device_id: str = Field(..., description="Server-generated device identifier.")
    name: Optional[str] = Field(default=None, description="Human readable device name.")
    status: DeviceStatus = Field(default=DeviceStatus.CONNECTED)
    type: Literal["device"] = "device"
    ip_address: Optional[str] = Field(default=None, description="Last IP reported by the device.")
    registered_at: datetime = Field(default_factory=utc_now)
    last_ip_update: Optional[datetime] = Field(default=None, alias="lastIPUpdate")


def _server_assigned_keys() -> frozenset:
    keys = set()
    for field_name, info in DeviceSession.model_fields.items():
        if field_name == "name":
            continue
        keys.add(field_name)
        if info.alias:
            keys.add(info.alias)
    return frozenset(keys)


# Keys a device may not set for itself in its register payload.
DEVICE_SERVER_FIELDS = _server_assigned_keys()


class InboundEnvelope(BaseModel):
    """Every frame sent to /ws: {"event": "...", "data": {...}}."""

    event: str = Field(..., min_length=1)
    data: Any = None


class ClientLoginMessage(WireModel):
    """Inbound operator login."""

    username: str = Field(..., min_length=1)
    role: Optional[Role] = Field(default=None, description="Claimed role (trusted only in asserted mode).")
    password: Optional[str] = Field(default=None, description="Unused by the hub; accepted for client compatibility.")
    token: Optional[str] = Field(default=None, description="JWT issued by the auth service (token mode).")


class DeviceRegisterMessage(WireModel):
    """Inbound device registration. Unknown fields are carried into the session."""

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None

    def extra_fields(self) -> Dict[str, Any]:
        extras = self.model_extra or {}
        return {key: value for key, value in extras.items() if key not in DEVICE_SERVER_FIELDS}


class DeviceIPMessage(WireModel):
    ip: str = Field(..., min_length=1, description="Address the device is reachable on.")


class Welcome(WireModel):
    message: str = "Connected to server successfully"
    connection_id: str
    timestamp: datetime = Field(default_factory=utc_now)


class LoginSuccess(WireModel):
    message: str = "Logged in successfully"
    username: str
    role: Role


class DeviceRegistered(WireModel):
    device_id: str
    success: bool = True
    message: str = "Device registered successfully"


class DeviceConnected(WireModel):
    device_id: str
    device_name: Optional[str] = None
    message: str = "New device connected"


class StartDevice(WireModel):
    """Outbound directive relayed to every device."""

    command: Literal["start"] = "start"
    from_: str = Field(..., alias="from", description="Username of the issuing operator.")
    client_connection_id: str
    timestamp: datetime = Field(default_factory=utc_now)


class CommandSent(WireModel):
    success: bool = True
    message: str
    devices_count: int


class DeviceIPReceived(WireModel):
    device_id: str
    ip: str
    message: str = "Device IP address received"


class ClientDisconnected(WireModel):
    username: str
    message: str = "Client disconnected"


class DeviceDisconnected(WireModel):
    device_id: str
    message: str = "Device disconnected"


class ErrorNotification(WireModel):
    code: str
    message: str


class HubStatus(WireModel):
    """Read-only mirror of the registry served at /api/status."""

    status: str = "running"
    clients: List[OperatorSession] = Field(default_factory=list)
    devices: List[DeviceSession] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utc_now)


class SchemaDocument(BaseModel):
    """Documentation payload served at /docs for quick reference."""

    websocket_endpoints: Dict[str, str]
    inbound_messages: Dict[str, Dict[str, Any]]
    outbound_messages: Dict[str, Dict[str, Any]]
    examples: Dict[str, Any] = Field(default_factory=dict)
    notes: List[str] = []
