"""Pydantic models for relay hub sessions and WebSocket message schemas."""

from .messages import (
    DEVICE_SERVER_FIELDS,
    ClientDisconnected,
    ClientLoginMessage,
    CommandSent,
    DeviceConnected,
    DeviceDisconnected,
    DeviceIPMessage,
    DeviceIPReceived,
    DeviceRegistered,
    DeviceRegisterMessage,
    DeviceSession,
    DeviceStatus,
    ErrorNotification,
    Event,
    HubStatus,
    InboundEnvelope,
    LoginSuccess,
    OperatorSession,
    Role,
    SchemaDocument,
    StartDevice,
    Welcome,
    utc_now,
)

__all__ = [
    "DEVICE_SERVER_FIELDS",
    "ClientDisconnected",
    "ClientLoginMessage",
    "CommandSent",
    "DeviceConnected",
    "DeviceDisconnected",
    "DeviceIPMessage",
    "DeviceIPReceived",
    "DeviceRegistered",
    "DeviceRegisterMessage",
    "DeviceSession",
    "DeviceStatus",
    "ErrorNotification",
    "Event",
    "HubStatus",
    "InboundEnvelope",
    "LoginSuccess",
    "OperatorSession",
    "Role",
    "SchemaDocument",
    "StartDevice",
    "Welcome",
    "utc_now",
]
