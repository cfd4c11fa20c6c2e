import tornado.web

from relay_hub.models import (
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
    ErrorNotification,
    Event,
    LoginSuccess,
    OperatorSession,
    SchemaDocument,
    StartDevice,
    Welcome,
)


def _schema(model) -> dict:
    return model.model_json_schema(by_alias=True)


class DocsHandler(tornado.web.RequestHandler):
    def get(self):
        device_snapshot_example = [
            {
                "connectionId": "5f0c6d0a9b2e4d5c8a1f3e7b6c9d0a12",
                "deviceId": "9d4f1e2a7c6b4a3f8e5d0c1b2a3f4e5d",
                "name": "pump-station-7",
                "status": "ready",
                "type": "device",
                "ipAddress": "10.0.4.17",
                "registeredAt": "2026-10-19T08:00:00Z",
                "lastIPUpdate": "2026-10-19T08:00:02Z",
                "firmware": "2.4.1",
            }
        ]

        schema = SchemaDocument(
            websocket_endpoints={"hub": "/ws"},
            inbound_messages={
                Event.CLIENT_LOGIN.value: _schema(ClientLoginMessage),
                Event.DEVICE_REGISTER.value: _schema(DeviceRegisterMessage),
                Event.DEVICE_IP.value: _schema(DeviceIPMessage),
                Event.START_COMMAND.value: {},
                Event.GET_DEVICES.value: {},
                Event.GET_CLIENTS.value: {},
            },
            outbound_messages={
                Event.WELCOME.value: _schema(Welcome),
                Event.LOGIN_SUCCESS.value: _schema(LoginSuccess),
                Event.DEVICE_REGISTERED.value: _schema(DeviceRegistered),
                Event.DEVICE_CONNECTED.value: _schema(DeviceConnected),
                Event.DEVICES_UPDATE.value: {"type": "array", "items": _schema(DeviceSession)},
                Event.CLIENTS_UPDATE.value: {"type": "array", "items": _schema(OperatorSession)},
                Event.START_DEVICE.value: _schema(StartDevice),
                Event.COMMAND_SENT.value: _schema(CommandSent),
                Event.DEVICE_IP_RECEIVED.value: _schema(DeviceIPReceived),
                Event.CLIENT_DISCONNECTED.value: _schema(ClientDisconnected),
                Event.DEVICE_DISCONNECTED.value: _schema(DeviceDisconnected),
                Event.ERROR.value: _schema(ErrorNotification),
            },
            examples={
                "client_login": {"event": "client-login", "data": {"username": "admin", "role": "admin"}},
                "device_register": {"event": "device-register", "data": {"name": "pump-station-7", "firmware": "2.4.1"}},
                "devices_update": {"event": "devices-update", "data": device_snapshot_example},
            },
            notes=[
                "Every frame is a JSON object: {\"event\": <name>, \"data\": <payload>}.",
                "devices-update and clients-update always carry the full current list; replace, do not merge.",
                "Only admin operators may send start-command; others receive error {code: 'forbidden'}.",
                "A connection is either an operator or a device, never both.",
                "device-ip from a connection that has not registered is dropped without a reply.",
            ],
        )
        self.set_header("Content-Type", "application/json")
        self.write(schema.model_dump(mode="json"))
