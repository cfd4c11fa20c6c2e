import json

import pydantic
import pytest
from tornado import httpclient, httpserver, testing

from relay_hub.lifecycle import LifecycleController
from relay_hub.main import make_app
from relay_hub.models import DeviceIPMessage, DeviceRegisterMessage, DeviceSession, StartDevice


def test_device_session_serializes_camel_case():
    session = DeviceSession(connection_id="c1", device_id="d1", name="pump", firmware="1.0")

    wire = session.model_dump(mode="json", by_alias=True)

    assert set(["connectionId", "deviceId", "ipAddress", "registeredAt", "lastIPUpdate"]).issubset(wire)
    assert wire["type"] == "device"
    assert wire["firmware"] == "1.0"


def test_start_device_uses_from_key():
    wire = StartDevice(from_="admin", client_connection_id="c1").model_dump(mode="json", by_alias=True)

    assert wire["from"] == "admin"
    assert wire["command"] == "start"


def test_register_message_drops_server_assigned_fields():
    message = DeviceRegisterMessage.model_validate(
        {"name": "pump", "deviceId": "x", "ipAddress": "1.2.3.4", "status": "ready", "firmware": "2"}
    )

    assert message.extra_fields() == {"firmware": "2"}


def test_device_ip_requires_ip():
    with pytest.raises(pydantic.ValidationError):
        DeviceIPMessage.model_validate({})


@pytest.mark.asyncio
async def test_docs_and_status_endpoints():
    controller = LifecycleController()
    controller.registry.upsert_device("c1", {"name": "pump"})
    app = make_app(controller=controller)
    server = httpserver.HTTPServer(app)
    sock, port = testing.bind_unused_port()
    server.add_socket(sock)

    try:
        client = httpclient.AsyncHTTPClient()
        docs = json.loads((await client.fetch(f"http://127.0.0.1:{port}/docs")).body)
        assert docs["websocket_endpoints"] == {"hub": "/ws"}
        assert "client-login" in docs["inbound_messages"]
        assert "from" in docs["outbound_messages"]["start-device"]["properties"]

        status = json.loads((await client.fetch(f"http://127.0.0.1:{port}/api/status")).body)
        assert status["clients"] == []
        assert status["devices"][0]["name"] == "pump"
        assert status["timestamp"].endswith("Z")

        health = json.loads((await client.fetch(f"http://127.0.0.1:{port}/health")).body)
        assert health == {"status": "ok"}
    finally:
        server.stop()
