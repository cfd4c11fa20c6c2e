import asyncio
import json
import logging
from unittest import mock

import pytest
from jose import jwt
from tornado import httpclient, httpserver, httputil, iostream, testing, web, websocket

from relay_hub.handlers.hub_ws_handler import HubWebSocketHandler
from relay_hub.lifecycle import LifecycleController
from relay_hub.main import make_app
from relay_hub.services.authenticators import AssertedRoleAuthenticator, TokenAuthenticator


async def next_event(ws, name: str, timeout: float = 5.0):
    """Read frames until one named ``name`` arrives and return its data."""
    while True:
        raw = await asyncio.wait_for(ws.read_message(), timeout)
        assert raw is not None, f"connection closed while waiting for {name}"
        frame = json.loads(raw)
        if frame["event"] == name:
            return frame["data"]


async def send(ws, event: str, data=None):
    await ws.write_message(json.dumps({"event": event, "data": data or {}}))


def start_server(app):
    server = httpserver.HTTPServer(app)
    sock, port = testing.bind_unused_port()
    server.add_socket(sock)
    return server, port


@pytest.mark.asyncio
async def test_operator_commands_device_end_to_end():
    server, port = start_server(make_app(authenticator=AssertedRoleAuthenticator()))
    url = f"ws://127.0.0.1:{port}/ws"
    operator_ws = device_ws = None

    try:
        operator_ws = await websocket.websocket_connect(url)
        welcome = await next_event(operator_ws, "welcome")
        assert welcome["connectionId"]

        await send(operator_ws, "client-login", {"username": "admin", "role": "admin"})
        assert (await next_event(operator_ws, "login-success"))["role"] == "admin"
        assert await next_event(operator_ws, "devices-update") == []

        device_ws = await websocket.websocket_connect(url)
        await next_event(device_ws, "welcome")
        await send(device_ws, "device-register", {"name": "pump-7", "firmware": "2.4.1"})
        registered = await next_event(device_ws, "device-registered")

        connected = await next_event(operator_ws, "device-connected")
        assert connected["deviceId"] == registered["deviceId"]
        snapshot = await next_event(operator_ws, "devices-update")
        assert snapshot[0]["firmware"] == "2.4.1"

        await send(operator_ws, "start-command")
        directive = await next_event(device_ws, "start-device")
        assert directive["from"] == "admin"
        assert directive["clientConnectionId"] == welcome["connectionId"]
        assert (await next_event(operator_ws, "command-sent"))["devicesCount"] == 1

        await send(device_ws, "device-ip", {"ip": "10.0.4.17"})
        received = await next_event(operator_ws, "device-ip-received")
        assert received == {
            "deviceId": registered["deviceId"],
            "ip": "10.0.4.17",
            "message": "Device IP address received",
        }

        status = json.loads(
            (await httpclient.AsyncHTTPClient().fetch(f"http://127.0.0.1:{port}/api/status")).body
        )
        assert status["status"] == "running"
        assert [c["username"] for c in status["clients"]] == ["admin"]
        assert status["devices"][0]["ipAddress"] == "10.0.4.17"

        device_ws.close()
        device_ws = None
        gone = await next_event(operator_ws, "device-disconnected")
        assert gone["deviceId"] == registered["deviceId"]
        assert await next_event(operator_ws, "devices-update") == []
    finally:
        for ws in (operator_ws, device_ws):
            if ws is not None:
                ws.close()
        server.stop()
        await asyncio.sleep(0.05)


@pytest.mark.asyncio
async def test_user_role_cannot_start_over_websocket():
    server, port = start_server(make_app(authenticator=AssertedRoleAuthenticator()))
    url = f"ws://127.0.0.1:{port}/ws"
    operator_ws = device_ws = None

    try:
        operator_ws = await websocket.websocket_connect(url)
        await send(operator_ws, "client-login", {"username": "user1", "role": "user"})
        await next_event(operator_ws, "login-success")

        device_ws = await websocket.websocket_connect(url)
        await send(device_ws, "device-register", {"name": "pump"})
        await next_event(device_ws, "device-registered")

        await send(operator_ws, "start-command")
        error = await next_event(operator_ws, "error")
        assert error["code"] == "forbidden"

        # the connection stays usable after the error
        await send(operator_ws, "get-clients")
        clients = await next_event(operator_ws, "clients-update")
        assert [c["role"] for c in clients] == ["user"]

        with pytest.raises(asyncio.TimeoutError):
            await next_event(device_ws, "start-device", timeout=0.3)
    finally:
        for ws in (operator_ws, device_ws):
            if ws is not None:
                ws.close()
        server.stop()
        await asyncio.sleep(0.05)


@pytest.mark.asyncio
async def test_token_mode_login():
    authenticator = TokenAuthenticator(secret="test-secret", algorithm="HS256")
    server, port = start_server(make_app(authenticator=authenticator))
    url = f"ws://127.0.0.1:{port}/ws"
    operator_ws = None

    try:
        operator_ws = await websocket.websocket_connect(url)
        await send(operator_ws, "client-login", {"username": "admin", "role": "admin"})
        assert (await next_event(operator_ws, "error"))["code"] == "unauthenticated"

        token = jwt.encode({"sub": "admin", "role": "admin"}, "test-secret", algorithm="HS256")
        await send(operator_ws, "client-login", {"username": "admin", "token": token})
        assert (await next_event(operator_ws, "login-success"))["role"] == "admin"
    finally:
        if operator_ws is not None:
            operator_ws.close()
        server.stop()
        await asyncio.sleep(0.05)


def make_handler(controller):
    request = httputil.HTTPServerRequest(method="GET", uri="/ws", connection=mock.Mock())
    return HubWebSocketHandler(web.Application(), request, controller=controller)


def test_only_stream_failures_are_logged_as_socket_errors(caplog):
    controller = LifecycleController()
    handler = make_handler(controller)
    reported = []
    controller.transport_error = lambda connection_id, error: reported.append((connection_id, error))

    closed = iostream.StreamClosedError()
    handler.log_exception(type(closed), closed, None)

    bug = KeyError("missing")
    with caplog.at_level(logging.ERROR, logger="tornado.application"):
        handler.log_exception(type(bug), bug, None)

    assert reported == [(handler.connection_id, closed)]
    assert any("Uncaught exception" in record.getMessage() for record in caplog.records)
