"""
Device relay hub package.

This service is responsible for:
- Tracking which operators and devices are connected over WebSocket.
- Relaying admin start commands to every registered device.
- Broadcasting device status (IP address, readiness) and presence snapshots to operators.

The HTTP/WebSocket server is implemented with Tornado.
"""
