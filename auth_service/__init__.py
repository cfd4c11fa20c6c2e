"""
Credential service for the relay hub.

Checks operator credentials against a server-side table (MongoDB, or the
built-in demo accounts when MONGODB_URL is unset) and issues JWTs whose
``role`` claim the hub trusts in token mode.

Run with ``uvicorn auth_service.main:app``.
"""
