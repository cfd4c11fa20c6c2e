class HubError(Exception):
    """Base for conditions reported back to the originating connection.

    None of these are fatal: the dispatcher turns them into an ``error``
    notification and the connection stays open.
    """

    code = "hub-error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(HubError):
    code = "unauthenticated"
    default_message = "Not authenticated"


class Forbidden(HubError):
    code = "forbidden"
    default_message = "Only admin operators may issue commands"


class NoDevicesAvailable(HubError):
    code = "no-devices"
    default_message = "No devices connected"


class UnregisteredSender(HubError):
    """Status report from a connection without a device session. Never sent to clients."""

    code = "unregistered-sender"
    default_message = "Report received from unregistered device"


class IdentityConflict(HubError):
    code = "identity-conflict"
    default_message = "Connection is already bound to a different identity"


class AlreadyRegistered(HubError):
    code = "already-registered"
    default_message = "Device is already registered on this connection"


class InvalidMessage(HubError):
    code = "invalid-message"
    default_message = "Malformed message"
