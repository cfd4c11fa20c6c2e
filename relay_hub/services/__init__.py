from .authenticators import (
    AssertedRoleAuthenticator,
    Authenticator,
    TokenAuthenticator,
    authenticator_from_env,
)
from .authorization import can_issue_command

__all__ = [
    "AssertedRoleAuthenticator",
    "Authenticator",
    "TokenAuthenticator",
    "authenticator_from_env",
    "can_issue_command",
]
