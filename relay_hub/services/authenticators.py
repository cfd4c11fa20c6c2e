import base64
import logging
import os
from binascii import Error as BinasciiError
from typing import Optional, Protocol

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from relay_hub.models import ClientLoginMessage, Role

logger = logging.getLogger(__name__)


class Authenticator(Protocol):
    """Resolves the role for a login, or ``None`` to reject it."""

    def authenticate(self, login: ClientLoginMessage) -> Optional[Role]:
        ...


class AssertedRoleAuthenticator:
    """Trusts whatever role the client claims. Logins without a role become ``user``."""

    def __init__(self, default_role: Role = Role.USER):
        self.default_role = default_role

    def authenticate(self, login: ClientLoginMessage) -> Optional[Role]:
        return login.role or self.default_role


class TokenAuthenticator:
    """Accepts only logins carrying a JWT issued by the auth service.

    The token's ``sub`` must match the username in the login and its
    ``role`` claim decides the role. Any claimed role in the login itself
    is ignored.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        public_key: Optional[str] = None,
        algorithm: Optional[str] = None,
    ):
        self.algorithm = algorithm or os.getenv("JWT_ALGORITHM", "HS256")
        # Support both JWT_SECRET (HS256) and JWT_CERTIFICATE (RSA)
        self.secret = secret or os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY")
        self.public_key = self._load_key(public_key or os.getenv("JWT_CERTIFICATE"))

    def authenticate(self, login: ClientLoginMessage) -> Optional[Role]:
        if not login.token:
            return None
        try:
            claims = self.decode_token(login.token)
        except ExpiredSignatureError:
            logger.info(f"Expired token presented by {login.username}")
            return None
        except JWTError:
            logger.info(f"Invalid token presented by {login.username}")
            return None
        except RuntimeError as exc:
            logger.error(f"Cannot verify login tokens: {exc}")
            return None
        if claims.get("sub") != login.username:
            logger.info(f"Token subject does not match login {login.username}")
            return None
        try:
            return Role(claims.get("role", Role.USER.value))
        except ValueError:
            return None

    def decode_token(self, token: str) -> dict:
        if self.algorithm == "HS256":
            if not self.secret:
                raise RuntimeError("JWT_SECRET/SECRET_KEY is not configured")
            key = self.secret
        else:
            if not self.public_key:
                raise RuntimeError("JWT_CERTIFICATE is not configured")
            key = self.public_key
        return jwt.decode(token, key, algorithms=[self.algorithm])

    def _load_key(self, raw_value: str | None) -> str | None:
        """
        Return a PEM key string, decoding base64 input when necessary.
        Accepts either raw PEM text or a base64-encoded PEM.
        """
        if not raw_value:
            return raw_value
        if "BEGIN" in raw_value and "END" in raw_value:
            return raw_value
        try:
            return base64.b64decode(raw_value).decode("utf-8")
        except (BinasciiError, UnicodeDecodeError):
            return raw_value


def authenticator_from_env() -> Authenticator:
    mode = os.getenv("HUB_AUTH_MODE", "asserted").lower()
    if mode == "token":
        return TokenAuthenticator()
    if mode != "asserted":
        raise RuntimeError(f"Unknown HUB_AUTH_MODE: {mode}")
    return AssertedRoleAuthenticator()
