import os
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from auth_service.models import LoginResponse, UserInfo
from auth_service.repositories.user_repository import InMemoryUserRepository, UserRepository

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Demo accounts served when no MONGODB_URL is configured.
DEMO_USERS = (
    ("admin", "admin123", "admin"),
    ("user1", "user123", "user"),
)


class SigningKeyMissing(RuntimeError):
    """No key is configured for signing access tokens."""


def demo_user_repository() -> InMemoryUserRepository:
    repository = InMemoryUserRepository()
    for username, password, role in DEMO_USERS:
        repository.add(username, pwd_context.hash(password), role)
    return repository


def user_repository_from_env():
    if os.getenv("MONGODB_URL"):
        return UserRepository()
    return demo_user_repository()


class AuthService:
    def __init__(self, user_repository=None):
        self.user_repository = user_repository or user_repository_from_env()
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_minutes = int(os.getenv("ACCESS_TOKEN_MINUTES", "60"))
        self.secret_key = None
        self.private_key = None
        if self.jwt_algorithm == "HS256":
            self.secret_key = os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY")
        else:
            # For RSA-based algorithms
            self.private_key = os.getenv("JWT_KEY")
            self.public_key = os.getenv("JWT_CERTIFICATE")

    @property
    def can_sign_tokens(self) -> bool:
        return bool(self.secret_key or self.private_key)

    def verify_password(self, plain_password, hashed_password):
        return pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password):
        return pwd_context.hash(password)

    def create_access_token(self, data: dict):
        """Sign ``data`` (``sub`` and ``role``) for the hub's token login mode."""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.access_token_minutes)
        to_encode.update({"exp": expire})
        if self.jwt_algorithm == "HS256":
            if not self.secret_key:
                raise SigningKeyMissing("JWT_SECRET/SECRET_KEY is not configured")
            return jwt.encode(to_encode, self.secret_key, algorithm=self.jwt_algorithm)
        if not self.private_key:
            raise SigningKeyMissing("JWT_KEY is not configured")
        return jwt.encode(to_encode, self.private_key, algorithm=self.jwt_algorithm)

    async def authenticate_user(self, username: str, password: str):
        user = await self.user_repository.get_by_username(username)
        if not user or not self.verify_password(password, user["hashed_password"]):
            return None
        return user

    async def create_user(self, username: str, password: str, role: str = "user"):
        return await self.user_repository.create(username, self.get_password_hash(password), role)

    async def login_user(self, username: str, password: str) -> LoginResponse | None:
        user = await self.authenticate_user(username, password)
        if not user:
            return None
        role = user.get("role", "user")
        token = self.create_access_token(data={"sub": username, "role": role})
        return LoginResponse(
            user=UserInfo(username=username, id=str(user["id"]), role=role),
            token=token,
        )
