import uuid
from typing import Any, Dict, Optional

from auth_service.db.context import DBContext


class UserRepository:
    """Credential table stored in the MongoDB users collection."""

    def __init__(self, db_context: DBContext | None = None):
        context = db_context or DBContext()
        self.collection = context.database.users

    async def get_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        user = await self.collection.find_one({"username": username})
        if user is None:
            return None
        user["id"] = str(user.pop("_id"))
        return user

    async def create(self, username: str, hashed_password: str, role: str = "user"):
        return await self.collection.insert_one(
            {
                "username": username,
                "hashed_password": hashed_password,
                "role": role,
            }
        )


class InMemoryUserRepository:
    """Credential table kept in process; used when no MongoDB is configured."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}

    async def get_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        user = self.users.get(username)
        return dict(user) if user else None

    async def create(self, username: str, hashed_password: str, role: str = "user"):
        return self.add(username, hashed_password, role)

    def add(self, username: str, hashed_password: str, role: str = "user") -> Dict[str, Any]:
        self.users[username] = {
            "id": uuid.uuid4().hex,
            "username": username,
            "hashed_password": hashed_password,
            "role": role,
        }
        return self.users[username]
