import os

from pymongo.asynchronous.mongo_client import AsyncMongoClient


class DBContext:
    """Singleton wrapper around the async MongoDB client holding the credential table."""

    _instance: "DBContext | None" = None

    def __new__(cls) -> "DBContext":
        if cls._instance is None:
            mongo_url = os.getenv("MONGODB_URL")
            if not mongo_url:
                raise RuntimeError("MONGODB_URL environment variable is not set")
            instance = super().__new__(cls)
            instance.client = AsyncMongoClient(mongo_url)
            instance.db = instance.client[os.getenv("MONGODB_DATABASE", "relay_hub")]
            cls._instance = instance
        return cls._instance

    @property
    def database(self):
        return self.db
