# finpet/core/storage.py
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
import structlog

from finpet.core.settings import Settings

log = structlog.get_logger(__name__)


class KeyValueStore(ABC):
    """Durable home for JSON-serializable records under fixed keys."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under `key`, or None when absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store `value` under `key`, replacing any previous value."""

    def close(self) -> None:
        pass


class InMemoryStore(KeyValueStore):
    """Process-local store, used in tests and when persistence is disabled."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so callers never share mutable state with the store
        self._data[key] = json.loads(json.dumps(value))


class JsonFileStore(KeyValueStore):
    """All keys live in one JSON object on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[Any]:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            data = self._read_all()
        except ValueError:
            # Unreadable file is replaced rather than blocking every later write
            log.warning("store_file_unreadable_overwriting", path=str(self.path))
            data = {}
        data[key] = value
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)


class MongoKeyValueStore(KeyValueStore):
    """One document per key: {"_id": key, "value": <record>}."""

    def __init__(self, collection: Collection, client: Optional[MongoClient] = None):
        self.collection = collection
        self._client = client

    @classmethod
    def connect(cls, uri: str, database_name: str, collection_name: str) -> "MongoKeyValueStore":
        log.info("Connecting to MongoDB...")
        client = MongoClient(uri)
        try:
            # The ping command is cheap and does not require auth.
            client.admin.command("ping")
            log.info("Successfully connected to MongoDB.")
        except Exception as e:
            log.error("Failed to connect to MongoDB", error=str(e))
            client.close()
            raise
        return cls(client[database_name][collection_name], client=client)

    def get(self, key: str) -> Optional[Any]:
        doc = self.collection.find_one({"_id": key})
        if doc is None:
            return None
        return doc.get("value")

    def set(self, key: str, value: Any) -> None:
        self.collection.update_one(
            {"_id": key},
            {"$set": {"value": value}},
            upsert=True  # Create if not exists, update if exists
        )

    def close(self) -> None:
        if self._client is not None:
            log.info("Closing MongoDB connection...")
            self._client.close()
            log.info("MongoDB connection closed.")


def build_store(config: Settings) -> KeyValueStore:
    backend = config.STORE_BACKEND.lower()
    if backend == "memory":
        return InMemoryStore()
    if backend == "file":
        return JsonFileStore(Path(config.PROFILE_STORE_PATH))
    if backend == "mongo":
        if not config.MONGO_CONNECTION_URI:
            raise RuntimeError("STORE_BACKEND=mongo requires MONGO_CONNECTION_URI")
        return MongoKeyValueStore.connect(
            config.MONGO_CONNECTION_URI,
            config.MONGO_DATABASE_NAME,
            config.MONGO_COLLECTION_NAME,
        )
    raise ValueError(f"Unknown STORE_BACKEND: {config.STORE_BACKEND}")
