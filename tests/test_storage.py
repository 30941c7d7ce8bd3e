"""Key-value store backends."""
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from finpet.core.settings import Settings
from finpet.core.storage import InMemoryStore, JsonFileStore, MongoKeyValueStore, build_store


def test_in_memory_store_copies_values():
    store = InMemoryStore()
    value = {"xp": 1, "accessories": []}
    store.set("k", value)
    value["accessories"].append("hat")
    assert store.get("k") == {"xp": 1, "accessories": []}
    assert store.get("missing") is None


def test_json_file_store_survives_reopen():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "nested" / "pet.json"
        JsonFileStore(path).set("pet", {"name": "Buddy"})
        JsonFileStore(path).set("other", [1, 2])
        reopened = JsonFileStore(path)
        assert reopened.get("pet") == {"name": "Buddy"}
        assert reopened.get("other") == [1, 2]
        assert reopened.get("missing") is None


def test_json_file_store_missing_file():
    with tempfile.TemporaryDirectory() as tmp:
        assert JsonFileStore(Path(tmp) / "nope.json").get("pet") is None


def test_json_file_store_corrupt_file():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "pet.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(path)
        with pytest.raises(ValueError):
            store.get("pet")
        # A write replaces the unreadable file
        store.set("pet", {"name": "Rex"})
        assert store.get("pet") == {"name": "Rex"}


def test_mongo_store_uses_one_document_per_key():
    collection = MagicMock()
    collection.find_one.return_value = {"_id": "pet", "value": {"name": "Buddy"}}
    store = MongoKeyValueStore(collection)

    assert store.get("pet") == {"name": "Buddy"}
    collection.find_one.assert_called_once_with({"_id": "pet"})

    store.set("pet", {"name": "Rex"})
    collection.update_one.assert_called_once_with({"_id": "pet"}, {"$set": {"value": {"name": "Rex"}}}, upsert=True)


def test_mongo_store_missing_key():
    collection = MagicMock()
    collection.find_one.return_value = None
    assert MongoKeyValueStore(collection).get("pet") is None


def test_mongo_store_close_closes_client():
    client = MagicMock()
    MongoKeyValueStore(MagicMock(), client=client).close()
    client.close.assert_called_once()


def test_build_store_backends():
    with tempfile.TemporaryDirectory() as tmp:
        file_store = build_store(Settings(STORE_BACKEND="file", PROFILE_STORE_PATH=str(Path(tmp) / "p.json")))
        assert isinstance(file_store, JsonFileStore)
    assert isinstance(build_store(Settings(STORE_BACKEND="memory")), InMemoryStore)
    with pytest.raises(RuntimeError):
        build_store(Settings(STORE_BACKEND="mongo", MONGO_CONNECTION_URI=None))
    with pytest.raises(ValueError):
        build_store(Settings(STORE_BACKEND="sqlite"))
