"""Tests for JsonCredentialStore — persistence, atomicity, failure modes."""

import asyncio
import json
import os
import tempfile

import pytest

from commandbot.adapters.storage.credential_store import JsonCredentialStore
from commandbot.ports.outbound import CredentialPersistenceError


@pytest.fixture
def tmp_dir():
    """Create a temporary directory for credential storage."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def store(tmp_dir):
    return JsonCredentialStore(auth_dir=os.path.join(tmp_dir, "auth_info"))


@pytest.mark.asyncio
async def test_load_missing_returns_none(store):
    assert await store.load() is None


@pytest.mark.asyncio
async def test_save_then_load(store):
    await store.save({"token": "abc", "user_id": "42"})
    assert await store.load() == {"token": "abc", "user_id": "42"}


@pytest.mark.asyncio
async def test_save_creates_directory(store):
    await store.save({"token": "abc"})
    assert store.path.exists()
    assert json.loads(store.path.read_text(encoding="utf-8")) == {"token": "abc"}


@pytest.mark.asyncio
async def test_concurrent_saves_keep_last_payload(store):
    await asyncio.gather(
        store.save({"token": "first", "seq": 1}),
        store.save({"token": "second", "seq": 2}),
    )
    assert await store.load() == {"token": "second", "seq": 2}


@pytest.mark.asyncio
async def test_no_temp_files_left_behind(store):
    await store.save({"token": "a"})
    await store.save({"token": "b"})
    leftovers = [p for p in store.path.parent.iterdir() if p.suffix == ".tmp"]
    assert leftovers == []


@pytest.mark.asyncio
async def test_corrupt_file_raises(store):
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CredentialPersistenceError):
        await store.load()


@pytest.mark.asyncio
async def test_non_object_file_raises(store):
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(CredentialPersistenceError):
        await store.load()


@pytest.mark.asyncio
async def test_unwritable_location_raises(tmp_dir):
    blocker = os.path.join(tmp_dir, "blocker")
    with open(blocker, "w", encoding="utf-8") as f:
        f.write("not a directory")
    store = JsonCredentialStore(auth_dir=os.path.join(blocker, "auth_info"))
    with pytest.raises(CredentialPersistenceError):
        await store.save({"token": "abc"})


@pytest.mark.asyncio
async def test_unserializable_payload_raises(store):
    with pytest.raises(CredentialPersistenceError):
        await store.save({"token": object()})
    assert not store.path.exists()
