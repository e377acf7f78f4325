"""Tests for habitcore.core.storage: LocalStorage and MemoryStorage."""

import os

import pytest

from habitcore.core.storage import LocalStorage, MemoryStorage, StoragePermissionError


@pytest.mark.asyncio
class TestLocalStorage:
    async def test_save_and_load(self, tmp_dir):
        store = LocalStorage(base_path=tmp_dir)
        await store.save("test.json", b'{"key": "value"}')
        assert await store.load("test.json") == b'{"key": "value"}'

    async def test_load_missing(self, tmp_dir):
        store = LocalStorage(base_path=tmp_dir)
        assert await store.load("nope.json") is None

    async def test_overwrite_leaves_no_temp_file(self, tmp_dir):
        store = LocalStorage(base_path=tmp_dir)
        await store.save("queue.json", b"[1]")
        await store.save("queue.json", b"[1,2]")
        assert await store.load("queue.json") == b"[1,2]"
        assert sorted(os.listdir(tmp_dir)) == ["queue.json"]

    async def test_nested_keys(self, tmp_dir):
        store = LocalStorage(base_path=tmp_dir)
        await store.save("milestones/achieved.json", b"[]")
        assert await store.exists("milestones/achieved.json")
        assert [k async for k in store.list_keys("milestones/")] == ["milestones/achieved.json"]

    async def test_delete(self, tmp_dir):
        store = LocalStorage(base_path=tmp_dir)
        await store.save("x", b"1")
        assert await store.delete("x") is True
        assert await store.delete("x") is False
        assert not await store.exists("x")

    @pytest.mark.parametrize("key", ["../escape.json", "/etc/passwd", "", "a\\b", "~/x"])
    async def test_rejects_unsafe_keys(self, tmp_dir, key):
        store = LocalStorage(base_path=tmp_dir)
        with pytest.raises(StoragePermissionError):
            await store.save(key, b"x")

    async def test_survives_new_instance(self, tmp_dir):
        await LocalStorage(base_path=tmp_dir).save_json("freezes.json", {"used": ["2026-10-03"]})
        reopened = LocalStorage(base_path=tmp_dir)
        assert await reopened.load_json("freezes.json") == {"used": ["2026-10-03"]}


@pytest.mark.asyncio
class TestJsonHelpers:
    async def test_roundtrip(self):
        store = MemoryStorage()
        await store.save_json("doc", {"b": 1, "a": [1, 2]})
        assert await store.load_json("doc") == {"a": [1, 2], "b": 1}

    async def test_default_when_missing(self):
        assert await MemoryStorage().load_json("doc", default=[]) == []

    async def test_corrupt_document_yields_default(self):
        store = MemoryStorage()
        await store.save("doc", b"{not json")
        assert await store.load_json("doc", default={}) == {}


@pytest.mark.asyncio
class TestMemoryStorage:
    async def test_list_keys_with_prefix(self):
        store = MemoryStorage()
        for key in ("b/1", "a/1", "a/2"):
            await store.save(key, b"")
        assert [k async for k in store.list_keys("a/")] == ["a/1", "a/2"]

    async def test_save_count(self):
        store = MemoryStorage()
        await store.save("k", b"1")
        await store.save("k", b"2")
        assert store.save_count == 2
