"""Tests for the local blob store."""

import pytest

from stripbooth.errors import NotFoundError, ValidationError
from stripbooth.services.storage import LocalBlobStore


@pytest.fixture
def store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path, "/uploads")


class TestKeys:

    @pytest.mark.parametrize("key, expected", [
        ("photos/a.jpg", "photos/a.jpg"),
        ("/uploads/photos/a.jpg", "photos/a.jpg"),
        ("photos\\a.jpg", "photos/a.jpg"),
        ("./photos//a.jpg", "photos/a.jpg"),
    ])
    def test_normalize(self, store, key, expected):
        assert store.normalize_key(key) == expected

    @pytest.mark.parametrize("key", ["", "../secret", "photos/../../etc/passwd", "/"])
    def test_unsafe_keys(self, store, key):
        with pytest.raises(ValidationError):
            store.normalize_key(key)

    def test_url_for(self, store):
        assert store.url_for("photostrips/a.jpg") == "/uploads/photostrips/a.jpg"

    def test_path_stays_under_root(self, store, tmp_path):
        assert store.path_for("a/b.png") == tmp_path.resolve() / "a" / "b.png"


class TestReadWrite:

    @pytest.mark.asyncio
    async def test_write_then_read(self, store):
        key = await store.write("photos/a.bin", b"data")
        assert await store.read(key) == b"data"
        assert await store.exists(key)

    @pytest.mark.asyncio
    async def test_missing_blob(self, store):
        with pytest.raises(NotFoundError):
            await store.read("photos/missing.jpg")

    @pytest.mark.asyncio
    async def test_write_new_never_overwrites(self, store):
        first = await store.write_new("photostrips/strip.jpg", b"one")
        second = await store.write_new("photostrips/strip.jpg", b"two")

        assert first == "photostrips/strip.jpg"
        assert second == "photostrips/strip-1.jpg"
        assert await store.read(first) == b"one"
        assert await store.read(second) == b"two"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        key = await store.write("photos/a.bin", b"data")
        assert await store.delete(key)
        assert not await store.exists(key)
        assert not await store.delete(key)
