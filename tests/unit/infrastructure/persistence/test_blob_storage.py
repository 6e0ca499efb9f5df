"""Unit tests for LocalBlobStorageAdapter."""

from pathlib import Path

import pytest

from sdcat.domain.selfdescription.model.value import content_hash
from sdcat.domain.shared.error import ConflictError, NotFoundError, ValidationError
from sdcat.infrastructure.persistence.adapter.storage import LocalBlobStorageAdapter


@pytest.fixture
def storage(tmp_path: Path) -> LocalBlobStorageAdapter:
    return LocalBlobStorageAdapter(base_path=str(tmp_path / "files"))


class TestLocalBlobStorageAdapter:
    @pytest.mark.asyncio
    async def test_store_then_read(self, storage: LocalBlobStorageAdapter):
        content = b'{"@context": []}'
        hash = content_hash(content)

        await storage.store_file(hash, content)

        assert await storage.read_file(hash) == content
        assert (storage.base_path / hash[:2] / hash).exists()

    @pytest.mark.asyncio
    async def test_store_twice_conflicts(self, storage: LocalBlobStorageAdapter):
        hash = content_hash(b"a")
        await storage.store_file(hash, b"a")

        with pytest.raises(ConflictError):
            await storage.store_file(hash, b"a")

    @pytest.mark.asyncio
    async def test_read_missing_is_not_found(self, storage: LocalBlobStorageAdapter):
        with pytest.raises(NotFoundError):
            await storage.read_file(content_hash(b"missing"))

    @pytest.mark.asyncio
    async def test_delete(self, storage: LocalBlobStorageAdapter):
        hash = content_hash(b"a")
        await storage.store_file(hash, b"a")

        await storage.delete_file(hash)

        with pytest.raises(NotFoundError):
            await storage.read_file(hash)

    @pytest.mark.asyncio
    async def test_delete_missing_is_not_found(self, storage: LocalBlobStorageAdapter):
        with pytest.raises(NotFoundError):
            await storage.delete_file(content_hash(b"missing"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("hash", ["../../etc/passwd", "abc/def0123456", "", "zz" * 32])
    async def test_non_hex_hash_is_rejected(self, storage: LocalBlobStorageAdapter, hash: str):
        with pytest.raises(ValidationError):
            await storage.read_file(hash)

    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, storage: LocalBlobStorageAdapter):
        hash = content_hash(b"a")
        await storage.store_file(hash, b"a")

        assert [p.name for p in (storage.base_path / hash[:2]).iterdir()] == [hash]
