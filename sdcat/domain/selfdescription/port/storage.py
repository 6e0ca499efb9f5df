from abc import abstractmethod
from typing import Protocol

from sdcat.domain.shared.port import Port


class BlobStoragePort(Port, Protocol):
    """Content-addressed storage of raw self-description documents."""

    @abstractmethod
    async def read_file(self, hash: str) -> bytes:
        """Raises NotFoundError if no document is stored under `hash`."""
        ...

    @abstractmethod
    async def store_file(self, hash: str, content: bytes) -> None:
        """Raises ConflictError if a document is already stored under `hash`."""
        ...

    @abstractmethod
    async def delete_file(self, hash: str) -> None:
        """Raises NotFoundError if no document is stored under `hash`."""
        ...
