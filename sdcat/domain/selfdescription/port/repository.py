from abc import abstractmethod
from datetime import datetime
from typing import Protocol

from sdcat.domain.selfdescription.model.aggregate import SdMetaRecord
from sdcat.domain.selfdescription.model.filter import SdFilter
from sdcat.domain.shared.port import Port


class SdMetaRepository(Port, Protocol):
    @abstractmethod
    async def get(self, hash: str) -> SdMetaRecord | None: ...

    @abstractmethod
    async def get_for_update(self, hash: str) -> SdMetaRecord | None:
        """Load a record and hold a row lock on it until the transaction ends."""
        ...

    @abstractmethod
    async def find_active_for_update(self, subject_id: str) -> SdMetaRecord | None: ...

    @abstractmethod
    async def add(self, record: SdMetaRecord) -> None:
        """Insert a new record. Raises ConflictError if the hash already exists."""
        ...

    @abstractmethod
    async def save(self, record: SdMetaRecord) -> None: ...

    @abstractmethod
    async def delete(self, hash: str) -> None: ...

    @abstractmethod
    async def count(self, filter: SdFilter) -> int: ...

    @abstractmethod
    async def find(self, filter: SdFilter) -> list[SdMetaRecord]: ...

    @abstractmethod
    async def expired_active_hashes(
        self, now: datetime, *, after: str | None = None, limit: int = 100
    ) -> list[str]:
        """Hashes of active records expired before `now`, ordered, strictly after `after`."""
        ...
