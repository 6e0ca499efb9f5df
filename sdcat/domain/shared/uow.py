from abc import ABC, abstractmethod
from types import TracebackType
from typing import TYPE_CHECKING, Optional, Protocol, Type

if TYPE_CHECKING:
    from sdcat.domain.selfdescription.port.repository import SdMetaRepository


class UnitOfWork(ABC):
    """A single metadata-store transaction.

    Leaving the context commits unless an exception escaped, in which case the
    transaction is rolled back. Calling commit() inside the block is allowed
    when later steps must only run after the data is durable.
    """

    records: "SdMetaRepository"

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]] = None,
        exc: Optional[BaseException] = None,
        tb: Optional[TracebackType] = None,
    ) -> None:
        try:
            if exc is not None:
                await self.rollback()
            else:
                await self.commit()
        finally:
            await self.close()


class UnitOfWorkFactory(Protocol):
    def __call__(self) -> UnitOfWork: ...
