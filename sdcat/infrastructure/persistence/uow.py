from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sdcat.domain.shared.uow import UnitOfWork, UnitOfWorkFactory
from sdcat.infrastructure.persistence.repository.sd_meta import SQLAlchemySdMetaRepository


class SQLAlchemyUnitOfWork(UnitOfWork):
    """One AsyncSession per unit of work; the repository shares its transaction."""

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], lock_timeout: float = 1.0
    ) -> None:
        self.session: AsyncSession = session_factory()
        self.records = SQLAlchemySdMetaRepository(self.session, lock_timeout=lock_timeout)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def close(self) -> None:
        await self.session.close()


class SQLAlchemyUnitOfWorkFactory(UnitOfWorkFactory):
    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], lock_timeout: float = 1.0
    ) -> None:
        self.session_factory = session_factory
        self.lock_timeout = lock_timeout

    def __call__(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(self.session_factory, lock_timeout=self.lock_timeout)
