from typing import AsyncIterable

from dishka import Provider, provide
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from sdcat.config import Config
from sdcat.domain.selfdescription.port.storage import BlobStoragePort
from sdcat.domain.shared.uow import UnitOfWorkFactory
from sdcat.infrastructure.persistence.adapter.storage import LocalBlobStorageAdapter
from sdcat.infrastructure.persistence.database import (
    create_db_engine,
    create_session_factory,
)
from sdcat.infrastructure.persistence.uow import SQLAlchemyUnitOfWorkFactory
from sdcat.util.di.scope import Scope


class PersistenceProvider(Provider):
    @provide(scope=Scope.APP)
    async def get_engine(self, config: Config) -> AsyncIterable[AsyncEngine]:
        engine = create_db_engine(config.database)
        yield engine
        await engine.dispose()

    @provide(scope=Scope.APP)
    def get_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    @provide(scope=Scope.APP)
    def get_uow_factory(
        self, session_factory: async_sessionmaker[AsyncSession], config: Config
    ) -> UnitOfWorkFactory:
        return SQLAlchemyUnitOfWorkFactory(
            session_factory, lock_timeout=config.lifecycle.lock_timeout
        )

    @provide(scope=Scope.APP)
    def get_blob_storage(self, config: Config) -> BlobStoragePort:
        return LocalBlobStorageAdapter(base_path=config.blob_store.path)
