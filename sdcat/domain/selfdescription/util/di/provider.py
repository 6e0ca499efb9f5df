from dishka import Provider, provide

from sdcat.config import Config
from sdcat.domain.graph.port.graph_store import GraphStore
from sdcat.domain.selfdescription.port.storage import BlobStoragePort
from sdcat.domain.selfdescription.schedule.expiration import ExpirationSchedule
from sdcat.domain.selfdescription.service.store import SelfDescriptionStore
from sdcat.domain.shared.lock import KeyedLock
from sdcat.domain.shared.uow import UnitOfWorkFactory
from sdcat.util.di.scope import Scope


class SelfDescriptionProvider(Provider):
    @provide(scope=Scope.APP)
    def get_subject_locks(self, config: Config) -> KeyedLock:
        # Shared by every caller in this process
        return KeyedLock(timeout=config.lifecycle.lock_timeout)

    @provide(scope=Scope.APP)
    def get_self_description_store(
        self,
        uow_factory: UnitOfWorkFactory,
        blob_storage: BlobStoragePort,
        graph_store: GraphStore,
        locks: KeyedLock,
        config: Config,
    ) -> SelfDescriptionStore:
        return SelfDescriptionStore(
            uow_factory=uow_factory,
            blob_storage=blob_storage,
            graph_store=graph_store,
            locks=locks,
            sweep_batch_size=config.lifecycle.sweep_batch_size,
        )

    expiration_schedule = provide(ExpirationSchedule, scope=Scope.UOW)
