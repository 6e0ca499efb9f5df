import logging

from dishka import AsyncContainer, Provider, from_context, make_async_container
from sqlalchemy.ext.asyncio import AsyncEngine

from sdcat.config import Config
from sdcat.domain.selfdescription.schedule.expiration import ExpirationSchedule
from sdcat.domain.selfdescription.util.di import SelfDescriptionProvider
from sdcat.infrastructure.graph import GraphProvider
from sdcat.infrastructure.graph.neo4j_store import Neo4jGraphStore
from sdcat.infrastructure.persistence import PersistenceProvider
from sdcat.infrastructure.persistence.database import init_db
from sdcat.infrastructure.schedule import ScheduleConfig, ScheduleConfigs, ScheduleRunner
from sdcat.util.di.scope import Scope

logger = logging.getLogger(__name__)


class ConfigProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    return make_async_container(
        ConfigProvider(),
        PersistenceProvider(),
        GraphProvider(),
        SelfDescriptionProvider(),
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )


async def bootstrap(container: AsyncContainer) -> None:
    """Prepare the stores before serving. Any failure here is fatal."""
    await init_db(await container.get(AsyncEngine))
    graph_store = await container.get(Neo4jGraphStore)
    await graph_store.initialise()


def schedule_configs(config: Config) -> ScheduleConfigs:
    if not config.sweep.enabled:
        return ScheduleConfigs([])
    return ScheduleConfigs(
        [
            ScheduleConfig(
                schedule_type=ExpirationSchedule,
                cron=config.sweep.cron,
                id="self-description-expiration",
            )
        ]
    )


def create_schedule_runner(container: AsyncContainer, config: Config) -> ScheduleRunner:
    runner = ScheduleRunner(container, schedule_configs(config))
    logger.debug("Schedule runner created with %d schedules", len(runner.schedules))
    return runner
