from typing import AsyncIterable

from dishka import Provider, provide

from sdcat.config import Config
from sdcat.domain.graph.port.graph_store import GraphStore
from sdcat.infrastructure.graph.neo4j_store import Neo4jGraphStore
from sdcat.util.di.scope import Scope


class GraphProvider(Provider):
    @provide(scope=Scope.APP)
    async def get_neo4j_store(self, config: Config) -> AsyncIterable[Neo4jGraphStore]:
        store = Neo4jGraphStore.from_config(config.graph)
        yield store
        await store.close()

    @provide(scope=Scope.APP)
    def get_graph_store(self, store: Neo4jGraphStore) -> GraphStore:
        return store
