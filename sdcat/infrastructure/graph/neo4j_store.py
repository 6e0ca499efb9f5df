"""Neo4j graph store backed by the neosemantics (n10s) RDF plugin."""

import logging
from typing import Any

import logfire
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncManagedTransaction, unit_of_work
from neo4j.exceptions import Neo4jError, ServiceUnavailable
from neo4j.graph import Node, Path, Relationship

from sdcat.config import GraphConfig
from sdcat.domain.graph.model.value import QueryRequest, SdClaim
from sdcat.domain.graph.port.graph_store import GraphStore
from sdcat.domain.graph.service.codec import ClaimCodec, normalize_subject
from sdcat.domain.graph.service.guard import ensure_read_only
from sdcat.domain.shared.error import (
    ConfigurationError,
    ExternalServiceError,
    QueryRejectedError,
    QueryTimeoutError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

IMPORT_QUERY = (
    "CALL n10s.rdf.import.inline($payload, 'N-Triples') "
    "YIELD terminationStatus, triplesLoaded, triplesParsed, extraInfo "
    "RETURN terminationStatus, triplesLoaded, triplesParsed, extraInfo"
)
DELETE_QUERY = "MATCH (n {uri: $uri}) DETACH DELETE n"
GRAPH_CONFIG_EXISTS_QUERY = "MATCH (gc:_GraphConfig) RETURN count(gc) > 0 AS exists"
UNIQUE_URI_CONSTRAINT = (
    "CREATE CONSTRAINT n10s_unique_uri IF NOT EXISTS "
    "FOR (r:Resource) REQUIRE r.uri IS UNIQUE"
)
GRAPH_CONFIG_INIT = "CALL n10s.graphconfig.init()"

_TIMED_OUT = "TransactionTimedOut"
_ACCESS_MODE = "Neo.ClientError.Statement.AccessMode"


def project_record(items: list[tuple[str, Any]]) -> dict[str, Any]:
    """Flatten one result record into plain values.

    Nodes are reduced to their ``uri`` property under ``<field>.uri``.
    Relationships and paths have no flat form and are dropped.
    """
    row: dict[str, Any] = {}
    for key, value in items:
        if value is None or isinstance(value, str):
            row[key] = value
        elif isinstance(value, Node):
            row[f"{key}.uri"] = value.get("uri")
        elif isinstance(value, (Relationship, Path)):
            continue
        else:
            row[key] = value
    return row


class Neo4jGraphStore(GraphStore):
    """GraphStore over a Neo4j database with n10s installed.

    Every subject is imported as a node keyed by its ``uri``; removing a
    subject detaches and deletes that single node.
    """

    def __init__(self, driver: AsyncDriver, config: GraphConfig) -> None:
        self._driver = driver
        self._database = config.database
        self.query_timeout = config.query_timeout
        self.codec = ClaimCodec(config.has_uri_predicate)

    @classmethod
    def from_config(cls, config: GraphConfig) -> "Neo4jGraphStore":
        driver = AsyncGraphDatabase.driver(config.uri, auth=(config.user, config.password))
        return cls(driver, config)

    async def close(self) -> None:
        await self._driver.close()

    async def initialise(self) -> None:
        """Create the n10s graph config and uri constraint if they are missing.

        Raises:
            ConfigurationError: the graph cannot be prepared; startup should stop.
        """
        try:
            async with self._driver.session(database=self._database) as session:
                result = await session.run(GRAPH_CONFIG_EXISTS_QUERY)
                record = await result.single()
                if record is not None and record["exists"]:
                    logger.info("Graph store already initialised")
                    return
                await (await session.run(UNIQUE_URI_CONSTRAINT)).consume()
                await (await session.run(GRAPH_CONFIG_INIT)).consume()
        except (Neo4jError, ServiceUnavailable) as e:
            logger.error("Graph store initialisation failed: %s", e)
            raise ConfigurationError(f"Graph store initialisation failed: {e}") from e
        logger.info("Graph store initialised")

    async def add_claims(self, claims: list[SdClaim], subject_id: str) -> None:
        payload = self.codec.encode(claims, subject_id)

        with logfire.span("GraphAddClaims", subject_id=subject_id):
            try:
                async with self._driver.session(database=self._database) as session:
                    result = await session.run(IMPORT_QUERY, payload=payload)
                    record = await result.single()
            except ServiceUnavailable as e:
                raise StorageUnavailableError(f"Graph store unavailable: {e}") from e
            except Neo4jError as e:
                logger.error("Claim import for %s failed: %s", subject_id, e)
                raise ExternalServiceError(f"Claim import failed: {e.message}") from e

        if record is None or record["terminationStatus"] == "KO":
            info = record["extraInfo"] if record is not None else "no result"
            logger.error("Claim import for %s rejected by n10s: %s", subject_id, info)
            raise ExternalServiceError(f"Claim import failed: {info}")
        logger.debug(
            "Imported %s triples for %s", record["triplesLoaded"], subject_id
        )

    async def delete_claims(self, subject_id: str) -> None:
        try:
            async with self._driver.session(database=self._database) as session:
                result = await session.run(DELETE_QUERY, uri=normalize_subject(subject_id))
                summary = await result.consume()
        except ServiceUnavailable as e:
            raise StorageUnavailableError(f"Graph store unavailable: {e}") from e
        except Neo4jError as e:
            logger.error("Claim removal for %s failed: %s", subject_id, e)
            raise ExternalServiceError(f"Claim removal failed: {e.message}") from e
        logger.debug(
            "Removed subject %s (%d nodes)", subject_id, summary.counters.nodes_deleted
        )

    async def query_data(self, query: QueryRequest) -> list[dict[str, Any]]:
        ensure_read_only(query.statement)

        @unit_of_work(timeout=self.query_timeout)
        async def read(tx: AsyncManagedTransaction) -> list[dict[str, Any]]:
            result = await tx.run(query.statement, query.parameters)
            return [project_record(list(record.items())) async for record in result]

        with logfire.span("GraphQuery"):
            try:
                async with self._driver.session(database=self._database) as session:
                    return await session.execute_read(read)
            except ServiceUnavailable as e:
                raise StorageUnavailableError(f"Graph store unavailable: {e}") from e
            except Neo4jError as e:
                code = e.code or ""
                if _TIMED_OUT in code:
                    logger.warning("Graph query exceeded %ss", self.query_timeout)
                    raise QueryTimeoutError(
                        f"Query did not finish within {self.query_timeout}s"
                    ) from e
                if code == _ACCESS_MODE:
                    raise QueryRejectedError("Query attempted to write to the graph") from e
                logger.error("Graph query failed: %s", e)
                raise ExternalServiceError(f"Graph query failed: {e.message}") from e
