import logging
from datetime import datetime

from sqlalchemy import Select, delete, insert, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sdcat.domain.selfdescription.model.aggregate import SdMetaRecord
from sdcat.domain.selfdescription.model.filter import SdFilter
from sdcat.domain.selfdescription.model.value import SelfDescriptionStatus
from sdcat.domain.selfdescription.port.repository import SdMetaRepository
from sdcat.domain.shared.error import ConflictError, LockTimeoutError
from sdcat.infrastructure.persistence.filter import SdFilterQueryBuilder
from sdcat.infrastructure.persistence.mappers.sd_meta import (
    row_to_sd_meta,
    sd_meta_to_dict,
    to_utc,
    validator_rows,
)
from sdcat.infrastructure.persistence.tables import (
    sd_meta_records_table,
    sd_meta_validators_table,
)

logger = logging.getLogger(__name__)

_LOCK_NOT_AVAILABLE = "55P03"


def is_lock_timeout(error: DBAPIError) -> bool:
    """True for PostgreSQL lock_not_available and SQLite busy errors."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    message = str(orig)
    return (
        sqlstate == _LOCK_NOT_AVAILABLE
        or "lock timeout" in message
        or "database is locked" in message
    )


class SQLAlchemySdMetaRepository(SdMetaRepository):
    """SQLAlchemy implementation of SdMetaRepository (SQLite and PostgreSQL)."""

    def __init__(self, session: AsyncSession, lock_timeout: float = 1.0) -> None:
        self.session = session
        self.lock_timeout = lock_timeout

    @property
    def _is_postgres(self) -> bool:
        return self.session.get_bind().dialect.name == "postgresql"

    async def _fetch_one(self, stmt: Select) -> SdMetaRecord | None:
        result = await self.session.execute(stmt)
        row = result.mappings().first()
        if row is None:
            return None
        dids = await self._validators_for([row["hash"]])
        return row_to_sd_meta(dict(row), dids.get(row["hash"], []))

    async def _validators_for(self, hashes: list[str]) -> dict[str, list[str]]:
        if not hashes:
            return {}
        stmt = (
            select(sd_meta_validators_table)
            .where(sd_meta_validators_table.c.hash.in_(hashes))
            .order_by(sd_meta_validators_table.c.validator_did)
        )
        result = await self.session.execute(stmt)
        grouped: dict[str, list[str]] = {}
        for row in result.mappings().all():
            grouped.setdefault(row["hash"], []).append(row["validator_did"])
        return grouped

    async def _fetch_for_update(self, stmt: Select) -> SdMetaRecord | None:
        if self._is_postgres:
            # SET does not take bind parameters; the value is a float from config
            timeout_ms = int(self.lock_timeout * 1000)
            await self.session.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
        try:
            return await self._fetch_one(stmt.with_for_update())
        except DBAPIError as e:
            if is_lock_timeout(e):
                raise LockTimeoutError(f"Row lock not granted within {self.lock_timeout}s") from e
            raise

    async def get(self, hash: str) -> SdMetaRecord | None:
        stmt = select(sd_meta_records_table).where(sd_meta_records_table.c.hash == hash)
        return await self._fetch_one(stmt)

    async def get_for_update(self, hash: str) -> SdMetaRecord | None:
        stmt = select(sd_meta_records_table).where(sd_meta_records_table.c.hash == hash)
        return await self._fetch_for_update(stmt)

    async def find_active_for_update(self, subject_id: str) -> SdMetaRecord | None:
        stmt = select(sd_meta_records_table).where(
            sd_meta_records_table.c.subject_id == subject_id,
            sd_meta_records_table.c.status == str(SelfDescriptionStatus.ACTIVE),
        )
        return await self._fetch_for_update(stmt)

    async def add(self, record: SdMetaRecord) -> None:
        try:
            await self.session.execute(
                insert(sd_meta_records_table).values(**sd_meta_to_dict(record))
            )
        except IntegrityError as e:
            logger.info("Rejected duplicate self-description %s: %s", record.hash, e.orig)
            raise ConflictError(
                f"self-description with hash {record.hash} already exists "
                f"or subject {record.subject_id} already has an active one"
            ) from e
        except DBAPIError as e:
            if is_lock_timeout(e):
                raise LockTimeoutError("Metadata store is busy") from e
            raise
        await self._write_validators(record)
        await self.session.flush()

    async def save(self, record: SdMetaRecord) -> None:
        values = sd_meta_to_dict(record)
        del values["hash"]
        try:
            await self.session.execute(
                update(sd_meta_records_table)
                .where(sd_meta_records_table.c.hash == record.hash)
                .values(**values)
            )
        except IntegrityError as e:
            raise ConflictError(
                f"subject {record.subject_id} already has an active self-description"
            ) from e
        await self.session.execute(
            delete(sd_meta_validators_table).where(
                sd_meta_validators_table.c.hash == record.hash
            )
        )
        await self._write_validators(record)
        await self.session.flush()

    async def _write_validators(self, record: SdMetaRecord) -> None:
        rows = validator_rows(record)
        if rows:
            await self.session.execute(insert(sd_meta_validators_table), rows)

    async def delete(self, hash: str) -> None:
        await self.session.execute(
            delete(sd_meta_validators_table).where(sd_meta_validators_table.c.hash == hash)
        )
        await self.session.execute(
            delete(sd_meta_records_table).where(sd_meta_records_table.c.hash == hash)
        )
        await self.session.flush()

    async def count(self, filter: SdFilter) -> int:
        result = await self.session.execute(SdFilterQueryBuilder(filter).count_statement())
        return result.scalar_one()

    async def find(self, filter: SdFilter) -> list[SdMetaRecord]:
        result = await self.session.execute(SdFilterQueryBuilder(filter).page_statement())
        rows = [dict(r) for r in result.mappings().all()]
        dids = await self._validators_for([r["hash"] for r in rows])
        return [row_to_sd_meta(r, dids.get(r["hash"], [])) for r in rows]

    async def expired_active_hashes(
        self, now: datetime, *, after: str | None = None, limit: int = 100
    ) -> list[str]:
        stmt = select(sd_meta_records_table.c.hash).where(
            sd_meta_records_table.c.status == str(SelfDescriptionStatus.ACTIVE),
            sd_meta_records_table.c.expiration_time.is_not(None),
            sd_meta_records_table.c.expiration_time < to_utc(now),
        )
        if after is not None:
            stmt = stmt.where(sd_meta_records_table.c.hash > after)
        stmt = stmt.order_by(sd_meta_records_table.c.hash.asc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
