"""Translates an SdFilter into SQL with every value bound as a named parameter."""

from collections.abc import Callable
from datetime import datetime

from sqlalchemy import ColumnElement, Select, and_, bindparam, distinct, exists, func, select

from sdcat.domain.selfdescription.model.filter import SdFilter
from sdcat.infrastructure.persistence.mappers.sd_meta import to_utc
from sdcat.infrastructure.persistence.tables import (
    sd_meta_records_table as records,
)
from sdcat.infrastructure.persistence.tables import (
    sd_meta_validators_table as validators,
)

Predicate = Callable[[SdFilter], ColumnElement[bool] | None]


def _time_range(column_name: str, start_field: str, end_field: str) -> Predicate:
    """Both bounds are attached as soon as a start is given; a missing end binds NULL."""
    column = records.c[column_name]

    def build(f: SdFilter) -> ColumnElement[bool] | None:
        start: datetime | None = getattr(f, start_field)
        if start is None:
            return None
        end: datetime | None = getattr(f, end_field)
        return and_(
            column >= bindparam(start_field, to_utc(start), type_=column.type),
            column <= bindparam(end_field, to_utc(end), type_=column.type),
        )

    return build


def _equals(column_name: str, field: str) -> Predicate:
    column = records.c[column_name]

    def build(f: SdFilter) -> ColumnElement[bool] | None:
        value = getattr(f, field)
        if value is None:
            return None
        return column == bindparam(field, str(value), type_=column.type)

    return build


def _has_validator(f: SdFilter) -> ColumnElement[bool] | None:
    if f.validator is None:
        return None
    return exists(
        select(validators.c.hash).where(
            validators.c.hash == records.c.hash,
            validators.c.validator_did == bindparam("validator", f.validator),
        )
    )


PREDICATES: tuple[Predicate, ...] = (
    _time_range("upload_time", "upload_time_start", "upload_time_end"),
    _time_range("status_time", "status_time_start", "status_time_end"),
    _equals("issuer", "issuer"),
    _has_validator,
    _equals("status", "status"),
    _equals("subject_id", "subject_id"),
    _equals("hash", "hash"),
)


class SdFilterQueryBuilder:
    """Builds the count and page statements for one filter.

    Predicates are combined conjunctively. Results are ordered by
    status_time descending with hash as tie-breaker so pages are stable.
    """

    def __init__(self, filter: SdFilter) -> None:
        self.filter = filter

    def predicates(self) -> list[ColumnElement[bool]]:
        built = (build(self.filter) for build in PREDICATES)
        return [p for p in built if p is not None]

    def count_statement(self) -> Select:
        return select(func.count(distinct(records.c.hash))).where(*self.predicates())

    def page_statement(self) -> Select:
        stmt = (
            select(records)
            .where(*self.predicates())
            .order_by(records.c.status_time.desc(), records.c.hash.asc())
        )
        if self.filter.offset:
            stmt = stmt.offset(self.filter.offset)
        if self.filter.limit:
            stmt = stmt.limit(self.filter.limit)
        return stmt
