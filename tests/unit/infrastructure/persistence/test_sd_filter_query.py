"""Unit tests for SdFilterQueryBuilder statement construction."""

from datetime import UTC, datetime

from sqlalchemy.dialects import postgresql, sqlite

from sdcat.domain.selfdescription.model.filter import SdFilter
from sdcat.domain.selfdescription.model.value import SelfDescriptionStatus
from sdcat.infrastructure.persistence.filter import SdFilterQueryBuilder

T1 = datetime(2024, 1, 1, tzinfo=UTC)
T2 = datetime(2024, 2, 1, tzinfo=UTC)


def _params(stmt) -> dict:
    return stmt.compile(dialect=postgresql.dialect()).params


class TestSdFilterQueryBuilder:
    def test_no_filter_has_no_predicates(self):
        builder = SdFilterQueryBuilder(SdFilter())

        assert builder.predicates() == []
        assert "WHERE" not in str(builder.page_statement())

    def test_values_are_bound_not_inlined(self):
        f = SdFilter(issuer="did:web:x' OR '1'='1", status=SelfDescriptionStatus.ACTIVE)

        stmt = SdFilterQueryBuilder(f).page_statement()
        sql = str(stmt.compile(dialect=postgresql.dialect()))

        assert "did:web:x" not in sql
        assert _params(stmt)["issuer"] == "did:web:x' OR '1'='1"
        assert _params(stmt)["status"] == "active"

    def test_range_start_binds_start_and_end(self):
        stmt = SdFilterQueryBuilder(
            SdFilter(upload_time_start=T1, upload_time_end=T2)
        ).page_statement()

        params = _params(stmt)
        assert params["upload_time_start"] == T1
        assert params["upload_time_end"] == T2

    def test_range_start_without_end_binds_null(self):
        stmt = SdFilterQueryBuilder(SdFilter(status_time_start=T1)).page_statement()

        params = _params(stmt)
        assert params["status_time_start"] == T1
        assert params["status_time_end"] is None

    def test_range_end_alone_is_ignored(self):
        builder = SdFilterQueryBuilder(SdFilter(upload_time_end=T2))

        assert builder.predicates() == []

    def test_validator_uses_exists_subquery(self):
        stmt = SdFilterQueryBuilder(SdFilter(validator="did:web:v")).page_statement()
        sql = str(stmt.compile(dialect=postgresql.dialect()))

        assert "EXISTS" in sql
        assert _params(stmt)["validator"] == "did:web:v"

    def test_order_is_status_time_desc_then_hash(self):
        sql = str(SdFilterQueryBuilder(SdFilter()).page_statement())

        assert "ORDER BY sd_meta_records.status_time DESC, sd_meta_records.hash ASC" in sql

    def test_limit_zero_means_unlimited(self):
        stmt = SdFilterQueryBuilder(SdFilter(limit=0)).page_statement()

        assert "LIMIT" not in str(stmt.compile(dialect=postgresql.dialect()))

    def test_offset_and_limit(self):
        stmt = SdFilterQueryBuilder(SdFilter(offset=20, limit=10)).page_statement()
        compiled = stmt.compile(dialect=sqlite.dialect())

        assert "LIMIT" in str(compiled)
        assert "OFFSET" in str(compiled)

    def test_count_uses_distinct_hash(self):
        sql = str(SdFilterQueryBuilder(SdFilter(issuer="x")).count_statement())

        assert "count(DISTINCT sd_meta_records.hash)" in sql

    def test_all_predicates_combine(self):
        f = SdFilter(
            upload_time_start=T1,
            upload_time_end=T2,
            status_time_start=T1,
            status_time_end=T2,
            issuer="i",
            validator="v",
            status=SelfDescriptionStatus.REVOKED,
            subject_id="s",
            hash="h",
        )

        assert len(SdFilterQueryBuilder(f).predicates()) == 7
