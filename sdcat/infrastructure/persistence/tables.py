"""SQLAlchemy table definitions - dialect-agnostic (works with SQLite and PostgreSQL)."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    text,
)

metadata = MetaData()

# ============================================================================
# SELF-DESCRIPTION METADATA TABLE
# ============================================================================
sd_meta_records_table = Table(
    "sd_meta_records",
    metadata,
    Column("hash", String(128), primary_key=True),  # Content hash, immutable
    Column("subject_id", String, nullable=False),
    Column("issuer", String, nullable=False),
    Column("upload_time", DateTime(timezone=True), nullable=False),
    Column("status", String(32), nullable=False),  # SelfDescriptionStatus as string
    Column("status_time", DateTime(timezone=True), nullable=False),
    Column("expiration_time", DateTime(timezone=True), nullable=True),
)

# At most one active record per subject, enforced across processes
Index(
    "uq_sd_meta_records_active_subject",
    sd_meta_records_table.c.subject_id,
    unique=True,
    sqlite_where=text("status = 'active'"),
    postgresql_where=text("status = 'active'"),
)
Index("idx_sd_meta_records_subject_id", sd_meta_records_table.c.subject_id)
Index(
    "idx_sd_meta_records_status_expiration",
    sd_meta_records_table.c.status,
    sd_meta_records_table.c.expiration_time,
)
Index(
    "idx_sd_meta_records_status_time",
    sd_meta_records_table.c.status_time,
    sd_meta_records_table.c.hash,
)


# ============================================================================
# VALIDATORS TABLE
# ============================================================================
sd_meta_validators_table = Table(
    "sd_meta_validators",
    metadata,
    Column(
        "hash",
        String(128),
        ForeignKey("sd_meta_records.hash", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("validator_did", String, primary_key=True),
)

Index("idx_sd_meta_validators_did", sd_meta_validators_table.c.validator_did)
