from datetime import UTC, datetime
from typing import Any

from sdcat.domain.selfdescription.model.aggregate import SdMetaRecord
from sdcat.domain.selfdescription.model.value import SelfDescriptionStatus


def to_utc(value: datetime | None) -> datetime | None:
    """Normalise to UTC. Naive values are taken to be UTC already.

    SQLite drops the offset on the way in and out, so everything is stored in UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def row_to_sd_meta(row: dict[str, Any], validator_dids: list[str]) -> SdMetaRecord:
    return SdMetaRecord(
        hash=row["hash"],
        subject_id=row["subject_id"],
        issuer=row["issuer"],
        upload_time=to_utc(row["upload_time"]),
        status=SelfDescriptionStatus(row["status"]),
        status_time=to_utc(row["status_time"]),
        expiration_time=to_utc(row.get("expiration_time")),
        validator_dids=validator_dids,
    )


def sd_meta_to_dict(record: SdMetaRecord) -> dict[str, Any]:
    """Column values for sd_meta_records. Validators live in their own table."""
    return {
        "hash": record.hash,
        "subject_id": record.subject_id,
        "issuer": record.issuer,
        "upload_time": to_utc(record.upload_time),
        "status": str(record.status),
        "status_time": to_utc(record.status_time),
        "expiration_time": to_utc(record.expiration_time),
    }


def validator_rows(record: SdMetaRecord) -> list[dict[str, str]]:
    return [
        {"hash": record.hash, "validator_did": did}
        for did in dict.fromkeys(record.validator_dids)
    ]
