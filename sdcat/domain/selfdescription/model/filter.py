from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, field_validator

from sdcat.domain.graph.service.codec import normalize_subject
from sdcat.domain.selfdescription.model.aggregate import SdMetaRecord
from sdcat.domain.selfdescription.model.value import SelfDescriptionStatus
from sdcat.domain.shared.model.value import ValueObject

T = TypeVar("T")

DEFAULT_LIMIT = 100


class SdFilter(ValueObject):
    """Conjunctive filter over metadata records.

    A `limit` of 0 means no limit.
    """

    upload_time_start: datetime | None = None
    upload_time_end: datetime | None = None
    status_time_start: datetime | None = None
    status_time_end: datetime | None = None
    issuer: str | None = None
    validator: str | None = None
    status: SelfDescriptionStatus | None = None
    subject_id: str | None = None
    hash: str | None = None
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=DEFAULT_LIMIT, ge=0)

    @field_validator("subject_id")
    @classmethod
    def strip_subject_brackets(cls, v: str | None) -> str | None:
        return normalize_subject(v) if v is not None else None


class PaginatedResults(BaseModel, Generic[T]):
    total_count: int
    results: list[T]


class SelfDescription(BaseModel):
    """A metadata record joined with its raw document."""

    record: SdMetaRecord
    content: bytes
