import hashlib
from datetime import datetime
from enum import StrEnum

from pydantic import Field

from sdcat.domain.graph.model.value import SdClaim
from sdcat.domain.shared.model.value import ValueObject


class SelfDescriptionStatus(StrEnum):
    ACTIVE = "active"
    DEPRECATED = "deprecated"
    REVOKED = "revoked"
    EOL = "eol"


def can_transition(current: SelfDescriptionStatus, target: SelfDescriptionStatus) -> bool:
    """Only active records move, and never back to active."""
    return current == SelfDescriptionStatus.ACTIVE and target != SelfDescriptionStatus.ACTIVE


def content_hash(content: bytes) -> str:
    """Lowercase hex SHA-256 of a raw self-description document."""
    return hashlib.sha256(content).hexdigest()


class Validator(ValueObject):
    did_uri: str
    expiration_date: datetime


class VerificationResult(ValueObject):
    """Output of the external verification step."""

    claims: list[SdClaim] = Field(default_factory=list)
    validators: list[Validator] = Field(default_factory=list)

    def earliest_expiration(self) -> datetime | None:
        if not self.validators:
            return None
        return min(v.expiration_date for v in self.validators)


class SelfDescriptionMetadata(ValueObject):
    """Everything known about an uploaded self-description before it is stored."""

    hash: str
    subject_id: str
    issuer: str
    upload_time: datetime
    status_time: datetime
    validator_dids: list[str] = Field(default_factory=list)
    content: bytes
