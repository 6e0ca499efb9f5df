from datetime import UTC, datetime

from sdcat.domain.graph.service.codec import normalize_subject
from sdcat.domain.selfdescription.model.value import (
    SelfDescriptionMetadata,
    SelfDescriptionStatus,
    VerificationResult,
    can_transition,
)
from sdcat.domain.shared.error import ConflictError, ValidationError
from sdcat.domain.shared.model.aggregate import Aggregate


class SdMetaRecord(Aggregate):
    """Lifecycle state of one self-description version, keyed by content hash."""

    hash: str
    subject_id: str
    issuer: str
    upload_time: datetime
    status: SelfDescriptionStatus = SelfDescriptionStatus.ACTIVE
    status_time: datetime
    expiration_time: datetime | None = None
    validator_dids: list[str] = []

    @classmethod
    def from_metadata(
        cls,
        metadata: SelfDescriptionMetadata,
        verification: VerificationResult,
    ) -> "SdMetaRecord":
        validators = list(metadata.validator_dids) or [
            v.did_uri for v in verification.validators
        ]
        return cls(
            hash=metadata.hash,
            subject_id=normalize_subject(metadata.subject_id),
            issuer=metadata.issuer,
            upload_time=metadata.upload_time,
            status=SelfDescriptionStatus.ACTIVE,
            status_time=metadata.status_time,
            expiration_time=verification.earliest_expiration(),
            validator_dids=validators,
        )

    @property
    def is_active(self) -> bool:
        return self.status == SelfDescriptionStatus.ACTIVE

    def transition_to(
        self, target: SelfDescriptionStatus, at: datetime | None = None
    ) -> None:
        if target == SelfDescriptionStatus.ACTIVE:
            raise ValidationError("A self-description cannot be re-activated", field="status")
        if not can_transition(self.status, target):
            raise ConflictError(
                f"Can not change status of self-description {self.hash} "
                f"from {self.status} to {target}: only active ones can be changed"
            )
        self.status = target
        self.status_time = at or datetime.now(UTC)
