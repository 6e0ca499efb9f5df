"""Unit tests for SdMetaRecord and the status state machine."""

from datetime import UTC, datetime, timedelta

import pytest

from sdcat.domain.graph.model.value import SdClaim
from sdcat.domain.selfdescription.model.aggregate import SdMetaRecord
from sdcat.domain.selfdescription.model.filter import SdFilter
from sdcat.domain.selfdescription.model.value import (
    SelfDescriptionMetadata,
    SelfDescriptionStatus,
    Validator,
    VerificationResult,
    can_transition,
    content_hash,
)
from sdcat.domain.shared.error import ConflictError, ValidationError

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _make_metadata(**overrides) -> SelfDescriptionMetadata:
    content = overrides.pop("content", b'{"credentialSubject": {}}')
    defaults = dict(
        hash=content_hash(content),
        subject_id="http://example.org/participant",
        issuer="did:web:issuer.example.org",
        upload_time=NOW,
        status_time=NOW,
        content=content,
    )
    defaults.update(overrides)
    return SelfDescriptionMetadata(**defaults)


def _make_record(**overrides) -> SdMetaRecord:
    defaults = dict(
        hash="ab" * 32,
        subject_id="http://example.org/participant",
        issuer="did:web:issuer.example.org",
        upload_time=NOW,
        status_time=NOW,
    )
    defaults.update(overrides)
    return SdMetaRecord(**defaults)


class TestCanTransition:
    @pytest.mark.parametrize(
        "target",
        [
            SelfDescriptionStatus.DEPRECATED,
            SelfDescriptionStatus.REVOKED,
            SelfDescriptionStatus.EOL,
        ],
    )
    def test_active_moves_to_any_terminal_state(self, target):
        assert can_transition(SelfDescriptionStatus.ACTIVE, target)

    def test_active_to_active_is_not_a_transition(self):
        assert not can_transition(SelfDescriptionStatus.ACTIVE, SelfDescriptionStatus.ACTIVE)

    @pytest.mark.parametrize(
        "current",
        [
            SelfDescriptionStatus.DEPRECATED,
            SelfDescriptionStatus.REVOKED,
            SelfDescriptionStatus.EOL,
        ],
    )
    def test_terminal_states_never_move(self, current):
        for target in SelfDescriptionStatus:
            assert not can_transition(current, target)


class TestSdMetaRecordTransition:
    def test_transition_sets_status_and_time(self):
        record = _make_record()
        later = NOW + timedelta(hours=1)

        record.transition_to(SelfDescriptionStatus.REVOKED, at=later)

        assert record.status == SelfDescriptionStatus.REVOKED
        assert record.status_time == later
        assert not record.is_active

    def test_transition_from_terminal_state_conflicts(self):
        record = _make_record(status=SelfDescriptionStatus.EOL)

        with pytest.raises(ConflictError):
            record.transition_to(SelfDescriptionStatus.REVOKED)
        assert record.status == SelfDescriptionStatus.EOL

    def test_target_active_is_a_validation_error(self):
        record = _make_record(status=SelfDescriptionStatus.DEPRECATED)

        with pytest.raises(ValidationError):
            record.transition_to(SelfDescriptionStatus.ACTIVE)


class TestSdMetaRecordFromMetadata:
    def test_expiration_is_earliest_validator_expiry(self):
        verification = VerificationResult(
            claims=[],
            validators=[
                Validator(did_uri="did:web:a", expiration_date=NOW + timedelta(days=30)),
                Validator(did_uri="did:web:b", expiration_date=NOW + timedelta(days=2)),
            ],
        )

        record = SdMetaRecord.from_metadata(_make_metadata(), verification)

        assert record.expiration_time == NOW + timedelta(days=2)
        assert record.status == SelfDescriptionStatus.ACTIVE

    def test_validators_adopted_when_caller_supplied_none(self):
        verification = VerificationResult(
            validators=[Validator(did_uri="did:web:a", expiration_date=NOW)]
        )

        record = SdMetaRecord.from_metadata(_make_metadata(), verification)

        assert record.validator_dids == ["did:web:a"]

    def test_caller_validators_take_precedence(self):
        verification = VerificationResult(
            validators=[Validator(did_uri="did:web:a", expiration_date=NOW)]
        )

        record = SdMetaRecord.from_metadata(
            _make_metadata(validator_dids=["did:web:caller"]), verification
        )

        assert record.validator_dids == ["did:web:caller"]

    def test_no_validators_means_no_expiration(self):
        verification = VerificationResult(
            claims=[SdClaim(subject="<http://a>", predicate="<http://b>", object="<http://c>")]
        )

        record = SdMetaRecord.from_metadata(_make_metadata(), verification)

        assert record.expiration_time is None
        assert record.validator_dids == []

    def test_bracketed_subject_is_stored_bare(self):
        record = SdMetaRecord.from_metadata(
            _make_metadata(subject_id="<http://example.org/participant>"), VerificationResult()
        )

        assert record.subject_id == "http://example.org/participant"


class TestContentHash:
    def test_is_lowercase_sha256_hex(self):
        digest = content_hash(b"abc")

        assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


class TestSdFilter:
    def test_defaults(self):
        f = SdFilter()

        assert f.offset == 0
        assert f.limit == 100

    def test_negative_limit_is_rejected(self):
        with pytest.raises(Exception):
            SdFilter(limit=-1)

    def test_bracketed_subject_is_stripped(self):
        assert SdFilter(subject_id="<http://example.org/p>").subject_id == "http://example.org/p"
