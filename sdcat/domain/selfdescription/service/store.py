import logging
from dataclasses import field
from datetime import UTC, datetime

import logfire

from sdcat.domain.graph.port.graph_store import GraphStore
from sdcat.domain.graph.service.codec import validate_claims
from sdcat.domain.selfdescription.model.aggregate import SdMetaRecord
from sdcat.domain.selfdescription.model.filter import (
    PaginatedResults,
    SdFilter,
    SelfDescription,
)
from sdcat.domain.selfdescription.model.value import (
    SelfDescriptionMetadata,
    SelfDescriptionStatus,
    VerificationResult,
)
from sdcat.domain.selfdescription.port.storage import BlobStoragePort
from sdcat.domain.shared.error import (
    ConflictError,
    LockTimeoutError,
    NotFoundError,
    StorageInconsistencyError,
    ValidationError,
)
from sdcat.domain.shared.lock import KeyedLock
from sdcat.domain.shared.service import Service
from sdcat.domain.shared.uow import UnitOfWorkFactory

logger = logging.getLogger(__name__)


class SelfDescriptionStore(Service):
    """Keeps metadata, raw documents and graph claims in step.

    Writers for the same subject are serialised by a keyed lock held for the
    whole metadata transaction. Row locks taken by the repository cover
    writers in other processes.
    """

    uow_factory: UnitOfWorkFactory
    blob_storage: BlobStoragePort
    graph_store: GraphStore
    locks: KeyedLock = field(default_factory=KeyedLock)
    sweep_batch_size: int = 100

    async def store_self_description(
        self,
        metadata: SelfDescriptionMetadata,
        verification_result: VerificationResult | None,
    ) -> SdMetaRecord:
        if verification_result is None:
            raise ValidationError("verification result must not be null", field="verification_result")

        with logfire.span("StoreSelfDescription", hash=metadata.hash, subject_id=metadata.subject_id):
            validate_claims(verification_result.claims)
            record = SdMetaRecord.from_metadata(metadata, verification_result)

            async with self.locks.hold(record.subject_id):
                async with self.uow_factory() as uow:
                    if await uow.records.get(record.hash) is not None:
                        raise ConflictError(
                            f"self-description with hash {record.hash} already exists"
                        )

                    existing = await uow.records.find_active_for_update(record.subject_id)
                    if existing is not None:
                        existing.transition_to(SelfDescriptionStatus.DEPRECATED)
                        await uow.records.save(existing)
                    await uow.records.add(record)

                    if existing is not None:
                        await self.graph_store.delete_claims(existing.subject_id)
                        logger.debug(
                            "Deprecated %s in favour of %s for subject %s",
                            existing.hash,
                            record.hash,
                            record.subject_id,
                        )

                    await self.graph_store.add_claims(
                        verification_result.claims, record.subject_id
                    )
                    await uow.commit()

                try:
                    await self.blob_storage.store_file(record.hash, metadata.content)
                except Exception:
                    logger.error(
                        "Metadata for %s committed but its document was not stored",
                        record.hash,
                        exc_info=True,
                    )
                    raise

            logfire.info("Self-description stored", hash=record.hash)
            return record

    async def change_life_cycle_status(
        self, hash: str, target_status: SelfDescriptionStatus
    ) -> SdMetaRecord:
        with logfire.span("ChangeLifeCycleStatus", hash=hash, target=str(target_status)):
            if target_status == SelfDescriptionStatus.ACTIVE:
                raise ValidationError("A self-description cannot be re-activated", field="status")

            subject_id = (await self._get_record(hash)).subject_id
            async with self.locks.hold(subject_id):
                async with self.uow_factory() as uow:
                    record = await uow.records.get_for_update(hash)
                    if record is None:
                        raise NotFoundError(f"There is no self-description with hash {hash}")

                    record.transition_to(target_status)
                    await uow.records.save(record)
                    await self.graph_store.delete_claims(record.subject_id)
                    await uow.commit()

            logger.debug("Self-description %s is now %s", hash, target_status)
            return record

    async def delete_self_description(self, hash: str) -> None:
        with logfire.span("DeleteSelfDescription", hash=hash):
            subject_id = (await self._get_record(hash)).subject_id
            async with self.locks.hold(subject_id):
                async with self.uow_factory() as uow:
                    record = await uow.records.get_for_update(hash)
                    if record is None:
                        raise NotFoundError(f"There is no self-description with hash {hash}")
                    await uow.records.delete(hash)
                    await uow.commit()

                try:
                    await self.blob_storage.delete_file(hash)
                except NotFoundError:
                    logger.info("Document for %s was already gone", hash)
                except Exception:
                    logger.error("Failed to delete document for %s", hash, exc_info=True)

                if record.is_active:
                    await self.graph_store.delete_claims(record.subject_id)

    async def invalidate_self_descriptions(self) -> int:
        """Move every expired active record to EOL.

        Returns the number of records examined, including those that a
        concurrent writer changed or removed first.
        """
        with logfire.span("InvalidateSelfDescriptions"):
            now = datetime.now(UTC)
            examined = 0
            cursor: str | None = None

            while True:
                async with self.uow_factory() as uow:
                    hashes = await uow.records.expired_active_hashes(
                        now, after=cursor, limit=self.sweep_batch_size
                    )

                for hash in hashes:
                    examined += 1
                    try:
                        await self.change_life_cycle_status(hash, SelfDescriptionStatus.EOL)
                    except (ConflictError, NotFoundError) as e:
                        logger.info("Skipping expiry of %s: %s", hash, e.message)
                    except LockTimeoutError:
                        logger.warning("Skipping expiry of %s: subject is busy", hash)

                if len(hashes) < self.sweep_batch_size:
                    break
                cursor = hashes[-1]

            logger.info("Expiration sweep examined %d self-descriptions", examined)
            return examined

    async def get_by_hash(self, hash: str) -> SelfDescription:
        record = await self._get_record(hash)
        try:
            content = await self.blob_storage.read_file(hash)
        except NotFoundError:
            logger.error("Metadata for %s exists but its document is missing", hash)
            raise StorageInconsistencyError(
                f"Document for self-description {hash} is missing from the blob store"
            ) from None
        return SelfDescription(record=record, content=content)

    async def get_sd_file_by_hash(self, hash: str) -> bytes | None:
        try:
            return await self.blob_storage.read_file(hash)
        except NotFoundError:
            return None

    async def get_by_filter(self, filter: SdFilter) -> PaginatedResults[SdMetaRecord]:
        async with self.uow_factory() as uow:
            total = await uow.records.count(filter)
            results = await uow.records.find(filter)
        return PaginatedResults[SdMetaRecord](total_count=total, results=results)

    async def _get_record(self, hash: str) -> SdMetaRecord:
        async with self.uow_factory() as uow:
            record = await uow.records.get(hash)
        if record is None:
            raise NotFoundError(f"There is no self-description with hash {hash}")
        return record
