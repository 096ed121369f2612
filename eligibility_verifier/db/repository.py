"""
Insurance Record Repositories.

- InMemoryInsuranceRepository: demo mode and tests
- SqlAlchemyInsuranceRepository: async SQLAlchemy 2.0
Source: https://docs.sqlalchemy.org/en/20/orm/queryguide/query.html#orm-queryguide-select-for-update
Verified: 2026-10-19

``append_retry_history`` increments the retry counter, appends the history
entry and optionally moves the status as one operation; in SQL it runs
inside one transaction holding a row lock.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eligibility_verifier.core.enums import STATUS_ENCODING_VERSION, VerificationStatus
from eligibility_verifier.models.insurance import InsuranceVerificationRecord
from eligibility_verifier.schemas.verification import (
    InsuranceRecord,
    RetryHistoryEntry,
    VerificationResult,
)
from eligibility_verifier.utils.errors import RecordNotFoundError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InsuranceRepository(ABC):
    """Storage for insurance records."""

    @abstractmethod
    async def get(self, record_id: str) -> Optional[InsuranceRecord]:
        """Load a record, or None when it does not exist."""
        pass

    @abstractmethod
    async def add(self, record: InsuranceRecord) -> InsuranceRecord:
        """Insert a new record."""
        pass

    @abstractmethod
    async def save(self, record: InsuranceRecord) -> InsuranceRecord:
        """Persist status, result and card fields of an existing record."""
        pass

    @abstractmethod
    async def append_retry_history(
        self,
        record_id: str,
        new_status: Optional[VerificationStatus] = None,
        timestamp: Optional[datetime] = None,
    ) -> InsuranceRecord:
        """
        Increment the retry counter and append a history entry atomically.

        When ``new_status`` is given the status change is written in the
        same operation.
        """
        pass

    async def get_or_raise(self, record_id: str) -> InsuranceRecord:
        record = await self.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record


def _next_history_entry(
    attempts: int, result: Optional[VerificationResult], timestamp: datetime
) -> RetryHistoryEntry:
    return RetryHistoryEntry(
        attempt=attempts,
        timestamp=timestamp,
        previous_error_code=result.error.code if result and result.error else None,
    )


# =============================================================================
# In-memory
# =============================================================================


class InMemoryInsuranceRepository(InsuranceRepository):
    """Dictionary-backed repository. Stored records are copied on the way in and out."""

    def __init__(self):
        self._records: dict[str, InsuranceRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, record_id: str) -> Optional[InsuranceRecord]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    async def add(self, record: InsuranceRecord) -> InsuranceRecord:
        async with self._lock:
            if record.id in self._records:
                raise ValueError(f"Insurance record already exists: {record.id}")
            self._records[record.id] = record.model_copy(deep=True)
        return record

    async def save(self, record: InsuranceRecord) -> InsuranceRecord:
        async with self._lock:
            current = self._records.get(record.id)
            if current is None:
                raise RecordNotFoundError(record.id)
            # Retry fields only change through append_retry_history
            stored = record.model_copy(
                deep=True,
                update={
                    "retry_attempts": current.retry_attempts,
                    "retry_history": list(current.retry_history),
                    "updated_at": _now(),
                },
            )
            self._records[record.id] = stored
        return stored.model_copy(deep=True)

    async def append_retry_history(
        self,
        record_id: str,
        new_status: Optional[VerificationStatus] = None,
        timestamp: Optional[datetime] = None,
    ) -> InsuranceRecord:
        async with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise RecordNotFoundError(record_id)

            attempts = current.retry_attempts + 1
            entry = _next_history_entry(attempts, current.verification_result, timestamp or _now())
            updated = current.model_copy(
                deep=True,
                update={
                    "retry_attempts": attempts,
                    "retry_history": [*current.retry_history, entry],
                    "verification_status": (
                        new_status if new_status is not None else current.verification_status
                    ),
                    "updated_at": _now(),
                },
            )
            self._records[record_id] = updated
        return updated.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._records)


# =============================================================================
# SQLAlchemy
# =============================================================================


class SqlAlchemyInsuranceRepository(InsuranceRepository):
    """
    Repository over the ``insurance_verifications`` table.

    Usage:
        engine = create_engine("sqlite+aiosqlite:///:memory:")
        await create_tables(engine)
        repo = SqlAlchemyInsuranceRepository(create_session_maker(engine))
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get(self, record_id: str) -> Optional[InsuranceRecord]:
        async with self._session_maker() as session:
            row = await session.get(InsuranceVerificationRecord, record_id)
            return self._to_record(row) if row else None

    async def add(self, record: InsuranceRecord) -> InsuranceRecord:
        async with self._session_maker() as session:
            async with session.begin():
                row = InsuranceVerificationRecord(id=record.id)
                self._apply(row, record)
                row.retry_attempts = record.retry_attempts
                row.retry_history = [e.model_dump(mode="json") for e in record.retry_history]
                session.add(row)
        return record

    async def save(self, record: InsuranceRecord) -> InsuranceRecord:
        async with self._session_maker() as session:
            async with session.begin():
                row = await self._locked_row(session, record.id)
                self._apply(row, record)
                await session.flush()
                saved = self._to_record(row)
        return saved

    async def append_retry_history(
        self,
        record_id: str,
        new_status: Optional[VerificationStatus] = None,
        timestamp: Optional[datetime] = None,
    ) -> InsuranceRecord:
        async with self._session_maker() as session:
            async with session.begin():
                row = await self._locked_row(session, record_id)
                current = self._to_record(row)

                attempts = current.retry_attempts + 1
                entry = _next_history_entry(
                    attempts, current.verification_result, timestamp or _now()
                )
                row.retry_attempts = attempts
                if new_status is not None:
                    row.verification_status = new_status.value
                    row.status_encoding_version = STATUS_ENCODING_VERSION
                row.updated_at = _now()
                # Reassign so the JSON column is flagged dirty
                row.retry_history = [*(row.retry_history or []), entry.model_dump(mode="json")]
                await session.flush()
                updated = self._to_record(row)

        logger.debug(f"Recorded retry attempt {attempts} for insurance {record_id}")
        return updated

    async def _locked_row(
        self, session: AsyncSession, record_id: str
    ) -> InsuranceVerificationRecord:
        stmt = (
            select(InsuranceVerificationRecord)
            .where(InsuranceVerificationRecord.id == record_id)
            .with_for_update()
        )
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            raise RecordNotFoundError(record_id)
        return row

    @staticmethod
    def _apply(row: InsuranceVerificationRecord, record: InsuranceRecord) -> None:
        """Copy card fields, status and result onto a row. Retry fields are left alone."""
        row.onboarding_session_id = record.onboarding_session_id
        row.payer_name = record.payer_name
        row.payer_id = record.payer_id
        row.member_id = record.member_id
        row.group_number = record.group_number
        row.subscriber_name = record.subscriber_name
        row.subscriber_dob = record.subscriber_dob
        row.verification_status = record.verification_status.value
        row.status_encoding_version = STATUS_ENCODING_VERSION
        row.verification_result = (
            record.verification_result.to_storage() if record.verification_result else None
        )
        row.updated_at = _now()

    @staticmethod
    def _to_record(row: InsuranceVerificationRecord) -> InsuranceRecord:
        if row.status_encoding_version != STATUS_ENCODING_VERSION:
            logger.warning(
                f"Insurance {row.id} status written with encoding version "
                f"{row.status_encoding_version}, expected {STATUS_ENCODING_VERSION}"
            )

        record = InsuranceRecord(
            id=row.id,
            onboarding_session_id=row.onboarding_session_id,
            payer_name=row.payer_name,
            payer_id=row.payer_id,
            member_id=row.member_id,
            group_number=row.group_number,
            subscriber_name=row.subscriber_name,
            subscriber_dob=row.subscriber_dob,
            verification_status=VerificationStatus.parse(row.verification_status),
            verification_result=(
                VerificationResult.model_validate(row.verification_result)
                if row.verification_result
                else None
            ),
            retry_history=[
                RetryHistoryEntry.model_validate(entry) for entry in (row.retry_history or [])
            ],
            retry_attempts=row.retry_attempts or 0,
        )
        if row.created_at is not None:
            record.created_at = row.created_at
        if row.updated_at is not None:
            record.updated_at = row.updated_at
        return record
