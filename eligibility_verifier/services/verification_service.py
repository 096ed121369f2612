"""
Insurance Verification Service.

Provides:
- Eligibility verification with a result cache window
- Bounded caller-initiated retries with history
- OCR, manual entry and self-pay status transitions
- Audit events for every status change

Status changes go through the verification state machine; results come
from the payer adapter picked by the adapter factory.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Type
from uuid import uuid4

from eligibility_verifier.core.config import EligibilitySettings, get_settings
from eligibility_verifier.core.enums import (
    AuditAction,
    ErrorCategory,
    VerificationResultStatus,
    VerificationStatus,
)
from eligibility_verifier.db.repository import InsuranceRepository
from eligibility_verifier.schemas.verification import (
    InsuranceRecord,
    ManualEntry,
    VerificationError,
    VerificationResult,
)
from eligibility_verifier.services.audit import AuditEvent, AuditSink, LoggingAuditSink
from eligibility_verifier.services.eligibility.adapter_factory import AdapterFactory
from eligibility_verifier.services.eligibility.transport import Transport, build_transport
from eligibility_verifier.services.verification_state_machine import (
    RESULT_TRANSITIONS,
    TransitionContext,
    TransitionEvent,
    TransitionResult,
    VerificationStateMachine,
    get_verification_state_machine,
    is_retryable_status,
    is_verifiable_status,
    retry_allowed,
)
from eligibility_verifier.utils.errors import (
    InvalidTransitionError,
    RetryNotAllowedError,
    VerificationNotAllowedError,
)

logger = logging.getLogger(__name__)


OUTCOME_ACTIONS: dict[VerificationResultStatus, AuditAction] = {
    VerificationResultStatus.VERIFIED: AuditAction.VERIFICATION_COMPLETED,
    VerificationResultStatus.FAILED: AuditAction.VERIFICATION_FAILED,
    VerificationResultStatus.MANUAL_REVIEW: AuditAction.VERIFICATION_MANUAL_REVIEW,
}

# Statuses whose stored result came from a finished eligibility check
OUTCOME_STATUSES = frozenset(
    {
        VerificationStatus.VERIFIED,
        VerificationStatus.FAILED,
        VerificationStatus.MANUAL_REVIEW,
    }
)


@dataclass
class VerificationOutcome:
    """What ``request_verification`` hands back to the caller."""

    result: VerificationResult
    cached: bool
    record: InsuranceRecord


class VerificationService:
    """
    Service for insurance verification workflow.

    Usage:
        service = VerificationService(InMemoryInsuranceRepository(), InMemoryAuditSink())
        outcome = await service.request_verification(record_id)
        if outcome.result.error and outcome.result.error.retryable:
            await service.request_verification(record_id, retry=True)
    """

    def __init__(
        self,
        repository: InsuranceRepository,
        audit_sink: Optional[AuditSink] = None,
        settings: Optional[EligibilitySettings] = None,
        adapter_factory: Type[AdapterFactory] = AdapterFactory,
        transport: Optional[Transport] = None,
        state_machine: Optional[VerificationStateMachine] = None,
    ):
        """
        Initialize verification service.

        Args:
            repository: Insurance record storage
            audit_sink: Destination for audit events (logged when omitted)
            settings: Eligibility settings
            adapter_factory: Picks the adapter for a payer
            transport: Transport shared by every adapter (built from settings when omitted)
            state_machine: Status state machine
        """
        self.repository = repository
        self.audit_sink = audit_sink or LoggingAuditSink()
        self.settings = settings or get_settings()
        self.adapter_factory = adapter_factory
        self._owns_transport = transport is None
        self.transport = transport or build_transport(self.settings)
        self.state_machine = state_machine or get_verification_state_machine()

    async def aclose(self) -> None:
        """Close the transport if this service created it."""
        if self._owns_transport:
            await self.transport.aclose()

    # =========================================================================
    # Eligibility Verification
    # =========================================================================

    async def request_verification(
        self, record_id: str, retry: bool = False
    ) -> VerificationOutcome:
        """
        Verify eligibility for a record.

        A fresh result from a finished check is returned as-is unless a
        retry is requested. Retries count against the retry limit.

        Raises:
            RecordNotFoundError: Record does not exist
            VerificationNotAllowedError: Record is not ready for a first attempt
            RetryNotAllowedError: Record cannot be retried
            InvalidTransitionError: Status changed underneath the request
        """
        record = await self.repository.get_or_raise(record_id)
        status = record.verification_status

        if not retry and status in OUTCOME_STATUSES and self.cached_result_valid(record):
            logger.info(f"Returning cached verification result for insurance {record_id}")
            await self._audit(
                record,
                AuditAction.CACHE_HIT,
                details={"result_status": record.verification_result.status.value},
            )
            return VerificationOutcome(
                result=record.verification_result, cached=True, record=record
            )

        if retry:
            if not is_retryable_status(status):
                raise RetryNotAllowedError(
                    f"Cannot retry verification from status {status.value}"
                )
            if not self.can_retry(record):
                raise RetryNotAllowedError(
                    f"Insurance {record_id} cannot be retried "
                    f"({record.retry_attempts} of {self.settings.MAX_RETRY_ATTEMPTS} attempts used)"
                )
            event = TransitionEvent.RETRY_VERIFICATION
            self._check_transition(record, VerificationStatus.IN_PROGRESS, event)
            record = await self.increment_retry_attempts(
                record_id, new_status=VerificationStatus.IN_PROGRESS
            )
            await self._audit_status_change(record, status, event)
        else:
            if not is_verifiable_status(status):
                raise VerificationNotAllowedError(
                    f"Cannot start verification from status {status.value}"
                )
            record = await self._transition(
                record, VerificationStatus.IN_PROGRESS, TransitionEvent.START_VERIFICATION
            )

        await self._audit(
            record,
            AuditAction.VERIFICATION_INITIATED,
            details={"payer_name": record.payer_name, "retry": retry},
        )

        try:
            adapter = self.adapter_factory.adapter_for(
                record.payer_name, transport=self.transport, settings=self.settings
            )
            result = await adapter.verify_eligibility(record.snapshot())
        except asyncio.CancelledError:
            logger.warning(f"Verification for insurance {record_id} was cancelled")
            # Shielded; a second cancel must not leave the record in_progress
            await asyncio.shield(self._finish(record, _processing_error_result()))
            raise
        except Exception as e:
            logger.exception(f"Adapter failed for insurance {record_id}: {type(e).__name__}")
            result = _processing_error_result()

        record = await self._finish(record, result)
        logger.info(
            f"Verification for insurance {record_id} finished: {result.status.value}"
            + (f" ({result.error.code})" if result.error else "")
        )
        return VerificationOutcome(result=result, cached=False, record=record)

    def can_retry(self, record: InsuranceRecord) -> bool:
        """Check whether a caller-initiated retry is allowed."""
        return retry_allowed(record, self.settings.MAX_RETRY_ATTEMPTS)

    def cached_result_valid(
        self, record: InsuranceRecord, now: Optional[datetime] = None
    ) -> bool:
        """Check whether the stored result is younger than the cache TTL."""
        result = record.verification_result
        if result is None or result.verified_at is None:
            return False

        verified_at = result.verified_at
        if verified_at.tzinfo is None:
            verified_at = verified_at.replace(tzinfo=timezone.utc)
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        return now - verified_at < timedelta(hours=self.settings.CACHE_TTL_HOURS)

    async def increment_retry_attempts(
        self, record_id: str, new_status: Optional[VerificationStatus] = None
    ) -> InsuranceRecord:
        """
        Bump the retry counter and record the attempt in one repository call.

        ``new_status`` is committed together with the counter and history.
        """
        record = await self.repository.append_retry_history(record_id, new_status=new_status)
        logger.info(
            f"Insurance {record_id} retry attempt {record.retry_attempts} "
            f"of {self.settings.MAX_RETRY_ATTEMPTS}"
        )
        return record

    # =========================================================================
    # Card Capture and Manual Entry
    # =========================================================================

    async def start_ocr(self, record_id: str) -> InsuranceRecord:
        record = await self.repository.get_or_raise(record_id)
        return await self._transition(
            record, VerificationStatus.IN_PROGRESS, TransitionEvent.START_OCR
        )

    async def complete_ocr(self, record_id: str, needs_review: bool = False) -> InsuranceRecord:
        """Record the OCR outcome; low-confidence extractions need review."""
        record = await self.repository.get_or_raise(record_id)
        if needs_review:
            return await self._transition(
                record, VerificationStatus.OCR_NEEDS_REVIEW, TransitionEvent.OCR_NEEDS_REVIEW
            )
        return await self._transition(
            record, VerificationStatus.OCR_COMPLETE, TransitionEvent.OCR_COMPLETED
        )

    async def start_manual_entry(self, record_id: str) -> InsuranceRecord:
        record = await self.repository.get_or_raise(record_id)
        return await self._transition(
            record, VerificationStatus.MANUAL_ENTRY, TransitionEvent.START_MANUAL_ENTRY
        )

    async def complete_manual_entry(
        self, record_id: str, entry: Optional[ManualEntry] = None
    ) -> InsuranceRecord:
        """
        Apply manually entered fields and finish manual entry.

        The record only moves to ``manual_entry_complete`` once it has a
        member ID and a payer name; partial entries are saved and the
        record stays in ``manual_entry``.
        """
        record = await self.repository.get_or_raise(record_id)
        if record.verification_status not in (
            VerificationStatus.MANUAL_ENTRY,
            VerificationStatus.MANUAL_ENTRY_COMPLETE,
        ):
            raise InvalidTransitionError(
                record.verification_status.value,
                VerificationStatus.MANUAL_ENTRY_COMPLETE.value,
                TransitionEvent.COMPLETE_MANUAL_ENTRY.value,
            )

        provided = entry.provided_fields() if entry else {}
        for field_name, value in provided.items():
            setattr(record, field_name, value)

        if provided:
            await self._audit(
                record,
                AuditAction.MANUAL_ENTRY_SUBMITTED,
                details={"fields": sorted(provided)},
            )

        if not (record.member_id and record.payer_name):
            logger.info(f"Insurance {record_id} manual entry saved, required fields missing")
            return await self.repository.save(record)

        return await self._transition(
            record,
            VerificationStatus.MANUAL_ENTRY_COMPLETE,
            TransitionEvent.COMPLETE_MANUAL_ENTRY,
        )

    async def select_self_pay(self, record_id: str) -> InsuranceRecord:
        record = await self.repository.get_or_raise(record_id)
        record = await self._transition(
            record, VerificationStatus.SELF_PAY, TransitionEvent.SELECT_SELF_PAY
        )
        await self._audit(record, AuditAction.SELF_PAY_SELECTED)
        return record

    # =========================================================================
    # Transitions and Audit
    # =========================================================================

    def _check_transition(
        self,
        record: InsuranceRecord,
        target: VerificationStatus,
        event: TransitionEvent,
        details: Optional[dict[str, Any]] = None,
    ) -> TransitionResult:
        context = TransitionContext(
            insurance_id=record.id,
            current_status=record.verification_status,
            target_status=target,
            event=event,
            metadata=details or {},
        )
        result = self.state_machine.execute_transition(context)
        if not result.success:
            raise InvalidTransitionError(
                record.verification_status.value, target.value, event.value
            )
        return result

    async def _transition(
        self,
        record: InsuranceRecord,
        target: VerificationStatus,
        event: TransitionEvent,
        details: Optional[dict[str, Any]] = None,
    ) -> InsuranceRecord:
        """Move a record to ``target``, persist it and audit the change."""
        transition = self._check_transition(record, target, event, details)
        previous = record.verification_status

        if transition.noop:
            return await self.repository.save(record)

        record.verification_status = target
        saved = await self.repository.save(record)
        await self._audit_status_change(saved, previous, event, details)
        return saved

    async def _finish(
        self, record: InsuranceRecord, result: VerificationResult
    ) -> InsuranceRecord:
        """Store an adapter result and move the record to the matching status."""
        outcome_event, target = RESULT_TRANSITIONS[result.status]
        record.verification_result = result
        details = _result_details(result)
        record = await self._transition(record, target, outcome_event, details=details)
        await self._audit(record, OUTCOME_ACTIONS[result.status], details=details)
        return record

    async def _audit_status_change(
        self,
        record: InsuranceRecord,
        previous: VerificationStatus,
        event: TransitionEvent,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        await self._audit(
            record,
            AuditAction.STATUS_CHANGED,
            previous_status=previous,
            new_status=record.verification_status,
            details={"event": event.value, **(details or {})},
        )

    async def _audit(
        self,
        record: InsuranceRecord,
        action: AuditAction,
        previous_status: Optional[VerificationStatus] = None,
        new_status: Optional[VerificationStatus] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        event = AuditEvent(
            insurance_id=record.id,
            onboarding_session_id=record.onboarding_session_id,
            action=action,
            previous_status=previous_status,
            new_status=new_status if new_status is not None else record.verification_status,
            details=details or {},
        )
        try:
            await self.audit_sink.record(event)
        except Exception as e:
            # Audit failures never fail the workflow
            logger.error(f"Failed to record audit event {action.value} for {record.id}: {e}")


def _result_details(result: VerificationResult) -> dict[str, Any]:
    details: dict[str, Any] = {
        "result_status": result.status.value,
        "eligible": result.eligible,
        "response_id": result.response_id,
    }
    if result.error is not None:
        details["error_code"] = result.error.code
        details["error_category"] = result.error.category.value
        details["retryable"] = result.error.retryable
    return details


def _processing_error_result() -> VerificationResult:
    """Result stored when the adapter raised or the caller went away."""
    return VerificationResult.build(
        eligible=False,
        error=VerificationError(
            code="VERIFICATION_ERROR",
            category=ErrorCategory.UNKNOWN,
            message="Verification processing error",
            retryable=True,
        ),
        verified_at=datetime.now(timezone.utc),
        response_id=f"eligibility-{uuid4()}",
    )
