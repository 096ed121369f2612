"""
Insurance Verification Status State Machine.

Provides:
- Valid status transitions
- Transition validation
- Idempotent no-op detection

State Diagram:
    PENDING -> IN_PROGRESS (start OCR | start verification) | MANUAL_ENTRY
    IN_PROGRESS -> OCR_COMPLETE | OCR_NEEDS_REVIEW
    OCR_COMPLETE | OCR_NEEDS_REVIEW -> MANUAL_ENTRY
    MANUAL_ENTRY -> MANUAL_ENTRY_COMPLETE
    OCR_COMPLETE | MANUAL_ENTRY_COMPLETE -> IN_PROGRESS (start verification)
    IN_PROGRESS -> VERIFIED | FAILED | MANUAL_REVIEW
    FAILED | MANUAL_REVIEW -> IN_PROGRESS (retry) | MANUAL_ENTRY
    any except VERIFIED, SELF_PAY -> SELF_PAY
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from eligibility_verifier.core.enums import (
    ErrorSeverity,
    VerificationResultStatus,
    VerificationStatus,
)
from eligibility_verifier.schemas.verification import InsuranceRecord
from eligibility_verifier.services.edi.error_classifier import error_severity

logger = logging.getLogger(__name__)


class TransitionEvent(str, Enum):
    """Events that trigger state transitions."""

    START_OCR = "start_ocr"
    OCR_COMPLETED = "ocr_completed"
    OCR_NEEDS_REVIEW = "ocr_needs_review"
    START_MANUAL_ENTRY = "start_manual_entry"
    COMPLETE_MANUAL_ENTRY = "complete_manual_entry"
    START_VERIFICATION = "start_verification"
    RETRY_VERIFICATION = "retry_verification"
    VERIFICATION_SUCCEEDED = "verification_succeeded"
    VERIFICATION_FAILED = "verification_failed"
    VERIFICATION_NEEDS_REVIEW = "verification_needs_review"
    SELECT_SELF_PAY = "select_self_pay"


@dataclass
class Transition:
    """Represents a valid state transition."""

    from_status: VerificationStatus
    to_status: VerificationStatus
    event: TransitionEvent
    auto_transition: bool = False  # Triggered by the system, not the family


@dataclass
class TransitionContext:
    """Context for a transition attempt."""

    insurance_id: str
    current_status: VerificationStatus
    target_status: VerificationStatus
    event: TransitionEvent
    reason: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class TransitionResult:
    """Result of a transition attempt."""

    success: bool
    from_status: VerificationStatus
    to_status: Optional[VerificationStatus] = None
    error: Optional[str] = None
    transition: Optional[Transition] = None
    noop: bool = False  # Already in the target status


# =============================================================================
# Valid Transitions Definition
# =============================================================================


S = VerificationStatus
E = TransitionEvent

VALID_TRANSITIONS: list[Transition] = [
    # OCR capture
    Transition(S.PENDING, S.IN_PROGRESS, E.START_OCR),
    Transition(S.IN_PROGRESS, S.OCR_COMPLETE, E.OCR_COMPLETED, auto_transition=True),
    Transition(S.IN_PROGRESS, S.OCR_NEEDS_REVIEW, E.OCR_NEEDS_REVIEW, auto_transition=True),

    # Manual entry
    Transition(S.PENDING, S.MANUAL_ENTRY, E.START_MANUAL_ENTRY),
    Transition(S.OCR_COMPLETE, S.MANUAL_ENTRY, E.START_MANUAL_ENTRY),
    Transition(S.OCR_NEEDS_REVIEW, S.MANUAL_ENTRY, E.START_MANUAL_ENTRY),
    Transition(S.FAILED, S.MANUAL_ENTRY, E.START_MANUAL_ENTRY),
    Transition(S.MANUAL_REVIEW, S.MANUAL_ENTRY, E.START_MANUAL_ENTRY),
    Transition(S.MANUAL_ENTRY, S.MANUAL_ENTRY_COMPLETE, E.COMPLETE_MANUAL_ENTRY),

    # Eligibility check
    Transition(S.PENDING, S.IN_PROGRESS, E.START_VERIFICATION),
    Transition(S.OCR_COMPLETE, S.IN_PROGRESS, E.START_VERIFICATION),
    Transition(S.MANUAL_ENTRY_COMPLETE, S.IN_PROGRESS, E.START_VERIFICATION),
    Transition(S.FAILED, S.IN_PROGRESS, E.RETRY_VERIFICATION),
    Transition(S.MANUAL_REVIEW, S.IN_PROGRESS, E.RETRY_VERIFICATION),

    # Outcomes
    Transition(S.IN_PROGRESS, S.VERIFIED, E.VERIFICATION_SUCCEEDED, auto_transition=True),
    Transition(S.IN_PROGRESS, S.FAILED, E.VERIFICATION_FAILED, auto_transition=True),
    Transition(S.IN_PROGRESS, S.MANUAL_REVIEW, E.VERIFICATION_NEEDS_REVIEW, auto_transition=True),
]

# Self-pay is reachable from every status except the two final ones
VALID_TRANSITIONS.extend(
    Transition(status, S.SELF_PAY, E.SELECT_SELF_PAY)
    for status in VerificationStatus
    if status not in (S.VERIFIED, S.SELF_PAY)
)

# Adapter outcome -> (event, target status)
RESULT_TRANSITIONS: dict[VerificationResultStatus, tuple[TransitionEvent, VerificationStatus]] = {
    VerificationResultStatus.VERIFIED: (E.VERIFICATION_SUCCEEDED, S.VERIFIED),
    VerificationResultStatus.FAILED: (E.VERIFICATION_FAILED, S.FAILED),
    VerificationResultStatus.MANUAL_REVIEW: (E.VERIFICATION_NEEDS_REVIEW, S.MANUAL_REVIEW),
}


# =============================================================================
# State Machine
# =============================================================================


class VerificationStateMachine:
    """
    State machine for insurance verification status transitions.

    Transitions are keyed by (current status, event). Requesting the status
    a record already has succeeds as a no-op.
    """

    def __init__(self):
        """Initialize state machine with transition map."""
        self._transitions: dict[tuple[VerificationStatus, TransitionEvent], Transition] = {}
        self._from_status_map: dict[VerificationStatus, list[Transition]] = {}

        self._build_transition_maps()

    def _build_transition_maps(self) -> None:
        """Build lookup maps for transitions."""
        for transition in VALID_TRANSITIONS:
            key = (transition.from_status, transition.event)
            self._transitions[key] = transition
            self._from_status_map.setdefault(transition.from_status, []).append(transition)

    def get_valid_transitions(self, status: VerificationStatus) -> list[Transition]:
        """Get all valid transitions from a given status."""
        return self._from_status_map.get(status, [])

    def get_valid_events(self, status: VerificationStatus) -> list[TransitionEvent]:
        """Get all valid events for a given status."""
        return [t.event for t in self.get_valid_transitions(status)]

    def get_next_statuses(self, status: VerificationStatus) -> list[VerificationStatus]:
        """Get all possible next statuses from current status."""
        return [t.to_status for t in self.get_valid_transitions(status)]

    def can_transition(
        self,
        from_status: VerificationStatus,
        to_status: VerificationStatus,
    ) -> bool:
        """Check if transition from one status to another is valid."""
        return any(t.to_status == to_status for t in self.get_valid_transitions(from_status))

    def get_transition(
        self,
        from_status: VerificationStatus,
        event: TransitionEvent,
    ) -> Optional[Transition]:
        """Get transition for a status and event combination."""
        return self._transitions.get((from_status, event))

    def validate_transition(self, context: TransitionContext) -> TransitionResult:
        """
        Validate a transition attempt.

        Args:
            context: Transition context with all details

        Returns:
            TransitionResult indicating success/failure
        """
        if context.current_status == context.target_status:
            return TransitionResult(
                success=True,
                from_status=context.current_status,
                to_status=context.target_status,
                noop=True,
            )

        transition = self.get_transition(context.current_status, context.event)

        if not transition:
            return TransitionResult(
                success=False,
                from_status=context.current_status,
                error=f"Invalid transition: {context.current_status.value} + {context.event.value}",
            )

        if context.target_status != transition.to_status:
            return TransitionResult(
                success=False,
                from_status=context.current_status,
                error=(
                    f"Target status mismatch. Expected {transition.to_status.value}, "
                    f"got {context.target_status.value}"
                ),
            )

        return TransitionResult(
            success=True,
            from_status=context.current_status,
            to_status=transition.to_status,
            transition=transition,
        )

    def execute_transition(self, context: TransitionContext) -> TransitionResult:
        """Validate a transition and log its outcome."""
        result = self.validate_transition(context)
        if not result.success:
            logger.warning(
                f"Transition failed for insurance {context.insurance_id}: {result.error}"
            )
            return result

        if result.noop:
            logger.debug(
                f"Insurance {context.insurance_id} already {context.current_status.value}"
            )
            return result

        logger.info(
            f"Insurance {context.insurance_id} transitioned: "
            f"{context.current_status.value} -> {result.to_status.value} "
            f"(event: {context.event.value})"
        )
        return result


# =============================================================================
# Status Helpers
# =============================================================================


def is_terminal_status(status: VerificationStatus) -> bool:
    """Check if status is final for the verification workflow."""
    return status in (VerificationStatus.VERIFIED, VerificationStatus.SELF_PAY)


def is_processing_status(status: VerificationStatus) -> bool:
    """Check if OCR or an eligibility check is running."""
    return status == VerificationStatus.IN_PROGRESS


def is_verifiable_status(status: VerificationStatus) -> bool:
    """Check if a first verification attempt may start from this status."""
    return status in (
        VerificationStatus.PENDING,
        VerificationStatus.OCR_COMPLETE,
        VerificationStatus.MANUAL_ENTRY_COMPLETE,
    )


def is_retryable_status(status: VerificationStatus) -> bool:
    """Check if a retry may start from this status."""
    return status in (VerificationStatus.FAILED, VerificationStatus.MANUAL_REVIEW)


def retry_allowed(record: InsuranceRecord, max_attempts: int) -> bool:
    """
    Check whether a record still qualifies for a caller-initiated retry.

    Final statuses, exhausted attempts, non-retryable errors and high
    severity errors all rule a retry out.
    """
    if is_terminal_status(record.verification_status):
        return False
    if record.retry_attempts >= max_attempts:
        return False

    error = record.last_error
    if error is not None and not error.retryable:
        return False
    return error_severity(error, record.verification_status) != ErrorSeverity.HIGH


# =============================================================================
# Singleton Instance
# =============================================================================


_state_machine: Optional[VerificationStateMachine] = None


def get_verification_state_machine() -> VerificationStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = VerificationStateMachine()
    return _state_machine
