"""
Core Enumerations for Insurance Eligibility Verification.

Statuses, outcome codes and the error taxonomy shared by the codec,
the adapters and the verification state machine.
"""

from enum import Enum

from eligibility_verifier.utils.errors import UnknownVerificationStatusError


# Bump when the persisted string values of VerificationStatus change.
STATUS_ENCODING_VERSION = 1


# =============================================================================
# Verification Lifecycle Enums
# =============================================================================


class VerificationStatus(str, Enum):
    """Insurance record verification status.

    State Machine Transitions:
    PENDING -> IN_PROGRESS | MANUAL_ENTRY
    IN_PROGRESS -> OCR_COMPLETE | OCR_NEEDS_REVIEW
    OCR_COMPLETE | OCR_NEEDS_REVIEW -> MANUAL_ENTRY
    MANUAL_ENTRY -> MANUAL_ENTRY_COMPLETE
    OCR_COMPLETE | MANUAL_ENTRY_COMPLETE -> IN_PROGRESS
    IN_PROGRESS -> VERIFIED | FAILED | MANUAL_REVIEW
    FAILED | MANUAL_REVIEW -> IN_PROGRESS (retry) | MANUAL_ENTRY
    * (except VERIFIED, SELF_PAY) -> SELF_PAY
    """

    PENDING = "pending"  # Card uploaded, awaiting OCR
    IN_PROGRESS = "in_progress"  # OCR or eligibility check running
    OCR_COMPLETE = "ocr_complete"
    OCR_NEEDS_REVIEW = "ocr_needs_review"
    MANUAL_ENTRY = "manual_entry"
    MANUAL_ENTRY_COMPLETE = "manual_entry_complete"
    VERIFIED = "verified"
    FAILED = "failed"
    MANUAL_REVIEW = "manual_review"
    SELF_PAY = "self_pay"

    @classmethod
    def parse(cls, value: str) -> "VerificationStatus":
        """Decode a persisted status string, rejecting unknown values."""
        try:
            return cls(value)
        except ValueError:
            raise UnknownVerificationStatusError(value) from None


class VerificationResultStatus(str, Enum):
    """Outcome of a single verification attempt."""

    VERIFIED = "VERIFIED"
    FAILED = "FAILED"
    MANUAL_REVIEW = "MANUAL_REVIEW"


# =============================================================================
# Error Taxonomy Enums
# =============================================================================


class ErrorCategory(str, Enum):
    """Stable categories for verification failures."""

    INVALID_MEMBER_ID = "invalid_member_id"
    COVERAGE_NOT_ACTIVE = "coverage_not_active"
    SERVICE_NOT_COVERED = "service_not_covered"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    """Retry-facing severity derived from an error code."""

    LOW = "low"  # Transient, safe to retry
    MEDIUM = "medium"
    HIGH = "high"  # Coverage genuinely unavailable, never retry


# Categories that are always retryable regardless of payer code
ALWAYS_RETRYABLE_CATEGORIES = frozenset(
    {ErrorCategory.NETWORK_ERROR, ErrorCategory.TIMEOUT}
)


# =============================================================================
# Audit Enums
# =============================================================================


class AuditAction(str, Enum):
    """Audit log actions emitted by the verification workflow."""

    STATUS_CHANGED = "VERIFICATION_STATUS_CHANGED"
    VERIFICATION_INITIATED = "ELIGIBILITY_VERIFICATION_INITIATED"
    CACHE_HIT = "ELIGIBILITY_CACHE_HIT"
    VERIFICATION_COMPLETED = "ELIGIBILITY_VERIFICATION_COMPLETED"
    VERIFICATION_FAILED = "ELIGIBILITY_VERIFICATION_FAILED"
    VERIFICATION_MANUAL_REVIEW = "ELIGIBILITY_VERIFICATION_MANUAL_REVIEW"
    MANUAL_ENTRY_SUBMITTED = "INSURANCE_MANUAL_ENTRY_SUBMITTED"
    SELF_PAY_SELECTED = "SELF_PAY_SELECTED"
