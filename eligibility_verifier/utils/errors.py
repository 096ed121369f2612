"""
Custom Exceptions
Application-specific errors raised by the verification workflow.

Expected payer/transport failures never surface as exceptions; they are
folded into FAILED or MANUAL_REVIEW results by the adapters.
"""

from typing import Optional


class EligibilityError(Exception):
    """Base class for eligibility workflow errors."""

    def __init__(self, detail: str = "Eligibility workflow error"):
        self.detail = detail
        super().__init__(detail)


class UnknownVerificationStatusError(EligibilityError):
    """Raised when a persisted status string is not a known status."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unknown verification status: {value!r}")


class InvalidTransitionError(EligibilityError):
    """Raised when a status transition is not allowed"""

    def __init__(self, from_status: str, to_status: str, event: Optional[str] = None):
        self.from_status = from_status
        self.to_status = to_status
        self.event = event
        detail = f"Invalid transition: {from_status} -> {to_status}"
        if event:
            detail += f" (event: {event})"
        super().__init__(detail)


class VerificationNotAllowedError(EligibilityError):
    """Raised when verification is requested from a status lacking data"""

    def __init__(self, detail: str = "Verification not allowed in current status"):
        super().__init__(detail)


class RetryNotAllowedError(EligibilityError):
    """Raised when a retry is requested but the record cannot be retried"""

    def __init__(self, detail: str = "Verification cannot be retried"):
        super().__init__(detail)


class RecordNotFoundError(EligibilityError):
    """Raised when an insurance record does not exist"""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Insurance record not found: {record_id}")


class ConfigurationError(EligibilityError):
    """Raised when settings cannot support the requested component"""

    def __init__(self, detail: str = "Invalid eligibility configuration"):
        super().__init__(detail)
