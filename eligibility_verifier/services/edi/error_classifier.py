"""
Error Classifier for 271 request validation (AAA) segments.

Maps payer reject reason codes (AAA03) onto the stable error taxonomy and
derives the retry-facing severity of a classified error.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence
import logging

from eligibility_verifier.core.enums import ErrorCategory, ErrorSeverity, VerificationStatus
from eligibility_verifier.schemas.verification import VerificationError
from eligibility_verifier.services.edi.x12_271_parser import X12271Parser
from eligibility_verifier.services.edi.x12_base import X12ParseError, X12Segment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayerErrorMapping:
    """Taxonomy entry for one AAA03 reject reason."""

    code: str
    category: ErrorCategory
    message: str
    retryable: bool


# AAA03 reject reason -> taxonomy
AAA_ERROR_MAPPINGS: Dict[str, PayerErrorMapping] = {
    "42": PayerErrorMapping(
        "MEMBER_NOT_FOUND", ErrorCategory.INVALID_MEMBER_ID, "Member ID not found", False
    ),
    "33": PayerErrorMapping(
        "INVALID_DATE_OF_BIRTH", ErrorCategory.INVALID_MEMBER_ID, "Invalid date of birth", False
    ),
    "56": PayerErrorMapping(
        "COVERAGE_INACTIVE", ErrorCategory.COVERAGE_NOT_ACTIVE, "Coverage not active", False
    ),
    "57": PayerErrorMapping(
        "COVERAGE_TERMINATED", ErrorCategory.COVERAGE_NOT_ACTIVE, "Coverage terminated", False
    ),
    "58": PayerErrorMapping(
        "SERVICE_NOT_COVERED", ErrorCategory.SERVICE_NOT_COVERED, "Service not covered", False
    ),
    "72": PayerErrorMapping(
        "SERVICE_UNAVAILABLE",
        ErrorCategory.NETWORK_ERROR,
        "Unable to respond at this time",
        True,
    ),
    "73": PayerErrorMapping(
        "SERVICE_UNAVAILABLE",
        ErrorCategory.NETWORK_ERROR,
        "System currently unavailable",
        True,
    ),
    "75": PayerErrorMapping(
        "SUBSCRIBER_NOT_FOUND", ErrorCategory.UNKNOWN, "Subscriber/insured not found", False
    ),
}

HIGH_SEVERITY_CODES = frozenset(
    {
        "COVERAGE_INACTIVE",
        "COVERAGE_TERMINATED",
        "SERVICE_NOT_COVERED",
        "OUT_OF_NETWORK",
        "PAYER_NOT_SUPPORTED",
    }
)

LOW_SEVERITY_CODES = frozenset(
    {
        "NETWORK_ERROR",
        "TIMEOUT",
        "SERVICE_UNAVAILABLE",
        "RATE_LIMITED",
    }
)


class ErrorClassifier:
    """
    Classify AAA segments into a VerificationError.

    Only the first error segment decides the classification.
    """

    def __init__(self, parser: Optional[X12271Parser] = None):
        self.parser = parser or X12271Parser()

    def classify(self, error_segments: Sequence[X12Segment]) -> VerificationError:
        if not error_segments:
            raise X12ParseError("No error segments to classify")

        rejection = self.parser.parse_rejection(error_segments[0])
        reason = rejection.reject_reason_code
        mapping = AAA_ERROR_MAPPINGS.get(reason)

        if mapping is None:
            logger.warning(f"Unmapped payer reject reason code: {reason!r}")
            return VerificationError(
                code=rejection.payer_code,
                category=ErrorCategory.UNKNOWN,
                message=f"Unknown payer error code: {reason or '<blank>'}",
                retryable=False,
                payer_code=rejection.payer_code,
            )

        return VerificationError(
            code=mapping.code,
            category=mapping.category,
            message=mapping.message,
            retryable=mapping.retryable,
            payer_code=rejection.payer_code,
        )


def error_severity(
    error: Optional[VerificationError],
    status: Optional[VerificationStatus] = None,
) -> ErrorSeverity:
    """
    Severity of a record's last error.

    Records still pending or in progress are always low severity.
    """
    if status in (VerificationStatus.PENDING, VerificationStatus.IN_PROGRESS):
        return ErrorSeverity.LOW
    if error is None:
        return ErrorSeverity.MEDIUM
    if error.code in HIGH_SEVERITY_CODES:
        return ErrorSeverity.HIGH
    if error.code in LOW_SEVERITY_CODES:
        return ErrorSeverity.LOW
    return ErrorSeverity.MEDIUM
