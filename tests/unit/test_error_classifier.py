"""
Unit Tests for Payer Error Classification and Severity.
"""

import pytest

from eligibility_verifier.core.enums import ErrorCategory, ErrorSeverity, VerificationStatus
from eligibility_verifier.schemas.verification import VerificationError
from eligibility_verifier.services.edi.error_classifier import (
    AAA_ERROR_MAPPINGS,
    ErrorClassifier,
    error_severity,
)
from eligibility_verifier.services.edi.x12_base import X12ParseError, X12Segment


def _aaa(reason: str, follow_up: str = "C") -> X12Segment:
    return X12Segment("AAA", ["N", "", reason, follow_up])


class TestErrorClassifier:
    """Test AAA reject reason mapping."""

    @pytest.mark.parametrize(
        "reason, code, category, retryable",
        [
            ("42", "MEMBER_NOT_FOUND", ErrorCategory.INVALID_MEMBER_ID, False),
            ("33", "INVALID_DATE_OF_BIRTH", ErrorCategory.INVALID_MEMBER_ID, False),
            ("56", "COVERAGE_INACTIVE", ErrorCategory.COVERAGE_NOT_ACTIVE, False),
            ("57", "COVERAGE_TERMINATED", ErrorCategory.COVERAGE_NOT_ACTIVE, False),
            ("58", "SERVICE_NOT_COVERED", ErrorCategory.SERVICE_NOT_COVERED, False),
            ("72", "SERVICE_UNAVAILABLE", ErrorCategory.NETWORK_ERROR, True),
            ("73", "SERVICE_UNAVAILABLE", ErrorCategory.NETWORK_ERROR, True),
            ("75", "SUBSCRIBER_NOT_FOUND", ErrorCategory.UNKNOWN, False),
        ],
    )
    def test_mapped_codes(self, reason, code, category, retryable):
        error = ErrorClassifier().classify([_aaa(reason)])

        assert error.code == code
        assert error.category == category
        assert error.retryable is retryable
        assert error.payer_code == f"AAA{reason}"
        assert error.needs_review is False

    def test_every_mapping_has_a_message(self):
        assert all(m.message for m in AAA_ERROR_MAPPINGS.values())

    def test_unknown_code(self):
        error = ErrorClassifier().classify([_aaa("99")])

        assert error.code == "AAA99"
        assert error.category == ErrorCategory.UNKNOWN
        assert error.retryable is False
        assert error.message == "Unknown payer error code: 99"
        assert error.payer_code == "AAA99"

    def test_first_segment_wins(self):
        error = ErrorClassifier().classify([_aaa("56"), _aaa("42")])
        assert error.code == "COVERAGE_INACTIVE"

    def test_no_segments(self):
        with pytest.raises(X12ParseError):
            ErrorClassifier().classify([])


class TestErrorSeverity:
    """Test retry-facing severity."""

    def _error(self, code, category=ErrorCategory.UNKNOWN, retryable=False):
        return VerificationError(code=code, category=category, message=code, retryable=retryable)

    @pytest.mark.parametrize(
        "code", ["COVERAGE_INACTIVE", "COVERAGE_TERMINATED", "SERVICE_NOT_COVERED"]
    )
    def test_high(self, code):
        assert error_severity(self._error(code), VerificationStatus.FAILED) == ErrorSeverity.HIGH

    @pytest.mark.parametrize("code", ["TIMEOUT", "NETWORK_ERROR", "SERVICE_UNAVAILABLE"])
    def test_low(self, code):
        assert error_severity(self._error(code), VerificationStatus.FAILED) == ErrorSeverity.LOW

    def test_medium_default(self):
        error = self._error("MEMBER_NOT_FOUND")
        assert error_severity(error, VerificationStatus.FAILED) == ErrorSeverity.MEDIUM
        assert error_severity(None, VerificationStatus.FAILED) == ErrorSeverity.MEDIUM

    @pytest.mark.parametrize(
        "status", [VerificationStatus.PENDING, VerificationStatus.IN_PROGRESS]
    )
    def test_active_statuses_are_low(self, status):
        assert error_severity(self._error("COVERAGE_INACTIVE"), status) == ErrorSeverity.LOW
