"""
Unit tests for core enumerations.
"""

import pytest

from eligibility_verifier.core.enums import (
    ALWAYS_RETRYABLE_CATEGORIES,
    STATUS_ENCODING_VERSION,
    AuditAction,
    ErrorCategory,
    VerificationResultStatus,
    VerificationStatus,
)
from eligibility_verifier.utils.errors import EligibilityError, UnknownVerificationStatusError


class TestVerificationStatus:
    def test_persisted_values(self):
        assert [s.value for s in VerificationStatus] == [
            "pending",
            "in_progress",
            "ocr_complete",
            "ocr_needs_review",
            "manual_entry",
            "manual_entry_complete",
            "verified",
            "failed",
            "manual_review",
            "self_pay",
        ]

    def test_encoding_version(self):
        assert STATUS_ENCODING_VERSION == 1

    @pytest.mark.parametrize("status", list(VerificationStatus))
    def test_parse_known(self, status):
        assert VerificationStatus.parse(status.value) is status

    @pytest.mark.parametrize("value", ["VERIFIED", "unknown", ""])
    def test_parse_unknown(self, value):
        with pytest.raises(UnknownVerificationStatusError) as exc_info:
            VerificationStatus.parse(value)

        assert exc_info.value.value == value
        assert isinstance(exc_info.value, EligibilityError)

    def test_str_enum(self):
        assert VerificationStatus.VERIFIED == "verified"


class TestErrorEnums:
    def test_categories(self):
        assert {c.value for c in ErrorCategory} == {
            "invalid_member_id",
            "coverage_not_active",
            "service_not_covered",
            "network_error",
            "timeout",
            "unknown",
        }

    def test_always_retryable(self):
        assert ALWAYS_RETRYABLE_CATEGORIES == {ErrorCategory.NETWORK_ERROR, ErrorCategory.TIMEOUT}

    def test_result_statuses(self):
        assert {s.value for s in VerificationResultStatus} == {
            "VERIFIED",
            "FAILED",
            "MANUAL_REVIEW",
        }


class TestAuditAction:
    def test_status_change_action(self):
        assert AuditAction.STATUS_CHANGED.value == "VERIFICATION_STATUS_CHANGED"

    def test_values_unique(self):
        values = [a.value for a in AuditAction]
        assert len(values) == len(set(values))
