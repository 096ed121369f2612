"""
Unit Tests for Family-Facing Status Messages.
"""

import pytest

from eligibility_verifier.core.enums import ErrorCategory, VerificationStatus
from eligibility_verifier.schemas.verification import VerificationError, VerificationResult
from eligibility_verifier.services.status_messages import (
    DEFAULT_ERROR_MESSAGE,
    ERROR_MESSAGES,
    GENERAL_SUPPORT,
    SPECIALIST_SUPPORT,
    StatusMessageBuilder,
    status_display,
)

from conftest import make_record

S = VerificationStatus


def _failed_record(code, category=ErrorCategory.UNKNOWN, retryable=False, **overrides):
    error = VerificationError(code=code, category=category, message=code, retryable=retryable)
    return make_record(
        verification_status=S.FAILED,
        verification_result=VerificationResult.build(eligible=False, error=error),
        **overrides,
    )


class TestStatusDisplay:
    """Display text per status."""

    def test_verified(self, settings):
        record = make_record(
            verification_status=S.VERIFIED,
            verification_result=VerificationResult.build(eligible=True),
        )

        display = status_display(record, settings)

        assert display.status_display == "Verified"
        assert display.message == "Your insurance is verified and active!"
        assert display.why_explanation is None
        assert display.next_steps[0] == "Continue to your child's assessment"
        assert display.can_retry is False
        assert display.support_contact == GENERAL_SUPPORT
        assert display.self_pay_option.available is True

    def test_self_pay(self, settings):
        display = status_display(make_record(verification_status=S.SELF_PAY), settings)

        assert display.status_display == "Self-Pay Selected"
        assert "pay out of pocket" in display.message
        assert display.why_explanation is None

    @pytest.mark.parametrize(
        "status, text",
        [
            (S.PENDING, "Checking..."),
            (S.IN_PROGRESS, "Checking..."),
            (S.OCR_COMPLETE, "Ready for Verification"),
            (S.MANUAL_ENTRY, "Awaiting Information"),
            (S.MANUAL_REVIEW, "Needs Attention"),
        ],
    )
    def test_in_flight_statuses(self, settings, status, text):
        record = make_record(verification_status=status)
        assert StatusMessageBuilder(record, settings).status_display_text() == text

    def test_failed_high_severity(self, settings):
        record = _failed_record("COVERAGE_TERMINATED", ErrorCategory.COVERAGE_NOT_ACTIVE)
        assert StatusMessageBuilder(record, settings).status_display_text() == "Unable to Verify"

    def test_failed_other_severity(self, settings):
        record = _failed_record("MEMBER_NOT_FOUND", ErrorCategory.INVALID_MEMBER_ID)
        assert StatusMessageBuilder(record, settings).status_display_text() == "Needs Attention"


class TestMessages:
    """Plain language message and explanation."""

    def test_known_code(self, settings):
        record = _failed_record("MEMBER_NOT_FOUND", ErrorCategory.INVALID_MEMBER_ID)
        display = status_display(record, settings)

        assert display.message == ERROR_MESSAGES["MEMBER_NOT_FOUND"].message
        assert "typo" in display.why_explanation

    def test_unsendable_characters(self, settings):
        display = status_display(_failed_record("INVALID_FIELD_VALUE"), settings)

        assert display.message == ERROR_MESSAGES["INVALID_FIELD_VALUE"].message
        assert "exactly as they appear" in display.why_explanation

    def test_unknown_code(self, settings):
        display = status_display(_failed_record("AAA99"), settings)

        assert display.message == DEFAULT_ERROR_MESSAGE.message
        assert display.why_explanation == DEFAULT_ERROR_MESSAGE.why

    def test_no_error_yet(self, settings):
        display = status_display(make_record(), settings)
        assert display.message == DEFAULT_ERROR_MESSAGE.message


class TestNextSteps:
    """Retry advice tracks retry eligibility."""

    def test_transient_error(self, settings):
        display = status_display(_failed_record("TIMEOUT", ErrorCategory.TIMEOUT), settings)

        assert display.can_retry is True
        assert display.next_steps == [
            "Wait a moment and try again",
            "If the issue persists, contact our support team",
            "Choose self-pay to continue immediately",
        ]

    def test_data_error_when_retryable(self, settings):
        record = _failed_record("INVALID_GROUP_NUMBER", retryable=True)
        steps = status_display(record, settings).next_steps

        assert steps[0] == "Double-check your insurance card"
        assert steps[-1] == "Choose self-pay to continue immediately"

    def test_inactive_coverage(self, settings):
        record = _failed_record("COVERAGE_INACTIVE", ErrorCategory.COVERAGE_NOT_ACTIVE)
        display = status_display(record, settings)

        assert display.can_retry is False
        assert display.next_steps[0] == "Contact your insurance company to verify your coverage"
        assert display.next_steps[-1] == "Choose self-pay to continue now"

    def test_service_not_covered(self, settings):
        record = _failed_record("SERVICE_NOT_COVERED", ErrorCategory.SERVICE_NOT_COVERED)
        steps = status_display(record, settings).next_steps
        assert "mental health" in steps[0]

    def test_retries_exhausted(self, settings):
        record = _failed_record("TIMEOUT", ErrorCategory.TIMEOUT, retry_attempts=3)
        display = status_display(record, settings)

        assert display.can_retry is False
        assert display.next_steps[-1] == "Choose self-pay to continue now"


class TestSupportContact:
    def test_general(self, settings):
        record = _failed_record("TIMEOUT", ErrorCategory.TIMEOUT)
        assert status_display(record, settings).support_contact == GENERAL_SUPPORT

    def test_high_severity(self, settings):
        record = _failed_record("COVERAGE_INACTIVE", ErrorCategory.COVERAGE_NOT_ACTIVE)
        assert status_display(record, settings).support_contact == SPECIALIST_SUPPORT

    def test_retries_exhausted(self, settings):
        record = _failed_record("TIMEOUT", ErrorCategory.TIMEOUT, retry_attempts=3)
        assert status_display(record, settings).support_contact == SPECIALIST_SUPPORT
