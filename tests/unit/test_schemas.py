"""
Unit Tests for Pydantic Schemas
Tests validation logic for verification results, records and manual entry
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from eligibility_verifier.core.enums import ErrorCategory, VerificationResultStatus
from eligibility_verifier.schemas.verification import (
    Coinsurance,
    Copay,
    Coverage,
    Deductible,
    ManualEntry,
    VerificationError,
    VerificationResult,
    quantize_money,
    status_for,
)

from conftest import make_record


def _error(code="MEMBER_NOT_FOUND", category=ErrorCategory.INVALID_MEMBER_ID, **kwargs):
    return VerificationError(code=code, category=category, message="message", **kwargs)


@pytest.mark.unit
class TestMoney:
    """Test monetary rounding"""

    @pytest.mark.parametrize(
        "value, expected",
        [("25", "25.00"), ("12.345", "12.35"), ("12.344", "12.34"), ("0.005", "0.01")],
    )
    def test_quantize(self, value, expected):
        assert quantize_money(Decimal(value)) == Decimal(expected)

    def test_quantize_none(self):
        assert quantize_money(None) is None

    def test_copay_rounded(self):
        assert Copay(amount=Decimal("9.999")).amount == Decimal("10.00")

    def test_negative_copay_rejected(self):
        with pytest.raises(ValidationError):
            Copay(amount=Decimal("-1"))

    def test_deductible_defaults(self):
        deductible = Deductible(amount=Decimal("500"))
        assert deductible.met == Decimal("0.00")
        assert deductible.currency == "USD"

    @pytest.mark.parametrize("percentage", [-1, 101])
    def test_coinsurance_range(self, percentage):
        with pytest.raises(ValidationError):
            Coinsurance(percentage=percentage)


@pytest.mark.unit
class TestVerificationError:
    """Test error retryability rules"""

    @pytest.mark.parametrize("category", [ErrorCategory.TIMEOUT, ErrorCategory.NETWORK_ERROR])
    def test_transient_always_retryable(self, category):
        error = _error(code="X", category=category, retryable=False)
        assert error.retryable is True

    def test_other_categories_keep_flag(self):
        assert _error().retryable is False
        assert _error(retryable=True).retryable is True

    def test_category_from_string(self):
        error = VerificationError(code="TIMEOUT", category="timeout", message="slow")
        assert error.category == ErrorCategory.TIMEOUT
        assert error.retryable is True

    def test_code_required(self):
        with pytest.raises(ValidationError):
            _error(code="")


@pytest.mark.unit
class TestVerificationResult:
    """Test status consistency"""

    def test_status_for(self):
        assert status_for(True, None) == VerificationResultStatus.VERIFIED
        assert status_for(False, None) == VerificationResultStatus.FAILED
        assert status_for(None, None) == VerificationResultStatus.MANUAL_REVIEW
        assert status_for(False, _error()) == VerificationResultStatus.FAILED
        assert status_for(None, _error(needs_review=True)) == VerificationResultStatus.MANUAL_REVIEW

    def test_build_derives_status(self):
        result = VerificationResult.build(eligible=None, error=_error(needs_review=True))
        assert result.status == VerificationResultStatus.MANUAL_REVIEW

    def test_verified_requires_eligible(self):
        with pytest.raises(ValidationError):
            VerificationResult(status=VerificationResultStatus.VERIFIED, eligible=False)

    def test_verified_rejects_error(self):
        with pytest.raises(ValidationError):
            VerificationResult(
                status=VerificationResultStatus.VERIFIED, eligible=True, error=_error()
            )

    def test_failed_rejects_eligible(self):
        with pytest.raises(ValidationError):
            VerificationResult(status=VerificationResultStatus.FAILED, eligible=True)

    def test_review_requires_review_flag(self):
        with pytest.raises(ValidationError):
            VerificationResult(
                status=VerificationResultStatus.MANUAL_REVIEW, eligible=False, error=_error()
            )

    def test_review_flagged_error_cannot_fail(self):
        with pytest.raises(ValidationError):
            VerificationResult(
                status=VerificationResultStatus.FAILED,
                eligible=None,
                error=_error(needs_review=True),
            )

    def test_to_storage_omits_undisclosed(self):
        result = VerificationResult.build(
            eligible=True,
            coverage=Coverage(mental_health_covered=True, copay=Copay(amount=Decimal("25"))),
            response_id="eligibility-1",
        )

        stored = result.to_storage()

        assert stored["coverage"] == {
            "mental_health_covered": True,
            "copay": {"amount": "25.00", "currency": "USD"},
        }
        assert "error" not in stored
        assert stored["status"] == "VERIFIED"

    def test_storage_round_trip(self):
        result = VerificationResult.build(
            eligible=True,
            coverage=Coverage(
                deductible=Deductible(amount=Decimal("500"), met=Decimal("150")),
                effective_date=date(2026, 1, 1),
            ),
        )
        assert VerificationResult.model_validate(result.to_storage()) == result

    def test_frozen(self):
        result = VerificationResult.build(eligible=True)
        with pytest.raises(ValidationError):
            result.eligible = False


@pytest.mark.unit
class TestInsuranceRecord:
    def test_snapshot(self):
        snapshot = make_record(subscriber_name="Jane Quinn Doe").snapshot()

        assert snapshot.member_id == "ABC123456"
        assert snapshot.subscriber_first_name == "Jane"
        assert snapshot.subscriber_last_name == "Doe"

    def test_snapshot_without_name(self):
        snapshot = make_record(subscriber_name=None).snapshot()
        assert snapshot.subscriber_first_name == ""
        assert snapshot.subscriber_last_name == ""

    def test_last_error(self):
        assert make_record().last_error is None

        error = _error()
        record = make_record(verification_result=VerificationResult.build(eligible=False, error=error))
        assert record.last_error == error

    def test_negative_attempts_rejected(self):
        with pytest.raises(ValidationError):
            make_record(retry_attempts=-1)


@pytest.mark.unit
class TestManualEntry:
    """Test manual entry field validation"""

    def test_valid_entry(self):
        entry = ManualEntry(
            payer_name="Blue Shield of California",
            member_id="XYZ987654",
            group_number="GRP1",
            subscriber_name="Jane Doe",
            subscriber_dob=date(1985, 4, 12),
        )
        assert entry.member_id == "XYZ987654"

    @pytest.mark.parametrize("member_id", ["ABC12", "ABC-123456", "A" * 21])
    def test_member_id_format(self, member_id):
        with pytest.raises(ValidationError):
            ManualEntry(member_id=member_id)

    @pytest.mark.parametrize("group_number", ["GR1", "GRP 1234", "G" * 16])
    def test_group_number_format(self, group_number):
        with pytest.raises(ValidationError):
            ManualEntry(group_number=group_number)

    def test_unknown_payer(self):
        with pytest.raises(ValidationError) as exc_info:
            ManualEntry(payer_name="Acme Insurance")
        assert "known payer" in str(exc_info.value)

    @pytest.mark.parametrize("payer_name", ["aetna", "  UnitedHealthcare ", "Other"])
    def test_known_payer_any_case(self, payer_name):
        assert ManualEntry(payer_name=payer_name).payer_name == payer_name.strip()

    def test_future_dob(self):
        with pytest.raises(ValidationError) as exc_info:
            ManualEntry(subscriber_dob=date.today() + timedelta(days=1))
        assert "future" in str(exc_info.value)

    def test_blanks_not_provided(self):
        entry = ManualEntry(payer_name="", member_id="  ", group_number="GRP1234")
        assert entry.provided_fields() == {"group_number": "GRP1234"}

    def test_empty_entry(self):
        assert ManualEntry().provided_fields() == {}

    def test_whitespace_trimmed(self):
        assert ManualEntry(member_id=" XYZ987654 ").member_id == "XYZ987654"


def test_verified_at_defaults_to_utc_now():
    before = datetime.now(timezone.utc)
    result = VerificationResult.build(eligible=True)
    assert result.verified_at >= before
