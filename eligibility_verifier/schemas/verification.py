"""
Pydantic Schemas for Insurance Eligibility Verification.

Result blobs are persisted with ``model_dump(mode="json", exclude_none=True)``
so fields the payer did not disclose are omitted rather than stored as null.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from eligibility_verifier.core.enums import (
    ALWAYS_RETRYABLE_CATEGORIES,
    ErrorCategory,
    VerificationResultStatus,
    VerificationStatus,
)
from eligibility_verifier.services.payers import is_known_payer

CENTS = Decimal("0.01")


def quantize_money(value: Optional[Decimal]) -> Optional[Decimal]:
    """Round a monetary amount to cents."""
    if value is None:
        return None
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Coverage Schemas
# =============================================================================


class Copay(BaseModel):
    """Per-visit copay."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., ge=0)
    currency: str = "USD"

    @field_validator("amount")
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        return quantize_money(v)


class Deductible(BaseModel):
    """Plan deductible and how much of it has been met."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., ge=0)
    met: Decimal = Field(default=Decimal("0.00"), ge=0)
    currency: str = "USD"

    @field_validator("amount", "met")
    @classmethod
    def round_amounts(cls, v: Decimal) -> Decimal:
        return quantize_money(v)


class Coinsurance(BaseModel):
    """Member share after the deductible, as a whole percentage."""

    model_config = ConfigDict(frozen=True)

    percentage: int = Field(..., ge=0, le=100)


class Coverage(BaseModel):
    """Coverage details disclosed by the payer. Every field is optional."""

    model_config = ConfigDict(frozen=True)

    mental_health_covered: Optional[bool] = None
    copay: Optional[Copay] = None
    deductible: Optional[Deductible] = None
    coinsurance: Optional[Coinsurance] = None
    effective_date: Optional[date] = None
    termination_date: Optional[date] = None


# =============================================================================
# Error and Result Schemas
# =============================================================================


class VerificationError(BaseModel):
    """
    Classified verification failure.

    ``retryable`` says whether a caller-initiated retry may succeed;
    ``needs_review`` routes the result to human review instead of failing
    it. Timeouts and network errors are always retryable.
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1)
    category: ErrorCategory
    message: str
    retryable: bool = False
    needs_review: bool = False
    payer_code: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def force_transient_retryable(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("category") is not None:
            try:
                category = ErrorCategory(data["category"])
            except ValueError:
                return data
            if category in ALWAYS_RETRYABLE_CATEGORIES:
                data = {**data, "retryable": True}
        return data


def status_for(
    eligible: Optional[bool], error: Optional[VerificationError]
) -> VerificationResultStatus:
    """Map an eligibility outcome to the result status it implies."""
    if error is not None:
        if error.needs_review:
            return VerificationResultStatus.MANUAL_REVIEW
        return VerificationResultStatus.FAILED
    if eligible is None:
        return VerificationResultStatus.MANUAL_REVIEW
    if eligible:
        return VerificationResultStatus.VERIFIED
    return VerificationResultStatus.FAILED


class VerificationResult(BaseModel):
    """Outcome of one eligibility verification attempt."""

    model_config = ConfigDict(frozen=True)

    status: VerificationResultStatus
    eligible: Optional[bool] = None
    coverage: Optional[Coverage] = None
    error: Optional[VerificationError] = None
    verified_at: datetime = Field(default_factory=utc_now)
    response_id: Optional[str] = None

    @model_validator(mode="after")
    def check_status_consistency(self) -> "VerificationResult":
        status = self.status
        if status == VerificationResultStatus.VERIFIED:
            if self.eligible is not True or self.error is not None:
                raise ValueError("VERIFIED requires eligible=True and no error")

        needs_review = (self.error is not None and self.error.needs_review) or (
            self.error is None and self.eligible is None
        )
        if (status == VerificationResultStatus.MANUAL_REVIEW) != needs_review:
            raise ValueError(
                "MANUAL_REVIEW is reserved for review-flagged errors or undetermined eligibility"
            )

        if status == VerificationResultStatus.FAILED and self.eligible is True:
            raise ValueError("FAILED requires eligible to be False or None")
        return self

    @classmethod
    def build(
        cls,
        eligible: Optional[bool],
        coverage: Optional[Coverage] = None,
        error: Optional[VerificationError] = None,
        **kwargs: Any,
    ) -> "VerificationResult":
        """Create a result whose status is derived from eligibility and error."""
        return cls(
            status=status_for(eligible, error),
            eligible=eligible,
            coverage=coverage,
            error=error,
            **kwargs,
        )

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# Insurance Record Schemas
# =============================================================================


class RetryHistoryEntry(BaseModel):
    """One caller-initiated retry."""

    model_config = ConfigDict(frozen=True)

    attempt: int = Field(..., ge=1)
    timestamp: datetime
    previous_error_code: Optional[str] = None


class InsuranceSnapshot(BaseModel):
    """Immutable view of the fields an adapter reads."""

    model_config = ConfigDict(frozen=True)

    id: str
    payer_name: Optional[str] = None
    payer_id: Optional[str] = None
    member_id: Optional[str] = None
    group_number: Optional[str] = None
    subscriber_name: Optional[str] = None
    subscriber_dob: Optional[date] = None

    @property
    def subscriber_first_name(self) -> str:
        parts = (self.subscriber_name or "").split()
        return parts[0] if parts else ""

    @property
    def subscriber_last_name(self) -> str:
        parts = (self.subscriber_name or "").split()
        return parts[-1] if parts else ""


class InsuranceRecord(BaseModel):
    """Insurance record tracked through the verification workflow."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    id: str
    onboarding_session_id: str
    payer_name: Optional[str] = None
    payer_id: Optional[str] = None
    member_id: Optional[str] = None
    group_number: Optional[str] = None
    subscriber_name: Optional[str] = None
    subscriber_dob: Optional[date] = None

    verification_status: VerificationStatus = VerificationStatus.PENDING
    verification_result: Optional[VerificationResult] = None
    retry_history: list[RetryHistoryEntry] = Field(default_factory=list)
    retry_attempts: int = Field(default=0, ge=0)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def snapshot(self) -> InsuranceSnapshot:
        return InsuranceSnapshot(
            id=self.id,
            payer_name=self.payer_name,
            payer_id=self.payer_id,
            member_id=self.member_id,
            group_number=self.group_number,
            subscriber_name=self.subscriber_name,
            subscriber_dob=self.subscriber_dob,
        )

    @property
    def last_error(self) -> Optional[VerificationError]:
        if self.verification_result is None:
            return None
        return self.verification_result.error


# =============================================================================
# Manual Entry Schema
# =============================================================================


class ManualEntry(BaseModel):
    """
    Insurance fields typed in by the family.

    Every field is optional so partial entries can be saved; blank strings
    count as not provided.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    payer_name: Optional[str] = None
    member_id: Optional[str] = Field(
        default=None,
        pattern=r"^[A-Za-z0-9]{6,20}$",
        description="6-20 alphanumeric characters",
    )
    group_number: Optional[str] = Field(
        default=None,
        pattern=r"^[A-Za-z0-9]{4,15}$",
        description="4-15 alphanumeric characters",
    )
    subscriber_name: Optional[str] = None
    subscriber_dob: Optional[date] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("payer_name")
    @classmethod
    def known_payer(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_known_payer(v):
            raise ValueError("must be a known payer or 'Other'")
        return v

    @field_validator("subscriber_dob")
    @classmethod
    def dob_not_in_future(cls, v: Optional[date]) -> Optional[date]:
        if v is not None and v > date.today():
            raise ValueError("cannot be in the future")
        return v

    def provided_fields(self) -> dict[str, Any]:
        """Fields the family actually filled in."""
        return self.model_dump(exclude_none=True)
