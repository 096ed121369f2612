"""
Family-facing verification status messages.

Turns a record's status and last error code into display text, a plain
language explanation and next steps. Severity comes from the error
classifier so the retry advice here matches what the verification
service allows.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field

from eligibility_verifier.core.config import EligibilitySettings, get_settings
from eligibility_verifier.core.enums import ErrorSeverity, VerificationStatus
from eligibility_verifier.schemas.verification import InsuranceRecord
from eligibility_verifier.services.edi.error_classifier import error_severity
from eligibility_verifier.services.verification_state_machine import retry_allowed


@dataclass(frozen=True)
class ErrorMessage:
    message: str
    why: str


ERROR_MESSAGES: dict[str, ErrorMessage] = {
    "INVALID_MEMBER_ID": ErrorMessage(
        "We couldn't find this member ID with your insurance company.",
        "The member ID you entered doesn't match records at your insurance company. "
        "This could be a typo or the ID may have changed.",
    ),
    "MEMBER_NOT_FOUND": ErrorMessage(
        "We couldn't find this member ID with your insurance company.",
        "The member ID you entered doesn't match records at your insurance company. "
        "This could be a typo or the ID may have changed.",
    ),
    "INVALID_DATE_OF_BIRTH": ErrorMessage(
        "The date of birth doesn't match your insurance records.",
        "Make sure you entered the policyholder's date of birth as it appears on the plan.",
    ),
    "INVALID_GROUP_NUMBER": ErrorMessage(
        "The group number doesn't match your insurance records.",
        "The group number entered doesn't match your insurance company's records. "
        "Double-check your insurance card.",
    ),
    "SUBSCRIBER_NOT_FOUND": ErrorMessage(
        "We couldn't find the subscriber information.",
        "The subscriber name or date of birth doesn't match records. "
        "Ensure you're using the policyholder's information.",
    ),
    "INVALID_FIELD_VALUE": ErrorMessage(
        "Some of your insurance details contain characters we can't send.",
        "Symbols like * ~ : or ^ can't be sent to your insurance company. "
        "Please enter the details exactly as they appear on your card.",
    ),
    "COVERAGE_INACTIVE": ErrorMessage(
        "Your coverage isn't currently active.",
        "Your insurance plan shows as inactive. "
        "This could mean premiums weren't paid or the plan has ended.",
    ),
    "COVERAGE_TERMINATED": ErrorMessage(
        "Your coverage has ended.",
        "Your insurance plan has been terminated. "
        "You may need to contact your insurance company or employer.",
    ),
    "NO_ACTIVE_COVERAGE": ErrorMessage(
        "We couldn't find active coverage on this plan.",
        "Your insurance company didn't report any active benefits for this member.",
    ),
    "SERVICE_NOT_COVERED": ErrorMessage(
        "Mental health services aren't covered under this plan.",
        "Your plan doesn't include coverage for the mental health services we provide.",
    ),
    "MENTAL_HEALTH_UNCLEAR": ErrorMessage(
        "We need to confirm your mental health coverage.",
        "Your plan is active, but your insurance company didn't say whether "
        "mental health services are included. Our team will review it.",
    ),
    "OUT_OF_NETWORK": ErrorMessage(
        "We're not in your insurance network.",
        "Daybreak Health is not in your insurance plan's network. "
        "Out-of-network coverage may be limited or unavailable.",
    ),
    "PAYER_NOT_SUPPORTED": ErrorMessage(
        "We don't currently work with this insurance company.",
        "We haven't established a partnership with this insurance company yet.",
    ),
    "NETWORK_ERROR": ErrorMessage(
        "We're having trouble connecting to your insurance company.",
        "There's a temporary connection issue. This usually resolves quickly.",
    ),
    "TIMEOUT": ErrorMessage(
        "The verification is taking longer than expected.",
        "Your insurance company's system is responding slowly. "
        "You can try again in a few minutes.",
    ),
    "SERVICE_UNAVAILABLE": ErrorMessage(
        "Your insurance company's system is temporarily unavailable.",
        "Their system is down for maintenance or experiencing issues. Please try again later.",
    ),
    "RATE_LIMITED": ErrorMessage(
        "Too many requests. Please wait a moment.",
        "We've made too many requests in a short time. "
        "Please wait a minute before trying again.",
    ),
}

DEFAULT_ERROR_MESSAGE = ErrorMessage(
    "We encountered an issue verifying your insurance.",
    "An unexpected error occurred. Our team has been notified.",
)

# 'failed' is resolved from error severity
STATUS_DISPLAY_MAP: dict[VerificationStatus, str] = {
    VerificationStatus.VERIFIED: "Verified",
    VerificationStatus.PENDING: "Checking...",
    VerificationStatus.IN_PROGRESS: "Checking...",
    VerificationStatus.OCR_COMPLETE: "Ready for Verification",
    VerificationStatus.OCR_NEEDS_REVIEW: "Needs Attention",
    VerificationStatus.MANUAL_ENTRY: "Awaiting Information",
    VerificationStatus.MANUAL_ENTRY_COMPLETE: "Ready for Verification",
    VerificationStatus.MANUAL_REVIEW: "Needs Attention",
    VerificationStatus.SELF_PAY: "Self-Pay Selected",
}

DATA_ERROR_CODES = frozenset(
    {
        "INVALID_MEMBER_ID",
        "MEMBER_NOT_FOUND",
        "INVALID_GROUP_NUMBER",
        "SUBSCRIBER_NOT_FOUND",
        "INVALID_FIELD_VALUE",
    }
)
TRANSIENT_ERROR_CODES = frozenset({"NETWORK_ERROR", "TIMEOUT", "SERVICE_UNAVAILABLE"})


class SupportContact(BaseModel):
    type: str
    phone: str
    email: str
    hours: str


GENERAL_SUPPORT = SupportContact(
    type="general",
    phone="1-800-DAYBREAK",
    email="support@daybreak.health",
    hours="Mon-Sun 8am-8pm EST",
)
SPECIALIST_SUPPORT = SupportContact(
    type="specialist",
    phone="1-800-DAYBREAK x2",
    email="insurance@daybreak.health",
    hours="Mon-Fri 8am-6pm EST",
)


class SelfPayOption(BaseModel):
    available: bool = True
    description: str = "Continue with self-pay"
    preview_rate: str = "$150 for initial assessment"


class StatusDisplay(BaseModel):
    """Everything the onboarding UI shows for a record's verification status."""

    status_display: str
    message: str
    why_explanation: Optional[str] = None
    next_steps: list[str] = Field(default_factory=list)
    can_retry: bool
    support_contact: SupportContact
    self_pay_option: SelfPayOption = Field(default_factory=SelfPayOption)


@dataclass
class StatusMessageBuilder:
    """
    Build the family-facing display for one insurance record.

    Usage:
        display = StatusMessageBuilder(record).build()
    """

    record: InsuranceRecord
    settings: EligibilitySettings = field(default_factory=get_settings)

    @property
    def error_code(self) -> Optional[str]:
        error = self.record.last_error
        return error.code if error else None

    @property
    def severity(self) -> ErrorSeverity:
        return error_severity(self.record.last_error, self.record.verification_status)

    @property
    def error_message(self) -> ErrorMessage:
        return ERROR_MESSAGES.get(self.error_code or "", DEFAULT_ERROR_MESSAGE)

    def build(self) -> StatusDisplay:
        return StatusDisplay(
            status_display=self.status_display_text(),
            message=self.plain_language_message(),
            why_explanation=self.why_explanation(),
            next_steps=self.next_steps(),
            can_retry=self.can_retry(),
            support_contact=self.support_contact(),
        )

    def status_display_text(self) -> str:
        status = self.record.verification_status
        if status == VerificationStatus.FAILED:
            return "Unable to Verify" if self.severity == ErrorSeverity.HIGH else "Needs Attention"
        return STATUS_DISPLAY_MAP.get(status, "Needs Attention")

    def plain_language_message(self) -> str:
        status = self.record.verification_status
        if status == VerificationStatus.VERIFIED:
            return "Your insurance is verified and active!"
        if status == VerificationStatus.SELF_PAY:
            return "You've chosen to pay out of pocket. No insurance will be billed."
        return self.error_message.message

    def why_explanation(self) -> Optional[str]:
        if self.record.verification_status in (
            VerificationStatus.VERIFIED,
            VerificationStatus.SELF_PAY,
        ):
            return None
        return self.error_message.why

    def can_retry(self) -> bool:
        return retry_allowed(self.record, self.settings.MAX_RETRY_ATTEMPTS)

    def next_steps(self) -> list[str]:
        status = self.record.verification_status
        if status == VerificationStatus.VERIFIED:
            return ["Continue to your child's assessment", "Review your coverage details below"]
        if status == VerificationStatus.SELF_PAY:
            return [
                "Continue to your child's assessment",
                "Review self-pay rates and payment options",
            ]

        code = self.error_code
        if self.can_retry():
            if code in DATA_ERROR_CODES:
                steps = [
                    "Double-check your insurance card",
                    "Correct any errors in your information",
                    "Try verification again",
                ]
            elif code in TRANSIENT_ERROR_CODES:
                steps = [
                    "Wait a moment and try again",
                    "If the issue persists, contact our support team",
                ]
            else:
                steps = [
                    "Review your insurance information",
                    "Correct any errors",
                    "Try verification again",
                ]
            return steps + ["Choose self-pay to continue immediately"]

        if code in ("COVERAGE_INACTIVE", "COVERAGE_TERMINATED", "NO_ACTIVE_COVERAGE"):
            steps = [
                "Contact your insurance company to verify your coverage",
                "If you have new insurance, enter the updated information",
            ]
        elif code in ("SERVICE_NOT_COVERED", "OUT_OF_NETWORK"):
            steps = [
                "Check if you have a different plan that covers mental health",
                "Ask your insurance about out-of-network benefits",
            ]
        elif code == "PAYER_NOT_SUPPORTED":
            steps = ["Check if you have secondary insurance we can verify"]
        else:
            steps = [
                "Contact your insurance company for assistance",
                "Call our support team for help",
            ]
        return steps + ["Choose self-pay to continue now"]

    def support_contact(self) -> SupportContact:
        if (
            self.severity == ErrorSeverity.HIGH
            or self.record.retry_attempts >= self.settings.MAX_RETRY_ATTEMPTS
        ):
            return SPECIALIST_SUPPORT
        return GENERAL_SUPPORT


def status_display(
    record: InsuranceRecord, settings: Optional[EligibilitySettings] = None
) -> StatusDisplay:
    """Shortcut for ``StatusMessageBuilder(record).build()``."""
    return StatusMessageBuilder(record, settings or get_settings()).build()
