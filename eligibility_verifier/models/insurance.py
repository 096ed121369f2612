"""
Insurance Verification Model.

One row per insurance record moving through card capture, manual entry
and the eligibility check. The status is stored as its string value with
the encoding version it was written under; the last result and the retry
history are JSON blobs produced by the pydantic schemas.
"""

from datetime import date
from typing import Any, Optional

from sqlalchemy import Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from eligibility_verifier.core.enums import STATUS_ENCODING_VERSION, VerificationStatus
from eligibility_verifier.models.base import Base, JSONType, TimeStampedModel


class InsuranceVerificationRecord(Base, TimeStampedModel):
    """
    Insurance verification record.

    Member identifiers and subscriber details are PHI; they are never
    copied into audit events or log lines.
    """

    __tablename__ = "insurance_verifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    onboarding_session_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Owning onboarding session",
    )

    # Card / manual entry fields
    payer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payer_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    member_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    group_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    subscriber_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    subscriber_dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Verification workflow
    verification_status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=VerificationStatus.PENDING.value,
        comment="VerificationStatus value",
    )
    status_encoding_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=STATUS_ENCODING_VERSION,
    )
    verification_result: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Last VerificationResult, None fields omitted",
    )
    retry_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    retry_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_insurance_verifications_status", "verification_status"),
    )

    def __repr__(self) -> str:
        return f"<InsuranceVerificationRecord(id={self.id}, status={self.verification_status})>"
