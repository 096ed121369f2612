"""
X12 270 Eligibility Inquiry Generator.

Generates HIPAA 5010 style X12 270 eligibility inquiry transactions.
Used to request eligibility and mental health benefit information from
payers. The interchange (ISA/GS) envelope is added by the clearinghouse,
so the generator emits the transaction set only (ST through SE).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple
import random
import re

from eligibility_verifier.services.edi.x12_base import (
    SegmentID,
    X12Segment,
    X12Transaction,
    X12ValidationError,
    format_x12_date,
    format_x12_time,
)


# =============================================================================
# Enums
# =============================================================================


class ServiceTypeCode(str, Enum):
    """X12 service type codes for eligibility inquiry."""

    HEALTH_BENEFIT_PLAN_COVERAGE = "30"
    MENTAL_HEALTH = "MH"


PAYER_NAME_MAX_LENGTH = 35

# Default element, segment, component and repetition delimiters plus line breaks
RESERVED_CHARACTERS = "*~:^\r\n"


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class EligibilityInquiry:
    """Everything needed to build one 270 inquiry. Built fresh per attempt."""

    subscriber_first_name: str
    subscriber_last_name: str
    member_id: str
    payer_name: str
    service_date: date
    payer_id: str = ""
    group_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    provider_name: str = ""
    provider_npi: str = ""
    service_type_codes: Tuple[ServiceTypeCode, ...] = field(
        default=(
            ServiceTypeCode.HEALTH_BENEFIT_PLAN_COVERAGE,
            ServiceTypeCode.MENTAL_HEALTH,
        )
    )


def normalize_payer_name_for_edi(name: Optional[str]) -> str:
    """Uppercase, strip punctuation and truncate to the NM103 payer length."""
    cleaned = re.sub(r"[^A-Z0-9\s]", "", (name or "").upper()).strip()
    return cleaned[:PAYER_NAME_MAX_LENGTH].rstrip()


# =============================================================================
# Generator
# =============================================================================


class X12270Generator:
    """
    X12 270 Eligibility Inquiry Generator.

    Usage:
        generator = X12270Generator()
        transaction = generator.generate(inquiry)
        segment_ids = [s.segment_id for s in transaction]
    """

    def __init__(self, reserved_characters: str = RESERVED_CHARACTERS):
        self.reserved_characters = frozenset(reserved_characters)

    def generate(
        self, inquiry: EligibilityInquiry, now: Optional[datetime] = None
    ) -> X12Transaction:
        """
        Generate X12 270 eligibility inquiry.

        Args:
            inquiry: EligibilityInquiry with subscriber, payer and provider data
            now: Transaction timestamp (defaults to the current time)

        Returns:
            X12Transaction with the ordered 270 segments

        Raises:
            X12ValidationError: If a value contains a delimiter character
        """
        now = now or datetime.now()
        control_number = self._generate_control_number()
        trace_id = self._generate_trace_id(now)

        segments: List[X12Segment] = [
            self._segment(SegmentID.ST, "270", control_number),
            self._segment(
                SegmentID.BHT,
                "0022",  # Hierarchical Structure Code
                "13",  # Transaction Set Purpose Code (13=Request)
                trace_id,
                format_x12_date(now.date()),
                format_x12_time(now),
            ),
            # HL*1 - Information Source Level (Payer)
            self._segment(SegmentID.HL, "1", "", "20", "1"),
            self._build_payer_nm1(inquiry),
            # HL*2 - Information Receiver Level (Provider)
            self._segment(SegmentID.HL, "2", "1", "21", "1"),
            self._build_provider_nm1(inquiry),
            # HL*3 - Subscriber Level
            self._segment(SegmentID.HL, "3", "2", "22", "0"),
        ]
        segments.extend(self._build_subscriber_loop(inquiry))

        # DTP - Service Date
        segments.append(
            self._segment(SegmentID.DTP, "291", "D8", format_x12_date(inquiry.service_date))
        )

        # EQ - Eligibility or Benefit Inquiry
        for service_type in inquiry.service_type_codes:
            segments.append(self._segment(SegmentID.EQ, ServiceTypeCode(service_type).value))

        # SE - Transaction Set Trailer (count includes ST and SE)
        segments.append(self._segment(SegmentID.SE, str(len(segments) + 1), control_number))

        return X12Transaction(
            segments=segments,
            control_number=control_number,
            trace_id=trace_id,
        )

    def _segment(self, segment_id: SegmentID, *elements: str) -> X12Segment:
        """Build a segment from elements, rejecting delimiter characters."""
        for position, value in enumerate(elements, start=1):
            if self.reserved_characters.intersection(value):
                # Value left out of the message, it may be PHI
                raise X12ValidationError(
                    "Element contains a reserved delimiter character",
                    segment_id=segment_id.value,
                    element_position=position,
                )
        return X12Segment(segment_id=segment_id.value, elements=list(elements))

    def _build_payer_nm1(self, inquiry: EligibilityInquiry) -> X12Segment:
        """Build payer NM1 segment."""
        return self._segment(
            SegmentID.NM1,
            "PR",  # Entity ID Code (Payer)
            "2",  # Entity Type (Organization)
            normalize_payer_name_for_edi(inquiry.payer_name),
            "",  # First Name (empty for org)
            "",  # Middle Name
            "",  # Prefix
            "",  # Suffix
            "PI",  # ID Code Qualifier
            inquiry.payer_id or "",
        )

    def _build_provider_nm1(self, inquiry: EligibilityInquiry) -> X12Segment:
        """Build provider NM1 segment."""
        return self._segment(
            SegmentID.NM1,
            "1P",  # Provider
            "2",  # Organization
            inquiry.provider_name[:60],
            "",
            "",
            "",
            "",
            "XX",  # NPI
            inquiry.provider_npi,
        )

    def _build_subscriber_loop(self, inquiry: EligibilityInquiry) -> List[X12Segment]:
        """Build subscriber loop segments."""
        segments = [
            self._segment(
                SegmentID.NM1,
                "IL",  # Insured/Subscriber
                "1",  # Person
                inquiry.subscriber_last_name[:60],
                inquiry.subscriber_first_name[:35],
                "",  # Middle
                "",  # Prefix
                "",  # Suffix
                "MI",  # Member ID
                inquiry.member_id,
            ),
            self._segment(SegmentID.REF, "0F", inquiry.member_id),
        ]

        if inquiry.group_number:
            segments.append(self._segment(SegmentID.REF, "1L", inquiry.group_number))

        if inquiry.date_of_birth:
            segments.append(
                self._segment(SegmentID.DMG, "D8", format_x12_date(inquiry.date_of_birth))
            )

        return segments

    def _generate_control_number(self) -> str:
        """Generate a nine digit control number."""
        return f"{random.randint(1, 999_999_999):09d}"

    def _generate_trace_id(self, now: datetime) -> str:
        return f"DYBK{now.strftime('%Y%m%d%H%M%S')}{random.randint(1000, 9999)}"
