"""
X12 271 Eligibility Response Parser.

Decodes raw X12 271 payloads into an X12Transaction and exposes typed
views over the EB (benefit) and AAA (request validation) segments.
Interpreting those views is the job of the coverage extractor and the
error classifier.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union
import logging

from eligibility_verifier.services.edi.x12_base import (
    SegmentID,
    X12ParseError,
    X12Segment,
    X12Tokenizer,
    X12Transaction,
    parse_x12_amount,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class EligibilityStatus(str, Enum):
    """Eligibility or benefit information codes from EB01."""

    ACTIVE = "1"  # Active Coverage
    ACTIVE_FULL_RISK = "2"
    ACTIVE_SERVICES = "3"
    ACTIVE_SERVICES_PRIMARY = "4"
    ACTIVE_PENDING = "5"
    INACTIVE = "6"
    INACTIVE_PENDING = "7"
    INACTIVE_PENDING_INVESTIGATION = "8"
    COINSURANCE = "A"
    COPAYMENT = "B"
    DEDUCTIBLE = "C"
    NON_COVERED = "I"
    OTHER_UNLISTED = "R"


# EB01 codes that deny coverage for the service type they name
NOT_COVERED_STATUSES = frozenset(
    {
        EligibilityStatus.INACTIVE.value,
        EligibilityStatus.INACTIVE_PENDING.value,
        EligibilityStatus.INACTIVE_PENDING_INVESTIGATION.value,
        EligibilityStatus.NON_COVERED.value,
    }
)


class TimePeriod(str, Enum):
    """Time period qualifiers from EB06 used by the extractor."""

    VISIT = "27"
    REMAINING = "29"
    CALENDAR_YEAR = "23"
    SERVICE_YEAR = "22"


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class BenefitInfo:
    """Typed view of one EB segment."""

    status_code: str
    coverage_level: str = ""
    service_types: List[str] = field(default_factory=list)
    insurance_type: str = ""
    time_period: str = ""
    monetary_amount: Optional[Decimal] = None
    percent: Optional[Decimal] = None
    in_plan_network: Optional[bool] = None
    procedure_qualifier: str = ""
    procedure_code: str = ""

    @property
    def is_not_covered(self) -> bool:
        return self.status_code in NOT_COVERED_STATUSES

    @property
    def is_remaining(self) -> bool:
        return self.time_period == TimePeriod.REMAINING.value


@dataclass
class RequestRejection:
    """Typed view of one AAA segment."""

    valid_request: bool
    reject_reason_code: str
    follow_up_code: str = ""

    @property
    def payer_code(self) -> str:
        return f"AAA{self.reject_reason_code}"


# =============================================================================
# Parser
# =============================================================================


class X12271Parser:
    """
    X12 271 Eligibility Response Parser.

    Usage:
        parser = X12271Parser()
        transaction = parser.parse(x12_content)
        benefits = [parser.parse_benefit(s) for s in transaction.find_segments("EB")]
    """

    def __init__(self, tokenizer: Optional[X12Tokenizer] = None):
        self.tokenizer = tokenizer or X12Tokenizer()

    def parse(self, content: Union[str, bytes]) -> X12Transaction:
        """
        Parse X12 content into a transaction.

        Envelope segments (ISA/GS/GE/IEA) and tags the codec does not
        interpret are kept in order.

        Raises:
            X12ParseError: If content is empty or not valid X12
        """
        segments = self.tokenizer.tokenize(content)

        control_number = ""
        trace_id = ""
        for seg in segments:
            if seg.segment_id == SegmentID.ST.value and not control_number:
                control_number = seg.get_element(1)  # ST02
            elif seg.segment_id == SegmentID.BHT.value and not trace_id:
                trace_id = seg.get_element(2)  # BHT03
            elif seg.segment_id == SegmentID.TRN.value and not trace_id:
                trace_id = seg.get_element(1)  # TRN02

        logger.debug(
            f"Parsed X12 payload: segments={len(segments)} control_number={control_number}"
        )

        return X12Transaction(
            segments=segments,
            control_number=control_number,
            trace_id=trace_id,
            component_separator=self.tokenizer.component_separator,
            repetition_separator=self.tokenizer.repetition_separator,
        )

    def parse_benefit(self, seg: X12Segment) -> BenefitInfo:
        """Parse EB segment for eligibility/benefit information.

        Note: X12Segment uses 0-based indexing for elements.
        EB01 = elements[0], EB02 = elements[1], etc.
        """
        if seg.segment_id != SegmentID.EB.value:
            raise X12ParseError("Expected EB segment", segment_id=seg.segment_id)

        benefit = BenefitInfo(
            status_code=seg.get_element(0),  # EB01
            coverage_level=seg.get_element(1),  # EB02
            service_types=seg.get_repetitions(  # EB03
                2, self.tokenizer.repetition_separator
            ),
            insurance_type=seg.get_element(3),  # EB04
            time_period=seg.get_element(5),  # EB06
            monetary_amount=parse_x12_amount(seg.get_element(6)),  # EB07
            percent=parse_x12_amount(seg.get_element(7)),  # EB08
        )

        # In Plan Network (EB12 = index 11)
        in_network = seg.get_element(11)
        if in_network:
            benefit.in_plan_network = in_network == "Y"

        # Procedure composite (EB13 = index 12), e.g. HC:90837
        composite = seg.get_composite(12, self.tokenizer.component_separator)
        if composite:
            benefit.procedure_qualifier = composite[0]
            benefit.procedure_code = composite[1] if len(composite) > 1 else ""

        return benefit

    def parse_rejection(self, seg: X12Segment) -> RequestRejection:
        """Parse AAA segment for request validation errors.

        AAA01 = elements[0], AAA03 = elements[2], AAA04 = elements[3]
        """
        if seg.segment_id != SegmentID.AAA.value:
            raise X12ParseError("Expected AAA segment", segment_id=seg.segment_id)

        return RequestRejection(
            valid_request=seg.get_element(0) == "Y",
            reject_reason_code=seg.get_element(2),
            follow_up_code=seg.get_element(3),
        )
