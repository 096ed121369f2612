"""
Coverage Extractor for decoded 271 responses.

Turns EB/DTP segments into a Coverage model and an eligibility decision
centred on mental health benefits:

- AAA present: stop, hand the segments to the error classifier
- MH service type or psychiatric CPT (90791-90899): eligible
- Only general (service type 30 or blank) active coverage: unclear
- Nothing usable: not eligible
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional
import logging

from eligibility_verifier.schemas.verification import (
    Coinsurance,
    Copay,
    Coverage,
    Deductible,
)
from eligibility_verifier.services.edi.x12_270_generator import ServiceTypeCode
from eligibility_verifier.services.edi.x12_271_parser import (
    BenefitInfo,
    EligibilityStatus,
    X12271Parser,
)
from eligibility_verifier.services.edi.x12_base import (
    SegmentID,
    X12Segment,
    X12Tokenizer,
    X12Transaction,
    parse_dtp_date,
)

logger = logging.getLogger(__name__)

# Psychiatric services CPT range
MENTAL_HEALTH_CPT_MIN = 90791
MENTAL_HEALTH_CPT_MAX = 90899

DTP_EFFECTIVE_DATE = "348"
DTP_TERMINATION_DATE = "349"


@dataclass
class CoverageExtraction:
    """What the extractor could determine from one 271."""

    eligible: Optional[bool] = None
    coverage: Optional[Coverage] = None
    coverage_unclear: bool = False
    error_segments: List[X12Segment] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.error_segments)


def is_mental_health_cpt(code: str) -> bool:
    """Check whether a procedure code is in the psychiatric CPT range."""
    if not code or not code.isdigit():
        return False
    return MENTAL_HEALTH_CPT_MIN <= int(code) <= MENTAL_HEALTH_CPT_MAX


class CoverageExtractor:
    """
    Extract coverage from a decoded 271 transaction.

    Usage:
        extraction = CoverageExtractor().extract(transaction)
        if extraction.has_errors:
            error = ErrorClassifier().classify(extraction.error_segments)
    """

    def extract(self, transaction: X12Transaction) -> CoverageExtraction:
        error_segments = transaction.find_segments(SegmentID.AAA.value)
        if error_segments:
            return CoverageExtraction(eligible=False, error_segments=error_segments)

        parser = X12271Parser(
            X12Tokenizer(
                component_separator=transaction.component_separator,
                repetition_separator=transaction.repetition_separator,
            )
        )
        benefits = [
            parser.parse_benefit(seg) for seg in transaction.find_segments(SegmentID.EB.value)
        ]

        mental_health = self._find_mental_health(benefits)
        general = self._find_general(benefits)

        if mental_health is None and general is None:
            logger.info("271 response carries no active coverage")
            return CoverageExtraction(eligible=False)

        coverage = Coverage(
            mental_health_covered=mental_health is not None,
            copay=self._extract_copay(benefits),
            deductible=self._extract_deductible(benefits),
            coinsurance=self._extract_coinsurance(benefits),
            effective_date=self._extract_date(transaction, DTP_EFFECTIVE_DATE),
            termination_date=self._extract_date(transaction, DTP_TERMINATION_DATE),
        )

        if mental_health is not None:
            return CoverageExtraction(eligible=True, coverage=coverage)

        logger.info("271 response has general coverage only; mental health unclear")
        return CoverageExtraction(eligible=None, coverage=coverage, coverage_unclear=True)

    # -------------------------------------------------------------------------
    # Coverage detection
    # -------------------------------------------------------------------------

    def _is_mental_health(self, benefit: BenefitInfo) -> bool:
        if ServiceTypeCode.MENTAL_HEALTH.value in benefit.service_types:
            return True
        return is_mental_health_cpt(benefit.procedure_code)

    def _find_mental_health(self, benefits: List[BenefitInfo]) -> Optional[BenefitInfo]:
        for benefit in benefits:
            if benefit.is_not_covered:
                continue
            if self._is_mental_health(benefit):
                return benefit
        return None

    def _find_general(self, benefits: List[BenefitInfo]) -> Optional[BenefitInfo]:
        general_type = ServiceTypeCode.HEALTH_BENEFIT_PLAN_COVERAGE.value
        for benefit in benefits:
            if benefit.status_code != EligibilityStatus.ACTIVE.value:
                continue
            if not benefit.service_types or general_type in benefit.service_types:
                return benefit
        return None

    # -------------------------------------------------------------------------
    # Cost sharing
    # -------------------------------------------------------------------------

    def _extract_copay(self, benefits: List[BenefitInfo]) -> Optional[Copay]:
        copays = [
            b
            for b in benefits
            if b.status_code == EligibilityStatus.COPAYMENT.value
            and b.monetary_amount is not None
            and b.monetary_amount >= 0
        ]
        if not copays:
            return None

        # Prefer the copay quoted for mental health services
        preferred = next((b for b in copays if self._is_mental_health(b)), copays[0])
        return Copay(amount=preferred.monetary_amount)

    def _extract_deductible(self, benefits: List[BenefitInfo]) -> Optional[Deductible]:
        deductibles = [
            b
            for b in benefits
            if b.status_code == EligibilityStatus.DEDUCTIBLE.value
            and b.monetary_amount is not None
        ]
        total = next((b for b in deductibles if not b.is_remaining), None)
        if total is None or total.monetary_amount < 0:
            return None

        remaining = next((b for b in deductibles if b.is_remaining), None)
        met = Decimal("0")
        if remaining is not None:
            met = total.monetary_amount - remaining.monetary_amount
            met = min(max(met, Decimal("0")), total.monetary_amount)

        return Deductible(amount=total.monetary_amount, met=met)

    def _extract_coinsurance(self, benefits: List[BenefitInfo]) -> Optional[Coinsurance]:
        for benefit in benefits:
            if benefit.status_code != EligibilityStatus.COINSURANCE.value:
                continue
            if benefit.percent is None:
                continue
            percentage = int(
                (benefit.percent * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            )
            if 0 <= percentage <= 100:
                return Coinsurance(percentage=percentage)
            logger.warning(f"Ignoring out-of-range coinsurance fraction: {benefit.percent}")
        return None

    def _extract_date(self, transaction: X12Transaction, qualifier: str) -> Optional[date]:
        for seg in transaction.find_segments(SegmentID.DTP.value):
            if seg.get_element(0) != qualifier:
                continue
            parsed = parse_dtp_date(seg.get_element(1), seg.get_element(2))
            if parsed is None:
                logger.warning(f"Dropping malformed DTP*{qualifier} date")
            return parsed
        return None
