"""
X12 EDI Services for Eligibility Verification.

Provides:
- 270 eligibility inquiry generation (outbound)
- 271 eligibility response parsing (inbound)
- Coverage extraction and payer error classification
"""

from eligibility_verifier.services.edi.x12_base import (
    X12Segment,
    X12Transaction,
    X12Tokenizer,
    TransactionType,
    X12ValidationError,
    X12ParseError,
)
from eligibility_verifier.services.edi.x12_270_generator import (
    EligibilityInquiry,
    X12270Generator,
)
from eligibility_verifier.services.edi.x12_271_parser import (
    BenefitInfo,
    RequestRejection,
    X12271Parser,
)
from eligibility_verifier.services.edi.codec import X12Codec
from eligibility_verifier.services.edi.coverage_extractor import (
    CoverageExtraction,
    CoverageExtractor,
)
from eligibility_verifier.services.edi.error_classifier import (
    ErrorClassifier,
    error_severity,
)

__all__ = [
    # Base
    "X12Segment",
    "X12Transaction",
    "X12Tokenizer",
    "TransactionType",
    "X12ValidationError",
    "X12ParseError",
    # 270/271
    "EligibilityInquiry",
    "X12270Generator",
    "BenefitInfo",
    "RequestRejection",
    "X12271Parser",
    "X12Codec",
    # Interpretation
    "CoverageExtraction",
    "CoverageExtractor",
    "ErrorClassifier",
    "error_severity",
]
