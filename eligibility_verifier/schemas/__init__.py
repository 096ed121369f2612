"""
Pydantic Schemas for Insurance Eligibility Verification.
"""

from eligibility_verifier.schemas.verification import (
    Coinsurance,
    Copay,
    Coverage,
    Deductible,
    InsuranceRecord,
    InsuranceSnapshot,
    ManualEntry,
    RetryHistoryEntry,
    VerificationError,
    VerificationResult,
)

__all__ = [
    "Coinsurance",
    "Copay",
    "Coverage",
    "Deductible",
    "InsuranceRecord",
    "InsuranceSnapshot",
    "ManualEntry",
    "RetryHistoryEntry",
    "VerificationError",
    "VerificationResult",
]
