"""
SQLAlchemy Models for Insurance Eligibility Verification.
"""

from eligibility_verifier.models.base import Base, JSONType, TimeStampedModel
from eligibility_verifier.models.insurance import InsuranceVerificationRecord

__all__ = [
    "Base",
    "JSONType",
    "TimeStampedModel",
    "InsuranceVerificationRecord",
]
