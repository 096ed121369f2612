"""
Base Eligibility Adapter.

Abstract base class for payer adapters plus the shared helpers that stamp
results and build transport-level errors. Payer-specific adapters subclass
this and are registered with the adapter factory.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from eligibility_verifier.core.config import EligibilitySettings, get_settings
from eligibility_verifier.core.enums import ErrorCategory
from eligibility_verifier.schemas.verification import (
    Coverage,
    InsuranceSnapshot,
    VerificationError,
    VerificationResult,
)
from eligibility_verifier.services.eligibility.transport import Transport, build_transport


class BaseEligibilityAdapter(ABC):
    """
    Abstract base class for eligibility adapters.

    ``verify_eligibility`` never raises for expected payer or transport
    failures; they come back as FAILED or MANUAL_REVIEW results.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        settings: Optional[EligibilitySettings] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize adapter.

        Args:
            transport: Transport to the payer (built from settings when omitted)
            settings: Eligibility settings
            timeout_seconds: Upper bound for one transport round trip
        """
        self.settings = settings or get_settings()
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else self.settings.TIMEOUT_SECONDS
        )
        self.transport = transport or build_transport(self.settings)

    @abstractmethod
    async def verify_eligibility(self, snapshot: InsuranceSnapshot) -> VerificationResult:
        """Verify coverage for one insurance snapshot."""
        pass

    # -------------------------------------------------------------------------
    # Result helpers
    # -------------------------------------------------------------------------

    def build_result(
        self,
        eligible: Optional[bool],
        coverage: Optional[Coverage] = None,
        error: Optional[VerificationError] = None,
    ) -> VerificationResult:
        """Build a result stamped with the current time and a fresh response ID."""
        return VerificationResult.build(
            eligible=eligible,
            coverage=coverage,
            error=error,
            verified_at=datetime.now(timezone.utc),
            response_id=self.generate_response_id(),
        )

    @staticmethod
    def generate_response_id() -> str:
        return f"eligibility-{uuid4()}"

    def timeout_error(self) -> VerificationError:
        return VerificationError(
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            message=f"Verification timed out after {self.timeout_seconds:g} seconds",
            retryable=True,
        )

    def network_error(self, exc: Exception) -> VerificationError:
        return VerificationError(
            code="NETWORK_ERROR",
            category=ErrorCategory.NETWORK_ERROR,
            message=f"Network error: {exc}",
            retryable=True,
        )
