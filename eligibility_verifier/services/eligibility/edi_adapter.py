"""
Generic EDI 270/271 Eligibility Adapter.

Works with any payer reachable through a clearinghouse that speaks X12:

1. Build a 270 inquiry from the insurance snapshot
2. Send it through the transport, bounded by the adapter timeout
3. Decode the 271, then classify AAA errors or extract coverage

Every expected failure (timeouts, connectivity, malformed payloads,
payer rejections) is folded into a FAILED or MANUAL_REVIEW result.
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional

from eligibility_verifier.core.config import EligibilitySettings
from eligibility_verifier.core.enums import ErrorCategory
from eligibility_verifier.schemas.verification import (
    InsuranceSnapshot,
    VerificationError,
    VerificationResult,
)
from eligibility_verifier.services.edi.codec import X12Codec
from eligibility_verifier.services.edi.coverage_extractor import CoverageExtractor
from eligibility_verifier.services.edi.error_classifier import ErrorClassifier
from eligibility_verifier.services.edi.x12_270_generator import EligibilityInquiry
from eligibility_verifier.services.edi.x12_base import (
    X12ParseError,
    X12Transaction,
    X12ValidationError,
)
from eligibility_verifier.services.eligibility.base_adapter import BaseEligibilityAdapter
from eligibility_verifier.services.eligibility.transport import (
    Transport,
    TransportError,
    TransportTimeoutError,
)
from eligibility_verifier.utils.logging import mask_member_id

logger = logging.getLogger(__name__)


class EdiAdapter(BaseEligibilityAdapter):
    """
    EDI 270/271 eligibility adapter.

    Usage:
        adapter = EdiAdapter(transport=SimulatedTransport())
        result = await adapter.verify_eligibility(record.snapshot())
        result.status  # VerificationResultStatus.VERIFIED
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        settings: Optional[EligibilitySettings] = None,
        timeout_seconds: Optional[float] = None,
        codec: Optional[X12Codec] = None,
    ):
        super().__init__(transport=transport, settings=settings, timeout_seconds=timeout_seconds)
        self.codec = codec or X12Codec()
        self.extractor = CoverageExtractor()
        self.classifier = ErrorClassifier()

    async def verify_eligibility(self, snapshot: InsuranceSnapshot) -> VerificationResult:
        missing = self._missing_fields(snapshot)
        if missing:
            logger.warning(
                f"Eligibility check for insurance {snapshot.id} missing fields: {', '.join(missing)}"
            )
            return self.build_result(
                eligible=False,
                error=VerificationError(
                    code="MISSING_REQUIRED_FIELDS",
                    category=ErrorCategory.UNKNOWN,
                    message=f"Missing required fields: {', '.join(missing)}",
                    retryable=False,
                ),
            )

        try:
            request = self.codec.encode(self.build_inquiry(snapshot))
        except X12ValidationError as e:
            logger.warning(f"Cannot build 270 for insurance {snapshot.id}: {e}")
            return self.build_result(
                eligible=False,
                error=VerificationError(
                    code="INVALID_FIELD_VALUE",
                    category=ErrorCategory.UNKNOWN,
                    message="Insurance details contain characters that cannot be sent to the payer",
                    retryable=False,
                ),
            )

        logger.info(
            f"Sending 270 for insurance {snapshot.id} member {mask_member_id(snapshot.member_id)} "
            f"control_number={request.control_number}"
        )

        try:
            raw_response = await asyncio.wait_for(
                self.transport.send(self.codec.serialize(request), trace_id=request.trace_id),
                timeout=self.timeout_seconds,
            )
            response = self.codec.decode(raw_response)
        except (asyncio.TimeoutError, TransportTimeoutError):
            logger.error(f"EDI verification timeout for insurance {snapshot.id}")
            return self.build_result(eligible=None, error=self.timeout_error())
        except TransportError as e:
            logger.error(f"EDI verification network error for insurance {snapshot.id}: {e}")
            return self.build_result(eligible=None, error=self.network_error(e))
        except X12ParseError as e:
            logger.error(f"Malformed 271 for insurance {snapshot.id}: {e}")
            return self.build_result(
                eligible=False,
                error=VerificationError(
                    code="MALFORMED_RESPONSE",
                    category=ErrorCategory.UNKNOWN,
                    message="Payer response could not be parsed",
                    retryable=True,
                ),
            )
        except Exception as e:
            logger.exception(
                f"EDI verification failed for insurance {snapshot.id}: {type(e).__name__}"
            )
            return self.build_result(
                eligible=False,
                error=VerificationError(
                    code="VERIFICATION_ERROR",
                    category=ErrorCategory.UNKNOWN,
                    message="Verification processing error",
                    retryable=True,
                ),
            )

        result = self.interpret(response)
        logger.info(
            f"Eligibility check for insurance {snapshot.id} completed: status={result.status.value}"
        )
        return result

    def interpret(self, response: X12Transaction) -> VerificationResult:
        """Turn a decoded 271 into a verification result."""
        extraction = self.extractor.extract(response)

        if extraction.has_errors:
            error = self.classifier.classify(extraction.error_segments)
            return self.build_result(eligible=False, error=error)

        if extraction.eligible:
            return self.build_result(eligible=True, coverage=extraction.coverage)

        if extraction.coverage_unclear:
            return self.build_result(
                eligible=None,
                coverage=extraction.coverage,
                error=VerificationError(
                    code="MENTAL_HEALTH_UNCLEAR",
                    category=ErrorCategory.UNKNOWN,
                    message="Mental health coverage unclear - general coverage exists",
                    retryable=True,
                    needs_review=True,
                ),
            )

        return self.build_result(
            eligible=False,
            error=VerificationError(
                code="NO_ACTIVE_COVERAGE",
                category=ErrorCategory.COVERAGE_NOT_ACTIVE,
                message="No active coverage found in payer response",
                retryable=False,
            ),
        )

    def build_inquiry(
        self, snapshot: InsuranceSnapshot, service_date: Optional[date] = None
    ) -> EligibilityInquiry:
        """Build a fresh 270 inquiry for one attempt."""
        return EligibilityInquiry(
            subscriber_first_name=snapshot.subscriber_first_name,
            subscriber_last_name=snapshot.subscriber_last_name,
            member_id=snapshot.member_id or "",
            payer_name=snapshot.payer_name or "",
            payer_id=snapshot.payer_id or "",
            group_number=snapshot.group_number or None,
            date_of_birth=snapshot.subscriber_dob,
            provider_name=self.settings.PROVIDER_NAME,
            provider_npi=self.settings.PROVIDER_NPI,
            service_date=service_date or date.today(),
        )

    @staticmethod
    def _missing_fields(snapshot: InsuranceSnapshot) -> List[str]:
        missing = []
        if not (snapshot.member_id or "").strip():
            missing.append("member_id")
        if not (snapshot.payer_name or "").strip():
            missing.append("payer_name")
        return missing
