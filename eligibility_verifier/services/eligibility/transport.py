"""
Eligibility Transports.

A transport carries one serialized 270 to a payer and returns the raw 271.

- ClearinghouseTransport: JSON over HTTPS with httpx
- SimulatedTransport: canned 271 payloads keyed on member ID markers
Source: https://www.python-httpx.org/async/
Verified: 2026-10-19
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

import httpx

from eligibility_verifier.core.config import EligibilitySettings, get_settings
from eligibility_verifier.services.edi.x12_base import (
    SegmentID,
    X12ParseError,
    X12Tokenizer,
    format_x12_date,
)
from eligibility_verifier.utils.errors import ConfigurationError
from eligibility_verifier.utils.logging import mask_member_id

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class TransportError(Exception):
    """The payer could not be reached or answered with a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class TransportTimeoutError(TransportError):
    """The transport gave up waiting for the payer."""

    pass


# =============================================================================
# Interface
# =============================================================================


class Transport(ABC):
    """Sends a serialized 270 and returns the raw 271 response."""

    @abstractmethod
    async def send(self, raw: str, trace_id: Optional[str] = None) -> str:
        """
        Send one transaction.

        Raises:
            TransportError: On connectivity or HTTP failures
        """
        pass

    async def aclose(self) -> None:
        """Release any held resources."""
        return None


# =============================================================================
# Clearinghouse
# =============================================================================


class ClearinghouseTransport(Transport):
    """
    POSTs the 270 to a clearinghouse as JSON and reads the 271 back.

    Request body: ``{"transaction": <x12>, "trace_id": <id>}``.
    The 271 is read from ``response`` or ``edi_response`` in the reply.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not endpoint:
            raise ValueError("Clearinghouse endpoint is required")
        self.endpoint = endpoint
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds)
        )

    @classmethod
    def from_settings(
        cls, settings: Optional[EligibilitySettings] = None
    ) -> "ClearinghouseTransport":
        settings = settings or get_settings()
        return cls(
            endpoint=settings.CLEARINGHOUSE_ENDPOINT or "",
            api_key=settings.CLEARINGHOUSE_API_KEY or "",
            timeout_seconds=settings.TIMEOUT_SECONDS,
            connect_timeout_seconds=settings.CLEARINGHOUSE_CONNECT_TIMEOUT,
        )

    async def send(self, raw: str, trace_id: Optional[str] = None) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        payload = {"transaction": raw, "trace_id": trace_id}

        try:
            response = await self._client.post(self.endpoint, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportTimeoutError(f"Clearinghouse request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Clearinghouse request failed: {e}") from e

        if not response.is_success:
            logger.error(
                f"EDI clearinghouse error: {response.status_code} trace_id={trace_id}"
            )
            raise TransportError(
                f"Clearinghouse returned error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Clearinghouse returned a non-JSON body trace_id={trace_id}")
            return ""

        if not isinstance(data, dict):
            return ""
        return data.get("response") or data.get("edi_response") or ""

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


# =============================================================================
# Simulator
# =============================================================================


class SimulatedTransport(Transport):
    """
    Test-mode transport returning canned 271 payloads.

    Member ID markers (case-insensitive):
    - INVALID: AAA reject 42 (member not found)
    - INACTIVE: AAA reject 56 (coverage not active)
    - NOMENTAL: general coverage only
    - TIMEOUT: waits longer than the adapter timeout
    Anything else gets full mental health coverage.
    """

    def __init__(
        self,
        settings: Optional[EligibilitySettings] = None,
        timeout_delay_seconds: Optional[float] = None,
    ):
        settings = settings or get_settings()
        self.timeout_delay_seconds = (
            timeout_delay_seconds
            if timeout_delay_seconds is not None
            else settings.simulated_timeout_delay
        )
        self.calls = 0

    async def send(self, raw: str, trace_id: Optional[str] = None) -> str:
        self.calls += 1
        member_id = self._member_id(raw)
        marker = (member_id or "").upper()
        logger.debug(f"Simulating 271 for member {mask_member_id(member_id)}")

        if "INVALID" in marker:
            return self._error_response("42")
        if "INACTIVE" in marker:
            return self._error_response("56")
        if "NOMENTAL" in marker:
            return self._general_only_response()
        if "TIMEOUT" in marker:
            await asyncio.sleep(self.timeout_delay_seconds)
        return self._success_response()

    def _member_id(self, raw: str) -> Optional[str]:
        try:
            segments = X12Tokenizer().tokenize(raw)
        except X12ParseError:
            return None

        for seg in segments:
            if seg.segment_id == SegmentID.REF.value and seg.get_element(0) == "0F":
                return seg.get_element(1)
        for seg in segments:
            if seg.segment_id == SegmentID.NM1.value and seg.get_element(0) == "IL":
                return seg.get_element(8)
        return None

    def _wrap(self, body: List[str]) -> str:
        segments = ["ST*271*0001", "BHT*0022*11*SIMULATED", *body]
        segments.append(f"SE*{len(segments) + 1}*0001")
        return "~".join(segments) + "~"

    def _error_response(self, reason_code: str) -> str:
        return self._wrap(
            [
                "HL*1**20*1",
                "NM1*PR*2*SIMULATED PAYER*****PI*SIM",
                f"AAA*N**{reason_code}*C",
            ]
        )

    def _general_only_response(self) -> str:
        return self._wrap(
            [
                "HL*1**20*1",
                "HL*3*2*22*0",
                "EB*1*IND*30",
            ]
        )

    def _success_response(self) -> str:
        return self._wrap(
            [
                "HL*1**20*1",
                "HL*3*2*22*0",
                "EB*1*IND*MH",
                "EB*B*IND*MH***27*25.00",
                "EB*C*IND*30***23*500.00",
                "EB*C*IND*30***29*350.00",
                "EB*A*IND*30*****0.20",
                f"DTP*348*D8*{format_x12_date(date.today())}",
            ]
        )


def build_transport(settings: Optional[EligibilitySettings] = None) -> Transport:
    """
    Simulator in test mode, clearinghouse otherwise.

    Raises:
        ConfigurationError: Test mode is off and no endpoint is configured
    """
    settings = settings or get_settings()
    if settings.TEST_MODE:
        return SimulatedTransport(settings=settings)
    if not settings.CLEARINGHOUSE_ENDPOINT:
        logger.error("ELIGIBILITY_CLEARINGHOUSE_ENDPOINT is not set and test mode is off")
        raise ConfigurationError(
            "Clearinghouse endpoint required when ELIGIBILITY_TEST_MODE is false"
        )
    return ClearinghouseTransport.from_settings(settings)
