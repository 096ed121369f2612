"""
Payer eligibility adapters and transports.
"""

from eligibility_verifier.services.eligibility.transport import (
    ClearinghouseTransport,
    SimulatedTransport,
    Transport,
    TransportError,
    TransportTimeoutError,
    build_transport,
)
from eligibility_verifier.services.eligibility.base_adapter import BaseEligibilityAdapter
from eligibility_verifier.services.eligibility.edi_adapter import EdiAdapter
from eligibility_verifier.services.eligibility.adapter_factory import AdapterFactory

__all__ = [
    "ClearinghouseTransport",
    "SimulatedTransport",
    "Transport",
    "TransportError",
    "TransportTimeoutError",
    "build_transport",
    "BaseEligibilityAdapter",
    "EdiAdapter",
    "AdapterFactory",
]
