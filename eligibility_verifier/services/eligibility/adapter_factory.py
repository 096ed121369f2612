"""
Eligibility Adapter Factory.

Selects the adapter for a payer. Every payer uses the generic EDI adapter
unless an override is registered for its normalized name. Overrides are
adapter classes or dotted import paths ("package.module:ClassName" or
"package.module.ClassName").
"""

import importlib
import logging
from typing import Dict, Optional, Type, Union

from eligibility_verifier.core.config import EligibilitySettings
from eligibility_verifier.services.eligibility.base_adapter import BaseEligibilityAdapter
from eligibility_verifier.services.eligibility.edi_adapter import EdiAdapter
from eligibility_verifier.services.eligibility.transport import Transport
from eligibility_verifier.services.payers import normalize_payer_name

logger = logging.getLogger(__name__)

AdapterSpec = Union[str, Type[BaseEligibilityAdapter]]

# Normalized payer name -> adapter override. Empty: all payers go through EDI.
PAYER_ADAPTERS: Dict[str, AdapterSpec] = {}


def _import_adapter(path: str) -> Type[BaseEligibilityAdapter]:
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ImportError(f"Invalid adapter path: {path!r}")

    adapter_class = getattr(importlib.import_module(module_name), attr)
    if not isinstance(adapter_class, type) or not issubclass(
        adapter_class, BaseEligibilityAdapter
    ):
        raise TypeError(f"{path!r} is not an eligibility adapter")
    return adapter_class


class AdapterFactory:
    """
    Factory for eligibility adapters.

    Usage:
        adapter = AdapterFactory.adapter_for(record.payer_name)
        result = await adapter.verify_eligibility(record.snapshot())
    """

    adapters: Dict[str, AdapterSpec] = PAYER_ADAPTERS

    @classmethod
    def adapter_for(
        cls,
        payer_name: Optional[str],
        transport: Optional[Transport] = None,
        settings: Optional[EligibilitySettings] = None,
    ) -> BaseEligibilityAdapter:
        """Instantiate the adapter registered for a payer, or the EDI adapter."""
        adapter_class = cls.find_adapter_class(payer_name)
        return adapter_class(transport=transport, settings=settings)

    @classmethod
    def find_adapter_class(cls, payer_name: Optional[str]) -> Type[BaseEligibilityAdapter]:
        spec = cls.adapters.get(normalize_payer_name(payer_name))
        if spec is None:
            return EdiAdapter

        if isinstance(spec, str):
            try:
                return _import_adapter(spec)
            except (ImportError, AttributeError, TypeError) as e:
                logger.warning(
                    f"Adapter class not found for {payer_name}: {e}, falling back to EDI"
                )
                return EdiAdapter

        if isinstance(spec, type) and issubclass(spec, BaseEligibilityAdapter):
            return spec

        logger.warning(f"Invalid adapter registered for {payer_name}, falling back to EDI")
        return EdiAdapter

    @classmethod
    def register(cls, payer_name: str, adapter: AdapterSpec) -> None:
        key = normalize_payer_name(payer_name)
        if not key:
            raise ValueError("Payer name is required")
        cls.adapters[key] = adapter
        logger.info(f"Registered custom eligibility adapter for {key}")

    @classmethod
    def unregister(cls, payer_name: str) -> None:
        cls.adapters.pop(normalize_payer_name(payer_name), None)

    @classmethod
    def has_custom_adapter(cls, payer_name: Optional[str]) -> bool:
        return normalize_payer_name(payer_name) in cls.adapters

    @classmethod
    def payers_with_custom_adapters(cls) -> list[str]:
        return sorted(cls.adapters)
