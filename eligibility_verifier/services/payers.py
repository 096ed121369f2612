"""
Known payers and payer name normalization.

Shared by manual entry validation and the adapter factory.
"""

import re
from typing import Optional

OTHER_PAYER = "Other"

KNOWN_PAYERS: list[str] = [
    "Aetna",
    "Anthem Blue Cross",
    "Blue Cross Blue Shield",
    "Blue Shield of California",
    "Cigna",
    "Humana",
    "Kaiser Permanente",
    "Magellan Health",
    "Medi-Cal",
    "Optum",
    "Tricare",
    "UnitedHealthcare",
    OTHER_PAYER,
]


def normalize_payer_name(name: Optional[str]) -> str:
    """Case-fold and collapse whitespace for payer lookups."""
    return re.sub(r"\s+", " ", (name or "").strip()).casefold()


_KNOWN_NORMALIZED = frozenset(normalize_payer_name(p) for p in KNOWN_PAYERS)


def is_known_payer(name: Optional[str]) -> bool:
    """Check a payer name against the known payer list."""
    normalized = normalize_payer_name(name)
    return bool(normalized) and normalized in _KNOWN_NORMALIZED
