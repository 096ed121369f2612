"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

import os
from datetime import date
from uuid import uuid4

import pytest

from eligibility_verifier.core.config import EligibilitySettings, reset_settings
from eligibility_verifier.db.repository import InMemoryInsuranceRepository
from eligibility_verifier.schemas.verification import InsuranceRecord
from eligibility_verifier.services.audit import InMemoryAuditSink
from eligibility_verifier.services.eligibility.adapter_factory import AdapterFactory
from eligibility_verifier.services.eligibility.transport import SimulatedTransport
from eligibility_verifier.services.verification_service import VerificationService


# =============================================================================
# Sample X12 Content
# =============================================================================


SAMPLE_271_ACTIVE_MH = (
    "ST*271*0001~"
    "BHT*0022*11*TRACE123*20260101*1200~"
    "HL*1**20*1~"
    "NM1*PR*2*AETNA*****PI*60054~"
    "HL*2*1*21*1~"
    "NM1*1P*2*DAYBREAK HEALTH*****XX*1234567893~"
    "HL*3*2*22*0~"
    "NM1*IL*1*DOE*JANE****MI*ABC123456~"
    "EB*1*IND*MH~"
    "EB*B*IND*MH***27*25.00~"
    "EB*C*IND*30***23*1500.00~"
    "EB*C*IND*30***29*900.00~"
    "EB*A*IND*30*****0.20~"
    "DTP*348*D8*20260101~"
    "DTP*349*D8*20261231~"
    "SE*16*0001~"
)

SAMPLE_271_GENERAL_ONLY = (
    "ST*271*0002~"
    "BHT*0022*11*TRACE456~"
    "HL*1**20*1~"
    "HL*3*2*22*0~"
    "EB*1*IND*30~"
    "EB*B*IND*30***27*40.00~"
    "SE*7*0002~"
)

SAMPLE_271_REJECTED = (
    "ST*271*0003~"
    "BHT*0022*11*TRACE789~"
    "HL*1**20*1~"
    "NM1*PR*2*AETNA*****PI*60054~"
    "AAA*N**42*C~"
    "SE*6*0003~"
)


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Keep environment overrides and cached settings out of every test."""
    for key in list(os.environ):
        if key.startswith("ELIGIBILITY_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    """Simulator settings with a short transport timeout."""
    return EligibilitySettings(
        _env_file=None,
        TEST_MODE=True,
        TIMEOUT_SECONDS=0.2,
        SIMULATED_TIMEOUT_DELAY_SECONDS=2.0,
        PROVIDER_NPI="1234567893",
    )


# =============================================================================
# Workflow Fixtures
# =============================================================================


@pytest.fixture
def repository():
    return InMemoryInsuranceRepository()


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def transport(settings):
    return SimulatedTransport(settings=settings)


@pytest.fixture
def verification_service(repository, audit_sink, settings, transport):
    return VerificationService(
        repository=repository,
        audit_sink=audit_sink,
        settings=settings,
        transport=transport,
    )


@pytest.fixture
def adapter_registry():
    """Snapshot and restore the payer adapter overrides."""
    saved = dict(AdapterFactory.adapters)
    yield AdapterFactory.adapters
    AdapterFactory.adapters.clear()
    AdapterFactory.adapters.update(saved)


def make_record(**overrides) -> InsuranceRecord:
    """Build an insurance record ready for a first verification attempt."""
    data = {
        "id": str(uuid4()),
        "onboarding_session_id": str(uuid4()),
        "payer_name": "Aetna",
        "payer_id": "60054",
        "member_id": "ABC123456",
        "group_number": "GRP1234",
        "subscriber_name": "Jane Doe",
        "subscriber_dob": date(1985, 4, 12),
    }
    data.update(overrides)
    return InsuranceRecord(**data)


@pytest.fixture
def record_factory(repository):
    """Create and store insurance records."""

    async def _create(**overrides) -> InsuranceRecord:
        record = make_record(**overrides)
        await repository.add(record)
        return record

    return _create
