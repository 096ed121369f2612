"""
Unit Tests for Audit Sinks and Payer Lookups.
"""

import logging

import pytest

from eligibility_verifier.core.enums import AuditAction, VerificationStatus
from eligibility_verifier.services.audit import AuditEvent, InMemoryAuditSink, LoggingAuditSink
from eligibility_verifier.services.payers import (
    KNOWN_PAYERS,
    is_known_payer,
    normalize_payer_name,
)


def _event(insurance_id="ins-1", action=AuditAction.STATUS_CHANGED):
    return AuditEvent(
        insurance_id=insurance_id,
        action=action,
        previous_status=VerificationStatus.PENDING,
        new_status=VerificationStatus.IN_PROGRESS,
    )


class TestAuditEvent:
    def test_defaults(self):
        event = _event()

        assert event.event_id
        assert event.timestamp.tzinfo is not None
        assert event.compliance_tags == ["HIPAA"]
        assert event.details == {}


class TestInMemoryAuditSink:
    @pytest.mark.asyncio
    async def test_filters_by_record_and_action(self):
        sink = InMemoryAuditSink()
        await sink.record(_event("ins-1"))
        await sink.record(_event("ins-1", AuditAction.SELF_PAY_SELECTED))
        await sink.record(_event("ins-2"))

        assert len(sink.events_for("ins-1")) == 2
        assert len(sink.events_for("ins-1", AuditAction.SELF_PAY_SELECTED)) == 1

    @pytest.mark.asyncio
    async def test_trims_oldest(self):
        sink = InMemoryAuditSink(max_events=2)
        for insurance_id in ("a", "b", "c"):
            await sink.record(_event(insurance_id))

        assert [e.insurance_id for e in sink.events] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_clear(self):
        sink = InMemoryAuditSink()
        await sink.record(_event())
        sink.clear()
        assert sink.events == []


class TestLoggingAuditSink:
    @pytest.mark.asyncio
    async def test_logs_event(self, caplog):
        caplog.set_level(logging.INFO, logger="eligibility_verifier.audit")

        await LoggingAuditSink().record(_event())

        assert "AUDIT VERIFICATION_STATUS_CHANGED insurance=ins-1 pending -> in_progress" in caplog.text


class TestPayers:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("  Blue   Shield of  California ", "blue shield of california"),
            ("AETNA", "aetna"),
            (None, ""),
        ],
    )
    def test_normalize(self, name, expected):
        assert normalize_payer_name(name) == expected

    def test_known(self):
        assert all(is_known_payer(p) for p in KNOWN_PAYERS)
        assert is_known_payer("cigna")
        assert not is_known_payer("Acme Insurance")
        assert not is_known_payer("")
