"""
Verification Audit Sinks.

Records status changes and verification outcomes for compliance review.
Events identify records by ID only and never carry member IDs or names.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from eligibility_verifier.core.enums import AuditAction, VerificationStatus

logger = logging.getLogger(__name__)


class AuditEvent(BaseModel):
    """Verification audit event."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    insurance_id: str
    onboarding_session_id: Optional[str] = None
    action: AuditAction
    previous_status: Optional[VerificationStatus] = None
    new_status: Optional[VerificationStatus] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    details: dict[str, Any] = Field(default_factory=dict)

    # Compliance tags
    compliance_tags: list[str] = Field(default_factory=lambda: ["HIPAA"])


class AuditSink(ABC):
    """Destination for audit events."""

    @abstractmethod
    async def record(self, event: AuditEvent) -> None:
        """Persist one audit event."""
        pass


class InMemoryAuditSink(AuditSink):
    """Keeps events in memory; used in demo mode and tests."""

    def __init__(self, max_events: int = 100000):
        """Initialize InMemoryAuditSink.

        Args:
            max_events: Maximum events to keep in memory
        """
        self._max_events = max_events
        self._events: list[AuditEvent] = []

    async def record(self, event: AuditEvent) -> None:
        self._events.append(event)

        # Trim if exceeding max
        if len(self._events) > self._max_events:
            self._events = self._events[-self._max_events :]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    def events_for(
        self, insurance_id: str, action: Optional[AuditAction] = None
    ) -> list[AuditEvent]:
        """Events for one record, optionally filtered by action."""
        return [
            e
            for e in self._events
            if e.insurance_id == insurance_id and (action is None or e.action == action)
        ]

    def clear(self) -> None:
        self._events.clear()


class LoggingAuditSink(AuditSink):
    """Writes audit events to the ``eligibility_verifier.audit`` logger."""

    def __init__(self, logger_name: str = "eligibility_verifier.audit"):
        self._logger = logging.getLogger(logger_name)

    async def record(self, event: AuditEvent) -> None:
        self._logger.info(
            f"AUDIT {event.action.value} insurance={event.insurance_id} "
            f"{_status_value(event.previous_status)} -> {_status_value(event.new_status)} "
            f"event_id={event.event_id}"
        )


def _status_value(status: Optional[VerificationStatus]) -> str:
    return status.value if status is not None else "-"
