"""
Audit Trail.

Administrative writes (role changes, client creation, service status
changes, loyalty and discount edits, catalogue additions) each emit one
``AUDIT:`` log line whose payload is a JSON ``AuditEvent``.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from star_limpiezas.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event"]

# Flat values only.
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Who did what to which row, and when."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(), ensure_ascii=False)


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: Union[str, int],
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
) -> AuditEvent:
    """Record an administrative change.

    Args:
        logger: Destination logger.
        action: ``CREATE``, ``UPDATE``, ``DELETE``, ``UPDATE_ROLE``,
            ``STATUS_CONFIRMED`` and so on.
        entity_type: ``User``, ``Service``, ``CustomerLoyalty``,
            ``DiscountConfig``, ``Location``...
        entity_id: Key of the affected row.
        user_id: The acting administrator (or client, for own bookings).
        details: Extra flat context.

    Returns:
        The event that was logged.
    """
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        user_id=user_id,
        details=details or {},
    )
    logger.info(
        "AUDIT: %s", event.to_json(),
        extra={"event": "AUDIT", "action": action},
    )
    return event
