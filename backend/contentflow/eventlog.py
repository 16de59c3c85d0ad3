"""Utilities for recording content record timeline events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from . import models

# purpose: persist the per-record review and production history with sequential ordering
# inputs: SQLAlchemy session, content record id, event metadata
# outputs: ContentEvent rows ordered by per-record sequence
# status: active


def record_content_event(
    db: Session,
    record_id: UUID,
    event_type: str,
    payload: dict[str, Any],
    actor_id: UUID | None = None,
) -> models.ContentEvent:
    """Persist a structured event on the record timeline.

    Callers write events only after a successful conditional update on the
    record, so the row lock already serializes sequence numbering.
    """

    payload_dict = payload if isinstance(payload, dict) else {}
    latest = (
        db.query(models.ContentEvent)
        .filter(models.ContentEvent.record_id == record_id)
        .order_by(models.ContentEvent.sequence.desc())
        .first()
    )
    next_sequence = 1 if latest is None else latest.sequence + 1
    event = models.ContentEvent(
        record_id=record_id,
        event_type=event_type,
        payload=payload_dict,
        actor_id=actor_id,
        sequence=next_sequence,
        created_at=datetime.now(timezone.utc),
    )
    db.add(event)
    db.flush()
    return event


def list_content_events(db: Session, record_id: UUID) -> list[models.ContentEvent]:
    return (
        db.query(models.ContentEvent)
        .filter(models.ContentEvent.record_id == record_id)
        .order_by(models.ContentEvent.sequence.asc())
        .all()
    )
