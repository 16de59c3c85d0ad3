"""Content record lookup, submission and logical deletion."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.orm import Session

from .. import models
from ..eventlog import record_content_event
from .errors import RecordNotFound
from .sequence_allocator import normalize_namespace


def get_record(db: Session, record_id: UUID, *, lock: bool = False) -> models.ContentRecord:
    """Return a live record or raise ``RecordNotFound``.

    ``lock`` takes the row lock up front for read-then-write operations.
    """

    query = db.query(models.ContentRecord).filter(models.ContentRecord.id == record_id)
    if lock:
        query = query.with_for_update()
    record = query.one_or_none()
    if record is None or record.is_deleted:
        raise RecordNotFound(record_id)
    return record


def reload_record(db: Session, record_id: UUID) -> models.ContentRecord:
    """Return the record with every attribute re-read from the database.

    Workflow services write through UPDATE statements, which leave objects
    already in the identity map stale.
    """

    record = db.get(models.ContentRecord, record_id)
    if record is None:
        raise RecordNotFound(record_id)
    db.expire(record)
    if record.is_deleted:
        raise RecordNotFound(record_id)
    return record


def create_submission(
    db: Session,
    *,
    title: str,
    script_body: str | None = None,
    namespace_code: str | None = None,
    submitted_by_id: UUID | None = None,
) -> models.ContentRecord:
    record = models.ContentRecord(
        title=title,
        script_body=script_body,
        namespace_code=normalize_namespace(namespace_code),
        submitted_by_id=submitted_by_id,
        status=models.ReviewStatus.PENDING,
        stage=models.ProductionStage.NOT_STARTED,
        rejection_count=0,
        disapproval_count=0,
        is_dissolved=False,
        is_deleted=False,
    )
    db.add(record)
    db.flush()
    record_content_event(
        db,
        record.id,
        "submitted",
        {"title": title, "namespace_code": record.namespace_code},
        actor_id=submitted_by_id,
    )
    return record


def list_records(
    db: Session,
    *,
    state: models.ReviewStatus | None = None,
    stage: models.ProductionStage | None = None,
    assignee_id: UUID | None = None,
) -> list[models.ContentRecord]:
    query = db.query(models.ContentRecord).filter(models.ContentRecord.is_deleted.is_(False))
    if state is models.ReviewStatus.DISSOLVED:
        query = query.filter(models.ContentRecord.is_dissolved.is_(True))
    elif state is not None:
        query = query.filter(
            models.ContentRecord.status == state,
            models.ContentRecord.is_dissolved.is_(False),
        )
    if stage is not None:
        query = query.filter(models.ContentRecord.stage == stage)
    if assignee_id is not None:
        query = query.filter(
            models.ContentRecord.assignments.any(models.ContentAssignment.user_id == assignee_id)
        )
    return query.order_by(models.ContentRecord.created_at.desc()).all()


def soft_delete_record(db: Session, record_id: UUID, *, actor_id: UUID | None = None) -> None:
    """Hide a record. Its content code stays in the ledger and is never reissued."""

    now = datetime.now(timezone.utc)
    result = db.execute(
        sa.update(models.ContentRecord)
        .where(
            models.ContentRecord.id == record_id,
            models.ContentRecord.is_deleted.is_(False),
        )
        .values(is_deleted=True, deleted_at=now, updated_at=now)
        .returning(models.ContentRecord.id)
        .execution_options(synchronize_session=False)
    )
    if result.first() is None:
        raise RecordNotFound(record_id)
    record_content_event(db, record_id, "deleted", {}, actor_id=actor_id)
