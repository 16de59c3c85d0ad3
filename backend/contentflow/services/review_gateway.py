"""Admin review decisions on content submissions.

Each decision is one conditional UPDATE on ``content_records`` that names the
expected source status. The row lock taken by that statement serializes
concurrent reviewers on the same record, and counters are incremented in SQL
so two concurrent rejections can never both observe the same count. When the
statement matches nothing, the record is re-read to report exactly why.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Sequence
from uuid import UUID

import sqlalchemy as sa
from prometheus_client import Counter
from sqlalchemy.orm import Session

from .. import models, schemas
from ..eventlog import record_content_event
from .assignments import assign_role
from .content_records import get_record, reload_record
from .errors import AlreadyDissolved, InvalidStateTransition
from .sequence_allocator import (
    allocate_identifier,
    normalize_namespace,
    register_identifier,
    resolve_namespace,
)

# purpose: approve, reject, disapprove and resubmit content with dissolution tracking
# inputs: SQLAlchemy session, content record id, reviewer metadata
# outputs: updated ContentRecord rows, timeline events
# status: active

DISSOLUTION_THRESHOLD = 5
DISSOLUTION_REASON = (
    f"Script rejected {DISSOLUTION_THRESHOLD} times - project automatically dissolved"
)

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = Counter(
    "contentflow_review_decisions",
    "Review decisions applied to content records",
    ["decision"],
)

_Status = models.ReviewStatus

REVIEW_TRANSITIONS: dict[models.ReviewStatus, frozenset[models.ReviewStatus]] = {
    _Status.PENDING: frozenset({_Status.APPROVED, _Status.REJECTED}),
    _Status.REJECTED: frozenset({_Status.PENDING, _Status.DISSOLVED}),
    _Status.APPROVED: frozenset({_Status.PENDING}),
    _Status.DISSOLVED: frozenset(),
}


class ReviewDecision(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    DISAPPROVE = "disapprove"
    RESUBMIT = "resubmit"


# decision -> (required source state, resulting state)
DECISION_EDGES: dict[ReviewDecision, tuple[models.ReviewStatus, models.ReviewStatus]] = {
    ReviewDecision.APPROVE: (_Status.PENDING, _Status.APPROVED),
    ReviewDecision.REJECT: (_Status.PENDING, _Status.REJECTED),
    ReviewDecision.DISAPPROVE: (_Status.APPROVED, _Status.PENDING),
    ReviewDecision.RESUBMIT: (_Status.REJECTED, _Status.PENDING),
}

_EARLY_STAGES = (models.ProductionStage.NOT_STARTED, models.ProductionStage.PLANNING)


def can_transition(source: models.ReviewStatus, target: models.ReviewStatus) -> bool:
    return target in REVIEW_TRANSITIONS[source]


def ensure_decision_allowed(record: models.ContentRecord, decision: ReviewDecision) -> None:
    state = record.review_state
    if state is _Status.DISSOLVED:
        raise AlreadyDissolved(record.id, record.rejection_count)
    source, target = DECISION_EDGES[decision]
    if state != source or not can_transition(state, target):
        raise InvalidStateTransition(
            f"cannot {decision.value} a record that is {state.value}; it must be {source.value}"
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _stage_after_review_reset():
    # Work that has not reached shooting survives; anything further restarts.
    return sa.case(
        (models.ContentRecord.stage.in_(_EARLY_STAGES), models.ContentRecord.stage),
        else_=models.ProductionStage.NOT_STARTED.value,
    )


def _conditional_update(
    db: Session,
    record_id: UUID,
    expected: models.ReviewStatus,
    values: dict[str, Any],
) -> bool:
    stmt = (
        sa.update(models.ContentRecord)
        .where(
            models.ContentRecord.id == record_id,
            models.ContentRecord.status == expected,
            models.ContentRecord.is_dissolved.is_(False),
            models.ContentRecord.is_deleted.is_(False),
        )
        .values(updated_at=_now(), **values)
        .returning(models.ContentRecord.id)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).first() is not None


def _raise_for_current_state(db: Session, record_id: UUID, decision: ReviewDecision) -> None:
    record = reload_record(db, record_id)
    ensure_decision_allowed(record, decision)
    raise InvalidStateTransition(
        f"record {record_id} changed while the {decision.value} decision was being applied"
    )


def _mint_content_code(db: Session, record_id: UUID) -> str:
    """Give the record its content code unless it already has one."""

    record = reload_record(db, record_id)
    if record.content_code:
        return record.content_code
    namespace = resolve_namespace(db, record.namespace_code)
    code = allocate_identifier(db, namespace)
    claimed = db.execute(
        sa.update(models.ContentRecord)
        .where(
            models.ContentRecord.id == record_id,
            models.ContentRecord.content_code.is_(None),
        )
        .values(content_code=code)
        .returning(models.ContentRecord.id)
        .execution_options(synchronize_session=False)
    ).first()
    if claimed is None:
        existing = reload_record(db, record_id).content_code
        logger.info("Record %s was coded concurrently as %s; %s unused", record_id, existing, code)
        return existing
    register_identifier(db, code, namespace=namespace, record_id=record_id)
    return code


def approve(
    db: Session,
    record_id: UUID,
    *,
    reviewer_id: UUID | None = None,
    namespace_code: str | None = None,
    feedback: str | None = None,
    assignments: Sequence[schemas.AssignmentRequest] = (),
) -> models.ContentRecord:
    """Approve a pending submission and mint its content code.

    Approving a record that is already approved changes nothing beyond
    backfilling a missing code, so client retries are safe.
    """

    record = get_record(db, record_id)
    decided = False
    if record.review_state is not _Status.APPROVED:
        ensure_decision_allowed(record, ReviewDecision.APPROVE)
        values: dict[str, Any] = {
            "status": _Status.APPROVED,
            "stage": _stage_after_review_reset(),
            "reviewed_by_id": reviewer_id,
            "reviewed_at": _now(),
            "review_feedback": feedback,
        }
        namespace = normalize_namespace(namespace_code)
        if namespace is not None:
            values["namespace_code"] = sa.case(
                (models.ContentRecord.content_code.is_(None), namespace),
                else_=models.ContentRecord.namespace_code,
            )
        decided = _conditional_update(db, record_id, _Status.PENDING, values)
        if not decided:
            current = reload_record(db, record_id)
            if current.review_state is not _Status.APPROVED:
                _raise_for_current_state(db, record_id, ReviewDecision.APPROVE)

    code = _mint_content_code(db, record_id)
    if not decided:
        return reload_record(db, record_id)

    record_content_event(
        db,
        record_id,
        "approved",
        {"content_code": code, "feedback": feedback},
        actor_id=reviewer_id,
    )
    REVIEW_DECISIONS.labels(ReviewDecision.APPROVE.value).inc()
    for request in assignments:
        assign_role(
            db,
            record_id,
            request.role,
            assignee_id=request.assignee_id,
            candidate_pool=request.candidate_pool,
            auto=request.auto,
            assigned_by_id=reviewer_id,
        )
    return reload_record(db, record_id)


def reject(
    db: Session,
    record_id: UUID,
    *,
    reviewer_id: UUID | None = None,
    feedback: str | None = None,
) -> models.ContentRecord:
    """Reject a pending submission.

    The rejection that brings the count to ``DISSOLUTION_THRESHOLD`` latches
    dissolution in the same statement.
    """

    record = get_record(db, record_id)
    ensure_decision_allowed(record, ReviewDecision.REJECT)
    next_count = models.ContentRecord.rejection_count + 1
    reaches_threshold = next_count >= DISSOLUTION_THRESHOLD
    values = {
        "status": _Status.REJECTED,
        "rejection_count": next_count,
        "is_dissolved": sa.case((reaches_threshold, sa.true()), else_=sa.false()),
        "dissolution_reason": sa.case(
            (reaches_threshold, DISSOLUTION_REASON),
            else_=models.ContentRecord.dissolution_reason,
        ),
        "review_feedback": feedback,
        "reviewed_by_id": reviewer_id,
        "reviewed_at": _now(),
    }
    if not _conditional_update(db, record_id, _Status.PENDING, values):
        _raise_for_current_state(db, record_id, ReviewDecision.REJECT)

    record = reload_record(db, record_id)
    record_content_event(
        db,
        record_id,
        "rejected",
        {"rejection_count": record.rejection_count, "feedback": feedback},
        actor_id=reviewer_id,
    )
    REVIEW_DECISIONS.labels(ReviewDecision.REJECT.value).inc()
    if record.is_dissolved:
        logger.info(
            "Record %s dissolved after %d rejections", record_id, record.rejection_count
        )
        record_content_event(
            db,
            record_id,
            "dissolved",
            {"reason": record.dissolution_reason},
            actor_id=reviewer_id,
        )
    return record


def disapprove(
    db: Session,
    record_id: UUID,
    reason: str,
    *,
    reviewer_id: UUID | None = None,
) -> models.ContentRecord:
    """Send an approved record back to review.

    The rejection count is untouched; only ``disapproval_count`` moves.
    """

    if not reason or not reason.strip():
        raise ValueError("a disapproval reason is required")
    record = get_record(db, record_id)
    ensure_decision_allowed(record, ReviewDecision.DISAPPROVE)
    previous_stage = models.ProductionStage(record.stage)
    now = _now()
    values = {
        "status": _Status.PENDING,
        "disapproval_count": models.ContentRecord.disapproval_count + 1,
        "disapproval_reason": reason.strip(),
        "last_disapproved_at": now,
        "stage": _stage_after_review_reset(),
        "reviewed_by_id": reviewer_id,
        "reviewed_at": now,
    }
    if not _conditional_update(db, record_id, _Status.APPROVED, values):
        _raise_for_current_state(db, record_id, ReviewDecision.DISAPPROVE)

    record = reload_record(db, record_id)
    record_content_event(
        db,
        record_id,
        "disapproved",
        {
            "reason": record.disapproval_reason,
            "previous_stage": previous_stage.value,
            "stage": models.ProductionStage(record.stage).value,
        },
        actor_id=reviewer_id,
    )
    REVIEW_DECISIONS.labels(ReviewDecision.DISAPPROVE.value).inc()
    return record


def resubmit(
    db: Session,
    record_id: UUID,
    *,
    actor_id: UUID | None = None,
    title: str | None = None,
    script_body: str | None = None,
) -> models.ContentRecord:
    record = get_record(db, record_id)
    ensure_decision_allowed(record, ReviewDecision.RESUBMIT)
    values: dict[str, Any] = {"status": _Status.PENDING}
    if title is not None:
        values["title"] = title
    if script_body is not None:
        values["script_body"] = script_body
    if not _conditional_update(db, record_id, _Status.REJECTED, values):
        _raise_for_current_state(db, record_id, ReviewDecision.RESUBMIT)

    record_content_event(
        db,
        record_id,
        "resubmitted",
        {"revised": sorted(key for key in ("title", "script_body") if key in values)},
        actor_id=actor_id,
    )
    REVIEW_DECISIONS.labels(ReviewDecision.RESUBMIT.value).inc()
    return reload_record(db, record_id)
