"""Production stage transitions with role-owned edges and admin review gates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.orm import Session

from .. import models
from ..eventlog import record_content_event
from .content_records import get_record, reload_record
from .errors import ActorNotAssigned, AlreadyDissolved, InvalidStateTransition

# purpose: move approved records along the production path under role authority
# inputs: SQLAlchemy session, record id, requested stage, acting role and actor
# outputs: updated ContentRecord rows, stage_changed timeline events
# status: active

logger = logging.getLogger(__name__)

Stage = models.ProductionStage
Role = models.TeamRole


@dataclass(frozen=True)
class StageEdge:
    source: models.ProductionStage
    target: models.ProductionStage
    roles: frozenset[models.TeamRole]
    kind: str = "advance"

    @property
    def requires_note(self) -> bool:
        return self.kind == "gate_reject"


STAGE_PATH: tuple[models.ProductionStage, ...] = tuple(Stage)

# gate -> (stage on approval, stage on rejection)
REVIEW_GATES: dict[models.ProductionStage, tuple[models.ProductionStage, models.ProductionStage]] = {
    Stage.SHOOT_REVIEW: (Stage.EDITING, Stage.SHOOTING),
    Stage.EDIT_REVIEW: (Stage.READY_TO_POST, Stage.EDITING),
}

_ADMIN_ONLY = frozenset({Role.ADMIN})

STAGE_EDGES: dict[tuple[models.ProductionStage, models.ProductionStage], StageEdge] = {
    (edge.source, edge.target): edge
    for edge in (
        StageEdge(Stage.NOT_STARTED, Stage.PLANNING, frozenset({Role.ADMIN, Role.VIDEOGRAPHER})),
        StageEdge(Stage.PLANNING, Stage.SHOOTING, frozenset({Role.ADMIN, Role.VIDEOGRAPHER})),
        StageEdge(Stage.SHOOTING, Stage.SHOOT_REVIEW, frozenset({Role.ADMIN, Role.VIDEOGRAPHER}), "submit"),
        StageEdge(Stage.SHOOT_REVIEW, Stage.EDITING, _ADMIN_ONLY, "gate_approve"),
        StageEdge(Stage.SHOOT_REVIEW, Stage.SHOOTING, _ADMIN_ONLY, "gate_reject"),
        StageEdge(Stage.EDITING, Stage.EDIT_REVIEW, frozenset({Role.ADMIN, Role.EDITOR}), "submit"),
        StageEdge(Stage.EDIT_REVIEW, Stage.READY_TO_POST, _ADMIN_ONLY, "gate_approve"),
        StageEdge(Stage.EDIT_REVIEW, Stage.EDITING, _ADMIN_ONLY, "gate_reject"),
        StageEdge(Stage.READY_TO_POST, Stage.POSTED, frozenset({Role.ADMIN, Role.POSTING_MANAGER})),
    )
}


def _ensure_in_production(record: models.ContentRecord) -> None:
    if record.is_dissolved:
        raise AlreadyDissolved(record.id, record.rejection_count)
    if models.ReviewStatus(record.status) is not models.ReviewStatus.APPROVED:
        raise InvalidStateTransition(
            f"record {record.id} is {record.review_state.value}; only approved records move through production"
        )


def available_transitions(
    record: models.ContentRecord, acting_role: models.TeamRole
) -> list[models.ProductionStage]:
    """Stages ``acting_role`` may move the record to right now."""

    if record.is_dissolved or models.ReviewStatus(record.status) is not models.ReviewStatus.APPROVED:
        return []
    current = Stage(record.stage)
    return [
        edge.target
        for edge in STAGE_EDGES.values()
        if edge.source is current and acting_role in edge.roles
    ]


def _ensure_assigned(
    db: Session, record_id: UUID, acting_role: models.TeamRole, actor_id: UUID
) -> None:
    role = models.AssignmentRole(acting_role.value)
    assigned = (
        db.query(models.ContentAssignment.id)
        .filter(
            models.ContentAssignment.record_id == record_id,
            models.ContentAssignment.role == role,
            models.ContentAssignment.user_id == actor_id,
        )
        .first()
    )
    if assigned is None:
        raise ActorNotAssigned(f"you are not the assigned {role.value} for record {record_id}")


def advance_stage(
    db: Session,
    record_id: UUID,
    requested_stage: models.ProductionStage,
    acting_role: models.TeamRole,
    *,
    actor_id: UUID | None = None,
    note: str | None = None,
) -> models.ContentRecord:
    """Move a record one edge along the production path.

    Role-holders other than admin may only act on records they are assigned
    to when ``actor_id`` is given. Sending work back from a review gate
    requires a note for the role-holder.
    """

    record = get_record(db, record_id)
    _ensure_in_production(record)
    current = Stage(record.stage)
    requested = Stage(requested_stage)
    edge = STAGE_EDGES.get((current, requested))
    if edge is None:
        raise InvalidStateTransition(
            f"no transition from {current.value} to {requested.value}"
        )
    if acting_role not in edge.roles:
        raise InvalidStateTransition(
            f"{acting_role.value} may not move a record from {current.value} to {requested.value}"
        )
    if edge.requires_note and not (note and note.strip()):
        raise ValueError("a note is required when sending work back from review")
    if acting_role is not Role.ADMIN and actor_id is not None:
        _ensure_assigned(db, record_id, acting_role, actor_id)

    now = datetime.now(timezone.utc)
    values = {"stage": requested, "stage_entered_at": now, "updated_at": now}
    if requested is Stage.POSTED:
        values["posted_at"] = now
    moved = db.execute(
        sa.update(models.ContentRecord)
        .where(
            models.ContentRecord.id == record_id,
            models.ContentRecord.stage == current,
            models.ContentRecord.status == models.ReviewStatus.APPROVED,
            models.ContentRecord.is_dissolved.is_(False),
            models.ContentRecord.is_deleted.is_(False),
        )
        .values(**values)
        .returning(models.ContentRecord.id)
        .execution_options(synchronize_session=False)
    ).first()
    if moved is None:
        latest = reload_record(db, record_id)
        _ensure_in_production(latest)
        raise InvalidStateTransition(
            f"record {record_id} left {current.value} before the move to {requested.value} applied"
        )

    record_content_event(
        db,
        record_id,
        "stage_changed",
        {
            "from": current.value,
            "to": requested.value,
            "kind": edge.kind,
            "role": acting_role.value,
            "note": note,
        },
        actor_id=actor_id,
    )
    if requested is Stage.POSTED:
        logger.info("Record %s posted", record_id)
    return reload_record(db, record_id)
