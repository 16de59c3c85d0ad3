"""Role assignment on approved content records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models
from ..database import upsert
from ..eventlog import record_content_event
from .content_records import get_record, reload_record
from .errors import AlreadyDissolved, InvalidStateTransition, NoEligibleAssignee
from .stage_engine import advance_stage
from .workload import pick_least_loaded, role_holders


def _eligible_candidates(
    db: Session, role: models.AssignmentRole, candidate_pool: Sequence[UUID]
) -> list[UUID]:
    if not candidate_pool:
        return []
    holders = {
        row.id
        for row in db.query(models.User.id).filter(
            models.User.id.in_(list(candidate_pool)),
            models.User.role == models.TeamRole(role.value),
            models.User.is_active.is_(True),
        )
    }
    return [candidate for candidate in candidate_pool if candidate in holders]


def _ensure_explicit_assignee(db: Session, role: models.AssignmentRole, user_id: UUID) -> None:
    user = db.get(models.User, user_id)
    if (
        user is None
        or not user.is_active
        or models.TeamRole(user.role) is not models.TeamRole(role.value)
    ):
        raise NoEligibleAssignee(f"user {user_id} cannot take the {role.value} assignment")


def assign_role(
    db: Session,
    record_id: UUID,
    role: models.AssignmentRole,
    *,
    assignee_id: UUID | None = None,
    candidate_pool: Sequence[UUID] | None = None,
    auto: bool = False,
    assigned_by_id: UUID | None = None,
) -> models.ContentRecord:
    """Assign ``role`` on a record to one user.

    The assignee is either given explicitly, balanced from ``candidate_pool``,
    or (with ``auto``) balanced across every active holder of the role.
    Reassigning a role replaces the previous assignee.
    """

    modes = [assignee_id is not None, candidate_pool is not None, bool(auto)]
    if sum(modes) != 1:
        raise ValueError("provide exactly one of assignee_id, candidate_pool or auto")
    role = models.AssignmentRole(role)

    record = get_record(db, record_id, lock=True)
    if record.is_dissolved:
        raise AlreadyDissolved(record.id, record.rejection_count)
    if models.ReviewStatus(record.status) is not models.ReviewStatus.APPROVED:
        raise InvalidStateTransition(
            f"record {record_id} is {record.review_state.value}; only approved records take assignments"
        )

    if assignee_id is not None:
        _ensure_explicit_assignee(db, role, assignee_id)
        chosen = assignee_id
        mode = "explicit"
    else:
        pool = (
            list(candidate_pool)
            if candidate_pool is not None
            else [user.id for user in role_holders(db, role)]
        )
        chosen = pick_least_loaded(db, role, _eligible_candidates(db, role, pool))
        mode = "auto" if auto else "balanced"

    upsert(
        db,
        models.ContentAssignment,
        {
            "id": uuid.uuid4(),
            "record_id": record_id,
            "role": role,
            "user_id": chosen,
            "assigned_by_id": assigned_by_id,
            "assigned_at": datetime.now(timezone.utc),
        },
        index_elements=["record_id", "role"],
        update_columns=["user_id", "assigned_by_id", "assigned_at"],
    )
    record_content_event(
        db,
        record_id,
        "assigned",
        {"role": role.value, "user_id": str(chosen), "mode": mode},
        actor_id=assigned_by_id,
    )
    if models.ProductionStage(record.stage) is models.ProductionStage.NOT_STARTED:
        advance_stage(
            db,
            record_id,
            models.ProductionStage.PLANNING,
            models.TeamRole.ADMIN,
            actor_id=assigned_by_id,
            note="production started on first assignment",
        )
    return reload_record(db, record_id)
