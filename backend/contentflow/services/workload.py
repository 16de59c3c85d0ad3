"""Least-loaded assignee selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.orm import Session

from .. import models
from .errors import NoEligibleAssignee

# purpose: balance new assignments across role-holders by live workload
# inputs: SQLAlchemy session, assignment role, candidate user ids
# outputs: chosen user id or per-user workload rows
# status: active


@dataclass(frozen=True)
class WorkloadEntry:
    user_id: UUID
    email: str
    full_name: str | None
    active_assignments: int


def _dedupe(candidates: Iterable[UUID]) -> list[UUID]:
    seen: set[UUID] = set()
    ordered: list[UUID] = []
    for candidate in candidates:
        if candidate in seen:
            continue
        seen.add(candidate)
        ordered.append(candidate)
    return ordered


def active_assignment_counts(
    db: Session,
    role: models.AssignmentRole,
    user_ids: Sequence[UUID],
) -> dict[UUID, int]:
    """Count assignments on records that still have work ahead of them."""

    if not user_ids:
        return {}
    rows = (
        db.query(models.ContentAssignment.user_id, sa.func.count(models.ContentAssignment.id))
        .join(models.ContentRecord, models.ContentRecord.id == models.ContentAssignment.record_id)
        .filter(
            models.ContentAssignment.role == role,
            models.ContentAssignment.user_id.in_(list(user_ids)),
            models.ContentRecord.is_dissolved.is_(False),
            models.ContentRecord.is_deleted.is_(False),
            models.ContentRecord.stage != models.ProductionStage.POSTED,
        )
        .group_by(models.ContentAssignment.user_id)
        .all()
    )
    return {user_id: count for user_id, count in rows}


def pick_least_loaded(
    db: Session,
    role: models.AssignmentRole,
    candidate_pool: Sequence[UUID],
) -> UUID:
    """Return the candidate with the fewest active assignments for ``role``.

    Ties go to the candidate seen first in ``candidate_pool``.
    """

    candidates = _dedupe(candidate_pool)
    if not candidates:
        raise NoEligibleAssignee(f"no eligible {role.value} to assign")
    counts = active_assignment_counts(db, role, candidates)
    return min(candidates, key=lambda candidate: counts.get(candidate, 0))


def role_holders(db: Session, role: models.AssignmentRole) -> list[models.User]:
    return (
        db.query(models.User)
        .filter(
            models.User.role == models.TeamRole(role.value),
            models.User.is_active.is_(True),
        )
        .order_by(models.User.created_at.asc(), models.User.email.asc())
        .all()
    )


def workload_report(db: Session, role: models.AssignmentRole) -> list[WorkloadEntry]:
    holders = role_holders(db, role)
    counts = active_assignment_counts(db, role, [user.id for user in holders])
    return [
        WorkloadEntry(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            active_assignments=counts.get(user.id, 0),
        )
        for user in holders
    ]
