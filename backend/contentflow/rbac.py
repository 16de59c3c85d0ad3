from __future__ import annotations

from fastapi import HTTPException

from . import models

# purpose: centralize route-level authorization checks for the content pipeline
# status: active


def require_admin(user: models.User) -> None:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized")


def ensure_submitter_or_admin(user: models.User, record: models.ContentRecord) -> None:
    """Allow the original submitter or an admin, otherwise raise 403."""

    if user.is_admin or record.submitted_by_id == user.id:
        return
    raise HTTPException(status_code=403, detail="Not authorized")


def acting_role(user: models.User) -> models.TeamRole:
    """Return the role a user acts under on stage transitions.

    Taken from the stored identity only, never from request input.
    """

    return models.TeamRole(user.role)
