"""Content profiles, whose codes name the identifier namespaces."""

from __future__ import annotations

from sqlalchemy.orm import Session

from .. import models
from .sequence_allocator import FALLBACK_NAMESPACE, normalize_namespace


def derive_profile_code(name: str) -> str:
    """Upper-cased first three letters or digits of the profile name."""

    letters = "".join(ch for ch in name if ch.isalnum()).upper()[:3]
    if not letters:
        raise ValueError("cannot derive a profile code from an empty name")
    return letters


def create_profile(
    db: Session,
    *,
    name: str,
    code: str | None = None,
    platform: str | None = None,
) -> models.ContentProfile:
    resolved = normalize_namespace(code) or derive_profile_code(name)
    if resolved == FALLBACK_NAMESPACE:
        raise ValueError(f"profile code {FALLBACK_NAMESPACE} is reserved")
    existing = (
        db.query(models.ContentProfile.id)
        .filter(models.ContentProfile.code == resolved)
        .first()
    )
    if existing is not None:
        raise ValueError(f"profile code {resolved} already exists")
    profile = models.ContentProfile(code=resolved, name=name.strip(), platform=platform)
    db.add(profile)
    db.flush()
    return profile


def list_profiles(db: Session) -> list[models.ContentProfile]:
    return db.query(models.ContentProfile).order_by(models.ContentProfile.code.asc()).all()
