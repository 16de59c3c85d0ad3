from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..auth import get_current_user
from ..rbac import require_admin
from ..services import profiles

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.post("", response_model=schemas.ProfileOut)
def create_profile(
    payload: schemas.ProfileCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    try:
        profile = profiles.create_profile(
            db, name=payload.name, code=payload.code, platform=payload.platform
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    db.refresh(profile)
    return profile


@router.get("", response_model=list[schemas.ProfileOut])
def list_profiles(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return profiles.list_profiles(db)
