from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..auth import get_current_user
from ..rbac import require_admin
from ..services.workload import workload_report

router = APIRouter(prefix="/api/team", tags=["team"])


@router.get("/workload", response_model=schemas.WorkloadReportOut)
def get_workload(
    role: models.AssignmentRole,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    members = [schemas.WorkloadEntryOut.model_validate(entry) for entry in workload_report(db, role)]
    return schemas.WorkloadReportOut(role=role, members=members)


@router.post("/members", response_model=schemas.UserOut)
def add_member(
    member: schemas.TeamMemberCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    existing = db.query(models.User).filter(models.User.email == member.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    db_user = models.User(email=member.email, full_name=member.full_name, role=member.role)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


@router.get("/members", response_model=list[schemas.UserOut])
def list_members(
    role: models.TeamRole | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    query = db.query(models.User).filter(models.User.is_active.is_(True))
    if role is not None:
        query = query.filter(models.User.role == role)
    return query.order_by(models.User.created_at.asc(), models.User.email.asc()).all()
