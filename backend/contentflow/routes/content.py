from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from uuid import UUID

from ..database import get_db
from .. import models, schemas
from ..auth import get_current_user
from ..eventlog import list_content_events
from ..rbac import acting_role, ensure_submitter_or_admin, require_admin
from ..services import assignments, content_records, review_gateway, stage_engine

router = APIRouter(prefix="/api/content", tags=["content"])


@router.post("", response_model=schemas.ContentRecordOut)
def submit_content(
    payload: schemas.ContentCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    record = content_records.create_submission(
        db,
        title=payload.title,
        script_body=payload.script_body,
        namespace_code=payload.namespace_code,
        submitted_by_id=user.id,
    )
    db.commit()
    db.refresh(record)
    return record


@router.get("", response_model=list[schemas.ContentRecordOut])
def list_content(
    status: models.ReviewStatus | None = None,
    stage: models.ProductionStage | None = None,
    mine: bool = False,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return content_records.list_records(
        db,
        state=status,
        stage=stage,
        assignee_id=user.id if mine else None,
    )


@router.get("/{record_id}", response_model=schemas.ContentRecordOut)
def get_content(
    record_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return content_records.get_record(db, record_id)


@router.delete("/{record_id}", status_code=204)
def delete_content(
    record_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    content_records.soft_delete_record(db, record_id, actor_id=user.id)
    db.commit()
    return Response(status_code=204)


@router.get("/{record_id}/events", response_model=list[schemas.ContentEventOut])
def content_events(
    record_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    content_records.get_record(db, record_id)
    return list_content_events(db, record_id)


@router.post("/{record_id}/approve", response_model=schemas.ContentRecordOut)
def approve_content(
    record_id: UUID,
    payload: schemas.ApproveRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    record = review_gateway.approve(
        db,
        record_id,
        reviewer_id=user.id,
        namespace_code=payload.namespace_code,
        feedback=payload.feedback,
        assignments=payload.assignments,
    )
    db.commit()
    db.refresh(record)
    return record


@router.post("/{record_id}/reject", response_model=schemas.ContentRecordOut)
def reject_content(
    record_id: UUID,
    payload: schemas.RejectRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    record = review_gateway.reject(db, record_id, reviewer_id=user.id, feedback=payload.feedback)
    db.commit()
    db.refresh(record)
    return record


@router.post("/{record_id}/disapprove", response_model=schemas.ContentRecordOut)
def disapprove_content(
    record_id: UUID,
    payload: schemas.DisapproveRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    record = review_gateway.disapprove(db, record_id, payload.reason, reviewer_id=user.id)
    db.commit()
    db.refresh(record)
    return record


@router.post("/{record_id}/resubmit", response_model=schemas.ContentRecordOut)
def resubmit_content(
    record_id: UUID,
    payload: schemas.ResubmitRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    ensure_submitter_or_admin(user, content_records.get_record(db, record_id))
    record = review_gateway.resubmit(
        db,
        record_id,
        actor_id=user.id,
        title=payload.title,
        script_body=payload.script_body,
    )
    db.commit()
    db.refresh(record)
    return record


@router.get("/{record_id}/stage", response_model=schemas.StageOptionsOut)
def stage_options(
    record_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    record = content_records.get_record(db, record_id)
    return schemas.StageOptionsOut(
        stage=record.stage,
        available=stage_engine.available_transitions(record, acting_role(user)),
    )


@router.post("/{record_id}/stage", response_model=schemas.ContentRecordOut)
def change_stage(
    record_id: UUID,
    payload: schemas.StageChangeRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    try:
        record = stage_engine.advance_stage(
            db,
            record_id,
            payload.stage,
            acting_role(user),
            actor_id=user.id,
            note=payload.note,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    db.commit()
    db.refresh(record)
    return record


@router.post("/{record_id}/assignments", response_model=schemas.ContentRecordOut)
def assign_content(
    record_id: UUID,
    payload: schemas.AssignmentRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    record = assignments.assign_role(
        db,
        record_id,
        payload.role,
        assignee_id=payload.assignee_id,
        candidate_pool=payload.candidate_pool,
        auto=payload.auto,
        assigned_by_id=user.id,
    )
    db.commit()
    db.refresh(record)
    return record
