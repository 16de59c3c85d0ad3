from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..auth import get_current_user
from ..rbac import require_admin
from ..services import sequence_allocator

router = APIRouter(prefix="/api/sequences", tags=["sequences"])


@router.get("", response_model=list[schemas.SequenceCounterOut])
def list_sequences(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    return sequence_allocator.list_counters(db)


@router.post("/{namespace}/allocate", response_model=schemas.AllocatedIdentifierOut)
def allocate(
    namespace: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Reserve an identifier outside the approval flow, e.g. for imported content."""

    require_admin(user)
    resolved = sequence_allocator.resolve_namespace(db, namespace)
    identifier = sequence_allocator.allocate_identifier(db, resolved)
    sequence_allocator.register_identifier(db, identifier, namespace=resolved)
    db.commit()
    return schemas.AllocatedIdentifierOut(namespace_code=resolved, identifier=identifier)


@router.post("/{namespace}/reseed", response_model=schemas.SequenceCounterOut)
def reseed(
    namespace: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_admin(user)
    counter = sequence_allocator.reseed_counter(db, namespace)
    db.commit()
    db.refresh(counter)
    return counter
