"""Subject routes; subjects are stored on the caller's own user row."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import services
from ..auth import RequestContext, require_user
from ..database import get_session
from ..schemas import SubjectIn, SubjectUpdateIn
from . import envelope

router = APIRouter(prefix="/subjects", tags=["subjects"])


@router.get("")
def list_subjects(ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    subjects = services.SubjectService(db).list(ctx.user)
    return envelope({"subjects": subjects, "count": len(subjects)})


@router.post("", status_code=status.HTTP_201_CREATED)
def add_subject(payload: SubjectIn, ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    """Append a subject; names are unique per user, ignoring case."""
    subject = services.SubjectService(db).add(ctx.user, payload)
    return envelope({"subject": subject}, "Subject added successfully")


@router.put("/{name}")
def update_subject(name: str, payload: SubjectUpdateIn, ctx: RequestContext = Depends(require_user),
                   db: Session = Depends(get_session)):
    subject = services.SubjectService(db).update(ctx.user, name, payload.model_dump(exclude_unset=True))
    return envelope({"subject": subject}, "Subject updated successfully")
