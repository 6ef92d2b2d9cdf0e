"""Task routes. Every query is scoped to the authenticated caller."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from .. import services
from ..auth import RequestContext, require_user
from ..database import get_session
from ..schemas import Priority, TaskIn, TaskStatus, TaskUpdateIn
from . import envelope

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _many(tasks):
    return {"tasks": [t.public() for t in tasks], "count": len(tasks)}


@router.get("")
def list_tasks(task_status: Optional[TaskStatus] = Query(None, alias="status"), subject: Optional[str] = None,
               priority: Optional[Priority] = None, ctx: RequestContext = Depends(require_user),
               db: Session = Depends(get_session)):
    """List tasks ordered by due date, filtered by status, subject or priority."""
    tasks = services.TaskService(db).list(ctx.user_id, status=task_status, subject=subject, priority=priority)
    return envelope(_many(tasks))


@router.get("/overdue")
def overdue_tasks(ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    """Tasks past their due date that are not completed."""
    return envelope(_many(services.TaskService(db).overdue(ctx.user_id)))


@router.get("/{task_id}")
def get_task(task_id: str, ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    task = services.TaskService(db).get(ctx.user_id, task_id)
    return envelope({"task": task.public()})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskIn, ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    task = services.TaskService(db).create(ctx.user_id, payload.model_dump())
    return envelope({"task": task.public()}, "Task created successfully")


@router.put("/{task_id}")
def update_task(task_id: str, payload: TaskUpdateIn, ctx: RequestContext = Depends(require_user),
                db: Session = Depends(get_session)):
    task = services.TaskService(db).update(ctx.user_id, task_id, payload.model_dump(exclude_unset=True))
    return envelope({"task": task.public()}, "Task updated successfully")


@router.delete("/{task_id}")
def delete_task(task_id: str, ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    services.TaskService(db).delete(ctx.user_id, task_id)
    return envelope(message="Task deleted successfully")


@router.post("/{task_id}/complete")
def complete_task(task_id: str, ctx: RequestContext = Depends(require_user), db: Session = Depends(get_session)):
    task = services.TaskService(db).complete(ctx.user_id, task_id)
    return envelope({"task": task.public()}, "Task marked as completed")
