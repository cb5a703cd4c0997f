from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.problem import Problem
from ..schemas.task import TaskCreate, TaskResponse, TaskUpdate
from ..services.task_service import DEFAULT_SORT, TaskService
from ..store import TaskStore

router = APIRouter()

_BAD_REQUEST = {400: {"model": Problem}}
_NOT_FOUND = {404: {"model": Problem}}
_CONFLICT = {409: {"model": Problem}}


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    """Dependency wiring one service + store per request session."""
    return TaskService(TaskStore(db))


@router.get("/tasks", response_model=List[TaskResponse], responses=_BAD_REQUEST)
def get_tasks(
    q: Optional[str] = None,
    sort: Optional[str] = DEFAULT_SORT,
    service: TaskService = Depends(get_task_service),
):
    """Get all tasks with optional search and sorting (``sort=<field>:<asc|desc>``)."""
    return service.list_tasks(q, sort)


@router.get(
    "/tasks/priority/{priority}",
    response_model=List[TaskResponse],
    responses=_BAD_REQUEST,
)
def get_tasks_by_priority(
    priority: str,
    service: TaskService = Depends(get_task_service),
):
    """Get tasks with the given priority, earliest due date first."""
    return service.list_by_priority(priority)


@router.get("/tasks/{task_id}", response_model=TaskResponse, responses=_NOT_FOUND)
def get_task(
    task_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID."""
    return service.get_task(task_id)


@router.post(
    "/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_BAD_REQUEST,
)
def create_task(
    task: TaskCreate,
    response: Response,
    service: TaskService = Depends(get_task_service),
):
    """Create a new task."""
    created = service.create_task(task)
    response.headers["Location"] = created.location
    return created.task


@router.put(
    "/tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={**_BAD_REQUEST, **_NOT_FOUND, **_CONFLICT},
)
def update_task(
    task_id: int,
    task_update: TaskUpdate,
    service: TaskService = Depends(get_task_service),
):
    """Update a task. Omitted or null fields keep their current value."""
    service.update_task(task_id, task_update)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_NOT_FOUND,
)
def delete_task(
    task_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Delete a task."""
    service.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/tasks/{task_id}/complete",
    response_model=TaskResponse,
    responses={**_NOT_FOUND, **_CONFLICT},
)
def mark_task_complete(
    task_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Mark a task as complete."""
    return service.mark_complete(task_id)


@router.patch(
    "/tasks/{task_id}/incomplete",
    response_model=TaskResponse,
    responses={**_NOT_FOUND, **_CONFLICT},
)
def mark_task_incomplete(
    task_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Mark a task as incomplete (back to in progress)."""
    return service.mark_incomplete(task_id)
