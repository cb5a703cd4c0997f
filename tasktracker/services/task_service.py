"""
Task resource service.

Validates incoming payloads, applies partial-update semantics, resolves the
whitelisted sort fields and runs every write through the store's
optimistic-concurrency check.
"""
import functools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import case, func

from ..config import TASKS_PATH
from ..errors import ConflictError, InvalidArgumentError, NotFoundError, TaskServiceError
from ..models import Priority, Task, TaskStatus, utcnow
from ..schemas.task import (
    PRIORITY_MESSAGE,
    REQUIRED_MESSAGES,
    TaskCreate,
    TaskFields,
    TaskResponse,
    TaskUpdate,
    field_errors,
)
from ..store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_SORT = "dueDate:asc"
VALIDATION_DETAIL = "One or more validation errors occurred"
UPDATABLE_FIELDS = ("title", "description", "status", "priority", "due_date")


@dataclass(frozen=True)
class TaskCreated:
    """A freshly created task and the path it can be fetched from."""
    task: TaskResponse
    location: str


# =============================================================================
# Sorting
# =============================================================================

def _due_date_order(descending: bool) -> Tuple:
    # tasks without a due date go last in either direction
    column = Task.due_date.desc() if descending else Task.due_date.asc()
    return (Task.due_date.is_(None), column)


def _column_order(column) -> Callable[[bool], Tuple]:
    def order(descending: bool) -> Tuple:
        return (column.desc() if descending else column.asc(),)
    return order


def _priority_order(descending: bool) -> Tuple:
    rank = case(*[(Task.priority == priority, priority.rank) for priority in Priority])
    return (rank.desc() if descending else rank.asc(),)


def _title_order(descending: bool) -> Tuple:
    # case-insensitive first, exact title breaks ties between "a" and "A"
    folded = func.lower(Task.title)
    if descending:
        return (folded.desc(), Task.title.desc())
    return (folded.asc(), Task.title.asc())


SORT_FIELDS: Dict[str, Callable[[bool], Tuple]] = {
    "dueDate": _due_date_order,
    "createdAt": _column_order(Task.created_at),
    "priority": _priority_order,
    "title": _title_order,
}


def resolve_sort(sort: Optional[str]) -> Tuple:
    """Turn ``"<field>:<direction>"`` into ORDER BY clauses.

    Direction defaults to ascending; anything other than the exact
    lowercase ``desc`` is ascending too. Unknown fields raise InvalidArgumentError.
    """
    if sort is None or not sort.strip():
        sort = DEFAULT_SORT
    parts = sort.strip().split(":")
    field = parts[0]
    direction = parts[1] if len(parts) > 1 else "asc"

    order = SORT_FIELDS.get(field)
    if order is None:
        raise InvalidArgumentError(
            f"Sort field must be one of: {', '.join(SORT_FIELDS)}",
            title="Invalid sort field",
        )
    return order(direction == "desc")


def _matches(task: Task, needle: str) -> bool:
    # casefold in Python: SQLite lower() only folds ASCII
    return any(needle in text.casefold() for text in (task.title, task.description) if text)


# =============================================================================
# Payload handling
# =============================================================================

def _validate(schema, payload):
    if payload is None:
        raise InvalidArgumentError(VALIDATION_DETAIL, errors={"body": [REQUIRED_MESSAGES["body"]]})
    if isinstance(payload, schema):
        return payload
    if isinstance(payload, TaskFields):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise InvalidArgumentError(VALIDATION_DETAIL, errors=field_errors(exc.errors()))


def apply_update(task: Task, payload: TaskUpdate) -> Task:
    """Copy every supplied, non-null field of ``payload`` onto ``task``."""
    for field in UPDATABLE_FIELDS:
        if field not in payload.model_fields_set:
            continue
        value = getattr(payload, field)
        if value is not None:
            setattr(task, field, value)
    return task


def _log_failures(operation: str):
    """Log unexpected failures with operation context and re-raise them."""
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            try:
                return method(self, *args, **kwargs)
            except TaskServiceError:
                raise
            except Exception:
                logger.exception("Error in %s (args=%r)", operation, args)
                raise
        return wrapper
    return decorator


# =============================================================================
# Service
# =============================================================================

class TaskService:
    def __init__(self, store: TaskStore):
        self.store = store

    @_log_failures("list_tasks")
    def list_tasks(self, query: Optional[str] = None, sort: Optional[str] = DEFAULT_SORT) -> List[TaskResponse]:
        order_by = resolve_sort(sort)
        tasks = self.store.query(None, order_by)
        if query is not None and query.strip():
            needle = query.casefold()
            tasks = [task for task in tasks if _matches(task, needle)]
        return [TaskResponse.model_validate(task) for task in tasks]

    @_log_failures("get_task")
    def get_task(self, task_id: int) -> TaskResponse:
        return TaskResponse.model_validate(self._require(task_id))

    @_log_failures("create_task")
    def create_task(self, payload) -> TaskCreated:
        dto = _validate(TaskCreate, payload)
        task = self.store.insert(Task(
            title=dto.title,
            description=dto.description,
            status=dto.status,
            priority=dto.priority,
            due_date=dto.due_date,
            created_at=utcnow(),
        ))
        logger.info("Created task %s", task.id)
        return TaskCreated(
            task=TaskResponse.model_validate(task),
            location=f"{TASKS_PATH}/{task.id}",
        )

    @_log_failures("update_task")
    def update_task(self, task_id: int, payload) -> None:
        dto = _validate(TaskUpdate, payload)
        task = self._require(task_id)
        apply_update(task, dto)
        self._write(task)
        logger.info("Updated task %s", task_id)

    @_log_failures("delete_task")
    def delete_task(self, task_id: int) -> None:
        if not self.store.delete(task_id):
            raise NotFoundError(task_id)
        logger.info("Deleted task %s", task_id)

    @_log_failures("mark_complete")
    def mark_complete(self, task_id: int) -> TaskResponse:
        return self._set_status(task_id, TaskStatus.DONE)

    @_log_failures("mark_incomplete")
    def mark_incomplete(self, task_id: int) -> TaskResponse:
        return self._set_status(task_id, TaskStatus.IN_PROGRESS)

    @_log_failures("list_by_priority")
    def list_by_priority(self, priority) -> List[TaskResponse]:
        parsed = Priority.parse(priority)
        if parsed is None:
            raise InvalidArgumentError(
                PRIORITY_MESSAGE,
                errors={"priority": [PRIORITY_MESSAGE]},
                title="Invalid priority",
            )
        tasks = self.store.query(Task.priority == parsed, _due_date_order(False))
        return [TaskResponse.model_validate(task) for task in tasks]

    def _require(self, task_id: int) -> Task:
        task = self.store.find_by_id(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def _set_status(self, task_id: int, status: TaskStatus) -> TaskResponse:
        task = self._require(task_id)
        task.status = status
        self._write(task)
        logger.info("Task %s marked %s", task_id, status.value)
        return TaskResponse.model_validate(task)

    def _write(self, task: Task) -> None:
        task.updated_at = utcnow()
        if self.store.update_conditional(task, task.version):
            return
        if not self.store.exists(task.id):
            raise NotFoundError(task.id)
        logger.warning("Concurrency conflict writing task %s (version %s)", task.id, task.version)
        raise ConflictError(task.id)
