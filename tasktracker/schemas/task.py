from datetime import datetime
from typing import ClassVar, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..models import Priority, TaskStatus, as_utc

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000

TITLE_MESSAGE = f"Title must be between 1 and {TITLE_MAX_LENGTH} characters"
DESCRIPTION_MESSAGE = f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"
STATUS_MESSAGE = "Status must be one of: " + ", ".join(s.value for s in TaskStatus)
PRIORITY_MESSAGE = "Priority must be one of: " + ", ".join(p.value for p in Priority)
DUE_DATE_MESSAGE = "Due date must be a valid ISO-8601 date"
JSON_BODY_MESSAGE = "The request body must be valid JSON"

REQUIRED_MESSAGES = {
    "title": "Title is required",
    "status": "Status is required",
    "priority": "Priority is required",
    "body": "A request body is required",
}


class TaskFields(BaseModel):
    """Shared field rules for the create and update shapes.

    Every field is optional here; ``required_fields`` names the ones a
    subclass refuses to accept as null.
    """
    required_fields: ClassVar[FrozenSet[str]] = frozenset()

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @classmethod
    def _check_required(cls, field_name: str, value):
        if value is None and field_name in cls.required_fields:
            raise ValueError(REQUIRED_MESSAGES[field_name])
        return value

    @field_validator("title", mode="before")
    @classmethod
    def _require_title(cls, value, info):
        return cls._check_required(info.field_name, value)

    @field_validator("title")
    @classmethod
    def _check_title(cls, value):
        if value is not None and (not value.strip() or len(value) > TITLE_MAX_LENGTH):
            raise ValueError(TITLE_MESSAGE)
        return value

    @field_validator("description")
    @classmethod
    def _check_description(cls, value):
        if value is not None and len(value) > DESCRIPTION_MAX_LENGTH:
            raise ValueError(DESCRIPTION_MESSAGE)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value, info):
        if cls._check_required(info.field_name, value) is None:
            return None
        status = TaskStatus.parse(value)
        if status is None:
            raise ValueError(STATUS_MESSAGE)
        return status

    @field_validator("priority", mode="before")
    @classmethod
    def _parse_priority(cls, value, info):
        if cls._check_required(info.field_name, value) is None:
            return None
        priority = Priority.parse(value)
        if priority is None:
            raise ValueError(PRIORITY_MESSAGE)
        return priority

    @field_validator("due_date", mode="wrap")
    @classmethod
    def _parse_due_date(cls, value, handler):
        try:
            return as_utc(handler(value))
        except ValidationError:
            raise ValueError(DUE_DATE_MESSAGE)


class TaskCreate(TaskFields):
    """Schema for creating new tasks."""
    required_fields: ClassVar[FrozenSet[str]] = frozenset({"title", "status", "priority"})

    title: str
    status: TaskStatus
    priority: Priority


class TaskUpdate(TaskFields):
    """Schema for partial updates; omitted or null fields are left alone."""
    pass


class TaskResponse(BaseModel):
    """Task response schema for API responses."""
    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: Priority
    due_date: Optional[datetime] = None
    is_completed: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


def field_errors(errors: List[dict]) -> Dict[str, List[str]]:
    """Group pydantic/FastAPI error dicts into ``{field: [messages]}``."""
    grouped: Dict[str, List[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = loc[0] if loc else "body"
        if error.get("type") == "json_invalid":
            # loc holds the byte offset of the syntax error
            grouped.setdefault("body", []).append(JSON_BODY_MESSAGE)
            continue
        ctx = error.get("ctx") or {}
        if error.get("type") == "missing":
            message = REQUIRED_MESSAGES.get(field, f"{field} is required")
        elif "error" in ctx:
            message = str(ctx["error"])
        else:
            message = error.get("msg", "Invalid value")
        grouped.setdefault(field, []).append(message)
    return grouped
