from typing import Dict, List, Optional


class TaskServiceError(Exception):
    """Base class for failures the task service reports to its callers."""
    status_code = 500
    title = "An unexpected error occurred"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidArgumentError(TaskServiceError):
    status_code = 400
    title = "Validation error"

    def __init__(
        self,
        detail: str,
        errors: Optional[Dict[str, List[str]]] = None,
        title: Optional[str] = None,
    ):
        super().__init__(detail)
        self.errors = errors
        if title:
            self.title = title


class NotFoundError(TaskServiceError):
    status_code = 404
    title = "Task not found"

    def __init__(self, task_id: int):
        super().__init__(f"Task with ID {task_id} was not found")
        self.task_id = task_id


class ConflictError(TaskServiceError):
    """The record changed between read and write; re-read and retry."""
    status_code = 409
    title = "Task was modified concurrently"

    def __init__(self, task_id: int):
        super().__init__(
            f"Task with ID {task_id} was changed by another request. Reload it and try again."
        )
        self.task_id = task_id
