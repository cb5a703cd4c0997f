import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from .models import Priority, Task, utcnow
from .store import TaskStore

logger = logging.getLogger(__name__)

# (title, description, created offset in days, due offset in days, priority)
_SAMPLES = [
    ("Complete API Implementation", "Finish building the RESTful API for tasks", -2, 1, Priority.HIGH),
    ("Write Documentation", "Create API documentation for the task system", -1, 3, Priority.MEDIUM),
    ("Test API Endpoints", "Write unit tests for all API endpoints", 0, 5, Priority.HIGH),
    ("Setup CI/CD Pipeline", "Configure continuous integration and deployment", -3, 7, Priority.LOW),
    ("Design Frontend UI", "Create mockups for the SPA frontend", -5, -1, Priority.MEDIUM),
]


def sample_tasks(now: Optional[datetime] = None) -> List[Task]:
    now = now or utcnow()
    return [
        Task(
            title=title,
            description=description,
            priority=priority,
            created_at=now + timedelta(days=created),
            due_date=now + timedelta(days=due),
        )
        for title, description, created, due, priority in _SAMPLES
    ]


def seed_tasks(session: Session) -> int:
    """Insert the sample tasks when the table is empty. Returns the number added."""
    if session.query(Task.id).first() is not None:
        return 0
    store = TaskStore(session)
    tasks = sample_tasks()
    for task in tasks:
        store.insert(task)
    logger.info("Seeded %d sample tasks", len(tasks))
    return len(tasks)
