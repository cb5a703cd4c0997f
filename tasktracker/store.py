from typing import Iterable, List, Optional

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from .models import Task

# Columns a conditional write may change; id and created_at are fixed at insert.
_MUTABLE_COLUMNS = ("title", "description", "status", "priority", "due_date", "updated_at")


class TaskStore:
    """Record store for tasks on top of one SQLAlchemy session.

    Every task handed out is detached from the session, so editing it
    changes nothing in the database until it is passed back to
    ``insert`` or ``update_conditional``.
    """

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, task_id: int) -> Optional[Task]:
        task = self.session.get(Task, task_id)
        if task is not None:
            self.session.expunge(task)
        return task

    def exists(self, task_id: int) -> bool:
        return self.session.query(Task.id).filter(Task.id == task_id).first() is not None

    def query(self, predicate=None, order_by: Iterable = ()) -> List[Task]:
        query = self.session.query(Task)
        if predicate is not None:
            query = query.filter(predicate)
        # id last keeps equal sort keys in insertion order
        tasks = query.order_by(*order_by, Task.id).all()
        for task in tasks:
            self.session.expunge(task)
        return tasks

    def insert(self, task: Task) -> Task:
        task.version = 1
        try:
            self.session.add(task)
            self.session.commit()
            self.session.refresh(task)
        except Exception:
            self.session.rollback()
            raise
        self.session.expunge(task)
        return task

    def update_conditional(self, task: Task, expected_version: int) -> bool:
        """Write ``task`` only if its stored version is still ``expected_version``.

        Returns False when the row was changed or deleted since it was read.
        """
        values = {column: getattr(task, column) for column in _MUTABLE_COLUMNS}
        values["version"] = expected_version + 1
        stmt = (
            update(Task)
            .where(Task.id == task.id, Task.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
            if result.rowcount != 1:
                self.session.rollback()
                return False
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        task.version = expected_version + 1
        return True

    def delete(self, task_id: int) -> bool:
        stmt = delete(Task).where(Task.id == task_id).execution_options(synchronize_session=False)
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return result.rowcount > 0
