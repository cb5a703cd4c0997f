from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from tasktracker.database import build_engine, create_tables, get_db, session_factory as make_session_factory
from tasktracker.main import app
from tasktracker.models import Priority, TaskStatus
from tasktracker.services.task_service import TaskService
from tasktracker.store import TaskStore


@pytest.fixture
def engine():
    # one shared connection keeps the in-memory database alive across sessions
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(session):
    return TaskStore(session)


@pytest.fixture
def service(store):
    return TaskService(store)


@pytest.fixture
def seeded(service):
    """Three tasks mirroring a typical list: two 'Test' tasks and one other."""
    now = datetime.now(timezone.utc)
    payloads = [
        {"title": "Test Task 1", "description": "Description 1", "status": TaskStatus.NEW,
         "priority": Priority.MEDIUM, "due_date": now + timedelta(days=7)},
        {"title": "Test Task 2", "description": "Description 2", "status": TaskStatus.IN_PROGRESS,
         "priority": Priority.HIGH, "due_date": now + timedelta(days=3)},
        {"title": "Another Task", "description": "Description 3", "status": TaskStatus.DONE,
         "priority": Priority.LOW, "due_date": now + timedelta(days=1)},
    ]
    return {payload["title"]: service.create_task(payload).task for payload in payloads}


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
