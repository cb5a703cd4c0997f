from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, create_engine

from .config import DATABASE_URL

# the tasks table must be registered on SQLModel.metadata before create_all
from .models import Task  # noqa: F401


def build_engine(url: str, **overrides) -> Engine:
    """Engine for ``url``; keyword overrides win over the per-backend defaults."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
    else:
        # hosted Postgres drops idle connections, so no pool and a liveness ping
        options = {"pool_pre_ping": True, "poolclass": NullPool}
    options.update(overrides)
    return create_engine(url, echo=False, **options)


def session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


def create_tables(bind: Engine) -> None:
    SQLModel.metadata.create_all(bind=bind)


engine = build_engine(DATABASE_URL)

SessionLocal = session_factory(engine)


def get_db():
    """Request-scoped session for FastAPI's ``Depends``."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_session():
    """Same session lifecycle as ``get_db`` for startup hooks and scripts."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
