import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import APP_VERSION, CORS_ORIGINS, LOG_LEVEL, SEED_DATA
from .database import create_tables, engine, get_session
from .logging_config import setup_logging
from .problems import install_problem_handlers
from .routers import tasks
from .seed import seed_tasks

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Task Tracker API",
    description="A simple task management API: list, search, sort, create, edit, delete and complete tasks",
    version=APP_VERSION,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_problem_handlers(app)

# Include routers
app.include_router(tasks.router, prefix="/api", tags=["tasks"])


# Create tables (and sample data) on startup
@app.on_event("startup")
def on_startup():
    create_tables(engine)
    if SEED_DATA:
        with get_session() as session:
            seed_tasks(session)
    logger.info("Task Tracker API %s ready", APP_VERSION)


@app.get("/")
def read_root():
    return {"message": "Task Tracker API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}
