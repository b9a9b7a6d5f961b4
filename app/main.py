from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.db.base import SessionLocal, get_db
from app.core.config import settings
from app.core.logging import setup_logging
from app.routers import goal as goal_router
from app.routers import metrics as metrics_router
from app.services.goal_store import GoalStore
from app.services.persistence import SnapshotRepository
from app.core.errors import (
    GoalEngineException,
    goal_engine_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging(settings.LOG_LEVEL)


def build_goal_store() -> GoalStore:
    return GoalStore(
        SnapshotRepository(SessionLocal, name=settings.STORE_KEY),
        completion_policy=settings.COMPLETION_POLICY,
        auto_complete=settings.AUTO_COMPLETE_GOALS,
        default_total_days=settings.DEFAULT_TOTAL_DAYS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The store is usable (has_hydrated) only after load() returns
    store = build_goal_store()
    app.state.goal_store = store
    store.load()
    yield


app = FastAPI(
    title="Goal Engine API",
    description=(
        "**Single-goal habit tracking engine**\n\n"
        "One active goal, daily energy/output logs, energy-adjusted progress and a "
        "7-day weighted stability score.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="4.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(GoalEngineException, goal_engine_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(goal_router.router)
app.include_router(metrics_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok", "hydrated": true}` when the API and the
    database are reachable. Returns HTTP 503 if the DB is down.
    Used by Railway / Render for liveness probes.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    store = getattr(app.state, "goal_store", None)
    return {
        "status": "ok",
        "db": "ok",
        "hydrated": bool(store and store.has_hydrated),
        "env": settings.APP_ENV,
    }
