"""
Shared pytest fixtures.

Uses a throwaway SQLite file so no Postgres is required for tests. The
DATABASE_URL override must happen before anything under `app` is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite:///./test_goal_engine.db"

import pytest
from fastapi.testclient import TestClient

from app.db.base import Base, SessionLocal, engine
from app.main import app
from app.models.store_snapshot import StoreSnapshot
from app.services.goal_store import GoalStore
from app.services.persistence import SnapshotRepository

TEST_STORE_KEY = "test-store"


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def repository(db):
    db.query(StoreSnapshot).filter(StoreSnapshot.name == TEST_STORE_KEY).delete()
    db.commit()
    return SnapshotRepository(SessionLocal, name=TEST_STORE_KEY)


@pytest.fixture()
def store(repository):
    s = GoalStore(repository)
    s.load()
    return s


@pytest.fixture()
def client():
    with TestClient(app) as c:
        app.state.goal_store.clear_store()
        yield c
