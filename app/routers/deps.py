"""
Request-scoped access to the application's GoalStore.

The store lives on `app.state.goal_store` (created in the lifespan of
app/main.py). Goal-dependent routes use `get_hydrated_store` so they answer
503 instead of a misleading "no goal" while the snapshot is still loading.
"""
from fastapi import Request

from app.core.errors import StoreNotHydratedError
from app.services.goal_store import GoalStore


def get_goal_store(request: Request) -> GoalStore:
    store = getattr(request.app.state, "goal_store", None)
    if store is None:
        raise StoreNotHydratedError()
    return store


def get_hydrated_store(request: Request) -> GoalStore:
    store = get_goal_store(request)
    if not store.has_hydrated:
        raise StoreNotHydratedError()
    return store
