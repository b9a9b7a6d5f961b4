"""
StoreSnapshot: the single durable artifact of the goal engine.

One row per store name. `payload` is the JSON-encoded state
`{activeGoal, archivedGoals, records, stabilityScore}` in the camelCase shape
the app has always written; `schema_version` selects the migration parser
on load (see app/services/migration.py).

Stored as Text so older payloads survive column-type changes untouched.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class StoreSnapshot(Base):
    __tablename__ = "store_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payload: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="JSON-encoded store state",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
