"""
Snapshot repository: reads and writes the single named `store_snapshots` row.

Loading is forgiving (undecodable JSON is logged and treated as "nothing
stored"); saving is an upsert committed before returning, so a save that
returned is durable.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from app.models.store_snapshot import StoreSnapshot
from app.services.entities import StoreState
from app.services.migration import STORE_VERSION

logger = logging.getLogger(__name__)


@dataclass
class RawSnapshot:
    """What is on disk, before migration."""
    schema_version: Optional[int]
    payload: Any


class SnapshotRepository:
    def __init__(self, session_factory: Callable[[], Session], name: str):
        self._session_factory = session_factory
        self.name = name

    def _get_row(self, db: Session) -> Optional[StoreSnapshot]:
        return (
            db.query(StoreSnapshot)
            .filter(StoreSnapshot.name == self.name)
            .first()
        )

    def load(self) -> RawSnapshot:
        """Return the stored payload, or an empty RawSnapshot when none exists."""
        db = self._session_factory()
        try:
            row = self._get_row(db)
            if row is None:
                return RawSnapshot(schema_version=None, payload=None)
            version, text = row.schema_version, row.payload
        finally:
            db.close()

        if not text:
            return RawSnapshot(schema_version=version, payload=None)
        try:
            payload = json.loads(text)
        except (ValueError, TypeError):
            logger.warning("Snapshot %r holds undecodable JSON; ignoring it", self.name)
            payload = None
        return RawSnapshot(schema_version=version, payload=payload)

    def save(self, state: StoreState) -> None:
        payload = json.dumps(state.to_wire(), ensure_ascii=False)
        db = self._session_factory()
        try:
            row = self._get_row(db)
            if row is None:
                row = StoreSnapshot(name=self.name)
                db.add(row)
            row.schema_version = STORE_VERSION
            row.payload = payload
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
