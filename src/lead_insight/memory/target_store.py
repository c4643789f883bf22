"""Persistence for KPI targets in a local key-value store.

The whole target record is stored as JSON under one fixed key and is
replaced on every save. Loading never fails: a missing or unreadable entry
yields the default targets.
"""
from __future__ import annotations

import json
import logging
from typing import Protocol

from pydantic import ValidationError
from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from lead_insight.db.connection import build_engine, build_sessionmaker
from lead_insight.db.models import KeyValueEntry
from lead_insight.discovery.kpi_engine import KPITargets

logger = logging.getLogger(__name__)

DEFAULT_KEY = "crm_kpi_targets"


class TargetStore(Protocol):
    def load(self) -> KPITargets: ...

    def save(self, targets: KPITargets) -> None: ...


def serialize_targets(targets: KPITargets) -> str:
    return json.dumps(targets.model_dump(by_alias=True), sort_keys=True)


def deserialize_targets(raw: str | None) -> KPITargets:
    """Decode stored JSON, falling back to defaults when absent or invalid."""
    if not raw:
        return KPITargets()
    try:
        return KPITargets.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError, TypeError):
        logger.warning("Stored KPI targets are unreadable — using defaults")
        return KPITargets()


class InMemoryTargetStore:
    """Dict-backed store with the same semantics as the SQL store."""

    def __init__(self, key: str = DEFAULT_KEY):
        self.key = key
        self.entries: dict[str, str] = {}

    def load(self) -> KPITargets:
        return deserialize_targets(self.entries.get(self.key))

    def save(self, targets: KPITargets) -> None:
        self.entries[self.key] = serialize_targets(targets)


class SqlTargetStore:
    """Targets persisted in the ``kv_entries`` table."""

    def __init__(self, engine: Engine, key: str = DEFAULT_KEY):
        self.key = key
        self._sessions = build_sessionmaker(engine)

    @classmethod
    def from_url(cls, url: str, key: str = DEFAULT_KEY) -> SqlTargetStore:
        return cls(build_engine(url), key)

    def _get(self, session: Session) -> KeyValueEntry | None:
        return session.execute(
            select(KeyValueEntry).where(KeyValueEntry.key == self.key)
        ).scalar_one_or_none()

    def load(self) -> KPITargets:
        with self._sessions() as session:
            entry = self._get(session)
            return deserialize_targets(entry.value if entry else None)

    def save(self, targets: KPITargets) -> None:
        payload = serialize_targets(targets)
        with self._sessions() as session:
            entry = self._get(session)
            if entry is None:
                session.add(KeyValueEntry(key=self.key, value=payload))
            else:
                entry.value = payload
            session.commit()
        logger.info("Saved KPI targets under '%s'", self.key)
