"""In-memory record store — the current snapshot of the lead spreadsheet.

Headers and rows are replaced together on every refresh, never partially.
Each refresh takes a monotonically increasing token; a response that
arrives after a newer refresh was issued is discarded.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType

from lead_insight.discovery.fields import Record
from lead_insight.ingestion.csv_parser import ParsedSheet
from lead_insight.ingestion.sheet_fetcher import FetchError, fetch_sheet

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[ParsedSheet]]


@dataclass(frozen=True)
class Snapshot:
    """One fetch cycle's worth of data. Immutable once built."""
    headers: tuple[str, ...]
    records: tuple[Record, ...]
    loaded_at: datetime
    token: int

    @property
    def record_count(self) -> int:
        return len(self.records)


def build_snapshot(sheet: ParsedSheet, token: int = 0, loaded_at: datetime | None = None) -> Snapshot:
    """Freeze a parsed sheet into a snapshot."""
    return Snapshot(
        headers=tuple(sheet.headers),
        records=tuple(MappingProxyType(dict(row)) for row in sheet.rows),
        loaded_at=loaded_at or datetime.now(timezone.utc),
        token=token,
    )


class RecordStore:
    """Holds the latest snapshot or the latest fetch error, never both."""

    def __init__(self, fetcher: Fetcher | None = None):
        self._fetcher = fetcher or fetch_sheet
        self._tokens = itertools.count(1)
        self._latest_token = 0
        self.snapshot: Snapshot | None = None
        self.error: str | None = None
        self.is_loading = False

    @property
    def has_data(self) -> bool:
        return self.snapshot is not None

    def load(self, sheet: ParsedSheet) -> Snapshot:
        """Install a parsed sheet directly, superseding any in-flight refresh."""
        token = next(self._tokens)
        self._latest_token = token
        self.snapshot = build_snapshot(sheet, token)
        self.error = None
        self.is_loading = False
        return self.snapshot

    async def refresh(self) -> Snapshot | None:
        """Fetch and install a new snapshot.

        Returns the installed snapshot, or None when this response was
        superseded by a newer refresh.

        Raises:
            FetchError: when the fetch fails; the store is left in the error
                state with no data.
        """
        token = next(self._tokens)
        self._latest_token = token
        self.is_loading = True
        self.error = None

        try:
            sheet = await self._fetcher()
        except FetchError as exc:
            if token != self._latest_token:
                logger.info("Discarding failed refresh %d (latest is %d)", token, self._latest_token)
                return None
            self.snapshot = None
            self.error = str(exc)
            self.is_loading = False
            raise

        if token != self._latest_token:
            logger.info("Discarding stale refresh %d (latest is %d)", token, self._latest_token)
            return None

        self.snapshot = build_snapshot(sheet, token)
        self.is_loading = False
        logger.info("Installed snapshot %d with %d records", token, self.snapshot.record_count)
        return self.snapshot
