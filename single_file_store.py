"""Single-file embedded profile store backed by one SQLite key/value table."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from models import NormalizedProfile, UpsertResult
from profile_store import ProfileStore

LOGGER = logging.getLogger(__name__)

_SCHEMA = "CREATE TABLE IF NOT EXISTS profiles (id TEXT PRIMARY KEY, document TEXT NOT NULL)"


class SingleFileStore(ProfileStore):
    """Maps str(profileId) to the whole normalized profile document.

    Presentations, publications and processing data stay nested inside the
    profile document. ``upsert`` overwrites, so repeated writes of the same
    id keep only the latest value.
    """

    split_records = False

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn = sqlite3.connect(self._path)
        self._conn.execute(_SCHEMA)
        self._conn.commit()

    @property
    def location(self) -> str:
        return self._path

    def clear(self) -> None:
        self._conn.execute("DELETE FROM profiles")
        self._conn.commit()
        LOGGER.info("Cleared single-file store at %s", self._path)

    def upsert(self, record: NormalizedProfile) -> UpsertResult:
        failed: list[str] = []
        document = dict(record.profile)

        try:
            document["processed"] = {
                "lastModified": int(time.time()),
                "data": record.processing_payload(),
            }
        except (TypeError, ValueError) as exc:
            failed.append("processed")
            LOGGER.error("Profile %s: failed to update process data: %s", record.profile_id, exc)

        try:
            self._conn.execute(
                "INSERT OR REPLACE INTO profiles (id, document) VALUES (?, ?)",
                (str(record.profile_id), json.dumps(document)),
            )
        except (sqlite3.Error, TypeError, ValueError) as exc:
            failed.append("profile")
            LOGGER.error("Profile %s failed to save: %s", record.profile_id, exc)

        return UpsertResult(profile_id=record.profile_id, failed=tuple(failed))

    def count(self) -> int:
        (total,) = self._conn.execute("SELECT COUNT(*) FROM profiles").fetchone()
        return total

    def flush(self) -> None:
        self._conn.commit()

    def commit(self) -> int:
        """Flush, compact the file and reopen it; returns the stored count."""
        self._conn.commit()
        self._conn.execute("VACUUM")
        self._conn.close()
        self._conn = sqlite3.connect(self._path)
        total = self.count()
        LOGGER.info("Committed %s profiles to %s", total, self._path)
        return total

    def close(self) -> None:
        self._conn.close()

    def profile_ids(self) -> list[int]:
        rows = self._conn.execute("SELECT id FROM profiles").fetchall()
        return sorted(int(row[0]) for row in rows)

    def read(self, profile_id: int) -> dict[str, Any] | None:
        row = self._conn.execute(
            "SELECT document FROM profiles WHERE id = ?", (str(profile_id),)
        ).fetchone()
        return json.loads(row[0]) if row else None

    def presentations(self, profile_id: int) -> list[dict[str, Any]] | None:
        return self._nested(profile_id, "presentations")

    def publications(self, profile_id: int) -> list[dict[str, Any]] | None:
        return self._nested(profile_id, "publications")

    def processing(self, profile_id: int) -> dict[str, Any] | None:
        return self._nested(profile_id, "processed")

    def _nested(self, profile_id: int, key: str) -> Any:
        profile = self.read(profile_id)
        return profile.get(key) if profile else None
