"""Shared typed models for the profile sync pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


@dataclass(slots=True)
class NormalizedProfile:
    """One profile record after redaction and backend-specific splitting.

    For the single-file backend ``profile`` is the whole redacted record and
    ``presentations``/``publications`` are None (they stay nested). For the
    split-storage backend ``profile`` is the core document and the nested
    collections are carried separately.
    """

    profile_id: int
    profile: dict[str, Any]
    presentations: list[dict[str, Any]] | None = None
    publications: list[dict[str, Any]] | None = None
    retrieved_at: int = field(default_factory=lambda: int(time.time()))

    def processing_payload(self) -> dict[str, Any]:
        """Derive the processing metadata; raises ValueError on a bad lastModified."""
        return {
            "cap_modified": parse_modified(self.profile.get("lastModified")),
            "cap_retrieved": self.retrieved_at,
        }


def parse_modified(raw: Any) -> int:
    """Convert a profile's lastModified timestamp into epoch seconds (0 if missing)."""
    if raw is None or raw == "":
        return 0
    if not isinstance(raw, str):
        raise ValueError(f"lastModified is not a timestamp string: {raw!r}")
    # API timestamps look like 2015-08-17T10:55:46.772-07:00
    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp())


@dataclass(frozen=True, slots=True)
class UpsertResult:
    """Outcome of persisting one profile; ``failed`` names the parts that did not save."""

    profile_id: int
    failed: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed


class SyncStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    AUTH_FAILED = "auth_failed"
    FAILED = "failed"


@dataclass(slots=True)
class SyncReport:
    """Summary of one full-refresh run."""

    status: SyncStatus
    pages_fetched: int = 0
    total_pages: int = 0
    total_count: int = 0
    stored: int = 0
    failed_records: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status in (SyncStatus.COMPLETE, SyncStatus.PARTIAL)
