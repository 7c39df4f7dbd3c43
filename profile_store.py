"""Storage contract shared by the single-file and document-store backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from models import NormalizedProfile, UpsertResult


class ProfileStore(ABC):
    """Persists normalized profiles and answers point lookups by profile id.

    ``split_records`` tells the normalizer whether presentations and
    publications are stored as separate documents.
    """

    split_records: bool = False

    @property
    @abstractmethod
    def location(self) -> str:
        """Where the data lives, for log and summary lines."""

    @abstractmethod
    def clear(self) -> None:
        """Irreversibly remove every stored record."""

    @abstractmethod
    def upsert(self, record: NormalizedProfile) -> UpsertResult:
        """Persist one profile; storage errors are reported in the result, never raised."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored top-level profile records."""

    def flush(self) -> None:
        """Make writes so far durable; called after every page."""

    def close(self) -> None:
        """Release the underlying connection."""

    @abstractmethod
    def commit(self) -> int:
        """Final durability step after a run; returns the stored profile count."""

    @abstractmethod
    def profile_ids(self) -> list[int]:
        ...

    @abstractmethod
    def read(self, profile_id: int) -> dict[str, Any] | None:
        ...

    @abstractmethod
    def presentations(self, profile_id: int) -> list[dict[str, Any]] | None:
        ...

    @abstractmethod
    def publications(self, profile_id: int) -> list[dict[str, Any]] | None:
        ...

    @abstractmethod
    def processing(self, profile_id: int) -> dict[str, Any] | None:
        ...
