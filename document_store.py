"""Split-storage profile backend on MongoDB.

Large profiles exceed the per-document size limit, so each profile is
spread over four collections keyed by profileId (used as ``_id``):
``profiles``, ``presentations``, ``publications`` and ``processed``.
Inserts rely on the ``_id`` uniqueness constraint, so writing the same id
twice without a ``clear()`` in between fails with a duplicate key error.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from bson.errors import InvalidDocument
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from models import NormalizedProfile, UpsertResult
from profile_store import ProfileStore

DEFAULT_DATABASE = "cap"
COLLECTIONS = ("profiles", "presentations", "publications", "processed")

LOGGER = logging.getLogger(__name__)

_STORE_ERRORS = (PyMongoError, InvalidDocument)


def connect_document_store(uri: str) -> DocumentStore:
    """Open a DocumentStore for a mongodb:// connection string."""
    client: MongoClient = MongoClient(uri)
    return DocumentStore(client.get_default_database(DEFAULT_DATABASE))


class DocumentStore(ProfileStore):
    split_records = True

    def __init__(self, database: Database) -> None:
        self._db = database
        self._profiles = database["profiles"]
        self._presentations = database["presentations"]
        self._publications = database["publications"]
        self._processed = database["processed"]

    @property
    def location(self) -> str:
        return f"{self._db.name}.profiles"

    def clear(self) -> None:
        """Drop and recreate the four collections."""
        for name in COLLECTIONS:
            self._db[name].drop()
            self._db.create_collection(name)
        LOGGER.info("Cleared document store collections in %s", self._db.name)

    def upsert(self, record: NormalizedProfile) -> UpsertResult:
        """Insert the four sub-documents independently; each failure is logged and skipped."""
        profile_id = record.profile_id
        failed: list[str] = []

        try:
            self._presentations.insert_one(
                {"_id": profile_id, "presentations": record.presentations or []}
            )
        except _STORE_ERRORS as exc:
            failed.append("presentations")
            LOGGER.error("Profile %s presentations failed to save: %s", profile_id, exc)

        try:
            self._publications.insert_one(
                {"_id": profile_id, "publications": record.publications or []}
            )
        except _STORE_ERRORS as exc:
            failed.append("publications")
            LOGGER.error("Profile %s publications failed to save: %s", profile_id, exc)

        try:
            self._profiles.insert_one({**record.profile, "_id": profile_id})
        except _STORE_ERRORS as exc:
            failed.append("profile")
            LOGGER.error("Profile %s failed to save: %s", profile_id, exc)

        try:
            self._processed.insert_one(
                {
                    "_id": profile_id,
                    "lastModified": int(time.time()),
                    "data": record.processing_payload(),
                }
            )
        except (*_STORE_ERRORS, TypeError, ValueError) as exc:
            failed.append("processed")
            LOGGER.error("Profile %s: failed to update process data: %s", profile_id, exc)

        return UpsertResult(profile_id=profile_id, failed=tuple(failed))

    def count(self) -> int:
        return self._profiles.count_documents({})

    def commit(self) -> int:
        # Inserts are already durable; nothing to flush.
        total = self.count()
        LOGGER.info("Committed %s profiles to %s", total, self.location)
        return total

    def close(self) -> None:
        self._db.client.close()

    def profile_ids(self) -> list[int]:
        return sorted(doc["_id"] for doc in self._profiles.find({}, {"_id": 1}))

    def read(self, profile_id: int) -> dict[str, Any] | None:
        profile = self._profiles.find_one({"_id": profile_id})
        if profile is None:
            return None
        profile["profileId"] = profile.pop("_id")
        return profile

    def presentations(self, profile_id: int) -> list[dict[str, Any]] | None:
        doc = self._presentations.find_one({"_id": profile_id})
        return doc["presentations"] if doc else None

    def publications(self, profile_id: int) -> list[dict[str, Any]] | None:
        doc = self._publications.find_one({"_id": profile_id})
        return doc["publications"] if doc else None

    def processing(self, profile_id: int) -> dict[str, Any] | None:
        doc = self._processed.find_one({"_id": profile_id})
        if doc is None:
            return None
        doc.pop("_id")
        return doc
