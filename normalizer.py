"""Redaction and splitting of raw profile records before persistence."""

from __future__ import annotations

import copy
import time
from collections.abc import Iterable
from typing import Any

from models import NormalizedProfile

# Identity fields removed from every profile when sanitization is enabled.
PRIVILEGED_FIELDS: tuple[str, ...] = ("uid", "universityId")

# Only these publication attributes are kept by the split-storage backend.
PUBLICATION_FIELDS: frozenset[str] = frozenset({
    "doiId",
    "doiUrl",
    "webOfScienceId",
    "webOfScienceUrl",
})


class RecordNormalizer:
    """Turn one raw API profile into a NormalizedProfile for a given backend.

    Args:
        clean: Strip ``privileged_fields`` from the top-level profile.
        split_records: Produce separate presentations/publications payloads
            (document store) instead of leaving them nested (single file).
        privileged_fields: Field names treated as privileged.
    """

    def __init__(
        self,
        clean: bool = True,
        split_records: bool = False,
        privileged_fields: Iterable[str] = PRIVILEGED_FIELDS,
    ) -> None:
        self.clean = clean
        self.split_records = split_records
        self.privileged_fields = tuple(privileged_fields)

    def process(self, raw: dict[str, Any]) -> NormalizedProfile:
        """Normalize a copy of ``raw``; raises ValueError for records without a usable id."""
        if not isinstance(raw, dict):
            raise ValueError(f"Unexpected profile record shape: {type(raw).__name__}")

        profile = copy.deepcopy(raw)
        profile_id = _profile_id(profile)
        retrieved_at = int(time.time())

        if self.clean:
            for name in self.privileged_fields:
                profile.pop(name, None)

        if not self.split_records:
            return NormalizedProfile(profile_id=profile_id, profile=profile, retrieved_at=retrieved_at)

        profile.pop("profileId", None)
        presentations = [_strip_detail(item) for item in profile.pop("presentations", None) or []]
        publications = [_allowed_publication_fields(item) for item in profile.pop("publications", None) or []]

        return NormalizedProfile(
            profile_id=profile_id,
            profile=profile,
            presentations=presentations,
            publications=publications,
            retrieved_at=retrieved_at,
        )


def _profile_id(profile: dict[str, Any]) -> int:
    value = profile.get("profileId")
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Profile record has no usable profileId: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Profile record has no usable profileId: {value!r}") from exc


def _strip_detail(presentation: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in presentation.items() if key != "detail"}


def _allowed_publication_fields(publication: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in publication.items() if key in PUBLICATION_FIELDS}
