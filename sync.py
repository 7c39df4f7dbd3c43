"""Full-refresh synchronization of CAP profiles into the local store."""

from __future__ import annotations

import logging
from typing import Any

from auth_client import TokenAuthenticator
from cap_client import PageFetchError, ProfilesApi, build_sessions
from config import Settings
from models import SyncReport, SyncStatus
from normalizer import RecordNormalizer
from profile_store import ProfileStore

# Upper bound on pages per run in case the API never reports lastPage.
DEFAULT_MAX_PAGES = 10_000

LOGGER = logging.getLogger(__name__)


class SyncPipeline:
    """Authenticate, clear the store, then page through the API storing every profile.

    The store is cleared before the first page is requested and is not
    restored if the run stops part-way; it then holds whatever was stored
    up to that point.
    """

    def __init__(
        self,
        authenticator: TokenAuthenticator,
        api: ProfilesApi,
        store: ProfileStore,
        normalizer: RecordNormalizer,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        self.authenticator = authenticator
        self.api = api
        self.store = store
        self.normalizer = normalizer
        self.max_pages = max_pages

    def run(self) -> SyncReport:
        if not self.authenticator.authenticate():
            LOGGER.error("Failed to authenticate")
            return SyncReport(status=SyncStatus.AUTH_FAILED)

        report = SyncReport(status=SyncStatus.COMPLETE)
        try:
            self.store.clear()
            self._fetch_pages(report)
        except Exception as exc:
            report.status = SyncStatus.FAILED
            LOGGER.exception("Profile sync failed: %s", exc)
        finally:
            self._commit(report)
        return report

    def _fetch_pages(self, report: SyncReport) -> None:
        page = 1
        while True:
            if page > self.max_pages:
                LOGGER.error("Stopping after %s pages without a lastPage marker", self.max_pages)
                report.status = SyncStatus.PARTIAL
                return

            try:
                data = self.api.fetch_page(page)
            except PageFetchError as exc:
                LOGGER.error("%s", exc)
                report.status = SyncStatus.PARTIAL
                return

            report.pages_fetched += 1
            if data.get("firstPage"):
                report.total_pages = _as_int(data.get("totalPages"), "totalPages")
                report.total_count = _as_int(data.get("totalCount"), "totalCount")
                LOGGER.info(
                    "Retrieved %s of %s pages (%s profiles).",
                    page,
                    report.total_pages,
                    report.total_count,
                )
            else:
                LOGGER.info("Retrieved %s of %s pages.", page, report.total_pages)

            for raw in data.get("values") or []:
                self._store_record(raw, report)
            self.store.flush()

            if data.get("lastPage"):
                return
            page += 1

    def _store_record(self, raw: Any, report: SyncReport) -> None:
        profile_id = raw.get("profileId") if isinstance(raw, dict) else None
        try:
            record = self.normalizer.process(raw)
            result = self.store.upsert(record)
        except Exception as exc:
            report.failed_records += 1
            report.status = SyncStatus.PARTIAL
            LOGGER.exception(
                "Profile %s could not be stored (%s): %s", profile_id, type(exc).__name__, exc
            )
            return

        if not result.ok:
            report.failed_records += 1
            report.status = SyncStatus.PARTIAL
            LOGGER.warning("Profile %s stored with failed parts: %s", profile_id, ", ".join(result.failed))

    def _commit(self, report: SyncReport) -> None:
        try:
            report.stored = self.store.commit()
        except Exception as exc:
            report.status = SyncStatus.FAILED
            LOGGER.exception("Commit to %s failed: %s", self.store.location, exc)
            return
        LOGGER.info("Stored %s of %s profiles.", report.stored, report.total_count)
        LOGGER.info("Stored profiles to %s.", self.store.location)


def _as_int(value: Any, name: str) -> int:
    """Parse a reporting-only page field, falling back to 0."""
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring non-numeric %s in profiles page: %r", name, value)
        return 0


def build_pipeline(settings: Settings, store: ProfileStore) -> SyncPipeline:
    """Wire the HTTP sessions, authenticator and normalizer for ``store``."""
    auth_session, api_session = build_sessions()
    authenticator = TokenAuthenticator(
        auth_session=auth_session,
        api_session=api_session,
        auth_url=settings.auth_url,
        user=settings.token_user,
        secret=settings.token_pass,
    )
    return SyncPipeline(
        authenticator=authenticator,
        api=ProfilesApi(api_session, settings.api_url),
        store=store,
        normalizer=RecordNormalizer(clean=settings.clean, split_records=store.split_records),
    )
