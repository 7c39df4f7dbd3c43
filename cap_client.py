"""HTTP access to the CAP profiles API."""

from __future__ import annotations

import logging
from typing import Any

import requests

PROFILES_PATH = "/profiles/v1"
PAGE_SIZE = 100
JSON_CONTENT = "application/json"

# (connect, read) timeouts in seconds
API_TIMEOUT = (10, 90)

LOGGER = logging.getLogger(__name__)


class PageFetchError(RuntimeError):
    """A profiles page could not be retrieved (non-200, transport error or bad body)."""

    def __init__(self, page: int, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.page = page
        self.status = status


def build_sessions() -> tuple[requests.Session, requests.Session]:
    """Return the (auth, api) sessions, both sending JSON accept/content-type headers."""
    auth_session = requests.Session()
    api_session = requests.Session()
    for session in (auth_session, api_session):
        session.headers.update({"Accept": JSON_CONTENT, "Content-Type": JSON_CONTENT})
    return auth_session, api_session


class ProfilesApi:
    """Paged reads of ``GET /profiles/v1``.

    Authorization is whatever default header the shared session carries;
    TokenAuthenticator sets it.
    """

    def __init__(self, session: requests.Session, base_url: str, page_size: int = PAGE_SIZE) -> None:
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size

    def fetch_page(self, page: int) -> dict[str, Any]:
        """Return the decoded page body or raise PageFetchError."""
        url = f"{self.base_url}{PROFILES_PATH}"
        try:
            response = self.session.get(
                url,
                params={"p": page, "ps": self.page_size},
                timeout=API_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise PageFetchError(page, f"Failed to GET profiles page {page}: {exc}") from exc

        if response.status_code != 200:
            raise PageFetchError(
                page,
                f"Failed to GET profiles page {page}: {response.status_code}",
                status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise PageFetchError(page, f"Profiles page {page} is not valid JSON: {exc}", status=200) from exc

        if not isinstance(body, dict):
            raise PageFetchError(page, f"Unexpected profiles page {page} payload shape", status=200)

        LOGGER.debug("Fetched profiles page=%s values=%s", page, len(body.get("values") or []))
        return body
