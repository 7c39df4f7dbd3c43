"""OAuth client-credentials token handling for the CAP API."""

from __future__ import annotations

import base64
import logging
import time

import requests

# (connect, read) timeouts in seconds
AUTH_TIMEOUT = (10, 30)

LOGGER = logging.getLogger(__name__)


class TokenAuthenticator:
    """Caches a bearer token and installs it on the shared HTTP sessions.

    ``authenticate()`` mutates the default headers of both sessions, so one
    instance must not be used by concurrent sync runs.
    """

    def __init__(
        self,
        auth_session: requests.Session,
        api_session: requests.Session,
        auth_url: str,
        user: str,
        secret: str,
    ) -> None:
        self.auth_session = auth_session
        self.api_session = api_session
        self.auth_url = auth_url
        self.user = user or ""
        self.secret = secret or ""
        self.access_token: str | None = None
        self.access_expiry: float = 0.0

    def authenticate_force(self) -> bool:
        """Discard the cached token and authenticate again."""
        self.access_expiry = 0.0
        return self.authenticate()

    def authenticate(self) -> bool:
        """Ensure a valid bearer token is installed; returns False on any failure."""
        if time.time() >= self.access_expiry:
            self.access_token = None
            self.auth_session.headers.pop("Authorization", None)
            self.api_session.headers.pop("Authorization", None)

        if self.access_token:
            return True

        if not self.user and not self.secret:
            LOGGER.error("Token credentials are not configured")
            return False

        credentials = base64.b64encode(f"{self.user}:{self.secret}".encode()).decode("ascii")
        self.auth_session.headers["Authorization"] = f"Basic {credentials}"

        try:
            response = self.auth_session.get(
                self.auth_url,
                params={"grant_type": "client_credentials"},
                timeout=AUTH_TIMEOUT,
            )
        except requests.RequestException as exc:
            LOGGER.error("Token request failed: %s", exc)
            return False

        if response.status_code != 200:
            LOGGER.error("Token request returned status %s", response.status_code)
            return False

        try:
            body = response.json()
        except ValueError as exc:
            LOGGER.error("Token response is not valid JSON: %s", exc)
            return False

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            LOGGER.error("Token response has no access_token")
            return False

        try:
            expires_in = int(body.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_in = 0

        self.access_token = f"Bearer {token}"
        self.access_expiry = time.time() + expires_in
        self.api_session.headers["Authorization"] = self.access_token
        LOGGER.info("Authenticated; token expires in %s seconds", expires_in)
        return True
