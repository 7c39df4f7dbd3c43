"""Process configuration: environment settings, logging and store selection."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from profile_store import ProfileStore

DEFAULT_API_URL = "https://api.stanford.edu"
DEFAULT_AUTH_URL = "https://authz.stanford.edu/oauth/token"
DEFAULT_LOG_FILE = "log/cap.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable run configuration built once at start-up."""

    token_user: str = ""
    token_pass: str = ""
    repo_mongo: str | None = None
    repo_db: str = "log/cap_profiles.db"
    clean: bool = True
    debug: bool = False
    log_file: str = DEFAULT_LOG_FILE
    api_url: str = DEFAULT_API_URL
    auth_url: str = DEFAULT_AUTH_URL

    @property
    def uses_document_store(self) -> bool:
        return bool(self.repo_mongo)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read settings from the environment (os.environ by default)."""
    env = os.environ if environ is None else environ

    log_file = env.get("CAP_LOG_FILE") or DEFAULT_LOG_FILE
    repo_db = env.get("CAP_REPO_DB") or str(Path(log_file).parent / "cap_profiles.db")

    return Settings(
        token_user=env.get("CAP_TOKEN_USER", ""),
        token_pass=env.get("CAP_TOKEN_PASS", ""),
        repo_mongo=env.get("CAP_REPO_MONGO") or None,
        repo_db=repo_db,
        clean=_env_boolean(env, "CAP_CLEAN", default=True),
        debug=_env_boolean(env, "DEBUG"),
        log_file=log_file,
        api_url=env.get("CAP_API_URL") or DEFAULT_API_URL,
        auth_url=env.get("CAP_AUTH_URL") or DEFAULT_AUTH_URL,
    )


def _env_boolean(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().upper() == "TRUE"


def configure_logging(settings: Settings) -> None:
    """Log to the console and to the configured log file (stderr only if it can't be opened)."""
    level = logging.DEBUG if settings.debug else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    file_error: OSError | None = None

    try:
        log_path = Path(settings.log_file).absolute()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="w", encoding="utf-8"))
    except OSError as exc:
        file_error = exc

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    logging.getLogger("pymongo").setLevel(logging.INFO if settings.debug else logging.WARNING)

    if file_error is not None:
        LOGGER.warning("Could not open log file %s, logging to stderr: %s", settings.log_file, file_error)


def create_store(settings: Settings) -> ProfileStore:
    """Open the profile store selected by the settings.

    Called once during start-up; the returned store is reused across runs.
    """
    if settings.uses_document_store:
        from document_store import connect_document_store  # noqa: PLC0415

        LOGGER.info("Using document store backend")
        return connect_document_store(settings.repo_mongo)

    from single_file_store import SingleFileStore  # noqa: PLC0415

    LOGGER.info("Using single-file store backend at %s", settings.repo_db)
    Path(settings.repo_db).absolute().parent.mkdir(parents=True, exist_ok=True)
    return SingleFileStore(settings.repo_db)
