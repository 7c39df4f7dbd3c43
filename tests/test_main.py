from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import main
from models import SyncReport, SyncStatus
from normalizer import RecordNormalizer
from profile_store import ProfileStore
from single_file_store import SingleFileStore


@pytest.fixture
def env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    db_path = tmp_path / "cap_profiles.db"
    monkeypatch.setenv("CAP_LOG_FILE", str(tmp_path / "cap.log"))
    monkeypatch.setenv("CAP_REPO_DB", str(db_path))
    monkeypatch.delenv("CAP_REPO_MONGO", raising=False)
    yield db_path
    logging.basicConfig(force=True)


def _seed(db_path: Path, *profile_ids: int) -> None:
    store = SingleFileStore(db_path)
    for profile_id in profile_ids:
        store.upsert(RecordNormalizer().process({"profileId": profile_id, "presentations": [{"title": "T"}]}))
    store.commit()
    store.close()


def test_parse_args_defaults_to_sync() -> None:
    assert main.parse_args([]).command == "sync"


def test_ids_lists_stored_profiles(env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(env, 3, 1)

    assert main.main(["ids"]) == 0
    assert capsys.readouterr().out.split() == ["1", "3"]


def test_show_prints_requested_part(env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(env, 5)

    assert main.main(["show", "5", "--part", "presentations"]) == 0
    assert json.loads(capsys.readouterr().out) == [{"title": "T"}]


def test_show_unknown_profile_returns_error(env: Path) -> None:
    assert main.main(["show", "404"]) == 1


@pytest.mark.parametrize(
    "status, exit_code",
    [
        (SyncStatus.COMPLETE, 0),
        (SyncStatus.PARTIAL, 0),
        (SyncStatus.AUTH_FAILED, 1),
        (SyncStatus.FAILED, 1),
    ],
)
def test_sync_exit_code_follows_report(env: Path, status: SyncStatus, exit_code: int) -> None:
    with patch("main.build_pipeline") as build:
        build.return_value.run.return_value = SyncReport(status=status)
        assert main.main(["sync"]) == exit_code


@pytest.mark.parametrize("argv", [["ids"], ["show", "1"], ["sync"]])
def test_store_is_closed_after_every_command(env: Path, argv: list[str]) -> None:
    store = MagicMock(spec=ProfileStore)
    store.profile_ids.return_value = []
    store.read.return_value = None

    with patch("main.create_store", return_value=store), patch("main.build_pipeline") as build:
        build.return_value.run.return_value = SyncReport(status=SyncStatus.COMPLETE)
        main.main(argv)

    store.close.assert_called_once()
