"""Unit tests for the ``python -m propsync`` entry-point.

The CLI runs its own event loop via :func:`asyncio.run`, so these tests are
plain synchronous functions.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from pydantic_settings import SettingsConfigDict

from propsync.__main__ import EXIT_CONFIG, EXIT_FETCH, EXIT_OK, main
from propsync.core.settings import Settings
from propsync.storage.repository import ListingRepository

pytestmark = pytest.mark.usefixtures("clean_env")


@pytest.fixture()
def db_path(clean_env: None, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "store.db"
    monkeypatch.setenv("PROPSYNC_DATABASE_PATH", str(path))
    return path


def _write_batch(path: Path, records: list[dict[str, str]]) -> Path:
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


@pytest.mark.usefixtures("db_path")
class TestCli:
    def test_batch_then_show(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        batch = _write_batch(
            tmp_path / "batch.json",
            [
                {"link": "https://www.99acres.com/a", "area": "1200 sqft", "source": "99acres"},
                {"link": "https://vitalspace.in/b", "area": "900 sqft", "source": "VitalSpace"},
            ],
        )

        code = main(["--batch", str(batch), "--show"])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "Sync complete: 2 new, 0 updated, 0 unchanged." in out
        assert "https://www.99acres.com/a" in out
        assert "sources: 99acres, VitalSpace" in out

    def test_show_filters_by_source_and_freshness(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        first = _write_batch(
            tmp_path / "first.json",
            [
                {"link": "a", "area": "1", "source": "99acres"},
                {"link": "b", "area": "2", "source": "VitalSpace"},
            ],
        )
        second = _write_batch(tmp_path / "second.json", [{"link": "c", "source": "99acres"}])
        assert main(["--batch", str(first)]) == EXIT_OK
        assert main(["--batch", str(second)]) == EXIT_OK
        capsys.readouterr()

        code = main(["--show", "--source", "99acres", "--fresh-only"])

        out = capsys.readouterr().out.splitlines()
        assert code == EXIT_OK
        assert [line for line in out if line.endswith(("| a", "| c"))] == [
            "* - | - | - | - | 99acres | c"
        ]
        assert out[-1] == "1 of 3 listing(s); sources: 99acres, VitalSpace"

    def test_clear(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        batch = _write_batch(tmp_path / "batch.json", [{"link": "a"}, {"link": "b"}])
        main(["--batch", str(batch)])
        capsys.readouterr()

        assert main(["--clear"]) == EXIT_OK
        assert "Cleared 2 listing(s)." in capsys.readouterr().out

    def test_missing_batch_file_exits_with_fetch_code(self, tmp_path: Path) -> None:
        assert main(["--batch", str(tmp_path / "missing.json")]) == EXIT_FETCH

    def test_webhook_without_url_is_a_config_error(self) -> None:
        assert main(["--webhook"]) == EXIT_CONFIG

    def test_invalid_log_level(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--log-level", "CHATTY"]) == EXIT_CONFIG
        assert "configuration error" in capsys.readouterr().err

    def test_batch_and_webhook_are_exclusive(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit):
            main(["--batch", str(tmp_path / "x.json"), "--webhook"])

    def test_clear_failure_exits_with_config_code(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        async def _fail(self: ListingRepository) -> int:
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(ListingRepository, "clear", _fail)

        assert main(["--clear"]) == EXIT_CONFIG
        assert "Clearing the store failed" in capsys.readouterr().out


@pytest.mark.usefixtures("db_path")
class TestCliLogging:
    @pytest.fixture()
    def dotenv(
        self, clean_env: None, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> Path:
        env_file = tmp_path / ".env"
        env_file.write_text("PROPSYNC_LOG_LEVEL=ERROR\n", encoding="utf-8")
        monkeypatch.setattr(
            Settings,
            "model_config",
            SettingsConfigDict(
                env_prefix="PROPSYNC_",
                env_file=str(env_file),
                env_file_encoding="utf-8",
                extra="ignore",
            ),
        )
        return env_file

    def test_dotenv_log_level_is_applied(self, dotenv: Path) -> None:
        assert main(["--show"]) == EXIT_OK
        assert logging.getLogger().level == logging.ERROR

    def test_flag_overrides_dotenv_log_level(self, dotenv: Path) -> None:
        assert main(["--show", "--log-level", "WARNING"]) == EXIT_OK
        assert logging.getLogger().level == logging.WARNING

    def test_env_log_level_is_applied(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROPSYNC_LOG_LEVEL", "error")
        assert main(["--show"]) == EXIT_OK
        assert logging.getLogger().level == logging.ERROR
