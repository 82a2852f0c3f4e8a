from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from netbanking_sync import cli
from netbanking_sync.errors import OtpTimeoutError


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OTP_MONGODB_URI", "mongodb://localhost:27017/relay")
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "cli.log"))
    monkeypatch.setenv("STATE_DB_PATH", str(tmp_path / "state.db"))
    return tmp_path


def test_fetch_otp_prints_masked_code(cli_env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    seen = {}

    async def fake_fetch(cfg, *, since_seconds, timeout, interval):
        seen.update(since_seconds=since_seconds, timeout=timeout, interval=interval)
        return "123456"

    monkeypatch.setattr(cli, "_fetch_otp", fake_fetch)

    rc = cli.main(["fetch-otp", "--since-seconds", "30", "--timeout", "5"])

    assert rc == 0
    assert capsys.readouterr().out.strip() == "12****56"
    assert seen == {"since_seconds": 30.0, "timeout": 5.0, "interval": None}


def test_fetch_otp_print_code(cli_env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    async def fake_fetch(cfg, **_kwargs):
        return "654321"

    monkeypatch.setattr(cli, "_fetch_otp", fake_fetch)

    assert cli.main(["fetch-otp", "--print-code"]) == 0
    assert capsys.readouterr().out.strip() == "654321"


def test_fetch_otp_timeout_exit_code(cli_env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    async def fake_fetch(cfg, **_kwargs):
        raise OtpTimeoutError(
            reference_timestamp=datetime(2025, 8, 1, tzinfo=timezone.utc),
            timeout=5.0,
            attempts=3,
        )

    monkeypatch.setattr(cli, "_fetch_otp", fake_fetch)

    assert cli.main(["fetch-otp"]) == 2
    assert "No OTP newer than" in capsys.readouterr().out


def test_fetch_otp_requires_store_uri(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OTP_MONGODB_URI")
    monkeypatch.delenv("MONGODB_URI_ALI", raising=False)
    with pytest.raises(SystemExit):
        cli.main(["fetch-otp"])


def test_axis_manual_mode_requires_headful(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")
    monkeypatch.setenv("AXIS_CORPORATE_ID", "corp")
    monkeypatch.setenv("AXIS_LOGIN_ID", "login")
    monkeypatch.setenv("AXIS_PASSWORD", "pw")
    monkeypatch.setenv("AXIS_OTP_MODE", "manual")
    with pytest.raises(SystemExit, match="--headful"):
        cli.main(["axis-report"])


def _axis_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")
    monkeypatch.setenv("AXIS_CORPORATE_ID", "corp")
    monkeypatch.setenv("AXIS_LOGIN_ID", "login")
    monkeypatch.setenv("AXIS_PASSWORD", "pw")
    monkeypatch.setenv("AXIS_OTP_MODE", "manual")


def test_job_error_outside_steps_exits_1(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _axis_env(monkeypatch)

    async def broken_run(*args, **kwargs):
        raise OSError("browser executable missing")

    monkeypatch.setattr(cli, "run_axis_report", broken_run)
    assert cli.main(["axis-report", "--headful", "--no-alerts"]) == 1


def test_axis_payments_exit_codes(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _axis_env(monkeypatch)
    outcomes = iter([None, True, False])

    async def fake_run(*args, **kwargs):
        return next(outcomes)

    monkeypatch.setattr(cli, "run_axis_payments", fake_run)
    assert cli.main(["axis-payments", "--headful", "--no-alerts"]) == 0
    assert cli.main(["axis-payments", "--headful", "--no-alerts"]) == 0
    assert cli.main(["axis-payments", "--headful", "--no-alerts"]) == 1


def test_axis_payments_manual_mode_requires_headful(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _axis_env(monkeypatch)
    with pytest.raises(SystemExit, match="--headful"):
        cli.main(["axis-payments"])
