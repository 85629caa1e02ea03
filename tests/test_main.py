"""Tests for the issueboard CLI entry point."""

from pathlib import Path
from unittest.mock import patch

import pytest

from issueboard.main import _demo_users, main, parse_args


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_ANON_KEY_FILE"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text("supabase:\n  url: https://xyz.supabase.co\n  table: tickets\n", encoding="utf-8")
    return path


def test_parse_args_accepts_optional_serve() -> None:
    """'serve' subcommand is optional."""
    assert parse_args(["serve", "--demo"]).demo is True
    args = parse_args(["-c", "other.yaml", "--demo-user", "a@b.c:x", "--demo-user", "d@e.f:y"])
    assert args.config == Path("other.yaml")
    assert args.demo_user == ["a@b.c:x", "d@e.f:y"]
    assert parse_args([]).config == Path("config.yaml")


def test_demo_users_default_and_custom() -> None:
    users = _demo_users([])
    assert list(users) == ["demo@example.com"]
    password, user = users["demo@example.com"]
    assert password == "demo"
    assert user.id == "demo-1"
    users = _demo_users(["a@b.c:x", "d@e.f:p:w"])
    assert users["d@e.f"][0] == "p:w"
    assert users["d@e.f"][1].id == "demo-2"


def test_demo_users_rejects_missing_password() -> None:
    with pytest.raises(ValueError):
        _demo_users(["a@b.c"])


def test_check_prints_config(config_file: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["--config", str(config_file), "--check"]) == 0
    assert "Config OK: https://xyz.supabase.co tickets" in capsys.readouterr().out


def test_demo_serves_in_memory(config_file: Path) -> None:
    with patch("issueboard.main.IssueBoardLogging"):
        with patch("issueboard.web.server.run_server") as mock_run:
            assert main(["serve", "--config", str(config_file), "--demo"]) == 0
    mock_run.assert_called_once()
    factory = mock_run.call_args.kwargs["factory"]
    page = factory()
    assert page.identity.sign_in("demo@example.com", "demo").user.id == "demo-1"


def test_missing_anon_key_fails(config_file: Path) -> None:
    """Without an anon key the Supabase-backed server is not started."""
    with patch("issueboard.main.IssueBoardLogging"):
        with patch("issueboard.web.server.run_server") as mock_run:
            assert main(["--config", str(config_file)]) == 1
    mock_run.assert_not_called()


def test_keyboard_interrupt_exits_cleanly(config_file: Path) -> None:
    with patch("issueboard.main.IssueBoardLogging"):
        with patch("issueboard.web.server.run_server", side_effect=KeyboardInterrupt):
            assert main(["--config", str(config_file), "--demo"]) == 0
