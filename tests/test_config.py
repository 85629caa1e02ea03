"""Tests for config loading (YAML, ${VAR} substitution, secrets from env/file)."""

from pathlib import Path

import pytest

from issueboard.config import AppConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_ANON_KEY_FILE",
        "WEBHOOK_SECRET",
        "WEBHOOK_SECRET_FILE",
        "FORM_REQUIRE_DESCRIPTION",
    ):
        monkeypatch.delenv(key, raising=False)


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "nope.yaml")
    assert isinstance(config, AppConfig)
    assert config.supabase.table == "issues"
    assert config.server.auth_path == "/auth"
    assert config.form.require_description is False
    assert config.logging.level == "INFO"


def test_yaml_values_and_env_substitution(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MY_KEY", "anon-123")
    path = tmp_path / "config.yaml"
    path.write_text(
        "supabase:\n"
        "  url: https://xyz.supabase.co\n"
        "  anon_key: ${MY_KEY}\n"
        "server:\n"
        "  port: 9001\n"
        "form:\n"
        "  require_description: true\n"
        "logging:\n"
        "  level: DEBUG\n"
    )
    config = load_config(path)
    assert config.supabase.url == "https://xyz.supabase.co"
    assert config.anon_key_resolved == "anon-123"
    assert config.server.port == 9001
    assert config.form.require_description is True
    assert config.logging.level == "DEBUG"


def test_supabase_url_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
    path = tmp_path / "config.yaml"
    path.write_text("supabase:\n  url: https://yaml.supabase.co\n")
    assert load_config(path).supabase.url == "https://env.supabase.co"


def test_secrets_from_env_and_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Unresolved placeholders fall back to SUPABASE_ANON_KEY / WEBHOOK_SECRET_FILE."""
    secret_file = tmp_path / "secret"
    secret_file.write_text("hook-secret\n")
    path = tmp_path / "config.yaml"
    path.write_text("supabase:\n  anon_key: ${UNSET_KEY}\nserver:\n  webhook_secret: ${UNSET_SECRET}\n")
    monkeypatch.setenv("WEBHOOK_SECRET_FILE", str(secret_file))
    monkeypatch.setenv("SUPABASE_ANON_KEY", "from-env")
    config = load_config(path)
    assert config.anon_key_resolved == "from-env"
    assert config.webhook_secret_resolved == "hook-secret"


def test_no_webhook_secret_resolves_to_empty(tmp_path: Path) -> None:
    assert load_config(tmp_path / "missing.yaml").webhook_secret_resolved == ""


def test_unset_url_placeholder_falls_back_to_default(tmp_path: Path) -> None:
    """An unresolved ${SUPABASE_URL} keeps the local default URL."""
    path = tmp_path / "config.yaml"
    path.write_text("supabase:\n  url: ${SUPABASE_URL}\n  table: tickets\n")
    config = load_config(path)
    assert config.supabase.url == "http://localhost:54321"
    assert config.supabase.table == "tickets"


def test_env_reference_inside_string(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROJECT_REF", "abcd")
    path = tmp_path / "config.yaml"
    path.write_text("supabase:\n  url: https://${PROJECT_REF}.supabase.co\nserver:\n  host: $BIND_HOST_UNSET\n")
    config = load_config(path)
    assert config.supabase.url == "https://abcd.supabase.co"
    assert config.server.host == "$BIND_HOST_UNSET"
