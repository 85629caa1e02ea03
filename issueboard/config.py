"""Configuration loading from YAML and environment.

The Supabase anon key and the webhook secret may be left as placeholders in
config.yaml; they are then read from the environment (SUPABASE_ANON_KEY,
WEBHOOK_SECRET) or from a file named by the *_FILE variant (Docker secrets).
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_REF = re.compile(r"\$\{(\w+)\}|^\$(\w+)$")


def _secret(name: str) -> str | None:
    """Env var name, else the contents of the file named by name_FILE."""
    value = os.environ.get(name, "").strip()
    if value:
        return value
    file_path = os.environ.get(f"{name}_FILE")
    if file_path:
        return Path(file_path).read_text(encoding="utf-8").strip() or None
    return None


def _is_placeholder(value: str | None) -> bool:
    return not value or "${" in value or value.startswith("your-")


class SupabaseConfig(BaseSettings):
    """Hosted backend (auth, issues table) settings."""

    model_config = SettingsConfigDict(env_prefix="SUPABASE_", extra="ignore")

    url: str = Field(default="http://localhost:54321", description="Project URL, e.g. https://xyz.supabase.co")
    anon_key: str | None = Field(default=None, description="Public anon key; use env or secret file")
    table: str = Field(default="issues", description="Issues table name")
    timeout: int = Field(default=30, ge=1, description="HTTP timeout in seconds")


class ServerConfig(BaseSettings):
    """Page and webhook HTTP server settings."""

    model_config = SettingsConfigDict(env_prefix="SERVER_", extra="ignore")

    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=8000, ge=0, le=65535, description="Bind port (0 picks a free port)")
    auth_path: str = Field(default="/auth", description="Authentication entry point")
    webhook_path: str = Field(default="/webhook/changes", description="Change notification URL path")
    webhook_secret: str = Field(default="", description="Shared secret expected in X-Webhook-Secret")
    cookie_name: str = Field(default="issueboard_session", description="Session cookie name")
    max_sessions: int = Field(default=1000, ge=1, description="Open pages kept before the least recently used is closed")


class FormConfig(BaseSettings):
    """Issue form validation settings."""

    model_config = SettingsConfigDict(env_prefix="FORM_", extra="ignore")

    # off: an empty description is accepted
    require_description: bool = Field(default=False, description="Reject blank descriptions")


class LoggingConfig(BaseSettings):
    """Logging level and format."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="INFO", description="DEBUG, INFO, WARNING or ERROR")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="logging format string",
    )


class AppConfig(BaseSettings):
    """Root config: one section per YAML top-level key."""

    model_config = SettingsConfigDict(extra="ignore")

    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    form: FormConfig = Field(default_factory=FormConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def anon_key_resolved(self) -> str | None:
        key = self.supabase.anon_key
        return key if not _is_placeholder(key) else _secret("SUPABASE_ANON_KEY")

    @property
    def webhook_secret_resolved(self) -> str:
        """Empty string means webhooks are accepted without a secret."""
        secret = self.server.webhook_secret
        return secret if not _is_placeholder(secret) else _secret("WEBHOOK_SECRET") or ""


def _expand(value: Any) -> Any:
    """Expand ${VAR} (anywhere in a string) and a bare $VAR; unknown names stay as written."""
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1) or m.group(2), m.group(0)), value)
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value


_SECTIONS = {
    "supabase": SupabaseConfig,
    "server": ServerConfig,
    "form": FormConfig,
    "logging": LoggingConfig,
}


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config.yaml (defaults when the file is missing) with env expansion.

    SUPABASE_URL in the environment wins over supabase.url.
    """
    path = config_path or Path("config.yaml")
    raw: dict[str, Any] = {}
    if path.is_file():
        raw = _expand(yaml.safe_load(path.read_text(encoding="utf-8")) or {})

    sections = {name: dict(raw.get(name) or {}) for name in _SECTIONS}
    supabase = sections["supabase"]
    if os.environ.get("SUPABASE_URL"):
        supabase["url"] = os.environ["SUPABASE_URL"]
    elif _is_placeholder(supabase.get("url")):
        supabase.pop("url", None)

    return AppConfig(**{name: cls(**sections[name]) for name, cls in _SECTIONS.items()})
