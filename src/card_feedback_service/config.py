"""
Configuration management for the card feedback service.

Loads configuration from YAML with ZERO defaults.
Every value must be explicitly specified or startup fails.
A small set of environment variables may override individual values.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict

REDACTION_MARKER = "***"

# Environment variable -> (section, key) overrides applied on top of the YAML file.
# When several variables target the same key, the first one set wins.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PORT": ("server", "port"),
    "PUBLIC_HOSTNAME": ("token", "public_hostname"),
    "HOSTNAME": ("token", "public_hostname"),
    "ALLOWED_SENDER": ("authorization", "allowed_sender"),
    "ACTION_PERFORMER_DOMAIN": ("authorization", "action_performer_domain"),
}

_REDACTED_KEYS: frozenset[str] = frozenset({"allowed_sender"})


class ServiceConfig(BaseModel):
    """Service identity configuration."""

    model_config = ConfigDict(extra="forbid")
    name: str
    version: str


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    model_config = ConfigDict(extra="forbid")
    host: str
    port: int
    log_level: str


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")
    level: str
    directory: str


class RequestConfig(BaseModel):
    """Request validation configuration."""

    model_config = ConfigDict(extra="forbid")
    max_body_size: int


class TokenConfig(BaseModel):
    """Actionable message token verification configuration."""

    model_config = ConfigDict(extra="forbid")
    public_hostname: str
    openid_configuration_url: str
    issuer: str
    app_id: str
    sender_claim: str
    action_performer_claim: str
    algorithms: list[str]
    timeout_seconds: float
    key_cache_seconds: int
    leeway_seconds: int

    @property
    def expected_audience(self) -> str:
        """Audience URL the token must be issued for."""
        if self.public_hostname.startswith(("http://", "https://")):
            return self.public_hostname
        return f"https://{self.public_hostname}"


class AuthorizationConfig(BaseModel):
    """Sender and action performer policy."""

    model_config = ConfigDict(extra="forbid")
    allowed_sender: str
    action_performer_domain: str
    strict_domain_match: bool


class FeedbackConfig(BaseModel):
    """Feedback submission configuration."""

    model_config = ConfigDict(extra="forbid")
    baseline_path: str
    min_rating: float
    max_rating: float
    max_comment_length: int


class CardConfig(BaseModel):
    """Refresh card configuration."""

    model_config = ConfigDict(extra="forbid")
    template_path: str
    success_status: str
    forbidden_status: str


class Settings(BaseModel):
    """
    Root configuration container.

    All fields are REQUIRED. No defaults exist.
    Missing fields cause immediate startup failure.
    """

    model_config = ConfigDict(extra="forbid")
    service: ServiceConfig
    server: ServerConfig
    logging: LoggingConfig
    request: RequestConfig
    token: TokenConfig
    authorization: AuthorizationConfig
    feedback: FeedbackConfig
    card: CardConfig


def get_config_path() -> Path:
    """Determine configuration file path."""
    config_path = os.environ.get("CONFIG_PATH")
    if config_path:
        return Path(config_path)
    return Path.cwd() / "config.yaml"


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variables onto the raw YAML mapping."""
    applied: set[tuple[str, str]] = set()
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is None or value == "" or (section, key) in applied:
            continue
        section_values = raw.get(section)
        if not isinstance(section_values, dict):
            continue
        section_values[key] = value
        applied.add((section, key))
    return raw


def load_settings(config_path: Path) -> Settings:
    """Load and validate settings from a YAML file."""
    raw = yaml.safe_load(config_path.read_text())
    if not isinstance(raw, dict):
        msg = f"Invalid config file: {config_path}"
        raise ValueError(msg)
    return Settings(**_apply_env_overrides(raw))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached application settings."""
    return load_settings(get_config_path())


def clear_settings_cache() -> None:
    """Clear the settings cache. Used in testing."""
    get_settings.cache_clear()


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTION_MARKER if key in _REDACTED_KEYS else _redact(item)
            for key, item in value.items()
        }
    return value


def get_safe_config() -> dict[str, Any]:
    """Get configuration with sensitive values redacted."""
    result: dict[str, Any] = _redact(get_settings().model_dump())
    return result
