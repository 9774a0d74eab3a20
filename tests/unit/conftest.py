"""Unit test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

import card_feedback_service
from card_feedback_service.config import ENV_OVERRIDES, clear_settings_cache
from card_feedback_service.core.state import reset_app_state

if TYPE_CHECKING:
    from collections.abc import Iterator

TEMPLATE_PATH = Path(card_feedback_service.__file__).parent / "data" / "response-card.json"

BASELINE_FEEDBACK = [
    {"name": "adele.vance@contoso.com", "rating": 3, "comment": "Demos ran long."},
    {"name": "megan.bowen@contoso.com", "rating": 4, "comment": "Clear and practical."},
]


@pytest.fixture(autouse=True)
def _isolate_test(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate each test with its own config, baseline, and log directory."""
    baseline_path = tmp_path / "baseline-feedback.json"
    baseline_path.write_text(json.dumps(BASELINE_FEEDBACK))

    config_content = f"""\
service:
  name: "card-feedback"
  version: "0.1.0"
server:
  host: "0.0.0.0"
  port: 3007
  log_level: "info"
logging:
  level: "INFO"
  directory: "{tmp_path / "logs"}"
request:
  max_body_size: 4096
token:
  public_hostname: "cards.example.com"
  openid_configuration_url: "https://issuer.example.com/.well-known/openid-configuration"
  issuer: "https://substrate.office.com/sts/"
  app_id: "48af08dc-f6d2-435f-b2a7-069abd99c086"
  sender_claim: "sender"
  action_performer_claim: "sub"
  algorithms: ["RS256"]
  timeout_seconds: 5
  key_cache_seconds: 3600
  leeway_seconds: 300
authorization:
  allowed_sender: "john.doe@contoso.com"
  action_performer_domain: "contoso.com"
  strict_domain_match: true
feedback:
  baseline_path: "{baseline_path}"
  min_rating: 1
  max_rating: 5
  max_comment_length: 200
card:
  template_path: "{TEMPLATE_PATH}"
  success_status: "The webinar feedback was received."
  forbidden_status: "Invalid sender or the action performer is not allowed."
"""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(config_content)

    for env_var in ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("CONFIG_PATH", str(config_path))
    clear_settings_cache()
    reset_app_state()

    yield

    clear_settings_cache()
    reset_app_state()
