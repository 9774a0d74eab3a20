"""Shared test helpers for token signing and mocking."""

from __future__ import annotations

import time
from typing import Any
from unittest.mock import AsyncMock

from joserfc import jwt
from joserfc.jwk import KeySet, RSAKey

from card_feedback_service.core.state import get_app_state
from card_feedback_service.services.token_validator import (
    ActionableMessageTokenValidator,
    ValidationResult,
)

ISSUER = "https://substrate.office.com/sts/"
APP_ID = "48af08dc-f6d2-435f-b2a7-069abd99c086"
AUDIENCE = "https://cards.example.com"
ALLOWED_SENDER = "john.doe@contoso.com"
PERFORMER = "bob@contoso.com"
KEY_ID = "test-key"

SIGNING_KEY = RSAKey.generate_key(2048, parameters={"kid": KEY_ID})
OTHER_KEY = RSAKey.generate_key(2048, parameters={"kid": KEY_ID})


def public_jwks(*keys: RSAKey) -> dict[str, Any]:
    """Return a JWKS document holding the public halves of ``keys``."""
    return {"keys": [key.as_dict(private=False) for key in keys or (SIGNING_KEY,)]}


def public_key_set() -> KeySet:
    """KeySet with the public test signing key."""
    return KeySet.import_key_set(public_jwks())  # type: ignore[arg-type]


def make_claims(**overrides: Any) -> dict[str, Any]:
    """Return a valid claim set with optional overrides (None removes a claim)."""
    now = int(time.time())
    claims: dict[str, Any] = {
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": now + 3600,
        "appid": APP_ID,
        "sender": ALLOWED_SENDER,
        "sub": PERFORMER,
    }
    for key, value in overrides.items():
        if value is None:
            claims.pop(key, None)
        else:
            claims[key] = value
    return claims


def make_token(claims: dict[str, Any] | None = None, key: RSAKey = SIGNING_KEY) -> str:
    """Sign a JWT with an RS256 test key."""
    header = {"alg": "RS256", "kid": key.kid or KEY_ID}
    return jwt.encode(header, claims if claims is not None else make_claims(), key)


def make_mock_validator(
    result: ValidationResult | None = None,
    side_effect: Any = None,
) -> ActionableMessageTokenValidator:
    """Create a mock token validator that returns predictable results."""
    mock_validator = AsyncMock(spec=ActionableMessageTokenValidator)
    if side_effect is not None:
        mock_validator.validate.side_effect = side_effect
    else:
        mock_validator.validate.return_value = result or ValidationResult(
            sender=ALLOWED_SENDER,
            action_performer=PERFORMER,
        )
    return mock_validator


def inject_mock_validator(
    result: ValidationResult | None = None,
    side_effect: Any = None,
) -> ActionableMessageTokenValidator:
    """Replace the token validator in AppState with a mock and return it."""
    validator = make_mock_validator(result=result, side_effect=side_effect)
    get_app_state().token_validator = validator
    return validator
