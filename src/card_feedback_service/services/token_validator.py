"""
Actionable message token validation.

Tokens are RS256 JWTs issued by the messaging platform. They are verified
against the issuer's published JSON Web Key Set, located through its OpenID
configuration document.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from joserfc import errors as jose_errors
from joserfc import jwt
from joserfc.jwk import KeySet

from card_feedback_service.core.exceptions import InvalidTokenError
from card_feedback_service.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Identities attested by a verified token."""

    sender: str
    action_performer: str


class TokenValidator(Protocol):
    """Anything that can verify a bearer token for an audience."""

    async def validate(self, token: str, expected_audience: str) -> ValidationResult:
        """Verify the token or raise InvalidTokenError."""
        ...


class SigningKeyClient:
    """
    Async HTTP client for the token issuer's signing keys.

    Resolves ``jwks_uri`` from the OpenID configuration document and caches
    the imported key set for ``cache_seconds``.
    """

    def __init__(
        self,
        openid_configuration_url: str,
        timeout_seconds: float,
        cache_seconds: int,
    ) -> None:
        self._openid_configuration_url = openid_configuration_url
        self._cache_seconds = cache_seconds
        self._client = httpx.AsyncClient(timeout=float(timeout_seconds))
        self._key_set: KeySet | None = None
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    async def _get_json(self, url: str) -> dict[str, Any]:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, json.JSONDecodeError, ValueError) as exc:
            logger.warning("Signing key request failed", extra={"url": url, "error": str(exc)})
            raise InvalidTokenError("Unable to retrieve signing keys") from exc
        if not isinstance(body, dict):
            raise InvalidTokenError("Unable to retrieve signing keys")
        return body

    def _is_fresh(self) -> bool:
        return (
            self._key_set is not None
            and time.monotonic() - self._fetched_at < self._cache_seconds
        )

    async def get_key_set(self) -> KeySet:
        """
        Return the issuer's current key set.

        Raises:
            InvalidTokenError: If the configuration or key set cannot be
                fetched or parsed.
        """
        async with self._lock:
            if self._is_fresh() and self._key_set is not None:
                return self._key_set

            configuration = await self._get_json(self._openid_configuration_url)
            jwks_uri = configuration.get("jwks_uri")
            if not isinstance(jwks_uri, str) or not jwks_uri:
                raise InvalidTokenError("Unable to retrieve signing keys")

            jwks = await self._get_json(jwks_uri)
            try:
                key_set = KeySet.import_key_set(jwks)  # type: ignore[arg-type]
            except (jose_errors.JoseError, ValueError, KeyError, TypeError) as exc:
                raise InvalidTokenError("Unable to retrieve signing keys") from exc

            self._key_set = key_set
            self._fetched_at = time.monotonic()
            logger.info("Signing keys refreshed", extra={"key_count": len(key_set.keys)})
            return key_set

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


class ActionableMessageTokenValidator:
    """Verifies actionable message tokens and extracts the attested identities."""

    def __init__(
        self,
        key_client: SigningKeyClient,
        issuer: str,
        app_id: str,
        sender_claim: str,
        action_performer_claim: str,
        algorithms: list[str],
        leeway_seconds: int,
    ) -> None:
        self._key_client = key_client
        self._issuer = issuer
        self._app_id = app_id
        self._sender_claim = sender_claim
        self._action_performer_claim = action_performer_claim
        self._algorithms = algorithms
        self._leeway_seconds = leeway_seconds

    def _claims_registry(self, expected_audience: str) -> jwt.JWTClaimsRegistry:
        return jwt.JWTClaimsRegistry(
            leeway=self._leeway_seconds,
            iss={"essential": True, "value": self._issuer},
            aud={"essential": True, "value": expected_audience},
            exp={"essential": True},
            appid={"essential": True, "value": self._app_id},
        )

    def _claim_string(self, claims: dict[str, Any], name: str) -> str:
        value = claims.get(name)
        if not isinstance(value, str) or not value:
            raise InvalidTokenError(f"Token is missing the '{name}' claim")
        return value

    async def validate(self, token: str, expected_audience: str) -> ValidationResult:
        """
        Verify signature, issuer, audience, lifetime and application id.

        Raises:
            InvalidTokenError: With a human-readable reason on any failure.
        """
        key_set = await self._key_client.get_key_set()

        try:
            decoded = jwt.decode(token, key_set, algorithms=self._algorithms)
        except jose_errors.BadSignatureError as exc:
            raise InvalidTokenError("Token signature is invalid") from exc
        except (jose_errors.JoseError, ValueError) as exc:
            raise InvalidTokenError("Token is malformed or signed with an unknown key") from exc

        claims: dict[str, Any] = dict(decoded.claims)
        try:
            self._claims_registry(expected_audience).validate(claims)
        except jose_errors.ExpiredTokenError as exc:
            raise InvalidTokenError("Token is expired") from exc
        except jose_errors.MissingClaimError as exc:
            raise InvalidTokenError(f"Token is missing a required claim: {exc.description}") from exc
        except jose_errors.InvalidClaimError as exc:
            raise InvalidTokenError(f"Token has an invalid claim: {exc.description}") from exc
        except jose_errors.JoseError as exc:
            raise InvalidTokenError(f"Token is not valid: {exc.description}") from exc

        return ValidationResult(
            sender=self._claim_string(claims, self._sender_claim),
            action_performer=self._claim_string(claims, self._action_performer_claim),
        )
