"""Bearer credential extraction from request headers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

AUTHORIZATION_HEADER = "authorization"
BEARER_SCHEME = "bearer"


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Look up a header by lowercase name in Starlette headers or a plain dict."""
    value = headers.get(name)
    if value is not None:
        return value
    # Plain dicts are case-sensitive; Starlette headers already matched above
    for header_name, header_value in headers.items():
        if header_name.lower() == name:
            return header_value
    return None


def extract_bearer_token(headers: Mapping[str, str]) -> str | None:
    """
    Return the token from an ``Authorization: Bearer <token>`` header.

    The header value must split into exactly two parts on runs of whitespace
    (``Bearer  xyz`` and tab separators are accepted) and the scheme must be
    ``bearer`` in any case. Every other shape returns None; this function
    never raises.
    """
    value = get_header(headers, AUTHORIZATION_HEADER)
    if not isinstance(value, str):
        return None

    parts = value.split()
    if len(parts) != 2:
        return None

    scheme, token = parts
    if scheme.lower() != BEARER_SCHEME:
        return None
    return token
