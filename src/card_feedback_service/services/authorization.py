"""Sender and action performer authorization policy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from card_feedback_service.services.token_validator import ValidationResult


class AuthorizationDecision(Enum):
    """Outcome of the policy check."""

    AUTHORIZED = "authorized"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AuthorizationPolicy:
    """
    Two-part policy over a validated token.

    The token sender must equal ``allowed_sender`` and the action performer
    must belong to ``allowed_domain``, both compared case-insensitively.

    With ``strict_domain_match`` the performer must be exactly the domain or
    end with ``@domain`` / ``.domain``, so ``bob@evilcontoso.com`` does not
    pass for ``contoso.com``. Without it a plain string suffix test is used.
    """

    allowed_sender: str
    allowed_domain: str
    strict_domain_match: bool = True

    def sender_allowed(self, sender: str) -> bool:
        """Check the token sender against the allowed sender."""
        return sender.lower() == self.allowed_sender.lower()

    def performer_allowed(self, action_performer: str) -> bool:
        """Check the action performer against the allowed domain."""
        performer = action_performer.lower()
        domain = self.allowed_domain.lower()
        if not domain:
            return False
        if not self.strict_domain_match:
            return performer.endswith(domain)
        if domain[0] in "@.":
            return performer.endswith(domain)
        return (
            performer == domain
            or performer.endswith(f"@{domain}")
            or performer.endswith(f".{domain}")
        )

    def evaluate(self, result: ValidationResult) -> AuthorizationDecision:
        """Decide whether a validated request may proceed."""
        if self.sender_allowed(result.sender) and self.performer_allowed(result.action_performer):
            return AuthorizationDecision.AUTHORIZED
        return AuthorizationDecision.FORBIDDEN
