"""
Verification outcomes.

Every way an LSAT can be rejected has its own LsatError subclass. Verifiers
return them inside a VerifyResult instead of raising, so callers branch on
the error class and the HTTP layer decides the response.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class LsatError(Exception):
    """Base class for LSAT rejections."""


class MissingCredential(LsatError):
    """No LSAT-format Authorization header on the request."""

    def __init__(self, message: str = "No credential present"):
        super().__init__(message)


class InvalidCredential(LsatError):
    """LSAT header present but its macaroon or preimage cannot be decoded."""


class CaveatCountMismatch(LsatError):
    """More caveat conditions presented than the macaroon carries."""

    def __init__(self, presented: int, embedded: int):
        super().__init__("Error validating macaroon: Caveats don't match")
        self.presented = presented
        self.embedded = embedded


class SignatureOrCaveatFailure(LsatError):
    """Signature chain invalid or an embedded caveat left unsatisfied."""

    def __init__(self, reason: str):
        super().__init__(f"Error validating macaroon: {reason}")
        self.reason = reason


class HashBindingMismatch(LsatError):
    """The preimage's payment hash is not embedded in the macaroon identifier."""

    def __init__(self, payment_hash: str, identifier: str):
        super().__init__(f"Invalid PaymentHash {payment_hash} for macaroon {identifier}")
        self.payment_hash = payment_hash
        self.identifier = identifier


@dataclass
class VerifyResult:
    """Result of an LSAT verification step."""
    valid: bool
    error: Optional[LsatError] = None
    payment_hash: Optional[str] = None  # hex, set once the binding check passed

    @property
    def message(self) -> Optional[str]:
        """Human-readable diagnostic, None on success."""
        return str(self.error) if self.error is not None else None
