"""
Payment binding check.

An LSAT macaroon is minted for one invoice: its identifier embeds the
invoice's payment hash. Revealing the preimage proves payment only for the
macaroon whose identifier contains SHA256(preimage).
"""

from __future__ import annotations

from .codec import hex_encode, normalize_identifier_hex, payment_hash
from .errors import HashBindingMismatch, VerifyResult


def verify_payment_binding(identifier: bytes, preimage: bytes) -> VerifyResult:
    """
    Check that a macaroon identifier embeds the preimage's payment hash.

    The identifier hex is normalized first (every "ff" removed) and may carry
    extra bytes around the hash, so this is a substring test.

    Returns:
        VerifyResult with the payment hash hex, or HashBindingMismatch.
    """
    hash_hex = hex_encode(payment_hash(preimage))
    identifier_hex = normalize_identifier_hex(identifier)

    if hash_hex not in identifier_hex:
        return VerifyResult(valid=False, error=HashBindingMismatch(hash_hex, identifier_hex))

    return VerifyResult(valid=True, payment_hash=hash_hex)
