"""LSAT verification: caveats first, then the payment binding."""

from __future__ import annotations

from typing import Sequence, Union

from pymacaroons import Macaroon

from .binding import verify_payment_binding
from .caveats import verify_caveats
from .codec import identifier_bytes
from .errors import VerifyResult


def verify_lsat(
    macaroon: Macaroon,
    caveats: Sequence[str],
    root_key: Union[bytes, str],
    preimage: bytes,
) -> VerifyResult:
    """
    Verify an LSAT credential.

    Args:
        macaroon: Decoded macaroon from the Authorization header.
        caveats: Conditions to satisfy, exact match.
        root_key: Root key the macaroon was minted from.
        preimage: Payment preimage revealed by the client.

    Returns:
        VerifyResult carrying the first failure, or success with the
        payment hash hex.
    """
    result = verify_caveats(macaroon, caveats, root_key)
    if not result.valid:
        return result
    return verify_payment_binding(identifier_bytes(macaroon), preimage)
