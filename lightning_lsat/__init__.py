"""
lightning-lsat — LSAT credential verification for FastAPI.

Verifies macaroons bound to Lightning payments: the macaroon's signature
and caveats must check out, and its identifier must embed the payment hash
of the preimage the client presents.

Usage:
    from lightning_lsat import create_lsat_gate
    from fastapi import Depends

    gate = create_lsat_gate(root_key=bytes.fromhex("..."))

    @app.get("/api/data")
    async def data(lsat=Depends(gate(caveats=["service = data"]))):
        return {"data": "...", "payment_hash": lsat.payment_hash}
"""

from .binding import verify_payment_binding
from .caveats import verify_caveats
from .codec import decode_macaroon, decode_preimage, derive_key, normalize_identifier_hex
from .context import LsatContext, LsatInfo, authenticate
from .errors import (
    CaveatCountMismatch,
    HashBindingMismatch,
    InvalidCredential,
    LsatError,
    MissingCredential,
    SignatureOrCaveatFailure,
    VerifyResult,
)
from .gate import LsatGate, create_lsat_gate
from .lsat import (
    LSAT_TYPE_ERROR,
    LSAT_TYPE_FREE,
    LSAT_TYPE_PAID,
    LSAT_TYPE_PAYMENT_REQUIRED,
    LsatCredentials,
    accepts_lsat,
    format_challenge,
    format_challenge_body,
    parse_authorization,
)
from .verify import verify_lsat

__version__ = "0.1.0"

__all__ = [
    # Main API
    "create_lsat_gate",
    "LsatGate",
    "authenticate",
    "LsatContext",
    "LsatInfo",
    # Verification
    "verify_lsat",
    "verify_caveats",
    "verify_payment_binding",
    "VerifyResult",
    "decode_macaroon",
    "decode_preimage",
    "derive_key",
    "normalize_identifier_hex",
    # Errors
    "LsatError",
    "MissingCredential",
    "InvalidCredential",
    "CaveatCountMismatch",
    "SignatureOrCaveatFailure",
    "HashBindingMismatch",
    # LSAT headers
    "format_challenge",
    "format_challenge_body",
    "parse_authorization",
    "accepts_lsat",
    "LsatCredentials",
    "LSAT_TYPE_FREE",
    "LSAT_TYPE_PAYMENT_REQUIRED",
    "LSAT_TYPE_PAID",
    "LSAT_TYPE_ERROR",
]
