"""
LSAT protocol header parsing and formatting.

Accept-Authenticate: LSAT
WWW-Authenticate: LSAT macaroon="...", invoice="lnbc..."
Authorization: LSAT <macaroon>:<preimage>
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

# Token states exposed to handlers. Existing clients match these literally.
LSAT_TYPE_FREE = "FREE"
LSAT_TYPE_PAYMENT_REQUIRED = "PAYMENT REQUIRED"
LSAT_TYPE_PAID = "PAID"
LSAT_TYPE_ERROR = "ERROR"

LSAT_HEADER = "LSAT"
LSAT_HEADER_NAME = "Accept-Authenticate"
LSAT_AUTHENTICATE_HEADER_NAME = "WWW-Authenticate"
LSAT_AUTHORIZATION_HEADER_NAME = "Authorization"


@dataclass
class LsatCredentials:
    """Parsed LSAT authorization credentials."""
    macaroon: str
    preimage: str


def accepts_lsat(headers: Mapping[str, str]) -> bool:
    """
    Whether the client advertised LSAT support via Accept-Authenticate.

    Args:
        headers: Request headers (Starlette headers are case-insensitive).
    """
    value = headers.get(LSAT_HEADER_NAME) or headers.get(LSAT_HEADER_NAME.lower())
    if not value or not isinstance(value, str):
        return False
    schemes = [part.strip().upper() for part in value.split(",")]
    return LSAT_HEADER in schemes


def format_challenge(macaroon: str, invoice: str) -> str:
    """
    Format a WWW-Authenticate header value for a 402 response.

    Args:
        macaroon: Base64 macaroon minted for the invoice.
        invoice: Bolt11 payment request.

    Returns:
        WWW-Authenticate header value.
    """
    return f'{LSAT_HEADER} macaroon="{macaroon}", invoice="{invoice}"'


def format_challenge_body(
    macaroon: Optional[str] = None,
    invoice: Optional[str] = None,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Format a 402 response body.

    Args:
        macaroon: Base64 macaroon, if a challenge was issued.
        invoice: Bolt11 invoice, if a challenge was issued.
        error: Why the request was not authorized.

    Returns:
        Dict suitable for a JSON response.
    """
    body: Dict[str, Any] = {
        "status": 402,
        "message": "Payment Required",
        "tokenState": LSAT_TYPE_PAYMENT_REQUIRED,
        "protocol": LSAT_HEADER,
        "error": error,
    }
    if macaroon and invoice:
        body["macaroon"] = macaroon
        body["invoice"] = invoice
        body["instructions"] = {
            "step1": "Pay the Lightning invoice above",
            "step2": "Get the preimage from the payment receipt",
            "step3": "Retry the request with header: Authorization: LSAT <macaroon>:<preimage>",
        }
    return body


def parse_authorization(auth_header: Optional[str]) -> Optional[LsatCredentials]:
    """
    Parse an Authorization: LSAT header.

    Format: LSAT <macaroon>:<preimage>

    Args:
        auth_header: Full Authorization header value.

    Returns:
        LsatCredentials or None if the header is not an LSAT credential.
    """
    if not auth_header or not isinstance(auth_header, str):
        return None

    trimmed = auth_header.strip()

    prefix = LSAT_HEADER.lower() + " "
    if not trimmed.lower().startswith(prefix):
        return None

    credentials = trimmed[len(prefix):].strip()
    colon_idx = credentials.find(":")
    if colon_idx == -1:
        return None

    macaroon = credentials[:colon_idx]
    preimage = credentials[colon_idx + 1:]

    if not macaroon or not preimage:
        return None

    return LsatCredentials(macaroon=macaroon, preimage=preimage)
