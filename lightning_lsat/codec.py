"""
Hex/binary helpers for LSAT identifiers, preimages and macaroons.

Identifiers and hashes travel as lowercase hex. Macaroons travel as base64
(standard or URL-safe alphabet, padding optional) in the libmacaroons
V1/V2 serialization understood by pymacaroons.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Optional, Union

from pymacaroons import Macaroon
from pymacaroons.utils import generate_derived_key

logger = logging.getLogger(__name__)

PREIMAGE_SIZE = 32
PREIMAGE_HEX_RE = re.compile(r"[0-9a-fA-F]{%d}" % (PREIMAGE_SIZE * 2))

# Removed from the identifier hex before the payment hash lookup.
IDENTIFIER_FILLER = "ff"


def hex_encode(data: bytes) -> str:
    """Lowercase hex, no separators."""
    return bytes(data).hex()


def hex_decode(text: Optional[str]) -> Optional[bytes]:
    """
    Decode a hex string.

    Returns:
        The bytes, or None if the input is empty or not valid hex.
    """
    if not text or not isinstance(text, str):
        return None
    try:
        return bytes.fromhex(text.strip())
    except ValueError:
        return None


def normalize_identifier_hex(identifier: bytes) -> str:
    """
    Hex-encode a macaroon identifier and drop every "ff" pair.

    b"\\xff\\x12\\x34" -> "1234"
    """
    return hex_encode(identifier).replace(IDENTIFIER_FILLER, "")


def payment_hash(preimage: bytes) -> bytes:
    """payment_hash = SHA256(preimage)"""
    return hashlib.sha256(preimage).digest()


def derive_key(root_key: Union[bytes, str]) -> bytes:
    """
    Derive the macaroon signing key from a root key.

    Same HMAC-SHA256 derivation ("macaroons-key-generator") libmacaroons
    applies when a macaroon is minted from the root key.
    """
    if isinstance(root_key, str):
        root_key = root_key.encode("utf-8")
    return generate_derived_key(root_key)


def identifier_bytes(macaroon: Macaroon) -> bytes:
    """Raw identifier bytes of a macaroon."""
    raw = getattr(macaroon, "identifier_bytes", None)
    if raw is None:
        raw = macaroon.identifier
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    return raw


def decode_preimage(text: Optional[str]) -> Optional[bytes]:
    """
    Decode a hex preimage as presented in the Authorization header.

    Returns:
        32 bytes, or None if the text is not exactly 64 hex characters.
    """
    if not isinstance(text, str) or not PREIMAGE_HEX_RE.fullmatch(text):
        return None
    return bytes.fromhex(text)


def decode_macaroon(raw: Union[str, bytes, None]) -> Optional[Macaroon]:
    """
    Decode a base64 serialized macaroon.

    Args:
        raw: Base64 (std or url-safe) V1/V2 macaroon.

    Returns:
        Macaroon or None if decoding fails.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("ascii", errors="replace")
    if not raw or not isinstance(raw, str):
        return None
    # pymacaroons only speaks the url-safe alphabet
    candidate = raw.strip().replace("+", "-").replace("/", "_")
    try:
        return Macaroon.deserialize(candidate)
    except Exception as e:
        logger.debug("Could not deserialize macaroon: %s", e)
        return None


def coerce_root_key(value: Union[bytes, bytearray, str, None]) -> bytes:
    """
    Normalize a configured root key to bytes.

    Strings are read as hex. Raises ValueError for empty or malformed keys.
    """
    if isinstance(value, (bytes, bytearray)):
        key = bytes(value)
    elif isinstance(value, str) and value:
        key = hex_decode(value)
        if key is None:
            raise ValueError("root_key string must be hex-encoded")
    else:
        key = b""
    if not key:
        raise ValueError("root_key is required")
    return key
