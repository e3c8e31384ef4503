"""
Per-request LSAT authentication state.

authenticate() turns raw Authorization header text into an LsatInfo. An
LsatContext belongs to exactly one request: the first get() runs the
verification, later calls return the same LsatInfo. Nothing is shared
between requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Union

from .codec import decode_macaroon, decode_preimage, hex_encode
from .errors import InvalidCredential, LsatError, MissingCredential
from .lsat import (
    LSAT_TYPE_ERROR,
    LSAT_TYPE_FREE,
    LSAT_TYPE_PAID,
    parse_authorization,
)
from .verify import verify_lsat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LsatInfo:
    """Authentication state of one request."""
    token_state: str
    preimage: Optional[str] = None       # hex, only when PAID
    payment_hash: Optional[str] = None   # hex, only when PAID
    error: Optional[str] = None
    auth_header: Optional[str] = None
    failure: Optional[LsatError] = field(default=None, compare=False, repr=False)

    @property
    def paid(self) -> bool:
        return self.token_state == LSAT_TYPE_PAID

    @classmethod
    def free(cls, auth_header: Optional[str] = None) -> "LsatInfo":
        return cls(token_state=LSAT_TYPE_FREE, auth_header=auth_header)

    @classmethod
    def rejected(cls, failure: LsatError, auth_header: Optional[str] = None) -> "LsatInfo":
        return cls(
            token_state=LSAT_TYPE_ERROR,
            error=str(failure),
            auth_header=auth_header,
            failure=failure,
        )


def authenticate(
    auth_header: Optional[str],
    root_key: Union[bytes, str],
    caveats: Sequence[str] = (),
) -> LsatInfo:
    """
    Build the authentication state for an Authorization header.

    Args:
        auth_header: Raw Authorization header value, or None.
        root_key: Root key macaroons are minted from.
        caveats: Conditions the server satisfies for this request.

    Returns:
        LsatInfo in state PAID or ERROR.
    """
    credentials = parse_authorization(auth_header)
    if credentials is None:
        return LsatInfo.rejected(MissingCredential(), auth_header)

    macaroon = decode_macaroon(credentials.macaroon)
    if macaroon is None:
        return LsatInfo.rejected(InvalidCredential("Invalid macaroon encoding"), auth_header)

    preimage = decode_preimage(credentials.preimage)
    if preimage is None:
        return LsatInfo.rejected(
            InvalidCredential("Invalid preimage: expected 32 bytes of hex"), auth_header
        )

    result = verify_lsat(macaroon, list(caveats), root_key, preimage)
    if not result.valid:
        logger.info("LSAT rejected: %s", result.message)
        return LsatInfo.rejected(result.error, auth_header)

    return LsatInfo(
        token_state=LSAT_TYPE_PAID,
        preimage=hex_encode(preimage),
        payment_hash=result.payment_hash,
        auth_header=auth_header,
    )


class LsatContext:
    """
    Lazily computed, memoized LsatInfo for a single request.

    Usage:
        ctx = LsatContext(request.headers.get("authorization"),
                          lambda header: authenticate(header, root_key))
        info = ctx.get()
    """

    def __init__(self, auth_header: Optional[str], resolve: Callable[[Optional[str]], LsatInfo]):
        self.auth_header = auth_header
        self._resolve = resolve
        self._info: Optional[LsatInfo] = None

    @property
    def computed(self) -> bool:
        return self._info is not None

    def get(self) -> LsatInfo:
        """Compute the LsatInfo on first access; return the cached one after."""
        if self._info is None:
            self._info = self._resolve(self.auth_header)
        return self._info
