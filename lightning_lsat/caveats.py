"""
First-party caveat verification.

The macaroon's HMAC chain is recomputed with the key derived from the root
key, and every embedded first-party caveat has to match one of the
conditions the server presents, character for character. No general
(predicate function) caveats are registered.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence, Union

from pymacaroons import Macaroon, Verifier
from pymacaroons.exceptions import MacaroonException

from .codec import derive_key
from .errors import CaveatCountMismatch, SignatureOrCaveatFailure, VerifyResult

logger = logging.getLogger(__name__)


def verify_caveats(
    macaroon: Macaroon,
    caveats: Sequence[str],
    root_key: Union[bytes, str],
    verifier_factory: Callable[[], Verifier] = Verifier,
) -> VerifyResult:
    """
    Verify a macaroon's signature and first-party caveats.

    Args:
        macaroon: Decoded macaroon.
        caveats: Conditions the server is willing to satisfy (exact match).
        root_key: Root key the macaroon was minted from.
        verifier_factory: Builds the pymacaroons verifier.

    Returns:
        VerifyResult, failing with CaveatCountMismatch or
        SignatureOrCaveatFailure.
    """
    embedded = macaroon.first_party_caveats()
    if len(caveats) > len(embedded):
        logger.debug(
            "Rejecting macaroon: %d conditions presented for %d caveats",
            len(caveats),
            len(embedded),
        )
        return VerifyResult(valid=False, error=CaveatCountMismatch(len(caveats), len(embedded)))

    # No discharge macaroons are ever accepted
    if macaroon.third_party_caveats():
        logger.debug("Rejecting macaroon with third-party caveats")
        return VerifyResult(
            valid=False,
            error=SignatureOrCaveatFailure("Third-party caveats are not supported"),
        )

    key = derive_key(root_key)
    verifier = verifier_factory()
    for caveat in caveats:
        verifier.satisfy_exact(caveat)

    try:
        verified = verifier.verify_discharge(macaroon, macaroon, key, discharge_macaroons=[])
    except MacaroonException as e:
        logger.debug("Macaroon verification failed: %s", e)
        return VerifyResult(valid=False, error=SignatureOrCaveatFailure(str(e) or type(e).__name__))
    except UnicodeDecodeError:
        logger.debug("Macaroon caveat is not valid UTF-8")
        return VerifyResult(
            valid=False,
            error=SignatureOrCaveatFailure("Caveat is not valid UTF-8"),
        )

    if not verified:
        return VerifyResult(valid=False, error=SignatureOrCaveatFailure("Verification failed"))

    return VerifyResult(valid=True)
