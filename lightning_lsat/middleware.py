"""
FastAPI dependency logic for LSAT-protected routes.

Reads the Authorization header, keeps one LsatContext per request and
caveat set on request.state, and maps the outcome to 402 (no credential)
or 401 (credential rejected).
"""

import inspect
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import HTTPException, Request

from .context import LsatContext, LsatInfo, authenticate
from .errors import MissingCredential
from .lsat import (
    LSAT_AUTHENTICATE_HEADER_NAME,
    LSAT_AUTHORIZATION_HEADER_NAME,
    accepts_lsat,
    format_challenge,
    format_challenge_body,
)

logger = logging.getLogger(__name__)

CONTEXTS_ATTR = "lsat_contexts"


def get_lsat_context(request: Any, caveats: Sequence[str] = ()) -> Optional[LsatContext]:
    """The request's LsatContext for a caveat set, if a gate already attached one."""
    contexts = getattr(request.state, CONTEXTS_ATTR, None) or {}
    return contexts.get(tuple(caveats))


class LsatMiddleware:
    """
    LSAT check for a specific route configuration.

    This is created by LsatGate.__call__ and used as a FastAPI dependency.
    """

    def __init__(self, config: Dict[str, Any], route_opts: Dict[str, Any]):
        self.config = config
        self.route_opts = route_opts

        self._required = route_opts.get("required", True)
        self._free = route_opts.get("free", False)

    def _resolve_caveats(self, request: Any) -> List[str]:
        """Resolve the caveat conditions for this request."""
        caveats = self.route_opts.get("caveats", self.config["caveats"])
        if callable(caveats):
            caveats = caveats(request)
        return list(caveats or [])

    def context(self, request: Any) -> LsatContext:
        """
        Get the request's LsatContext for this route's caveats, attaching a
        new one on first use.

        Gates that resolve the same caveats share one context. Verification
        does not run until the context is read.
        """
        caveats = tuple(self._resolve_caveats(request))
        contexts = getattr(request.state, CONTEXTS_ATTR, None)
        if contexts is None:
            contexts = {}
            setattr(request.state, CONTEXTS_ATTR, contexts)

        ctx = contexts.get(caveats)
        if ctx is None:
            root_key = self.config["root_key"]
            ctx = LsatContext(
                request.headers.get(LSAT_AUTHORIZATION_HEADER_NAME.lower()),
                lambda header: authenticate(header, root_key, caveats),
            )
            contexts[caveats] = ctx
        return ctx

    async def _issue_challenge(self, request: Any) -> Tuple[Optional[str], Optional[str]]:
        """Ask the challenge collaborator for a (macaroon, invoice) pair."""
        challenge = self.config.get("challenge")
        if challenge is None:
            return None, None
        if self.config["challenge_capable_only"] and not accepts_lsat(request.headers):
            return None, None

        result = challenge(request)
        if inspect.isawaitable(result):
            result = await result
        macaroon, invoice = result
        return macaroon, invoice

    async def __call__(self, request: Request) -> LsatInfo:
        """
        Process a request through the LSAT gate.

        This is the FastAPI dependency function.

        Args:
            request: FastAPI Request object.

        Returns:
            The request's LsatInfo.

        Raises:
            HTTPException: 402 if no credential was presented, 401 if the
                credential was rejected.
        """
        info = self.context(request).get()
        if info.paid:
            return info

        missing = isinstance(info.failure, MissingCredential)
        if missing and self._free:
            return LsatInfo.free(info.auth_header)
        if not self._required or self._free:
            return info

        if not missing:
            raise HTTPException(
                status_code=401,
                detail={"error": info.error, "tokenState": info.token_state},
            )

        try:
            macaroon, invoice = await self._issue_challenge(request)
        except HTTPException:
            raise
        except Exception as e:
            logger.exception("LSAT challenge collaborator failed")
            raise HTTPException(
                status_code=500,
                detail={"error": f"LSAT challenge error: {str(e)}"},
            )

        headers = None
        if macaroon and invoice:
            headers = {LSAT_AUTHENTICATE_HEADER_NAME: format_challenge(macaroon, invoice)}

        raise HTTPException(
            status_code=402,
            detail=format_challenge_body(macaroon, invoice, error=info.error),
            headers=headers,
        )
