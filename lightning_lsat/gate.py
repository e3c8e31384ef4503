"""
LSAT gate factory.

create_lsat_gate() builds a gate that can be used as a FastAPI dependency
or decorator to put endpoints behind LSAT verification.
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, Dict, Optional, Sequence, Union

from .codec import coerce_root_key
from .middleware import LsatMiddleware


class LsatGate:
    """
    LSAT gate instance.

    Created by create_lsat_gate(). Used as a FastAPI dependency factory or decorator.

    Usage as dependency:
        gate = create_lsat_gate(root_key=ROOT_KEY)
        @app.get("/api/data")
        async def data(lsat=Depends(gate(caveats=["service = data"]))):
            return {"payment_hash": lsat.payment_hash}

    Usage as decorator:
        @app.get("/api/data")
        @gate.require()
        async def data(request: Request):
            return {"data": "..."}
    """

    def __init__(self, config: Dict[str, Any]):
        self._config = config

    def __call__(self, **route_opts: Any) -> LsatMiddleware:
        """
        Create a FastAPI dependency for a route.

        Args:
            caveats: Conditions for this route (list or callable(request) -> list).
                Defaults to the gate's caveats.
            required: Raise 401/402 when not paid (default True).
            free: Serve without payment; no-credential requests get state FREE.

        Returns:
            LsatMiddleware instance usable with Depends().
        """
        return LsatMiddleware(self._config, route_opts)

    def require(self, **route_opts: Any) -> Callable:
        """
        Decorator that requires a valid LSAT before executing the handler.

        The handler must take a 'request: Request' parameter. The LsatInfo is
        injected as an 'lsat' keyword argument if the handler accepts it.
        """

        def decorator(func: Callable) -> Callable:
            middleware = LsatMiddleware(self._config, route_opts)
            signature = inspect.signature(func)
            wants_lsat = "lsat" in signature.parameters

            @functools.wraps(func)
            async def wrapper(*args: Any, **kwargs: Any) -> Any:
                from fastapi import Request

                request = kwargs.get("request")
                if request is None:
                    for arg in args:
                        if isinstance(arg, Request):
                            request = arg
                            break

                if request is None:
                    raise RuntimeError(
                        "gate.require() decorator needs a 'request: Request' parameter "
                        "in the route handler"
                    )

                info = await middleware(request)
                if wants_lsat:
                    kwargs["lsat"] = info

                return await func(*args, **kwargs)

            # 'lsat' is filled in here, not by FastAPI
            wrapper.__signature__ = signature.replace(
                parameters=[p for p in signature.parameters.values() if p.name != "lsat"]
            )
            return wrapper

        return decorator


def create_lsat_gate(
    root_key: Union[bytes, str, None] = None,
    caveats: Union[Sequence[str], Callable[[Any], Sequence[str]], None] = None,
    challenge: Optional[Callable] = None,
    challenge_capable_only: bool = False,
) -> LsatGate:
    """
    Create a gate for verifying LSAT credentials on API endpoints.

    Args:
        root_key: Root key macaroons are minted from (bytes or hex string, required).
        caveats: Default caveat conditions (list or callable(request) -> list).
        challenge: Callable(request) -> (macaroon_b64, bolt11), sync or async.
            Mints the macaroon and invoice for 402 challenges.
        challenge_capable_only: Only call challenge for clients sending
            Accept-Authenticate: LSAT.

    Returns:
        LsatGate instance.
    """
    try:
        key = coerce_root_key(root_key)
    except ValueError as e:
        raise ValueError(f"lightning-lsat: {e}") from e

    if challenge is not None and not callable(challenge):
        raise ValueError("lightning-lsat: challenge must be callable")

    config = {
        "root_key": key,
        "caveats": caveats if caveats is not None else [],
        "challenge": challenge,
        "challenge_capable_only": challenge_capable_only,
    }

    return LsatGate(config)
