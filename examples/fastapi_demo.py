"""
⚡ lightning-lsat FastAPI Demo

LSAT-protected endpoints with a simulated Lightning node.

Run:
    pip install -e ".[dev]"
    LSAT_ROOT_KEY="<64 hex chars>" python examples/fastapi_demo.py

Flow:
    curl -i http://localhost:8402/api/weather          # 402 + macaroon + invoice
    curl http://localhost:8402/demo/pay/<invoice>      # simulated payment -> preimage
    curl -H "Authorization: LSAT <macaroon>:<preimage>" http://localhost:8402/api/weather
"""

import hashlib
import logging
import os
import secrets

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from pymacaroons import MACAROON_V2, Macaroon

from lightning_lsat import create_lsat_gate

logging.basicConfig(level=logging.INFO)

root_key_hex = os.environ.get("LSAT_ROOT_KEY") or secrets.token_hex(32)
ROOT_KEY = bytes.fromhex(root_key_hex)


# --- Simulated Lightning node + macaroon issuer ---


class DemoNode:
    """Fakes invoices: remembers each preimage until the invoice is 'paid'."""

    def __init__(self):
        self._preimages = {}

    def create_invoice(self, amount_sats: int):
        # "ff" is stripped from identifiers before the hash lookup, so a hash
        # containing it could never be matched
        while True:
            preimage = secrets.token_bytes(32)
            payment_hash = hashlib.sha256(preimage).digest()
            if "ff" not in payment_hash.hex():
                break
        invoice = f"lnbc{amount_sats}0n1demo{payment_hash.hex()}"
        self._preimages[invoice] = preimage
        return invoice, payment_hash

    def pay(self, invoice: str) -> str:
        preimage = self._preimages.pop(invoice, None)
        if preimage is None:
            raise KeyError(invoice)
        return preimage.hex()


node = DemoNode()


def make_challenge(service: str, amount_sats: int):
    def challenge(request: Request):
        invoice, payment_hash = node.create_invoice(amount_sats)
        # version || payment hash || token id
        identifier = b"\x00\x00" + payment_hash + secrets.token_bytes(32)
        mac = Macaroon(location="lightning-lsat-demo", identifier=identifier, key=ROOT_KEY, version=MACAROON_V2)
        mac.add_first_party_caveat(f"service = {service}")
        raw = mac.serialize()
        return (raw.decode("ascii") if isinstance(raw, bytes) else raw), invoice

    return challenge


weather_gate = create_lsat_gate(
    root_key=ROOT_KEY,
    caveats=["service = weather"],
    challenge=make_challenge("weather", 5),
)


# --- Routes ---

app = FastAPI(
    title="lightning-lsat Demo",
    description="LSAT verification demo with FastAPI",
    version="0.1.0",
)


@app.get("/")
async def root(lsat=Depends(weather_gate(free=True))):
    """Welcome page — free, but reports the caller's token state."""
    return {
        "service": "lightning-lsat demo",
        "token_state": lsat.token_state,
        "endpoints": {
            "GET /api/weather": {"price": "5 sats"},
            "GET /demo/pay/{invoice}": {"description": "Simulated payment, returns the preimage"},
        },
    }


@app.get("/api/weather")
async def weather(lsat=Depends(weather_gate())):
    """Weather forecast — 5 sats."""
    return {"forecast": "Sunny with a chance of blocks", "payment_hash": lsat.payment_hash}


@app.get("/demo/pay/{invoice}")
async def pay(invoice: str):
    """Pretend to pay an invoice and hand back its preimage."""
    try:
        return {"preimage": node.pay(invoice)}
    except KeyError:
        raise HTTPException(status_code=404, detail={"error": "Unknown or already paid invoice"})


# --- Run ---

if __name__ == "__main__":
    print("\n⚡ lightning-lsat FastAPI Demo")
    print("=" * 40)
    print("  GET /                 — Free, shows token state")
    print("  GET /api/weather      — 5 sats")
    print("  GET /demo/pay/{inv}   — Simulated payment")
    print()
    uvicorn.run(app, host="0.0.0.0", port=8402)
