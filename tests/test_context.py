"""Tests for the per-request authentication context."""

import itertools

import pytest
from pymacaroons import MACAROON_V2, Macaroon

from lightning_lsat.context import LsatContext, LsatInfo, authenticate
from lightning_lsat.errors import (
    CaveatCountMismatch,
    HashBindingMismatch,
    InvalidCredential,
    MissingCredential,
    SignatureOrCaveatFailure,
)


ROOT_KEY = bytes.fromhex("7f" * 32)
PREIMAGE = "deadbeef" * 8
PAYMENT_HASH = "8200cf0ce11447bf6353cbac964d07d1c390d61d07e6c5d0214450b3add6449b"
IDENTIFIER = b"\x00\x00" + bytes.fromhex(PAYMENT_HASH) + b"\x11" * 32
CAVEATS = ["service = weather"]
NON_UTF8_CAVEAT = b"\xff\xfe"


def mint(identifier=IDENTIFIER, caveats=CAVEATS):
    mac = Macaroon(location="lsat-test", identifier=identifier, key=ROOT_KEY, version=MACAROON_V2)
    for caveat in caveats:
        mac.add_first_party_caveat(caveat)
    raw = mac.serialize()
    return raw.decode("ascii") if isinstance(raw, bytes) else raw


class TestAuthenticate:
    def test_paid(self):
        header = f"LSAT {mint()}:{PREIMAGE}"
        info = authenticate(header, ROOT_KEY, CAVEATS)
        assert info.token_state == "PAID"
        assert info.paid is True
        assert info.preimage == PREIMAGE
        assert info.payment_hash == PAYMENT_HASH
        assert info.error is None
        assert info.auth_header == header

    def test_uppercase_preimage_is_normalized(self):
        info = authenticate(f"LSAT {mint()}:{PREIMAGE.upper()}", ROOT_KEY, CAVEATS)
        assert info.paid is True
        assert info.preimage == PREIMAGE

    @pytest.mark.parametrize("header", [None, "", "Bearer abc", "LSAT nocolon"])
    def test_no_credential(self, header):
        info = authenticate(header, ROOT_KEY, CAVEATS)
        assert info.token_state == "ERROR"
        assert info.error == "No credential present"
        assert info.preimage is None
        assert info.payment_hash is None
        assert isinstance(info.failure, MissingCredential)

    def test_undecodable_macaroon(self):
        info = authenticate(f"LSAT ////:{PREIMAGE}", ROOT_KEY, CAVEATS)
        assert info.token_state == "ERROR"
        assert isinstance(info.failure, InvalidCredential)
        assert "macaroon" in info.error.lower()

    def test_short_preimage(self):
        info = authenticate(f"LSAT {mint()}:deadbeef", ROOT_KEY, CAVEATS)
        assert isinstance(info.failure, InvalidCredential)
        assert "preimage" in info.error.lower()

    def test_wrong_preimage(self):
        info = authenticate(f"LSAT {mint()}:{'00' * 32}", ROOT_KEY, CAVEATS)
        assert info.token_state == "ERROR"
        assert isinstance(info.failure, HashBindingMismatch)
        assert info.error.startswith("Invalid PaymentHash")
        assert info.preimage is None

    def test_wrong_root_key(self):
        info = authenticate(f"LSAT {mint()}:{PREIMAGE}", b"other-root-key", CAVEATS)
        assert isinstance(info.failure, SignatureOrCaveatFailure)

    def test_third_party_caveat(self):
        mac = Macaroon(location="lsat-test", identifier=IDENTIFIER, key=ROOT_KEY, version=MACAROON_V2)
        mac.add_third_party_caveat("https://auth.example", "third-party-key", "third-party-id")
        raw = mac.serialize()
        raw = raw.decode("ascii") if isinstance(raw, bytes) else raw

        info = authenticate(f"LSAT {raw}:{PREIMAGE}", ROOT_KEY, [])
        assert info.token_state == "ERROR"
        assert isinstance(info.failure, SignatureOrCaveatFailure)

    def test_non_utf8_caveat(self):
        header = f"LSAT {mint(caveats=[NON_UTF8_CAVEAT])}:{PREIMAGE}"
        info = authenticate(header, ROOT_KEY, [])
        assert info.token_state == "ERROR"
        assert isinstance(info.failure, SignatureOrCaveatFailure)

    def test_preimage_with_whitespace(self):
        spaced = " ".join([PREIMAGE[:32], PREIMAGE[32:]])
        info = authenticate(f"LSAT {mint()}:{spaced}", ROOT_KEY, CAVEATS)
        assert isinstance(info.failure, InvalidCredential)

    def test_too_many_conditions(self):
        info = authenticate(f"LSAT {mint()}:{PREIMAGE}", ROOT_KEY, CAVEATS + ["extra = 1"])
        assert isinstance(info.failure, CaveatCountMismatch)

    def test_same_inputs_same_info(self):
        header = f"LSAT {mint()}:{PREIMAGE}"
        assert authenticate(header, ROOT_KEY, CAVEATS) == authenticate(header, ROOT_KEY, CAVEATS)

    def test_info_is_immutable(self):
        info = authenticate(None, ROOT_KEY)
        with pytest.raises(AttributeError):
            info.token_state = "PAID"


class TestLsatInfo:
    def test_free(self):
        info = LsatInfo.free("LSAT x:y")
        assert info.token_state == "FREE"
        assert info.auth_header == "LSAT x:y"
        assert info.paid is False


class TestLsatContext:
    def test_not_computed_until_read(self):
        calls = []
        ctx = LsatContext("LSAT x:y", lambda header: calls.append(header))
        assert ctx.computed is False
        assert calls == []

    def test_computes_once(self):
        counter = itertools.count()

        def resolve(header):
            # A different value on every call
            return LsatInfo(token_state="ERROR", error=f"call {next(counter)}", auth_header=header)

        ctx = LsatContext(None, resolve)
        first = ctx.get()
        second = ctx.get()

        assert first is second
        assert first.error == "call 0"
        assert ctx.computed is True
        assert next(counter) == 1

    def test_with_authenticate(self):
        header = f"LSAT {mint()}:{PREIMAGE}"
        ctx = LsatContext(header, lambda h: authenticate(h, ROOT_KEY, CAVEATS))
        assert ctx.get().paid is True
        assert ctx.get() is ctx.get()

    def test_no_credential(self):
        ctx = LsatContext(None, lambda h: authenticate(h, ROOT_KEY, CAVEATS))
        info = ctx.get()
        assert info.token_state == "ERROR"
        assert info.error == "No credential present"
        assert info.preimage is None
        assert info.payment_hash is None

    def test_separate_requests_do_not_share(self):
        resolve = lambda header: authenticate(header, ROOT_KEY, CAVEATS)  # noqa: E731
        paid = LsatContext(f"LSAT {mint()}:{PREIMAGE}", resolve)
        missing = LsatContext(None, resolve)
        assert paid.get().paid is True
        assert missing.get().paid is False
