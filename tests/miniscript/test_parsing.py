#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `btcscript.miniscript.parsing` module."

import logging

import pytest

from btcscript.ecc.curve import mult
from btcscript.ecc.sec_point import bytes_from_point
from btcscript.exceptions import PolicyParseError
from btcscript.hashes import hash160, sha256
from btcscript.miniscript import fragments as f
from btcscript.miniscript import from_script
from btcscript.miniscript.fragments import Node
from btcscript.miniscript.parsing import decompose, stack_item_to_int
from btcscript.script.script import serialize

KEY_A, KEY_B, KEY_C = [bytes_from_point(mult(i)) for i in range(1, 4)]
DIGEST = sha256(b"secret")


def c_pk(key: bytes) -> Node:
    return f.WrapC(f.Pk(key))


def test_decompose() -> None:
    commands = ["OP_CHECKSIGVERIFY", "OP_1", "OP_EQUALVERIFY", KEY_A]
    expected = ["OP_CHECKSIG", "OP_VERIFY", "OP_1", "OP_EQUAL", "OP_VERIFY", KEY_A]
    assert decompose(commands) == expected
    assert decompose(["OP_CHECKMULTISIGVERIFY"]) == ["OP_CHECKMULTISIG", "OP_VERIFY"]
    assert decompose(["OP_VERIFY"]) == ["OP_VERIFY"]


def test_stack_item_to_int() -> None:
    assert stack_item_to_int(f.Just0()) == 0
    assert stack_item_to_int(f.Just1()) == 1
    assert stack_item_to_int("OP_16") == 16
    assert stack_item_to_int("OP_0") == 0
    assert stack_item_to_int(b"\x90\x00") == 144
    assert stack_item_to_int("OP_DUP") is None
    assert stack_item_to_int(b"\x01" * 6) is None
    assert stack_item_to_int(f.Pk(KEY_A)) is None


def test_round_trip() -> None:
    for node in (
        c_pk(KEY_A),
        f.WrapC(f.Pkh(hash160(KEY_A))),
        f.Multi(2, [KEY_A, KEY_B, KEY_C]),
        f.Multi(1, [KEY_A]),
        f.AndV(f.WrapV(c_pk(KEY_A)), c_pk(KEY_B)),
        f.AndV(f.WrapV(c_pk(KEY_A)), f.Older(144)),
        f.AndV(f.WrapV(c_pk(KEY_A)), f.Older(10)),
        f.AndV(f.WrapV(c_pk(KEY_A)), f.After(f.LOCKTIME_THRESHOLD + 1)),
        f.AndV(f.WrapV(f.Sha256(DIGEST)), c_pk(KEY_A)),
        f.AndV(f.WrapV(f.Ripemd160(DIGEST[:20])), c_pk(KEY_A)),
        f.OrD(c_pk(KEY_A), f.AndV(f.WrapV(c_pk(KEY_B)), f.Older(144))),
        f.AndOr(c_pk(KEY_A), c_pk(KEY_B), c_pk(KEY_C)),
        f.Thresh(2, [c_pk(KEY_A), f.WrapS(c_pk(KEY_B)), f.WrapS(c_pk(KEY_C))]),
        f.Thresh(1, [c_pk(KEY_A), f.WrapS(c_pk(KEY_B))]),
        f.Thresh(2, [c_pk(KEY_A), f.WrapA(c_pk(KEY_B))]),
        f.OrB(c_pk(KEY_A), f.WrapS(c_pk(KEY_B))),
        f.AndB(c_pk(KEY_A), f.WrapA(c_pk(KEY_B))),
        f.OrI(c_pk(KEY_A), c_pk(KEY_B)),
        f.AndV(f.OrC(c_pk(KEY_A), f.WrapV(c_pk(KEY_B))), c_pk(KEY_C)),
        f.WrapD(f.WrapV(f.Older(144))),
        f.WrapJ(f.Multi(1, [KEY_A, KEY_B])),
        f.WrapN(c_pk(KEY_A)),
    ):
        decoded = from_script(node.script)
        assert decoded == node
        assert repr(decoded) == repr(node)
        assert decoded.p.B
        # the classmethod is equivalent
        assert Node.from_script(node.script.hex()) == node


def test_syntactic_sugar() -> None:
    # the same script is decoded as the expanded fragment
    for node, expanded in (
        (f.WrapT(f.WrapV(c_pk(KEY_A))), f.AndV(f.WrapV(c_pk(KEY_A)), f.Just1())),
        (f.WrapL(c_pk(KEY_A)), f.OrI(f.Just0(), c_pk(KEY_A))),
        (
            f.AndN(c_pk(KEY_A), c_pk(KEY_B)),
            f.AndOr(c_pk(KEY_A), c_pk(KEY_B), f.Just0()),
        ),
    ):
        decoded = from_script(node.script)
        assert decoded.script == node.script
        assert decoded == expanded


def test_invalid_scripts() -> None:
    with pytest.raises(PolicyParseError, match="empty script"):
        from_script(b"")
    with pytest.raises(PolicyParseError, match="invalid script: "):
        from_script(b"\x21\x02")
    with pytest.raises(PolicyParseError, match="not a miniscript: "):
        from_script(b"\x76\x76")
    with pytest.raises(PolicyParseError, match="not a miniscript: "):
        # invalid public key
        from_script(b"\x21" + b"\x05" * 33 + b"\xac")
    with pytest.raises(PolicyParseError, match="not a miniscript: "):
        # and_v(c:pk_k(A),c:pk_k(B)) is not well typed
        from_script(serialize([KEY_A, "OP_CHECKSIG", KEY_B, "OP_CHECKSIG"]))
    with pytest.raises(PolicyParseError, match="top level expression is not B: "):
        from_script(serialize([KEY_A, "OP_CHECKSIGVERIFY"]))
    with pytest.raises(PolicyParseError, match="top level expression is not B: "):
        from_script(serialize([KEY_A]))
    with pytest.raises(PolicyParseError, match="older value out of range: "):
        from_script(serialize(["OP_0", "OP_CHECKSEQUENCEVERIFY"]))


def test_non_canonical_encodings() -> None:
    err_msg = "not a canonical miniscript encoding: "
    # OP_CHECKSIG OP_VERIFY instead of OP_CHECKSIGVERIFY
    script = serialize([KEY_A, "OP_CHECKSIG", "OP_VERIFY", KEY_B, "OP_CHECKSIG"])
    with pytest.raises(PolicyParseError, match=err_msg):
        from_script(script)
    # non-minimal push of the public key
    script = b"\x4c\x21" + KEY_A + b"\xac"
    with pytest.raises(PolicyParseError, match=err_msg):
        from_script(script)


def test_logging(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="btcscript.miniscript.parsing")
    from_script(c_pk(KEY_A).script)
    assert f"decoded miniscript c:pk_k({KEY_A.hex()})" in caplog.text
