#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for public key extraction and replacement in LockScript."

import pytest

from btcscript.ecc.curve import mult
from btcscript.ecc.sec_point import bytes_from_point
from btcscript.exceptions import (
    BTCScriptValueError,
    HashedKeyError,
    PolicyParseError,
)
from btcscript.hashes import hash160
from btcscript.script import templates
from btcscript.script.script import serialize
from btcscript.script.script_types import LockScript

KEY_A, KEY_B, KEY_C, KEY_D = [bytes_from_point(mult(i)) for i in range(1, 5)]
UNCOMPRESSED_KEY_A = bytes_from_point(mult(1), compressed=False)


def test_extract_single_key() -> None:
    lock_script = LockScript(templates.p2pk(KEY_A))
    assert lock_script.extract_pubkeys() == [KEY_A]

    lock_script = LockScript(templates.p2pk(UNCOMPRESSED_KEY_A))
    assert lock_script.extract_pubkeys() == [UNCOMPRESSED_KEY_A]


def test_extract_multisig() -> None:
    lock_script = LockScript(templates.p2ms(2, [KEY_A, KEY_B, KEY_C]))
    assert lock_script.extract_pubkeys() == [KEY_A, KEY_B, KEY_C]

    # keys are returned in script order, not sorted
    lock_script = LockScript(templates.p2ms(1, [KEY_C, KEY_A]))
    assert lock_script.extract_pubkeys() == [KEY_C, KEY_A]

    # duplicated keys are returned as many times as they appear
    lock_script = LockScript(templates.p2ms(2, [KEY_A, KEY_A]))
    assert lock_script.extract_pubkeys() == [KEY_A, KEY_A]


def test_extract_nested() -> None:
    # or_d(c:pk_k(A),and_v(v:pk_k(B),older(144)))
    script = serialize(
        [
            KEY_A,
            "OP_CHECKSIG",
            "OP_IFDUP",
            "OP_NOTIF",
            KEY_B,
            "OP_CHECKSIGVERIFY",
            144,
            "OP_CHECKSEQUENCEVERIFY",
            "OP_ENDIF",
        ]
    )
    assert LockScript(script).extract_pubkeys() == [KEY_A, KEY_B]

    # and_v(v:pk_k(A),c:pk_k(A))
    script = serialize([KEY_A, "OP_CHECKSIGVERIFY", KEY_A, "OP_CHECKSIG"])
    assert LockScript(script).extract_pubkeys() == [KEY_A, KEY_A]


def test_extract_hashed_key() -> None:
    key_hash = hash160(KEY_A)
    lock_script = LockScript(templates.p2pkh(key_hash))
    with pytest.raises(HashedKeyError, match="public key hash instead") as e:
        lock_script.extract_pubkeys()
    assert e.value.key_hash == key_hash

    # the first hashed key is reported, even after a plain key
    # and_v(v:pk_k(A),c:pk_h(B))
    script = serialize([KEY_A, "OP_CHECKSIGVERIFY"]) + templates.p2pkh(hash160(KEY_B))
    with pytest.raises(HashedKeyError) as e:
        LockScript(script).extract_pubkeys()
    assert e.value.key_hash == hash160(KEY_B)
    # HashedKeyError is a ValueError
    with pytest.raises(ValueError):
        LockScript(script).extract_pubkeys()


def test_not_a_policy() -> None:
    for script in (
        b"",
        # OP_DUP OP_DUP
        b"\x76\x76",
        # truncated push
        b"\x21\x02",
        # a bare public key is K, not B
        serialize([KEY_A]),
        # v:pk_k(A) is V, not B
        serialize([KEY_A, "OP_CHECKSIGVERIFY"]),
        # nulldata
        templates.nulldata(b"hello"),
    ):
        lock_script = LockScript(script)
        with pytest.raises(PolicyParseError):
            lock_script.extract_pubkeys()
        with pytest.raises(PolicyParseError):
            lock_script.replace_pubkeys(lambda key: None)


def test_keyless_policy() -> None:
    # older(144)
    lock_script = LockScript(serialize([144, "OP_CHECKSEQUENCEVERIFY"]))
    assert lock_script.extract_pubkeys() == []
    assert lock_script.replace_pubkeys(lambda key: KEY_B) == lock_script

    # 1
    assert LockScript(b"\x51").extract_pubkeys() == []


def test_identity_replacement() -> None:
    for script in (
        templates.p2pk(KEY_A),
        templates.p2ms(2, [KEY_A, KEY_B, KEY_C]),
        templates.p2pkh(hash160(KEY_A)),
        serialize([KEY_A, "OP_CHECKSIGVERIFY", KEY_B, "OP_CHECKSIG"]),
    ):
        lock_script = LockScript(script)
        assert lock_script.replace_pubkeys(lambda key: None).script == script
        assert lock_script.replace_pubkeys(lambda key: key).script == script


def test_targeted_replacement() -> None:
    lock_script = LockScript(templates.p2ms(2, [KEY_A, KEY_B]))
    mapping = {KEY_A: KEY_D}
    new_lock_script = lock_script.replace_pubkeys(mapping.get)
    assert isinstance(new_lock_script, LockScript)
    assert new_lock_script == LockScript(templates.p2ms(2, [KEY_D, KEY_B]))
    assert new_lock_script.extract_pubkeys() == [KEY_D, KEY_B]
    # the replaced script is left unchanged
    assert lock_script.extract_pubkeys() == [KEY_A, KEY_B]

    # every occurrence is replaced
    script = serialize([KEY_A, "OP_CHECKSIGVERIFY", KEY_A, "OP_CHECKSIG"])
    new_lock_script = LockScript(script).replace_pubkeys(mapping.get)
    assert new_lock_script.extract_pubkeys() == [KEY_D, KEY_D]

    # uncompressed replacement keys are fine
    mapping = {KEY_A: UNCOMPRESSED_KEY_A}
    new_lock_script = LockScript(templates.p2pk(KEY_A)).replace_pubkeys(mapping.get)
    assert new_lock_script.script == templates.p2pk(UNCOMPRESSED_KEY_A)

    # hex-string replacement keys are accepted
    new_lock_script = lock_script.replace_pubkeys(lambda key: KEY_C.hex())
    assert new_lock_script.extract_pubkeys() == [KEY_C, KEY_C]


def test_hashed_keys_are_left_untouched() -> None:
    # and_v(v:pk_k(A),c:pk_h(B))
    script = serialize([KEY_A, "OP_CHECKSIGVERIFY"]) + templates.p2pkh(hash160(KEY_B))
    visited = []

    def mapping(key: bytes) -> bytes:
        visited.append(key)
        return KEY_C

    new_lock_script = LockScript(script).replace_pubkeys(mapping)
    assert visited == [KEY_A]
    expected = serialize([KEY_C, "OP_CHECKSIGVERIFY"])
    expected += templates.p2pkh(hash160(KEY_B))
    assert new_lock_script.script == expected


def test_invalid_replacement() -> None:
    lock_script = LockScript(templates.p2pk(KEY_A))
    with pytest.raises(BTCScriptValueError, match="invalid size: "):
        lock_script.replace_pubkeys(lambda key: KEY_B[1:])
    with pytest.raises(BTCScriptValueError, match="not a point: "):
        lock_script.replace_pubkeys(lambda key: b"\x05" * 33)
