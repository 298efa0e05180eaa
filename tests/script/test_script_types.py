#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `btcscript.script.script_types` module."

import dataclasses

import pytest

from btcscript.exceptions import BTCScriptTypeError
from btcscript.script.script import Script
from btcscript.script.script_types import (
    LockScript,
    PubkeyScript,
    RedeemScript,
    SigScript,
    TapScript,
    WitnessScript,
)

SCRIPT_CLASSES = (
    LockScript,
    PubkeyScript,
    SigScript,
    RedeemScript,
    WitnessScript,
    TapScript,
)


def test_wrap_unwrap() -> None:
    for script in (b"", b"\x51", b"\x76\xa9", b"\x02\x01", bytes(range(256))):
        for script_class in SCRIPT_CLASSES:
            wrapped = script_class.from_inner(script)
            assert isinstance(wrapped, script_class)
            assert wrapped.into_inner() == script
            assert script_class.from_inner(script.hex()).into_inner() == script
            assert len(wrapped) == len(script)
            assert wrapped.hex == script.hex()


def test_type_exact_equality() -> None:
    script = b"\x51"
    for script_class in SCRIPT_CLASSES:
        assert script_class.from_inner(script) == script_class(script)
        assert script_class.from_inner(script) != script_class.from_inner(b"\x52")
        for other_class in SCRIPT_CLASSES:
            if other_class is not script_class:
                assert script_class(script) != other_class(script)
        assert script_class(script) != Script(script)
        assert hash(script_class(script)) == hash(script_class(script))

    # explicit retagging
    lock_script = LockScript(script)
    redeem_script = RedeemScript.from_inner(lock_script.into_inner())
    assert redeem_script.into_inner() == lock_script.into_inner()
    assert redeem_script != lock_script


def test_retagging_another_wrapper() -> None:
    pub_key_script = PubkeyScript(b"\x51")
    for script_class in SCRIPT_CLASSES:
        retagged = script_class.from_inner(pub_key_script)
        assert type(retagged) is script_class
        assert retagged.into_inner() == b"\x51"
    assert LockScript.from_inner(Script(b"\x76\xa9")) == LockScript(b"\x76\xa9")

    with pytest.raises(BTCScriptTypeError, match="not an octet sequence: "):
        LockScript.from_inner(81)  # type: ignore


def test_immutability() -> None:
    lock_script = LockScript(b"\x51")
    with pytest.raises(dataclasses.FrozenInstanceError):
        lock_script.script = b"\x52"  # type: ignore


def test_malformed_content() -> None:
    # wrappers do not validate their content
    truncated_push = b"\x02\x01"
    for script_class in SCRIPT_CLASSES:
        wrapped = script_class(truncated_push)
        assert wrapped.into_inner() == truncated_push

    assert repr(LockScript(b"\x51")) == "LockScript(51)"
    assert LockScript(b"\x76\xa9").asm == ["OP_DUP", "OP_HASH160"]
