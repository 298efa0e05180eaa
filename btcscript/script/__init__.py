#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Module btcscript.script.

Typed scripts and output script classification live in
btcscript.script.script_types and btcscript.script.pub_key_script,
as they depend on btcscript.miniscript, which depends on this module.
"""

from btcscript.script.script import Command, Script, op_int, parse, serialize
from btcscript.script.taproot import (
    TaprootScriptTree,
    check_output_pubkey,
    control_block,
    output_pubkey,
)
from btcscript.script.templates import (
    assert_nulldata,
    assert_p2ms,
    assert_p2pk,
    assert_p2pkh,
    assert_p2sh,
    assert_p2tr,
    assert_p2wpkh,
    assert_p2wsh,
    is_nulldata,
    is_p2ms,
    is_p2pk,
    is_p2pkh,
    is_p2sh,
    is_p2tr,
    is_p2wpkh,
    is_p2wsh,
)
from btcscript.script.witness import Witness

__all__ = [
    "Command",
    "Script",
    "op_int",
    "parse",
    "serialize",
    "TaprootScriptTree",
    "check_output_pubkey",
    "control_block",
    "output_pubkey",
    "assert_nulldata",
    "assert_p2ms",
    "assert_p2pk",
    "assert_p2pkh",
    "assert_p2sh",
    "assert_p2tr",
    "assert_p2wpkh",
    "assert_p2wsh",
    "is_nulldata",
    "is_p2ms",
    "is_p2pk",
    "is_p2pkh",
    "is_p2sh",
    "is_p2tr",
    "is_p2wpkh",
    "is_p2wsh",
    "Witness",
]
