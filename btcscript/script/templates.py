#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Canonical output script templates.

Each template has an assert_* function, raising BTCScriptValueError
with a descriptive message if the script does not match the template,
an is_* predicate, and a builder returning the canonical serialization.
"""

from typing import Callable, Dict, List, Sequence, Tuple

from btcscript.alias import Octets
from btcscript.ecc.sec_point import point_from_octets
from btcscript.exceptions import BTCScriptValueError
from btcscript.script.script import (
    OP_CODE_NAME_FROM_INT,
    OP_CODES,
    Command,
    op_int,
    parse,
    serialize,
)
from btcscript.utils import bytes_from_octets

# hash commitments: leading op_codes, committed hash, final op_codes
_HASH_LAYOUTS: Dict[str, Tuple[Tuple[str, ...], str, Tuple[str, ...]]] = {
    "p2pkh": (
        ("OP_DUP", "OP_HASH160"),
        "pub_key hash",
        ("OP_EQUALVERIFY", "OP_CHECKSIG"),
    ),
    "p2sh": (("OP_HASH160",), "redeem script hash", ("OP_EQUAL",)),
}

# witness programs: witness version, program size
_WITNESS_LAYOUTS: Dict[str, Tuple[int, int]] = {
    "p2wpkh": (0, 20),
    "p2wsh": (0, 32),
    "p2tr": (1, 32),
}


def _is_funct(assert_funct: Callable[[Octets], None], script_pub_key: Octets) -> bool:
    "Return False if assert_funct raises for script_pub_key, True otherwise."
    try:
        assert_funct(script_pub_key)
    except Exception:  # pylint: disable=broad-except
        return False
    return True


def _op_bytes(op_codes: Sequence[str]) -> bytes:
    return bytes(OP_CODES[op_code] for op_code in op_codes)


def assert_p2pk(script_pub_key: Octets) -> None:
    # [pub_key, OP_CHECKSIG]
    script_pub_key = bytes_from_octets(script_pub_key, (35, 67))
    if script_pub_key[-1] != OP_CODES["OP_CHECKSIG"]:
        raise BTCScriptValueError("missing final OP_CHECKSIG")
    marker, pub_key = script_pub_key[0], script_pub_key[1:-1]
    if marker != len(pub_key):
        msg = f"invalid pub_key length marker: {marker} instead of {len(pub_key)}"
        raise BTCScriptValueError(msg)
    point_from_octets(pub_key)


def is_p2pk(script_pub_key: Octets) -> bool:
    return _is_funct(assert_p2pk, script_pub_key)


def _assert_hash_layout(script_type: str, script_pub_key: Octets) -> None:
    leading, committed, final = _HASH_LAYOUTS[script_type]
    head = _op_bytes(leading)
    tail = _op_bytes(final)
    script_pub_key = bytes_from_octets(script_pub_key, len(head) + 21 + len(tail))
    if not script_pub_key.endswith(tail):
        raise BTCScriptValueError("missing final " + ", ".join(final))
    if not script_pub_key.startswith(head):
        raise BTCScriptValueError("missing leading " + ", ".join(leading))
    marker = script_pub_key[len(head)]
    if marker != 20:
        msg = f"invalid {committed} length marker: {marker} instead of 20"
        raise BTCScriptValueError(msg)


def assert_p2pkh(script_pub_key: Octets) -> None:
    # [OP_DUP, OP_HASH160, pub_key hash, OP_EQUALVERIFY, OP_CHECKSIG]
    _assert_hash_layout("p2pkh", script_pub_key)


def is_p2pkh(script_pub_key: Octets) -> bool:
    return _is_funct(assert_p2pkh, script_pub_key)


def assert_p2sh(script_pub_key: Octets) -> None:
    # [OP_HASH160, redeem_script hash, OP_EQUAL]
    _assert_hash_layout("p2sh", script_pub_key)


def is_p2sh(script_pub_key: Octets) -> bool:
    return _is_funct(assert_p2sh, script_pub_key)


def _assert_witness_layout(script_type: str, script_pub_key: Octets) -> None:
    # [OP_version, program]
    version, size = _WITNESS_LAYOUTS[script_type]
    script_pub_key = bytes_from_octets(script_pub_key, size + 2)
    version_op, marker = script_pub_key[0], script_pub_key[1]
    if version_op != OP_CODES[op_int(version)]:
        found = OP_CODE_NAME_FROM_INT.get(version_op, hex(version_op))
        msg = f"invalid witness version: {found} instead of {op_int(version)}"
        raise BTCScriptValueError(msg)
    if marker != size:
        msg = f"invalid witness program length marker: {marker} instead of {size}"
        raise BTCScriptValueError(msg)


def assert_p2wpkh(script_pub_key: Octets) -> None:
    _assert_witness_layout("p2wpkh", script_pub_key)


def is_p2wpkh(script_pub_key: Octets) -> bool:
    return _is_funct(assert_p2wpkh, script_pub_key)


def assert_p2wsh(script_pub_key: Octets) -> None:
    _assert_witness_layout("p2wsh", script_pub_key)


def is_p2wsh(script_pub_key: Octets) -> bool:
    return _is_funct(assert_p2wsh, script_pub_key)


def assert_p2tr(script_pub_key: Octets) -> None:
    _assert_witness_layout("p2tr", script_pub_key)


def is_p2tr(script_pub_key: Octets) -> bool:
    return _is_funct(assert_p2tr, script_pub_key)


def assert_nulldata(script_pub_key: Octets) -> None:
    # [OP_RETURN, data]
    script_pub_key = bytes_from_octets(script_pub_key)
    if not script_pub_key:
        raise BTCScriptValueError("null length")
    if script_pub_key[0] != OP_CODES["OP_RETURN"]:
        raise BTCScriptValueError("missing leading OP_RETURN")
    pushes = parse(script_pub_key[1:])
    if len(pushes) != 1:
        raise BTCScriptValueError(f"invalid number of pushes: {len(pushes)}")
    data = b"" if pushes[0] == "OP_0" else pushes[0]
    if not isinstance(data, bytes):
        raise BTCScriptValueError(f"not a data push: {data}")
    if nulldata(data) != script_pub_key:
        raise BTCScriptValueError("non-minimal data push")


def is_nulldata(script_pub_key: Octets) -> bool:
    return _is_funct(assert_nulldata, script_pub_key)


def p2ms_pub_keys(script_pub_key: Octets) -> List[bytes]:
    "Return the public keys of a bare m-of-n multi-sig script."

    script_pub_key = bytes_from_octets(script_pub_key)
    # p2ms [m, pub_keys, n, OP_CHECKMULTISIG]
    commands = parse(script_pub_key)
    if len(commands) < 4 or commands[-1] != "OP_CHECKMULTISIG":
        raise BTCScriptValueError("missing final OP_CHECKMULTISIG")
    m = commands[0]
    n = commands[-2]
    pub_keys = commands[1:-2]
    if not isinstance(m, str) or m not in [op_int(i) for i in range(1, 17)]:
        raise BTCScriptValueError(f"invalid m in m-of-n: {m!r}")
    if n != op_int(len(pub_keys)):
        raise BTCScriptValueError(f"invalid n in m-of-n: {n!r}")
    if int(m[3:]) > len(pub_keys):
        raise BTCScriptValueError(f"invalid m-of-n: {m[3:]}-of-{len(pub_keys)}")
    for pub_key in pub_keys:
        if not isinstance(pub_key, bytes):
            raise BTCScriptValueError(f"not a public key: {pub_key}")
        point_from_octets(pub_key)
    return pub_keys  # type: ignore


def assert_p2ms(script_pub_key: Octets) -> None:
    p2ms_pub_keys(script_pub_key)


def is_p2ms(script_pub_key: Octets) -> bool:
    return _is_funct(assert_p2ms, script_pub_key)


def p2pk(pub_key: Octets) -> bytes:
    "Return the p2pk script of the provided SEC public key."
    pub_key = bytes_from_octets(pub_key, (33, 65))
    return serialize([pub_key, "OP_CHECKSIG"])


def _hash_layout(script_type: str, hash_: Octets) -> bytes:
    leading, _, final = _HASH_LAYOUTS[script_type]
    return serialize([*leading, bytes_from_octets(hash_, 20), *final])


def p2pkh(pub_key_hash: Octets) -> bytes:
    "Return the p2pkh script of the provided public key hash."
    return _hash_layout("p2pkh", pub_key_hash)


def p2sh(script_hash: Octets) -> bytes:
    "Return the p2sh script of the provided redeem script hash."
    return _hash_layout("p2sh", script_hash)


def _witness_layout(script_type: str, program: Octets) -> bytes:
    version, size = _WITNESS_LAYOUTS[script_type]
    return serialize([op_int(version), bytes_from_octets(program, size)])


def p2wpkh(pub_key_hash: Octets) -> bytes:
    "Return the p2wpkh script of the provided public key hash."
    return _witness_layout("p2wpkh", pub_key_hash)


def p2wsh(witness_script_hash: Octets) -> bytes:
    "Return the p2wsh script of the provided witness script hash."
    return _witness_layout("p2wsh", witness_script_hash)


def p2tr(output_key: Octets) -> bytes:
    "Return the p2tr script of the provided x-only output key."
    return _witness_layout("p2tr", output_key)


def nulldata(data: Octets) -> bytes:
    "Return the nulldata script of the provided data."
    data = bytes_from_octets(data)
    # the empty push is OP_0
    return serialize(["OP_RETURN", data if data else "OP_0"])


def p2ms(m: int, pub_keys: Sequence[Octets]) -> bytes:
    """Return the m-of-n bare multi-sig script of the provided keys.

    Keys are kept in the provided order: no BIP-67 sorting.
    """
    n = len(pub_keys)
    if not 0 < n < 17:
        raise BTCScriptValueError(f"invalid n in m-of-n: {n}")
    if not 0 < m <= n:
        raise BTCScriptValueError(f"invalid m in m-of-n: {m}-of-{n}")
    commands: List[Command] = [op_int(m)]
    commands += [bytes_from_octets(pub_key, (33, 65)) for pub_key in pub_keys]
    commands += [op_int(n), "OP_CHECKMULTISIG"]
    return serialize(commands)
