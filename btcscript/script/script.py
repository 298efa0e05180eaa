#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Bitcoin Script op_codes, parsing and serialization.

A script is handled as a List[Command]:

* ascii strings are for opcodes (e.g. 'OP_HASH160', 'OP_1', 'OP_1NEGATE', etc.)
* bytes are for data pushes
* int are numbers, serialized as minimally encoded data pushes
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Dict, List, Sequence, Union

from btcscript.alias import BinaryData, Octets
from btcscript.exceptions import BTCScriptValueError
from btcscript.utils import bytes_from_octets, bytesio_from_binarydata, encode_num

MAX_PUSH_SIZE = 520

OP_CODES: Dict[str, int] = {
    # Constants
    "OP_0": 0x00,
    "OP_PUSHDATA1": 0x4C,
    "OP_PUSHDATA2": 0x4D,
    "OP_PUSHDATA4": 0x4E,
    "OP_1NEGATE": 0x4F,
    "OP_RESERVED": 0x50,
    **{f"OP_{i}": 0x50 + i for i in range(1, 17)},
    # Flow control
    "OP_NOP": 0x61,
    "OP_VER": 0x62,
    "OP_IF": 0x63,
    "OP_NOTIF": 0x64,
    "OP_VERIF": 0x65,
    "OP_VERNOTIF": 0x66,
    "OP_ELSE": 0x67,
    "OP_ENDIF": 0x68,
    "OP_VERIFY": 0x69,
    "OP_RETURN": 0x6A,
    # Stack
    "OP_TOALTSTACK": 0x6B,
    "OP_FROMALTSTACK": 0x6C,
    "OP_2DROP": 0x6D,
    "OP_2DUP": 0x6E,
    "OP_3DUP": 0x6F,
    "OP_2OVER": 0x70,
    "OP_2ROT": 0x71,
    "OP_2SWAP": 0x72,
    "OP_IFDUP": 0x73,
    "OP_DEPTH": 0x74,
    "OP_DROP": 0x75,
    "OP_DUP": 0x76,
    "OP_NIP": 0x77,
    "OP_OVER": 0x78,
    "OP_PICK": 0x79,
    "OP_ROLL": 0x7A,
    "OP_ROT": 0x7B,
    "OP_SWAP": 0x7C,
    "OP_TUCK": 0x7D,
    # Splice
    "OP_SIZE": 0x82,
    # Bitwise logic
    "OP_EQUAL": 0x87,
    "OP_EQUALVERIFY": 0x88,
    "OP_RESERVED1": 0x89,
    "OP_RESERVED2": 0x8A,
    # Arithmetic
    "OP_1ADD": 0x8B,
    "OP_1SUB": 0x8C,
    "OP_NEGATE": 0x8F,
    "OP_ABS": 0x90,
    "OP_NOT": 0x91,
    "OP_0NOTEQUAL": 0x92,
    "OP_ADD": 0x93,
    "OP_SUB": 0x94,
    "OP_BOOLAND": 0x9A,
    "OP_BOOLOR": 0x9B,
    "OP_NUMEQUAL": 0x9C,
    "OP_NUMEQUALVERIFY": 0x9D,
    "OP_NUMNOTEQUAL": 0x9E,
    "OP_LESSTHAN": 0x9F,
    "OP_GREATERTHAN": 0xA0,
    "OP_LESSTHANOREQUAL": 0xA1,
    "OP_GREATERTHANOREQUAL": 0xA2,
    "OP_MIN": 0xA3,
    "OP_MAX": 0xA4,
    "OP_WITHIN": 0xA5,
    # Crypto
    "OP_RIPEMD160": 0xA6,
    "OP_SHA1": 0xA7,
    "OP_SHA256": 0xA8,
    "OP_HASH160": 0xA9,
    "OP_HASH256": 0xAA,
    "OP_CODESEPARATOR": 0xAB,
    "OP_CHECKSIG": 0xAC,
    "OP_CHECKSIGVERIFY": 0xAD,
    "OP_CHECKMULTISIG": 0xAE,
    "OP_CHECKMULTISIGVERIFY": 0xAF,
    # Locktime
    "OP_NOP1": 0xB0,
    "OP_CHECKLOCKTIMEVERIFY": 0xB1,
    "OP_CHECKSEQUENCEVERIFY": 0xB2,
    # Reserved words
    **{f"OP_NOP{i}": 0xAF + i for i in range(4, 11)},
    # Taproot
    "OP_CHECKSIGADD": 0xBA,
}

OP_CODE_NAME_FROM_INT: Dict[int, str] = {v: k for k, v in OP_CODES.items()}

# aliases are accepted when serializing, never returned when parsing
OP_CODES.update(
    {
        "OP_FALSE": 0x00,
        "OP_TRUE": 0x51,
        "OP_NOP2": 0xB1,
        "OP_NOP3": 0xB2,
    }
)


def op_int(i: int) -> str:
    # Short 1-byte op_codes exist
    # to push numbers in [-1, 16]
    if i == -1:
        return "OP_1NEGATE"
    if 0 <= i <= 16:
        return f"OP_{i}"
    raise BTCScriptValueError(f"invalid OP_INT: {i}")


def int_from_op(command: str) -> int:
    "Return the number pushed by a small-integer op_code."
    if command == "OP_1NEGATE":
        return -1
    i = OP_CODES.get(command, -1)
    if i == 0:
        return 0
    if 0x51 <= i <= 0x60:
        return i - 0x50
    raise BTCScriptValueError(f"not a small integer op_code: {command}")


Command = Union[int, str, bytes]

# size in bytes of the length prefix following each OP_PUSHDATA
_PUSHDATA_LENGTH_SIZES = {0x4C: 1, 0x4D: 2, 0x4E: 4}


def _serialize_bytes_command(command: bytes) -> bytes:
    """Return the minimal push of the data (BIP-62).

    OP_PUSHDATA4 is never needed, as pushes are limited to 520 bytes.
    """

    size = len(command)
    if size > MAX_PUSH_SIZE:
        raise BTCScriptValueError(f"too many bytes for OP_PUSHDATA: {size}")
    if size < OP_CODES["OP_PUSHDATA1"]:
        prefix = bytes([size])
    elif size <= 0xFF:
        prefix = bytes([OP_CODES["OP_PUSHDATA1"], size])
    else:
        prefix = bytes([OP_CODES["OP_PUSHDATA2"]]) + size.to_bytes(2, "little")
    return prefix + command


def _serialize_str_command(command: str) -> bytes:
    op_code = command.strip().upper()
    if op_code in OP_CODES:
        return bytes([OP_CODES[op_code]])
    if op_code.startswith("OP_SUCCESS"):
        # only the op_codes left undefined by BIP-342
        value = int(op_code[len("OP_SUCCESS") :])
        if value < 0x4C or value in OP_CODE_NAME_FROM_INT:
            raise BTCScriptValueError(f"invalid OP_SUCCESS number: {value}")
        return bytes([value])
    raise BTCScriptValueError(f"invalid string command: {op_code}")


def _serialize_command(command: Command) -> bytes:
    if isinstance(command, str):
        return _serialize_str_command(command)
    if isinstance(command, int):
        if -1 <= command <= 16:
            return _serialize_str_command(op_int(command))
        return _serialize_bytes_command(encode_num(command))
    return _serialize_bytes_command(bytes(command))


def serialize(script: Sequence[Command]) -> bytes:
    "Return the canonical serialization of a list of commands."
    return b"".join(_serialize_command(command) for command in script)


def _read_exactly(stream: BytesIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise BTCScriptValueError(f"not enough data for {what}")
    return data


def parse(stream: BinaryData) -> List[Command]:
    "Return the list of commands of a serialized script."

    s = bytesio_from_binarydata(stream)
    commands: List[Command] = []
    for op_code in iter(lambda: s.read(1), b""):
        value = op_code[0]
        if value == 0 or value > OP_CODES["OP_PUSHDATA4"]:
            name = OP_CODE_NAME_FROM_INT.get(value, f"OP_SUCCESS{value}")
            commands.append(name)
            continue
        size = value
        if value in _PUSHDATA_LENGTH_SIZES:
            prefix = _read_exactly(s, _PUSHDATA_LENGTH_SIZES[value], "pushdata length")
            size = int.from_bytes(prefix, byteorder="little")
            if size > MAX_PUSH_SIZE:
                raise BTCScriptValueError(f"invalid pushdata length: {size}")
        commands.append(_read_exactly(s, size, "pushdata"))
    return commands


@dataclass(frozen=True)
class Script:
    "Raw Bitcoin script: an opaque byte sequence of op_codes and data pushes."

    script: bytes

    def __init__(self, script: Octets = b"", check_validity: bool = False) -> None:
        object.__setattr__(self, "script", bytes_from_octets(script))
        if check_validity:
            self.assert_valid()

    @property
    def asm(self) -> List[Command]:
        return parse(self.script)

    @property
    def hex(self) -> str:
        return self.script.hex()

    def __len__(self) -> int:
        return len(self.script)

    def assert_valid(self) -> None:
        "Raise if the script cannot be parsed into op_codes and data pushes."
        parse(self.script)
