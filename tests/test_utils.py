#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `btcscript.utils` module."

import pytest

from btcscript.exceptions import BTCScriptTypeError, BTCScriptValueError
from btcscript.utils import (
    bytes_from_octets,
    bytesio_from_binarydata,
    decode_num,
    encode_num,
)


def test_bytes_from_octets() -> None:
    assert bytes_from_octets("deadbeef") == b"\xde\xad\xbe\xef"
    assert bytes_from_octets(" dead beef ") == b"\xde\xad\xbe\xef"
    assert bytes_from_octets(b"\x01\x02", 2) == b"\x01\x02"
    assert bytes_from_octets(b"\x01\x02", (1, 2)) == b"\x01\x02"

    with pytest.raises(BTCScriptValueError, match="invalid size: "):
        bytes_from_octets(b"\x01\x02", 3)
    with pytest.raises(BTCScriptValueError, match="invalid size: "):
        bytes_from_octets(b"\x01\x02", (33, 65))
    with pytest.raises(BTCScriptValueError, match="invalid hex-string: "):
        bytes_from_octets("not hex")
    with pytest.raises(BTCScriptTypeError, match="not an octet sequence: "):
        bytes_from_octets(32)  # type: ignore


def test_bytesio_from_binarydata() -> None:
    stream = bytesio_from_binarydata("0102")
    assert stream.read() == b"\x01\x02"
    stream = bytesio_from_binarydata(b"\x01\x02")
    assert stream.read(1) == b"\x01"
    # a stream goes untouched
    assert bytesio_from_binarydata(stream) is stream


def test_encode_num() -> None:

    # zero is the empty byte string
    assert encode_num(0) == b""
    assert decode_num(b"") == 0
    # non canonical zeros
    assert decode_num(b"\x00") == 0
    assert decode_num(b"\x80") == 0

    assert encode_num(1) == b"\x01"
    assert encode_num(-1) == b"\x81"
    assert encode_num(127) == b"\x7f"
    assert encode_num(128) == b"\x80\x00"
    assert encode_num(-128) == b"\x80\x80"
    assert encode_num(32) == b"\x20"

    for i in range(-255, 256):
        assert decode_num(encode_num(i)) == i

    for i in (0x80FF, 0xFFFF, 0x80FFFFFF, 0xFFFFFFFF, 0xFFFFFFFFFF):
        assert decode_num(encode_num(i)) == i
        assert decode_num(encode_num(-i)) == -i

    # 7 bits + sign bit = 1 byte
    assert len(encode_num(0b01111111)) == 1
    # 8 bits + sign bit = 2 bytes
    assert len(encode_num(0b11111111)) == 2


def test_decode_num() -> None:
    assert decode_num(b"\x90\x00") == 144
    assert decode_num(b"\x81") == -1
    assert decode_num(b"\x80\x80") == -128
    # non-minimal encodings are decoded too
    assert decode_num(b"\x01\x00") == 1
    assert decode_num(b"\x01\x80") == -1
