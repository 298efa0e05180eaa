#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Conversion utilities.

Octets (bytes or hex-strings) are accepted at every public boundary
and normalized to bytes here; script numbers use the
Bitcoin little-endian sign-magnitude encoding.
"""

from io import BytesIO
from typing import Collection, Optional, Union

from btcscript.alias import BinaryData, Octets
from btcscript.exceptions import BTCScriptTypeError, BTCScriptValueError

NoneOneOrMoreInt = Optional[Union[int, Collection[int]]]


def bytes_from_octets(octets: Octets, out_size: NoneOneOrMoreInt = None) -> bytes:
    """Return bytes from bytes or a hex-string, optionally checking the size.

    Spaces in hex-strings are ignored.
    The size can be a single int or a collection of valid sizes.
    """

    if isinstance(octets, str):
        try:
            octets = bytes.fromhex(octets)
        except ValueError as e:
            raise BTCScriptValueError(f"invalid hex-string: {octets}") from e
    elif isinstance(octets, int):
        # bytes(n) would be n zero bytes
        raise BTCScriptTypeError(f"not an octet sequence: {octets!r}")
    octets = bytes(octets)

    if out_size is None:
        return octets
    sizes = (out_size,) if isinstance(out_size, int) else out_size
    if len(octets) not in sizes:
        err_msg = f"invalid size: {len(octets)} bytes instead of {out_size}"
        raise BTCScriptValueError(err_msg)
    return octets


def bytesio_from_binarydata(stream: BinaryData) -> BytesIO:
    "Return a BytesIO stream, wrapping Octets; streams go untouched."
    if isinstance(stream, BytesIO):
        return stream
    return BytesIO(bytes_from_octets(stream))


def decode_num(data: bytes) -> int:
    """Decode a script number.

    Script numbers are little-endian, with the most significant bit
    of the last byte as sign bit:

    * 0x01 is 1
    * 0x81 is -1
    * 0x8000 is 128

    Zero is canonically the empty byte string,
    but non-minimal encodings are decoded too.
    """

    if not data:
        return 0
    magnitude = int.from_bytes(data, byteorder="little", signed=False)
    sign_bit = 1 << (8 * len(data) - 1)
    if magnitude & sign_bit:
        return -(magnitude ^ sign_bit)
    return magnitude


def encode_num(i: int) -> bytes:
    "Return the minimal script number encoding of an integer."

    if i == 0:
        return b""
    # magnitude bits, plus the sign bit
    n_bytes = (abs(i).bit_length() + 8) // 8
    encoded = abs(i)
    if i < 0:
        encoded |= 1 << (8 * n_bytes - 1)
    return encoded.to_bytes(n_bytes, byteorder="little", signed=False)
