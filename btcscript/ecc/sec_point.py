#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""SEC compressed/uncompressed point representation, and BIP-340 x-only keys."""

from btcscript.alias import Octets, Point
from btcscript.ecc.curve import Curve, secp256k1
from btcscript.exceptions import BTCScriptValueError
from btcscript.utils import bytes_from_octets


def bytes_from_point(Q: Point, ec: Curve = secp256k1, compressed: bool = True) -> bytes:
    "Return the SEC 1 v.2 compressed or uncompressed encoding of a point."

    ec.require_on_curve(Q)
    if Q[1] == 0:  # infinity point in affine coordinates
        raise BTCScriptValueError("no bytes representation for infinity point")

    x_bytes = Q[0].to_bytes(ec.p_size, byteorder="big")
    if compressed:
        return bytes([0x02 | (Q[1] & 1)]) + x_bytes
    return b"\x04" + x_bytes + Q[1].to_bytes(ec.p_size, byteorder="big")


def point_from_octets(pub_key: Octets, ec: Curve = secp256k1) -> Point:
    """Return the curve point of a SEC 1 v.2 encoded public key.

    Both the compressed (0x02, 0x03) and the uncompressed (0x04)
    encodings are accepted; hybrid encodings are not.
    """

    compressed_size = ec.p_size + 1
    pub_key = bytes_from_octets(pub_key, (compressed_size, 2 * ec.p_size + 1))
    prefix = pub_key[0]
    if prefix not in (0x02, 0x03, 0x04):
        raise BTCScriptValueError(f"not a point: {pub_key!r}")
    compressed = prefix != 0x04
    if compressed != (len(pub_key) == compressed_size):
        kind = "compressed" if compressed else "uncompressed"
        raise BTCScriptValueError(f"invalid size for {kind} point: {len(pub_key)}")

    x_Q = int.from_bytes(pub_key[1:compressed_size], byteorder="big")
    if compressed:
        try:
            y_Q = ec.y_even(x_Q)
        except BTCScriptValueError as e:
            raise BTCScriptValueError(f"invalid x-coordinate: {hex(x_Q)}") from e
        return x_Q, y_Q if prefix == 0x02 else ec.p - y_Q

    Q = x_Q, int.from_bytes(pub_key[compressed_size:], byteorder="big")
    if Q[1] == 0:
        raise BTCScriptValueError("no bytes representation for infinity point")
    if not ec.is_on_curve(Q):
        raise BTCScriptValueError(f"point not on curve: {Q}")
    return Q


def is_pub_key(pub_key: Octets, ec: Curve = secp256k1) -> bool:
    "Return True if the input is a valid SEC encoded point."
    try:
        point_from_octets(pub_key, ec)
    except BTCScriptValueError:
        return False
    return True


def x_only_from_pub_key(pub_key: Octets, ec: Curve = secp256k1) -> bytes:
    "Return the BIP-340 x-only representation of a SEC encoded point."
    Q = point_from_octets(pub_key, ec)
    return Q[0].to_bytes(ec.p_size, byteorder="big", signed=False)


def point_from_x_only(x_only: Octets, ec: Curve = secp256k1) -> Point:
    "Return the even-y point of a BIP-340 x-only key."
    x_only = bytes_from_octets(x_only, ec.p_size)
    x_Q = int.from_bytes(x_only, byteorder="big", signed=False)
    return x_Q, ec.y_even(x_Q)
