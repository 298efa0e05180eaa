#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Aliases

mypy aliases, documenting also coding input conventions.
"""

from io import BytesIO
from typing import Callable, Optional, Tuple, Union

# Octets are a sequence of eight-bit bytes or a hex-string (not text string)
#
# hex-strings are strings that can be converted to bytes using bytes.fromhex,
# e.g.:
# "deadbeef"
# "dead beef"
# "02 cc71eb30d653c0c3163990c47b976f3fb3f37cccdcbedb169a1dfef58bbfbfaf"
#
# use btcscript.utils.bytes_from_octets to convert Octets to bytes
#
# Octets are used for serialized scripts, h160 (20 bytes), h256 (32 bytes),
# SEC encoded public keys (33 or 65 bytes), x-only keys (32 bytes), etc.
Octets = Union[bytes, str]

# binary data, usually to be consumed as byte stream,
# but possibly provided as Octets too
BinaryData = Union[BytesIO, Octets]

# Elliptic curve point in affine coordinates.
Point = Tuple[int, int]

# The infinity point in affine coordinates is INF = (int, 0)
# (no affine point has y=0 coordinate in a group of prime order).
# It can be checked with 'INF[1] == 0'
INF = 5, 0

# Public key substitution function:
# it returns the replacement for the input SEC key, or None for no change
KeyMapping = Callable[[bytes], Optional[Octets]]
