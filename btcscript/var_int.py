#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Bitcoin var_int (CompactSize) encoding.

Up to 0xfc, a var_int is just 1 byte; otherwise it is expanded as
[1 byte prefix][little-endian number]:

* prefix 0xfd marks the next two bytes as the number;
* prefix 0xfe marks the next four bytes as the number;
* prefix 0xff marks the next eight bytes as the number.
"""

from btcscript.exceptions import BTCScriptValueError

_SIZE_FROM_PREFIX = {0xFD: 2, 0xFE: 4, 0xFF: 8}


def serialize(i: int) -> bytes:
    "Return the var_int bytes encoding of an integer."

    if i < 0x00:
        raise BTCScriptValueError(f"negative integer: {i}")
    if i < 0xFD:
        return bytes([i])
    for prefix, size in _SIZE_FROM_PREFIX.items():
        if i < 1 << (8 * size):
            return bytes([prefix]) + i.to_bytes(size, byteorder="little", signed=False)
    err_msg = f"integer too big for var_int encoding: {hex(i)}"
    raise BTCScriptValueError(err_msg)
