#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Length-prefixed octets, as committed to by tapleaf hashes."

from btcscript import var_int
from btcscript.alias import Octets
from btcscript.utils import bytes_from_octets


def serialize(octets: Octets) -> bytes:
    "Return the var_int(len(octets)) + octets serialization of octets."

    bytes_ = bytes_from_octets(octets)
    return var_int.serialize(len(bytes_)) + bytes_
