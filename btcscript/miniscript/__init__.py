#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Miniscript decoding of lock scripts, with key introspection and substitution."""

from btcscript.miniscript.fragments import HashedPubkey, Node, PlainPubkey
from btcscript.miniscript.parsing import from_script

__all__ = [
    "HashedPubkey",
    "Node",
    "PlainPubkey",
    "from_script",
]
