#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Segwit witness stack, with BIP-341 annex detection."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from btcscript.alias import Octets
from btcscript.utils import bytes_from_octets

ANNEX_TAG = 0x50


@dataclass
class Witness:
    "The stack of elements spending a segwit output, first pushed first."

    stack: List[bytes]

    def __init__(self, stack: Optional[Sequence[Octets]] = None) -> None:
        self.stack = list(map(bytes_from_octets, stack or []))

    def __len__(self) -> int:
        return len(self.stack)

    @property
    def annex(self) -> Optional[bytes]:
        """Return the BIP-341 annex, if any.

        The annex is the last element of a stack of two or more elements,
        when it starts with the 0x50 tag.
        """
        if len(self.stack) < 2 or not self.stack[-1].startswith(bytes([ANNEX_TAG])):
            return None
        return self.stack[-1]

    def stack_without_annex(self) -> List[bytes]:
        end = len(self.stack) - (self.annex is not None)
        return self.stack[:end]
