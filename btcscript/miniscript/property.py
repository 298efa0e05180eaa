#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Miniscript type system.

https://bitcoin.sipa.be/miniscript/

Each expression has exactly one basic type:

* B (base): takes its inputs from the stack top, pushes one nonzero
  value on success or an exact 0 on failure;
* V (verify): as B, but pushes nothing and aborts on failure;
* K (key): pushes a public key, for which a signature is to be checked;
* W (wrapped): takes its inputs from one element below the stack top.

and may have type properties:

* z: consumes exactly 0 stack elements;
* o: consumes exactly 1 stack element;
* n: the top stack element is nonzero for any satisfaction;
* d: a dissatisfaction exists;
* u: on satisfaction the expression pushes exactly 1.
"""

from btcscript.exceptions import PolicyParseError

BASE_TYPES = "BVKW"
TYPE_PROPERTIES = "zonud"


class Property:
    "Basic type and type properties of a miniscript expression."

    # set in __init__, declared for type checkers
    B: bool
    V: bool
    K: bool
    W: bool
    z: bool
    o: bool
    n: bool
    u: bool
    d: bool

    def __init__(self, property_str: str = "") -> None:
        for char in property_str:
            if char not in BASE_TYPES + TYPE_PROPERTIES:
                raise PolicyParseError(f"invalid miniscript property: {char}")
        for char in BASE_TYPES + TYPE_PROPERTIES:
            setattr(self, char, char in property_str)
        if sum(getattr(self, char) for char in BASE_TYPES) != 1:
            raise PolicyParseError(f"not exactly one basic type: {property_str}")

    def has_all(self, properties: str) -> bool:
        return all(getattr(self, char) for char in properties)

    def has_any(self, properties: str) -> bool:
        return any(getattr(self, char) for char in properties)

    @property
    def base(self) -> str:
        return next(char for char in BASE_TYPES if getattr(self, char))

    def __repr__(self) -> str:
        chars = [char for char in BASE_TYPES + TYPE_PROPERTIES if getattr(self, char)]
        return "".join(chars)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Property):
            return NotImplemented
        return repr(self) == repr(other)


def property_from_flags(base: str, **flags: bool) -> Property:
    "Return the Property of the given basic type and true-valued properties."
    return Property(base + "".join(char for char, flag in flags.items() if flag))
