#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Exception classes.

The generic ones are only meant to discriminate between Exceptions
raised by btcscript from those raised by other codebase:
users are usually better off just dealing with the regular
ValueError, TypeError, and RuntimeError from which they are derived.

The specific ones carry the data needed to react to the failure
(e.g. the offending key hash).
"""

from typing import Optional


class BTCScriptValueError(ValueError):
    pass


class BTCScriptTypeError(TypeError):
    pass


class BTCScriptRuntimeError(RuntimeError):
    pass


class HashMismatchError(BTCScriptValueError):
    """A pre-image does not hash to the commitment being resolved."""

    def __init__(
        self, msg: str, expected: Optional[bytes] = None, actual: Optional[bytes] = None
    ) -> None:
        super().__init__(msg)
        self.expected = expected
        self.actual = actual


class HashedKeyError(BTCScriptValueError):
    """A policy leaf commits to a public key hash only."""

    def __init__(self, key_hash: bytes) -> None:
        super().__init__(f"public key hash instead of public key: {key_hash.hex()}")
        self.key_hash = key_hash


class PolicyParseError(BTCScriptValueError):
    pass


class UnsupportedGenerationError(BTCScriptRuntimeError):
    pass
