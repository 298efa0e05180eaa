#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Typed scripts, one class for each layer of the script nesting.

* PubkeyScript: the script of a transaction output (scriptPubKey)
* SigScript: the script of a transaction input (scriptSig)
* RedeemScript: the script committed to by a p2sh output
* WitnessScript: the script committed to by a p2wsh output
* TapScript: a BIP-342 script committed to in a taproot script tree
* LockScript: the innermost script, defining the spending conditions

All of them are thin immutable wrappers around the script bytes:
no wrapper validates its content, and a script only fails when classified
or decoded as miniscript.
Equality is type-exact: a LockScript is never equal to a PubkeyScript
with the same bytes.
The only way to change the type of a script is by unwrapping it
with into_inner and wrapping the bytes again with from_inner.
"""

import logging
from typing import List, Optional, Type, TypeVar, Union

from btcscript.alias import KeyMapping, Octets
from btcscript.exceptions import HashedKeyError
from btcscript.miniscript import HashedPubkey, PlainPubkey, from_script
from btcscript.miniscript.fragments import PubkeyOrHash
from btcscript.script.script import Script
from btcscript.utils import bytes_from_octets

logger = logging.getLogger(__name__)

_Script = TypeVar("_Script", bound="_TypedScript")


class _TypedScript(Script):
    @classmethod
    def from_inner(cls: Type[_Script], script: Union[Script, Octets]) -> _Script:
        "Wrap the script bytes, taking them from another wrapper if needed."
        if isinstance(script, Script):
            script = script.script
        return cls(script)

    def into_inner(self) -> bytes:
        "Return the wrapped script bytes."
        return self.script

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.script.hex()})"


class PubkeyScript(_TypedScript):
    "The script of a transaction output."


class SigScript(_TypedScript):
    "The script of a transaction input."


class RedeemScript(_TypedScript):
    "The script whose hash is committed to by a p2sh output."


class WitnessScript(_TypedScript):
    "The script whose sha256 is committed to by a p2wsh output."


class TapScript(_TypedScript):
    "A script committed to as a leaf of a taproot script tree."


class LockScript(_TypedScript):
    "The script defining the spending conditions, committing to no further hash."

    def extract_pubkeys(self) -> List[bytes]:
        """Return the public keys of the script, in depth-first order.

        The script is decoded as miniscript; duplicated keys are returned
        as many times as they appear.
        Raise PolicyParseError if the script is not a valid miniscript,
        HashedKeyError if the script commits to a public key hash.
        """

        node = from_script(self.script)
        pub_keys: List[bytes] = []
        for leaf in node.iter_pubkeys_and_hashes():
            if isinstance(leaf, HashedPubkey):
                raise HashedKeyError(leaf.hash)
            pub_keys.append(leaf.key)
        return pub_keys

    def replace_pubkeys(self, mapping: KeyMapping) -> "LockScript":
        """Return a new LockScript with some public keys replaced.

        The mapping is called on each public key of the script,
        returning the replacement key or None to leave it unchanged.
        Public key hashes are always left unchanged.
        Raise PolicyParseError if the script is not a valid miniscript.
        """

        def replace_leaf(leaf: PubkeyOrHash) -> Optional[PubkeyOrHash]:
            if isinstance(leaf, HashedPubkey):
                return None
            new_key = mapping(leaf.key)
            if new_key is None:
                return None
            return PlainPubkey(bytes_from_octets(new_key, (33, 65)))

        node = from_script(self.script)
        new_node = node.replace_pubkeys_and_hashes(replace_leaf)
        logger.debug("replaced public keys: %s -> %s", node, new_node)
        return LockScript(new_node.script)
