#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Hash based helper functions.

Output scripts commit to:

* HASH160 of a SEC public key (p2pkh, p2wpkh)
* HASH160 of a redeem script (p2sh)
* SHA256 of a witness script (p2wsh)
* a BIP-340 tagged hash tweak of an internal key (p2tr)
"""

import hashlib

from Crypto.Hash import RIPEMD160

from btcscript.alias import Octets
from btcscript.utils import bytes_from_octets


def ripemd160(octets: Octets) -> bytes:
    # hashlib ripemd160 is not available with OpenSSL 3.x default provider
    return RIPEMD160.new(bytes_from_octets(octets)).digest()


def sha256(octets: Octets) -> bytes:
    return hashlib.sha256(bytes_from_octets(octets)).digest()


def hash160(octets: Octets) -> bytes:
    "RIPEMD160(SHA256(octets)), the key and redeem script commitment."
    return ripemd160(sha256(octets))


def hash256(octets: Octets) -> bytes:
    "SHA256(SHA256(octets))."
    return sha256(sha256(octets))


def tagged_hash(tag: bytes, m: Octets) -> bytes:
    "BIP-340 tagged hash: SHA256(SHA256(tag) | SHA256(tag) | m)."
    tag_hash = hashlib.sha256(tag).digest()
    h = hashlib.sha256(tag_hash + tag_hash)
    h.update(bytes_from_octets(m))
    return h.digest()
