#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Taproot (BIP-341) commitments.

A script tree is either a leaf, i.e. a one element list
[(leaf_version, script)], or a branch, i.e. a two element list
[left_tree, right_tree].
"""

from typing import Any, List, Optional, Tuple

from btcscript import var_bytes
from btcscript.alias import Octets
from btcscript.ecc.curve import Curve, mult, secp256k1
from btcscript.ecc.sec_point import point_from_octets, point_from_x_only
from btcscript.exceptions import BTCScriptValueError
from btcscript.hashes import tagged_hash
from btcscript.utils import bytes_from_octets

TAPROOT_LEAF_TAPSCRIPT = 0xC0
TAPROOT_LEAF_MASK = 0xFE
# a control block is 33 bytes plus at most 128 32-bytes merkle path elements
TAPROOT_CONTROL_MAX_NODE_COUNT = 128

# recursive type hinting is not supported
# https://github.com/python/mypy/issues/731
TaprootScriptTree = Any


def tap_leaf_hash(script: Octets, leaf_version: int = TAPROOT_LEAF_TAPSCRIPT) -> bytes:
    preimage = bytes([leaf_version & TAPROOT_LEAF_MASK])
    preimage += var_bytes.serialize(bytes_from_octets(script))
    return tagged_hash(b"TapLeaf", preimage)


def tap_branch_hash(a: bytes, b: bytes) -> bytes:
    "Return the hash of a branch, with its children in lexicographic order."
    return tagged_hash(b"TapBranch", min(a, b) + max(a, b))


def tree_helper(script_tree: TaprootScriptTree) -> Tuple[List[Any], bytes]:
    "Return the (leaf, merkle path) list and the merkle root of a script tree."
    if len(script_tree) == 1:
        version, script = script_tree[0]
        leaf = (version & TAPROOT_LEAF_MASK, bytes_from_octets(script))
        return [(leaf, b"")], tap_leaf_hash(leaf[1], leaf[0])
    subtrees = [tree_helper(subtree) for subtree in script_tree]
    # each leaf path is extended with the sibling subtree root
    info: List[Any] = []
    for (leaves, _), (_, sibling_root) in zip(subtrees, subtrees[::-1]):
        info += [(leaf, path + sibling_root) for leaf, path in leaves]
    return info, tap_branch_hash(subtrees[0][1], subtrees[1][1])


def merkle_root_from_path(
    script: Octets, merkle_path: Octets, leaf_version: int = TAPROOT_LEAF_TAPSCRIPT
) -> bytes:
    "Return the merkle root of the tree with the script leaf at the given path."
    merkle_path = bytes_from_octets(merkle_path)
    if len(merkle_path) % 32:
        raise BTCScriptValueError(f"invalid merkle path length: {len(merkle_path)}")
    if len(merkle_path) > 32 * TAPROOT_CONTROL_MAX_NODE_COUNT:
        raise BTCScriptValueError("merkle path too long")
    k = tap_leaf_hash(script, leaf_version)
    for j in range(0, len(merkle_path), 32):
        k = tap_branch_hash(k, merkle_path[j : j + 32])
    return k


def x_only_key(internal_pub_key: Octets) -> bytes:
    "Return the x-only key of a SEC or x-only public key."
    internal_pub_key = bytes_from_octets(internal_pub_key, (32, 33, 65))
    if len(internal_pub_key) == 32:
        point_from_x_only(internal_pub_key)
        return internal_pub_key
    return point_from_octets(internal_pub_key)[0].to_bytes(32, "big")


def tweak_pub_key(
    x_only: bytes, merkle_root: bytes = b"", ec: Curve = secp256k1
) -> Tuple[bytes, int]:
    "Return the x-only output key, and its y parity, of an x-only internal key."
    t = int.from_bytes(tagged_hash(b"TapTweak", x_only + merkle_root), "big")
    if t >= ec.n:
        raise BTCScriptValueError("invalid script tree hash")  # pragma: no cover
    Q = ec.add(point_from_x_only(x_only, ec), mult(t, ec.G, ec))
    if Q[1] == 0:
        raise BTCScriptValueError("infinity output key")  # pragma: no cover
    return Q[0].to_bytes(ec.p_size, "big"), Q[1] & 1


def output_pubkey(
    internal_pub_key: Octets,
    script_tree: Optional[TaprootScriptTree] = None,
    ec: Curve = secp256k1,
) -> Tuple[bytes, int]:
    "Return the x-only output key, and its y parity, committing to a script tree."
    merkle_root = tree_helper(script_tree)[1] if script_tree else b""
    return tweak_pub_key(x_only_key(internal_pub_key), merkle_root, ec)


def control_block(
    internal_pub_key: Octets, script_tree: TaprootScriptTree, script_num: int
) -> Tuple[bytes, bytes]:
    "Return the (script, control block) pair spending a leaf of the tree."
    x_only = x_only_key(internal_pub_key)
    leaves, merkle_root = tree_helper(script_tree)
    parity = tweak_pub_key(x_only, merkle_root)[1]
    (leaf_version, leaf_script), merkle_path = leaves[script_num]
    return leaf_script, bytes([leaf_version | parity]) + x_only + merkle_path


def check_output_pubkey(
    q: Octets, script: Octets, control: Octets, ec: Curve = secp256k1
) -> bool:
    "Return True if the control block proves that the script is committed in q."
    output_key = bytes_from_octets(q, 32)
    control = bytes_from_octets(control)
    if len(control) > 33 + 32 * TAPROOT_CONTROL_MAX_NODE_COUNT:
        raise BTCScriptValueError("control block too long")
    if len(control) < 33 or (len(control) - 33) % 32:
        raise BTCScriptValueError("invalid control block length")
    k = merkle_root_from_path(script, control[33:], control[0])
    tweaked, parity = tweak_pub_key(control[1:33], k, ec)
    return tweaked == output_key and control[0] & 1 == parity
