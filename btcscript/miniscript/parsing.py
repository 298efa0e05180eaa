#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Miniscript decoding from Bitcoin Script.

The script is first split into its commands, with the VERIFY variants
of CHECKSIG, CHECKMULTISIG, and EQUAL decomposed into the base op_code
followed by OP_VERIFY.
Terminal fragments are then recognized left to right;
finally, wrappers and combinators are reduced repeatedly,
always trying the rightmost position first.

A script is accepted only if it reduces to a single B-typed expression
whose encoding is identical to the input script.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple, Union

from btcscript.alias import Octets
from btcscript.ecc.sec_point import is_pub_key
from btcscript.exceptions import BTCScriptValueError, PolicyParseError
from btcscript.miniscript import fragments
from btcscript.miniscript.fragments import Node
from btcscript.script.script import Command, int_from_op, parse
from btcscript.utils import bytes_from_octets, decode_num

logger = logging.getLogger(__name__)

# script numbers are at most 4 bytes, 5 for locktime values
MAX_NUM_SIZE = 5

Item = Union[Command, Node]

_VERIFY_FUSED = {
    "OP_CHECKSIGVERIFY": "OP_CHECKSIG",
    "OP_CHECKMULTISIGVERIFY": "OP_CHECKMULTISIG",
    "OP_EQUALVERIFY": "OP_EQUAL",
}

_HASH_LOCKS = {
    "OP_SHA256": fragments.Sha256,
    "OP_HASH256": fragments.Hash256,
    "OP_RIPEMD160": fragments.Ripemd160,
    "OP_HASH160": fragments.Hash160,
}

_TIME_LOCKS = {
    "OP_CHECKSEQUENCEVERIFY": fragments.Older,
    "OP_CHECKLOCKTIMEVERIFY": fragments.After,
}


def decompose(commands: Sequence[Command]) -> List[Command]:
    "Split the VERIFY op_codes into their base op_code and OP_VERIFY."
    decomposed: List[Command] = []
    for command in commands:
        if isinstance(command, str) and command in _VERIFY_FUSED:
            decomposed += [_VERIFY_FUSED[command], "OP_VERIFY"]
        else:
            decomposed.append(command)
    return decomposed


def stack_item_to_int(item: Item) -> Optional[int]:
    "Return the number pushed by a script command, None if not a number."
    if isinstance(item, fragments.Just0):
        return 0
    if isinstance(item, fragments.Just1):
        return 1
    if isinstance(item, bytes):
        if len(item) > MAX_NUM_SIZE:
            return None
        return decode_num(item)
    if isinstance(item, str):
        try:
            return int_from_op(item)
        except BTCScriptValueError:
            return None
    return None


def _terminal_at(commands: Sequence[Command], i: int) -> Tuple[Optional[Node], int]:
    "Return the terminal fragment starting at i and the number of commands used."

    def at(j: int) -> Optional[Command]:
        return commands[i + j] if i + j < len(commands) else None

    # multi: k <key>... n CHECKMULTISIG
    k = stack_item_to_int(commands[i])
    if k is not None and k > 0:
        keys: List[bytes] = []
        while True:
            cmd = at(1 + len(keys))
            if isinstance(cmd, bytes) and len(cmd) in (33, 65) and is_pub_key(cmd):
                keys.append(cmd)
            else:
                break
        n_cmd = at(1 + len(keys))
        if (
            keys
            and n_cmd is not None
            and stack_item_to_int(n_cmd) == len(keys)
            and at(2 + len(keys)) == "OP_CHECKMULTISIG"
        ):
            return fragments.Multi(k, keys), 3 + len(keys)

    # older/after: n CHECKSEQUENCEVERIFY/CHECKLOCKTIMEVERIFY
    next_cmd = at(1)
    if k is not None and isinstance(next_cmd, str) and next_cmd in _TIME_LOCKS:
        return _TIME_LOCKS[next_cmd](k), 2

    # pk_h: DUP HASH160 <h> EQUAL VERIFY
    pkh_hash = at(2)
    if (
        commands[i] == "OP_DUP"
        and next_cmd == "OP_HASH160"
        and isinstance(pkh_hash, bytes)
        and len(pkh_hash) == 20
        and at(3) == "OP_EQUAL"
        and at(4) == "OP_VERIFY"
    ):
        return fragments.Pkh(pkh_hash), 5

    # hashes: SIZE 32 EQUAL VERIFY <hash op> <h> EQUAL
    hash_op = at(4)
    digest = at(5)
    if (
        commands[i] == "OP_SIZE"
        and next_cmd == b"\x20"
        and at(2) == "OP_EQUAL"
        and at(3) == "OP_VERIFY"
        and isinstance(hash_op, str)
        and hash_op in _HASH_LOCKS
        and isinstance(digest, bytes)
        and len(digest) == _HASH_LOCKS[hash_op].size
        and at(6) == "OP_EQUAL"
    ):
        return _HASH_LOCKS[hash_op](digest), 7

    command = commands[i]
    if isinstance(command, bytes) and len(command) in (33, 65) and is_pub_key(command):
        return fragments.Pk(command), 1
    if command == "OP_0":
        return fragments.Just0(), 1
    if command == "OP_1":
        return fragments.Just1(), 1
    return None, 1


def parse_terminals(commands: Sequence[Command]) -> List[Item]:
    items: List[Item] = []
    i = 0
    while i < len(commands):
        node, size = _terminal_at(commands, i)
        if node is None:
            items.append(commands[i])
        else:
            items.append(node)
        i += size
    return items


def _is_node(item: Optional[Item]) -> bool:
    return isinstance(item, Node)


# each pattern is a sequence of matchers:
# None matches a node, a string matches that exact op_code;
# nodes are passed to the constructor in order
Pattern = Tuple[Sequence[Optional[str]], Callable[..., Node]]

_PATTERNS: List[Pattern] = [
    # longest first
    (
        (None, "OP_NOTIF", None, "OP_ELSE", None, "OP_ENDIF"),
        lambda x, z, y: fragments.AndOr(x, y, z),
    ),
    (("OP_SIZE", "OP_0NOTEQUAL", "OP_IF", None, "OP_ENDIF"), fragments.WrapJ),
    (("OP_IF", None, "OP_ELSE", None, "OP_ENDIF"), fragments.OrI),
    ((None, "OP_IFDUP", "OP_NOTIF", None, "OP_ENDIF"), fragments.OrD),
    (("OP_DUP", "OP_IF", None, "OP_ENDIF"), fragments.WrapD),
    ((None, "OP_NOTIF", None, "OP_ENDIF"), fragments.OrC),
    (("OP_TOALTSTACK", None, "OP_FROMALTSTACK"), fragments.WrapA),
    ((None, None, "OP_BOOLAND"), fragments.AndB),
    ((None, None, "OP_BOOLOR"), fragments.OrB),
    ((None, "OP_CHECKSIG"), fragments.WrapC),
    ((None, "OP_VERIFY"), fragments.WrapV),
    ((None, "OP_0NOTEQUAL"), fragments.WrapN),
    (("OP_SWAP", None), fragments.WrapS),
    ((None, None), fragments.AndV),
]


def _match(
    items: Sequence[Item], i: int, matchers: Sequence[Optional[str]]
) -> Optional[List[Node]]:
    if i + len(matchers) > len(items):
        return None
    nodes: List[Node] = []
    for matcher, item in zip(matchers, items[i:]):
        if matcher is None:
            if not isinstance(item, Node):
                return None
            nodes.append(item)
        elif item != matcher:
            return None
    return nodes


def _thresh_at(items: Sequence[Item], i: int) -> Optional[Tuple[Node, int]]:
    "X_1 (X_i ADD)* k EQUAL"
    if not _is_node(items[i]):
        return None
    subs = [items[i]]
    j = i + 1
    while j + 1 < len(items) and _is_node(items[j]) and items[j + 1] == "OP_ADD":
        subs.append(items[j])
        j += 2
    if j + 1 >= len(items) or items[j + 1] != "OP_EQUAL":
        return None
    k = stack_item_to_int(items[j])
    if k is None:
        return None
    try:
        return fragments.Thresh(k, subs), j + 2 - i  # type: ignore
    except PolicyParseError:
        return None


def _reduce_at(items: Sequence[Item], i: int) -> Optional[Tuple[Node, int]]:
    "Return the reduced node starting at i and the number of items used."
    thresh = _thresh_at(items, i)
    if thresh is not None:
        return thresh
    for matchers, constructor in _PATTERNS:
        nodes = _match(items, i, matchers)
        if nodes is None:
            continue
        try:
            return constructor(*nodes), len(matchers)
        except PolicyParseError:
            # sub-expression types do not fit: try the next pattern
            continue
    return None


def reduce_items(items: List[Item]) -> List[Item]:
    "Reduce wrappers and combinators until no further reduction applies."
    reduced = True
    while reduced:
        reduced = False
        for i in reversed(range(len(items))):
            result = _reduce_at(items, i)
            if result is not None:
                node, size = result
                items[i : i + size] = [node]
                reduced = True
                break
    return items


def from_script(script: Octets) -> Node:
    """Return the miniscript expression encoded by a Bitcoin Script.

    Raise PolicyParseError if the script is not a valid miniscript.
    """

    script = bytes_from_octets(script)
    if not script:
        raise PolicyParseError("empty script")
    try:
        commands = parse(script)
    except BTCScriptValueError as e:
        raise PolicyParseError(f"invalid script: {e}") from e

    items = reduce_items(parse_terminals(decompose(commands)))
    if len(items) != 1 or not isinstance(items[0], Node):
        raise PolicyParseError(f"not a miniscript: {script.hex()}")
    node = items[0]
    if not node.p.B:
        raise PolicyParseError(f"top level expression is not B: {node.p}")
    if node.script != script:
        raise PolicyParseError(f"not a canonical miniscript encoding: {script.hex()}")
    logger.debug("decoded miniscript %s", node)
    return node
