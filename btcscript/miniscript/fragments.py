#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Miniscript policy-expression tree.

Each node corresponds to a Bitcoin Script fragment and has a type
(see btcscript.miniscript.property).
Nodes are immutable: key substitution returns a new tree.

Only the P2SH/P2WSH fragment set is supported (no tapscript multi_a).
"""

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Union

from btcscript.alias import Octets
from btcscript.ecc.sec_point import point_from_octets
from btcscript.exceptions import PolicyParseError
from btcscript.hashes import hash160
from btcscript.miniscript.property import Property, property_from_flags
from btcscript.script.script import Command, serialize
from btcscript.utils import bytes_from_octets

# Threshold for nLockTime: below this value it is interpreted as block number,
# otherwise as UNIX timestamp.
LOCKTIME_THRESHOLD = 500_000_000
MAX_PUBKEYS_PER_MULTISIG = 20


@dataclass(frozen=True)
class PlainPubkey:
    "A key-bearing leaf carrying the full SEC public key."
    key: bytes


@dataclass(frozen=True)
class HashedPubkey:
    "A key-bearing leaf carrying only the HASH160 of the public key."
    hash: bytes


PubkeyOrHash = Union[PlainPubkey, HashedPubkey]
LeafMapping = Callable[[PubkeyOrHash], Optional[PubkeyOrHash]]


class Node:
    """A Miniscript fragment."""

    # the fragment's basic type and type properties
    p: Property
    # all sub fragments, in tree order
    subs: Sequence["Node"] = ()

    @classmethod
    def from_script(cls, script: Octets) -> "Node":
        "Return the miniscript expression encoded by a Bitcoin Script."
        # pylint: disable=import-outside-toplevel
        from btcscript.miniscript.parsing import from_script

        return from_script(script)

    @property
    def _script(self) -> List[Command]:
        raise NotImplementedError

    @property
    def script(self) -> bytes:
        "Return the Bitcoin Script encoding of the expression."
        return serialize(self._script)

    def iter_pubkeys_and_hashes(self) -> Iterator[PubkeyOrHash]:
        "Yield the key-bearing leaves, depth-first and left-to-right."
        for sub in self.subs:
            yield from sub.iter_pubkeys_and_hashes()

    def replace_pubkeys_and_hashes(self, mapping: LeafMapping) -> "Node":
        """Return a new tree with the key-bearing leaves substituted.

        The mapping returns the replacement leaf, or None for no change.
        """
        if not self.subs:
            return self
        return self._with_subs(
            [sub.replace_pubkeys_and_hashes(mapping) for sub in self.subs]
        )

    def _with_subs(self, subs: List["Node"]) -> "Node":
        return type(self)(*subs)  # type: ignore

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return type(self) is type(other) and self.script == other.script

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.script))


def _require(condition: bool, fragment: str, subs: Sequence[Node]) -> None:
    if not condition:
        types = ", ".join(repr(sub.p) for sub in subs)
        raise PolicyParseError(f"invalid sub-expression types for {fragment}: {types}")


class Just0(Node):
    def __init__(self) -> None:
        self.p = Property("Bzud")

    @property
    def _script(self) -> List[Command]:
        return ["OP_0"]

    def __repr__(self) -> str:
        return "0"


class Just1(Node):
    def __init__(self) -> None:
        self.p = Property("Bzu")

    @property
    def _script(self) -> List[Command]:
        return ["OP_1"]

    def __repr__(self) -> str:
        return "1"


class Pk(Node):
    "pk_k(key): push a public key."

    def __init__(self, pubkey: Octets) -> None:
        self.pubkey = bytes_from_octets(pubkey, (33, 65))
        point_from_octets(self.pubkey)
        self.p = Property("Konud")

    @property
    def _script(self) -> List[Command]:
        return [self.pubkey]

    def iter_pubkeys_and_hashes(self) -> Iterator[PubkeyOrHash]:
        yield PlainPubkey(self.pubkey)

    def replace_pubkeys_and_hashes(self, mapping: LeafMapping) -> Node:
        new_leaf = mapping(PlainPubkey(self.pubkey))
        if new_leaf is None:
            return self
        if not isinstance(new_leaf, PlainPubkey):
            raise PolicyParseError("a public key can only be replaced by a public key")
        return Pk(new_leaf.key)

    def __repr__(self) -> str:
        return f"pk_k({self.pubkey.hex()})"


class Pkh(Node):
    "pk_h(key): check that the public key on the stack hashes to the given hash."

    def __init__(self, pubkey_hash: Octets) -> None:
        self.pubkey_hash = bytes_from_octets(pubkey_hash, 20)
        self.p = Property("Knud")

    @property
    def _script(self) -> List[Command]:
        return ["OP_DUP", "OP_HASH160", self.pubkey_hash, "OP_EQUALVERIFY"]

    def iter_pubkeys_and_hashes(self) -> Iterator[PubkeyOrHash]:
        yield HashedPubkey(self.pubkey_hash)

    def replace_pubkeys_and_hashes(self, mapping: LeafMapping) -> Node:
        new_leaf = mapping(HashedPubkey(self.pubkey_hash))
        if new_leaf is None:
            return self
        if isinstance(new_leaf, PlainPubkey):
            return Pkh(hash160(new_leaf.key))
        return Pkh(new_leaf.hash)

    def __repr__(self) -> str:
        return f"pk_h({self.pubkey_hash.hex()})"


class _Timelock(Node):
    op_code = ""
    name = ""

    def __init__(self, value: int) -> None:
        if not 0 < value < 2 ** 31:
            raise PolicyParseError(f"{self.name} value out of range: {value}")
        self.value = value
        self.p = Property("Bz")

    @property
    def _script(self) -> List[Command]:
        return [self.value, self.op_code]

    def __repr__(self) -> str:
        return f"{self.name}({self.value})"


class Older(_Timelock):
    op_code = "OP_CHECKSEQUENCEVERIFY"
    name = "older"


class After(_Timelock):
    op_code = "OP_CHECKLOCKTIMEVERIFY"
    name = "after"


class _HashLock(Node):
    op_code = ""
    name = ""
    size = 32

    def __init__(self, digest: Octets) -> None:
        self.digest = bytes_from_octets(digest, self.size)
        self.p = Property("Bonud")

    @property
    def _script(self) -> List[Command]:
        return ["OP_SIZE", 32, "OP_EQUALVERIFY", self.op_code, self.digest, "OP_EQUAL"]

    def __repr__(self) -> str:
        return f"{self.name}({self.digest.hex()})"


class Sha256(_HashLock):
    op_code = "OP_SHA256"
    name = "sha256"


class Hash256(_HashLock):
    op_code = "OP_HASH256"
    name = "hash256"


class Ripemd160(_HashLock):
    op_code = "OP_RIPEMD160"
    name = "ripemd160"
    size = 20


class Hash160(_HashLock):
    op_code = "OP_HASH160"
    name = "hash160"
    size = 20


class Multi(Node):
    "multi(k, key_1, ..., key_n): k-of-n CHECKMULTISIG."

    def __init__(self, k: int, pubkeys: Sequence[Octets]) -> None:
        if not 1 <= k <= len(pubkeys) <= MAX_PUBKEYS_PER_MULTISIG:
            raise PolicyParseError(f"invalid multi threshold: {k}-of-{len(pubkeys)}")
        self.k = k
        self.pubkeys = [Pk(pubkey).pubkey for pubkey in pubkeys]
        self.p = Property("Bnud")

    @property
    def _script(self) -> List[Command]:
        return [self.k, *self.pubkeys, len(self.pubkeys), "OP_CHECKMULTISIG"]

    def iter_pubkeys_and_hashes(self) -> Iterator[PubkeyOrHash]:
        for pubkey in self.pubkeys:
            yield PlainPubkey(pubkey)

    def replace_pubkeys_and_hashes(self, mapping: LeafMapping) -> Node:
        pks = [Pk(key).replace_pubkeys_and_hashes(mapping) for key in self.pubkeys]
        return Multi(self.k, [pk.pubkey for pk in pks])  # type: ignore

    def __repr__(self) -> str:
        return f"multi({','.join([str(self.k)] + [k.hex() for k in self.pubkeys])})"


class AndV(Node):
    "and_v(X, Y): [X] [Y]"

    def __init__(self, sub_x: Node, sub_y: Node) -> None:
        x, y = sub_x.p, sub_y.p
        _require(x.V and y.has_any("BKV"), "and_v", (sub_x, sub_y))
        self.subs = [sub_x, sub_y]
        self.p = property_from_flags(
            y.base,
            z=x.z and y.z,
            o=(x.z and y.o) or (x.o and y.z),
            n=x.n or (x.z and y.n),
            u=y.u,
        )

    @property
    def _script(self) -> List[Command]:
        return self.subs[0]._script + self.subs[1]._script

    def __repr__(self) -> str:
        return f"and_v({self.subs[0]},{self.subs[1]})"


class AndB(Node):
    "and_b(X, Y): [X] [Y] BOOLAND"

    def __init__(self, sub_x: Node, sub_y: Node) -> None:
        x, y = sub_x.p, sub_y.p
        _require(x.B and y.W, "and_b", (sub_x, sub_y))
        self.subs = [sub_x, sub_y]
        self.p = property_from_flags(
            "B",
            z=x.z and y.z,
            o=(x.z and y.o) or (x.o and y.z),
            n=x.n or (x.z and y.n),
            d=x.d and y.d,
            u=True,
        )

    @property
    def _script(self) -> List[Command]:
        return self.subs[0]._script + self.subs[1]._script + ["OP_BOOLAND"]

    def __repr__(self) -> str:
        return f"and_b({self.subs[0]},{self.subs[1]})"


class OrB(Node):
    "or_b(X, Z): [X] [Z] BOOLOR"

    def __init__(self, sub_x: Node, sub_z: Node) -> None:
        x, z = sub_x.p, sub_z.p
        _require(x.has_all("Bd") and z.has_all("Wd"), "or_b", (sub_x, sub_z))
        self.subs = [sub_x, sub_z]
        self.p = property_from_flags(
            "B",
            z=x.z and z.z,
            o=(x.z and z.o) or (x.o and z.z),
            d=True,
            u=True,
        )

    @property
    def _script(self) -> List[Command]:
        return self.subs[0]._script + self.subs[1]._script + ["OP_BOOLOR"]

    def __repr__(self) -> str:
        return f"or_b({self.subs[0]},{self.subs[1]})"


class OrC(Node):
    "or_c(X, Z): [X] NOTIF [Z] ENDIF"

    def __init__(self, sub_x: Node, sub_z: Node) -> None:
        x, z = sub_x.p, sub_z.p
        _require(x.has_all("Bdu") and z.V, "or_c", (sub_x, sub_z))
        self.subs = [sub_x, sub_z]
        self.p = property_from_flags("V", z=x.z and z.z, o=x.o and z.z)

    @property
    def _script(self) -> List[Command]:
        x, z = self.subs
        return x._script + ["OP_NOTIF"] + z._script + ["OP_ENDIF"]

    def __repr__(self) -> str:
        return f"or_c({self.subs[0]},{self.subs[1]})"


class OrD(Node):
    "or_d(X, Z): [X] IFDUP NOTIF [Z] ENDIF"

    def __init__(self, sub_x: Node, sub_z: Node) -> None:
        x, z = sub_x.p, sub_z.p
        _require(x.has_all("Bdu") and z.B, "or_d", (sub_x, sub_z))
        self.subs = [sub_x, sub_z]
        self.p = property_from_flags(
            "B", z=x.z and z.z, o=x.o and z.z, d=z.d, u=z.u
        )

    @property
    def _script(self) -> List[Command]:
        x, z = self.subs
        return x._script + ["OP_IFDUP", "OP_NOTIF"] + z._script + ["OP_ENDIF"]

    def __repr__(self) -> str:
        return f"or_d({self.subs[0]},{self.subs[1]})"


class OrI(Node):
    "or_i(X, Z): IF [X] ELSE [Z] ENDIF"

    def __init__(self, sub_x: Node, sub_z: Node) -> None:
        x, z = sub_x.p, sub_z.p
        _require(
            x.base == z.base and x.has_any("BKV"), type(self).__name__, (sub_x, sub_z)
        )
        self.subs = [sub_x, sub_z]
        self.p = property_from_flags(
            x.base, o=x.z and z.z, u=x.u and z.u, d=x.d or z.d
        )

    @property
    def _script(self) -> List[Command]:
        x, z = self.subs
        return ["OP_IF"] + x._script + ["OP_ELSE"] + z._script + ["OP_ENDIF"]

    def __repr__(self) -> str:
        return f"or_i({self.subs[0]},{self.subs[1]})"


class AndOr(Node):
    "andor(X, Y, Z): [X] NOTIF [Z] ELSE [Y] ENDIF"

    def __init__(self, sub_x: Node, sub_y: Node, sub_z: Node) -> None:
        x, y, z = sub_x.p, sub_y.p, sub_z.p
        _require(
            x.has_all("Bdu") and y.base == z.base and y.has_any("BKV"),
            "andor",
            (sub_x, sub_y, sub_z),
        )
        self.subs = [sub_x, sub_y, sub_z]
        self.p = property_from_flags(
            y.base,
            z=x.z and y.z and z.z,
            o=(x.z and y.o and z.o) or (x.o and y.z and z.z),
            u=y.u and z.u,
            d=z.d,
        )

    @property
    def _script(self) -> List[Command]:
        x, y, z = self.subs
        script = x._script + ["OP_NOTIF"] + z._script
        return script + ["OP_ELSE"] + y._script + ["OP_ENDIF"]

    def __repr__(self) -> str:
        return f"andor({self.subs[0]},{self.subs[1]},{self.subs[2]})"


class AndN(AndOr):
    "and_n(X, Y) = andor(X, Y, 0)"

    def __init__(self, sub_x: Node, sub_y: Node) -> None:
        super().__init__(sub_x, sub_y, Just0())

    def _with_subs(self, subs: List[Node]) -> Node:
        return AndN(subs[0], subs[1])

    def __repr__(self) -> str:
        return f"and_n({self.subs[0]},{self.subs[1]})"


class Thresh(Node):
    "thresh(k, X_1, ..., X_n): [X_1] ([X_i] ADD)* k EQUAL"

    def __init__(self, k: int, subs: Sequence[Node]) -> None:
        if not 1 <= k <= len(subs):
            raise PolicyParseError(f"invalid thresh threshold: {k}-of-{len(subs)}")
        _require(
            subs[0].p.has_all("Bdu") and all(sub.p.has_all("Wdu") for sub in subs[1:]),
            "thresh",
            subs,
        )
        self.k = k
        self.subs = list(subs)
        n_z = sum(sub.p.z for sub in subs)
        n_o = sum(sub.p.o for sub in subs)
        self.p = property_from_flags(
            "B", z=n_z == len(subs), o=n_z == len(subs) - 1 and n_o == 1, d=True, u=True
        )

    @property
    def _script(self) -> List[Command]:
        script = self.subs[0]._script
        for sub in self.subs[1:]:
            script = script + sub._script + ["OP_ADD"]
        return script + [self.k, "OP_EQUAL"]

    def _with_subs(self, subs: List[Node]) -> Node:
        return Thresh(self.k, subs)

    def __repr__(self) -> str:
        return f"thresh({','.join([str(self.k)] + [str(sub) for sub in self.subs])})"


class WrapA(Node):
    "a:X = TOALTSTACK [X] FROMALTSTACK"

    def __init__(self, sub: Node) -> None:
        _require(sub.p.B, "a:", (sub,))
        self.subs = [sub]
        self.p = property_from_flags("W", d=sub.p.d, u=sub.p.u)

    @property
    def _script(self) -> List[Command]:
        return ["OP_TOALTSTACK"] + self.subs[0]._script + ["OP_FROMALTSTACK"]

    def __repr__(self) -> str:
        return f"a:{self.subs[0]}"


class WrapS(Node):
    "s:X = SWAP [X]"

    def __init__(self, sub: Node) -> None:
        _require(sub.p.has_all("Bo"), "s:", (sub,))
        self.subs = [sub]
        self.p = property_from_flags("W", d=sub.p.d, u=sub.p.u)

    @property
    def _script(self) -> List[Command]:
        return ["OP_SWAP"] + self.subs[0]._script

    def __repr__(self) -> str:
        return f"s:{self.subs[0]}"


class WrapC(Node):
    "c:X = [X] CHECKSIG"

    def __init__(self, sub: Node) -> None:
        _require(sub.p.K, "c:", (sub,))
        self.subs = [sub]
        self.p = property_from_flags("B", o=sub.p.o, n=sub.p.n, d=sub.p.d, u=True)

    @property
    def _script(self) -> List[Command]:
        return self.subs[0]._script + ["OP_CHECKSIG"]

    def __repr__(self) -> str:
        return f"c:{self.subs[0]}"


class WrapT(AndV):
    "t:X = and_v(X, 1)"

    def __init__(self, sub: Node) -> None:
        super().__init__(sub, Just1())

    def _with_subs(self, subs: List[Node]) -> Node:
        return WrapT(subs[0])

    def __repr__(self) -> str:
        return f"t:{self.subs[0]}"


class WrapD(Node):
    "d:X = DUP IF [X] ENDIF"

    def __init__(self, sub: Node) -> None:
        _require(sub.p.has_all("Vz"), "d:", (sub,))
        self.subs = [sub]
        self.p = property_from_flags("B", o=True, n=True, d=True)

    @property
    def _script(self) -> List[Command]:
        return ["OP_DUP", "OP_IF"] + self.subs[0]._script + ["OP_ENDIF"]

    def __repr__(self) -> str:
        return f"d:{self.subs[0]}"


class WrapV(Node):
    "v:X = [X] VERIFY (or VERIFY version of last opcode)"

    def __init__(self, sub: Node) -> None:
        _require(sub.p.B, "v:", (sub,))
        self.subs = [sub]
        self.p = property_from_flags("V", z=sub.p.z, o=sub.p.o, n=sub.p.n)

    @property
    def _script(self) -> List[Command]:
        script = self.subs[0]._script
        last = script[-1]
        if last in ("OP_CHECKSIG", "OP_CHECKMULTISIG", "OP_EQUAL"):
            return script[:-1] + [f"{last}VERIFY"]
        return script + ["OP_VERIFY"]

    def __repr__(self) -> str:
        return f"v:{self.subs[0]}"


class WrapJ(Node):
    "j:X = SIZE 0NOTEQUAL IF [X] ENDIF"

    def __init__(self, sub: Node) -> None:
        _require(sub.p.has_all("Bn"), "j:", (sub,))
        self.subs = [sub]
        self.p = property_from_flags("B", o=sub.p.o, n=True, d=True, u=sub.p.u)

    @property
    def _script(self) -> List[Command]:
        script = ["OP_SIZE", "OP_0NOTEQUAL", "OP_IF"] + self.subs[0]._script
        return script + ["OP_ENDIF"]

    def __repr__(self) -> str:
        return f"j:{self.subs[0]}"


class WrapN(Node):
    "n:X = [X] 0NOTEQUAL"

    def __init__(self, sub: Node) -> None:
        _require(sub.p.B, "n:", (sub,))
        self.subs = [sub]
        p = sub.p
        self.p = property_from_flags("B", z=p.z, o=p.o, n=p.n, d=p.d, u=True)

    @property
    def _script(self) -> List[Command]:
        return self.subs[0]._script + ["OP_0NOTEQUAL"]

    def __repr__(self) -> str:
        return f"n:{self.subs[0]}"


class WrapL(OrI):
    "l:X = or_i(0, X)"

    def __init__(self, sub: Node) -> None:
        super().__init__(Just0(), sub)

    def _with_subs(self, subs: List[Node]) -> Node:
        return WrapL(subs[1])

    def __repr__(self) -> str:
        return f"l:{self.subs[1]}"


class WrapU(OrI):
    "u:X = or_i(X, 0)"

    def __init__(self, sub: Node) -> None:
        super().__init__(sub, Just0())

    def _with_subs(self, subs: List[Node]) -> Node:
        return WrapU(subs[0])

    def __repr__(self) -> str:
        return f"u:{self.subs[0]}"
