#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Output script classification, generation, and hash-verified resolution.

A PubkeyScriptType is the classification of an output script:
the template it matches and the data it commits to
(a public key, a hash, an x-only output key, some null data),
or the whole script for custom (p2s) scripts.

A PubkeyScriptSource holds the content behind those commitments:
a public key instead of its hash, a LockScript instead of its hash,
an internal key and a TapScript instead of the taproot output key.
It can only be obtained by resolve (or from_spend),
verifying that the provided content hashes to the commitment:
a mismatch raises HashMismatchError.

The nesting of scripts is a DAG:

* p2pk, p2s: the output script is (or contains) the LockScript
* p2pkh, p2wpkh: a public key, whose LockScript is <key> OP_CHECKSIG
* p2sh: a RedeemScript, possibly a p2wpkh/p2wsh program itself
* p2wsh: a WitnessScript
* p2tr: an internal key and, for script path spending, a TapScript
* nulldata: unspendable, no LockScript
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from btcscript.alias import Octets
from btcscript.ecc.sec_point import point_from_octets
from btcscript.exceptions import (
    BTCScriptValueError,
    HashMismatchError,
    UnsupportedGenerationError,
)
from btcscript.hashes import hash160, sha256
from btcscript.script import templates
from btcscript.script.script import MAX_PUSH_SIZE, Script, parse, serialize
from btcscript.script.script_types import (
    LockScript,
    PubkeyScript,
    RedeemScript,
    SigScript,
    TapScript,
    WitnessScript,
)
from btcscript.script.taproot import (
    TAPROOT_LEAF_MASK,
    TAPROOT_LEAF_TAPSCRIPT,
    check_output_pubkey,
    merkle_root_from_path,
    tweak_pub_key,
    x_only_key,
)
from btcscript.script.witness import Witness
from btcscript.utils import bytes_from_octets

logger = logging.getLogger(__name__)

ScriptLike = Union[Script, Octets]

# in classification priority order; p2s is the custom fallback
_MATCHERS: List[Tuple[str, Callable[[Octets], bool], Callable[[bytes], bytes]]] = [
    # p2pk [pub_key, OP_CHECKSIG]
    ("p2pk", templates.is_p2pk, lambda s: s[1:-1]),
    # p2pkh [OP_DUP, OP_HASH160, pub_key_hash, OP_EQUALVERIFY, OP_CHECKSIG]
    ("p2pkh", templates.is_p2pkh, lambda s: s[3:-2]),
    # p2sh [OP_HASH160, redeem_script hash, OP_EQUAL]
    ("p2sh", templates.is_p2sh, lambda s: s[2:-1]),
    # p2wpkh [OP_0, pub_key_hash]
    ("p2wpkh", templates.is_p2wpkh, lambda s: s[2:]),
    # p2wsh [OP_0, witness_script hash]
    ("p2wsh", templates.is_p2wsh, lambda s: s[2:]),
    # p2tr [OP_1, x-only output key]
    ("p2tr", templates.is_p2tr, lambda s: s[2:]),
    # nulldata [OP_RETURN, data]
    ("nulldata", templates.is_nulldata, lambda s: _single_push(s[1:])),
]

_GENERATORS: Dict[str, Callable[[bytes], bytes]] = {
    "p2pk": templates.p2pk,
    "p2pkh": templates.p2pkh,
    "p2sh": templates.p2sh,
    "p2wpkh": templates.p2wpkh,
    "p2wsh": templates.p2wsh,
    "p2tr": templates.p2tr,
    "nulldata": templates.nulldata,
    "p2s": lambda payload: payload,
}

_PAYLOAD_SIZES: Dict[str, Tuple[int, ...]] = {
    "p2pk": (33, 65),
    "p2pkh": (20,),
    "p2sh": (20,),
    "p2wpkh": (20,),
    "p2wsh": (32,),
    "p2tr": (32,),
}

SCRIPT_TYPES = tuple(_GENERATORS)


def _script_bytes(script: ScriptLike) -> bytes:
    if isinstance(script, Script):
        return script.script
    return bytes_from_octets(script)


def _single_push(script: bytes) -> bytes:
    data = parse(script)[0]
    return data if isinstance(data, bytes) else b""


def _last_push(script: ScriptLike) -> bytes:
    "Return the data pushed last by a push-only input script."
    commands = parse(_script_bytes(script))
    if not commands:
        raise BTCScriptValueError("empty input script")
    last = commands[-1]
    if last == "OP_0":
        return b""
    if not isinstance(last, bytes):
        raise BTCScriptValueError(f"not a data push: {last}")
    return last


def _check_hash(name: str, expected: bytes, actual: bytes) -> None:
    if expected != actual:
        msg = f"{name} mismatch: {actual.hex()} instead of {expected.hex()}"
        raise HashMismatchError(msg, expected, actual)


@dataclass(frozen=True)
class PubkeyScriptType:
    "The template an output script matches and the data it commits to."

    type: str
    payload: bytes

    def __init__(
        self, type_: str, payload: Octets, check_validity: bool = True
    ) -> None:
        object.__setattr__(self, "type", type_)
        object.__setattr__(self, "payload", bytes_from_octets(payload))
        if check_validity:
            self.assert_valid()

    def assert_valid(self) -> None:
        if self.type not in SCRIPT_TYPES:
            raise BTCScriptValueError(f"unknown script type: {self.type}")
        sizes = _PAYLOAD_SIZES.get(self.type)
        if sizes and len(self.payload) not in sizes:
            err_msg = f"invalid {self.type} payload size: {len(self.payload)}"
            err_msg += f" instead of {sizes}"
            raise BTCScriptValueError(err_msg)
        if self.type == "p2pk":
            point_from_octets(self.payload)
        elif self.type == "nulldata" and len(self.payload) > MAX_PUSH_SIZE:
            err_msg = f"invalid nulldata payload size: {len(self.payload)}"
            raise BTCScriptValueError(err_msg)
        elif self.type == "p2s":
            matched = PubkeyScriptType.from_script(self.payload).type
            if matched != "p2s":
                raise BTCScriptValueError(f"not a custom script: {matched}")

    @classmethod
    def from_script(cls, script: ScriptLike) -> "PubkeyScriptType":
        """Return the classification of an output script.

        Canonical templates are tried in priority order;
        scripts matching none of them are classified as p2s,
        carrying the whole script: classification never fails.
        Bare multi-sig scripts are classified as p2s too.
        """

        script = _script_bytes(script)
        for script_type, is_type, payload_from_script in _MATCHERS:
            if is_type(script):
                return cls(script_type, payload_from_script(script), False)
        return cls("p2s", script, False)

    @property
    def is_custom(self) -> bool:
        return self.type == "p2s"

    def to_pub_key_script(self) -> PubkeyScript:
        "Return the canonical output script for the classification."
        generator = _GENERATORS.get(self.type)
        if generator is None:
            raise UnsupportedGenerationError(
                f"no output script template for type: {self.type}"
            )
        return PubkeyScript(generator(self.payload))


@dataclass(frozen=True)
class PubkeyScriptSource:
    """The content behind the commitments of an output script.

    Depending on the type, only some fields are set:

    * p2pk, p2pkh, p2wpkh: pub_key
    * p2s, p2wsh: lock_script
    * p2sh: lock_script, or nested for a p2wpkh/p2wsh redeem script
    * p2tr: pub_key (the x-only internal key) and, for a script path,
      tap_script, merkle_path, and leaf_version
    * nulldata: data
    """

    type: str
    pub_key: Optional[bytes] = None
    lock_script: Optional[LockScript] = None
    tap_script: Optional[TapScript] = None
    merkle_path: bytes = b""
    leaf_version: int = TAPROOT_LEAF_TAPSCRIPT
    data: Optional[bytes] = None
    nested: Optional["PubkeyScriptSource"] = None

    @classmethod
    def resolve(
        cls,
        spk_type: PubkeyScriptType,
        pre_image: Optional[ScriptLike] = None,
        nested_pre_image: Optional[ScriptLike] = None,
        tap_script: Optional[ScriptLike] = None,
        merkle_path: Octets = b"",
        leaf_version: int = TAPROOT_LEAF_TAPSCRIPT,
    ) -> "PubkeyScriptSource":
        """Return the source of a classification, verifying the pre-image.

        The pre-image is the public key for p2pkh/p2wpkh,
        the redeem script for p2sh, the witness script for p2wsh,
        and the internal key for p2tr;
        it is not needed for p2pk, p2s, and nulldata.
        A p2sh redeem script that is itself a p2wpkh/p2wsh program
        also requires the nested pre-image.
        For p2tr script path spending, tap_script and its merkle path
        must be provided too.

        Raise HashMismatchError if the pre-image does not hash
        to the commitment.
        """

        script_type = spk_type.type
        payload = spk_type.payload
        if script_type == "p2pk":
            return cls(script_type, pub_key=payload)
        if script_type == "nulldata":
            return cls(script_type, data=payload)
        if script_type == "p2s":
            return cls(script_type, lock_script=LockScript(payload))

        if pre_image is None:
            raise BTCScriptValueError(f"missing pre-image for {script_type}")
        pre_image = _script_bytes(pre_image)

        if script_type in ("p2pkh", "p2wpkh"):
            _check_hash("public key hash", payload, hash160(pre_image))
            point_from_octets(pre_image)
            source = cls(script_type, pub_key=pre_image)
        elif script_type == "p2sh":
            _check_hash("redeem script hash", payload, hash160(pre_image))
            nested_type = PubkeyScriptType.from_script(pre_image)
            if nested_type.type in ("p2wpkh", "p2wsh"):
                nested = cls.resolve(nested_type, nested_pre_image)
                source = cls(script_type, nested=nested)
            else:
                source = cls(script_type, lock_script=LockScript(pre_image))
        elif script_type == "p2wsh":
            _check_hash("witness script hash", payload, sha256(pre_image))
            source = cls(script_type, lock_script=LockScript(pre_image))
        elif script_type == "p2tr":
            internal_key = x_only_key(pre_image)
            tap_leaf = None
            if tap_script is not None:
                tap_leaf = TapScript(_script_bytes(tap_script))
            merkle_path = bytes_from_octets(merkle_path)
            source = cls(
                script_type,
                pub_key=internal_key,
                tap_script=tap_leaf,
                merkle_path=merkle_path if tap_leaf else b"",
                leaf_version=leaf_version & TAPROOT_LEAF_MASK,
            )
            _check_hash("taproot output key", payload, source.to_type().payload)
        else:
            raise BTCScriptValueError(f"unknown script type: {script_type}")

        logger.debug("resolved %s output script", script_type)
        return source

    @classmethod
    def from_spend(
        cls,
        pub_key_script: ScriptLike,
        sig_script: Optional[ScriptLike] = None,
        witness: Optional[Witness] = None,
    ) -> "PubkeyScriptSource":
        """Return the source of an output script from the spending input.

        The pre-images are taken from the input script and the witness,
        walking down the p2sh/segwit nesting.
        """

        spk_type = PubkeyScriptType.from_script(pub_key_script)
        script_type = spk_type.type
        stack = witness.stack if witness else []

        if script_type in ("p2pk", "p2s", "nulldata"):
            return cls.resolve(spk_type)
        if script_type == "p2pkh":
            return cls.resolve(spk_type, _last_push(_required(sig_script)))
        if script_type == "p2wpkh":
            return cls.resolve(spk_type, _last_stack_element(stack))
        if script_type == "p2sh":
            s_script = SigScript(_script_bytes(_required(sig_script)))
            redeem = redeem_script(s_script, spk_type.payload)
            nested_pre_image = None
            if PubkeyScriptType.from_script(redeem).type in ("p2wpkh", "p2wsh"):
                nested_pre_image = _last_stack_element(stack)
            return cls.resolve(spk_type, redeem, nested_pre_image)
        if script_type == "p2wsh":
            w_script = witness_script(Witness(stack), spk_type.payload)
            return cls.resolve(spk_type, w_script)
        # p2tr
        internal_key, t_script, control = _tap_leaf(Witness(stack), spk_type.payload)
        return cls.resolve(
            spk_type, internal_key, None, t_script, control[33:], control[0]
        )

    def to_type(self) -> PubkeyScriptType:
        "Return the classification, recomputing the commitments."

        if self.type in ("p2pk", "p2pkh", "p2wpkh"):
            pub_key = self.pub_key or b""
            if self.type == "p2pk":
                return PubkeyScriptType(self.type, pub_key, False)
            return PubkeyScriptType(self.type, hash160(pub_key), False)
        if self.type == "nulldata":
            return PubkeyScriptType(self.type, self.data or b"", False)
        if self.type == "p2sh":
            if self.nested is not None:
                redeem = self.nested.to_pub_key_script().script
            else:
                redeem = self._lock_script_bytes()
            return PubkeyScriptType(self.type, hash160(redeem), False)
        if self.type == "p2wsh":
            return PubkeyScriptType(self.type, sha256(self._lock_script_bytes()), False)
        if self.type == "p2tr":
            merkle_root = b""
            if self.tap_script is not None:
                merkle_root = merkle_root_from_path(
                    self.tap_script.script, self.merkle_path, self.leaf_version
                )
            output_key = tweak_pub_key(self.pub_key or b"", merkle_root)[0]
            return PubkeyScriptType(self.type, output_key, False)
        return PubkeyScriptType(self.type, self._lock_script_bytes(), False)

    def to_pub_key_script(self) -> PubkeyScript:
        return self.to_type().to_pub_key_script()

    def _lock_script_bytes(self) -> bytes:
        return self.lock_script.script if self.lock_script else b""

    def base_lock_script(self) -> LockScript:
        """Return the innermost LockScript.

        Public key (hash) outputs resolve to <key> OP_CHECKSIG;
        p2tr resolves to its TapScript, if script path spending.
        """

        if self.nested is not None:
            return self.nested.base_lock_script()
        if self.lock_script is not None:
            return self.lock_script
        if self.type in ("p2pk", "p2pkh", "p2wpkh") and self.pub_key:
            return LockScript(serialize([self.pub_key, "OP_CHECKSIG"]))
        if self.type == "p2tr":
            if self.tap_script is None:
                raise BTCScriptValueError("key path only: no tap script")
            return LockScript(self.tap_script.script)
        raise BTCScriptValueError(f"no lock script for {self.type}")


def _required(script: Optional[ScriptLike]) -> ScriptLike:
    if script is None:
        raise BTCScriptValueError("missing input script")
    return script


def _last_stack_element(stack: List[bytes]) -> bytes:
    if not stack:
        raise BTCScriptValueError("empty witness")
    return stack[-1]


def redeem_script(sig_script: SigScript, script_hash: Octets) -> RedeemScript:
    """Return the RedeemScript pushed last by a p2sh input script.

    Raise HashMismatchError if it does not hash to the script hash.
    """

    script_hash = bytes_from_octets(script_hash, 20)
    redeem = _last_push(sig_script)
    _check_hash("redeem script hash", script_hash, hash160(redeem))
    return RedeemScript(redeem)


def witness_script(witness: Witness, wscript_hash: Octets) -> WitnessScript:
    """Return the WitnessScript, last element of a p2wsh witness.

    Raise HashMismatchError if its sha256 is not the witness script hash.
    """

    wscript_hash = bytes_from_octets(wscript_hash, 32)
    w_script = _last_stack_element(witness.stack)
    _check_hash("witness script hash", wscript_hash, sha256(w_script))
    return WitnessScript(w_script)


def _tap_leaf(witness: Witness, output_key: Octets) -> Tuple[bytes, TapScript, bytes]:
    output_key = bytes_from_octets(output_key, 32)
    # the annex is not part of the script path spending data
    stack = witness.stack_without_annex()
    if len(stack) < 2:
        raise BTCScriptValueError("key path spending: no tap script")
    script, control = stack[-2], stack[-1]
    if not check_output_pubkey(output_key, script, control):
        tap_root = merkle_root_from_path(script, control[33:], control[0])
        actual = tweak_pub_key(control[1:33], tap_root)[0]
        if actual == output_key:
            raise BTCScriptValueError("invalid control block parity")
        raise HashMismatchError("taproot commitment mismatch", output_key, actual)
    return control[1:33], TapScript(script), control


def tap_script(witness: Witness, output_key: Octets) -> Tuple[bytes, TapScript]:
    """Return the internal key and the TapScript of a script path spending.

    Raise HashMismatchError if the control block does not prove
    that the script is committed to in the output key.
    """

    internal_key, t_script, _ = _tap_leaf(witness, output_key)
    return internal_key, t_script
