#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Elliptic curve group of prime order.

Only what is needed to validate public keys and to tweak taproot
output keys: affine group law and scalar multiplication
on a short Weierstrass curve y^2 = x^3 + a*x + b over Fp.
"""

from typing import Optional

from btcscript.alias import INF, Point
from btcscript.exceptions import BTCScriptValueError


def _is_inf(Q: Point) -> bool:
    # y is never zero on a prime order curve: (x, 0) is the infinity point
    return Q[1] == 0


class Curve:
    """Elliptic curve group of prime order n, generated by G."""

    def __init__(self, p: int, a: int, b: int, G: Point, n: int) -> None:
        # Fermat probabilistic primality test
        if p < 3 or not p & 1 or pow(2, p - 1, p) != 1:
            raise BTCScriptValueError(f"p is not prime: {hex(p)}")
        self.p = p
        self.p_size = (p.bit_length() + 7) // 8
        self._a = a % p
        self._b = b % p
        if (4 * pow(self._a, 3, p) + 27 * pow(self._b, 2, p)) % p == 0:
            raise BTCScriptValueError("zero discriminant")
        self.n = n
        self.G = G
        self.require_on_curve(G)

    def __repr__(self) -> str:
        return f"Curve({hex(self.p)}, {self._a}, {self._b})"

    def negate(self, Q: Point) -> Point:
        "Return the opposite point."
        return Q if _is_inf(Q) else (Q[0], self.p - Q[1])

    def add(self, Q1: Point, Q2: Point) -> Point:
        "Return the sum of two points, checking that they are on the curve."
        self.require_on_curve(Q1)
        self.require_on_curve(Q2)
        return self.add_aff(Q1, Q2)

    def add_aff(self, Q: Point, R: Point) -> Point:
        "Return the sum of two points assumed to be on the curve."
        if _is_inf(Q):
            return R
        if _is_inf(R):
            return Q
        p = self.p
        if Q[0] != R[0]:
            slope = (R[1] - Q[1]) * pow(R[0] - Q[0], -1, p)
        elif Q[1] == R[1]:
            slope = (3 * Q[0] * Q[0] + self._a) * pow(2 * Q[1], -1, p)
        else:
            return INF
        x = (slope * slope - Q[0] - R[0]) % p
        return x, (slope * (Q[0] - x) - Q[1]) % p

    def _rhs(self, x: int) -> int:
        "Return x^3 + a*x + b mod p, the square of y if x is valid."
        return (pow(x, 3, self.p) + self._a * x + self._b) % self.p

    def y(self, x: int) -> int:
        "Return one of the two y-coordinates associated to x."
        if not 0 <= x < self.p:
            raise BTCScriptValueError(f"x-coordinate not in 0..p-1: {hex(x)}")
        y2 = self._rhs(x)
        # square root for p = 3 mod 4
        root = pow(y2, (self.p + 1) // 4, self.p)
        if pow(root, 2, self.p) != y2:
            raise BTCScriptValueError(f"invalid x-coordinate: {hex(x)}")
        return root

    def y_even(self, x: int) -> int:
        "Return the even y-coordinate associated to x."
        root = self.y(x)
        return root if root % 2 == 0 else self.p - root

    def is_on_curve(self, Q: Point) -> bool:
        if len(Q) != 2:
            raise BTCScriptValueError("point must be a tuple[int, int]")
        if _is_inf(Q):
            return True
        if not 0 < Q[1] < self.p:
            raise BTCScriptValueError(f"y-coordinate not in 1..p-1: {hex(Q[1])}")
        return self._rhs(Q[0]) == pow(Q[1], 2, self.p)

    def require_on_curve(self, Q: Point) -> None:
        "Raise BTCScriptValueError if the point is not on the curve."
        if not self.is_on_curve(Q):
            raise BTCScriptValueError("point not on curve")


def mult(m: int, Q: Optional[Point] = None, ec: Optional[Curve] = None) -> Point:
    """Scalar multiplication of a curve point, G by default.

    Right-to-left double-and-add on affine coordinates.
    """

    ec = secp256k1 if ec is None else ec
    Q = ec.G if Q is None else Q
    ec.require_on_curve(Q)
    R = INF
    for bit in bin(m % ec.n)[:1:-1]:
        if bit == "1":
            R = ec.add_aff(R, Q)
        Q = ec.add_aff(Q, Q)
    return R


secp256k1 = Curve(
    0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F,
    0,
    7,
    (
        0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
        0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
    ),
    0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
)
