"""Prime-order group arithmetic consumed by the Pedersen commitments.

The secret sharing core only talks to this module through a
``SchnorrGroup`` instance, so another group (an elliptic curve, a
smaller test group) can be swapped in by providing the same methods.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Sequence, Tuple

from constants import DEFAULT_GENERATOR_LABEL, GROUP_ORDER, GROUP_PRIME
from errors import EncodingError


class SchnorrGroup:
    """二次剩余子群 / Quadratic-residue subgroup of Z_p* for a safe prime p = 2q + 1.

    Scalars are ints in [0, q); group elements are ints in [1, p).
    """

    def __init__(self, prime: int = GROUP_PRIME, order: int = GROUP_ORDER) -> None:
        if prime != 2 * order + 1:
            raise ValueError("Group prime must be a safe prime p = 2q + 1")
        self.p = prime
        self.q = order
        self.scalar_width = (order.bit_length() + 7) // 8
        self.element_width = (prime.bit_length() + 7) // 8

    # —— 标量运算 / scalar field Z_q ——

    def reduce(self, value: int) -> int:
        return value % self.q

    def add(self, a: int, b: int) -> int:
        return (a + b) % self.q

    def sub(self, a: int, b: int) -> int:
        return (a - b) % self.q

    def mul(self, a: int, b: int) -> int:
        return (a * b) % self.q

    def neg(self, a: int) -> int:
        return (-a) % self.q

    def inv(self, a: int) -> int:
        a %= self.q
        if a == 0:
            raise ZeroDivisionError("Zero has no inverse in the scalar field")
        # 费马小定理求逆 / Fermat inversion, q is prime
        return pow(a, self.q - 2, self.q)

    def random_scalar(self, rng) -> int:
        return rng.random_scalar(self.q)

    # —— 群运算 / group operations ——

    @property
    def identity(self) -> int:
        return 1

    def is_element(self, x: int) -> bool:
        # 欧拉判别法：x 属于 q 阶子群当且仅当 x^q = 1
        return 0 < x < self.p and pow(x, self.q, self.p) == 1

    def exp(self, base: int, scalar: int) -> int:
        return pow(base, scalar % self.q, self.p)

    def op(self, a: int, b: int) -> int:
        return (a * b) % self.p

    def multi_exp(self, bases: Sequence[int], scalars: Sequence[int]) -> int:
        if len(bases) != len(scalars):
            raise ValueError("bases and scalars must have equal length")
        result = self.identity
        for base, scalar in zip(bases, scalars):
            result = (result * pow(base, scalar % self.q, self.p)) % self.p
        return result

    def product(self, elements: Iterable[int]) -> int:
        result = self.identity
        for element in elements:
            result = (result * element) % self.p
        return result

    def hash_to_element(self, message: bytes) -> int:
        """Map bytes to a subgroup element with unknown discrete log."""
        digest = hashlib.shake_256(message).digest(self.element_width + 16)
        candidate = int.from_bytes(digest, "big") % self.p
        # 平方后落入二次剩余子群
        element = pow(candidate, 2, self.p)
        if element in (0, 1):
            raise ValueError("Degenerate hash-to-group output, choose another label")
        return element

    def generators(self, label: bytes = DEFAULT_GENERATOR_LABEL) -> Tuple[int, int]:
        """NUMS generators g, h derived from ``label``."""
        g = self.hash_to_element(label + b" : g")
        h = self.hash_to_element(label + b" : h")
        return g, h

    # —— 定长编码 / fixed-width encoding ——

    def scalar_to_bytes(self, value: int) -> bytes:
        return (value % self.q).to_bytes(self.scalar_width, "big")

    def scalar_from_bytes(self, data: bytes) -> int:
        if len(data) != self.scalar_width:
            raise EncodingError(f"Scalar encoding must be {self.scalar_width} bytes, got {len(data)}")
        value = int.from_bytes(data, "big")
        if value >= self.q:
            raise EncodingError("Encoded scalar is not reduced modulo q")
        return value

    def element_to_bytes(self, element: int) -> bytes:
        return element.to_bytes(self.element_width, "big")

    def element_from_bytes(self, data: bytes) -> int:
        if len(data) != self.element_width:
            raise EncodingError(f"Element encoding must be {self.element_width} bytes, got {len(data)}")
        element = int.from_bytes(data, "big")
        if not self.is_element(element):
            raise EncodingError("Encoded value is not an element of the prime-order subgroup")
        return element

    def __repr__(self) -> str:
        return f"SchnorrGroup(p_bits={self.p.bit_length()}, q_bits={self.q.bit_length()})"
