"""Polynomial engine over the scalar field Z_q.

A degree-t polynomial f(x) = a_0 + a_1·x + ... + a_t·x^t carries the
secret in a_0; shares are f(1), ..., f(n) and any t+1 of them recover
a_0 by Lagrange interpolation at 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from constants import GROUP_ORDER
from errors import DuplicateIndex, InsufficientShares, InvalidDegree

Point = Tuple[int, int]


@dataclass(frozen=True)
class Polynomial:
    coefficients: Tuple[int, ...]
    modulus: int = GROUP_ORDER

    def __post_init__(self) -> None:
        if not self.coefficients:
            raise InvalidDegree(-1)

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    @property
    def constant(self) -> int:
        return self.coefficients[0]

    def evaluate(self, x: int) -> int:
        """Horner evaluation at a share index. x = 0 is reserved for the secret."""
        if x < 1:
            raise ValueError(f"Evaluation point must be a positive index, got {x}")
        result = 0
        for coeff in reversed(self.coefficients):
            result = (result * x + coeff) % self.modulus
        return result

    def __add__(self, other: "Polynomial") -> "Polynomial":
        if not isinstance(other, Polynomial):
            return NotImplemented
        if other.modulus != self.modulus or other.degree != self.degree:
            raise ValueError("Can only add polynomials of equal degree over the same field")
        return Polynomial(
            tuple((a + b) % self.modulus for a, b in zip(self.coefficients, other.coefficients)),
            self.modulus,
        )


def generate(secret: int, degree: int, rng, n: int | None = None, modulus: int = GROUP_ORDER) -> Polynomial:
    """生成随机多项式 / Random degree-``degree`` polynomial with f(0) = secret.

    Raises:
        InvalidDegree: degree < 0, or degree >= n when n is given.
    """
    if degree < 0 or (n is not None and degree >= n):
        raise InvalidDegree(degree, n)
    coefficients = [secret % modulus] + [rng.random_scalar(modulus) for _ in range(degree)]
    return Polynomial(tuple(coefficients), modulus)


def _as_points(points: Iterable, modulus: int = GROUP_ORDER) -> List[Point]:
    """Normalize (index, value) pairs or share objects; indices are compared mod ``modulus``."""
    result: List[Point] = []
    seen = set()
    for point in points:
        if isinstance(point, tuple):
            index, value = point
        else:
            index, value = point.index, point.value
        reduced = index % modulus
        if reduced == 0:
            raise ValueError(f"Index {index} is the secret position modulo the field order")
        if reduced in seen:
            raise DuplicateIndex(index)
        seen.add(reduced)
        result.append((reduced, value))
    return result


def lagrange_basis(indices: Sequence[int], i: int, modulus: int = GROUP_ORDER, x: int = 0) -> int:
    """Lagrange basis polynomial for index ``i`` evaluated at ``x``."""
    numerator = 1
    denominator = 1
    for j in indices:
        if j == i:
            continue
        numerator = (numerator * (x - j)) % modulus
        denominator = (denominator * (i - j)) % modulus
    return (numerator * pow(denominator, modulus - 2, modulus)) % modulus


def interpolate(points: Iterable, threshold: int, modulus: int = GROUP_ORDER, x: int = 0) -> int:
    """拉格朗日插值 / Interpolate the value at ``x`` (the secret when x = 0).

    Args:
        points: (index, value) pairs or share objects with distinct indices.
        threshold: t; at least t+1 points are required.

    Raises:
        DuplicateIndex: two points share an index.
        InsufficientShares: fewer than t+1 points.
    """
    pts = _as_points(points, modulus)
    if len(pts) < threshold + 1:
        raise InsufficientShares(threshold + 1, len(pts))
    indices = [index for index, _ in pts]
    result = 0
    for index, value in pts:
        result = (result + value * lagrange_basis(indices, index, modulus, x)) % modulus
    return result


def interpolate_polynomial(points: Iterable, threshold: int, modulus: int = GROUP_ORDER) -> Polynomial:
    """Recover the whole polynomial of degree len(points) - 1 in coefficient form."""
    pts = _as_points(points, modulus)
    if len(pts) < threshold + 1:
        raise InsufficientShares(threshold + 1, len(pts))
    size = len(pts)
    coefficients = [0] * size
    for i, (xi, yi) in enumerate(pts):
        # basis numerator prod_{j != i} (x - x_j), built up one factor at a time
        basis = [1]
        denominator = 1
        for j, (xj, _) in enumerate(pts):
            if j == i:
                continue
            shifted = [0] + basis
            for k in range(len(basis)):
                shifted[k] = (shifted[k] - xj * basis[k]) % modulus
            basis = shifted
            denominator = (denominator * (xi - xj)) % modulus
        scale = (yi * pow(denominator, modulus - 2, modulus)) % modulus
        for k in range(size):
            coefficients[k] = (coefficients[k] + scale * basis[k]) % modulus
    return Polynomial(tuple(coefficients), modulus)
