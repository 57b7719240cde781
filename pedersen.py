"""
Pedersen commitment scheme and coefficient-wise polynomial commitments.

A commitment to value v with blinding b is C = g^v · h^b, where g and h
are independent generators with unknown discrete-log relation.

- Perfectly hiding: C reveals nothing about v.
- Computationally binding: opening C two ways reveals log_g(h).

For polynomials f (secret) and f' (blinding) of degree t the dealer
publishes C_j = g^{a_j} · h^{b_j}; share (f(i), f'(i)) is checked as

    g^{f(i)} · h^{f'(i)}  ==  prod_j C_j^{i^j}
"""

from __future__ import annotations

import logging
from typing import Tuple

from constants import DEFAULT_GENERATOR_LABEL
from data_models import Commitment, DualShare
from group import SchnorrGroup
from polynomial import Polynomial

logger = logging.getLogger(__name__)


class PedersenCommitter:
    """Holds the public parameters (group, g, h) and computes commitments."""

    def __init__(
        self,
        group: SchnorrGroup | None = None,
        g: int | None = None,
        h: int | None = None,
        label: bytes = DEFAULT_GENERATOR_LABEL,
    ) -> None:
        self.group = group or SchnorrGroup()
        if g is None or h is None:
            g, h = self.group.generators(label)
        if g == h:
            raise ValueError("Generators g and h must be distinct")
        self.g = g
        self.h = h

    @property
    def generators(self) -> Tuple[int, int]:
        return self.g, self.h

    def commit(self, value: int, blinding: int) -> int:
        """C(v, b) = g^v · h^b"""
        return self.group.multi_exp((self.g, self.h), (value, blinding))

    def commit_polynomial(self, poly_value: Polynomial, poly_blind: Polynomial) -> Commitment:
        if poly_value.degree != poly_blind.degree:
            raise ValueError(
                f"Secret and blinding polynomials must share a degree ({poly_value.degree} != {poly_blind.degree})"
            )
        return Commitment(
            tuple(
                self.commit(a, b)
                for a, b in zip(poly_value.coefficients, poly_blind.coefficients)
            )
        )

    def evaluate_commitment(self, commitment: Commitment, index: int) -> int:
        """Homomorphic evaluation prod_j C_j^{index^j}."""
        q = self.group.q
        exponents = []
        power = 1
        for _ in range(len(commitment)):
            exponents.append(power)
            power = (power * index) % q
        return self.group.multi_exp(commitment.elements, exponents)

    def verify_share(self, index: int, value_share: int, blind_share: int, commitment: Commitment) -> bool:
        """Check a dual-share against a dealer's commitment. Never raises on mismatch."""
        if index < 1 or len(commitment) == 0:
            return False
        expected = self.evaluate_commitment(commitment, index)
        return self.commit(value_share, blind_share) == expected

    def verify_dual_share(self, share: DualShare, commitment: Commitment) -> bool:
        return self.verify_share(share.index, share.value, share.blinding, commitment)
