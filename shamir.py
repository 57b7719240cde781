"""
Shamir's Secret Sharing
Split a secret into n shares where any t+1 reconstruct it and any t
or fewer reveal nothing about it.

This is the trusted-dealer primitive the Pedersen schemes are built on:
Pedersen VSS runs two of these polynomials side by side, and DVSS sums
n of them.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

from constants import GROUP_ORDER
from data_models import Share
from errors import InvalidDegree
from polynomial import Polynomial, generate, interpolate

logger = logging.getLogger(__name__)


def split_with_polynomial(
    secret: int, n: int, t: int, rng, modulus: int = GROUP_ORDER
) -> Tuple[List[Share], Polynomial]:
    """Split ``secret`` and also return the dealer's polynomial."""
    if n < 1:
        raise ValueError(f"Number of shares must be positive, got {n}")
    if not 0 <= t < n:
        raise InvalidDegree(t, n)

    # f(x) = secret + a1*x + ... + at*x^t, f(0) = secret
    poly = generate(secret, t, rng, n=n, modulus=modulus)
    shares = [Share(index=i, value=poly.evaluate(i)) for i in range(1, n + 1)]
    logger.debug("Split secret into %d shares with threshold t=%d", n, t)
    return shares, poly


def split(secret: int, n: int, t: int, rng, modulus: int = GROUP_ORDER) -> List[Share]:
    """
    Split a secret into shares using Shamir's Secret Sharing.

    Args:
        secret: The secret, an element of Z_modulus.
        n: Total shares to generate; indices are 1..n.
        t: Degree of the polynomial; t+1 shares reconstruct.
        rng: Randomness source providing ``random_scalar(modulus)``.

    Returns:
        List of n Share objects, ordered by index.

    Raises:
        InvalidDegree: If t < 0 or t >= n.
    """
    shares, _ = split_with_polynomial(secret, n, t, rng, modulus)
    return shares


def reconstruct(shares: Iterable[Share], t: int, modulus: int = GROUP_ORDER) -> int:
    """
    Reconstruct a secret from t+1 or more shares using Lagrange interpolation.

    Raises:
        InsufficientShares: If fewer than t+1 shares are given.
        DuplicateIndex: If two shares carry the same index.
    """
    return interpolate(shares, t, modulus)
