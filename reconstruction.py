"""Reconstruction of a jointly generated (or dealt) secret from final shares.

Every presented dual-share is checked against the aggregated commitment
before it is allowed into the interpolation.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from data_models import Commitment, DualShare
from errors import DuplicateIndex, InsufficientShares, VerificationFailed
from group import SchnorrGroup
from pedersen import PedersenCommitter
from polynomial import Polynomial, interpolate, interpolate_polynomial

logger = logging.getLogger(__name__)


def aggregate_commitments(commitments: Sequence[Commitment], group: SchnorrGroup) -> Commitment:
    """按系数相乘 / Coefficient-wise product, the commitment to the summed polynomial."""
    if not commitments:
        raise ValueError("Need at least one commitment to aggregate")
    length = len(commitments[0])
    if any(len(c) != length for c in commitments):
        raise ValueError("All commitments must have the same number of coefficients")
    return Commitment(
        tuple(group.product(c[j] for c in commitments) for j in range(length))
    )


def invalid_share_indices(
    shares: Iterable[DualShare], commitment: Commitment, committer: PedersenCommitter
) -> List[int]:
    return [share.index for share in shares if not committer.verify_dual_share(share, commitment)]


def _unique(shares: Iterable[DualShare], modulus: int) -> List[DualShare]:
    """Reject repeated indices, comparing them as field points modulo ``modulus``."""
    seen = set()
    result = []
    for share in shares:
        reduced = share.index % modulus
        if reduced == 0:
            raise ValueError(f"Share index {share.index} is the secret position modulo the field order")
        if reduced in seen:
            raise DuplicateIndex(share.index)
        seen.add(reduced)
        result.append(share)
    return result


def reconstruct_final(
    shares: Iterable[DualShare],
    aggregated_commitment: Commitment,
    t: int,
    committer: PedersenCommitter,
) -> int:
    """Verify each final dual-share, then interpolate the secret.

    Raises:
        DuplicateIndex: two shares carry the same index (modulo q).
        VerificationFailed: any share does not match ``aggregated_commitment``.
        InsufficientShares: fewer than t+1 shares were presented.
    """
    presented = _unique(shares, committer.group.q)
    bad = invalid_share_indices(presented, aggregated_commitment, committer)
    if bad:
        logger.warning("Rejected final shares at indices %s", bad)
        raise VerificationFailed(bad)
    if len(presented) < t + 1:
        raise InsufficientShares(t + 1, len(presented))
    return interpolate([share.secret_share for share in presented], t, committer.group.q)


def recover_polynomial(shares: Iterable[DualShare], t: int, modulus: int) -> Polynomial:
    """Recover the shared secret polynomial from the first t+1 secret shares.

    Every surplus share must lie on the recovered polynomial.

    Raises:
        VerificationFailed: some surplus shares disagree with the polynomial.
    """
    points = [share.secret_share for share in _unique(shares, modulus)]
    if len(points) < t + 1:
        raise InsufficientShares(t + 1, len(points))
    poly = interpolate_polynomial(points[: t + 1], t, modulus)
    off_curve = [point.index for point in points[t + 1:] if poly.evaluate(point.index) != point.value % modulus]
    if off_curve:
        raise VerificationFailed(off_curve, f"Shares {sorted(off_curve)} do not lie on one degree-{t} polynomial")
    return poly
