"""One interface over the three sharing variants.

``make_scheme`` picks the variant; callers then only use ``split``,
``verify`` and ``reconstruct``. The variants share collaborators, not
base classes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Protocol

import shamir
from data_models import Commitment, DVSSConfig
from group import SchnorrGroup
from pedersen import PedersenCommitter
from pedersen_vss import PedersenVSSDealer
from protocol import DVSSResult, run_dvss
from reconstruction import reconstruct_final
from secure_rng import SecureRandom


class SchemeKind(Enum):
    SHAMIR = "shamir"
    PEDERSEN_VSS = "pedersen-vss"
    PEDERSEN_DVSS = "pedersen-dvss"


@dataclass
class SplitResult:
    """Shares handed out by one ``split`` call plus whatever is public."""

    shares: List
    public: Commitment | None = None
    qual: FrozenSet[int] | None = None


class SecretSharingScheme(Protocol):
    def split(self, secret: int | None = None) -> SplitResult:
        ...

    def verify(self, share, public=None) -> bool:
        ...

    def reconstruct(self, shares: Iterable, public=None) -> int:
        ...


class ShamirScheme:
    """Plain Shamir. Without public data ``verify`` can only check the index range."""

    def __init__(self, config: DVSSConfig, rng=None, group: SchnorrGroup | None = None) -> None:
        self.config = config
        self.rng = rng or SecureRandom("shamir")
        self.modulus = (group or SchnorrGroup()).q

    def split(self, secret: int | None = None) -> SplitResult:
        if secret is None:
            secret = self.rng.random_scalar(self.modulus)
        shares = shamir.split(secret, self.config.n, self.config.t, self.rng, self.modulus)
        return SplitResult(shares=shares)

    def verify(self, share, public=None) -> bool:
        return 1 <= share.index <= self.config.n

    def reconstruct(self, shares: Iterable, public=None) -> int:
        return shamir.reconstruct(shares, self.config.t, self.modulus)


class PedersenVSSScheme:
    """Single trusted dealer with public Pedersen commitments."""

    def __init__(self, config: DVSSConfig, committer: PedersenCommitter, rng=None) -> None:
        self.config = config
        self.committer = committer
        self.rng = rng or SecureRandom("pedersen-vss")

    def split(self, secret: int | None = None) -> SplitResult:
        dealer = PedersenVSSDealer(self.committer, self.config.n, self.config.t, self.rng)
        output = dealer.deal(secret)
        shares = [output.shares[i] for i in self.config.party_ids]
        return SplitResult(shares=shares, public=output.commitment)

    def verify(self, share, public=None) -> bool:
        if public is None:
            return False
        return self.committer.verify_dual_share(share, public)

    def reconstruct(self, shares: Iterable, public=None) -> int:
        if public is None:
            raise ValueError("Pedersen reconstruction needs the dealer's commitment")
        return reconstruct_final(shares, public, self.config.t, self.committer)


class PedersenDVSSScheme:
    """Dealerless: ``split`` runs the whole simulated protocol.

    The joint secret is random by construction, so the ``secret`` argument
    of ``split`` is ignored. The last run is kept on ``last_result``.
    """

    def __init__(
        self,
        config: DVSSConfig,
        committer: PedersenCommitter,
        rng_factory: Callable[[int], object] | None = None,
    ) -> None:
        self.config = config
        self.committer = committer
        self.rng_factory = rng_factory
        self.last_result: DVSSResult | None = None

    def split(self, secret: int | None = None) -> SplitResult:
        result = run_dvss(self.config, group=self.committer.group, rng_factory=self.rng_factory)
        self.last_result = result
        shares = [result.final_shares[pid] for pid in sorted(result.final_shares)]
        return SplitResult(shares=shares, public=result.aggregated_commitment, qual=result.qual)

    def verify(self, share, public=None) -> bool:
        if public is None:
            return False
        return self.committer.verify_dual_share(share, public)

    def reconstruct(self, shares: Iterable, public=None) -> int:
        if public is None:
            if self.last_result is None:
                raise ValueError("No aggregated commitment to reconstruct against")
            public = self.last_result.aggregated_commitment
        return reconstruct_final(shares, public, self.config.t, self.committer)


def make_scheme(
    kind: SchemeKind,
    config: DVSSConfig,
    group: SchnorrGroup | None = None,
    rng=None,
) -> SecretSharingScheme:
    """按类型构造方案 / Build the scheme for ``kind`` on shared public parameters."""
    group = group or SchnorrGroup()
    if kind is SchemeKind.SHAMIR:
        return ShamirScheme(config, rng, group)

    committer = PedersenCommitter(group, label=config.generator_label)
    if kind is SchemeKind.PEDERSEN_VSS:
        return PedersenVSSScheme(config, committer, rng)
    if kind is SchemeKind.PEDERSEN_DVSS:
        rng_factory = None
        if rng is not None:
            rng_factory = lambda pid: rng.derive_child(f"participant-{pid}")  # noqa: E731
        return PedersenDVSSScheme(config, committer, rng_factory)
    raise ValueError(f"Unknown scheme kind {kind!r}")
