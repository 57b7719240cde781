"""Pedersen verifiable secret sharing with a single dealer.

The dealer shares secret s with polynomial f (f(0) = s) and blinding
polynomial f' (random constant), publishes C_j = g^{a_j} · h^{b_j} and
privately sends (f(i), f'(i)) to party i. Party i checks its dual-share
against the commitment and complains on mismatch; the dealer answers
each complaint by broadcasting the disputed dual-share in the clear.

Per instance: DISTRIBUTING -> VERIFYING -> RESOLVED | DISQUALIFIED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Mapping

from data_models import Commitment, ComplaintLedger, ComplaintResponse, DualShare
from errors import ComplaintUnresolved, Disqualified, InvalidDegree, InvalidPhaseTransition
from pedersen import PedersenCommitter
from polynomial import generate

logger = logging.getLogger(__name__)


class VSSState(Enum):
    DISTRIBUTING = "distributing"
    VERIFYING = "verifying"
    RESOLVED = "resolved"
    DISQUALIFIED = "disqualified"


@dataclass
class DealerOutput:
    secret: int
    blinding: int
    commitment: Commitment
    shares: Dict[int, DualShare]


class PedersenVSSDealer:
    """分发者 / Dealer side: owns both polynomials, never shares them."""

    def __init__(self, committer: PedersenCommitter, n: int, t: int, rng, dealer_id: int = 0) -> None:
        if not 0 <= t < n:
            raise InvalidDegree(t, n)
        self.committer = committer
        self.n = n
        self.t = t
        self.rng = rng
        self.dealer_id = dealer_id
        self.output: DealerOutput | None = None

    def deal(self, secret: int | None = None, blinding: int | None = None) -> DealerOutput:
        """Generate f, f', the commitment and every party's dual-share.

        A missing secret or blinding constant is drawn uniformly at random.
        """
        q = self.committer.group.q
        if secret is None:
            secret = self.rng.random_scalar(q)
        if blinding is None:
            blinding = self.rng.random_scalar(q)

        f = generate(secret, self.t, self.rng, n=self.n, modulus=q)
        f_blind = generate(blinding, self.t, self.rng, n=self.n, modulus=q)
        commitment = self.committer.commit_polynomial(f, f_blind)
        shares = {
            i: DualShare(index=i, value=f.evaluate(i), blinding=f_blind.evaluate(i))
            for i in range(1, self.n + 1)
        }
        self.output = DealerOutput(f.constant, f_blind.constant, commitment, shares)
        logger.debug("Dealer %d committed to %d coefficients", self.dealer_id, len(commitment))
        return self.output

    def share_for(self, index: int) -> DualShare:
        if self.output is None:
            raise InvalidPhaseTransition("undealt", "hand out a share")
        return self.output.shares[index]

    def answer_complaint(self, accuser_id: int) -> ComplaintResponse:
        """Reveal the disputed dual-share. Safe: one share (<= t) leaks nothing."""
        return ComplaintResponse(
            dealer_id=self.dealer_id,
            accuser_id=accuser_id,
            share=self.share_for(accuser_id),
        )


class PedersenVSSInstance:
    """Public view of one dealer's sharing, identical at every honest party.

    Complaints go into an append-only ledger (optionally shared across
    instances) and are resolved in one step once the complaint window
    closes.
    """

    def __init__(
        self,
        dealer_id: int,
        n: int,
        t: int,
        committer: PedersenCommitter,
        max_complaints: int | None = None,
        ledger: ComplaintLedger | None = None,
    ) -> None:
        self.dealer_id = dealer_id
        self.n = n
        self.t = t
        self.committer = committer
        self.max_complaints = t if max_complaints is None else max_complaints
        self.ledger = ledger if ledger is not None else ComplaintLedger()
        self.state = VSSState.DISTRIBUTING
        self.commitment: Commitment | None = None
        self.revealed_shares: Dict[int, DualShare] = {}
        self.disqualification: Disqualified | None = None

    def _require(self, *states: VSSState, action: str) -> None:
        if self.state not in states:
            raise InvalidPhaseTransition(self.state, action)

    @property
    def accusers(self) -> FrozenSet[int]:
        return self.ledger.accusers(self.dealer_id)

    def publish_commitment(self, commitment: Commitment) -> None:
        self._require(VSSState.DISTRIBUTING, action="publish a commitment")
        if self.commitment is not None:
            raise InvalidPhaseTransition(self.state, "publish a second commitment")
        self.commitment = commitment

    def begin_verification(self) -> VSSState:
        self._require(VSSState.DISTRIBUTING, action="begin verification")
        if self.commitment is None:
            self._disqualify("no commitment was broadcast")
        elif len(self.commitment) != self.t + 1:
            self._disqualify(
                f"commitment has {len(self.commitment)} elements, expected {self.t + 1}"
            )
        else:
            self.state = VSSState.VERIFYING
        return self.state

    def check_share(self, index: int, share: DualShare | None) -> bool:
        """True iff ``share`` is party ``index``'s valid dual-share. Missing counts as invalid."""
        if self.state is VSSState.DISQUALIFIED:
            return False
        self._require(VSSState.VERIFYING, action="verify a share")
        if share is None or share.index != index:
            return False
        return self.committer.verify_dual_share(share, self.commitment)

    def add_complaint(self, accuser_id: int) -> bool:
        if self.state is VSSState.DISQUALIFIED:
            return False
        self._require(VSSState.VERIFYING, action="accept a complaint")
        if not 1 <= accuser_id <= self.n:
            raise ValueError(f"Unknown accuser {accuser_id}")
        return self.ledger.add(self.dealer_id, accuser_id)

    def resolve(self, responses: Mapping[int, DualShare]) -> VSSState:
        """Close the complaint window given the dealer's public answers (accuser -> share)."""
        if self.state is VSSState.DISQUALIFIED:
            return self.state
        self._require(VSSState.VERIFYING, action="resolve complaints")

        accusers = sorted(self.accusers)
        if len(accusers) > self.max_complaints:
            self._disqualify(f"{len(accusers)} complaints exceed the limit of {self.max_complaints}")
            return self.state

        unanswered = [accuser for accuser in accusers if accuser not in responses]
        if unanswered:
            self._disqualify(str(ComplaintUnresolved(self.dealer_id, unanswered)))
            return self.state

        for accuser in accusers:
            share = responses[accuser]
            if share.index != accuser or not self.committer.verify_dual_share(share, self.commitment):
                # 公开的份额仍不一致，直接取消资格
                self._disqualify(f"answer to complaint from {accuser} fails verification")
                return self.state
            self.revealed_shares[accuser] = share

        self.state = VSSState.RESOLVED
        return self.state

    def _disqualify(self, reason: str) -> None:
        self.state = VSSState.DISQUALIFIED
        self.disqualification = Disqualified(self.dealer_id, reason)
        logger.warning("Dealer %d disqualified: %s", self.dealer_id, reason)
