"""Pedersen decentralized VSS: every party deals, QUAL survivors are summed.

Each party runs a Pedersen VSS of its own random contribution. Parties
verify the dual-shares they receive, complain about bad ones, dealers
answer complaints in the clear, and the dealers that survive form QUAL.
A party's final share is the sum of the dual-shares it holds from QUAL
dealers; the joint secret (sum of QUAL contributions) is never
materialized anywhere.

``DVSSSession`` is one party's view. It performs no I/O: it consumes
messages and returns the messages it wants sent, so the same state
machine runs under threads, in lockstep, or over a real transport.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple

from data_models import (
    Commitment,
    Complaint,
    ComplaintLedger,
    ComplaintResponse,
    DualShare,
    DVSSConfig,
)
from errors import Disqualified, InvalidPhaseTransition, ProtocolAborted, VerificationFailed
from pedersen import PedersenCommitter
from pedersen_vss import PedersenVSSDealer, PedersenVSSInstance, VSSState
from reconstruction import aggregate_commitments

logger = logging.getLogger(__name__)


class DVSSPhase(Enum):
    INIT = "init"
    DISTRIBUTION = "distribution"
    VERIFICATION = "verification"
    RESOLUTION = "resolution"
    QUALIFICATION = "qualification"
    COMBINATION = "combination"
    COMPLETE = "complete"
    ABORTED = "aborted"


@dataclass
class DVSSOutcome:
    party_id: int
    qual: FrozenSet[int]
    final_share: DualShare
    aggregated_commitment: Commitment
    disqualified: List[Disqualified] = field(default_factory=list)


class DVSSSession:
    """单个参与者的协议状态机 / One party's DVSS state machine with guarded transitions."""

    def __init__(self, party_id: int, config: DVSSConfig, committer: PedersenCommitter, rng) -> None:
        if party_id not in config.party_ids:
            raise ValueError(f"Party id {party_id} outside 1..{config.n}")
        self.party_id = party_id
        self.config = config
        self.committer = committer
        self.phase = DVSSPhase.INIT

        self.dealer = PedersenVSSDealer(committer, config.n, config.t, rng, dealer_id=party_id)
        self.ledger = ComplaintLedger()
        self.instances: Dict[int, PedersenVSSInstance] = {
            dealer_id: PedersenVSSInstance(
                dealer_id, config.n, config.t, committer, config.max_complaints, self.ledger
            )
            for dealer_id in config.party_ids
        }
        self.received_shares: Dict[int, DualShare] = {}
        self.responses: Dict[int, Dict[int, DualShare]] = {}

        self.qual: FrozenSet[int] | None = None
        self.disqualified: List[Disqualified] = []
        self.outcome: DVSSOutcome | None = None

    # —— 状态转换 / phase guards ——

    def _require(self, *phases: DVSSPhase, action: str) -> None:
        if self.phase not in phases:
            raise InvalidPhaseTransition(self.phase, action)

    def _advance(self, expected: DVSSPhase, target: DVSSPhase, action: str) -> None:
        self._require(expected, action=action)
        logger.debug("[Participant %d] %s -> %s", self.party_id, expected.value, target.value)
        self.phase = target

    @property
    def contribution(self) -> int:
        """This party's own secret contribution (known only to it)."""
        if self.dealer.output is None:
            raise InvalidPhaseTransition(self.phase, "read the contribution")
        return self.dealer.output.secret

    @property
    def commitment(self) -> Commitment:
        if self.dealer.output is None:
            raise InvalidPhaseTransition(self.phase, "read the commitment")
        return self.dealer.output.commitment

    # —— Init ——

    def initialize(self, secret: int | None = None) -> Commitment:
        """Draw the contribution and polynomial pair; commit to them."""
        self._require(DVSSPhase.INIT, action="initialize")
        output = self.dealer.deal(secret)
        own = self.instances[self.party_id]
        own.publish_commitment(output.commitment)
        self.received_shares[self.party_id] = output.shares[self.party_id]
        self._advance(DVSSPhase.INIT, DVSSPhase.DISTRIBUTION, "initialize")
        return output.commitment

    # —— Distribution ——

    def outgoing_share(self, receiver_id: int) -> DualShare | None:
        """The dual-share this party sends to ``receiver_id`` (None sends nothing)."""
        return self.dealer.share_for(receiver_id)

    def distribute(self) -> Tuple[Commitment, Dict[int, DualShare]]:
        """Return the commitment to broadcast and the private dual-shares to send."""
        self._require(DVSSPhase.DISTRIBUTION, action="distribute")
        outgoing: Dict[int, DualShare] = {}
        for receiver_id in self.config.party_ids:
            if receiver_id == self.party_id:
                continue
            share = self.outgoing_share(receiver_id)
            if share is not None:
                outgoing[receiver_id] = share
        self._advance(DVSSPhase.DISTRIBUTION, DVSSPhase.VERIFICATION, "distribute")
        return self.commitment, outgoing

    def receive_commitment(self, dealer_id: int, commitment: Commitment) -> None:
        self._require(DVSSPhase.DISTRIBUTION, DVSSPhase.VERIFICATION, action="receive a commitment")
        if dealer_id == self.party_id or dealer_id not in self.instances:
            logger.warning("[Participant %d] Ignoring commitment claimed by %s", self.party_id, dealer_id)
            return
        instance = self.instances[dealer_id]
        if instance.commitment is not None:
            logger.warning("[Participant %d] Duplicate commitment from %d ignored", self.party_id, dealer_id)
            return
        if not all(self.committer.group.is_element(element) for element in commitment):
            # treated as never broadcast, so the dealer is disqualified at verification
            logger.warning("[Participant %d] Commitment from %d is outside the group", self.party_id, dealer_id)
            return
        instance.publish_commitment(commitment)

    def receive_share(self, dealer_id: int, share: DualShare) -> None:
        self._require(DVSSPhase.DISTRIBUTION, DVSSPhase.VERIFICATION, action="receive a share")
        if dealer_id == self.party_id or dealer_id not in self.instances:
            logger.warning("[Participant %d] Ignoring share claimed by %s", self.party_id, dealer_id)
            return
        if dealer_id in self.received_shares:
            logger.warning("[Participant %d] Duplicate share from %d ignored", self.party_id, dealer_id)
            return
        self.received_shares[dealer_id] = share

    def has_required_inputs(self) -> bool:
        """Whether everything this phase waits for has arrived."""
        if self.phase is DVSSPhase.VERIFICATION:
            return all(
                instance.commitment is not None and dealer_id in self.received_shares
                for dealer_id, instance in self.instances.items()
            )
        if self.phase is DVSSPhase.RESOLUTION:
            return all(
                accuser in self.responses.get(dealer_id, {})
                for dealer_id in self.ledger.accused()
                for accuser in self.ledger.accusers(dealer_id)
            )
        return self.phase not in (DVSSPhase.INIT, DVSSPhase.DISTRIBUTION)

    # —— Verification ——

    def verify(self) -> List[Complaint]:
        """Check every received dual-share; return the complaints to broadcast."""
        self._require(DVSSPhase.VERIFICATION, action="verify")
        complaints: List[Complaint] = []
        for dealer_id, instance in sorted(self.instances.items()):
            if instance.begin_verification() is VSSState.DISQUALIFIED:
                self.disqualified.append(instance.disqualification)
                continue
            if dealer_id == self.party_id:
                continue
            share = self.received_shares.get(dealer_id)
            if instance.check_share(self.party_id, share):
                continue
            reason = "missing share" if share is None else "share failed verification"
            instance.add_complaint(self.party_id)
            complaints.append(
                Complaint(
                    accuser_id=self.party_id,
                    accused_id=dealer_id,
                    reason=reason,
                    timestamp=time.time(),
                )
            )
            logger.warning(
                "[Participant %d] Complaint against Participant %d: %s", self.party_id, dealer_id, reason
            )
        self._advance(DVSSPhase.VERIFICATION, DVSSPhase.RESOLUTION, "verify")
        return complaints

    # —— Resolution ——

    def record_complaint(self, complaint: Complaint) -> bool:
        self._require(DVSSPhase.RESOLUTION, action="record a complaint")
        instance = self.instances.get(complaint.accused_id)
        if instance is None or not 1 <= complaint.accuser_id <= self.config.n:
            logger.warning("[Participant %d] Malformed complaint %s ignored", self.party_id, complaint)
            return False
        return instance.add_complaint(complaint.accuser_id)

    def answer_complaint(self, accuser_id: int) -> ComplaintResponse | None:
        """The answer to one complaint against this party (None leaves it unanswered)."""
        return self.dealer.answer_complaint(accuser_id)

    def complaint_responses(self) -> List[ComplaintResponse]:
        self._require(DVSSPhase.RESOLUTION, action="answer complaints")
        responses = []
        for accuser_id in sorted(self.ledger.accusers(self.party_id)):
            response = self.answer_complaint(accuser_id)
            if response is not None:
                responses.append(response)
        return responses

    def receive_response(self, response: ComplaintResponse) -> None:
        self._require(DVSSPhase.RESOLUTION, action="receive a complaint response")
        answers = self.responses.setdefault(response.dealer_id, {})
        if response.accuser_id in answers:
            logger.warning(
                "[Participant %d] Duplicate response from %d to %d ignored",
                self.party_id,
                response.dealer_id,
                response.accuser_id,
            )
            return
        answers[response.accuser_id] = response.share

    def resolve(self) -> List[Disqualified]:
        """Settle every instance; adopt publicly revealed shares answering our complaints."""
        self._require(DVSSPhase.RESOLUTION, action="resolve")
        newly_disqualified: List[Disqualified] = []
        for dealer_id, instance in sorted(self.instances.items()):
            was_disqualified = instance.state is VSSState.DISQUALIFIED
            state = instance.resolve(self.responses.get(dealer_id, {}))
            if state is VSSState.DISQUALIFIED:
                if not was_disqualified:
                    newly_disqualified.append(instance.disqualification)
                continue
            revealed = instance.revealed_shares.get(self.party_id)
            if revealed is not None:
                self.received_shares[dealer_id] = revealed
        self.disqualified.extend(newly_disqualified)
        self._advance(DVSSPhase.RESOLUTION, DVSSPhase.QUALIFICATION, "resolve")
        return newly_disqualified

    # —— Qualification ——

    def qualify(self) -> FrozenSet[int]:
        self._require(DVSSPhase.QUALIFICATION, action="qualify")
        qual = frozenset(
            dealer_id
            for dealer_id, instance in self.instances.items()
            if instance.state is VSSState.RESOLVED
        )
        self.qual = qual
        if len(qual) < self.config.quorum:
            self.phase = DVSSPhase.ABORTED
            logger.error(
                "[Participant %d] Aborting: QUAL=%s smaller than t+1=%d",
                self.party_id,
                sorted(qual),
                self.config.quorum,
            )
            raise ProtocolAborted(qual, self.config.quorum)
        logger.info("[Participant %d] QUAL = %s", self.party_id, sorted(qual))
        self._advance(DVSSPhase.QUALIFICATION, DVSSPhase.COMBINATION, "qualify")
        return qual

    # —— Combination ——

    def combine(self) -> DVSSOutcome:
        """Sum the QUAL dual-shares and check the result against the summed commitments."""
        self._require(DVSSPhase.COMBINATION, action="combine")
        group = self.committer.group
        qual = sorted(self.qual)

        value = 0
        blinding = 0
        for dealer_id in qual:
            share = self.received_shares[dealer_id]
            value = group.add(value, share.value)
            blinding = group.add(blinding, share.blinding)
        final_share = DualShare(index=self.party_id, value=value, blinding=blinding)

        aggregated = aggregate_commitments([self.instances[d].commitment for d in qual], group)
        if not self.committer.verify_dual_share(final_share, aggregated):
            self.phase = DVSSPhase.ABORTED
            raise VerificationFailed(
                [self.party_id], f"Final share of party {self.party_id} does not match QUAL commitments"
            )

        self.outcome = DVSSOutcome(
            party_id=self.party_id,
            qual=self.qual,
            final_share=final_share,
            aggregated_commitment=aggregated,
            disqualified=list(self.disqualified),
        )
        self._advance(DVSSPhase.COMBINATION, DVSSPhase.COMPLETE, "combine")
        logger.info("[Participant %d] Final share computed from %d dealers", self.party_id, len(qual))
        return self.outcome
