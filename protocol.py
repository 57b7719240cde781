"""High-level orchestration for running the threaded DVSS protocol."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping

import numpy as np

from constants import GROUP_ORDER
from data_models import Commitment, DualShare, DVSSConfig, PerformanceStats
from errors import ProtocolAborted, SecretSharingError
from group import SchnorrGroup
from network_simulator import NetworkSimulator
from participant import DistributedParticipant
from pedersen import PedersenCommitter
from secure_rng import SecureRandom

logger = logging.getLogger(__name__)

ParticipantFactory = Callable[..., DistributedParticipant]


@dataclass
class PhaseSummary:
    """跨参与者的阶段统计 / One phase aggregated over every party."""

    phase_name: str
    max_duration: float
    mean_duration: float
    operations: Dict[str, int] = field(default_factory=dict)


@dataclass
class DVSSResult:
    qual: FrozenSet[int]
    final_shares: Dict[int, DualShare]
    aggregated_commitment: Commitment
    contributions: Dict[int, int]
    disqualified: Dict[int, str]
    performance: List[PhaseSummary] = field(default_factory=list)

    def expected_secret(self, modulus: int = GROUP_ORDER) -> int:
        """Sum of the QUAL contributions; only computable because this is a simulation."""
        return sum(self.contributions[dealer_id] for dealer_id in self.qual) % modulus


def summarize_performance(per_party: Iterable[List[PerformanceStats]]) -> List[PhaseSummary]:
    """汇总所有参与者的性能统计信息 / Aggregate performance stats across participants.

    Durations of a phase recorded more than once by a party are added up
    first; then max and mean are taken across parties and operation
    counts are summed.
    """
    durations: Dict[str, List[float]] = {}
    operations: Dict[str, Dict[str, int]] = {}
    order: List[str] = []

    for stats in per_party:
        party_durations: Dict[str, float] = {}
        for stat in stats:
            if stat.phase_name not in operations:
                operations[stat.phase_name] = {}
                order.append(stat.phase_name)
            party_durations[stat.phase_name] = party_durations.get(stat.phase_name, 0.0) + stat.duration
            combined = operations[stat.phase_name]
            for op_name, count in stat.operations.items():
                combined[op_name] = combined.get(op_name, 0) + count
        for phase_name, duration in party_durations.items():
            durations.setdefault(phase_name, []).append(duration)

    summaries = []
    for phase_name in order:
        samples = np.array(durations[phase_name], dtype=float)
        summaries.append(
            PhaseSummary(
                phase_name=phase_name,
                max_duration=float(np.max(samples)),
                mean_duration=float(np.mean(samples)),
                operations=operations[phase_name],
            )
        )
    return summaries


def log_performance_report(summaries: List[PhaseSummary], level: int = logging.INFO) -> None:
    """记录性能报告 / Write the aggregated phase statistics to the log."""
    if not summaries:
        return
    total_time = sum(summary.max_duration for summary in summaries)

    logger.log(level, "PROTOCOL PERFORMANCE ANALYSIS REPORT")
    for idx, summary in enumerate(summaries, 1):
        percentage = (summary.max_duration / total_time * 100) if total_time > 0 else 0
        logger.log(
            level,
            "Phase %d: %s  max %.4f ms  mean %.4f ms  (%.1f%% of total)",
            idx,
            summary.phase_name,
            summary.max_duration * 1000,
            summary.mean_duration * 1000,
            percentage,
        )
        for op_name, count in summary.operations.items():
            logger.log(level, "    • %s: %s", op_name, f"{count:,}")
    logger.log(level, "TOTAL EXECUTION TIME: %.4f ms", total_time * 1000)


def run_dvss(
    config: DVSSConfig,
    group: SchnorrGroup | None = None,
    rng_factory: Callable[[int], object] | None = None,
    participant_factory: ParticipantFactory | None = None,
    network: NetworkSimulator | None = None,
    contributions: Mapping[int, int] | None = None,
) -> DVSSResult:
    """运行分布式 DVSS / Run the full protocol with one thread per party.

    ``participant_factory`` is called with the same keyword arguments as
    ``DistributedParticipant`` and lets callers substitute misbehaving
    parties. ``contributions`` pins chosen secrets for chosen parties.
    """
    committer = PedersenCommitter(group, label=config.generator_label)
    network = network or NetworkSimulator()
    rng_factory = rng_factory or (lambda pid: SecureRandom(f"participant-{pid}"))
    participant_factory = participant_factory or DistributedParticipant
    contributions = contributions or {}

    participants: List[DistributedParticipant] = [
        participant_factory(
            participant_id=pid,
            config=config,
            network=network,
            committer=committer,
            rng=rng_factory(pid),
            secret=contributions.get(pid),
        )
        for pid in config.party_ids
    ]

    logger.info("Starting DVSS with n=%d, t=%d", config.n, config.t)
    start_time = time.time()
    for participant in participants:
        participant.start()
    for participant in participants:
        participant.join()
    logger.info("All participants finished in %.2f ms", (time.time() - start_time) * 1000)

    aborted = [p.error for p in participants if isinstance(p.error, ProtocolAborted)]
    if aborted:
        raise aborted[0]
    completed = [p for p in participants if p.outcome is not None]
    if not completed:
        errors = [p.error for p in participants if p.error is not None]
        if errors:
            raise errors[0]
        raise SecretSharingError("No participant completed the protocol")
    for participant in participants:
        if participant.outcome is None:
            logger.warning(
                "[Participant %d] did not complete: %s", participant.participant_id, participant.error
            )

    reference = completed[0].outcome
    for participant in completed[1:]:
        outcome = participant.outcome
        if outcome.qual != reference.qual or outcome.aggregated_commitment != reference.aggregated_commitment:
            raise SecretSharingError(
                f"Participants disagree on QUAL: {sorted(reference.qual)} vs {sorted(outcome.qual)}"
            )

    disqualified: Dict[int, str] = {}
    for participant in completed:
        for event in participant.outcome.disqualified:
            disqualified.setdefault(event.dealer_id, event.reason)

    performance = summarize_performance(p.performance_stats for p in participants)
    log_performance_report(performance)

    return DVSSResult(
        qual=reference.qual,
        final_shares={p.participant_id: p.outcome.final_share for p in completed},
        aggregated_commitment=reference.aggregated_commitment,
        contributions={
            p.participant_id: p.session.contribution for p in participants if p.session.dealer.output is not None
        },
        disqualified=disqualified,
        performance=performance,
    )
