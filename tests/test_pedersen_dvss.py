# tests/test_pedersen_dvss.py
# DVSS session state machine driven in lockstep (no threads).
import itertools

import pytest

from conftest import build_sessions, run_lockstep
from data_models import Commitment, DVSSConfig
from errors import InvalidPhaseTransition, ProtocolAborted
from pedersen_dvss import DVSSPhase, DVSSSession
from reconstruction import reconstruct_final
from secure_rng import SeededRandom


def _expected(sessions, qual, q):
    return sum(sessions[pid].contribution for pid in qual) % q


def test_honest_run_every_party_qualifies(committer, lockstep):
    config = DVSSConfig(n=5, t=2)
    sessions, outcomes = lockstep(config)
    q = committer.group.q

    assert all(outcome.qual == frozenset(range(1, 6)) for outcome in outcomes.values())
    assert all(session.phase is DVSSPhase.COMPLETE for session in sessions.values())
    aggregated = outcomes[1].aggregated_commitment
    assert all(outcome.aggregated_commitment == aggregated for outcome in outcomes.values())

    expected = _expected(sessions, range(1, 6), q)
    shares = [outcome.final_share for outcome in outcomes.values()]
    for subset in itertools.combinations(shares, 3):
        assert reconstruct_final(subset, aggregated, 2, committer) == expected


def test_chosen_contributions_sum_to_joint_secret(committer, lockstep):
    config = DVSSConfig(n=3, t=1)
    sessions, outcomes = lockstep(config, contributions={1: 10, 2: 20, 3: 30})
    shares = [outcomes[1].final_share, outcomes[3].final_share]
    assert reconstruct_final(shares, outcomes[1].aggregated_commitment, 1, committer) == 60


def test_dealer_corrupting_two_parties_is_excluded(committer, lockstep, make_session_class):
    """n=4, t=1: dealer 3 corrupts the shares of parties 1 and 2 and is dropped from QUAL."""
    config = DVSSConfig(n=4, t=1)
    overrides = {3: make_session_class("corrupt", {1, 2})}
    sessions, outcomes = lockstep(config, overrides=overrides)

    for outcome in outcomes.values():
        assert outcome.qual == frozenset({1, 2, 4})
        assert [event.dealer_id for event in outcome.disqualified] == [3]
    assert sessions[1].ledger.accusers(3) == frozenset({1, 2})

    expected = _expected(sessions, (1, 2, 4), committer.group.q)
    aggregated = outcomes[4].aggregated_commitment
    for pair in itertools.combinations([o.final_share for o in outcomes.values()], 2):
        assert reconstruct_final(pair, aggregated, 1, committer) == expected


def test_single_complaint_answered_keeps_dealer(committer, lockstep, make_session_class):
    config = DVSSConfig(n=4, t=1)
    overrides = {2: make_session_class("corrupt", {4})}
    sessions, outcomes = lockstep(config, overrides=overrides)

    assert outcomes[4].qual == frozenset({1, 2, 3, 4})
    assert outcomes[4].disqualified == []
    # party 4 adopted the publicly revealed share from dealer 2
    assert sessions[4].received_shares[2] == sessions[2].dealer.output.shares[4]

    expected = _expected(sessions, (1, 2, 3, 4), committer.group.q)
    shares = [outcomes[3].final_share, outcomes[4].final_share]
    assert reconstruct_final(shares, outcomes[3].aggregated_commitment, 1, committer) == expected


def test_missing_share_is_a_complaint(committer, lockstep, make_session_class):
    config = DVSSConfig(n=4, t=1)
    overrides = {1: make_session_class("silent", {3})}
    sessions, outcomes = lockstep(config, overrides=overrides)
    assert sessions[3].ledger.accusers(1) == frozenset({3})
    assert outcomes[3].qual == frozenset({1, 2, 3, 4})


def test_unanswered_complaint_excludes_dealer(lockstep, make_session_class):
    config = DVSSConfig(n=4, t=1)
    overrides = {2: make_session_class("stubborn", {1})}
    _, outcomes = lockstep(config, overrides=overrides)
    assert outcomes[1].qual == frozenset({1, 3, 4})
    assert "did not answer" in outcomes[1].disqualified[0].reason


def test_abort_when_qual_below_quorum(lockstep, make_session_class):
    """n=3, t=2: one disqualified dealer leaves |QUAL| = 2 < 3."""
    config = DVSSConfig(n=3, t=2)
    overrides = {3: make_session_class("stubborn", {1})}
    with pytest.raises(ProtocolAborted) as excinfo:
        lockstep(config, overrides=overrides)
    assert excinfo.value.qual == frozenset({1, 2})
    assert excinfo.value.required == 3


def test_aborted_session_state(committer, make_session_class):
    config = DVSSConfig(n=3, t=2)
    sessions = build_sessions(config, committer, "abort", {3: make_session_class("stubborn", {1})})
    with pytest.raises(ProtocolAborted):
        run_lockstep(sessions)
    assert sessions[1].phase is DVSSPhase.ABORTED
    with pytest.raises(InvalidPhaseTransition):
        sessions[1].combine()


# --- Phase guards ---


@pytest.fixture
def session(committer):
    return DVSSSession(1, DVSSConfig(n=3, t=1), committer, SeededRandom("guard"))


def test_cannot_distribute_before_initialize(session):
    with pytest.raises(InvalidPhaseTransition):
        session.distribute()


def test_cannot_verify_during_distribution(session):
    session.initialize()
    with pytest.raises(InvalidPhaseTransition):
        session.verify()


def test_cannot_combine_before_qualify(session):
    session.initialize()
    session.distribute()
    session.verify()
    with pytest.raises(InvalidPhaseTransition):
        session.combine()


def test_cannot_initialize_twice(session):
    session.initialize()
    with pytest.raises(InvalidPhaseTransition):
        session.initialize()


def test_contribution_hidden_until_initialized(session):
    with pytest.raises(InvalidPhaseTransition):
        session.contribution


def test_party_id_must_be_in_range(committer):
    with pytest.raises(ValueError):
        DVSSSession(4, DVSSConfig(n=3, t=1), committer, SeededRandom("range"))


def test_late_share_rejected_after_verification(session, committer):
    other = DVSSSession(2, DVSSConfig(n=3, t=1), committer, SeededRandom("other"))
    other.initialize()
    session.initialize()
    session.distribute()
    session.verify()
    with pytest.raises(InvalidPhaseTransition):
        session.receive_share(2, other.outgoing_share(1))


def test_inputs_tracked_during_verification(session, committer):
    session.initialize()
    session.distribute()
    assert not session.has_required_inputs()
    complaints = session.verify()
    # nothing arrived from 2 and 3: both are disqualified for missing commitments
    assert complaints == []
    assert sorted(event.dealer_id for event in session.disqualified) == [2, 3]


def test_commitment_outside_group_counts_as_missing(session, committer):
    dealer = DVSSSession(2, DVSSConfig(n=3, t=1), committer, SeededRandom("dealer"))
    dealer.initialize()
    commitment, outgoing = dealer.distribute()
    session.initialize()
    session.distribute()
    # p - 1 has order 2, so it is not in the prime-order subgroup
    forged = Commitment((committer.group.p - 1,) + commitment.elements[1:])
    session.receive_commitment(2, forged)
    session.receive_share(2, outgoing[1])
    assert session.instances[2].commitment is None
    session.verify()
    assert 2 in [event.dealer_id for event in session.disqualified]
