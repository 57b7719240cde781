# tests/conftest.py
# Shared fixtures and helper sessions for the Pedersen DVSS test suite.
from typing import Dict, Iterable, Mapping

import pytest

from data_models import DualShare, DVSSConfig
from group import SchnorrGroup
from pedersen import PedersenCommitter
from pedersen_dvss import DVSSOutcome, DVSSSession
from secure_rng import SeededRandom

# --- Fixtures ---


@pytest.fixture(scope="session")
def group() -> SchnorrGroup:
    return SchnorrGroup()


@pytest.fixture(scope="session")
def committer(group) -> PedersenCommitter:
    return PedersenCommitter(group)


@pytest.fixture
def rng() -> SeededRandom:
    """Deterministic randomness so failures are reproducible."""
    return SeededRandom(b"pedersen-dvss-tests")


@pytest.fixture
def small_config() -> DVSSConfig:
    return DVSSConfig(n=4, t=1, phase_timeout=1.0)


# --- Misbehaving sessions ---


class CorruptingSession(DVSSSession):
    """Sends a dual-share with a shifted value to every party in ``targets``."""

    targets: frozenset = frozenset()

    def outgoing_share(self, receiver_id):
        share = super().outgoing_share(receiver_id)
        if receiver_id in self.targets:
            q = self.committer.group.q
            return DualShare(share.index, (share.value + 1) % q, share.blinding)
        return share


class StubbornSession(CorruptingSession):
    """Corrupts shares and then never answers the resulting complaints."""

    def answer_complaint(self, accuser_id):
        return None


class SilentSession(DVSSSession):
    """Never sends private shares to ``targets``."""

    targets: frozenset = frozenset()

    def outgoing_share(self, receiver_id):
        if receiver_id in self.targets:
            return None
        return super().outgoing_share(receiver_id)


def session_class(base, targets: Iterable[int]):
    return type(base.__name__, (base,), {"targets": frozenset(targets)})


# --- Lockstep driver ---


def build_sessions(config: DVSSConfig, committer: PedersenCommitter, seed: str, overrides: Mapping = None):
    overrides = overrides or {}
    root = SeededRandom(seed)
    return {
        pid: overrides.get(pid, DVSSSession)(pid, config, committer, root.derive_child(f"participant-{pid}"))
        for pid in config.party_ids
    }


def run_lockstep(sessions: Dict[int, DVSSSession], contributions: Mapping[int, int] = None) -> Dict[int, DVSSOutcome]:
    """Drive every session through all phases with perfect message delivery."""
    contributions = contributions or {}
    for pid, session in sessions.items():
        session.initialize(contributions.get(pid))

    distributed = {pid: session.distribute() for pid, session in sessions.items()}
    for sender_id, (commitment, shares) in distributed.items():
        for receiver_id, session in sessions.items():
            if receiver_id == sender_id:
                continue
            session.receive_commitment(sender_id, commitment)
            if receiver_id in shares:
                session.receive_share(sender_id, shares[receiver_id])

    complaints = [complaint for session in sessions.values() for complaint in session.verify()]
    for session in sessions.values():
        for complaint in complaints:
            session.record_complaint(complaint)

    responses = [response for session in sessions.values() for response in session.complaint_responses()]
    for session in sessions.values():
        for response in responses:
            session.receive_response(response)
        session.resolve()

    outcomes = {}
    for pid, session in sessions.items():
        session.qualify()
        outcomes[pid] = session.combine()
    return outcomes


@pytest.fixture
def lockstep(committer):
    """Returns ``run(config, seed, overrides=None, contributions=None) -> (sessions, outcomes)``."""

    def run(config, seed="lockstep", overrides=None, contributions=None):
        sessions = build_sessions(config, committer, seed, overrides)
        return sessions, run_lockstep(sessions, contributions)

    return run


@pytest.fixture
def make_session_class():
    """Build a misbehaving session class: kind is 'corrupt', 'stubborn' or 'silent'."""
    kinds = {"corrupt": CorruptingSession, "stubborn": StubbornSession, "silent": SilentSession}

    def make(kind, targets):
        return session_class(kinds[kind], targets)

    return make
