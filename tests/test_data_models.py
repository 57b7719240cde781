# tests/test_data_models.py
# Configuration validation and the append-only complaint ledger.
import pytest

from constants import DEFAULT_PHASE_TIMEOUT
from data_models import ComplaintLedger, DualShare, DVSSConfig
from errors import InvalidDegree


def test_config_defaults():
    config = DVSSConfig(n=5, t=2)
    assert config.max_complaints == 2
    assert config.quorum == 3
    assert list(config.party_ids) == [1, 2, 3, 4, 5]
    assert config.phase_timeout == DEFAULT_PHASE_TIMEOUT


@pytest.mark.parametrize("n, t", [(3, 3), (3, -1), (1, 1)])
def test_config_rejects_threshold(n, t):
    with pytest.raises(InvalidDegree):
        DVSSConfig(n=n, t=t)


def test_config_rejects_bad_values():
    with pytest.raises(ValueError):
        DVSSConfig(n=0, t=0)
    with pytest.raises(ValueError):
        DVSSConfig(n=3, t=1, phase_timeout=0)


def test_invalid_degree_is_value_error():
    with pytest.raises(ValueError):
        DVSSConfig(n=2, t=5)


def test_ledger_is_append_only():
    ledger = ComplaintLedger()
    assert ledger.add(3, 1)
    assert ledger.add(3, 2)
    assert not ledger.add(3, 1)
    assert ledger.count(3) == 2
    assert ledger.accusers(3) == frozenset({1, 2})
    assert (3, 1) in ledger
    assert (1, 3) not in ledger
    assert len(ledger) == 2
    assert not hasattr(ledger, "remove")


def test_ledger_accused_and_unknown():
    ledger = ComplaintLedger()
    ledger.add(4, 2)
    assert ledger.accused() == frozenset({4})
    assert ledger.count(1) == 0
    assert ledger.accusers(1) == frozenset()


def test_dual_share_projection():
    share = DualShare(2, 10, 20)
    assert share.secret_share.index == 2
    assert share.secret_share.value == 10
