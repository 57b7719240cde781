# tests/test_schemes.py
# The common split/verify/reconstruct interface over all three variants.
import pytest

from data_models import DualShare, DVSSConfig, Share
from errors import InsufficientShares, VerificationFailed
from schemes import (
    PedersenDVSSScheme,
    PedersenVSSScheme,
    SchemeKind,
    ShamirScheme,
    make_scheme,
)
from secure_rng import SeededRandom


@pytest.fixture
def config():
    return DVSSConfig(n=5, t=2, phase_timeout=1.0)


@pytest.mark.parametrize(
    "kind, cls",
    [
        (SchemeKind.SHAMIR, ShamirScheme),
        (SchemeKind.PEDERSEN_VSS, PedersenVSSScheme),
        (SchemeKind.PEDERSEN_DVSS, PedersenDVSSScheme),
    ],
)
def test_make_scheme_selects_variant(group, config, kind, cls):
    assert isinstance(make_scheme(kind, config, group), cls)


def test_shamir_scheme(group, config):
    scheme = make_scheme(SchemeKind.SHAMIR, config, group, SeededRandom("shamir"))
    result = scheme.split(42)
    assert result.public is None
    assert all(scheme.verify(share) for share in result.shares)
    assert not scheme.verify(Share(6, 1))
    assert scheme.reconstruct(result.shares[2:]) == 42
    with pytest.raises(InsufficientShares):
        scheme.reconstruct(result.shares[:2])


def test_pedersen_vss_scheme(group, config):
    scheme = make_scheme(SchemeKind.PEDERSEN_VSS, config, group, SeededRandom("vss"))
    result = scheme.split(7)
    assert all(scheme.verify(share, result.public) for share in result.shares)
    assert not scheme.verify(result.shares[0])
    assert scheme.reconstruct(result.shares[:3], result.public) == 7

    first = result.shares[0]
    forged = DualShare(first.index, first.value + 1, first.blinding)
    with pytest.raises(VerificationFailed):
        scheme.reconstruct([forged] + result.shares[1:3], result.public)
    with pytest.raises(ValueError):
        scheme.reconstruct(result.shares)


def test_pedersen_dvss_scheme_ignores_secret(group):
    config = DVSSConfig(n=3, t=1, phase_timeout=1.0)
    scheme = make_scheme(SchemeKind.PEDERSEN_DVSS, config, group, SeededRandom("dvss"))
    result = scheme.split(123)
    assert result.qual == frozenset({1, 2, 3})
    assert all(scheme.verify(share, result.public) for share in result.shares)

    expected = scheme.last_result.expected_secret(group.q)
    assert scheme.reconstruct(result.shares[:2]) == expected
    assert scheme.reconstruct(result.shares[1:], result.public) == expected
