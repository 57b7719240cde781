# tests/test_secure_rng.py
import pytest

from secure_rng import SecureRandom, SeededRandom


def test_seeded_stream_is_reproducible():
    a = SeededRandom("seed")
    b = SeededRandom(b"seed")
    assert [a.random_scalar(1000) for _ in range(5)] == [b.random_scalar(1000) for _ in range(5)]


def test_children_diverge():
    root = SeededRandom("seed")
    assert root.derive_child("a").token_bytes(16) != root.derive_child("b").token_bytes(16)


def test_scalars_in_range():
    for source in (SecureRandom(), SeededRandom("range")):
        assert all(0 <= source.random_scalar(7) < 7 for _ in range(50))


def test_modulus_must_be_positive():
    with pytest.raises(ValueError):
        SecureRandom().random_scalar(0)
    with pytest.raises(ValueError):
        SeededRandom("x").random_scalar(-1)


def test_secure_child_label():
    assert SecureRandom("root").derive_child("p1").label == "root/p1"
