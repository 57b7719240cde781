# tests/test_polynomial.py
# Polynomial evaluation, generation and Lagrange interpolation over Z_q.
import itertools

import pytest

from constants import GROUP_ORDER
from errors import DuplicateIndex, InsufficientShares, InvalidDegree
from polynomial import Polynomial, generate, interpolate, interpolate_polynomial, lagrange_basis

SMALL_PRIME = 2089


def test_evaluate_uses_all_coefficients():
    poly = Polynomial((5, 3, 2), SMALL_PRIME)  # 5 + 3x + 2x^2
    assert poly.evaluate(1) == 10
    assert poly.evaluate(2) == 19
    assert poly.evaluate(10) == (5 + 30 + 200) % SMALL_PRIME


def test_evaluate_rejects_secret_position():
    poly = Polynomial((5, 3), SMALL_PRIME)
    with pytest.raises(ValueError):
        poly.evaluate(0)


def test_degree_and_constant():
    poly = Polynomial((9, 0, 0, 1))
    assert poly.degree == 3
    assert poly.constant == 9
    assert poly.modulus == GROUP_ORDER


def test_empty_polynomial_rejected():
    with pytest.raises(InvalidDegree):
        Polynomial(())


def test_addition_is_coefficient_wise():
    a = Polynomial((1, 2), SMALL_PRIME)
    b = Polynomial((SMALL_PRIME - 1, 5), SMALL_PRIME)
    assert (a + b).coefficients == (0, 7)


def test_addition_requires_matching_degree():
    with pytest.raises(ValueError):
        Polynomial((1, 2), SMALL_PRIME) + Polynomial((1, 2, 3), SMALL_PRIME)


def test_generate_fixes_constant_term(rng):
    poly = generate(42, 3, rng, n=5)
    assert poly.constant == 42
    assert poly.degree == 3


@pytest.mark.parametrize("degree, n", [(-1, None), (5, 5), (7, 5)])
def test_generate_rejects_bad_degree(rng, degree, n):
    with pytest.raises(InvalidDegree):
        generate(1, degree, rng, n=n)


def test_zero_degree_polynomial_is_constant(rng):
    poly = generate(17, 0, rng, n=3)
    assert [poly.evaluate(i) for i in (1, 2, 3)] == [17, 17, 17]


def test_interpolate_recovers_secret_from_any_subset(rng):
    poly = generate(1234, 2, rng, n=6, modulus=SMALL_PRIME)
    points = [(i, poly.evaluate(i)) for i in range(1, 7)]
    for subset in itertools.combinations(points, 3):
        assert interpolate(subset, 2, SMALL_PRIME) == 1234


def test_interpolate_at_other_points(rng):
    poly = generate(77, 2, rng, n=5)
    points = [(i, poly.evaluate(i)) for i in (1, 3, 5)]
    assert interpolate(points, 2, x=4) == poly.evaluate(4)


def test_interpolate_needs_threshold_plus_one():
    with pytest.raises(InsufficientShares) as excinfo:
        interpolate([(1, 5), (2, 7)], 2, SMALL_PRIME)
    assert excinfo.value.required == 3
    assert excinfo.value.presented == 2


def test_interpolate_rejects_duplicates():
    with pytest.raises(DuplicateIndex) as excinfo:
        interpolate([(1, 5), (2, 7), (1, 5)], 1, SMALL_PRIME)
    assert excinfo.value.index == 1


def test_interpolate_compares_indices_in_the_field():
    with pytest.raises(DuplicateIndex):
        interpolate([(1, 5), (SMALL_PRIME + 1, 5)], 1, SMALL_PRIME)
    with pytest.raises(ValueError):
        interpolate([(SMALL_PRIME, 5), (2, 7)], 1, SMALL_PRIME)


def test_lagrange_basis_sums_to_one():
    indices = [2, 5, 7]
    total = sum(lagrange_basis(indices, i, SMALL_PRIME) for i in indices) % SMALL_PRIME
    assert total == 1


def test_interpolate_polynomial_recovers_coefficients(rng):
    poly = generate(99, 3, rng, n=6)
    points = [(i, poly.evaluate(i)) for i in (1, 2, 4, 6)]
    assert interpolate_polynomial(points, 3) == poly
