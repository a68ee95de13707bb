"""Test products, bases and generators of the Steenrod algebra."""
import numpy as np
import pytest
import extresolver as er
from extresolver.names import *

# dimensions of the Steenrod algebra in degrees 0, 1, ...
DIMENSIONS = {2: [1, 1, 1, 2, 2, 2, 3, 4, 4, 5], 3: [1, 1, 0, 0, 1, 2, 1, 0, 1, 2, 1]}


def vector(algebra, degree, *elements):
    """Vector of a sum of basis elements"""
    v = np.zeros(algebra.dimension(degree), dtype=np.int64)
    for element in elements:
        v[algebra.basis_index(degree, element)] += 1
    return v % algebra.p


def product(algebra, r_degree, r, s_degree, s):
    return algebra.multiply_basis_elements(r_degree, algebra.basis_index(r_degree, r), s_degree,
                                           algebra.basis_index(s_degree, s))


def in_milnor(algebra, degree, v):
    milnor = er.milnor_algebra(algebra.p)
    result = np.zeros(milnor.dimension(degree), dtype=np.int64)
    for i in np.flatnonzero(v):
        result += int(v[i]) * algebra.to_milnor(degree, int(i))
    return result % algebra.p


@pytest.mark.parametrize("p", [2, 3])
def test_dimensions(basis, p):
    algebra = er.steenrod_algebra(p, basis)
    assert [algebra.dimension(d) for d in range(len(DIMENSIONS[p]))] == DIMENSIONS[p]
    assert algebra.dimension(-1) == 0


def test_milnor_products_p2():
    a = er.steenrod_algebra(2, MILNOR)
    sq = lambda *r: ((), r)
    assert np.array_equal(product(a, 2, sq(2), 1, sq(1)), vector(a, 3, sq(3), sq(0, 1)))
    assert np.array_equal(product(a, 1, sq(1), 2, sq(2)), vector(a, 3, sq(3)))
    assert np.array_equal(product(a, 2, sq(2), 2, sq(2)), vector(a, 4, sq(1, 1)))
    assert np.array_equal(product(a, 3, sq(3), 1, sq(1)), vector(a, 4, sq(1, 1)))
    assert not product(a, 1, sq(1), 1, sq(1)).any()
    # the unit
    assert np.array_equal(product(a, 0, sq(), 3, sq(0, 1)), vector(a, 3, sq(0, 1)))


def test_milnor_products_p3():
    a = er.steenrod_algebra(3, MILNOR)
    # P(1) P(1) = 2 P(2)
    assert product(a, 4, ((), (1,)), 4, ((), (1,))).tolist() == [2]
    # Q_0 Q_0 = 0
    assert not product(a, 1, ((0,), ()), 1, ((0,), ())).any()
    # P(1) Q_0 = Q_0 P(1) + Q_1
    assert np.array_equal(product(a, 4, ((), (1,)), 1, ((0,), ())), vector(a, 5, ((0,), (1,)), ((1,), ())))
    # Q_1 Q_0 = -Q_0 Q_1
    assert product(a, 5, ((1,), ()), 1, ((0,), ())).tolist() == [2]


def test_adem_relations_p2():
    a = er.steenrod_algebra(2, ADEM)
    assert not product(a, 1, (1,), 1, (1,)).any()
    assert np.array_equal(product(a, 1, (1,), 2, (2,)), vector(a, 3, (3,)))
    assert np.array_equal(product(a, 2, (2,), 2, (2,)), vector(a, 4, (3, 1)))
    # Sq2 Sq1 Sq1 = 0
    assert np.array_equal(product(a, 3, (2, 1), 1, (1,)), np.zeros(a.dimension(4), dtype=np.int64))


def test_adem_relations_p3():
    a = er.steenrod_algebra(3, ADEM)
    b = er.adem.BOCKSTEIN
    assert product(a, 4, (1,), 4, (1,)).tolist() == [2]
    assert not product(a, 1, (b,), 1, (b,)).any()
    assert a.basis(5) == ((b, 1), (1, b))


def test_basis_names():
    assert er.steenrod_algebra(2, MILNOR).basis_element_to_string(3, 0) == 'Sq(0,1)'
    assert er.steenrod_algebra(2, ADEM).basis_element_to_string(3, 0) == 'Sq2 Sq1'
    assert er.steenrod_algebra(3, MILNOR).basis_element_to_string(5, 0) == 'Q_0 P(1)'
    assert er.steenrod_algebra(3, ADEM).basis_element_to_string(5, 0) == 'b P1'
    assert er.steenrod_algebra(2, MILNOR).basis_element_to_string(0, 0) == '1'
    assert er.steenrod_algebra(3, ADEM).prefix == 'P'


@pytest.mark.timeout(120)
@pytest.mark.parametrize("p,max_degree", [(2, 9), (3, 13)])
def test_adem_agrees_with_milnor(p, max_degree):
    adem = er.steenrod_algebra(p, ADEM)
    milnor = er.milnor_algebra(p)
    for degree in range(max_degree + 1):
        change_of_basis = er.change_of_basis(adem, milnor, degree)
        assert change_of_basis.rank() == adem.dimension(degree)
    for r_degree in range(1, max_degree):
        for s_degree in range(1, max_degree - r_degree + 1):
            for r in range(adem.dimension(r_degree)):
                for s in range(adem.dimension(s_degree)):
                    expected = milnor.multiply_element_by_element(r_degree, adem.to_milnor(r_degree, r), s_degree,
                                                                  adem.to_milnor(s_degree, s))
                    got = in_milnor(adem, r_degree + s_degree, adem.multiply_basis_elements(r_degree, r, s_degree, s))
                    assert np.array_equal(got, expected)


@pytest.mark.parametrize("p,max_degree", [(2, 10), (3, 14)])
def test_decompositions(basis, p, max_degree):
    algebra = er.steenrod_algebra(p, basis)
    for degree in range(1, max_degree + 1):
        for idx in range(algebra.dimension(degree)):
            total = np.zeros(algebra.dimension(degree), dtype=np.int64)
            for c, (g_degree, g_idx), (b_degree, b_idx) in algebra.decompose_basis_element(degree, idx):
                assert g_idx in algebra.generators(g_degree)
                total += c * algebra.multiply_basis_elements(g_degree, g_idx, b_degree, b_idx)
            expected = np.zeros(algebra.dimension(degree), dtype=np.int64)
            expected[idx] = 1
            assert np.array_equal(total % p, expected)


def test_generators_p2(basis):
    a = er.steenrod_algebra(2, basis)
    assert [d for d in range(1, 17) if a.generators(d)] == [1, 2, 4, 8, 16]
    degree, idx = a.parse_generator('Sq4')
    assert degree == 4
    assert a.generator_name(degree, idx) == 'Sq4'
    assert a.parse_generator('Sq^2')[0] == 2
    with pytest.raises(er.InputError):
        a.parse_generator('Sq3')
    with pytest.raises(er.InputError):
        a.parse_generator('P1')


def test_generators_p3(basis):
    a = er.steenrod_algebra(3, basis)
    assert [d for d in range(1, 40) if a.generators(d)] == [1, 4, 12, 36]
    assert a.parse_generator('b')[0] == 1
    assert a.generator_name(*a.parse_generator('beta')) == 'b'
    assert a.generator_name(*a.parse_generator('P3')) == 'P3'
    with pytest.raises(er.InputError):
        a.parse_generator('P2')
    with pytest.raises(er.InputError):
        a.parse_generator('Sq1')


def test_invalid_algebra():
    with pytest.raises(er.InputError):
        er.steenrod_algebra(2, 'serre-cartan')
    with pytest.raises(er.InputError):
        er.steenrod_algebra(4)
    with pytest.raises(er.InputError):
        er.change_of_basis(er.steenrod_algebra(2), er.steenrod_algebra(3), 0)


def test_magic_numbers():
    assert er.steenrod_algebra(2, MILNOR).magic != er.steenrod_algebra(2, ADEM).magic
