"""Test minimal resolutions and their Ext dimensions."""
import pytest
import extresolver as er
from extresolver.names import *
from conftest import EXT_S2, EXT_S3, LATTICE_BOUNDS


def test_ext_s2(res_s2):
    for s in range(4):
        for t in range(11):
            assert res_s2.number_of_gens_in_bidegree(s, t) == EXT_S2.get((s, t), 0), (s, t)
    assert res_s2.ext_dimensions() == {(s, t): EXT_S2.get((s, t), 0) for s in range(4) for t in range(11)}


@pytest.mark.timeout(300)
def test_ext_s2_adem():
    res = er.construct('S_2@adem', threads=1)
    res.resolve_through_degree(3, 10)
    assert res.algebra.basis_type == ADEM
    for (s, t), n in res.ext_dimensions().items():
        assert n == EXT_S2.get((s, t), 0), (s, t)


def test_ext_s3(res_s3):
    for s in range(2):
        for t in range(13):
            assert res_s3.number_of_gens_in_bidegree(s, t) == EXT_S3.get((s, t), 0), (s, t)
    assert res_s3.number_of_gens_in_bidegree(2, 2) == 1


@pytest.mark.timeout(120)
def test_ext_s5():
    res = er.construct('S_5', threads=1)
    res.resolve_through_degree(1, 8)
    assert [t for t in range(9) if res.number_of_gens_in_bidegree(1, t)] == [1, 8]


@pytest.mark.timeout(600)
def test_d_squared_is_zero(resolution):
    s_max, t_max = LATTICE_BOUNDS[resolution.p]
    for s in range(2, s_max + 1):
        for t in range(t_max + 1):
            composite = resolution.differential_matrix(s, t).compose(resolution.differential_matrix(s - 1, t))
            assert composite.is_zero(), (s, t)


@pytest.mark.timeout(600)
def test_exactness(resolution):
    # rank d_(s+1) = dim ker d_s in every computed degree
    s_max, t_max = LATTICE_BOUNDS[resolution.p]
    for s in range(s_max):
        for t in range(t_max + 1):
            d = resolution.differential_matrix(s, t)
            assert resolution.differential_matrix(s + 1, t).rank() == d.nullity(), (s, t)
    # d_0 is onto
    for t in range(t_max + 1):
        assert resolution.differential_matrix(0, t).rank() == resolution.module.dimension(t)


@pytest.mark.timeout(600)
def test_minimality(resolution):
    # differentials of generators have no component on the generators of F_(s-1)
    s_max, t_max = LATTICE_BOUNDS[resolution.p]
    for s in range(1, s_max + 1):
        target = resolution.free_module(s - 1)
        for t in range(t_max + 1):
            n = resolution.number_of_gens_in_bidegree(s - 1, t)
            if not n:
                continue
            start = target.generator_offset(t, t, 0)
            d = resolution.differential(s, t)
            assert not d.data[:, start:start + n].any(), (s, t)


def test_resolution_of_modules():
    res = er.construct('C2', threads=1)
    res.resolve_through_degree(2, 6)
    assert res.number_of_gens_in_bidegree(0, 0) == 1
    assert res.number_of_gens_in_bidegree(0, 1) == 0
    for s in range(1, 3):
        for t in range(7):
            assert res.differential_matrix(s, t).compose(res.differential_matrix(s - 1, t)).is_zero()
    joker = er.construct(('Joker', ADEM), threads=1)
    joker.resolve_through_degree(1, 6)
    assert [t for t in range(7) if joker.number_of_gens_in_bidegree(0, t)] == [0]


def test_shifted_module():
    res = er.construct('C2[2]', threads=1)
    res.resolve_through_degree(1, 5)
    assert res.min_degree == 2
    assert res.number_of_gens_in_bidegree(0, 2) == 1
    assert not res.has_computed_bidegree(0, 1)
    reference = er.construct('C2', threads=1)
    reference.resolve_through_degree(1, 3)
    for s in range(2):
        for t in range(4):
            assert res.number_of_gens_in_bidegree(s, t + 2) == reference.number_of_gens_in_bidegree(s, t)


def test_idempotent():
    res = er.construct('S_2', threads=1)
    res.resolve_through_degree(2, 6)
    before = {b: res.differential(*b) for b in res.computed_bidegrees()}
    res.resolve_through_degree(2, 6)
    res.resolve_through_degree(1, 4)
    assert res.computed_bidegrees() == sorted(before)
    for b, d in before.items():
        assert res.differential(*b) == d


def test_extend():
    res = er.construct('S_2', threads=1)
    res.resolve_through_degree(1, 3)
    res.resolve_through_stem(2, 3)
    assert res.has_computed_bidegree(2, 5)
    assert not res.has_computed_bidegree(2, 6)
    assert res.number_of_gens_in_bidegree(1, 4) == 1
    assert res.number_of_gens_in_bidegree(3, 3) is None


@pytest.mark.parametrize("bounds", [(-1, 4), (2, -1), (3, 2), (1.5, 4), ('2', 4), (True, 4)])
def test_invalid_bounds(bounds):
    res = er.construct('S_2', threads=1)
    with pytest.raises(er.InputError):
        res.resolve_through_degree(*bounds)
    assert res.computed_bidegrees() == []


def test_capacity():
    res = er.construct('S_2', threads=1, max_s=2, max_t=8)
    res.resolve_through_degree(2, 8)
    with pytest.raises(er.DegreeRangeExceeded):
        res.resolve_through_degree(3, 8)
    with pytest.raises(er.DegreeRangeExceeded):
        res.resolve_through_degree(1, 9)
    assert res.capacity == (2, 8)


def test_unknown_key():
    with pytest.raises(er.InputError):
        er.construct('S_2', threads=1, max_u=3)
    with pytest.raises(er.InputError):
        er.construct('S_2', threads=0)
    with pytest.raises(er.InputError):
        er.construct(('S_2@adem', MILNOR))
    with pytest.raises(er.InputError):
        er.construct(42)


def test_queries():
    res = er.construct('S_2', threads=1)
    res.resolve_through_degree(1, 2)
    assert res.graded_dimension_string() == '· ·\n·'
    assert res.number_of_gens_in_bidegree(1, 3) is None
    assert res.differential(1, 3) is None
    d = res.differential(1, 2)
    d.data[:] = 0
    assert not res.differential(1, 2).is_zero()
    assert res.element_to_string(1, 2, [1]) == 'x_(1,2,0)'
    with pytest.raises(er.InputError):
        res.differential_matrix(2, 2)
    assert str(res) == 'Resolution of S_2, p=2, milnor'


def test_first_line(prime, basis):
    q = 1 if prime == 2 else 2 * (prime - 1)
    res = er.construct(('S_' + str(prime), basis), threads=1)
    res.resolve_through_degree(1, max(q, 2))
    assert res.number_of_gens_in_bidegree(0, 0) == 1
    expected = [1, 2] if prime == 2 else [1, q]
    assert [t for t in range(max(q, 2) + 1) if res.number_of_gens_in_bidegree(1, t)] == expected


@pytest.mark.timeout(60)
def test_queries_before_computation(num_threads):
    res = er.construct('S_2', threads=num_threads)
    with pytest.raises(er.NotComputed) as e:
        res.free_module(0).dimension(5)
    assert e.value.bidegree == (0, 0)
    res.resolve_through_degree(1, 3)
    assert res.free_module(1).dimension(3) == 2
    with pytest.raises(er.NotComputed) as e:
        res.free_module(1).dimension(4)
    assert e.value.bidegree == (1, 4)
    res.resolve_through_degree(1, 4)
    assert res.free_module(1).number_of_gens_in_degree(4) == 1


def test_errors_carry_bidegree(monkeypatch):
    def failing_complement(image, subspace):
        raise ValueError('shapes do not match')

    monkeypatch.setattr('extresolver.resolution.complement', failing_complement)
    res = er.construct('S_2', threads=1)
    with pytest.raises(er.ComputationError) as e:
        res.resolve_through_degree(1, 2)
    assert e.value.bidegree == (0, 0)
    assert e.value.config == 'S_2, p=2, milnor'
    assert isinstance(e.value.__cause__, ValueError)
    assert not res.computed_bidegrees()
