"""Test chain maps, Yoneda products and Massey products."""
import numpy as np
import pytest
import extresolver as er

H0 = (1, 1, [1])
H1 = (1, 2, [1])
H2 = (1, 4, [1])


def test_products(res_s2):
    assert er.yoneda_product(res_s2, res_s2, H0, H0).tolist() == [1]
    assert er.yoneda_product(res_s2, res_s2, H1, H1).tolist() == [1]
    assert er.yoneda_product(res_s2, res_s2, H0, H2).tolist() == [1]
    assert er.yoneda_product(res_s2, res_s2, H2, H0).tolist() == [1]
    # h0 h1 = 0 and Ext^(2,3) = 0
    assert er.yoneda_product(res_s2, res_s2, H0, H1).tolist() == []
    # h0^2 h2 = h1^3
    h0_squared = (2, 2, er.yoneda_product(res_s2, res_s2, H0, H0))
    assert er.yoneda_product(res_s2, res_s2, h0_squared, H2).tolist() == [1]


def test_identity(res_s2):
    unit = (0, 0, [1])
    for s, t in [(1, 4), (2, 5), (3, 6)]:
        assert er.yoneda_product(res_s2, res_s2, unit, (s, t, [1])).tolist() == [1]


def test_hom_k(res_s2):
    hom = er.ResolutionHomomorphism.from_class('h0', res_s2, res_s2, 1, 1, [1])
    hom.extend_through_degree(3, 10)
    assert hom.hom_k(2, 2).to_list() == [[1]]
    assert hom.hom_k(3, 10).to_list() == [[1]]
    # d f = f d on all computed degrees
    for s in range(2, 4):
        for t in range(1, 11):
            left = res_s2.differential_matrix(s, t).compose(hom.map_matrix(s - 1, t))
            right = hom.map_matrix(s, t).compose(res_s2.differential_matrix(s - 1, t - 1))
            assert left == right, (s, t)


def test_massey_products(res_s2):
    assert er.massey_product(res_s2, H0, H1, H0).tolist() == [1]
    assert er.massey_product(res_s2, H1, H0, H1).tolist() == [1]


def test_null_homotopy(res_s2):
    f_h0 = er.ResolutionHomomorphism.from_class('h0', res_s2, res_s2, 1, 1, [1])
    f_h1 = er.ResolutionHomomorphism.from_class('h1', res_s2, res_s2, 1, 2, [1])
    homotopy = er.ChainHomotopy(f_h0, f_h1)
    homotopy.extend_through_degree(3, 8)
    for n in range(3, 4):
        for t in range(3, 9):
            dh = homotopy.map_matrix(n, t).compose(res_s2.differential_matrix(n - 1, t - 3))
            hd = res_s2.differential_matrix(n, t).compose(homotopy.map_matrix(n - 1, t))
            composite = hom_composite(f_h0, f_h1, n, t)
            assert np.array_equal((dh.data + hd.data) % 2, composite.data), (n, t)


def hom_composite(left, right, n, t):
    return right.map_matrix(n, t).compose(left.map_matrix(n - right.shift_s, t - right.shift_t))


def test_no_null_homotopy(res_s2):
    f_h0 = er.ResolutionHomomorphism.from_class('h0', res_s2, res_s2, 1, 1, [1])
    homotopy = er.ChainHomotopy(f_h0, f_h0)
    with pytest.raises(er.NoSolution):
        homotopy.extend_through_degree(2, 2)
    with pytest.raises(er.NoSolution):
        er.massey_product(res_s2, H1, H0, H0)


def test_invalid_classes(res_s2, res_s3):
    with pytest.raises(er.InputError):
        er.yoneda_product(res_s2, res_s2, (1, 1, [1, 0]), H0)
    with pytest.raises(er.InputError):
        er.yoneda_product(res_s2, res_s2, (1, 1, [1]), (4, 4, [1]))
    with pytest.raises(er.InputError):
        er.ResolutionHomomorphism('f', res_s2, res_s3, 1, 1)
    c2 = er.construct('C2', threads=1)
    c2.resolve_through_degree(1, 2)
    with pytest.raises(er.InputError):
        er.ResolutionHomomorphism.from_class('f', res_s2, c2, 1, 1, [1])


def test_odd_prime_products(res_s3):
    a0 = (1, 1, [1])
    assert er.yoneda_product(res_s3, res_s3, a0, a0).any()


@pytest.mark.timeout(300)
def test_null_homotopy_odd_prime():
    res = er.construct('S_3', threads=1)
    res.resolve_through_degree(3, 14)
    # h0^2 = 0 at odd primes, since h0 has odd total degree
    f_h0 = er.ResolutionHomomorphism.from_class('h0', res, res, 1, 4, [1])
    homotopy = er.ChainHomotopy(f_h0, f_h0)
    homotopy.extend_through_degree(3, 14)
    for n in range(2, 4):
        for t in range(8, 15):
            dh = homotopy.map_matrix(n, t).compose(res.differential_matrix(n - 1, t - 8))
            hd = res.differential_matrix(n, t).compose(homotopy.map_matrix(n - 1, t))
            composite = hom_composite(f_h0, f_h0, n, t)
            assert np.array_equal((dh.data + hd.data) % 3, composite.data), (n, t)


def test_massey_product_odd_prime(res_s3):
    # <h0, h0, h0> = b0 at p = 3
    h0 = (1, 4, [1])
    assert res_s3.number_of_gens_in_bidegree(2, 12) == 1
    assert er.massey_product(res_s3, h0, h0, h0).tolist() in ([1], [2])
