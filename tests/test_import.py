"""Test if package imports successfully."""

import pytest


def test1():
    import extresolver
    with extresolver.DisableLogger():
        res = extresolver.construct('S_2', threads=1)
        res.resolve_through_degree(1, 2)
    assert res.number_of_gens_in_bidegree(1, 2) == 1
