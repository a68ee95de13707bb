import pytest
import extresolver as er
from extresolver.names import *

# Generator counts of the minimal resolution of F_2 for s <= 3, t <= 10. All other entries are 0.
EXT_S2 = {
    (0, 0): 1,
    (1, 1): 1,
    (1, 2): 1,
    (1, 4): 1,
    (1, 8): 1,
    (2, 2): 1,
    (2, 4): 1,
    (2, 5): 1,
    (2, 8): 1,
    (2, 9): 1,
    (2, 10): 1,
    (3, 3): 1,
    (3, 6): 1,
    (3, 10): 1,
}

# Generator counts of the minimal resolution of F_3 for s <= 1, t <= 12, and a_0^2
EXT_S3 = {(0, 0): 1, (1, 1): 1, (1, 4): 1, (1, 12): 1}


@pytest.fixture(params=[MILNOR, ADEM], scope="session")
def basis(request: pytest.FixtureRequest) -> str:
    """Provide session-level fixture for the algebra bases."""
    return request.param


@pytest.fixture(params=[2, 3, 5], scope="session")
def prime(request: pytest.FixtureRequest) -> int:
    """Provide session-level fixture for small primes."""
    return request.param


@pytest.fixture(params=[1, 4], scope="session")
def num_threads(request: pytest.FixtureRequest) -> int:
    """Provide session-level fixture for serial and concurrent runs."""
    return request.param


@pytest.fixture(scope="session")
def res_s2() -> er.Resolution:
    """Resolution of F_2 through (s, t) = (3, 10) in the Milnor basis, computed serially."""
    res = er.construct('S_2', threads=1)
    res.resolve_through_degree(3, 10)
    return res


@pytest.fixture(scope="session")
def res_s3() -> er.Resolution:
    """Resolution of F_3 through (s, t) = (2, 12) in the Milnor basis."""
    res = er.construct('S_3', threads=1)
    res.resolve_through_degree(2, 12)
    return res


# Bounds (s_max, t_max) of the resolutions checked for d^2 = 0, exactness and minimality
LATTICE_BOUNDS = {2: (3, 10), 3: (3, 14), 5: (2, 20)}


@pytest.fixture(scope="session")
def resolution(prime: int, basis: str) -> er.Resolution:
    """Resolution of F_p in the given basis through LATTICE_BOUNDS[p], computed serially."""
    res = er.construct(('S_' + str(prime), basis), threads=1)
    res.resolve_through_degree(*LATTICE_BOUNDS[prime])
    return res
