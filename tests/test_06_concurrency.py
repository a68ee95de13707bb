"""Test that concurrent computation gives the same resolution as the serial one."""
import os
import threading
import pytest
import extresolver as er
from conftest import EXT_S2


def read_checkpoints(save_dir):
    directory = os.path.join(save_dir, 'differentials')
    result = {}
    for name in sorted(os.listdir(directory)):
        with open(os.path.join(directory, name), 'rb') as f:
            result[name] = f.read()
    return result


@pytest.mark.timeout(300)
def test_concurrent_matches_serial(num_threads, res_s2):
    res = er.construct('S_2', threads=num_threads)
    res.resolve_through_degree(3, 10)
    assert res.ext_dimensions() == res_s2.ext_dimensions()
    for s, t in res_s2.computed_bidegrees():
        assert res.differential(s, t) == res_s2.differential(s, t)


@pytest.mark.timeout(300)
def test_checkpoints_identical(tmp_path):
    serial = er.construct('Joker', save_dir=str(tmp_path / 'serial'), threads=1)
    serial.resolve_through_degree(3, 8)
    concurrent = er.construct('Joker', save_dir=str(tmp_path / 'concurrent'), threads=4)
    concurrent.resolve_through_degree(3, 8)
    serial_files = read_checkpoints(str(tmp_path / 'serial'))
    assert len(serial_files) == 4 * 9
    assert serial_files == read_checkpoints(str(tmp_path / 'concurrent'))


@pytest.mark.timeout(300)
def test_concurrent_extension():
    res = er.construct('S_2', threads=4)
    res.resolve_through_degree(2, 5)
    res.resolve_through_degree(3, 10)
    for (s, t), n in res.ext_dimensions().items():
        assert n == EXT_S2.get((s, t), 0)


def grid(s_max, t_max):
    return [(s, t) for s in range(s_max + 1) for t in range(t_max + 1)]


def grid_dependencies(s, t):
    deps = []
    if s > 0:
        deps.append((s - 1, t))
    if t > 0:
        deps.append((s, t - 1))
    return deps


def test_scheduler_order():
    scheduler = er.BidegreeScheduler(grid(2, 2), grid_dependencies, lambda s, t: None)
    order = scheduler.order()
    assert order == sorted(grid(2, 2))
    position = {b: i for i, b in enumerate(order)}
    for b in order:
        for d in grid_dependencies(*b):
            assert position[d] < position[b]


@pytest.mark.timeout(60)
def test_scheduler_respects_dependencies(num_threads):
    done = set()
    lock = threading.Lock()
    violations = []

    def task(s, t):
        with lock:
            if any(d not in done for d in grid_dependencies(s, t)):
                violations.append((s, t))
            done.add((s, t))

    er.BidegreeScheduler(grid(4, 6), grid_dependencies, task, num_threads).run()
    assert violations == []
    assert done == set(grid(4, 6))


@pytest.mark.timeout(60)
def test_scheduler_propagates_errors(num_threads):
    started = []

    def task(s, t):
        started.append((s, t))
        if (s, t) == (1, 1):
            raise ArithmeticError('failed at (1, 1)')

    with pytest.raises(ArithmeticError):
        er.BidegreeScheduler(grid(3, 3), grid_dependencies, task, num_threads).run()
    # nothing that depends on (1, 1) was started
    assert (2, 1) not in started
    assert (1, 2) not in started


def test_scheduler_cycle():
    with pytest.raises(RuntimeError):
        er.BidegreeScheduler([(0, 0), (0, 1)], lambda s, t: [(0, 1 - t)], lambda s, t: None).run()
