"""Test checkpoint files of the differentials."""
import os
import pytest
import extresolver as er
from extresolver.persistence import HEADER, checkpoint_path, decode_record, encode_record


def matrix():
    return er.FpMatrix.from_rows(3, [[0, 1, 2, 0], [2, 0, 0, 1]])


@pytest.mark.parametrize("compress", [False, True])
def test_round_trip(tmp_path, compress):
    path = er.save_checkpoint(str(tmp_path), 3, 0x4d4c, 2, 7, matrix(), compress=compress)
    assert path == checkpoint_path(str(tmp_path), 2, 7)
    assert os.listdir(os.path.dirname(path)) == ['2_7']
    assert er.load_checkpoint(str(tmp_path), 3, 0x4d4c, 2, 7) == matrix()


def test_empty_matrices():
    for rows, columns in [(0, 5), (3, 0), (0, 0), (2, 2)]:
        m = er.FpMatrix(2, rows, columns)
        assert decode_record(encode_record(2, 1, 0, 0, m), 2, 1, 0, 0) == m


def test_deterministic():
    assert encode_record(3, 1, 1, 1, matrix()) == encode_record(3, 1, 1, 1, matrix().copy())
    header = HEADER.unpack_from(encode_record(3, 1, 1, 1, matrix()))
    assert header[0] == b'EXTR'
    # rows, columns, non-zero entries
    assert header[7:10] == (2, 4, 4)


def test_missing_checkpoint(tmp_path):
    assert er.load_checkpoint(str(tmp_path), 2, 1, 0, 0) is None


def test_algebra_mismatch():
    data = encode_record(3, 0x4d4c, 1, 1, matrix())
    with pytest.raises(er.AlgebraMismatch):
        decode_record(data, 5, 0x4d4c, 1, 1)
    with pytest.raises(er.AlgebraMismatch):
        decode_record(data, 3, 0x4144, 1, 1)


def test_damaged_records():
    data = encode_record(3, 1, 1, 1, matrix())
    with pytest.raises(er.CheckpointError):
        decode_record(data[:10], 3, 1, 1, 1)
    with pytest.raises(er.CheckpointError):
        decode_record(b'XXXX' + data[4:], 3, 1, 1, 1)
    with pytest.raises(er.CheckpointError):
        decode_record(data, 3, 1, 1, 2)
    corrupt = bytearray(data)
    corrupt[-1] ^= 0xff
    with pytest.raises(er.CheckpointError):
        decode_record(bytes(corrupt), 3, 1, 1, 1)
    with pytest.raises(er.CheckpointError):
        decode_record(data[:-4], 3, 1, 1, 1)


def test_failed_writes_are_reported(tmp_path):
    blocker = tmp_path / 'file'
    blocker.write_text('not a directory')
    with pytest.raises(er.CheckpointError) as e:
        er.save_checkpoint(str(blocker), 2, 1, 0, 0, er.FpMatrix(2, 1, 1), retries=2)
    assert e.value.bidegree == (0, 0)


def test_resolution_reuses_checkpoints(tmp_path):
    save_dir = str(tmp_path)
    first = er.construct('S_2', save_dir=save_dir, threads=1, compress=True)
    first.resolve_through_degree(2, 6)
    path = checkpoint_path(save_dir, 2, 4)
    stamp = os.stat(path).st_mtime_ns
    second = er.construct('S_2', save_dir=save_dir, threads=1)
    second.resolve_through_degree(2, 8)
    assert os.stat(path).st_mtime_ns == stamp
    assert second.number_of_gens_in_bidegree(2, 8) == 1
    for b in first.computed_bidegrees():
        assert second.differential(*b) == first.differential(*b)


def test_resolution_rejects_other_algebra(tmp_path):
    save_dir = str(tmp_path)
    er.construct('S_2', save_dir=save_dir, threads=1).resolve_through_degree(1, 2)
    res = er.construct('S_2@adem', save_dir=save_dir, threads=1)
    with pytest.raises(er.AlgebraMismatch):
        res.resolve_through_degree(1, 2)


def test_failed_write_is_retried(tmp_path, monkeypatch):
    save_dir = str(tmp_path)
    calls = []

    def fail_once(save_dir, prime, magic, s, t, *args):
        if (s, t) == (1, 2) and not calls:
            calls.append((s, t))
            raise er.CheckpointError('Disk full.', bidegree=(s, t))
        return er.save_checkpoint(save_dir, prime, magic, s, t, *args)

    monkeypatch.setattr('extresolver.resolution.save_checkpoint', fail_once)
    res = er.construct('S_2', save_dir=save_dir, threads=1)
    with pytest.raises(er.CheckpointError):
        res.resolve_through_degree(2, 4)
    assert not res.has_computed_bidegree(1, 2)
    assert not os.path.exists(checkpoint_path(save_dir, 1, 2))
    res.resolve_through_degree(2, 4)
    assert calls == [(1, 2)]
    assert os.path.exists(checkpoint_path(save_dir, 1, 2))
    assert res.number_of_gens_in_bidegree(1, 2) == 1
    assert res.number_of_gens_in_bidegree(2, 4) == 1
