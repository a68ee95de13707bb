#!/usr/bin/env python3
#
# Copyright 2022 Max Planck Insitute Magdeburg
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
#
#
"""Checkpoint files for the differentials of a resolution

One file per bidegree is written to <save_dir>/differentials/<s>_<t>. A file is a fixed size
little-endian header followed by the non-zero entries of the differential matrix (generators x
target basis) in coordinate format:

    magic       4s   b'EXTR'
    version     H
    flags       H    bit 0: body is zlib compressed
    prime       I
    algebra     I    magic number of the algebra basis
    s, t        i i
    num_gens    I    rows
    target_dim  I    columns
    nnz         I    number of stored entries
    checksum    I    adler32 of the (stored) body

    body        nnz x uint32 rows, nnz x uint32 columns, nnz x uint32 values

Entries are stored in row-major order, so equal matrices always produce identical files.
"""

from typing import Optional
import logging
import os
import struct
import tempfile
import zlib
import numpy as np
from scipy import sparse

from extresolver.errors import AlgebraMismatch, CheckpointError
from extresolver.fp import FpMatrix

MAGIC = b'EXTR'
VERSION = 1
FLAG_ZLIB = 1
HEADER = struct.Struct('<4sHHIIiiIIII')


def checkpoint_path(save_dir: str, s: int, t: int) -> str:
    return os.path.join(save_dir, 'differentials', str(s) + '_' + str(t))


def encode_record(prime: int, algebra_magic: int, s: int, t: int, differentials: FpMatrix,
                  compress: bool = False) -> bytes:
    """Serialize the differentials of bidegree (s, t)"""
    rows, columns = differentials.rows, differentials.columns
    if differentials.data.size:
        coo = sparse.coo_matrix(differentials.data)
        order = np.lexsort((coo.col, coo.row))
        row, col, val = coo.row[order], coo.col[order], coo.data[order]
    else:
        row = col = val = np.zeros(0, dtype=np.int64)
    body = (row.astype('<u4').tobytes() + col.astype('<u4').tobytes() + val.astype('<u4').tobytes())
    flags = 0
    if compress:
        body = zlib.compress(body, 9)
        flags |= FLAG_ZLIB
    header = HEADER.pack(MAGIC, VERSION, flags, prime, algebra_magic, s, t, rows, columns, len(val),
                         zlib.adler32(body) & 0xffffffff)
    return header + body


def decode_record(data: bytes, prime: int, algebra_magic: int, s: int, t: int,
                  path: str = '<memory>', config: Optional[str] = None) -> FpMatrix:
    """Parse a checkpoint record and verify that it belongs to (prime, algebra, s, t)

    Raises:
        AlgebraMismatch: If the record was written for another prime or algebra basis.
        CheckpointError: If the record is damaged or belongs to another bidegree.
    """
    if len(data) < HEADER.size:
        raise CheckpointError('Checkpoint ' + path + ' is truncated.', bidegree=(s, t), config=config)
    (magic, version, flags, file_prime, file_algebra, file_s, file_t, rows, columns, nnz,
     checksum) = HEADER.unpack_from(data)
    if magic != MAGIC:
        raise CheckpointError('File ' + path + ' is not a checkpoint (bad magic ' + repr(magic) + ').',
                              bidegree=(s, t), config=config)
    if version != VERSION:
        raise CheckpointError('Checkpoint ' + path + ' has unsupported version ' + str(version) + '.',
                              bidegree=(s, t), config=config)
    if flags & ~FLAG_ZLIB:
        raise CheckpointError('Checkpoint ' + path + ' has unknown flags ' + hex(flags) + '.',
                              bidegree=(s, t), config=config)
    if file_prime != prime or file_algebra != algebra_magic:
        raise AlgebraMismatch('Checkpoint ' + path + ' was written for p=' + str(file_prime) + ' and algebra ' +
                              hex(file_algebra) + ', expected p=' + str(prime) + ' and algebra ' +
                              hex(algebra_magic) + '.', bidegree=(s, t), config=config)
    if (file_s, file_t) != (s, t):
        raise CheckpointError('Checkpoint ' + path + ' holds bidegree (' + str(file_s) + ', ' + str(file_t) + ').',
                              bidegree=(s, t), config=config)
    body = data[HEADER.size:]
    if zlib.adler32(body) & 0xffffffff != checksum:
        raise CheckpointError('Checksum mismatch in checkpoint ' + path + '.', bidegree=(s, t), config=config)
    if flags & FLAG_ZLIB:
        try:
            body = zlib.decompress(body)
        except zlib.error as e:
            raise CheckpointError('Cannot decompress checkpoint ' + path + ': ' + str(e), bidegree=(s, t),
                                  config=config) from e
    if len(body) != 12 * nnz:
        raise CheckpointError('Checkpoint ' + path + ' has ' + str(len(body)) + ' body bytes, expected ' +
                              str(12 * nnz) + '.', bidegree=(s, t), config=config)
    entries = np.frombuffer(body, dtype='<u4').astype(np.int64).reshape((3, nnz))
    row, col, val = entries
    if nnz and (row.max() >= rows or col.max() >= columns or val.max() >= prime):
        raise CheckpointError('Checkpoint ' + path + ' has entries outside of its ' + str(rows) + 'x' + str(columns) +
                              ' shape.', bidegree=(s, t), config=config)
    if rows == 0 or columns == 0:
        return FpMatrix(prime, rows, columns)
    dense = sparse.coo_matrix((val, (row, col)), shape=(rows, columns)).toarray()
    return FpMatrix(prime, rows, columns, dense)


def save_checkpoint(save_dir: str, prime: int, algebra_magic: int, s: int, t: int, differentials: FpMatrix,
                    compress: bool = False, retries: int = 3, config: Optional[str] = None) -> str:
    """Write the checkpoint of (s, t) atomically (temporary file, then rename)

    A failed write is retried up to retries times.

    Raises:
        CheckpointError: If all attempts failed.
    """
    path = checkpoint_path(save_dir, s, t)
    directory = os.path.dirname(path)
    data = encode_record(prime, algebra_magic, s, t, differentials, compress)
    last_error = None
    for attempt in range(retries + 1):
        tmp = None
        try:
            os.makedirs(directory, exist_ok=True)
            descriptor, tmp = tempfile.mkstemp(dir=directory, prefix='.' + str(s) + '_' + str(t) + '.')
            with os.fdopen(descriptor, mode='wb') as handle:
                handle.write(data)
            os.replace(tmp, path)
            return path
        except OSError as e:
            last_error = e
            if tmp is not None and os.path.isfile(tmp):
                os.remove(tmp)
            logging.warning('  Writing checkpoint ' + path + ' failed (attempt ' + str(attempt + 1) + ' of ' +
                            str(retries + 1) + '): ' + str(e))
    raise CheckpointError('Could not write checkpoint ' + path + ': ' + str(last_error), bidegree=(s, t),
                          config=config) from last_error


def load_checkpoint(save_dir: str, prime: int, algebra_magic: int, s: int, t: int,
                    config: Optional[str] = None) -> Optional[FpMatrix]:
    """Differentials of (s, t) from the save directory, None if there is no checkpoint"""
    path = checkpoint_path(save_dir, s, t)
    if not os.path.isfile(path):
        return None
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise CheckpointError('Could not read checkpoint ' + path + ': ' + str(e), bidegree=(s, t),
                              config=config) from e
    return decode_record(data, prime, algebra_magic, s, t, path, config)
