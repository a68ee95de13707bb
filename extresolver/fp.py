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
"""Exact linear algebra over the prime field F_p

Matrices act on row vectors from the right: a matrix with n rows and m columns describes the
linear map F_p^n -> F_p^m, v -> v @ A. Rows are therefore indexed by the basis of the source
and columns by the basis of the target.

All reductions use the same pivot rule: columns are scanned from left to right and the first
row (at or below the current row) with a non-zero entry in the column becomes the pivot row.
The result is the reduced row echelon form, which is unique. Kernels, images and complements
derived from it are therefore canonical and do not depend on the order of operations.
"""

from typing import Iterable, List, Optional, Sequence
import numpy as np

from extresolver.combinatorics import valid_prime, inverse


class NoSolution(ArithmeticError):
    """The linear system x @ A = b has no solution"""


class SingularMatrix(ArithmeticError):
    """The matrix is not invertible"""


def fp_vector(p: int, values: Iterable[int]) -> np.ndarray:
    """Create a vector over F_p from a sequence of integers"""
    return np.asarray(list(values), dtype=np.int64) % p


def zero_vector(dim: int) -> np.ndarray:
    return np.zeros(dim, dtype=np.int64)


class FpMatrix(object):
    """Dense matrix over F_p backed by a numpy int64 array

    Args:
        p (int):
            A prime.

        rows, columns (int):
            Shape of the matrix.

        data (array-like, optional):
            Initial entries. They are reduced modulo p.
    """

    def __init__(self, p: int, rows: int, columns: int, data=None):
        self.p = valid_prime(p)
        if data is None:
            self.data = np.zeros((rows, columns), dtype=np.int64)
        else:
            self.data = np.array(data, dtype=np.int64).reshape((rows, columns)) % p

    @classmethod
    def from_rows(cls, p: int, rows: Sequence[Sequence[int]], columns: Optional[int] = None) -> 'FpMatrix':
        """Create a matrix from a list of row vectors. columns is required if rows is empty."""
        rows = [np.asarray(r, dtype=np.int64) for r in rows]
        if columns is None:
            if not rows:
                raise ValueError('Number of columns must be given for a matrix without rows.')
            columns = len(rows[0])
        if rows:
            return cls(p, len(rows), columns, np.vstack(rows))
        return cls(p, 0, columns)

    @classmethod
    def identity(cls, p: int, n: int) -> 'FpMatrix':
        return cls(p, n, n, np.eye(n, dtype=np.int64))

    @property
    def rows(self) -> int:
        return self.data.shape[0]

    @property
    def columns(self) -> int:
        return self.data.shape[1]

    def __getitem__(self, key):
        return self.data[key]

    def __len__(self):
        return self.rows

    def __iter__(self):
        return iter(self.data)

    def __eq__(self, other):
        if not isinstance(other, FpMatrix):
            return NotImplemented
        return self.p == other.p and self.data.shape == other.data.shape and bool(np.array_equal(self.data, other.data))

    def __repr__(self):
        return 'FpMatrix(p=' + str(self.p) + ', ' + str(self.to_list()) + ')'

    def copy(self) -> 'FpMatrix':
        return FpMatrix(self.p, self.rows, self.columns, self.data.copy())

    def to_list(self) -> List[List[int]]:
        return self.data.tolist()

    def is_zero(self) -> bool:
        return not self.data.any()

    def vstack(self, other: 'FpMatrix') -> 'FpMatrix':
        """Return a new matrix with the rows of other appended below the rows of self"""
        if other.columns != self.columns:
            raise ValueError('Cannot stack matrices with ' + str(self.columns) + ' and ' + str(other.columns) +
                             ' columns.')
        return FpMatrix(self.p, self.rows + other.rows, self.columns, np.vstack((self.data, other.data)))

    def hstack(self, other: 'FpMatrix') -> 'FpMatrix':
        if other.rows != self.rows:
            raise ValueError('Cannot concatenate matrices with ' + str(self.rows) + ' and ' + str(other.rows) + ' rows.')
        return FpMatrix(self.p, self.rows, self.columns + other.columns, np.hstack((self.data, other.data)))

    def apply(self, vector: np.ndarray) -> np.ndarray:
        """Image of the row vector under the map, i.e. vector @ self"""
        if self.rows == 0:
            return zero_vector(self.columns)
        return (np.asarray(vector, dtype=np.int64) @ self.data) % self.p

    def compose(self, other: 'FpMatrix') -> 'FpMatrix':
        """Matrix of the map 'first self, then other' (self @ other)"""
        if self.columns != other.rows:
            raise ValueError('Cannot compose ' + str(self.rows) + 'x' + str(self.columns) + ' with ' + str(other.rows) +
                             'x' + str(other.columns) + ' matrix.')
        if self.columns == 0:
            return FpMatrix(self.p, self.rows, other.columns)
        return FpMatrix(self.p, self.rows, other.columns, (self.data @ other.data) % self.p)

    def row_reduce(self) -> List[int]:
        """Bring the matrix into reduced row echelon form (in place)

        The lowest column index with a non-zero entry among the remaining rows always wins, and
        within a column the first such row becomes the pivot row.

        Returns:
            (list of int):
            pivots[col] is the row holding the pivot of column col, or -1 if col has no pivot.
        """
        m = self.data
        p = self.p
        rows, cols = m.shape
        pivots = [-1] * cols
        r = 0
        for c in range(cols):
            if r == rows:
                break
            nonzero = np.flatnonzero(m[r:, c])
            if len(nonzero) == 0:
                continue
            i = r + int(nonzero[0])
            if i != r:
                m[[r, i]] = m[[i, r]]
            pivot_value = int(m[r, c])
            if pivot_value != 1:
                m[r] = (m[r] * inverse(p, pivot_value)) % p
            column = m[:, c].copy()
            column[r] = 0
            others = np.flatnonzero(column)
            if len(others):
                m[others] = (m[others] - np.outer(column[others], m[r])) % p
            pivots[c] = r
            r += 1
        return pivots

    def rank(self) -> int:
        working = self.copy()
        return sum(1 for r in working.row_reduce() if r >= 0)

    def nullity(self) -> int:
        """Dimension of the kernel of v -> v @ A (number of rows minus rank)"""
        return self.rows - self.rank()

    def invert(self) -> 'FpMatrix':
        """Inverse of a square matrix, computed from the reduced form of [A | I]

        Raises:
            SingularMatrix: If the matrix is not invertible.
        """
        if self.rows != self.columns:
            raise ValueError('Matrix must be square for inversion: ' + str(self.rows) + 'x' + str(self.columns))
        n = self.rows
        augmented = self.hstack(FpMatrix.identity(self.p, n))
        pivots = augmented.row_reduce()
        if any(pivots[c] < 0 for c in range(n)):
            raise SingularMatrix('Matrix is singular (rank ' + str(sum(1 for c in range(n) if pivots[c] >= 0)) +
                                 ' < ' + str(n) + ')')
        return FpMatrix(self.p, n, n, augmented.data[:, n:])


def echelon_pivots(matrix: FpMatrix) -> List[int]:
    """Pivot columns of the row space of matrix, in increasing order (matrix is not modified)"""
    working = matrix.copy()
    pivots = working.row_reduce()
    return [c for c, r in enumerate(pivots) if r >= 0]


def row_space(matrix: FpMatrix) -> FpMatrix:
    """Canonical basis (reduced row echelon form without zero rows) of the row space"""
    working = matrix.copy()
    pivots = working.row_reduce()
    rank = sum(1 for r in pivots if r >= 0)
    return FpMatrix(matrix.p, rank, matrix.columns, working.data[:rank])


class QuasiInverse(object):
    """Solver for x @ A = b computed once from the reduced form of [A | I]

    Attributes:
        pivots (list of int):
            Pivot columns of the image of A.

        image (numpy.ndarray):
            The reduced image rows, one per pivot.

        preimage (numpy.ndarray):
            preimage[i] @ A == image[i].
    """

    def __init__(self, p: int, source_dim: int, target_dim: int, pivots: List[int], image: np.ndarray,
                 preimage: np.ndarray):
        self.p = p
        self.source_dim = source_dim
        self.target_dim = target_dim
        self.pivots = pivots
        self.image = image
        self.preimage = preimage

    def apply(self, target: np.ndarray) -> np.ndarray:
        """Return x with x @ A = target

        Raises:
            NoSolution: If target does not lie in the image of A.
        """
        target = np.asarray(target, dtype=np.int64) % self.p
        if len(target) != self.target_dim:
            raise ValueError('Target vector has length ' + str(len(target)) + ', expected ' + str(self.target_dim) + '.')
        if not self.pivots:
            if target.any():
                raise NoSolution('Target vector is not in the image of the zero map.')
            return zero_vector(self.source_dim)
        coefficients = target[self.pivots]
        residual = (target - coefficients @ self.image) % self.p
        if residual.any():
            raise NoSolution('Target vector is not in the image (residual in column ' +
                             str(int(np.flatnonzero(residual)[0])) + ').')
        return (coefficients @ self.preimage) % self.p


def kernel_and_quasi_inverse(matrix: FpMatrix):
    """Kernel basis and quasi-inverse of v -> v @ A from a single reduction of [A | I]

    Returns:
        (Tuple):
        kernel (FpMatrix in reduced row echelon form, rows span the kernel) and QuasiInverse.
    """
    p = matrix.p
    n, m = matrix.rows, matrix.columns
    augmented = matrix.hstack(FpMatrix.identity(p, n))
    pivots = augmented.row_reduce()
    image_pivots = [c for c in range(m) if pivots[c] >= 0]
    rank = len(image_pivots)
    kernel = FpMatrix(p, n - rank, n, augmented.data[rank:, m:])
    quasi_inverse = QuasiInverse(p, n, m, image_pivots, augmented.data[:rank, :m].copy(),
                                 augmented.data[:rank, m:].copy())
    return kernel, quasi_inverse


def kernel(matrix: FpMatrix) -> FpMatrix:
    """Basis of {v : v @ A = 0} in reduced row echelon form"""
    return kernel_and_quasi_inverse(matrix)[0]


def quasi_inverse(matrix: FpMatrix) -> QuasiInverse:
    return kernel_and_quasi_inverse(matrix)[1]


def solve(matrix: FpMatrix, target: np.ndarray) -> np.ndarray:
    """Find x with x @ A = target, raise NoSolution if there is none"""
    return quasi_inverse(matrix).apply(target)


def complement(image: FpMatrix, subspace: FpMatrix) -> FpMatrix:
    """Rows spanning a complement of span(image) inside span(subspace)

    subspace must be in reduced row echelon form and contain the row space of image. The rows of
    subspace whose pivot column is not a pivot column of the image are returned. Together with the
    image they span the subspace, since pivot columns of a subspace always contain the pivot columns
    of its subspaces.
    """
    if subspace.rows == 0:
        return FpMatrix(subspace.p, 0, subspace.columns)
    taken = set(echelon_pivots(image)) if image.rows else set()
    chosen = []
    for row in subspace.data:
        lead = int(np.flatnonzero(row)[0])
        if lead not in taken:
            chosen.append(row)
    return FpMatrix.from_rows(subspace.p, chosen, subspace.columns)
