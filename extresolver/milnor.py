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
"""The Steenrod algebra in the Milnor basis

A Milnor basis element is a pair (q_part, p_part) of tuples. q_part is the increasing tuple of
indices of the exterior generators Q_i (always empty at p = 2) and p_part = (r_1, ..., r_n) is the
exponent sequence of P(R) without trailing zeros. At p = 2, Sq(R) is written as ((), R).

Products of P parts are computed by summing over Milnor matrices, Q parts are moved to the left
with the relation P(R) Q_k = Q_k P(R) + sum_i Q_(k+i) P(R - p^k e_i).
"""

from functools import lru_cache
from typing import Dict, Iterator, List, Tuple

from extresolver.names import *
from extresolver.algebra import SteenrodAlgebra
from extresolver.combinatorics import minus_one_to_the, multinomial, tau_degrees, xi_degrees

MilnorElement = Tuple[Tuple[int, ...], Tuple[int, ...]]


def _trim(sequence) -> Tuple[int, ...]:
    sequence = list(sequence)
    while sequence and sequence[-1] == 0:
        sequence.pop()
    return tuple(sequence)


def _weighted_partitions(n: int, weights: List[int]) -> Iterator[Tuple[int, ...]]:
    """All (r_1, ..., r_k) with sum r_i * weights[i] == n, k = len(weights)"""
    if not weights:
        if n == 0:
            yield ()
        return
    w = weights[-1]
    for r in range(n // w, -1, -1):
        for rest in _weighted_partitions(n - r * w, weights[:-1]):
            yield rest + (r,)


def _exterior_parts(p: int, degree: int) -> Iterator[Tuple[Tuple[int, ...], int]]:
    """Increasing index tuples of Q_i (odd p) with total degree at most degree, with their degree"""
    if p == 2:
        yield (), 0
        return
    n = 0
    while 2 * p**n - 1 <= degree:
        n += 1
    taus = tau_degrees(p, n)

    def subsets(start, remaining):
        yield (), 0
        for i in range(start, n):
            if taus[i] <= remaining:
                for rest, d in subsets(i + 1, remaining - taus[i]):
                    yield (i,) + rest, taus[i] + d

    yield from subsets(0, degree)


def milnor_basis(p: int, degree: int) -> List[MilnorElement]:
    q = 1 if p == 2 else 2 * (p - 1)
    result = []
    for q_part, q_degree in _exterior_parts(p, degree):
        remaining = degree - q_degree
        if remaining % q:
            continue
        remaining //= q
        n = 0
        while (p**(n + 1) - 1) // (p - 1) <= remaining:
            n += 1
        for r in _weighted_partitions(remaining, xi_degrees(p, n)):
            result.append((q_part, _trim(r)))
    return sorted(result)


def _row_choices(total: int, column_left: Tuple[int, ...], powers: List[int], j: int = 0) -> Iterator[Tuple[int, ...]]:
    if j == len(powers):
        yield ()
        return
    for x in range(min(column_left[j], total // powers[j]) + 1):
        for rest in _row_choices(total - x * powers[j], column_left, powers, j + 1):
            yield (x,) + rest


def milnor_matrices(p: int, r: Tuple[int, ...], s: Tuple[int, ...]) -> Iterator[List[List[int]]]:
    """Milnor matrices for the product P(r) P(s)

    Matrices X = (x_ij), i = 0..len(r), j = 0..len(s), with x_00 ignored, such that
    sum_j p^j x_ij = r_i for every row i >= 1 and sum_i x_ij = s_j for every column j >= 1.
    """
    rows, cols = len(r), len(s)
    powers = [p**j for j in range(1, cols + 1)]

    def fill(i, column_left):
        if i == rows:
            yield [], column_left
            return
        for row in _row_choices(r[i], column_left, powers):
            left = tuple(c - x for c, x in zip(column_left, row))
            for rest, final in fill(i + 1, left):
                yield [row] + rest, final

    for inner, left in fill(0, tuple(s)):
        matrix = [[0] + list(left)]
        for i in range(rows):
            used = sum(pw * x for pw, x in zip(powers, inner[i]))
            matrix.append([r[i] - used] + list(inner[i]))
        yield matrix


@lru_cache(maxsize=None)
def p_part_product(p: int, r: Tuple[int, ...], s: Tuple[int, ...]) -> Tuple[Tuple[Tuple[int, ...], int], ...]:
    """P(r) * P(s) as a tuple of (T, coefficient) with non-zero coefficients"""
    rows, cols = len(r), len(s)
    result = {}
    for matrix in milnor_matrices(p, r, s):
        coeff = 1
        t = []
        for n in range(1, rows + cols + 1):
            diagonal = [matrix[i][n - i] for i in range(max(0, n - cols), min(n, rows) + 1)]
            c = multinomial(p, diagonal)
            if c == 0:
                coeff = 0
                break
            coeff = (coeff * c) % p
            t.append(sum(diagonal))
        if coeff:
            key = _trim(t)
            result[key] = (result.get(key, 0) + coeff) % p
    return tuple(sorted((k, v) for k, v in result.items() if v))


def _move_q_left(p: int, element: MilnorElement, k: int) -> Dict[MilnorElement, int]:
    """(Q_e P(R)) * Q_k written as a combination of basis elements Q_e' P(R')"""
    q_part, p_part = element
    candidates = [(k, p_part)]
    for i, r_i in enumerate(p_part, start=1):
        if r_i >= p**k:
            reduced = list(p_part)
            reduced[i - 1] -= p**k
            candidates.append((k + i, _trim(reduced)))
    result = {}
    for index, new_p in candidates:
        if index in q_part:
            continue
        # Q_index is moved past all exterior generators with larger index
        sign = minus_one_to_the(sum(1 for x in q_part if x > index), p)
        key = (tuple(sorted(q_part + (index,))), new_p)
        result[key] = (result.get(key, 0) + sign) % p
    return result


@lru_cache(maxsize=None)
def milnor_product(p: int, r: MilnorElement, s: MilnorElement) -> Tuple[Tuple[MilnorElement, int], ...]:
    """Product of two Milnor basis elements as a tuple of (element, coefficient)"""
    answer = {r: 1}
    for k in s[0]:
        moved = {}
        for element, coeff in answer.items():
            for key, c in _move_q_left(p, element, k).items():
                moved[key] = (moved.get(key, 0) + coeff * c) % p
        answer = {key: c for key, c in moved.items() if c}
    result = {}
    for (q_part, p_part), coeff in answer.items():
        for t, c in p_part_product(p, p_part, s[1]):
            key = (q_part, t)
            result[key] = (result.get(key, 0) + coeff * c) % p
    return tuple(sorted((k, v) for k, v in result.items() if v))


class MilnorAlgebra(SteenrodAlgebra):
    """Steenrod algebra in the Milnor basis (tag MILNOR)"""

    basis_type = MILNOR
    MAGIC = 0x4d4c

    def _compute_basis(self, degree):
        return milnor_basis(self.p, degree)

    def _multiply(self, r, s):
        return dict(milnor_product(self.p, r, s))

    def element_degree(self, element: MilnorElement) -> int:
        q_part, p_part = element
        degree = sum(2 * self.p**i - 1 for i in q_part)
        return degree + self.q * sum(r * w for r, w in zip(p_part, xi_degrees(self.p, len(p_part))))

    def element_name(self, element: MilnorElement) -> str:
        q_part, p_part = element
        if not q_part and not p_part:
            return '1'
        parts = ['Q_' + str(i) for i in q_part]
        if p_part:
            parts.append(self.prefix + '(' + ','.join(str(r) for r in p_part) + ')')
        return ' '.join(parts)

    def _power(self, n):
        return (), (n,)

    def _bockstein(self):
        return (0,), ()

    def _milnor_factors(self, element):
        return [(self.element_degree(element), element)]
