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
"""The Steenrod algebra in the Adem (admissible monomial) basis

An Adem basis element is a tuple of tokens. A positive token n stands for Sq^n (p = 2) or P^n
(odd p), the token BOCKSTEIN stands for the Bockstein beta. A monomial is admissible if every
P^a is followed (after an optional beta, e = 1) by P^b with a >= p * b + e. At p = 2 the condition
reads a >= 2b for consecutive Sq^a Sq^b.

Products are concatenations reduced with the Adem relations. Reduction results are cached.
"""

from functools import lru_cache
from typing import Iterator, List, Tuple

from extresolver.names import *
from extresolver.algebra import SteenrodAlgebra
from extresolver.combinatorics import binomial, minus_one_to_the

BOCKSTEIN = 0

AdemElement = Tuple[int, ...]


def monomial_degree(p: int, monomial: AdemElement) -> int:
    if p == 2:
        return sum(monomial)
    q = 2 * (p - 1)
    return sum(1 if t == BOCKSTEIN else q * t for t in monomial)


def _admissible_2(degree: int, bound: int) -> Iterator[AdemElement]:
    # Admissible Sq^a1 Sq^a2 ... of the given degree with a1 <= bound
    if degree == 0:
        yield ()
        return
    for a in range(min(degree, bound), 0, -1):
        for rest in _admissible_2(degree - a, a // 2):
            yield (a,) + rest


def _admissible_odd(p: int, degree: int, bound: int, allow_bockstein: bool = True) -> Iterator[AdemElement]:
    # Admissible monomials of the given degree whose leading P^a has a <= bound.
    # bound limits a single leading P^a (an optional beta comes first and does not count).
    q = 2 * (p - 1)
    if degree == 0:
        yield ()
        return
    if allow_bockstein:
        for rest in _admissible_odd(p, degree - 1, bound, allow_bockstein=False):
            yield (BOCKSTEIN,) + rest
    for a in range(min(degree // q, bound), 0, -1):
        remaining = degree - q * a
        # next P^b without beta: a >= p b, with beta in between: a >= p b + 1
        for rest in _admissible_odd(p, remaining, a // p, allow_bockstein=False):
            yield (a,) + rest
        if remaining >= 1:
            for rest in _admissible_odd(p, remaining - 1, (a - 1) // p, allow_bockstein=False):
                yield (a, BOCKSTEIN) + rest


def adem_basis(p: int, degree: int) -> List[AdemElement]:
    if degree < 0:
        return []
    if p == 2:
        return sorted(_admissible_2(degree, degree))
    return sorted(_admissible_odd(p, degree, degree))


def adem_relation(p: int, a: int, b: int, bockstein: bool = False) -> List[Tuple[int, AdemElement]]:
    """Adem relation for the inadmissible Sq^a Sq^b, P^a P^b or P^a beta P^b

    Returns a list of (coefficient, monomial). Factors P^0 are dropped from the monomials.
    """
    result = []
    if p == 2:
        for j in range(a // 2 + 1):
            if binomial(2, b - 1 - j, a - 2 * j):
                result.append((1, tuple(x for x in (a + b - j, j) if x)))
        return result
    if not bockstein:
        for j in range(a // p + 1):
            c = binomial(p, (p - 1) * (b - j) - 1, a - p * j)
            if c:
                c = (c * minus_one_to_the(a + j, p)) % p
                result.append((c, tuple(x for x in (a + b - j, j) if x)))
        return result
    for j in range(a // p + 1):
        c = binomial(p, (p - 1) * (b - j), a - p * j)
        if c:
            c = (c * minus_one_to_the(a + j, p)) % p
            result.append((c, (BOCKSTEIN,) + tuple(x for x in (a + b - j, j) if x)))
    for j in range((a - 1) // p + 1):
        c = binomial(p, (p - 1) * (b - j) - 1, a - p * j - 1)
        if c:
            c = (c * minus_one_to_the(a + j + 1, p)) % p
            result.append((c, (a + b - j, BOCKSTEIN) + ((j,) if j else ())))
    return result


def _first_relation(p: int, monomial: AdemElement):
    """Position and kind of the first inadmissible pair, or None if the monomial is admissible"""
    for i, a in enumerate(monomial):
        if p != 2 and a == BOCKSTEIN:
            continue
        if i + 1 == len(monomial):
            return None
        b = monomial[i + 1]
        if p == 2:
            if a < 2 * b:
                return i, 2, False
        elif b != BOCKSTEIN:
            if a < p * b:
                return i, 2, False
        elif i + 2 < len(monomial) and a <= p * monomial[i + 2]:
            return i, 3, True
    return None


@lru_cache(maxsize=None)
def reduce_monomial(p: int, monomial: AdemElement) -> Tuple[Tuple[AdemElement, int], ...]:
    """Write an arbitrary monomial as a combination of admissible monomials

    Returns a tuple of (admissible monomial, coefficient) with non-zero coefficients.
    """
    if p != 2:
        for x, y in zip(monomial, monomial[1:]):
            if x == BOCKSTEIN and y == BOCKSTEIN:
                return ()
    relation = _first_relation(p, monomial)
    if relation is None:
        return ((monomial, 1),)
    i, length, bockstein = relation
    a, b = monomial[i], monomial[i + length - 1]
    prefix, suffix = monomial[:i], monomial[i + length:]
    result = {}
    for coeff, replacement in adem_relation(p, a, b, bockstein):
        for admissible, c in reduce_monomial(p, prefix + replacement + suffix):
            result[admissible] = (result.get(admissible, 0) + coeff * c) % p
    return tuple(sorted((k, v) for k, v in result.items() if v))


class AdemAlgebra(SteenrodAlgebra):
    """Steenrod algebra in the admissible monomial basis (tag ADEM)"""

    basis_type = ADEM
    MAGIC = 0x4144

    def _compute_basis(self, degree):
        return adem_basis(self.p, degree)

    def _multiply(self, r, s):
        return dict(reduce_monomial(self.p, r + s))

    def element_degree(self, element: AdemElement) -> int:
        return monomial_degree(self.p, element)

    def element_name(self, element: AdemElement) -> str:
        if not element:
            return '1'
        if not self.generic:
            return ' '.join('Sq' + str(t) for t in element)
        return ' '.join('b' if t == BOCKSTEIN else 'P' + str(t) for t in element)

    def _power(self, n):
        return (n,)

    def _bockstein(self):
        return (BOCKSTEIN,)

    def _milnor_factors(self, element):
        # Sq^n = Sq(n), P^n = P(n), beta = Q_0
        factors = []
        for t in element:
            if self.generic and t == BOCKSTEIN:
                factors.append((1, ((0,), ())))
            else:
                factors.append((self.q * t, ((), (t,))))
        return factors
