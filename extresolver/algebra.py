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
"""Graded algebra abstraction: the mod p Steenrod algebra in a fixed basis

The Steenrod algebra is graded and finite dimensional in each degree. Every degree carries an
ordered basis, and elements of a degree are numpy vectors over that basis. The order is fixed
when the basis of a degree is first computed and never changes afterwards, so basis elements
are referred to by (degree, index) everywhere else in the package.

Two bases (tagged MILNOR and ADEM) implement the same interface. Use steenrod_algebra() to
construct an algebra from its tag.
"""

from functools import lru_cache
from typing import Dict, Hashable, List, Optional, Tuple
import re
import numpy as np

from extresolver.names import *
from extresolver.combinatorics import valid_prime
from extresolver.errors import InputError
from extresolver.fp import FpMatrix, NoSolution, kernel_and_quasi_inverse, zero_vector


class SteenrodAlgebra(object):
    """Common part of the Milnor and Adem bases of the Steenrod algebra

    Subclasses provide the basis of each degree (_compute_basis), the product of two basis elements
    (_multiply), the degree and the name of a basis element and the elements Sq^n / P^n and beta.
    Everything else (indexing, products of general elements, generators, decompositions and
    conversion to the Milnor basis) is shared.

    Args:
        p (int):
            The prime.
    """

    basis_type = None
    # Identifies the basis in checkpoint files. Loading Milnor data into an Adem resolution must fail.
    MAGIC = 0

    def __init__(self, p: int):
        self.p = valid_prime(p)
        self.generic = p != 2
        self.q = 1 if p == 2 else 2 * (p - 1)

    def __str__(self):
        return self.config_string()

    def __repr__(self):
        return type(self).__name__ + '(' + str(self.p) + ')'

    @property
    def prime(self) -> int:
        return self.p

    @property
    def magic(self) -> int:
        return self.MAGIC

    @property
    def prefix(self) -> str:
        """Name of the reduced powers, 'Sq' at p = 2 and 'P' otherwise"""
        return 'P' if self.generic else 'Sq'

    def config_string(self) -> str:
        return 'p=' + str(self.p) + ', ' + str(self.basis_type)

    # To be implemented by the bases

    def _compute_basis(self, degree: int) -> List[Hashable]:
        raise NotImplementedError

    def _multiply(self, r: Hashable, s: Hashable) -> Dict[Hashable, int]:
        raise NotImplementedError

    def element_degree(self, element: Hashable) -> int:
        raise NotImplementedError

    def element_name(self, element: Hashable) -> str:
        raise NotImplementedError

    def _power(self, n: int) -> Hashable:
        """Sq^n (p = 2) or P^n (odd p)"""
        raise NotImplementedError

    def _bockstein(self) -> Hashable:
        raise NotImplementedError

    def _milnor_factors(self, element: Hashable) -> List[Tuple[int, Hashable]]:
        """The element as a product of Milnor basis elements, given as (degree, milnor element) pairs"""
        raise NotImplementedError

    # Basis

    @lru_cache(maxsize=None)
    def basis(self, degree: int) -> Tuple:
        """Ordered basis of the given degree (empty for negative degrees)"""
        if degree < 0:
            return ()
        return tuple(self._compute_basis(degree))

    def dimension(self, degree: int) -> int:
        return len(self.basis(degree))

    @lru_cache(maxsize=None)
    def _index_map(self, degree: int) -> Dict[Hashable, int]:
        return {b: i for i, b in enumerate(self.basis(degree))}

    def basis_index(self, degree: int, element: Hashable) -> int:
        try:
            return self._index_map(degree)[element]
        except KeyError:
            raise InputError('Element ' + self.element_name(element) + ' is not a basis element in degree ' +
                             str(degree) + '.', config=self.config_string()) from None

    def basis_element(self, degree: int, idx: int) -> Hashable:
        return self.basis(degree)[idx]

    # Products

    def _to_vector(self, degree: int, combination: Dict[Hashable, int]) -> np.ndarray:
        result = zero_vector(self.dimension(degree))
        index = self._index_map(degree)
        for element, coeff in combination.items():
            result[index[element]] = (result[index[element]] + coeff) % self.p
        return result

    @lru_cache(maxsize=None)
    def multiply_basis_elements(self, r_degree: int, r_idx: int, s_degree: int, s_idx: int) -> np.ndarray:
        """Product of two basis elements as a (read-only) vector in degree r_degree + s_degree"""
        r = self.basis(r_degree)[r_idx]
        s = self.basis(s_degree)[s_idx]
        result = self._to_vector(r_degree + s_degree, self._multiply(r, s))
        result.setflags(write=False)
        return result

    def multiply_basis_element_by_element(self, r_degree: int, r_idx: int, s_degree: int,
                                          s: np.ndarray) -> np.ndarray:
        result = zero_vector(self.dimension(r_degree + s_degree))
        for i in np.flatnonzero(s):
            result += int(s[i]) * self.multiply_basis_elements(r_degree, r_idx, s_degree, int(i))
        return result % self.p

    def multiply_element_by_element(self, r_degree: int, r: np.ndarray, s_degree: int, s: np.ndarray) -> np.ndarray:
        result = zero_vector(self.dimension(r_degree + s_degree))
        for i in np.flatnonzero(r):
            result += int(r[i]) * self.multiply_basis_element_by_element(r_degree, int(i), s_degree, s)
        return result % self.p

    # Printing

    def basis_element_to_string(self, degree: int, idx: int) -> str:
        return self.element_name(self.basis(degree)[idx])

    def element_to_string(self, degree: int, element: np.ndarray) -> str:
        terms = []
        for idx in np.flatnonzero(element):
            value = int(element[idx])
            name = self.basis_element_to_string(degree, int(idx))
            terms.append(name if value == 1 else str(value) + ' * ' + name)
        return ' + '.join(terms) if terms else '0'

    # Generators

    def is_generator_degree(self, degree: int) -> bool:
        if degree <= 0:
            return False
        if not self.generic:
            return degree & (degree - 1) == 0
        if degree == 1:
            return True
        if degree % self.q:
            return False
        n = degree // self.q
        while n % self.p == 0:
            n //= self.p
        return n == 1

    def _generator_element(self, degree: int) -> Optional[Hashable]:
        if not self.is_generator_degree(degree):
            return None
        if self.generic and degree == 1:
            return self._bockstein()
        return self._power(degree // self.q)

    def generators(self, degree: int) -> List[int]:
        """Indices of the algebra generators (indecomposables) in the given degree

        These are Sq^(2^i) for p = 2, and beta and P^(p^i) for odd primes.
        """
        element = self._generator_element(degree)
        if element is None:
            return []
        return [self.basis_index(degree, element)]

    def generator_name(self, degree: int, idx: int) -> str:
        if idx not in self.generators(degree):
            raise ValueError(self.basis_element_to_string(degree, idx) + ' is not an algebra generator.')
        if self.generic and degree == 1:
            return 'b'
        return self.prefix + str(degree // self.q)

    def parse_generator(self, name: str) -> Tuple[int, int]:
        """Parse 'Sq4' (p = 2), 'b' or 'P3' (odd p) into (degree, index) of a generator

        Raises:
            InputError: If name is not the name of an algebra generator.
        """
        name = name.strip()
        if self.generic and name in ('b', 'beta', 'Q0'):
            degree = 1
        else:
            match = re.fullmatch(r'(Sq|P)\^?(\d+)', name)
            if match is None or (match.group(1) == 'P') != self.generic:
                raise InputError('Cannot parse algebra operation "' + name + '".', config=self.config_string())
            degree = int(match.group(2)) * self.q
        if not self.is_generator_degree(degree):
            raise InputError('Operation "' + name + '" is not an algebra generator. Actions must be specified for ' +
                             ('Sq^(2^i)' if not self.generic else 'b and P^(p^i)') + ' only.',
                             config=self.config_string())
        return degree, self.generators(degree)[0]

    @lru_cache(maxsize=None)
    def _decompositions(self, degree: int) -> Tuple:
        # Rows are g * b for all generators g of degree 0 < |g| < degree and all b of degree - |g|,
        # followed by the generator of this degree itself (if any). These rows span the degree.
        labels = []
        rows = []
        for g_degree in range(1, degree):
            for g_idx in self.generators(g_degree):
                for b_idx in range(self.dimension(degree - g_degree)):
                    labels.append(((g_degree, g_idx), (degree - g_degree, b_idx)))
                    rows.append(self.multiply_basis_elements(g_degree, g_idx, degree - g_degree, b_idx))
        for g_idx in self.generators(degree):
            labels.append(((degree, g_idx), (0, 0)))
            row = zero_vector(self.dimension(degree))
            row[g_idx] = 1
            rows.append(row)
        matrix = FpMatrix.from_rows(self.p, rows, self.dimension(degree))
        _, solver = kernel_and_quasi_inverse(matrix)
        result = []
        for idx in range(self.dimension(degree)):
            target = zero_vector(self.dimension(degree))
            target[idx] = 1
            try:
                coefficients = solver.apply(target)
            except NoSolution:
                raise ArithmeticError('Basis element ' + self.basis_element_to_string(degree, idx) +
                                      ' is not generated by the algebra generators (' + self.config_string() + ').')
            result.append(tuple((int(coefficients[i]), labels[i][0], labels[i][1]) for i in np.flatnonzero(coefficients)))
        return tuple(result)

    def decompose_basis_element(self, degree: int, idx: int) -> List[Tuple[int, Tuple[int, int], Tuple[int, int]]]:
        """Write a basis element as a sum of products of a generator and a lower degree basis element

        Returns a list of triples (c, (g_degree, g_idx), (b_degree, b_idx)) such that the basis element
        equals the sum of c * g * b. The generator of the same degree appears with b = (0, 0), the unit.
        A generator decomposes as itself times the unit.
        """
        if degree <= 0:
            raise ValueError('Only elements of positive degree can be decomposed.')
        return list(self._decompositions(degree)[idx])

    # Milnor basis conversion

    @lru_cache(maxsize=None)
    def to_milnor(self, degree: int, idx: int) -> np.ndarray:
        """Express a basis element in the Milnor basis of the same prime"""
        from extresolver.milnor import MilnorAlgebra
        milnor = self if isinstance(self, MilnorAlgebra) else milnor_algebra(self.p)
        current_degree = 0
        current = zero_vector(1)
        current[0] = 1
        for factor_degree, factor in self._milnor_factors(self.basis(degree)[idx]):
            current = milnor.multiply_element_by_element(current_degree, current, factor_degree,
                                                         milnor._to_vector(factor_degree, {factor: 1}))
            current_degree += factor_degree
        current.setflags(write=False)
        return current


@lru_cache(maxsize=None)
def milnor_algebra(p: int):
    """Shared Milnor algebra used as a reference for basis conversion"""
    from extresolver.milnor import MilnorAlgebra
    return MilnorAlgebra(p)


def steenrod_algebra(p: int, basis: str = MILNOR) -> SteenrodAlgebra:
    """Construct the Steenrod algebra at the prime p in the given basis

    Args:
        p (int):
            A prime.

        basis (str):
            MILNOR ('milnor') or ADEM ('adem').

    Returns:
        (SteenrodAlgebra):
        A MilnorAlgebra or AdemAlgebra.
    """
    from extresolver.milnor import MilnorAlgebra
    from extresolver.adem import AdemAlgebra
    variants = {MILNOR: MilnorAlgebra, ADEM: AdemAlgebra}
    if basis not in variants:
        raise InputError('Unknown algebra basis "' + str(basis) + '". Use one of: ' + ', '.join(BASES) + '.')
    return variants[basis](p)


def change_of_basis(source: SteenrodAlgebra, target: SteenrodAlgebra, degree: int) -> FpMatrix:
    """Matrix converting vectors in the basis of source to the basis of target in the given degree

    Both algebras are converted to the Milnor basis, and the Milnor matrix of target is inverted.
    """
    if source.p != target.p:
        raise InputError('Cannot change basis between algebras at different primes (' + str(source.p) + ' and ' +
                         str(target.p) + ').')
    dim = source.dimension(degree)
    to_milnor_source = FpMatrix.from_rows(source.p, [source.to_milnor(degree, i) for i in range(dim)], dim)
    to_milnor_target = FpMatrix.from_rows(target.p, [target.to_milnor(degree, i) for i in range(dim)], dim)
    return to_milnor_source.compose(to_milnor_target.invert())
