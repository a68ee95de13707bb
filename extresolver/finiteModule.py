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
"""Class: FDModule, a finite dimensional module over the Steenrod algebra"""

from typing import Dict, List, Tuple
import logging
import numpy as np

from extresolver.algebra import SteenrodAlgebra
from extresolver.errors import InputError
from extresolver.fp import FpMatrix


class FDModule(object):
    """Finite dimensional graded module over a Steenrod algebra

    The module is given by a graded basis with names and by the action of the algebra generators
    (Sq^(2^i), or beta and P^(p^i)). The action of every other basis element of the algebra is derived
    from the decompositions of the algebra, i.e. if e = sum c * g * b, then e * m = sum c * g * (b * m).

    Example:
        module = FDModule(steenrod_algebra(2), 'C2', {'x0': 0, 'x1': 1})
        module.set_action(1, 0, 0, 0, [1])
        module.check_validity()

    Args:
        algebra (SteenrodAlgebra):
            The algebra acting on the module.

        name (str):
            Name of the module (used in messages and checkpoints).

        gens (dict):
            Names of basis elements and their degrees. Within a degree, the basis is ordered as
            the names are listed. Degrees must be non-negative integers.
    """

    def __init__(self, algebra: SteenrodAlgebra, name: str, gens: Dict[str, int]):
        self.algebra = algebra
        self.p = algebra.p
        self.name = name
        if not gens:
            raise InputError('Module ' + name + ' has no basis elements.', config=algebra.config_string())
        self._names = {}
        self._index = {}
        for gen_name, degree in gens.items():
            if not isinstance(degree, int) or isinstance(degree, bool):
                raise InputError('Degree of ' + str(gen_name) + ' is not an integer (' + repr(degree) +
                                 '). Ungraded modules are not supported.', config=algebra.config_string())
            if degree < 0:
                raise InputError('Degree of ' + str(gen_name) + ' is negative (' + str(degree) +
                                 '). Only modules concentrated in non-negative degrees can be resolved.',
                                 config=algebra.config_string())
            if gen_name in self._index:
                raise InputError('Duplicate basis element ' + str(gen_name) + '.', config=algebra.config_string())
            self._names.setdefault(degree, [])
            self._index[gen_name] = (degree, len(self._names[degree]))
            self._names[degree].append(gen_name)
        self.min_degree = min(self._names)
        self.max_degree = max(self._names)
        # explicit actions of generators: (op_degree, op_idx, in_degree) -> FpMatrix
        self._generator_actions = {}
        self._action_cache = {}

    def __str__(self):
        return self.name

    def __repr__(self):
        return 'FDModule(' + self.name + ', ' + self.algebra.config_string() + ')'

    @property
    def prime(self) -> int:
        return self.p

    def dimension(self, degree: int) -> int:
        return len(self._names.get(degree, ()))

    def total_dimension(self) -> int:
        return len(self._index)

    def degrees(self) -> List[int]:
        return sorted(self._names)

    def basis_element_name(self, degree: int, idx: int) -> str:
        return self._names[degree][idx]

    def basis_element_from_name(self, name: str) -> Tuple[int, int]:
        try:
            return self._index[name]
        except KeyError:
            raise InputError('Unknown basis element ' + str(name) + ' in module ' + self.name + '.',
                             config=self.algebra.config_string()) from None

    def gens(self) -> Dict[str, int]:
        """Basis element names and degrees, in basis order"""
        return {n: d for d in self.degrees() for n in self._names[d]}

    def element_to_string(self, degree: int, element: np.ndarray) -> str:
        terms = []
        for idx in np.flatnonzero(element):
            value = int(element[idx])
            terms.append(('' if value == 1 else str(value) + ' ') + self.basis_element_name(degree, int(idx)))
        return ' + '.join(terms) if terms else '0'

    def set_action(self, op_degree: int, op_idx: int, in_degree: int, in_idx: int, output) -> None:
        """Set the action of an algebra generator on a basis element

        Args:
            op_degree, op_idx (int):
                The algebra generator.

            in_degree, in_idx (int):
                The basis element acted on.

            output (array-like):
                The result, a vector over the basis in degree in_degree + op_degree.
        """
        if op_idx not in self.algebra.generators(op_degree):
            raise InputError('Actions can only be specified for algebra generators, not for ' +
                             self.algebra.basis_element_to_string(op_degree, op_idx) + '.',
                             config=self.algebra.config_string())
        out_degree = in_degree + op_degree
        output = np.asarray(output, dtype=np.int64) % self.p
        if len(output) != self.dimension(out_degree):
            raise InputError('Action of ' + self.algebra.generator_name(op_degree, op_idx) + ' on ' +
                             self.basis_element_name(in_degree, in_idx) + ' has ' + str(len(output)) +
                             ' entries, but the module has dimension ' + str(self.dimension(out_degree)) +
                             ' in degree ' + str(out_degree) + '.', config=self.algebra.config_string())
        key = (op_degree, op_idx, in_degree)
        if key not in self._generator_actions:
            self._generator_actions[key] = FpMatrix(self.p, self.dimension(in_degree), self.dimension(out_degree))
        self._generator_actions[key].data[in_idx] = output
        self._action_cache.clear()

    def action_matrix(self, op_degree: int, op_idx: int, in_degree: int) -> FpMatrix:
        """Matrix of m -> op * m from degree in_degree to in_degree + op_degree

        Rows are indexed by the basis in in_degree, columns by the basis in in_degree + op_degree.
        """
        key = (op_degree, op_idx, in_degree)
        if key in self._action_cache:
            return self._action_cache[key]
        in_dim = self.dimension(in_degree)
        out_dim = self.dimension(in_degree + op_degree)
        if op_degree == 0:
            result = FpMatrix.identity(self.p, in_dim)
        elif in_dim == 0 or out_dim == 0:
            result = FpMatrix(self.p, in_dim, out_dim)
        elif op_idx in self.algebra.generators(op_degree):
            result = self._generator_actions.get(key, FpMatrix(self.p, in_dim, out_dim))
        else:
            result = FpMatrix(self.p, in_dim, out_dim)
            for c, (g_degree, g_idx), (b_degree, b_idx) in self.algebra.decompose_basis_element(op_degree, op_idx):
                term = self.action_matrix(b_degree, b_idx, in_degree).compose(
                    self.action_matrix(g_degree, g_idx, in_degree + b_degree))
                result.data = (result.data + c * term.data) % self.p
        self._action_cache[key] = result
        return result

    def act_on_basis(self, op_degree: int, op_idx: int, in_degree: int, in_idx: int) -> np.ndarray:
        if self.dimension(in_degree) == 0:
            raise IndexError('Module ' + self.name + ' is zero in degree ' + str(in_degree) + '.')
        return self.action_matrix(op_degree, op_idx, in_degree)[in_idx].copy()

    def act(self, op_degree: int, op_idx: int, in_degree: int, element: np.ndarray) -> np.ndarray:
        return self.action_matrix(op_degree, op_idx, in_degree).apply(element)

    def check_validity(self) -> None:
        """Verify (a b) m = a (b m) for all positive degree basis elements a, b of the algebra

        Raises:
            InputError: If the given generator actions violate a relation of the algebra.
        """
        algebra = self.algebra
        span = self.max_degree - self.min_degree
        for in_degree in self.degrees():
            for b_degree in range(1, span + 1):
                for a_degree in range(1, span - b_degree + 1):
                    out_degree = in_degree + a_degree + b_degree
                    if self.dimension(out_degree) == 0:
                        continue
                    for b_idx in range(algebra.dimension(b_degree)):
                        b_matrix = self.action_matrix(b_degree, b_idx, in_degree)
                        for a_idx in range(algebra.dimension(a_degree)):
                            then_a = b_matrix.compose(self.action_matrix(a_degree, a_idx, in_degree + b_degree))
                            product = algebra.multiply_basis_elements(a_degree, a_idx, b_degree, b_idx)
                            direct = FpMatrix(self.p, self.dimension(in_degree), self.dimension(out_degree))
                            for e_idx in np.flatnonzero(product):
                                direct.data = (direct.data + int(product[e_idx]) *
                                               self.action_matrix(a_degree + b_degree, int(e_idx), in_degree).data) % self.p
                            if direct != then_a:
                                raise InputError('Module ' + self.name + ' does not satisfy the relations: (' +
                                                 algebra.basis_element_to_string(a_degree, a_idx) + ') (' +
                                                 algebra.basis_element_to_string(b_degree, b_idx) + ') acts on degree ' +
                                                 str(in_degree) + ' differently from the product ' +
                                                 algebra.element_to_string(a_degree + b_degree, product) + '.',
                                                 config=algebra.config_string())
        logging.debug('  Module ' + self.name + ' satisfies all relations up to degree ' + str(self.max_degree) + '.')

    def shift(self, shift: int) -> 'FDModule':
        """Copy of the module with all degrees shifted by shift"""
        gens = {n: d + shift for n, d in self.gens().items()}
        shifted = FDModule(self.algebra, self.name + '[' + str(shift) + ']', gens)
        for (op_degree, op_idx, in_degree), matrix in self._generator_actions.items():
            for in_idx in range(matrix.rows):
                shifted.set_action(op_degree, op_idx, in_degree + shift, in_idx, matrix[in_idx])
        return shifted
