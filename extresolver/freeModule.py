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
"""Class: FreeModule, the free modules of a resolution"""

from typing import Callable, List, Optional, Tuple
import numpy as np

from extresolver.algebra import SteenrodAlgebra
from extresolver.fp import FpMatrix, zero_vector


class FreeModule(object):
    """Free module over a Steenrod algebra with generators added degree by degree

    The number of generators in each degree is read through the callable gens_in_degree. Once read,
    the number of generators of a degree never changes. The basis of the module in degree t consists
    of all pairs 'algebra basis element times generator', ordered by generator degree, then generator
    index, then algebra basis index:

        (gen_degree, gen_idx, op_idx)   with  op_idx < dim A_(t - gen_degree)

    Elements are numpy vectors over this basis.

    Args:
        algebra (SteenrodAlgebra):
            The algebra.

        gens_in_degree (callable):
            gens_in_degree(t) returns the number of generators of degree t. It is only called for degrees
            whose generators are known.

        min_degree (int):
            Degree of the lowest possible generator.

        homological_degree (int, optional):
            Position s of the module in a resolution. Only used for names of generators.
    """

    def __init__(self, algebra: SteenrodAlgebra, gens_in_degree: Callable[[int], int], min_degree: int = 0,
                 homological_degree: Optional[int] = None, name: str = ''):
        self.algebra = algebra
        self.p = algebra.p
        self.min_degree = min_degree
        self.s = homological_degree
        self.name = name or ('F_' + str(homological_degree) if homological_degree is not None else 'F')
        self._gens_in_degree = gens_in_degree
        self._gen_counts = {}
        self._blocks = {}

    def __str__(self):
        return self.name

    def number_of_gens_in_degree(self, degree: int) -> int:
        if degree < self.min_degree:
            return 0
        if degree not in self._gen_counts:
            self._gen_counts[degree] = self._gens_in_degree(degree)
        return self._gen_counts[degree]

    def block_structure(self, degree: int, max_gen_degree: Optional[int] = None) -> Tuple[List[Tuple[int, int, int, int]], int]:
        """Blocks of the basis in degree, one per generator

        Args:
            degree (int):
                The degree.

            max_gen_degree (int, optional):
                Only include generators up to this degree (default: degree). The basis restricted to
                generators of lower degree is a prefix of the full basis.

        Returns:
            (Tuple):
            A list of (gen_degree, gen_idx, offset, size) and the total dimension.
        """
        top = degree if max_gen_degree is None else min(degree, max_gen_degree)
        key = (degree, top)
        if key not in self._blocks:
            blocks = []
            offset = 0
            for gen_degree in range(self.min_degree, top + 1):
                size = self.algebra.dimension(degree - gen_degree)
                for gen_idx in range(self.number_of_gens_in_degree(gen_degree)):
                    blocks.append((gen_degree, gen_idx, offset, size))
                    offset += size
            self._blocks[key] = (blocks, offset)
        return self._blocks[key]

    def dimension(self, degree: int, max_gen_degree: Optional[int] = None) -> int:
        if degree < self.min_degree:
            return 0
        return self.block_structure(degree, max_gen_degree)[1]

    def generator_offset(self, degree: int, gen_degree: int, gen_idx: int) -> int:
        """Index of 1 * generator (or of the first basis element on the generator) in degree"""
        for block_degree, block_idx, offset, _ in self.block_structure(degree)[0]:
            if block_degree == gen_degree and block_idx == gen_idx:
                return offset
        raise IndexError('Generator ' + self.generator_name(gen_degree, gen_idx) + ' does not exist in ' + self.name + '.')

    def basis_element(self, degree: int, idx: int) -> Tuple[int, int, int]:
        """(gen_degree, gen_idx, op_idx) of the basis element with index idx"""
        for gen_degree, gen_idx, offset, size in self.block_structure(degree)[0]:
            if offset <= idx < offset + size:
                return gen_degree, gen_idx, idx - offset
        raise IndexError('Index ' + str(idx) + ' out of range in degree ' + str(degree) + ' of ' + self.name + '.')

    def basis_index(self, degree: int, gen_degree: int, gen_idx: int, op_idx: int) -> int:
        return self.generator_offset(degree, gen_degree, gen_idx) + op_idx

    def generator_name(self, gen_degree: int, gen_idx: int) -> str:
        if self.s is None:
            return 'x_(' + str(gen_degree) + ',' + str(gen_idx) + ')'
        return 'x_(' + str(self.s) + ',' + str(gen_degree) + ',' + str(gen_idx) + ')'

    def basis_element_to_string(self, degree: int, idx: int) -> str:
        gen_degree, gen_idx, op_idx = self.basis_element(degree, idx)
        op = self.algebra.basis_element_to_string(degree - gen_degree, op_idx)
        return (op + ' ' if op != '1' else '') + self.generator_name(gen_degree, gen_idx)

    def element_to_string(self, degree: int, element: np.ndarray) -> str:
        terms = []
        for idx in np.flatnonzero(element):
            value = int(element[idx])
            terms.append(('' if value == 1 else str(value) + ' ') + self.basis_element_to_string(degree, int(idx)))
        return ' + '.join(terms) if terms else '0'

    def act(self, op_degree: int, op_idx: int, in_degree: int, element: np.ndarray) -> np.ndarray:
        """Product of the algebra basis element (op_degree, op_idx) with element (of degree in_degree)"""
        out_degree = in_degree + op_degree
        result = zero_vector(self.dimension(out_degree))
        if in_degree < self.min_degree:
            return result
        out_offsets = {(d, i): offset for d, i, offset, _ in self.block_structure(out_degree)[0]}
        for gen_degree, gen_idx, offset, size in self.block_structure(in_degree)[0]:
            block = element[offset:offset + size]
            if not block.any():
                continue
            product = self.algebra.multiply_basis_element_by_element(op_degree, op_idx, in_degree - gen_degree, block)
            start = out_offsets[(gen_degree, gen_idx)]
            result[start:start + len(product)] += product
        return result % self.p


def linear_map_matrix(source: FreeModule, target, degree: int, image: Callable[[int, int], np.ndarray],
                      shift: int = 0, max_gen_degree: Optional[int] = None):
    """Matrix of the A-linear map source -> target in degree, given by the images of the generators

    Args:
        source (FreeModule):
            The free source module.

        target (FreeModule or FDModule):
            Any module with act(op_degree, op_idx, in_degree, element) and dimension(degree).

        degree (int):
            Degree in the source.

        image (callable):
            image(gen_degree, gen_idx) is the image of a generator, a vector of target in degree
            gen_degree - shift.

        shift (int):
            The map lowers degrees by shift.

        max_gen_degree (int, optional):
            Only use the basis elements on generators up to this degree.

    Returns:
        (FpMatrix):
        One row per basis element of source (restricted by max_gen_degree).
    """

    blocks, dim = source.block_structure(degree, max_gen_degree)
    columns = target.dimension(degree - shift)
    matrix = FpMatrix(source.p, dim, columns)
    for gen_degree, gen_idx, offset, size in blocks:
        value = image(gen_degree, gen_idx)
        if not np.any(value):
            continue
        for op_idx in range(size):
            matrix.data[offset + op_idx] = target.act(degree - gen_degree, op_idx, gen_degree - shift, value)
    return matrix
