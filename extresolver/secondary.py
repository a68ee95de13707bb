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
"""Chain maps and chain homotopies between resolutions: products and Massey products

An Ext class x in Ext^(s,t)(M, N) is lifted to a chain map f_x between the resolutions of M and N
(ResolutionHomomorphism). Composing with f_x induces the Yoneda product on Ext. If a composite of
two lifts f_y f_z is null-homotopic (the product y z vanishes), ChainHomotopy computes a homotopy
H with d H + H d = f_y f_z, one bidegree at a time with the quasi-inverses of the resolution. The
Massey product <x, y, z> is represented by the composite of x with H.

Classes are given as triples (s, t, coefficients), where coefficients is a vector over the generators
of the resolution in bidegree (s, t).
"""

from typing import Optional, Sequence, Tuple
import logging
import numpy as np

from extresolver.errors import InputError
from extresolver.fp import FpMatrix, NoSolution, fp_vector
from extresolver.freeModule import linear_map_matrix
from extresolver.resolution import Resolution

ExtClass = Tuple[int, int, Sequence[int]]


def _target_dimension(resolution: Resolution, s: int, t: int) -> int:
    """Dimension of F_s in degree t, which must be computed"""
    if s < 0 or t < resolution.min_degree:
        return 0
    if not resolution.has_computed_bidegree(s, t):
        raise InputError('Bidegree is needed but has not been computed.', bidegree=(s, t), config=resolution.config)
    return resolution.free_module(s).dimension(t)


def _source_gens(resolution: Resolution, s: int, t: int) -> int:
    if t < resolution.min_degree:
        return 0
    num_gens = resolution.number_of_gens_in_bidegree(s, t)
    if num_gens is None:
        raise InputError('Bidegree is needed but has not been computed.', bidegree=(s, t), config=resolution.config)
    return num_gens


def is_unit(resolution: Resolution) -> bool:
    """Whether the resolution resolves the ground field F_p (in degree 0)"""
    return resolution.module.total_dimension() == 1 and resolution.module.dimension(0) == 1


class ResolutionHomomorphism(object):
    """Chain map from the resolution of M to the resolution of N, of bidegree (shift_s, shift_t)

    f maps F_s of source to F_(s - shift_s) of target and lowers the internal degree by shift_t. It is
    determined by a map from F_(shift_s) of source to (the shift_t-fold suspension of) N, which is
    lifted through the augmentation and then along the differentials.

    Args:
        name (str):
            Name of the map, e.g. 'h0'.

        source, target (Resolution):
            The resolutions of M and N.

        shift_s, shift_t (int):
            Bidegree of the map.
    """

    def __init__(self, name: str, source: Resolution, target: Resolution, shift_s: int, shift_t: int):
        if source.p != target.p:
            raise InputError('Source and target must be defined over the same prime.')
        if shift_s < 0:
            raise InputError('Homological shift must be non-negative, got ' + str(shift_s) + '.')
        self.name = name
        self.source = source
        self.target = target
        self.p = source.p
        self.shift_s = shift_s
        self.shift_t = shift_t
        # (s, t) -> FpMatrix, rows are images of the generators of source at (s, t)
        self._images = {}

    def __str__(self):
        return self.name

    @classmethod
    def from_class(cls, name: str, source: Resolution, target: Resolution, s: int, t: int,
                   coefficients: Sequence[int]) -> 'ResolutionHomomorphism':
        """Lift of the class sum_i coefficients[i] x_(s,t,i) of Ext(M, F_p)

        target must resolve the ground field.
        """
        if not is_unit(target):
            raise InputError('Target of ' + name + ' does not resolve the ground field.', config=target.config)
        num_gens = _source_gens(source, s, t)
        coefficients = fp_vector(source.p, coefficients)
        if len(coefficients) != num_gens:
            raise InputError('Class ' + name + ' has ' + str(len(coefficients)) + ' coefficients, but there are ' +
                             str(num_gens) + ' generators.', bidegree=(s, t), config=source.config)
        hom = cls(name, source, target, s, t)
        hom.extend_step(s, t, FpMatrix(source.p, num_gens, 1, coefficients))
        return hom

    def has_computed(self, s: int, t: int) -> bool:
        return (s, t) in self._images

    def image(self, s: int, gen_degree: int, gen_idx: int) -> np.ndarray:
        """Image of the generator x_(s, gen_degree, gen_idx), a vector of F_(s - shift_s) in degree gen_degree - shift_t"""
        try:
            return self._images[(s, gen_degree)][gen_idx]
        except KeyError:
            raise InputError(self.name + ' has not been extended to this bidegree.', bidegree=(s, gen_degree),
                             config=self.source.config) from None

    def generator_images(self, s: int, t: int) -> FpMatrix:
        """Images of all generators of F_s in degree t, one row per generator"""
        if (s, t) not in self._images:
            raise InputError(self.name + ' has not been extended to this bidegree.', bidegree=(s, t),
                             config=self.source.config)
        return self._images[(s, t)]

    def get_map(self, s: int):
        """f on the generators of F_s, as a function (gen_degree, gen_idx) -> vector"""
        return lambda gen_degree, gen_idx: self.image(s, gen_degree, gen_idx)

    def map_matrix(self, s: int, t: int) -> FpMatrix:
        """Matrix of f: F_s -> F_(s - shift_s) in degree t (source basis x target basis)"""
        target_s = s - self.shift_s
        if target_s < 0:
            raise InputError(self.name + ' is not defined on F_' + str(s) + '.', config=self.source.config)
        _target_dimension(self.target, target_s, t - self.shift_t)
        return linear_map_matrix(self.source.free_module(s), self.target.free_module(target_s), t, self.get_map(s),
                                 shift=self.shift_t)

    def extend_step(self, s: int, t: int, extra: Optional[FpMatrix] = None) -> None:
        """Compute the images of the generators of source at (s, t)

        Args:
            s, t (int):
                The bidegree in the source.

            extra (FpMatrix, optional):
                Only for s == shift_s: the values of the map on the generators, as elements of N in degree
                t - shift_t (rows are generators). Defaults to zero.
        """
        if (s, t) in self._images:
            return
        if s < self.shift_s:
            raise InputError(self.name + ' is not defined on F_' + str(s) + '.', config=self.source.config)
        num_gens = _source_gens(self.source, s, t)
        target_s = s - self.shift_s
        out_degree = t - self.shift_t
        out_dim = _target_dimension(self.target, target_s, out_degree)
        images = FpMatrix(self.p, num_gens, out_dim)
        if num_gens and out_dim:
            if s == self.shift_s:
                if extra is not None:
                    module_dim = self.target.module.dimension(out_degree)
                    if extra.rows != num_gens or extra.columns != module_dim:
                        raise InputError('Values of ' + self.name + ' must form a ' + str(num_gens) + 'x' +
                                         str(module_dim) + ' matrix.', bidegree=(s, t), config=self.source.config)
                    lift = self.target.quasi_inverse(0, out_degree)
                    for i in range(num_gens):
                        images.data[i] = lift.apply(extra[i])
            else:
                boundaries = self.source.differential(s, t).compose(self.map_matrix(s - 1, t))
                lift = self.target.quasi_inverse(target_s, out_degree)
                for i in range(num_gens):
                    images.data[i] = lift.apply(boundaries[i])
        elif extra is not None and s == self.shift_s and extra.data.any():
            raise InputError('Values of ' + self.name + ' lie in a degree where the target vanishes.',
                             bidegree=(s, t), config=self.source.config)
        self._images[(s, t)] = images

    def extend_through_degree(self, s_max: int, t_max: int) -> None:
        """Extend the map to all source bidegrees (s, t) with s <= s_max and t <= t_max"""
        for s in range(self.shift_s, s_max + 1):
            for t in range(self.source.min_degree, t_max + 1):
                self.extend_step(s, t)
        logging.debug('  Extended ' + self.name + ' through (s, t) = (' + str(s_max) + ', ' + str(t_max) + ').')

    def hom_k(self, s: int, t: int) -> FpMatrix:
        """Induced map Ext^(s - shift_s, t - shift_t)(N, F_p) -> Ext^(s,t)(M, F_p)

        Rows are the generators of target in (s - shift_s, t - shift_t), columns the generators of source
        in (s, t). The row of a class y is the product of y with the class of this map.
        """
        target_s, target_t = s - self.shift_s, t - self.shift_t
        num_gens = _source_gens(self.source, s, t)
        target_gens = 0 if target_s < 0 else _source_gens(self.target, target_s, target_t)
        result = FpMatrix(self.p, target_gens, num_gens)
        if not target_gens or not num_gens:
            return result
        self.extend_step(s, t)
        start = self.target.free_module(target_s).generator_offset(target_t, target_t, 0)
        # 1 * x_(target_s, target_t, j) sits at start + j
        result.data = self._images[(s, t)].data[:, start:start + target_gens].T.copy()
        return result

    def act(self, s: int, t: int, y: Sequence[int]) -> np.ndarray:
        """Product of a class y of the target at (s - shift_s, t - shift_t) with this map"""
        return self.hom_k(s, t).apply(fp_vector(self.p, y))


class ChainHomotopy(object):
    """Null-homotopy of the composite left o right of two chain maps

    right goes from the resolution A to B and left from B to C. The homotopy H maps F_n of A to
    F_(n - shift_s + 1) of C, where (shift_s, shift_t) is the sum of the shifts of left and right, and
    satisfies

        d H(g) = left(right(g)) - H(d g)

    on generators g. H is zero on F_(shift_s - 1), so the homotopy exists exactly if the product of the
    two classes vanishes. Otherwise NoSolution is raised at the first bidegree where it fails.

    Args:
        left, right (ResolutionHomomorphism):
            The maps, right.target must be left.source.
    """

    def __init__(self, left: ResolutionHomomorphism, right: ResolutionHomomorphism):
        if right.target is not left.source:
            raise InputError('Cannot compose ' + left.name + ' with ' + right.name + ': resolutions do not match.')
        self.left = left
        self.right = right
        self.source = right.source
        self.target = left.target
        self.p = self.source.p
        self.shift_s = left.shift_s + right.shift_s
        self.shift_t = left.shift_t + right.shift_t
        self.name = 'H(' + left.name + ' o ' + right.name + ')'
        self._images = {}

    def image(self, n: int, gen_degree: int, gen_idx: int) -> np.ndarray:
        try:
            return self._images[(n, gen_degree)][gen_idx]
        except KeyError:
            raise InputError(self.name + ' has not been extended to this bidegree.', bidegree=(n, gen_degree),
                             config=self.source.config) from None

    def map_matrix(self, n: int, t: int) -> FpMatrix:
        """Matrix of H: F_n -> F_(n - shift_s + 1) in degree t"""
        out_s = n - self.shift_s + 1
        out_dim = _target_dimension(self.target, out_s, t - self.shift_t)
        if n < self.shift_s:
            return FpMatrix(self.p, self.source.free_module(n).dimension(t), out_dim)
        return linear_map_matrix(self.source.free_module(n), self.target.free_module(out_s), t,
                                 lambda d, i: self.image(n, d, i), shift=self.shift_t)

    def composite(self, n: int, t: int) -> FpMatrix:
        """left o right on the generators of F_n in degree t (one row per generator)"""
        left = self.left.map_matrix(n - self.right.shift_s, t - self.right.shift_t)
        return self.right.generator_images(n, t).compose(left)

    def extend_step(self, n: int, t: int) -> None:
        if (n, t) in self._images:
            return
        num_gens = _source_gens(self.source, n, t)
        out_s = n - self.shift_s + 1
        out_degree = t - self.shift_t
        out_dim = _target_dimension(self.target, out_s, out_degree)
        images = FpMatrix(self.p, num_gens, out_dim)
        if num_gens:
            defect = self.composite(n, t)
            if n > self.shift_s:
                correction = self.source.differential(n, t).compose(self.map_matrix(n - 1, t))
                defect.data = (defect.data - correction.data) % self.p
            if out_dim:
                lift = self.target.quasi_inverse(out_s, out_degree)
            for i in range(num_gens):
                if not defect[i].any():
                    continue
                if not out_dim:
                    raise NoSolution(self.name + ' does not exist: the composite is not null-homotopic at (s, t) = (' +
                                     str(n) + ', ' + str(t) + ').')
                try:
                    images.data[i] = lift.apply(defect[i])
                except NoSolution as e:
                    raise NoSolution(self.name + ' does not exist: the composite is not null-homotopic at (s, t) = (' +
                                     str(n) + ', ' + str(t) + ').') from e
        self._images[(n, t)] = images

    def extend_through_degree(self, n_max: int, t_max: int) -> None:
        self.right.extend_through_degree(n_max, t_max)
        self.left.extend_through_degree(n_max - self.right.shift_s, t_max - self.right.shift_t)
        for n in range(self.shift_s, n_max + 1):
            for t in range(self.source.min_degree, t_max + 1):
                self.extend_step(n, t)


def _ext_class(resolution: Resolution, x: ExtClass, name: str) -> Tuple[int, int, np.ndarray]:
    s, t, coefficients = x
    num_gens = _source_gens(resolution, s, t)
    coefficients = fp_vector(resolution.p, coefficients)
    if len(coefficients) != num_gens:
        raise InputError('Class ' + name + ' has ' + str(len(coefficients)) + ' coefficients, but there are ' +
                         str(num_gens) + ' generators.', bidegree=(s, t), config=resolution.config)
    return s, t, coefficients


def yoneda_product(source: Resolution, unit: Resolution, x: ExtClass, y: ExtClass) -> np.ndarray:
    """Product of x in Ext(M, F_p) (resolved by source) with y in Ext(F_p, F_p) (resolved by unit)

    Returns:
        (numpy.ndarray):
        The product in bidegree (s_x + s_y, t_x + t_y), as coefficients over the generators of source.
    """
    s_x, t_x, x = _ext_class(source, x, 'x')
    s_y, t_y, y = _ext_class(unit, y, 'y')
    hom = ResolutionHomomorphism.from_class('x', source, unit, s_x, t_x, x)
    hom.extend_through_degree(s_x + s_y, t_x + t_y)
    return hom.act(s_x + s_y, t_x + t_y, y)


def massey_product(resolution: Resolution, x: ExtClass, y: ExtClass, z: ExtClass) -> np.ndarray:
    """Representative of the Massey product <x, y, z> in Ext(F_p, F_p)

    y z must vanish. With f_y, f_z the lifts of y and z and H the null-homotopy of f_y f_z (zero on
    F_(s_y + s_z - 1)), the product is x o H on the generators of bidegree
    (s_x + s_y + s_z - 1, t_x + t_y + t_z). The choice of H fixes a representative; the result is
    deterministic.

    Raises:
        NoSolution: If y z is non-zero.

    Returns:
        (numpy.ndarray):
        Coefficients over the generators of the resolution in (s_x + s_y + s_z - 1, t_x + t_y + t_z).
    """
    s_x, t_x, x = _ext_class(resolution, x, 'x')
    s_y, t_y, y = _ext_class(resolution, y, 'y')
    s_z, t_z, z = _ext_class(resolution, z, 'z')
    n = s_x + s_y + s_z - 1
    t = t_x + t_y + t_z
    f_y = ResolutionHomomorphism.from_class('y', resolution, resolution, s_y, t_y, y)
    f_z = ResolutionHomomorphism.from_class('z', resolution, resolution, s_z, t_z, z)
    homotopy = ChainHomotopy(f_y, f_z)
    homotopy.extend_through_degree(n, t)
    num_gens = _source_gens(resolution, n, t)
    result = np.zeros(num_gens, dtype=np.int64)
    if not num_gens or not x.any():
        return result
    # x is evaluated on the components 1 * x_(s_x, t_x, j) of H(g)
    start = resolution.free_module(s_x).generator_offset(t_x, t_x, 0)
    for i in range(num_gens):
        h = homotopy.image(n, t, i)
        result[i] = int(h[start:start + len(x)] @ x) % resolution.p
    logging.info('  <' + str((s_x, t_x)) + ', ' + str((s_y, t_y)) + ', ' + str((s_z, t_z)) + '> = ' +
                 resolution.element_to_string(n, t, result))
    return result
