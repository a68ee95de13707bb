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
"""Class: Resolution, a minimal free resolution of a Steenrod module

The resolution ... -> F_2 -> F_1 -> F_0 -> M is computed one bidegree (s, t) at a time. A bidegree
adds the generators of F_s in degree t and their differentials. Over F_p the resolution is minimal,
so the number of generators in (s, t) is the dimension of Ext^(s,t)(M, F_p).

A bidegree needs the kernel of d_(s-1) in degree t and the generators of F_s below degree t, i.e.
it depends on (s - 1, t) and (s, t - 1). Each bidegree is committed once to a BigradedStore.
"""

from typing import Dict, List, Optional, Tuple, Union
import logging
import threading
import numpy as np

from extresolver.names import *
from extresolver.bigradedStore import BigradedStore
from extresolver.errors import CheckpointError, ComputationError, DegreeRangeExceeded, ExtError, InputError, NotComputed
from extresolver.finiteModule import FDModule
from extresolver.fp import FpMatrix, QuasiInverse, complement, kernel, kernel_and_quasi_inverse
from extresolver.freeModule import FreeModule, linear_map_matrix
from extresolver.parse_module import parse_config, parse_module_json, parse_module_name
from extresolver.persistence import load_checkpoint, save_checkpoint
from extresolver.pool import BidegreeScheduler, default_threads

# Symbols of the chart printed by graded_dimension_string
_ASCII_NUM = {0: ' ', 1: '·', 2: ':', 3: '∴', 4: '⁘', 5: '⁙', 6: '⠿', 7: '⡿', 8: '⣿', 9: '9'}


class BidegreeRecord(object):
    """Committed data of one bidegree

    Attributes:
        s, t (int):
            The bidegree.

        num_gens (int):
            Number of generators of F_s in degree t.

        differentials (FpMatrix):
            Images of the new generators, one row per generator, over the basis of F_(s-1) (or M if
            s = 0) in degree t.

        kernel (FpMatrix):
            Basis of the kernel of d_s in degree t (reduced row echelon form) over the basis of F_s.
    """
    __slots__ = ('s', 't', 'num_gens', 'differentials', 'kernel')

    def __init__(self, s: int, t: int, num_gens: int, differentials: FpMatrix, kernel: FpMatrix):
        self.s = s
        self.t = t
        self.num_gens = num_gens
        self.differentials = differentials
        self.kernel = kernel

    def __repr__(self):
        return 'BidegreeRecord(s=' + str(self.s) + ', t=' + str(self.t) + ', num_gens=' + str(self.num_gens) + ')'


def _check_int(name: str, value) -> int:
    if not isinstance(value, (int, np.integer)) or isinstance(value, bool):
        raise InputError(name + ' must be an integer, got ' + repr(value) + '.')
    return int(value)


class Resolution(object):
    """Minimal free resolution of a finite dimensional module

    Example:
        res = Resolution(parse_module_json(load_module_json('S_2')), threads=1)
        res.resolve_through_stem(3, 10)
        res.number_of_gens_in_bidegree(1, 2)   # 1: the class h_1

    Args:
        module (FDModule):
            The module to resolve. Its degrees must be non-negative.

        **kwargs:
            save_dir (str): Directory for checkpoints of the differentials. Existing checkpoints
            are loaded instead of computed (default: None, no checkpoints).

            threads (int): Number of worker threads (default: None, the number of logical CPUs).
            With 1 thread, bidegrees are computed in a fixed serial order.

            max_s, max_t (int): Capacity of the resolution (default: None, unbounded).

            compress (bool): Compress checkpoints with zlib (default: False).

            write_retries (int): Retries for failed checkpoint writes (default: 3).
    """

    def __init__(self, module: FDModule, **kwargs):
        allowed_keys = {SAVE_DIR, THREADS, MAX_S, MAX_T, COMPRESS, WRITE_RETRIES}
        for key in kwargs.keys():
            if key not in allowed_keys:
                raise InputError('Key ' + key + ' is not supported.')
        self.module = module
        self.algebra = module.algebra
        self.p = module.p
        self.min_degree = module.min_degree
        self.save_dir = kwargs.get(SAVE_DIR)
        threads = kwargs.get(THREADS)
        self.threads = default_threads() if threads is None else _check_int(THREADS, threads)
        if self.threads < 1:
            raise InputError('Number of threads must be positive, got ' + str(self.threads) + '.')
        max_s = kwargs.get(MAX_S)
        max_t = kwargs.get(MAX_T)
        max_s = None if max_s is None else _check_int(MAX_S, max_s)
        max_t = None if max_t is None else _check_int(MAX_T, max_t)
        self.compress = bool(kwargs.get(COMPRESS, False))
        self.write_retries = _check_int(WRITE_RETRIES, kwargs.get(WRITE_RETRIES, 3))
        self.config = self.module.name + ', ' + self.algebra.config_string()
        self._store = BigradedStore(concurrent=self.threads > 1, max_s=max_s, max_t=max_t,
                                    name='resolution of ' + module.name, config=self.config)
        self._modules = {}
        self._quasi_inverses = {}
        self._lock = threading.Lock()

    def __str__(self):
        return 'Resolution of ' + self.config

    @property
    def prime(self) -> int:
        return self.p

    @property
    def capacity(self) -> Tuple[Optional[int], Optional[int]]:
        return self._store.capacity

    def free_module(self, s: int) -> FreeModule:
        """The free module F_s

        Degrees whose generators are not committed yet raise NotComputed, in serial and concurrent mode.
        """
        with self._lock:
            if s not in self._modules:
                self._modules[s] = FreeModule(self.algebra, lambda t, s=s: self._number_of_gens(s, t),
                                              self.min_degree, homological_degree=s)
            return self._modules[s]

    def _number_of_gens(self, s: int, t: int) -> int:
        record = self._store.get(s, t)
        if record is None:
            raise NotComputed('Generators of F_' + str(s) + ' are not known in degree ' + str(t) + '.',
                              bidegree=(s, t), config=self.config)
        return record.num_gens

    def target(self, s: int) -> Union[FreeModule, FDModule]:
        """Target of d_s: F_(s-1), or the module itself for s = 0"""
        return self.module if s == 0 else self.free_module(s - 1)

    def _dependencies(self, s: int, t: int) -> List[Tuple[int, int]]:
        deps = []
        if s > 0:
            deps.append((s - 1, t))
        if t > self.min_degree:
            deps.append((s, t - 1))
        return deps

    def _generator_image(self, s: int, gen_degree: int, gen_idx: int) -> np.ndarray:
        return self._store.fetch(s, gen_degree).differentials[gen_idx]

    def _step(self, s: int, t: int) -> None:
        """Compute and commit the bidegree (s, t)

        Failures outside of the ExtError hierarchy are raised as ComputationError with the bidegree.
        """
        try:
            self._compute_step(s, t)
        except ExtError:
            raise
        except Exception as e:
            raise ComputationError(type(e).__name__ + ': ' + str(e), bidegree=(s, t), config=self.config) from e

    def _compute_step(self, s: int, t: int) -> None:
        # Runs once (s - 1, t) and (s, t - 1) are committed, so all generators below are known.
        source = self.free_module(s)
        target = self.target(s)
        target_dim = target.dimension(t)
        # d_s on the part of F_s generated below degree t
        image = linear_map_matrix(source, target, t, lambda d, i: self._generator_image(s, d, i), max_gen_degree=t - 1)
        if s == 0:
            cycles = FpMatrix.identity(self.p, target_dim)
        else:
            cycles = self._store.fetch(s - 1, t).kernel
        new = None
        if self.save_dir is not None:
            new = load_checkpoint(self.save_dir, self.p, self.algebra.magic, s, t, self.config)
            if new is not None:
                if new.columns != target_dim:
                    raise CheckpointError('Checkpoint has ' + str(new.columns) + ' columns, but the target has dimension ' +
                                          str(target_dim) + '.', bidegree=(s, t), config=self.config)
                logging.debug('  Loaded (s, t) = (' + str(s) + ', ' + str(t) + ') from checkpoint.')
        loaded = new is not None
        if not loaded:
            new = complement(image, cycles)
        full = image.vstack(new)
        record = BidegreeRecord(s, t, new.rows, new, kernel(full))
        # Commit only after the checkpoint is written, a failed write leaves (s, t) pending
        if self.save_dir is not None and not loaded:
            save_checkpoint(self.save_dir, self.p, self.algebra.magic, s, t, new, self.compress, self.write_retries,
                            self.config)
        self._store.set(s, t, record)
        logging.debug('  (s, t) = (' + str(s) + ', ' + str(t) + '): ' + str(new.rows) + ' generators.')

    def _check_bounds(self, s_max: int, t_max: int):
        if s_max < 0 or t_max < 0:
            raise InputError('Bounds must be non-negative, got s_max = ' + str(s_max) + ', t_max = ' + str(t_max) + '.',
                             config=self.config)
        if t_max < s_max:
            raise InputError('t_max = ' + str(t_max) + ' is smaller than s_max = ' + str(s_max) +
                             '. Ext vanishes for t < s.', config=self.config)
        max_s, max_t = self.capacity
        if (max_s is not None and s_max > max_s) or (max_t is not None and t_max > max_t):
            raise DegreeRangeExceeded('Requested bounds exceed the capacity (max_s = ' + str(max_s) + ', max_t = ' +
                                      str(max_t) + ').', bidegree=(s_max, t_max), config=self.config)

    def resolve_through_degree(self, s_max: int, t_max: int) -> None:
        """Compute all bidegrees (s, t) with s <= s_max and t <= t_max

        Bidegrees that are already computed are skipped, so the call is idempotent.

        Raises:
            InputError: For negative or non-integer bounds, or if t_max < s_max.
            DegreeRangeExceeded: If the bounds exceed the capacity of the resolution.
        """
        s_max = _check_int('s_max', s_max)
        t_max = _check_int('t_max', t_max)
        self._check_bounds(s_max, t_max)
        pending = [(s, t) for s in range(s_max + 1) for t in range(self.min_degree, t_max + 1)
                   if self._store.get(s, t) is None]
        if not pending:
            return
        logging.info('  Resolving ' + self.config + ' through (s, t) = (' + str(s_max) + ', ' + str(t_max) + '): ' +
                     str(len(pending)) + ' bidegrees, ' + str(self.threads) + ' thread(s).')
        BidegreeScheduler(pending, self._dependencies, self._step, self.threads).run()

    def resolve_through_stem(self, s_max: int, n_max: int) -> None:
        """Compute all bidegrees with s <= s_max and stem t - s <= n_max (i.e. t <= n_max + s_max)"""
        s_max = _check_int('s_max', s_max)
        n_max = _check_int('n_max', n_max)
        if s_max < 0 or n_max < 0:
            raise InputError('Bounds must be non-negative, got s_max = ' + str(s_max) + ', n_max = ' + str(n_max) + '.',
                             config=self.config)
        self.resolve_through_degree(s_max, n_max + s_max)

    # Queries

    def has_computed_bidegree(self, s: int, t: int) -> bool:
        return self._store.get(s, t) is not None

    def computed_bidegrees(self) -> List[Tuple[int, int]]:
        return self._store.keys()

    def record(self, s: int, t: int) -> Optional[BidegreeRecord]:
        return self._store.get(s, t)

    def number_of_gens_in_bidegree(self, s: int, t: int) -> Optional[int]:
        """Dimension of Ext^(s,t), or None if (s, t) has not been computed"""
        record = self._store.get(s, t)
        return None if record is None else record.num_gens

    def ext_dimensions(self) -> Dict[Tuple[int, int], int]:
        return {b: self._store.get(*b).num_gens for b in self._store.keys()}

    def differential(self, s: int, t: int) -> Optional[FpMatrix]:
        """Copy of the differentials of the generators in (s, t), or None if not computed"""
        record = self._store.get(s, t)
        return None if record is None else record.differentials.copy()

    def _require(self, s: int, t: int):
        if not self.has_computed_bidegree(s, t):
            raise InputError('Bidegree has not been computed.', bidegree=(s, t), config=self.config)

    def differential_matrix(self, s: int, t: int) -> FpMatrix:
        """Matrix of d_s: F_s -> F_(s-1) (or M) in degree t, one row per basis element of F_s"""
        self._require(s, t)
        return linear_map_matrix(self.free_module(s), self.target(s), t,
                                 lambda d, i: self._generator_image(s, d, i))

    def apply_differential(self, s: int, t: int, element: np.ndarray) -> np.ndarray:
        return self.differential_matrix(s, t).apply(element)

    def quasi_inverse(self, s: int, t: int) -> QuasiInverse:
        """Solver for d_s x = y in degree t (cached)"""
        self._require(s, t)
        with self._lock:
            cached = self._quasi_inverses.get((s, t))
        if cached is None:
            cached = kernel_and_quasi_inverse(self.differential_matrix(s, t))[1]
            with self._lock:
                cached = self._quasi_inverses.setdefault((s, t), cached)
        return cached

    def graded_dimension_string(self) -> str:
        """Chart of the generator counts, one line per s (top line is the largest s), columns are stems"""
        keys = self._store.keys()
        if not keys:
            return ''
        lines = []
        for s in range(max(k[0] for k in keys), -1, -1):
            top = self._store.max_t(s)
            symbols = []
            if top is not None:
                for t in range(s, top + 1):
                    n = self.number_of_gens_in_bidegree(s, t)
                    symbols.append(_ASCII_NUM.get(n or 0, '*'))
            lines.append(' '.join(symbols).rstrip())
        return '\n'.join(lines)

    def element_to_string(self, s: int, t: int, element: np.ndarray) -> str:
        """Print an element of Ext^(s,t) given in the basis of generators, e.g. 'x_(1,2,0)'"""
        terms = []
        for idx in np.flatnonzero(element):
            value = int(element[idx])
            terms.append(('' if value == 1 else str(value) + ' ') + self.free_module(s).generator_name(t, int(idx)))
        return ' + '.join(terms) if terms else '0'


def construct(spec, save_dir: Optional[str] = None, **kwargs) -> Resolution:
    """Build a resolution from a module specification

    Args:
        spec:
            A configuration string 'name[shift]@basis' (e.g. 'S_2', 'C2@adem', 'S_2[2]'), a json module
            specification (dict, Milnor basis) or a pair (json or name, basis).

        save_dir (str, optional):
            Checkpoint directory.

        **kwargs:
            Further keys for Resolution (threads, max_s, ...).

    Returns:
        (Resolution):
        The (not yet computed) resolution.
    """
    if isinstance(spec, str):
        json_spec, basis = parse_config(spec)
    elif isinstance(spec, dict):
        json_spec, basis = spec, MILNOR
    elif isinstance(spec, tuple) and len(spec) == 2:
        json_spec, basis = spec
        if isinstance(json_spec, str):
            if '@' in json_spec:
                json_spec, other = parse_config(json_spec)
                if other != basis:
                    raise InputError('Invalid algebra supplied. Must be ' + str(basis) + '.')
            else:
                json_spec = parse_module_name(json_spec)
    else:
        raise InputError('Cannot construct a resolution from ' + repr(spec) + '.')
    module = parse_module_json(json_spec, basis)
    if save_dir is not None:
        kwargs[SAVE_DIR] = save_dir
    return Resolution(module, **kwargs)
