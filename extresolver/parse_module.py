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
"""Functions for reading module specifications

A module specification is a json document such as

    {"type": "finite dimensional module", "p": 2, "gens": {"x0": 0, "x1": 1}, "actions": ["Sq1 x0 = x1"]}

Each action has the form '<op> <element> = <linear combination>', e.g. 'Sq2 x0 = x2 + x3' or
'P1 x0 = 2 x4'. Operations must be algebra generators: Sq1, Sq2, Sq4, ... at p = 2 and b, P1, P3, ...
at p = 3. Unlisted actions are zero.

Module files are looked up by name in the current directory, in ./steenrod_modules and in the
steenrod_modules directory shipped with the package. A name may carry a degree shift, as in
'C2[2]', and a configuration string may carry the algebra basis, as in 'S_2@adem'.
"""

from typing import Tuple, Union
import json
import logging
import os
import re
import numpy as np

from extresolver.names import *
from extresolver.algebra import SteenrodAlgebra, steenrod_algebra
from extresolver.combinatorics import is_prime
from extresolver.errors import InputError
from extresolver.finiteModule import FDModule

MODULES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'steenrod_modules')

_TERM = re.compile(r'^(?:(\d+)\s*\*?\s*)?([A-Za-z_]\w*)$')


def load_module_json(name: str) -> dict:
    """Find the module file <name>.json and return its content"""
    for directory in (os.getcwd(), os.path.join(os.getcwd(), 'steenrod_modules'), MODULES_DIR):
        path = os.path.join(directory, name + '.json')
        if os.path.isfile(path):
            logging.debug('  Loading module from ' + path)
            with open(path, 'r') as f:
                try:
                    return json.load(f)
                except json.JSONDecodeError as e:
                    raise InputError('Failed to load module json at ' + path + ': ' + str(e)) from e
    raise InputError('Module file \'' + name + '\' not found.')


def parse_module_name(module_name: str) -> dict:
    """Load a module by name, applying an optional degree shift as in 'C2[2]'"""
    module_file, bracket, shift = module_name.partition('[')
    spec = load_module_json(module_file)
    if bracket:
        if not shift.endswith(']'):
            raise InputError('Unterminated shift [ in module name ' + module_name + '.')
        try:
            shift = int(shift[:-1])
        except ValueError:
            raise InputError('Cannot parse shift value (' + shift[:-1] + ') as an integer.') from None
        spec[GENS] = {gen: degree + shift if isinstance(degree, int) else degree
                      for gen, degree in spec.get(GENS, {}).items()}
        spec[NAME] = spec.get(NAME, module_file) + '[' + str(shift) + ']'
    spec.setdefault(NAME, module_file)
    return spec


def parse_config(spec: str) -> Tuple[dict, str]:
    """Split 'S_2@adem' into the module json and the algebra basis (default: milnor)"""
    module_name, _, basis = spec.partition('@')
    basis = basis or MILNOR
    if basis not in BASES:
        raise InputError('Invalid algebra type: ' + basis + '. Use one of: ' + ', '.join(BASES) + '.')
    return parse_module_name(module_name), basis


def _parse_combination(module: FDModule, text: str, degree: int) -> np.ndarray:
    result = np.zeros(module.dimension(degree), dtype=np.int64)
    text = text.strip()
    if text == '0':
        return result
    for term in text.replace('-', '+-').split('+'):
        term = term.strip()
        if not term:
            continue
        sign = 1
        if term.startswith('-'):
            sign = -1
            term = term[1:].strip()
        match = _TERM.match(term)
        if match is None:
            raise InputError('Cannot parse term "' + term + '" in module ' + module.name + '.',
                             config=module.algebra.config_string())
        coeff = sign * (int(match.group(1)) if match.group(1) else 1)
        gen_degree, gen_idx = module.basis_element_from_name(match.group(2))
        if gen_degree != degree:
            raise InputError('Element ' + match.group(2) + ' has degree ' + str(gen_degree) + ', expected ' +
                             str(degree) + ' in action result "' + text + '".', config=module.algebra.config_string())
        result[gen_idx] = (result[gen_idx] + coeff) % module.p
    return result


def parse_action(module: FDModule, action: str) -> None:
    """Parse '<op> <element> = <linear combination>' and set the action on module"""
    left, equals, right = action.partition('=')
    if not equals:
        raise InputError('Action "' + action + '" has no "=".', config=module.algebra.config_string())
    parts = left.split()
    if len(parts) != 2:
        raise InputError('Cannot parse left hand side of action "' + action + '".',
                         config=module.algebra.config_string())
    op_degree, op_idx = module.algebra.parse_generator(parts[0])
    in_degree, in_idx = module.basis_element_from_name(parts[1])
    module.set_action(op_degree, op_idx, in_degree, in_idx, _parse_combination(module, right, in_degree + op_degree))


def parse_module_json(spec: dict, basis: Union[str, SteenrodAlgebra] = MILNOR, check: bool = True) -> FDModule:
    """Build an FDModule from a module specification

    Args:
        spec (dict):
            The json module specification.

        basis (str or SteenrodAlgebra):
            MILNOR or ADEM, or an algebra at the prime of the module.

        check (bool):
            Verify the relations of the algebra on the module (check_validity).

    Returns:
        (FDModule):
        The module. All errors in the specification raise InputError.
    """
    if not isinstance(spec, dict):
        raise InputError('A module specification must be a json object.')
    module_type = spec.get(MODULE_TYPE, FD_MODULE)
    if module_type != FD_MODULE:
        raise InputError('Module type "' + str(module_type) + '" is not supported. Only "' + FD_MODULE +
                         '" can be resolved.')
    p = spec.get(PRIME)
    if p is None:
        raise InputError('Module specification has no prime "' + PRIME + '".')
    if not is_prime(p):
        raise InputError('Module specification has invalid prime ' + repr(p) + '.')
    if isinstance(basis, SteenrodAlgebra):
        algebra = basis
        if algebra.p != p:
            raise InputError('Module is defined at p=' + str(p) + ' but the algebra is at p=' + str(algebra.p) + '.')
    else:
        algebra = steenrod_algebra(p, basis)
    # Optional list of the bases the module may be resolved over
    supported = spec.get(ALGEBRA)
    if supported is not None:
        if isinstance(supported, str):
            supported = [supported]
        if not isinstance(supported, list) or any(b not in BASES for b in supported):
            raise InputError('Invalid "' + ALGEBRA + '" entry ' + repr(spec.get(ALGEBRA)) + '. Use a list of: ' +
                             ', '.join(BASES) + '.')
        if algebra.basis_type not in supported:
            raise InputError('Invalid algebra supplied. Must be one of: ' + ', '.join(supported) + '.',
                             config=algebra.config_string())
    gens = spec.get(GENS)
    if not isinstance(gens, dict):
        raise InputError('Module specification has no "' + GENS + '".', config=algebra.config_string())
    module = FDModule(algebra, spec.get(NAME, 'module'), gens)
    actions = spec.get(ACTIONS, [])
    if isinstance(actions, str):
        actions = [actions]
    for action in actions:
        parse_action(module, action)
    if check:
        module.check_validity()
    logging.info('  Module ' + module.name + ' of dimension ' + str(module.total_dimension()) + ' (' +
                 algebra.config_string() + ').')
    return module
