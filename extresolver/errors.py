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
"""Exceptions raised by extresolver

All errors raised for a resolution carry the offending bidegree (if any) and the configuration
(prime and algebra basis) that produced them. Linear algebra failures are not part of this
hierarchy, they are raised as ArithmeticError subclasses from extresolver.fp.
"""

from typing import Optional, Tuple


class ExtError(Exception):
    """Base class of all resolution errors

    Args:
        message (str):
            Description of the problem.

        bidegree (tuple of int, optional):
            The bidegree (s, t) at which the problem occurred.

        config (str, optional):
            The configuration, e.g. 'p=2, milnor'.
    """

    def __init__(self, message: str, bidegree: Optional[Tuple[int, int]] = None, config: Optional[str] = None):
        self.message = message
        self.bidegree = bidegree
        self.config = config
        super().__init__(self._format())

    def _format(self) -> str:
        text = self.message
        if self.bidegree is not None:
            text += ' [bidegree (s, t) = (' + str(self.bidegree[0]) + ', ' + str(self.bidegree[1]) + ')]'
        if self.config:
            text += ' [' + self.config + ']'
        return text


class InputError(ExtError, ValueError):
    """Malformed module specification or invalid request bounds"""


class AlgebraMismatch(ExtError):
    """A checkpoint was written for a different prime or algebra basis"""


class DegreeRangeExceeded(ExtError):
    """A bidegree lies outside the configured capacity of a store"""


class ConcurrencyViolation(ExtError, RuntimeError):
    """A bidegree was committed twice"""


class NotComputed(ExtError, LookupError):
    """A bidegree was required before it was committed (serial mode)"""


class CheckpointError(ExtError, OSError):
    """Reading or writing a checkpoint failed. Unlike algebraic errors, these may be retried."""


class ComputationError(ExtError, ArithmeticError):
    """An unexpected failure while computing a bidegree. The original exception is the __cause__."""
