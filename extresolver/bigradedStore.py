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
"""Class: BigradedStore, a lazily growing single-assignment table indexed by bidegrees (s, t)"""

from typing import Any, Iterator, List, Optional, Tuple
import threading

from extresolver.errors import ConcurrencyViolation, DegreeRangeExceeded, NotComputed


class _Cell(object):
    __slots__ = ('value', 'event')

    def __init__(self):
        self.value = None
        self.event = threading.Event()


class BigradedStore(object):
    """Table of write-once cells, one per bidegree (s, t)

    Cells are kept in a flat list (the arena) and located through a dictionary from (s, t) to the
    position in the arena. A cell is created when it is first written or waited for. Each cell is
    committed at most once, and its value is visible to all threads as soon as set() returns.

    Args:
        concurrent (bool):
            If True, fetch() blocks until the value is committed. Otherwise a missing value is an error
            (NotComputed), since no other thread can provide it.

        max_s, max_t (int, optional):
            Capacity limits. Bidegrees beyond them raise DegreeRangeExceeded.

        name (str):
            Used in error messages.
    """

    def __init__(self, concurrent: bool = False, max_s: Optional[int] = None, max_t: Optional[int] = None,
                 name: str = '', config: Optional[str] = None):
        self.concurrent = concurrent
        self.capacity = (max_s, max_t)
        self.name = name
        self.config = config
        self._arena = []
        self._index = {}
        self._lock = threading.Lock()

    def _check_range(self, s: int, t: int):
        max_s, max_t = self.capacity
        if (max_s is not None and s > max_s) or (max_t is not None and t > max_t):
            raise DegreeRangeExceeded('Bidegree outside of the capacity of ' + (self.name or 'the store') +
                                      ' (max_s = ' + str(max_s) + ', max_t = ' + str(max_t) + ').',
                                      bidegree=(s, t), config=self.config)

    def _cell(self, s: int, t: int, create: bool) -> Optional[_Cell]:
        with self._lock:
            pos = self._index.get((s, t))
            if pos is None:
                if not create:
                    return None
                self._check_range(s, t)
                pos = len(self._arena)
                self._arena.append(_Cell())
                self._index[(s, t)] = pos
            return self._arena[pos]

    def get(self, s: int, t: int) -> Any:
        """Value at (s, t), or None if it has not been committed. Never blocks."""
        cell = self._cell(s, t, create=False)
        if cell is None or not cell.event.is_set():
            return None
        return cell.value

    def set(self, s: int, t: int, value: Any) -> None:
        """Commit value at (s, t)

        Raises:
            ConcurrencyViolation: If (s, t) has already been committed.
            DegreeRangeExceeded: If (s, t) is beyond the capacity of the store.
        """
        self._check_range(s, t)
        cell = self._cell(s, t, create=True)
        with self._lock:
            if cell.event.is_set():
                raise ConcurrencyViolation('Attempt to commit a bidegree twice in ' + (self.name or 'the store') + '.',
                                           bidegree=(s, t), config=self.config)
            cell.value = value
            cell.event.set()

    def wait(self, s: int, t: int, timeout: Optional[float] = None) -> Any:
        """Block until (s, t) is committed and return the value (None if the timeout expires)"""
        cell = self._cell(s, t, create=True)
        if not cell.event.wait(timeout):
            return None
        return cell.value

    def fetch(self, s: int, t: int) -> Any:
        """Read a dependency. Blocks in concurrent mode, raises NotComputed in serial mode if missing."""
        if self.concurrent:
            return self.wait(s, t)
        value = self.get(s, t)
        if value is None:
            raise NotComputed('Bidegree has not been computed in ' + (self.name or 'the store') + '.',
                              bidegree=(s, t), config=self.config)
        return value

    def __contains__(self, bidegree: Tuple[int, int]) -> bool:
        return self.get(*bidegree) is not None

    def keys(self) -> List[Tuple[int, int]]:
        """Committed bidegrees, sorted"""
        with self._lock:
            return sorted(k for k, pos in self._index.items() if self._arena[pos].event.is_set())

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())

    def max_t(self, s: int) -> Optional[int]:
        """Largest t with (s, t) committed, None if there is none"""
        ts = [t for (s_, t) in self.keys() if s_ == s]
        return max(ts) if ts else None
