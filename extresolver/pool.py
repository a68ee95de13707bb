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
"""Provide a thread pool and a scheduler that runs one task per bidegree in dependency order"""

from multiprocessing.pool import ThreadPool
from functools import partial
from typing import Callable, Iterable, List, Optional, Tuple
import heapq
import logging
import threading
import psutil

Bidegree = Tuple[int, int]


def default_threads() -> int:
    return psutil.cpu_count(logical=True) or 1


class ExtThreadPool(ThreadPool):
    """Thread pool for bidegree tasks

    The work of a bidegree is dominated by numpy row operations, which release the GIL, and all
    tasks share the algebra caches and the store of the resolution. Threads are therefore used
    instead of processes.

    Args:
        processes (int, optional):
            Number of worker threads (default: number of logical CPUs, from psutil).
    """

    def __init__(self, processes: Optional[int] = None, initializer: Optional[Callable] = None, initargs: Tuple = ()):
        if processes is None:
            processes = default_threads()
        super().__init__(processes=processes, initializer=initializer, initargs=initargs)


class BidegreeScheduler(object):
    """Run task(s, t) for a set of bidegrees, each one after all of its dependencies

    Only dependencies inside the given set of bidegrees are waited for. All others must already be
    available when the task runs. In serial mode (threads <= 1) the tasks run in a fixed topological
    order, smallest ready bidegree first. In concurrent mode a bidegree is dispatched as soon as its
    last dependency has finished. The first exception raised by a task stops further dispatch and is
    re-raised once the tasks in flight have finished.

    Args:
        bidegrees (iterable):
            The bidegrees (s, t) to process.

        dependencies (callable):
            dependencies(s, t) returns the bidegrees (s, t) depends on.

        task (callable):
            task(s, t) computes a bidegree.

        threads (int):
            Number of worker threads.
    """

    def __init__(self, bidegrees: Iterable[Bidegree], dependencies: Callable[[int, int], Iterable[Bidegree]],
                 task: Callable[[int, int], None], threads: int = 1):
        self.bidegrees = sorted(set(bidegrees))
        self.task = task
        self.threads = threads
        pending = set(self.bidegrees)
        self.requires = {b: [d for d in dependencies(*b) if d in pending] for b in self.bidegrees}
        self.dependents = {b: [] for b in self.bidegrees}
        for b, deps in self.requires.items():
            for d in deps:
                self.dependents[d].append(b)
        self._condition = threading.Condition()
        self._missing = {}
        self._in_flight = 0
        self._finished = 0
        self._errors = []

    def order(self) -> List[Bidegree]:
        """Topological order of the bidegrees (Kahn's algorithm, smallest ready bidegree first)"""
        missing = {b: len(deps) for b, deps in self.requires.items()}
        ready = [b for b, n in missing.items() if n == 0]
        heapq.heapify(ready)
        result = []
        while ready:
            b = heapq.heappop(ready)
            result.append(b)
            for d in self.dependents[b]:
                missing[d] -= 1
                if missing[d] == 0:
                    heapq.heappush(ready, d)
        if len(result) != len(self.bidegrees):
            raise RuntimeError('Dependencies between bidegrees contain a cycle.')
        return result

    def run(self) -> None:
        if not self.bidegrees:
            return
        if self.threads <= 1:
            for s, t in self.order():
                self.task(s, t)
            return
        self._run_concurrent()

    def _run_concurrent(self):
        self.order()  # validates the dependency graph
        self._missing = {b: len(deps) for b, deps in self.requires.items()}
        self._in_flight = 0
        self._finished = 0
        self._errors = []
        logging.debug('  Dispatching ' + str(len(self.bidegrees)) + ' bidegrees to ' + str(self.threads) + ' threads.')
        with ExtThreadPool(self.threads) as pool:
            with self._condition:
                for b in self.bidegrees:
                    if self._missing[b] == 0:
                        self._submit(pool, b)
                while self._in_flight > 0:
                    self._condition.wait()
        if self._errors:
            raise self._errors[0]
        if self._finished != len(self.bidegrees):
            raise RuntimeError('Only ' + str(self._finished) + ' of ' + str(len(self.bidegrees)) +
                               ' bidegrees were processed.')

    def _submit(self, pool: ExtThreadPool, b: Bidegree):
        # caller holds self._condition
        self._in_flight += 1
        pool.apply_async(self.task, b, callback=partial(self._on_done, pool, b), error_callback=self._on_error)

    def _on_done(self, pool: ExtThreadPool, b: Bidegree, _result):
        with self._condition:
            self._in_flight -= 1
            self._finished += 1
            if not self._errors:
                for d in self.dependents[b]:
                    self._missing[d] -= 1
                    if self._missing[d] == 0:
                        self._submit(pool, d)
            self._condition.notify_all()

    def _on_error(self, error: BaseException):
        with self._condition:
            self._in_flight -= 1
            self._errors.append(error)
            self._condition.notify_all()
