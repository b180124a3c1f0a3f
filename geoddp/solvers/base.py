# Copyright 2024 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Base class and factory for DDP solvers.

Every solver owns a working copy of a trajectory and exposes:
- iterate(): one improvement step, returning an IterationReport
- solve(): iterate until a terminal status, returning a Trajectory
- trajectory: read-only snapshot of the current iterate
"""

from abc import ABC, abstractmethod
from typing import List

from absl import logging

from geoddp.core.trajectory import Trajectory
from geoddp.core.types import IterationReport, SolverStatus


class DdpBase(ABC):
    """Abstract base class for DDP-type solvers.

    Subclasses implement iterate() and keep `status`, `ts`, `xs`, `us`, `p`,
    `obj` and `reports` up to date.
    """

    name: str = "base"

    status: SolverStatus
    reports: List[IterationReport]

    @abstractmethod
    def iterate(self) -> IterationReport:
        """Run one iteration and return its report."""
        ...

    @property
    def iterations(self) -> int:
        return len(self.reports)

    def info(self):
        return {
            'iterations': self.iterations,
            'reports': list(self.reports),
        }

    @property
    def trajectory(self) -> Trajectory:
        """Snapshot of the current trajectory with solver metadata."""
        return Trajectory(
            ts=self.ts, xs=self.xs, us=self.us, p=self.p,
            obj=self.obj, status=self.status, info=self.info(),
        )

    def solve(self) -> Trajectory:
        """Iterate until CONVERGED, MAX_ITERATIONS or DIVERGED."""
        while not self.status.terminal:
            self.iterate()
        if self.status == SolverStatus.DIVERGED:
            logging.warning('%s diverged after %d iterations (cost %.6g)',
                            self.name, self.iterations, self.obj)
        else:
            logging.info('%s finished with %s after %d iterations (cost %.6g)',
                         self.name, self.status.name, self.iterations, self.obj)
        return self.trajectory


def get_solver(name: str, *args, **kwargs) -> DdpBase:
    """Factory function to create a solver by name.

    Args:
        name: Solver name ('ddp', 'pddp', 'gdocp').
        *args, **kwargs: Constructor arguments of the solver.

    Returns:
        Solver instance.

    Raises:
        ValueError: If solver name is not recognized.
    """
    from geoddp.solvers.ddp import Ddp
    from geoddp.solvers.pddp import PDdp
    from geoddp.solvers.gdocp import GDocp

    _SOLVERS = {
        'ddp': Ddp,
        'pddp': PDdp,
        'gdocp': GDocp,
    }

    name_lower = name.lower()
    if name_lower not in _SOLVERS:
        available = list(_SOLVERS.keys())
        raise ValueError(
            f"Unknown solver: {name}. Available: {available}"
        )

    return _SOLVERS[name_lower](*args, **kwargs)
