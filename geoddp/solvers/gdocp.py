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

"""Constrained DDP by exterior penalty escalation.

The outer loop solves a sequence of unconstrained problems

    min  J(x, u) + 0.5 w sum_k sum_j max(0, g_j(t_k, x_k, u_k))^2

with increasing penalty weight w, each warm-started from the previous
solution, until the largest constraint violation is within tolerance.
"""

from typing import Optional, Sequence

from absl import logging

from geoddp.core.config import GDocpConfig
from geoddp.core.trajectory import Trajectory
from geoddp.core.types import IterationReport, SolverStatus
from geoddp.costs.base import MultiCost
from geoddp.costs.constraint import Constraint, ConstraintCost, max_violation
from geoddp.solvers.base import DdpBase
from geoddp.solvers.ddp import Ddp
from geoddp.utils.rollout import evaluate


class GDocp(DdpBase):
    """Inequality-constrained DDP via an exterior-penalty outer loop.

    One `iterate()` is one outer iteration: a fresh inner Ddp is run to a
    terminal status with the current penalty weight, the violation is
    measured, and the weight is escalated if it is still too large.

    Attributes:
        weight: Current penalty weight.
        violations: Maximum violation after each outer iteration.
        reports: One IterationReport per outer iteration; `obj` is the
            unpenalized cost and `mu` the final inner regularization.

    Example:
        >>> disk = DiskConstraint(center=[-2.5, -2.5], radius=2.0)
        >>> result = GDocp(Particle2d(), cost, [disk], traj).solve()
        >>> result.info['max_constraint_violation']
    """

    name = "gdocp"

    def __init__(
        self,
        system,
        cost,
        constraints: Sequence[Constraint],
        trajectory: Trajectory,
        config: Optional[GDocpConfig] = None,
    ):
        if not constraints:
            raise ValueError("GDocp needs at least one constraint")
        self.system = system
        self.cost = cost
        self.constraints = tuple(constraints)
        self.config = config if config is not None else GDocpConfig()

        # Validates the trajectory and makes it dynamically consistent.
        inner = Ddp(system, cost, trajectory, self.config.ddp)
        self.ts, self.xs, self.us, self.p = inner.ts, inner.xs, inner.us, inner.p
        self.obj = inner.obj

        self.weight = self.config.penalty_init
        self.violations = []
        self.status = SolverStatus.INITIALIZED
        self.reports = []

    def max_violation(self, xs=None, us=None) -> float:
        xs = self.xs if xs is None else xs
        us = self.us if us is None else us
        return max(float(max_violation(c, self.ts, xs, us, self.p))
                   for c in self.constraints)

    def penalized_cost(self, weight: float) -> MultiCost:
        penalties = [ConstraintCost(self.system.manifold,
                                    self.system.control_dim, c, weight)
                     for c in self.constraints]
        return MultiCost([self.cost] + penalties)

    def info(self):
        info = super().info()
        info['weight'] = self.weight
        info['violations'] = list(self.violations)
        info['max_constraint_violation'] = self.max_violation()
        return info

    def iterate(self) -> IterationReport:
        """Run one outer iteration (a full inner solve)."""
        cfg = self.config
        warm = Trajectory(ts=self.ts, xs=self.xs, us=self.us, p=self.p)
        inner = Ddp(self.system, self.penalized_cost(self.weight), warm,
                    cfg.ddp)
        result = inner.solve()

        if result.status == SolverStatus.DIVERGED:
            logging.warning('%s: inner solve diverged at weight %.3g',
                            self.name, self.weight)
            return self._finish(SolverStatus.DIVERGED, inner, result, False)

        violation = self.max_violation(result.xs, result.us)
        self.violations.append(violation)
        # Keep the least violating solution as warm start and fallback.
        accepted = violation <= min(self.violations)
        if accepted:
            self.xs, self.us = result.xs, result.us
            self.obj = float(evaluate(self.cost, self.ts, self.xs, self.us,
                                      self.p))
        logging.info('%s outer iter %d: weight=%.3g violation=%.3g obj=%.6g',
                     self.name, len(self.reports) + 1, self.weight, violation,
                     self.obj)

        if violation <= cfg.constraints_threshold:
            return self._finish(SolverStatus.CONVERGED, inner, result, accepted)
        if len(self.reports) + 1 >= cfg.max_outer_iters:
            logging.warning('%s: violation %.3g above threshold after %d '
                            'outer iterations', self.name, min(self.violations),
                            cfg.max_outer_iters)
            return self._finish(SolverStatus.DIVERGED, inner, result, accepted)
        self.weight *= cfg.penalty_update_rate
        return self._finish(SolverStatus.ITERATING, inner, result, accepted)

    def _finish(self, status, inner, result, accepted) -> IterationReport:
        self.status = status
        reports = result.info['reports']
        report = IterationReport(
            status=status, accepted=accepted,
            alpha=reports[-1].alpha if reports else 0.0,
            mu=inner.mu, obj=self.obj,
            predicted_decrease=sum(r.predicted_decrease for r in reports
                                   if r.accepted),
            actual_decrease=sum(r.actual_decrease for r in reports),
            nonfinite=any(r.nonfinite for r in reports))
        self.reports.append(report)
        return report
