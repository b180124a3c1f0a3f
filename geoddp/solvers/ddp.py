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

"""Differential Dynamic Programming on manifold-valued states.

Each iteration linearizes the dynamics and quadratizes the cost in tangent
coordinates along the nominal trajectory, solves the regularized Riccati
recursion for an affine feedback policy, and line-searches a closed-loop
rollout of that policy from the fixed initial state.
"""

from typing import NamedTuple, Optional

import jax.numpy as jnp
from absl import logging
from jax import Array

from geoddp.core.config import DdpConfig
from geoddp.core.trajectory import Trajectory
from geoddp.core.types import IterationReport, Linearization, SolverStatus
from geoddp.lqr.riccati import backward_pass
from geoddp.solvers.base import DdpBase
from geoddp.utils.linearize import linearize
from geoddp.utils.rollout import ddp_rollout, evaluate, is_finite, rollout


class Policy(NamedTuple):
    """Result of a backward pass."""
    K: Array        # (N, m, n)
    k: Array        # (N, m)
    Kp: Array       # (N, m, np)
    dp: Array       # (np,)
    dV: Array       # (2,) linear and quadratic predicted change terms
    ok: bool
    degraded: bool = False


class Ddp(DdpBase):
    """Unconstrained DDP solver.

    The solver works on its own copy of the trajectory; the input is never
    modified. Regularization follows the scheme of Tassa et al.: on failure
    the growth factor is raised to at least dmu0 and multiplied into mu, on
    success it is lowered to at most 1/dmu0, and mu is snapped to zero when
    it falls below mu_min.

    Attributes:
        system: Dynamics.
        cost: Objective.
        config: DdpConfig.
        mu: Current regularization.
        dmu: Current regularization growth factor.
        status: Current SolverStatus.
        reports: IterationReport of every `iterate()` call.

    Example:
        >>> ddp = Ddp(Particle2d(), LqCost(...), traj, DdpConfig(mu=0.0))
        >>> result = ddp.solve()
        >>> result.status
        <SolverStatus.CONVERGED: 3>
    """

    name = "ddp"

    def __init__(self, system, cost, trajectory: Trajectory,
                 config: Optional[DdpConfig] = None):
        self.system = system
        self.cost = cost
        self.config = config if config is not None else DdpConfig()

        if trajectory.control_dim != system.control_dim:
            raise ValueError(
                f"Control dimension {trajectory.control_dim} does not match "
                f"system control dimension {system.control_dim}")
        if trajectory.xs.shape[1:] != system.manifold.shape:
            raise ValueError(
                f"State shape {trajectory.xs.shape[1:]} does not match "
                f"manifold shape {system.manifold.shape}")
        if cost.manifold != system.manifold:
            raise ValueError("Cost and system are defined on different manifolds")

        self.ts = trajectory.ts
        self.us = trajectory.us
        self.p = trajectory.p
        self.xs = rollout(system, self.ts, trajectory.xs[0], self.us, self.p)
        self.obj = float(evaluate(cost, self.ts, self.xs, self.us, self.p))

        self.mu = float(self.config.mu)
        self.dmu = 1.0
        self.status = SolverStatus.INITIALIZED
        self.reports = []

    def info(self):
        info = super().info()
        info['mu'] = self.mu
        return info

    def _increase_mu(self) -> bool:
        """Grow the regularization. Returns True once mu exceeds mu_max."""
        dmu0 = self.config.dmu0
        self.dmu = max(dmu0, self.dmu * dmu0)
        self.mu = max(self.config.mu_min, self.mu * self.dmu)
        return self.mu > self.config.mu_max

    def _decrease_mu(self):
        dmu0 = self.config.dmu0
        self.dmu = min(1.0 / dmu0, self.dmu / dmu0)
        mu = self.mu * self.dmu
        self.mu = mu if mu > self.config.mu_min else 0.0

    def _backward(self, lin: Linearization) -> Policy:
        s, f = lin.stage, lin.terminal
        K, k, _, _, dV, ok = backward_pass(
            s.Lxx, s.Lx, s.Luu, s.Lu, s.Lxu, lin.A, lin.B,
            f.Lxx, f.Lx, self.mu)
        N, m = self.us.shape
        return Policy(K=K, k=k, Kp=jnp.zeros((N, m, self.p.shape[0])),
                      dp=jnp.zeros_like(self.p), dV=dV, ok=bool(ok))

    def _finish(self, status, accepted=False, alpha=0.0, predicted=0.0,
                actual=0.0, nonfinite=False, degraded=False) -> IterationReport:
        if status == SolverStatus.ITERATING and \
                len(self.reports) + 1 >= self.config.max_iters:
            status = SolverStatus.MAX_ITERATIONS
        self.status = status
        report = IterationReport(
            status=status, accepted=accepted, alpha=alpha, mu=self.mu,
            obj=self.obj, predicted_decrease=predicted,
            actual_decrease=actual, nonfinite=nonfinite, degraded=degraded)
        self.reports.append(report)
        logging.vlog(1, '%s iter %d: obj=%.6g pred=%.3g actual=%.3g '
                     'alpha=%.3g mu=%.3g %s', self.name, len(self.reports),
                     self.obj, predicted, actual, alpha, self.mu, status.name)
        return report

    def iterate(self) -> IterationReport:
        """Run one DDP iteration.

        Returns:
            IterationReport of the iteration. The trajectory is updated only
            when `accepted` is True.
        """
        cfg = self.config
        lin = linearize(self.system, self.cost, self.ts, self.xs, self.us,
                        self.p)

        while True:
            policy = self._backward(lin)
            if policy.ok:
                break
            if self._increase_mu():
                logging.warning('%s: regularization %.3g exceeded mu_max',
                                self.name, self.mu)
                return self._finish(SolverStatus.DIVERGED)
        if policy.degraded:
            logging.warning('%s: parameter block not positive definite, '
                            'parameters frozen for this iteration', self.name)

        dV1, dV2 = (float(v) for v in policy.dV)
        predicted = -(dV1 + dV2)
        if predicted < cfg.tol:
            return self._finish(SolverStatus.CONVERGED, predicted=predicted,
                                degraded=policy.degraded)

        alpha = cfg.alpha_0
        while alpha >= cfg.alpha_min:
            xs, us, p = ddp_rollout(self.system, self.ts, self.xs, self.us,
                                    self.p, policy.K, policy.k, policy.Kp,
                                    policy.dp, alpha)
            obj = float(evaluate(self.cost, self.ts, xs, us, p))
            if not is_finite(xs, us, p, obj):
                logging.warning('%s: non-finite rollout at alpha=%.3g, '
                                'iteration aborted', self.name, alpha)
                status = (SolverStatus.DIVERGED if self._increase_mu()
                          else SolverStatus.ITERATING)
                return self._finish(status, alpha=alpha, predicted=predicted,
                                    nonfinite=True, degraded=policy.degraded)

            expected = -(alpha * dV1 + alpha ** 2 * dV2)
            actual = self.obj - obj
            if expected > 0 and actual / expected > cfg.min_decrease_ratio:
                self.xs, self.us, self.p, self.obj = xs, us, p, obj
                self._decrease_mu()
                return self._finish(SolverStatus.ITERATING, accepted=True,
                                    alpha=alpha, predicted=expected,
                                    actual=actual, degraded=policy.degraded)
            alpha /= 2

        status = (SolverStatus.DIVERGED if self._increase_mu()
                  else SolverStatus.ITERATING)
        return self._finish(status, predicted=predicted,
                            degraded=policy.degraded)
