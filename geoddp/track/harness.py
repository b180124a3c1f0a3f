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

"""Receding-horizon control and estimation of a car on a circular track.

Every tick the harness
  1. re-plans the controls towards the reference pose one horizon ahead,
     starting from the latest estimated pose (Ddp),
  2. applies the first control, perturbed by process noise, to the true
     vehicle, which also drifts with an unknown constant disturbance,
  3. records the commanded control and noisy landmark observations,
  4. re-estimates poses, controls, disturbance and landmarks (PDdp) over
     the full history or a trailing window, and splices the result back.
"""

from typing import List, NamedTuple, Optional

import jax
import jax.numpy as jnp
import numpy as np
from absl import logging
from jax import Array

from geoddp.core.config import DdpConfig, TrackConfig
from geoddp.core.trajectory import Trajectory
from geoddp.core.types import SolverStatus
from geoddp.costs.lq import LqCost
from geoddp.solvers.ddp import Ddp
from geoddp.solvers.pddp import PDdp
from geoddp.systems.kinematic_car import KinematicCar
from geoddp.track.history import PoseLandmarkHistory
from geoddp.utils.manifold import SE2, rot2, wrap_to_pi


def circle_reference(t, radius: float, speed: float) -> Array:
    """Pose on a circle of given radius traversed counter-clockwise.

    Starts at the origin heading along +x, with the center at (0, radius).
    """
    phi = speed * t / radius
    return jnp.array([wrap_to_pi(phi), radius * jnp.sin(phi),
                      radius * (1.0 - jnp.cos(phi))])


def random_landmarks(key, num: int, radius: float, spread: float) -> Array:
    """Landmarks scattered in a ring of width 2 * spread around the circle."""
    k1, k2 = jax.random.split(key)
    angles = jax.random.uniform(k1, (num,), minval=0.0, maxval=2 * jnp.pi)
    radii = radius + jax.random.uniform(k2, (num,), minval=-spread,
                                        maxval=spread)
    return jnp.stack([radii * jnp.sin(angles),
                      radius - radii * jnp.cos(angles)], axis=1)


class TickReport(NamedTuple):
    """Outcome of one harness tick."""
    t: float
    control: Array
    x_true: Array
    x_est: Array
    controller: Optional[SolverStatus]
    estimator: Optional[SolverStatus]
    num_landmarks: int
    position_error: float


class TrackHarness:
    """Closed-loop simulation of control and pose/landmark estimation.

    Attributes:
        config: TrackConfig.
        landmarks: True landmark positions (L, 2).
        history: Estimated PoseLandmarkHistory.
        plan: Current controller trajectory over the horizon.
        x_true: True vehicle pose.
        t: Current time.

    Example:
        >>> harness = TrackHarness(TrackConfig(tf=5.0, sliding_window=10))
        >>> reports = harness.run(20)
        >>> ts, xs, us, p = harness.snapshot()
    """

    def __init__(self, config: Optional[TrackConfig] = None,
                 landmarks: Optional[Array] = None):
        self.config = cfg = config if config is not None else TrackConfig()
        self.key = jax.random.PRNGKey(cfg.seed)
        if landmarks is None:
            self.key, sub = jax.random.split(self.key)
            landmarks = random_landmarks(sub, cfg.num_landmarks, cfg.radius,
                                         0.5 * cfg.dmax)
        self.landmarks = jnp.asarray(landmarks, dtype=float).reshape(-1, 2)

        self.system = KinematicCar(disturbance=cfg.estimate_disturbance)
        self.true_system = KinematicCar(disturbance=True)
        self.true_disturbance = jnp.asarray(cfg.true_disturbance)

        self.t = 0.0
        self.ticks = 0
        self.x_true = circle_reference(0.0, cfg.radius, cfg.speed)
        self.history = PoseLandmarkHistory(
            self.system, self.x_true, t0=0.0,
            disturbance_prior_std=cfg.disturbance_prior_std,
            landmark_prior_std=cfg.landmark_prior_std)
        self._observe()

        h = cfg.h
        ts = h * jnp.arange(cfg.N + 1)
        self.plan = Trajectory(ts=ts, xs=jnp.tile(self.x_true, (cfg.N + 1, 1)),
                               us=jnp.zeros((cfg.N, 2)),
                               p=self._controller_params())

        self.controller_config = DdpConfig(max_iters=cfg.control_iters,
                                           mu=cfg.mu)
        self.estimator_config = DdpConfig(max_iters=cfg.estimator_iters,
                                          mu=cfg.mu)

    def _controller_params(self) -> Array:
        d = self.history.disturbance
        return jnp.zeros(0) if d is None else d

    def _observe(self):
        """Noisy body-frame observations of landmarks within range."""
        cfg = self.config
        self.key, sub = jax.random.split(self.key)
        noise = jnp.sqrt(cfg.cp) * jax.random.normal(sub, self.landmarks.shape)
        R = rot2(self.x_true[0])
        rel = self.landmarks - self.x_true[1:]
        in_range = np.asarray(jnp.linalg.norm(rel, axis=1) <= cfg.dmax)
        zs = rel @ R + noise
        for j in np.flatnonzero(in_range):
            self.history.observe(int(j), zs[j])

    def _control(self) -> Optional[SolverStatus]:
        cfg = self.config
        if self.ticks > 0:
            self.plan = self.plan.shift()
        xs = self.plan.xs.at[0].set(self.history.xs[-1])
        self.plan = self.plan.replace(xs=xs, p=self._controller_params())
        if not cfg.optimize_controls:
            return None

        goal = circle_reference(self.t + cfg.Tc, cfg.radius, cfg.speed)
        cost = LqCost(SE2(), jnp.diag(jnp.asarray(cfg.Q)),
                      jnp.diag(jnp.asarray(cfg.R)),
                      Qf=jnp.diag(jnp.asarray(cfg.Qf)), xf=goal)
        result = Ddp(self.system, cost, self.plan,
                     self.controller_config).solve()
        self.plan = result
        return result.status

    def _estimate(self) -> SolverStatus:
        cfg = self.config
        history = self.history
        window = history.trajectory(cfg.sliding_window)
        start = history.horizon - window.horizon
        cost = history.cost(start, cfg.cw, cfg.cp)
        result = PDdp(self.system, cost, window, self.estimator_config).solve()
        if any(r.degraded for r in result.info['reports']):
            logging.warning('Estimator parameter step frozen at t=%.3f', self.t)
        history.splice(result)
        return result.status

    def tick(self) -> TickReport:
        """Advance the simulation by one control step."""
        cfg = self.config
        h = cfg.h
        controller = self._control()

        u = self.plan.us[0]
        self.key, sub = jax.random.split(self.key)
        w = jnp.sqrt(jnp.asarray(cfg.cw)) * jax.random.normal(sub, (2,))
        self.x_true = self.true_system.step(self.t, self.x_true, u + w, h,
                                            self.true_disturbance)

        self.history.add(u, h)
        self._observe()

        estimator = None
        if self.t > cfg.Ts:
            estimator = self._estimate()

        self.t += h
        self.ticks += 1
        x_est = self.history.xs[-1]
        error = float(jnp.linalg.norm(x_est[1:] - self.x_true[1:]))
        logging.info('t=%.2f landmarks=%d position error=%.3f', self.t,
                     self.history.num_landmarks, error)
        return TickReport(t=self.t, control=u, x_true=self.x_true,
                          x_est=x_est, controller=controller,
                          estimator=estimator,
                          num_landmarks=self.history.num_landmarks,
                          position_error=error)

    def run(self, num_ticks: Optional[int] = None) -> List[TickReport]:
        """Run `num_ticks` ticks, or until tf when not given."""
        if num_ticks is None:
            num_ticks = int(round(self.config.tf / self.config.h))
        return [self.tick() for _ in range(num_ticks)]

    def snapshot(self):
        """Copies of the estimated (ts, xs, us, p)."""
        return self.history.snapshot()
