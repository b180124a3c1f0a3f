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

"""Growing pose/landmark history of a planar vehicle.

The history holds the estimated poses, the controls believed to have been
applied, the parameter vector p = [disturbance (2, optional), landmarks]
and the landmark observations of every pose. It is the data a TrackCost is
built from, and it is updated in place only by `add`, `observe` and
`splice`.
"""

from typing import Dict, List, Optional, Tuple

import jax.numpy as jnp
import numpy as np
from jax import Array

from geoddp.core.trajectory import Trajectory
from geoddp.costs.track import TrackCost
from geoddp.utils.manifold import rot2


class PoseLandmarkHistory:
    """Estimated track of a vehicle with landmarks and observations.

    Attributes:
        system: Vehicle model used to propagate estimates; reads the
            disturbance from p when `system.disturbance` is set.
        ts: Time stamps (N+1,).
        xs: Estimated poses (N+1, 3).
        us: Commanded controls (N, 2), refined by the estimator.
        u_meas: Commanded controls as recorded, never modified (N, 2).
        odometry: Dead-reckoned poses (N+1, 3), no disturbance, never
            refined.
        p: Parameters [disturbance, l_0, l_1, ...].
        p_prior, p_prior_w: Prior mean and weights of the parameters.
        observations: Per pose, a list of (slot, z) pairs with z the
            body-frame landmark position.
        slots: Landmark id to slot index in the landmark part of p.
    """

    def __init__(
        self,
        system,
        x0: Array,
        t0: float = 0.0,
        disturbance_prior_std: float = 1.0,
        landmark_prior_std: float = 10.0,
    ):
        self.system = system
        self.landmark_prior_std = landmark_prior_std
        self.landmark_offset = 2 if system.disturbance else 0

        x0 = jnp.asarray(x0, dtype=float)
        self.ts = jnp.array([t0], dtype=float)
        self.xs = x0[None]
        self.odometry = x0[None]
        self.us = jnp.zeros((0, system.control_dim))
        self.u_meas = jnp.zeros((0, system.control_dim))

        self.p = jnp.zeros(self.landmark_offset)
        self.p_prior = jnp.zeros(self.landmark_offset)
        self.p_prior_w = jnp.full(self.landmark_offset,
                                  1.0 / disturbance_prior_std ** 2)

        self.observations: List[List[Tuple[int, Array]]] = [[]]
        self.slots: Dict[int, int] = {}

    @property
    def horizon(self) -> int:
        return self.us.shape[0]

    @property
    def num_landmarks(self) -> int:
        return len(self.slots)

    @property
    def landmarks(self) -> Array:
        return self.p[self.landmark_offset:].reshape(-1, 2)

    @property
    def disturbance(self) -> Optional[Array]:
        return self.p[:2] if self.system.disturbance else None

    def add(self, u: Array, h: float):
        """Append a commanded control and propagate the estimated pose."""
        u = jnp.asarray(u, dtype=float)
        t = self.ts[-1]
        x_est = self.system.step(t, self.xs[-1], u, h, self.p)
        x_odom = self.system.replace(disturbance=False).step(
            t, self.odometry[-1], u, h, self.p)

        self.ts = jnp.append(self.ts, t + h)
        self.xs = jnp.concatenate([self.xs, x_est[None]])
        self.odometry = jnp.concatenate([self.odometry, x_odom[None]])
        self.us = jnp.concatenate([self.us, u[None]])
        self.u_meas = jnp.concatenate([self.u_meas, u[None]])
        self.observations.append([])

    def observe(self, landmark_id: int, z: Array) -> int:
        """Record a body-frame observation from the latest pose.

        A landmark seen for the first time is appended to p at the position
        implied by the latest estimated pose, with that position as prior
        mean.

        Returns:
            Slot index of the landmark.
        """
        z = jnp.asarray(z, dtype=float)
        if landmark_id not in self.slots:
            x = self.xs[-1]
            l = x[1:] + rot2(x[0]) @ z
            self.slots[landmark_id] = len(self.slots)
            self.p = jnp.concatenate([self.p, l])
            self.p_prior = jnp.concatenate([self.p_prior, l])
            self.p_prior_w = jnp.concatenate([
                self.p_prior_w,
                jnp.full(2, 1.0 / self.landmark_prior_std ** 2)])
        slot = self.slots[landmark_id]
        self.observations[-1].append((slot, z))
        return slot

    def trajectory(self, window: int = -1) -> Trajectory:
        """Full history, or its trailing `window` controls when 0 < window < N."""
        traj = Trajectory(ts=self.ts, xs=self.xs, us=self.us, p=self.p)
        if 0 < window < self.horizon:
            return traj.window(window)
        return traj

    def cost(self, start: int, cw: Tuple[float, float], cp: float) -> TrackCost:
        """TrackCost over the poses start..N of the history.

        Args:
            start: Index of the first pose, which the solver keeps fixed.
            cw: Process noise variances of the two control channels.
            cp: Observation noise variance.
        """
        observations = self.observations[start:]
        width = max(len(obs) for obs in observations)
        slot = np.zeros((len(observations), width), dtype=np.int32)
        z = np.zeros((len(observations), width, 2))
        mask = np.zeros((len(observations), width))
        for k, obs in enumerate(observations):
            for j, (s, zj) in enumerate(obs):
                slot[k, j] = s
                z[k, j] = np.asarray(zj)
                mask[k, j] = 1.0
        return TrackCost(
            ts=self.ts[start:],
            u_meas=self.u_meas[start:],
            obs_slot=slot, obs_z=z, obs_mask=mask,
            cw_inv=1.0 / jnp.asarray(cw),
            cp_inv=1.0 / cp,
            p_prior=self.p_prior,
            p_prior_w=self.p_prior_w,
            landmark_offset=self.landmark_offset,
        )

    def splice(self, window: Trajectory):
        """Write an estimated (sub)trajectory back into the history.

        States and controls are overwritten from index N - M, where M is the
        number of controls of `window`; its parameters replace p.
        """
        traj = Trajectory(ts=self.ts, xs=self.xs, us=self.us,
                          p=self.p).splice(window)
        self.xs, self.us, self.p = traj.xs, traj.us, traj.p

    def snapshot(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Copies of (ts, xs, us, p)."""
        return (np.array(self.ts), np.array(self.xs), np.array(self.us),
                np.array(self.p))
