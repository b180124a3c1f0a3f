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

"""Pose/landmark estimation cost for planar vehicles.

The estimated trajectory is the rollout of the controls from a fixed first
pose, so the controls play the role of the unknown process noise. The cost
combines three kinds of residuals:

- odometry: deviation of each control from the control that was commanded,
  weighted by the inverse process noise variances
- landmark observations: body-frame landmark position predicted from the
  pose and the landmark parameters, minus the measured one
- priors: parameters (disturbance, landmarks) around their prior estimate

Parameters are laid out as p = [disturbance (2, optional), l_0, l_1, ...].
"""

import jax.numpy as jnp
from jax import Array

from geoddp.costs.base import LeastSquaresCost
from geoddp.utils.manifold import SE2, rot2


class TrackCost(LeastSquaresCost):
    """Least-squares cost of a pose track with landmark observations.

    Observations are stored per state in padded arrays of width K, the
    largest number of landmarks seen from a single pose.

    Attributes:
        ts: Time stamps (N+1,) used to find the step index of a call.
        u_meas: Commanded controls (N, 2).
        obs_slot: Landmark slot of each observation (N+1, K).
        obs_z: Body-frame measurements (N+1, K, 2).
        obs_mask: 1 for real observations, 0 for padding (N+1, K).
        cw_inv: Inverse process noise variances (2,).
        cp_inv: Inverse observation noise variance.
        p_prior: Prior mean of the parameters (np,).
        p_prior_w: Prior weights (inverse variances) of the parameters (np,).
        landmark_offset: Index of the first landmark coordinate in p.
    """

    data_fields = ('ts', 'u_meas', 'obs_slot', 'obs_z', 'obs_mask',
                   'cw_inv', 'cp_inv', 'p_prior', 'p_prior_w')
    meta_fields = LeastSquaresCost.meta_fields + ('landmark_offset',)

    def __init__(self, ts, u_meas, obs_slot, obs_z, obs_mask, cw_inv, cp_inv,
                 p_prior, p_prior_w, landmark_offset: int = 0):
        super().__init__(SE2())
        self.ts = jnp.asarray(ts)
        self.u_meas = jnp.asarray(u_meas)
        self.obs_slot = jnp.asarray(obs_slot, dtype=jnp.int32)
        self.obs_z = jnp.asarray(obs_z)
        self.obs_mask = jnp.asarray(obs_mask)
        self.cw_inv = jnp.asarray(cw_inv)
        self.cp_inv = cp_inv
        self.p_prior = jnp.asarray(p_prior)
        self.p_prior_w = jnp.asarray(p_prior_w)
        self.landmark_offset = landmark_offset
        if self.u_meas.shape[0] + 1 != self.ts.shape[0]:
            raise ValueError("u_meas must have one entry less than ts")
        if self.obs_z.shape[:2] != self.obs_slot.shape:
            raise ValueError("obs_z and obs_slot must share their leading shape")

    def _index(self, t):
        return jnp.argmin(jnp.abs(self.ts - t))

    def observation_residual(self, k, x: Array, p: Array) -> Array:
        landmarks = p[self.landmark_offset:].reshape(-1, 2)
        ls = landmarks[self.obs_slot[k]]
        predicted = (ls - x[1:]) @ rot2(x[0])
        r = (predicted - self.obs_z[k]) * self.obs_mask[k][:, None]
        return jnp.sqrt(self.cp_inv) * r.reshape(-1)

    def stage_residual(self, t, x, u, p):
        k = self._index(t)
        du = u - self.u_meas[jnp.minimum(k, self.u_meas.shape[0] - 1)]
        return jnp.concatenate([
            jnp.sqrt(self.cw_inv) * du,
            self.observation_residual(k, x, p),
        ])

    def terminal_residual(self, t, x, p):
        return jnp.concatenate([
            self.observation_residual(self._index(t), x, p),
            jnp.sqrt(self.p_prior_w) * (p - self.p_prior),
        ])
