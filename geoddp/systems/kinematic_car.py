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

"""Kinematic ground vehicle on SE(2)."""

import jax.numpy as jnp
from jax import Array

from geoddp.systems.base import System
from geoddp.utils.manifold import SE2, se2_compose, se2_exp, wrap_to_pi


class KinematicCar(System):
    """Unicycle-type vehicle with pose state (theta, px, py).

    The control is (v, omega): forward speed and yaw rate, held constant over
    a step so that the pose moves along the twist h * (omega, v, 0).

    When `disturbance` is set, the first two parameters are an unknown
    constant world-frame drift velocity added to the position, which lets
    PDdp estimate it jointly with the trajectory. Any further parameters
    (landmarks) do not enter the dynamics.
    """

    meta_fields = System.meta_fields + ('disturbance',)

    def __init__(self, disturbance: bool = False):
        super().__init__(SE2(), 2)
        self.disturbance = disturbance

    def step(self, t, x, u, h, p) -> Array:
        twist = h * jnp.array([u[1], u[0], 0.0])
        x_next = se2_compose(x, se2_exp(twist))
        if self.disturbance:
            x_next = x_next.at[1:].add(h * p[:2])
        return x_next.at[0].set(wrap_to_pi(x_next[0]))
