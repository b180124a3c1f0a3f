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

"""Planar point mass (double integrator)."""

import jax.numpy as jnp
from jax import Array

from geoddp.systems.base import System
from geoddp.utils.manifold import Euclidean


class Particle2d(System):
    """Double integrator with state (px, py, vx, vy) and acceleration input.

    Discretized exactly under a zero-order hold:

        q' = q + h v + h^2 / 2 u
        v' = v + h u
    """

    def __init__(self):
        super().__init__(Euclidean(4), 2)

    def step(self, t, x, u, h, p) -> Array:
        q, v = x[:2], x[2:]
        return jnp.concatenate([q + h * v + 0.5 * h * h * u, v + h * u])

    def jacobians(self, t, x, u, h, p):
        eye = jnp.eye(2)
        zero = jnp.zeros((2, 2))
        A = jnp.block([[eye, h * eye], [zero, eye]])
        B = jnp.vstack([0.5 * h * h * eye, h * eye])
        C = jnp.zeros((4, p.shape[0]))
        return A, B, C
