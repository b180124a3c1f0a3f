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

"""Discrete-time system interface."""

from typing import Tuple

import jax
import jax.numpy as jnp
from jax import Array

from geoddp.core.module import Module
from geoddp.utils.manifold import Manifold


class System(Module):
    """Discrete-time dynamics on a manifold.

    Subclasses implement `step`, a pure function of its arguments:

        x_next = step(t, x, u, h, p)

    where t is the time at the start of the step, h the step size and p the
    static parameter vector (possibly empty).

    Attributes:
        manifold: State manifold.
        control_dim: Dimension m of the control vector.
    """

    meta_fields = ('manifold', 'control_dim')

    def __init__(self, manifold: Manifold, control_dim: int):
        self.manifold = manifold
        self.control_dim = control_dim

    @property
    def state_dim(self) -> int:
        """Dimension of the state tangent space."""
        return self.manifold.dim

    def step(self, t: float, x: Array, u: Array, h: float, p: Array) -> Array:
        raise NotImplementedError

    def jacobians(
        self, t: float, x: Array, u: Array, h: float, p: Array,
    ) -> Tuple[Array, Array, Array]:
        """Linearize one step in tangent coordinates.

        Differentiates difference(x', step(retract(x, dx), u + du, p + dp))
        at zero, with x' = step(x, u, p).

        Returns:
            A: d x' / d x of shape (n, n).
            B: d x' / d u of shape (n, m).
            C: d x' / d p of shape (n, np).
        """
        x_next = self.step(t, x, u, h, p)
        manifold = self.manifold

        def perturbed(dx, du, dp):
            xp = self.step(t, manifold.retract(x, dx), u + du, h, p + dp)
            return manifold.difference(x_next, xp)

        return jax.jacfwd(perturbed, argnums=(0, 1, 2))(
            jnp.zeros(manifold.dim), jnp.zeros_like(u), jnp.zeros_like(p))
