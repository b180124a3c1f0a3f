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

"""Inequality constraints and the constraint-to-cost adapter."""

import jax
import jax.numpy as jnp
from jax import Array

from geoddp.core.module import Module
from geoddp.costs.base import LeastSquaresCost
from geoddp.utils.manifold import Manifold


class Constraint(Module):
    """Inequality constraint g(t, x, u, p) <= 0, vector valued."""

    def __call__(self, t: float, x: Array, u: Array, p: Array) -> Array:
        raise NotImplementedError


class DiskConstraint(Constraint):
    """Keep a planar position outside a disk:

        g = radius + clearance - |q - center| <= 0

    Attributes:
        center: Disk center (2,).
        radius: Disk radius.
        clearance: Extra margin kept from the disk boundary.
        offset: Index of the first position coordinate in the state vector.
    """

    data_fields = ('center', 'radius', 'clearance')
    meta_fields = ('offset',)

    def __init__(self, center: Array, radius: float, clearance: float = 0.0,
                 offset: int = 0):
        self.center = jnp.asarray(center)
        self.radius = radius
        self.clearance = clearance
        self.offset = offset

    def distance(self, x: Array) -> Array:
        d = x[self.offset:self.offset + 2] - self.center
        return jnp.sqrt(jnp.maximum(jnp.dot(d, d), 1e-12))

    def __call__(self, t, x, u, p):
        return jnp.atleast_1d(self.radius + self.clearance - self.distance(x))


class ConstraintCost(LeastSquaresCost):
    """Quadratic exterior penalty 0.5 * weight * sum(max(0, g)^2).

    Written as the least-squares residual sqrt(weight) * max(0, g), so the
    Hessian is the Gauss-Newton term weight * J' diag(g > 0) J. The terminal
    state is penalized with a zero control.
    """

    data_fields = ('constraint', 'weight')
    meta_fields = LeastSquaresCost.meta_fields + ('control_dim',)

    def __init__(self, manifold: Manifold, control_dim: int,
                 constraint: Constraint, weight: float = 1.0):
        super().__init__(manifold)
        self.control_dim = control_dim
        self.constraint = constraint
        self.weight = weight

    def stage_residual(self, t, x, u, p):
        g = self.constraint(t, x, u, p)
        return jnp.sqrt(self.weight) * jnp.maximum(g, 0.0)

    def terminal_residual(self, t, x, p):
        return self.stage_residual(t, x, jnp.zeros(self.control_dim), p)


def max_violation(constraint: Constraint, ts: Array, xs: Array, us: Array,
                  p: Array) -> Array:
    """Largest max(0, g) over all time steps, terminal state included."""
    us = jnp.vstack([us, jnp.zeros((1, us.shape[1]))])
    g = jax.vmap(lambda t, x, u: constraint(t, x, u, p))(ts, xs, us)
    return jnp.max(jnp.maximum(g, 0.0))
