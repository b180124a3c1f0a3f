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

"""Cost interface, cost sums and least-squares costs.

A cost provides a stage term L(t, x, u, p) and a terminal term
Lf(tf, x, p). Derivatives are taken in tangent coordinates at x: the cost
is composed with manifold.retract and differentiated at the zero tangent
vector.
"""

from typing import Sequence

import jax
import jax.numpy as jnp
from jax import Array

from geoddp.core.module import Module
from geoddp.core.types import CostDerivatives
from geoddp.utils.manifold import Manifold


def _split(L: Array, g: Array, H: Array, n: int, m: int) -> CostDerivatives:
    """Split a joint gradient/Hessian over z = (dx, du, dp) into blocks."""
    x, u, p = slice(0, n), slice(n, n + m), slice(n + m, None)
    return CostDerivatives(
        L=L,
        Lx=g[x], Lxx=H[x, x],
        Lu=g[u], Luu=H[u, u], Lxu=H[x, u],
        Lp=g[p], Lpp=H[p, p], Lpx=H[p, x], Lpu=H[p, u],
    )


class Cost(Module):
    """Stage and terminal cost on a state manifold.

    Subclasses implement `stage` and optionally `terminal` (zero by
    default). The derivative methods use JAX autodiff and may be overridden
    with analytic expressions.
    """

    meta_fields = ('manifold',)

    def __init__(self, manifold: Manifold):
        self.manifold = manifold

    def stage(self, t: float, x: Array, u: Array, p: Array) -> Array:
        raise NotImplementedError

    def terminal(self, t: float, x: Array, p: Array) -> Array:
        return jnp.zeros(())

    def _perturbed_stage(self, t, x, u, p):
        n, m = self.manifold.dim, u.shape[0]

        def fun(z):
            dx, du, dp = z[:n], z[n:n + m], z[n + m:]
            return self.stage(t, self.manifold.retract(x, dx), u + du, p + dp)

        return fun, jnp.zeros(n + m + p.shape[0])

    def _perturbed_terminal(self, t, x, p):
        n = self.manifold.dim

        def fun(z):
            return self.terminal(t, self.manifold.retract(x, z[:n]), p + z[n:])

        return fun, jnp.zeros(n + p.shape[0])

    def stage_derivatives(self, t, x, u, p) -> CostDerivatives:
        fun, z = self._perturbed_stage(t, x, u, p)
        L = self.stage(t, x, u, p)
        return _split(L, jax.grad(fun)(z), jax.hessian(fun)(z),
                      self.manifold.dim, u.shape[0])

    def terminal_derivatives(self, t, x, p) -> CostDerivatives:
        fun, z = self._perturbed_terminal(t, x, p)
        L = self.terminal(t, x, p)
        return _split(L, jax.grad(fun)(z), jax.hessian(fun)(z),
                      self.manifold.dim, 0)


class MultiCost(Cost):
    """Sum of independent costs; values and derivatives add up.

    Example:
        >>> cost = MultiCost([tracking_cost, ConstraintCost(sys, disk, 10.0)])
    """

    data_fields = ('costs',)

    def __init__(self, costs: Sequence[Cost]):
        if not costs:
            raise ValueError("MultiCost needs at least one cost")
        super().__init__(costs[0].manifold)
        for cost in costs[1:]:
            if cost.manifold != self.manifold:
                raise ValueError("All costs of a MultiCost must share a manifold")
        self.costs = tuple(costs)

    def stage(self, t, x, u, p):
        return sum(c.stage(t, x, u, p) for c in self.costs)

    def terminal(self, t, x, p):
        return sum(c.terminal(t, x, p) for c in self.costs)

    def stage_derivatives(self, t, x, u, p):
        parts = [c.stage_derivatives(t, x, u, p) for c in self.costs]
        return jax.tree_util.tree_map(lambda *a: sum(a), *parts)

    def terminal_derivatives(self, t, x, p):
        parts = [c.terminal_derivatives(t, x, p) for c in self.costs]
        return jax.tree_util.tree_map(lambda *a: sum(a), *parts)


class LeastSquaresCost(Cost):
    """Cost 0.5 |r|^2 of a residual vector, with Gauss-Newton derivatives.

    Subclasses implement `stage_residual` and optionally
    `terminal_residual`. The Hessians are J^T J, which keeps them positive
    semi-definite regardless of the curvature of the residuals.
    """

    def stage_residual(self, t, x, u, p) -> Array:
        raise NotImplementedError

    def terminal_residual(self, t, x, p) -> Array:
        return jnp.zeros(0)

    def stage(self, t, x, u, p):
        r = self.stage_residual(t, x, u, p)
        return 0.5 * jnp.dot(r, r)

    def terminal(self, t, x, p):
        r = self.terminal_residual(t, x, p)
        return 0.5 * jnp.dot(r, r)

    def _gauss_newton(self, residual, z, m):
        r = residual(z)
        J = jax.jacfwd(residual)(z)
        return _split(0.5 * jnp.dot(r, r), J.T @ r, J.T @ J,
                      self.manifold.dim, m)

    def stage_derivatives(self, t, x, u, p):
        n, m = self.manifold.dim, u.shape[0]

        def residual(z):
            dx, du, dp = z[:n], z[n:n + m], z[n + m:]
            return self.stage_residual(
                t, self.manifold.retract(x, dx), u + du, p + dp)

        return self._gauss_newton(residual, jnp.zeros(n + m + p.shape[0]), m)

    def terminal_derivatives(self, t, x, p):
        n = self.manifold.dim

        def residual(z):
            return self.terminal_residual(
                t, self.manifold.retract(x, z[:n]), p + z[n:])

        return self._gauss_newton(residual, jnp.zeros(n + p.shape[0]), 0)
