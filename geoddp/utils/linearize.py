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

"""Linearization and quadratization along a trajectory.

Dynamics Jacobians and cost derivatives are evaluated in tangent
coordinates at every point of the trajectory, batched over time with vmap.
"""

import jax.numpy as jnp
from jax import Array, jit, vmap

from geoddp.core.types import Linearization


def linearize_dynamics(system, ts: Array, xs: Array, us: Array, p: Array):
    """Jacobians (A, B, C) of each step along a trajectory.

    Args:
        system: System providing jacobians(t, x, u, h, p).
        ts: Time stamps of shape (N+1,).
        xs: States of shape (N+1, *state_shape).
        us: Controls of shape (N, m).
        p: Parameters of shape (np,).

    Returns:
        A: Shape (N, n, n).
        B: Shape (N, n, m).
        C: Shape (N, n, np).
    """
    hs = jnp.diff(ts)
    return vmap(system.jacobians, in_axes=(0, 0, 0, 0, None))(
        ts[:-1], xs[:-1], us, hs, p)


def quadratize_cost(cost, ts: Array, xs: Array, us: Array, p: Array):
    """Stage derivatives (batched over N) and terminal derivatives."""
    stage = vmap(cost.stage_derivatives, in_axes=(0, 0, 0, None))(
        ts[:-1], xs[:-1], us, p)
    terminal = cost.terminal_derivatives(ts[-1], xs[-1], p)
    return stage, terminal


@jit
def linearize(system, cost, ts: Array, xs: Array, us: Array,
              p: Array) -> Linearization:
    """Linearize dynamics and quadratize cost along a trajectory.

    Example:
        >>> lin = linearize(sys, cost, traj.ts, traj.xs, traj.us, traj.p)
        >>> lin.A.shape  # (N, n, n)
    """
    A, B, C = linearize_dynamics(system, ts, xs, us, p)
    stage, terminal = quadratize_cost(cost, ts, xs, us, p)
    return Linearization(A=A, B=B, C=C, stage=stage, terminal=terminal)


def finite_difference_jacobians(system, t, x, u, h, p, eps: float = 1e-6):
    """Central finite-difference version of System.jacobians.

    Useful to check analytic or autodiff Jacobians of a system.
    """
    manifold = system.manifold
    x_next = system.step(t, x, u, h, p)

    def column(dx, du, dp):
        plus = system.step(t, manifold.retract(x, dx), u + du, h, p + dp)
        minus = system.step(t, manifold.retract(x, -dx), u - du, h, p - dp)
        return (manifold.difference(x_next, plus)
                - manifold.difference(x_next, minus)) / (2 * eps)

    n, m, q = manifold.dim, u.shape[0], p.shape[0]
    zn, zm, zq = jnp.zeros(n), jnp.zeros(m), jnp.zeros(q)
    A = jnp.stack([column(eps * e, zm, zq) for e in jnp.eye(n)], axis=1)
    B = jnp.stack([column(zn, eps * e, zq) for e in jnp.eye(m)], axis=1) \
        if m else jnp.zeros((n, 0))
    C = jnp.stack([column(zn, zm, eps * e) for e in jnp.eye(q)], axis=1) \
        if q else jnp.zeros((n, 0))
    return A, B, C
