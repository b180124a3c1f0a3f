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

"""Rollout utilities for manifold DDP.

This module provides functions for simulating trajectories through a
system and evaluating their cost.
"""

from typing import Tuple

import jax.numpy as jnp
from jax import Array, jit, lax, vmap


@jit
def rollout(system, ts: Array, x0: Array, us: Array, p: Array) -> Array:
    """Roll out dynamics: xs[k+1] = step(ts[k], xs[k], us[k], h_k, p).

    Args:
        system: System providing step(t, x, u, h, p).
        ts: Time stamps of shape (N+1,).
        x0: Initial state.
        us: Control sequence of shape (N, m).
        p: Parameters of shape (np,).

    Returns:
        xs: State trajectory of shape (N+1, *state_shape).

    Example:
        >>> xs = rollout(sys, ts, x0, us, p)
        >>> assert xs.shape[0] == us.shape[0] + 1
    """
    def step(x, inputs):
        t, h, u = inputs
        x_next = system.step(t, x, u, h, p)
        return x_next, x_next

    _, xs_rest = lax.scan(step, x0, (ts[:-1], jnp.diff(ts), us))
    return jnp.concatenate([x0[None], xs_rest])


@jit
def ddp_rollout(
    system,
    ts: Array,
    xs: Array,
    us: Array,
    p: Array,
    K: Array,
    k: Array,
    Kp: Array,
    dp: Array,
    alpha: float,
) -> Tuple[Array, Array, Array]:
    """Closed-loop rollout used by the DDP forward pass.

    Applies the feedback policy around the nominal trajectory, with the
    state deviation measured on the manifold and the feedforward and
    parameter steps scaled by alpha:

        p_new   = p + alpha dp
        u_new_k = us_k + alpha k_k + K_k difference(xs_k, x_new_k) + Kp_k alpha dp
        x_new_{k+1} = step(ts_k, x_new_k, u_new_k, h_k, p_new)

    Args:
        system: System providing step and manifold.
        ts: Time stamps of shape (N+1,).
        xs: Nominal states of shape (N+1, *state_shape).
        us: Nominal controls of shape (N, m).
        p: Nominal parameters of shape (np,).
        K: State feedback gains of shape (N, m, n).
        k: Feedforward terms of shape (N, m).
        Kp: Parameter feedback gains of shape (N, m, np).
        dp: Parameter step of shape (np,).
        alpha: Line search parameter in (0, 1].

    Returns:
        xs_new: Updated states, xs_new[0] == xs[0].
        us_new: Updated controls.
        p_new: Updated parameters.
    """
    manifold = system.manifold
    p_new = p + alpha * dp

    def step(x, inputs):
        t, h, x_nom, u_nom, K_t, k_t, Kp_t = inputs
        dx = manifold.difference(x_nom, x)
        u = u_nom + alpha * k_t + K_t @ dx + Kp_t @ (alpha * dp)
        x_next = system.step(t, x, u, h, p_new)
        return x_next, (x_next, u)

    _, (xs_rest, us_new) = lax.scan(
        step, xs[0], (ts[:-1], jnp.diff(ts), xs[:-1], us, K, k, Kp))
    return jnp.concatenate([xs[:1], xs_rest]), us_new, p_new


@jit
def evaluate(cost, ts: Array, xs: Array, us: Array, p: Array) -> Array:
    """Total cost: sum of stage costs plus the terminal cost."""
    stage = vmap(cost.stage, in_axes=(0, 0, 0, None))(ts[:-1], xs[:-1], us, p)
    return jnp.sum(stage) + cost.terminal(ts[-1], xs[-1], p)


def is_finite(*arrays) -> bool:
    """True if every entry of every array is finite."""
    return all(bool(jnp.all(jnp.isfinite(a))) for a in arrays)
