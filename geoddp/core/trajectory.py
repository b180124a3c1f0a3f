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

"""Trajectory data structures for manifold DDP."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import jax.numpy as jnp
import numpy as np
from jax import Array

from geoddp.core.types import SolverStatus


@dataclass
class Trajectory:
    """Time stamps, states, controls and parameters of a trajectory.

    This is both the input handed to a solver and the snapshot it returns.
    Arrays are immutable JAX arrays, so a snapshot can be read while a
    solver keeps working on its own copy.

    Attributes:
        ts: Time stamps of shape (N+1,), strictly increasing.
        xs: States of shape (N+1, *state_shape). xs[k] is the state at ts[k].
        us: Controls of shape (N, m). us[k] is applied on [ts[k], ts[k+1]].
        p: Static parameters of shape (np,), possibly empty.
        obj: Total cost of the trajectory, inf if not evaluated.
        status: Solver status when returned by a solver.
        info: Solver-specific information such as:
            - 'iterations': Number of `iterate()` calls performed
            - 'mu': Final regularization
            - 'reports': List of IterationReport
            - 'max_constraint_violation': GDocp violation at the end

    Example:
        >>> traj = Trajectory(ts=jnp.linspace(0, 10, 33), xs=xs, us=us)
        >>> result = Ddp(sys, cost, traj).solve()
        >>> print(result.status, result.obj)
    """

    ts: Array
    xs: Array
    us: Array
    p: Optional[Array] = None
    obj: float = float('inf')
    status: SolverStatus = SolverStatus.INITIALIZED
    info: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.ts = jnp.asarray(self.ts)
        self.xs = jnp.asarray(self.xs)
        self.us = jnp.asarray(self.us)
        self.p = jnp.zeros(0) if self.p is None else jnp.asarray(self.p).reshape(-1)

        if self.us.ndim != 2:
            raise ValueError(f"us must have shape (N, m), got {self.us.shape}")
        N = self.us.shape[0]
        if N < 1:
            raise ValueError(f"Horizon must be >= 1, got {N}")
        if self.ts.shape != (N + 1,):
            raise ValueError(
                f"ts must have shape ({N + 1},) for {N} controls, got {self.ts.shape}")
        if self.xs.shape[0] != N + 1:
            raise ValueError(
                f"xs must hold {N + 1} states for {N} controls, got {self.xs.shape[0]}")
        if not np.all(np.diff(np.asarray(self.ts)) > 0):
            raise ValueError("Time stamps must be strictly increasing")

    @property
    def horizon(self) -> int:
        """Return the number of control segments N."""
        return self.us.shape[0]

    @property
    def control_dim(self) -> int:
        return self.us.shape[1]

    @property
    def param_dim(self) -> int:
        return self.p.shape[0]

    @property
    def hs(self) -> Array:
        """Step sizes ts[k+1] - ts[k], shape (N,)."""
        return jnp.diff(self.ts)

    @property
    def converged(self) -> bool:
        return self.status == SolverStatus.CONVERGED

    def replace(self, **updates) -> 'Trajectory':
        """Return a copy with some fields replaced."""
        values = dict(ts=self.ts, xs=self.xs, us=self.us, p=self.p,
                      obj=self.obj, status=self.status, info=dict(self.info))
        values.update(updates)
        return Trajectory(**values)

    def window(self, size: int) -> 'Trajectory':
        """Trailing sub-trajectory with `size` controls and `size`+1 states."""
        if not 1 <= size <= self.horizon:
            raise ValueError(
                f"Window size must be in [1, {self.horizon}], got {size}")
        start = self.horizon - size
        return Trajectory(ts=self.ts[start:], xs=self.xs[start:],
                          us=self.us[start:], p=self.p)

    def splice(self, window: 'Trajectory') -> 'Trajectory':
        """Replace the trailing part of this trajectory with `window`.

        The window's M controls overwrite the last M controls and its M+1
        states overwrite the last M+1 states, so both use the same offset
        N - M. The window's parameters replace the current ones.
        """
        size = window.horizon
        if size > self.horizon:
            raise ValueError(
                f"Window of {size} controls does not fit in horizon {self.horizon}")
        start = self.horizon - size
        if not np.allclose(np.asarray(self.ts[start:]), np.asarray(window.ts)):
            raise ValueError("Window time stamps do not match the trailing segment")
        return self.replace(
            xs=self.xs.at[start:].set(window.xs),
            us=self.us.at[start:].set(window.us),
            p=window.p,
        )

    def shift(self, fill_control: Optional[Array] = None) -> 'Trajectory':
        """Shift the horizon forward by one step for warm-starting.

        Times advance by the last step size, the first control is dropped and
        the last one duplicated (or replaced by `fill_control`). States are
        shifted likewise; a solver rolls them out again from xs[0].
        """
        if fill_control is None:
            fill_control = self.us[-1]
        ts = jnp.append(self.ts[1:], self.ts[-1] + (self.ts[-1] - self.ts[-2]))
        xs = jnp.concatenate([self.xs[1:], self.xs[-1:]])
        us = jnp.vstack([self.us[1:], fill_control[None, :]])
        return Trajectory(ts=ts, xs=xs, us=us, p=self.p)


def trajectory_from_controls(system, ts: Array, x0: Array, us: Array,
                             p: Optional[Array] = None) -> Trajectory:
    """Create a Trajectory by rolling out controls through a system.

    Args:
        system: System providing step(t, x, u, h, p).
        ts: Time stamps of shape (N+1,).
        x0: Initial state.
        us: Control sequence of shape (N, m).
        p: Parameters passed to the system.

    Returns:
        Trajectory with states from the rollout and obj=inf.
    """
    from geoddp.utils.rollout import rollout  # Avoid circular import

    p = jnp.zeros(0) if p is None else jnp.asarray(p)
    ts = jnp.asarray(ts)
    xs = rollout(system, ts, jnp.asarray(x0), jnp.asarray(us), p)
    return Trajectory(ts=ts, xs=xs, us=us, p=p)
