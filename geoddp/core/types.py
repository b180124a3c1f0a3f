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

"""Type definitions for manifold DDP solvers."""

from enum import Enum, auto
from typing import Any, NamedTuple

from jax import Array


# Type aliases for common shapes
# State: manifold point, e.g. (n,) vector or (3, 3) rotation
# Tangent: (n,) vector where n is the manifold dimension
# Control: (m,) array
# Parameters: (np,) array, possibly empty
# StateTrajectory: (N+1, *state_shape) array
# ControlTrajectory: (N, m) array

PyTree = Any


class SolverStatus(Enum):
    """Status codes for DDP solvers."""
    INITIALIZED = auto()      # Constructed, no iteration run yet
    ITERATING = auto()        # Iterations performed, not terminated
    CONVERGED = auto()        # Predicted decrease below tolerance
    MAX_ITERATIONS = auto()   # Reached maximum iterations
    DIVERGED = auto()         # Regularization or outer loop bound exceeded

    @property
    def terminal(self) -> bool:
        return self in (SolverStatus.CONVERGED, SolverStatus.MAX_ITERATIONS,
                        SolverStatus.DIVERGED)


class CostDerivatives(NamedTuple):
    """Cost value and derivatives in tangent coordinates.

    Shapes for state dimension n, control dimension m and parameter
    dimension np. Terminal costs report zero-sized control blocks.
    """
    L: Array    # ()
    Lx: Array   # (n,)
    Lxx: Array  # (n, n)
    Lu: Array   # (m,)
    Luu: Array  # (m, m)
    Lxu: Array  # (n, m)
    Lp: Array   # (np,)
    Lpp: Array  # (np, np)
    Lpx: Array  # (np, n)
    Lpu: Array  # (np, m)


class Linearization(NamedTuple):
    """Dynamics Jacobians and cost derivatives along a trajectory.

    Stage quantities have a leading axis of length N, terminal ones do not.
    """
    A: Array            # (N, n, n)
    B: Array            # (N, n, m)
    C: Array            # (N, n, np)
    stage: CostDerivatives
    terminal: CostDerivatives


class IterationReport(NamedTuple):
    """Outcome of a single call to `iterate()`."""
    status: SolverStatus
    accepted: bool
    alpha: float
    mu: float
    obj: float
    predicted_decrease: float
    actual_decrease: float
    nonfinite: bool = False
    degraded: bool = False
