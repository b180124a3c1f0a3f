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

"""Core abstractions for manifold DDP.

- Module: pytree base class for systems, costs and constraints
- Trajectory: time stamps, states, controls, parameters and solver metadata
- Params and config dataclasses for solvers and the track harness
- Type definitions (solver status, derivative containers, reports)
"""

from geoddp.core.types import (
    SolverStatus,
    PyTree,
    CostDerivatives,
    Linearization,
    IterationReport,
)

from geoddp.core.module import Module

from geoddp.core.trajectory import (
    Trajectory,
    trajectory_from_controls,
)

from geoddp.core.config import (
    Params,
    DdpConfig,
    GDocpConfig,
    TrackConfig,
)

__all__ = [
    # Types
    'SolverStatus',
    'PyTree',
    'CostDerivatives',
    'Linearization',
    'IterationReport',
    'Module',
    # Data structures
    'Trajectory',
    'trajectory_from_controls',
    # Configuration
    'Params',
    'DdpConfig',
    'GDocpConfig',
    'TrackConfig',
]
