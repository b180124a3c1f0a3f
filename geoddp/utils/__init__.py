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

"""Computational building blocks of the DDP solvers.

- Manifolds (Euclidean, SO(3), SE(2)) with retract/difference
- Linearization of dynamics and quadratization of costs in tangent space
- Open- and closed-loop rollouts and cost evaluation
"""

# Manifolds
from geoddp.utils.manifold import (
    Manifold,
    Euclidean,
    SO3,
    SE2,
    wrap_to_pi,
)

# Linearization utilities
from geoddp.utils.linearize import (
    linearize,
    linearize_dynamics,
    quadratize_cost,
    finite_difference_jacobians,
)

# Rollout utilities
from geoddp.utils.rollout import (
    rollout,
    ddp_rollout,
    evaluate,
    is_finite,
)

__all__ = [
    # Manifolds
    'Manifold',
    'Euclidean',
    'SO3',
    'SE2',
    'wrap_to_pi',
    # Linearization
    'linearize',
    'linearize_dynamics',
    'quadratize_cost',
    'finite_difference_jacobians',
    # Rollout
    'rollout',
    'ddp_rollout',
    'evaluate',
    'is_finite',
]
