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

"""Costs and constraints.

- Cost: stage/terminal cost with autodiff tangent-space derivatives
- MultiCost: sum of costs
- LeastSquaresCost: 0.5 |r|^2 with Gauss-Newton derivatives
- LqCost: quadratic tracking cost towards a goal state
- Constraint, DiskConstraint: inequality constraints g <= 0
- ConstraintCost: quadratic exterior penalty on a constraint
- TrackCost: pose/landmark estimation cost
"""

from geoddp.costs.base import Cost, MultiCost, LeastSquaresCost
from geoddp.costs.lq import LqCost
from geoddp.costs.constraint import (
    Constraint,
    DiskConstraint,
    ConstraintCost,
    max_violation,
)
from geoddp.costs.track import TrackCost

__all__ = [
    'Cost',
    'MultiCost',
    'LeastSquaresCost',
    'LqCost',
    'Constraint',
    'DiskConstraint',
    'ConstraintCost',
    'max_violation',
    'TrackCost',
]
