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

"""DDP solvers with a common iterate/solve interface.

Available solvers:
- Ddp: unconstrained DDP on manifold-valued states
- PDdp: DDP that also optimizes static parameters
- GDocp: constrained DDP by exterior penalty escalation

Example:
    >>> from geoddp.solvers import Ddp
    >>> result = Ddp(system, cost, trajectory).solve()
    >>>
    >>> # Or by name
    >>> solver = get_solver('pddp', system, cost, trajectory)
"""

from geoddp.solvers.base import DdpBase, get_solver
from geoddp.solvers.ddp import Ddp, Policy
from geoddp.solvers.pddp import PDdp
from geoddp.solvers.gdocp import GDocp

__all__ = [
    # Base classes
    'DdpBase',
    'get_solver',
    'Policy',
    # Solvers
    'Ddp',
    'PDdp',
    'GDocp',
]
