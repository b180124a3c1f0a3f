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

"""geoddp: Differential Dynamic Programming on manifolds, in JAX.

Modules:
- core: trajectories, configuration, pytree base class, types
- utils: manifolds, linearization, rollouts
- systems: discrete-time dynamics (double integrator, car, attitude)
- costs: quadratic, penalty and pose/landmark estimation costs
- lqr: Riccati recursions
- solvers: Ddp, PDdp (joint parameter estimation), GDocp (constraints)
- track: receding-horizon control and estimation harness
"""

from . import core
from . import utils
from . import systems
from . import costs
from . import lqr
from . import solvers
from . import track
