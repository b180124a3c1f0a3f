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

"""Discrete-time systems.

- System: base class with tangent-space linearization by autodiff
- Particle2d: planar double integrator
- KinematicCar: SE(2) vehicle with optional drift parameter
- RigidBodyAttitude: SO(3) attitude kinematics
"""

from geoddp.systems.base import System
from geoddp.systems.particle2d import Particle2d
from geoddp.systems.kinematic_car import KinematicCar
from geoddp.systems.attitude import RigidBodyAttitude

__all__ = [
    'System',
    'Particle2d',
    'KinematicCar',
    'RigidBodyAttitude',
]
