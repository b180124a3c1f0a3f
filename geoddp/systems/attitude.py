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

"""Rigid body attitude kinematics on SO(3)."""

from jax import Array

from geoddp.systems.base import System
from geoddp.utils.manifold import SO3, so3_exp


class RigidBodyAttitude(System):
    """Rotation matrix driven by a body-frame angular velocity: R' = R exp(h u)."""

    def __init__(self):
        super().__init__(SO3(), 3)

    def step(self, t, x, u, h, p) -> Array:
        return x @ so3_exp(h * u)
