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

"""Receding-horizon tracking with joint pose/landmark estimation.

- PoseLandmarkHistory: growing estimated track with landmark observations
- TrackHarness: closed-loop simulation of a car following a circle
- circle_reference: reference pose on the circular path
"""

from geoddp.track.history import PoseLandmarkHistory
from geoddp.track.harness import (
    TickReport,
    TrackHarness,
    circle_reference,
    random_landmarks,
)

__all__ = [
    'PoseLandmarkHistory',
    'TickReport',
    'TrackHarness',
    'circle_reference',
    'random_landmarks',
]
