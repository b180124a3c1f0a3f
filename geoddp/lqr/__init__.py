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

"""Riccati recursions.

- backward_pass: regularized time-varying recursion used by the DDP solvers
- tvriccati_backward: closed-form finite-horizon LQR for fixed matrices
- dare_scipy: infinite-horizon gains from the discrete algebraic Riccati
  equation

Example:
    >>> from geoddp.lqr import tvriccati_backward
    >>> P, K = tvriccati_backward(Q, R, A, B, Q_N, N)
"""

from geoddp.lqr.riccati import (
    symmetrize,
    riccati_step,
    backward_pass,
    dare_step,
    tvriccati_backward,
    dare_scipy,
)

__all__ = [
    'symmetrize',
    'riccati_step',
    'backward_pass',
    'dare_step',
    'tvriccati_backward',
    'dare_scipy',
]
