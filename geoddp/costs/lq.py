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

"""Quadratic tracking cost on a manifold."""

from typing import Optional

import jax.numpy as jnp
from jax import Array

from geoddp.costs.base import Cost
from geoddp.utils.manifold import Manifold


class LqCost(Cost):
    """Quadratic cost towards a goal state:

        L  = 0.5 dx' Q dx + 0.5 du' R du
        Lf = 0.5 dx' Qf dx

    with dx = difference(xf, x) and du = u - ud. On a Euclidean manifold this
    is the usual LQR cost; on a Lie group dx is the log of the error.

    Attributes:
        Q: State weight (n, n).
        R: Control weight (m, m).
        Qf: Terminal state weight (n, n).
        xf: Goal state.
        ud: Reference control (m,).
    """

    data_fields = ('Q', 'R', 'Qf', 'xf', 'ud')

    def __init__(
        self,
        manifold: Manifold,
        Q: Array,
        R: Array,
        Qf: Optional[Array] = None,
        xf: Optional[Array] = None,
        ud: Optional[Array] = None,
    ):
        super().__init__(manifold)
        self.Q = jnp.asarray(Q)
        self.R = jnp.asarray(R)
        self.Qf = self.Q if Qf is None else jnp.asarray(Qf)
        self.xf = manifold.identity() if xf is None else jnp.asarray(xf)
        self.ud = jnp.zeros(self.R.shape[0]) if ud is None else jnp.asarray(ud)
        n, m = manifold.dim, self.R.shape[0]
        if self.Q.shape != (n, n) or self.Qf.shape != (n, n):
            raise ValueError(f"Q and Qf must have shape ({n}, {n})")
        if self.R.shape != (m, m) or self.ud.shape != (m,):
            raise ValueError(f"R must have shape ({m}, {m}) and ud ({m},)")

    def stage(self, t, x, u, p):
        dx = self.manifold.difference(self.xf, x)
        du = u - self.ud
        return 0.5 * (dx @ self.Q @ dx + du @ self.R @ du)

    def terminal(self, t, x, p):
        dx = self.manifold.difference(self.xf, x)
        return 0.5 * dx @ self.Qf @ dx
