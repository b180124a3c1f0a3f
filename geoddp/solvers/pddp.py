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

"""DDP with joint optimization of static parameters.

The tangent state is augmented with the parameter perturbation dp, whose
dynamics are the identity. The regularized Riccati recursion of `Ddp` then
runs on z = (dx, dp) and accumulates the parameter block of the value
function over the whole horizon. Since the initial state is fixed, the
parameter step minimizes V0(0, dp):

    dp = -Vpp^{-1} vp
"""

import jax.numpy as jnp
import jax.scipy as jsp
from jax import Array, jit

from geoddp.core.types import Linearization
from geoddp.lqr.riccati import backward_pass, symmetrize
from geoddp.solvers.ddp import Ddp, Policy


@jit
def augment(lin: Linearization):
    """Riccati inputs for the parameter-augmented tangent state.

    Returns:
        Tuple (Q, q, R, r, M, A, B, P_N, p_N) with n replaced by n + np:
            A_z = [[A, C], [0, I]],  B_z = [[B], [0]]
            Q_z = [[Lxx, Lpx'], [Lpx, Lpp]],  q_z = [Lx, Lp]
            M_z = [[Lxu], [Lpu]]
    """
    s, f = lin.stage, lin.terminal
    N, n, m = lin.B.shape
    q = lin.C.shape[2]

    Q = jnp.concatenate([
        jnp.concatenate([s.Lxx, jnp.swapaxes(s.Lpx, 1, 2)], axis=2),
        jnp.concatenate([s.Lpx, s.Lpp], axis=2),
    ], axis=1)
    qv = jnp.concatenate([s.Lx, s.Lp], axis=1)
    M = jnp.concatenate([s.Lxu, s.Lpu], axis=1)
    A = jnp.concatenate([
        jnp.concatenate([lin.A, lin.C], axis=2),
        jnp.concatenate([jnp.zeros((N, q, n)),
                         jnp.broadcast_to(jnp.eye(q), (N, q, q))], axis=2),
    ], axis=1)
    B = jnp.concatenate([lin.B, jnp.zeros((N, q, m))], axis=1)

    P_N = jnp.block([[f.Lxx, f.Lpx.T], [f.Lpx, f.Lpp]])
    p_N = jnp.concatenate([f.Lx, f.Lp])
    return Q, qv, s.Luu, s.Lu, M, A, B, P_N, p_N


def parameter_step(Vpp: Array, vp: Array, reg: float = 0.0):
    """Solve (Vpp + reg I) dp = -vp by Cholesky.

    Returns:
        dp: Parameter step, zeros if the block is not positive definite.
        ok: Whether the factorization succeeded.
    """
    L = jnp.linalg.cholesky(symmetrize(Vpp) + reg * jnp.eye(Vpp.shape[0]))
    if not bool(jnp.all(jnp.isfinite(L))):
        return jnp.zeros_like(vp), False
    return -jsp.linalg.cho_solve((L, True), vp), True


class PDdp(Ddp):
    """DDP that also optimizes the parameter vector p of the trajectory.

    With an empty parameter vector it behaves exactly like Ddp. When the
    accumulated parameter block Vpp is not positive definite, p is frozen
    for that iteration and the report is flagged `degraded`; controls are
    still updated.

    Example:
        >>> solver = PDdp(KinematicCar(disturbance=True), track_cost, traj)
        >>> result = solver.solve()
        >>> result.p  # estimated disturbance and landmarks
    """

    name = "pddp"

    def _backward(self, lin: Linearization) -> Policy:
        n = self.system.state_dim
        q = self.p.shape[0]
        if q == 0:
            return super()._backward(lin)

        Q, qv, R, r, M, A, B, P_N, p_N = augment(lin)
        K, k, P0, p0, dV, ok = backward_pass(Q, qv, R, r, M, A, B, P_N, p_N,
                                             self.mu)
        if not bool(ok):
            return Policy(K=K[:, :, :n], k=k, Kp=K[:, :, n:],
                          dp=jnp.zeros(q), dV=dV, ok=False)

        Vpp, vp = P0[n:, n:], p0[n:]
        dp, solved = parameter_step(Vpp, vp, self.config.param_reg)
        dV = dV + jnp.array([vp @ dp, 0.5 * dp @ Vpp @ dp])
        return Policy(K=K[:, :, :n], k=k, Kp=K[:, :, n:], dp=dp, dV=dV,
                      ok=True, degraded=not solved)
