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

"""Riccati recursions for DDP backward passes and LQR problems.

Value function convention: V(dx) = 0.5 dx' P dx + p' dx, policy
du = K dx + k, stage cost 0.5 dx' Q dx + dx' M du + 0.5 du' R du + q' dx + r' du.
"""

from typing import Optional, Tuple

import jax.numpy as jnp
import jax.scipy as jsp
from jax import Array, jit, lax


def symmetrize(X: Array) -> Array:
    return 0.5 * (X + X.T)


def riccati_step(
    P: Array,
    p: Array,
    Q: Array,
    q: Array,
    R: Array,
    r: Array,
    M: Array,
    A: Array,
    B: Array,
    mu: float,
) -> Tuple[Array, Array, Array, Array, Array, Array]:
    """Single regularized affine Riccati step.

    The control Hessian G = R + B' P B is regularized with mu I before it
    is factored; the value update uses the unregularized G.

    Args:
        P: Next value Hessian (n, n).
        p: Next value gradient (n,).
        Q, q: State cost Hessian (n, n) and gradient (n,).
        R, r: Control cost Hessian (m, m) and gradient (m,).
        M: Cross term (n, m).
        A, B: Dynamics Jacobians (n, n), (n, m).
        mu: Regularization.

    Returns:
        Tuple of:
            - P_prev: Value Hessian (n, n)
            - p_prev: Value gradient (n,)
            - K: Feedback gain (m, n)
            - k: Feedforward term (m,)
            - dV: Expected change terms (k' h, 0.5 k' G k)
            - ok: Whether G + mu I was positive definite
    """
    BtP = B.T @ P
    H = BtP @ A + M.T  # (m, n)
    h = r + B.T @ p  # (m,)
    G = symmetrize(R + BtP @ B)  # (m, m)

    L = jnp.linalg.cholesky(G + mu * jnp.eye(G.shape[0]))
    ok = jnp.all(jnp.isfinite(L))
    K_k = -jsp.linalg.cho_solve((L, True), jnp.column_stack([H, h]))
    K = K_k[:, :-1]
    k = K_k[:, -1]

    P_prev = symmetrize(
        Q + A.T @ P @ A + K.T @ G @ K + K.T @ H + H.T @ K)
    p_prev = q + A.T @ p + K.T @ G @ k + K.T @ h + H.T @ k
    dV = jnp.array([k @ h, 0.5 * k @ G @ k])
    return P_prev, p_prev, K, k, dV, ok


@jit
def backward_pass(
    Q: Array,
    q: Array,
    R: Array,
    r: Array,
    M: Array,
    A: Array,
    B: Array,
    P_N: Array,
    p_N: Array,
    mu: float,
):
    """Time-varying regularized Riccati recursion, k = N-1 down to 0.

    Args:
        Q, q: Stage state Hessians (N, n, n) and gradients (N, n).
        R, r: Stage control Hessians (N, m, m) and gradients (N, m).
        M: Stage cross terms (N, n, m).
        A, B: Dynamics Jacobians (N, n, n), (N, n, m).
        P_N, p_N: Terminal value Hessian and gradient.
        mu: Regularization added to every control Hessian.

    Returns:
        Tuple of:
            - K: Gains (N, m, n)
            - k: Feedforward terms (N, m)
            - P0, p0: Value expansion at the first step
            - dV: Summed expected change terms (2,)
            - ok: Whether every regularized control Hessian was
              positive definite
    """
    def body(carry, inputs):
        P, p, dV, ok = carry
        P, p, K, k, dV_t, ok_t = riccati_step(P, p, *inputs, mu)
        return (P, p, dV + dV_t, jnp.logical_and(ok, ok_t)), (K, k)

    init = (P_N, p_N, jnp.zeros(2, dtype=P_N.dtype), jnp.array(True))
    (P0, p0, dV, ok), (K, k) = lax.scan(
        body, init, (Q, q, R, r, M, A, B), reverse=True)
    ok = jnp.logical_and(ok, jnp.all(jnp.isfinite(P0)))
    return K, k, P0, p0, dV, ok


def dare_step(
    P: Array,
    Q: Array,
    R: Array,
    A: Array,
    B: Array,
    M: Optional[Array] = None,
) -> Tuple[Array, Array]:
    """Single homogeneous Riccati step.

        P_prev = Q + A' P A - (B' P A + M')' (R + B' P B)^{-1} (B' P A + M')

    Returns:
        Tuple of:
            - P_prev: Updated value matrix (n, n)
            - K: Optimal gain (m, n)
    """
    if M is None:
        M = jnp.zeros((A.shape[0], B.shape[1]))
    H = B.T @ P @ A + M.T
    G = R + B.T @ P @ B
    K = -jnp.linalg.solve(G, H)
    P_prev = symmetrize(Q + A.T @ P @ A + H.T @ K)
    return P_prev, K


def tvriccati_backward(
    Q: Array,
    R: Array,
    A: Array,
    B: Array,
    Q_N: Array,
    N: int,
) -> Tuple[Array, Array]:
    """Closed-form finite-horizon LQR for time-invariant matrices.

    Args:
        Q, R: Stage cost matrices.
        A, B: Dynamics matrices.
        Q_N: Terminal cost matrix.
        N: Horizon.

    Returns:
        Tuple of:
            - P: Value matrices (N+1, n, n)
            - K: Gain matrices (N, m, n), u_k = K[k] x_k
    """
    Ps = [Q_N]
    Ks = []
    for _ in range(N):
        P, K = dare_step(Ps[0], Q, R, A, B)
        Ps.insert(0, P)
        Ks.insert(0, K)
    return jnp.stack(Ps), jnp.stack(Ks)


def dare_scipy(Q: Array, R: Array, A: Array, B: Array) -> Tuple[Array, Array]:
    """Solve the discrete-time algebraic Riccati equation with SciPy.

    Not JIT-compatible; meant for reference gains and initialization.

    Returns:
        Tuple of:
            - P: Solution to DARE (n, n)
            - K: Optimal infinite-horizon gain (m, n), u = K x
    """
    import numpy as np
    import scipy.linalg

    A_np, B_np = np.asarray(A), np.asarray(B)
    P = scipy.linalg.solve_discrete_are(A_np, B_np, np.asarray(Q), np.asarray(R))
    K = -np.linalg.solve(np.asarray(R) + B_np.T @ P @ B_np, B_np.T @ P @ A_np)
    return jnp.asarray(P), jnp.asarray(K)


__all__ = [
    'symmetrize',
    'riccati_step',
    'backward_pass',
    'dare_step',
    'tvriccati_backward',
    'dare_scipy',
]
