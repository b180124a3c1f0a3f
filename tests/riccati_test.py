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

"""Tests for the Riccati recursions."""

from absl.testing import absltest

import jax.numpy as jnp
from jax import config
import numpy as np

from geoddp.lqr.riccati import (
    backward_pass,
    dare_scipy,
    riccati_step,
    tvriccati_backward,
)

config.update('jax_enable_x64', True)


def _double_integrator(h=0.1):
    A = jnp.array([[1.0, h], [0.0, 1.0]])
    B = jnp.array([[0.5 * h * h], [h]])
    return A, B


def _stack(N, *arrays):
    return [jnp.broadcast_to(a, (N,) + a.shape) for a in arrays]


class BackwardPassTest(absltest.TestCase):

    def test_matches_closed_form(self):
        A, B = _double_integrator()
        Q, R, Q_N = jnp.eye(2), 0.1 * jnp.eye(1), 10 * jnp.eye(2)
        N = 15
        Qs, Rs, As, Bs = _stack(N, Q, R, A, B)
        qs, rs = jnp.zeros((N, 2)), jnp.zeros((N, 1))
        Ms = jnp.zeros((N, 2, 1))
        K, k, P0, p0, dV, ok = backward_pass(Qs, qs, Rs, rs, Ms, As, Bs,
                                             Q_N, jnp.zeros(2), 0.0)
        P_ref, K_ref = tvriccati_backward(Q, R, A, B, Q_N, N)
        self.assertTrue(bool(ok))
        np.testing.assert_allclose(K, K_ref, atol=1e-10)
        np.testing.assert_allclose(P0, P_ref[0], atol=1e-9)
        np.testing.assert_allclose(k, jnp.zeros((N, 1)), atol=1e-12)
        np.testing.assert_allclose(dV, jnp.zeros(2), atol=1e-12)

    def test_long_horizon_converges_to_dare(self):
        A, B = _double_integrator()
        Q, R = jnp.eye(2), jnp.eye(1)
        N = 400
        Qs, Rs, As, Bs = _stack(N, Q, R, A, B)
        K, _, P0, _, _, ok = backward_pass(
            Qs, jnp.zeros((N, 2)), Rs, jnp.zeros((N, 1)), jnp.zeros((N, 2, 1)),
            As, Bs, Q, jnp.zeros(2), 0.0)
        P, K_inf = dare_scipy(Q, R, A, B)
        self.assertTrue(bool(ok))
        np.testing.assert_allclose(K[0], K_inf, atol=1e-6)
        np.testing.assert_allclose(P0, P, rtol=1e-6)

    def test_expected_decrease_of_affine_problem(self):
        """dV predicts the cost change of the affine policy exactly."""
        A, B = _double_integrator()
        Q, R = jnp.eye(2), jnp.eye(1)
        q, r = jnp.array([1.0, -2.0]), jnp.array([0.5])
        # Single step problem: min_u 0.5 u'Ru + r'u + 0.5 x1'P x1 + p'x1.
        P, p = 2 * jnp.eye(2), jnp.array([0.3, 0.1])
        _, _, K, k, dV, ok = riccati_step(P, p, Q, q, R, r, jnp.zeros((2, 1)),
                                          A, B, 0.0)
        self.assertTrue(bool(ok))
        cost = lambda u: 0.5 * u @ R @ u + r @ u + 0.5 * (B @ u) @ P @ (B @ u) \
            + p @ (B @ u)
        np.testing.assert_allclose(cost(k) - cost(jnp.zeros(1)), dV[0] + dV[1],
                                   atol=1e-12)

    def test_indefinite_control_hessian(self):
        A, B = _double_integrator()
        Q, R = jnp.eye(2), -jnp.eye(1)
        args = (jnp.zeros((2, 2)), jnp.zeros(2), Q, jnp.zeros(2), R,
                jnp.zeros(1), jnp.zeros((2, 1)), A, B)
        *_, ok = riccati_step(*args, 0.0)
        self.assertFalse(bool(ok))
        *_, ok = riccati_step(*args, 2.0)
        self.assertTrue(bool(ok))


if __name__ == '__main__':
    absltest.main()
