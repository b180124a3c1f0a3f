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

"""Tests for costs, constraints and their tangent-space derivatives."""

from absl.testing import absltest
from absl.testing import parameterized

import jax
import jax.numpy as jnp
from jax import config
import numpy as np

from geoddp.costs import (
    ConstraintCost,
    DiskConstraint,
    LqCost,
    MultiCost,
    TrackCost,
    max_violation,
)
from geoddp.utils.manifold import SE2, SO3, Euclidean, so3_exp

config.update('jax_enable_x64', True)


def _assert_derivatives_close(test, d1, d2, atol=1e-9):
    for name, a, b in zip(d1._fields, d1, d2):
        test.assertEqual(a.shape, b.shape, name)
        np.testing.assert_allclose(a, b, atol=atol, err_msg=name)


class LqCostTest(parameterized.TestCase):

    def test_euclidean_values_and_derivatives(self):
        Q = jnp.diag(jnp.array([1.0, 2.0, 3.0, 4.0]))
        R = jnp.diag(jnp.array([0.5, 0.25]))
        xf = jnp.array([1.0, 0.0, -1.0, 0.0])
        cost = LqCost(Euclidean(4), Q, R, Qf=10 * Q, xf=xf)
        x = jnp.array([0.0, 1.0, 2.0, 3.0])
        u = jnp.array([1.0, -2.0])
        p = jnp.zeros(0)

        dx = x - xf
        self.assertAlmostEqual(float(cost.stage(0.0, x, u, p)),
                               float(0.5 * dx @ Q @ dx + 0.5 * u @ R @ u))
        d = cost.stage_derivatives(0.0, x, u, p)
        np.testing.assert_allclose(d.Lx, Q @ dx)
        np.testing.assert_allclose(d.Lxx, Q)
        np.testing.assert_allclose(d.Lu, R @ u)
        np.testing.assert_allclose(d.Luu, R)
        np.testing.assert_allclose(d.Lxu, jnp.zeros((4, 2)))
        self.assertEqual(d.Lp.shape, (0,))

        f = cost.terminal_derivatives(1.0, x, p)
        np.testing.assert_allclose(f.Lx, 10 * Q @ dx)
        self.assertEqual(f.Luu.shape, (0, 0))

    def test_so3_gradient_at_goal_is_zero(self):
        R0 = so3_exp(jnp.array([0.3, -0.2, 0.5]))
        cost = LqCost(SO3(), jnp.eye(3), jnp.eye(3), xf=R0)
        d = cost.terminal_derivatives(0.0, R0, jnp.zeros(0))
        np.testing.assert_allclose(d.Lx, jnp.zeros(3), atol=1e-10)
        np.testing.assert_allclose(d.Lxx, jnp.eye(3), atol=1e-6)

    def test_shape_validation(self):
        with self.assertRaises(ValueError):
            LqCost(Euclidean(4), jnp.eye(3), jnp.eye(2))
        with self.assertRaises(ValueError):
            LqCost(Euclidean(4), jnp.eye(4), jnp.eye(2), ud=jnp.zeros(3))


class MultiCostTest(parameterized.TestCase):

    def _costs(self):
        manifold = SE2()
        c1 = LqCost(manifold, jnp.eye(3), jnp.eye(2),
                    xf=jnp.array([0.5, 1.0, 2.0]))
        c2 = LqCost(manifold, jnp.diag(jnp.array([1.0, 2.0, 3.0])),
                    0.1 * jnp.eye(2), xf=jnp.array([-0.5, 0.0, 1.0]))
        disk = DiskConstraint(jnp.array([1.0, 1.0]), 2.0, offset=1)
        c3 = ConstraintCost(manifold, 2, disk, 5.0)
        return [c1, c2, c3]

    def test_values_add(self):
        costs = self._costs()
        multi = MultiCost(costs)
        x, u, p = jnp.array([0.1, 0.5, 0.5]), jnp.array([1.0, 0.2]), jnp.zeros(0)
        expected = sum(float(c.stage(0.0, x, u, p)) for c in costs)
        self.assertAlmostEqual(float(multi.stage(0.0, x, u, p)), expected)

    def test_derivatives_add(self):
        costs = self._costs()
        multi = MultiCost(costs)
        x, u, p = jnp.array([0.1, 0.5, 0.5]), jnp.array([1.0, 0.2]), jnp.zeros(0)
        parts = [c.stage_derivatives(0.0, x, u, p) for c in costs]
        expected = jax.tree_util.tree_map(lambda *a: sum(a), *parts)
        _assert_derivatives_close(self, multi.stage_derivatives(0.0, x, u, p),
                                  expected)
        parts = [c.terminal_derivatives(0.0, x, p) for c in costs]
        expected = jax.tree_util.tree_map(lambda *a: sum(a), *parts)
        _assert_derivatives_close(self, multi.terminal_derivatives(0.0, x, p),
                                  expected)

    def test_manifold_mismatch(self):
        with self.assertRaises(ValueError):
            MultiCost([LqCost(Euclidean(3), jnp.eye(3), jnp.eye(2)),
                       LqCost(SE2(), jnp.eye(3), jnp.eye(2))])
        with self.assertRaises(ValueError):
            MultiCost([])


class ConstraintCostTest(parameterized.TestCase):

    def setUp(self):
        super().setUp()
        self.disk = DiskConstraint(jnp.array([0.0, 0.0]), 1.0)
        self.cost = ConstraintCost(Euclidean(4), 2, self.disk, 4.0)

    def test_zero_when_feasible(self):
        x = jnp.array([2.0, 0.0, 0.0, 0.0])
        u, p = jnp.zeros(2), jnp.zeros(0)
        self.assertLess(float(self.disk(0.0, x, u, p)[0]), 0.0)
        d = self.cost.stage_derivatives(0.0, x, u, p)
        self.assertEqual(float(d.L), 0.0)
        np.testing.assert_allclose(d.Lx, jnp.zeros(4))
        np.testing.assert_allclose(d.Lxx, jnp.zeros((4, 4)))

    def test_penalty_when_violated(self):
        x = jnp.array([0.5, 0.0, 0.0, 0.0])
        u, p = jnp.zeros(2), jnp.zeros(0)
        g = self.disk(0.0, x, u, p)
        np.testing.assert_allclose(g, jnp.array([0.5]))
        d = self.cost.stage_derivatives(0.0, x, u, p)
        self.assertAlmostEqual(float(d.L), 0.5 * 4.0 * 0.25)
        # Moving away from the center decreases the penalty.
        self.assertLess(float(d.Lx[0]), 0.0)
        expected = jnp.zeros((4, 4)).at[0, 0].set(4.0)
        np.testing.assert_allclose(d.Lxx, expected, atol=1e-12)

    def test_max_violation(self):
        ts = jnp.linspace(0.0, 1.0, 4)
        xs = jnp.array([[2.0, 0, 0, 0], [0.8, 0, 0, 0], [0.3, 0, 0, 0],
                        [0.0, 2.0, 0, 0]])
        us = jnp.zeros((3, 2))
        self.assertAlmostEqual(
            float(max_violation(self.disk, ts, xs, us, jnp.zeros(0))), 0.7)
        self.assertAlmostEqual(
            float(max_violation(self.disk, ts, xs.at[2, 0].set(3.0), us,
                                jnp.zeros(0))), 0.2)

    def test_clearance(self):
        disk = DiskConstraint(jnp.array([0.0, 0.0]), 1.0, clearance=0.5)
        g = disk(0.0, jnp.array([1.2, 0.0, 0.0, 0.0]), jnp.zeros(2),
                 jnp.zeros(0))
        self.assertAlmostEqual(float(g[0]), 0.3)


class TrackCostTest(absltest.TestCase):

    def _cost(self, z):
        ts = jnp.array([0.0, 0.1, 0.2])
        return TrackCost(
            ts=ts,
            u_meas=jnp.array([[1.0, 0.0], [1.0, 0.1]]),
            obs_slot=jnp.array([[0], [0], [0]]),
            obs_z=jnp.tile(z, (3, 1, 1)),
            obs_mask=jnp.array([[1.0], [0.0], [1.0]]),
            cw_inv=jnp.array([100.0, 1000.0]),
            cp_inv=100.0,
            p_prior=jnp.array([0.0, 0.0, 3.0, 4.0]),
            p_prior_w=jnp.array([1.0, 1.0, 0.01, 0.01]),
            landmark_offset=2,
        )

    def test_exact_observation_has_zero_residual(self):
        x = jnp.array([jnp.pi / 2, 1.0, 2.0])
        p = jnp.array([0.0, 0.0, 3.0, 4.0])
        # Landmark (3, 4) seen from (1, 2) heading +y is at (2, -2) in body.
        cost = self._cost(jnp.array([[2.0, -2.0]]))
        r = cost.observation_residual(0, x, p)
        np.testing.assert_allclose(r, jnp.zeros(2), atol=1e-12)
        self.assertAlmostEqual(float(cost.terminal(0.2, x, p)), 0.0)

    def test_odometry_residual_uses_step_index(self):
        cost = self._cost(jnp.array([[0.0, 0.0]]))
        x = jnp.array([0.0, 0.0, 0.0])
        p = jnp.array([0.0, 0.0, 0.0, 0.0])
        r = cost.stage_residual(0.1, x, jnp.array([1.0, 0.0]), p)
        # Second step: control deviation (0, -0.1); observation masked out.
        np.testing.assert_allclose(r[:2], jnp.array([0.0, -jnp.sqrt(10.0)]))
        np.testing.assert_allclose(r[2:], jnp.zeros(2))

    def test_derivatives_are_gauss_newton(self):
        cost = self._cost(jnp.array([[1.0, 1.0]]))
        x = jnp.array([0.3, 1.0, 2.0])
        p = jnp.array([0.1, -0.1, 3.0, 4.0])
        d = cost.terminal_derivatives(0.2, x, p)
        self.assertEqual(d.Lpp.shape, (4, 4))
        self.assertEqual(d.Lpx.shape, (4, 3))
        eigs = jnp.linalg.eigvalsh(jnp.block([[d.Lxx, d.Lpx.T],
                                              [d.Lpx, d.Lpp]]))
        self.assertGreaterEqual(float(jnp.min(eigs)), -1e-10)


if __name__ == '__main__':
    absltest.main()
