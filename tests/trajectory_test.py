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

"""Tests for the Trajectory container."""

from absl.testing import absltest
from absl.testing import parameterized

import jax.numpy as jnp
from jax import config
import numpy as np

from geoddp.core.trajectory import Trajectory, trajectory_from_controls
from geoddp.core.types import SolverStatus
from geoddp.systems import Particle2d

config.update('jax_enable_x64', True)


def _trajectory(N=5, n=4, m=2):
    return Trajectory(
        ts=jnp.linspace(0.0, 1.0, N + 1),
        xs=jnp.arange((N + 1) * n, dtype=float).reshape(N + 1, n),
        us=jnp.arange(N * m, dtype=float).reshape(N, m),
        p=jnp.array([1.0, 2.0]),
    )


class TrajectoryValidationTest(parameterized.TestCase):

    def test_defaults(self):
        traj = Trajectory(ts=jnp.array([0.0, 1.0]), xs=jnp.zeros((2, 4)),
                          us=jnp.zeros((1, 2)))
        self.assertEqual(traj.horizon, 1)
        self.assertEqual(traj.control_dim, 2)
        self.assertEqual(traj.param_dim, 0)
        self.assertEqual(traj.status, SolverStatus.INITIALIZED)
        self.assertEqual(traj.obj, float('inf'))
        self.assertFalse(traj.converged)

    def test_empty_horizon(self):
        with self.assertRaises(ValueError):
            Trajectory(ts=jnp.array([0.0]), xs=jnp.zeros((1, 4)),
                       us=jnp.zeros((0, 2)))

    def test_wrong_number_of_states(self):
        with self.assertRaises(ValueError):
            Trajectory(ts=jnp.linspace(0, 1, 4), xs=jnp.zeros((3, 4)),
                       us=jnp.zeros((3, 2)))

    def test_wrong_number_of_times(self):
        with self.assertRaises(ValueError):
            Trajectory(ts=jnp.linspace(0, 1, 3), xs=jnp.zeros((4, 4)),
                       us=jnp.zeros((3, 2)))

    def test_controls_must_be_matrix(self):
        with self.assertRaises(ValueError):
            Trajectory(ts=jnp.linspace(0, 1, 4), xs=jnp.zeros((4, 4)),
                       us=jnp.zeros(3))

    @parameterized.parameters(
        ([0.0, 1.0, 1.0, 2.0],),
        ([0.0, 2.0, 1.0, 3.0],),
    )
    def test_times_must_increase(self, ts):
        with self.assertRaises(ValueError):
            Trajectory(ts=jnp.array(ts), xs=jnp.zeros((4, 4)),
                       us=jnp.zeros((3, 2)))

    def test_step_sizes(self):
        np.testing.assert_allclose(_trajectory().hs, 0.2 * jnp.ones(5))


class TrajectoryWindowTest(absltest.TestCase):

    def test_window(self):
        traj = _trajectory()
        window = traj.window(2)
        self.assertEqual(window.horizon, 2)
        np.testing.assert_array_equal(window.xs, traj.xs[3:])
        np.testing.assert_array_equal(window.us, traj.us[3:])
        np.testing.assert_array_equal(window.ts, traj.ts[3:])
        with self.assertRaises(ValueError):
            traj.window(6)
        with self.assertRaises(ValueError):
            traj.window(0)

    def test_splice_offsets(self):
        traj = _trajectory()
        window = traj.window(2)
        new = window.replace(xs=-window.xs, us=-window.us,
                             p=jnp.array([5.0, 6.0]))
        spliced = traj.splice(new)
        # M controls and M + 1 states from offset N - M.
        np.testing.assert_array_equal(spliced.us[:3], traj.us[:3])
        np.testing.assert_array_equal(spliced.us[3:], -traj.us[3:])
        np.testing.assert_array_equal(spliced.xs[:3], traj.xs[:3])
        np.testing.assert_array_equal(spliced.xs[3:], -traj.xs[3:])
        np.testing.assert_array_equal(spliced.p, [5.0, 6.0])
        # The original is unchanged.
        np.testing.assert_array_equal(traj.p, [1.0, 2.0])

    def test_full_window_splice_replaces_everything(self):
        traj = _trajectory()
        new = traj.replace(xs=traj.xs + 1.0, us=traj.us + 1.0)
        spliced = traj.splice(new)
        np.testing.assert_array_equal(spliced.xs, new.xs)
        np.testing.assert_array_equal(spliced.us, new.us)

    def test_splice_time_mismatch(self):
        traj = _trajectory()
        window = traj.window(2)
        with self.assertRaises(ValueError):
            traj.splice(window.replace(ts=window.ts + 0.05))

    def test_shift(self):
        traj = _trajectory()
        shifted = traj.shift()
        np.testing.assert_allclose(shifted.ts, traj.ts + 0.2)
        np.testing.assert_array_equal(shifted.us[:-1], traj.us[1:])
        np.testing.assert_array_equal(shifted.us[-1], traj.us[-1])
        filled = traj.shift(fill_control=jnp.zeros(2))
        np.testing.assert_array_equal(filled.us[-1], jnp.zeros(2))


class TrajectoryFromControlsTest(absltest.TestCase):

    def test_rollout(self):
        ts = jnp.linspace(0.0, 1.0, 11)
        us = jnp.ones((10, 2))
        traj = trajectory_from_controls(Particle2d(), ts, jnp.zeros(4), us)
        # Constant unit acceleration from rest.
        np.testing.assert_allclose(traj.xs[-1], jnp.array([0.5, 0.5, 1.0, 1.0]),
                                   atol=1e-12)


if __name__ == '__main__':
    absltest.main()
