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

"""Tests for typed parameter lookup and configuration validation."""

from absl.testing import absltest
from absl.testing import parameterized

import numpy as np

from geoddp.core.config import (
    DdpConfig,
    GDocpConfig,
    Params,
    TrackConfig,
)


class ParamsTest(parameterized.TestCase):

    def setUp(self):
        super().setUp()
        self.params = Params({
            'mu': 0.01,
            'N': 32,
            'oc': True,
            'Q': [1.0, 1.0, 0.5],
            'name': 'car',
        })

    def test_present_keys(self):
        self.assertEqual(self.params.get_double('mu', 1.0), 0.01)
        self.assertEqual(self.params.get_int('N', 1), 32)
        self.assertTrue(self.params.get_bool('oc', False))
        np.testing.assert_array_equal(self.params.get_vector('Q', size=3),
                                      [1.0, 1.0, 0.5])

    def test_missing_keys_return_default(self):
        self.assertEqual(self.params.get_double('tf', 30.0), 30.0)
        self.assertEqual(self.params.get_int('iters', 10), 10)
        self.assertFalse(self.params.get_bool('hideTrue', False))
        np.testing.assert_array_equal(self.params.get_vector('R', [0.1, 0.1]),
                                      [0.1, 0.1])
        self.assertIsNone(self.params.get_vector('R'))

    def test_int_accepted_as_double(self):
        self.assertEqual(self.params.get_double('N'), 32.0)

    @parameterized.parameters(
        ('get_double', 'name'),
        ('get_double', 'oc'),
        ('get_int', 'mu'),
        ('get_int', 'oc'),
        ('get_bool', 'N'),
    )
    def test_mistyped_values_raise(self, accessor, key):
        with self.assertRaises(TypeError):
            getattr(self.params, accessor)(key)

    def test_vector_size_mismatch(self):
        with self.assertRaises(ValueError):
            self.params.get_vector('Q', size=2)

    def test_set(self):
        self.params.set('tf', 5)
        self.assertIn('tf', self.params)
        self.assertEqual(self.params.get_double('tf'), 5.0)


class DdpConfigTest(parameterized.TestCase):

    def test_defaults(self):
        config = DdpConfig()
        self.assertEqual(config.max_iters, 100)
        self.assertEqual(config.dmu0, 2.0)
        self.assertEqual(config.alpha_min, 0.00005)
        self.assertEqual(config.to_dict()['mu'], 1e-3)

    @parameterized.named_parameters(
        ('negative_mu', dict(mu=-1.0)),
        ('zero_mu_min', dict(mu_min=0.0)),
        ('mu_max_below_min', dict(mu_max=1e-7)),
        ('dmu0_not_above_one', dict(dmu0=1.0)),
        ('alpha_min_zero', dict(alpha_min=0.0)),
        ('alpha_min_above_alpha_0', dict(alpha_0=0.5, alpha_min=0.6)),
        ('alpha_0_above_one', dict(alpha_0=2.0)),
        ('no_iterations', dict(max_iters=0)),
        ('negative_tol', dict(tol=-1.0)),
        ('negative_param_reg', dict(param_reg=-1.0)),
    )
    def test_invalid_values_raise(self, kwargs):
        with self.assertRaises(ValueError):
            DdpConfig(**kwargs)

    def test_zero_mu_is_valid(self):
        self.assertEqual(DdpConfig(mu=0.0).mu, 0.0)

    def test_from_params(self):
        params = Params({'mu': 0.01, 'max_iters': 30, 'unrelated': 'x'})
        config = DdpConfig.from_params(params, tol=1e-4)
        self.assertEqual(config.mu, 0.01)
        self.assertEqual(config.max_iters, 30)
        self.assertEqual(config.tol, 1e-4)
        self.assertEqual(config.dmu0, 2.0)

    def test_from_params_mistyped(self):
        with self.assertRaises(TypeError):
            DdpConfig.from_params(Params({'max_iters': 2.5}))


class GDocpConfigTest(absltest.TestCase):

    def test_inner_config_from_dict(self):
        config = GDocpConfig(ddp={'mu': 0.0, 'max_iters': 20})
        self.assertIsInstance(config.ddp, DdpConfig)
        self.assertEqual(config.ddp.max_iters, 20)

    def test_invalid_penalty(self):
        with self.assertRaises(ValueError):
            GDocpConfig(penalty_update_rate=1.0)
        with self.assertRaises(ValueError):
            GDocpConfig(penalty_init=0.0)

    def test_from_params(self):
        config = GDocpConfig.from_params(
            Params({'max_outer_iters': 3, 'mu': 0.5}))
        self.assertEqual(config.max_outer_iters, 3)
        self.assertEqual(config.ddp.mu, 0.5)


class TrackConfigTest(absltest.TestCase):

    def test_step_size(self):
        config = TrackConfig(Tc=2.0, N=20)
        self.assertAlmostEqual(config.h, 0.1)

    def test_from_params(self):
        params = Params({'tf': 5, 'N': 10, 'cw': [0.02, 0.002],
                         'sliding_window': 8, 'optimize_controls': False})
        config = TrackConfig.from_params(params)
        self.assertEqual(config.tf, 5.0)
        self.assertEqual(config.N, 10)
        self.assertEqual(config.cw, (0.02, 0.002))
        self.assertEqual(config.sliding_window, 8)
        self.assertFalse(config.optimize_controls)

    def test_invalid_values_raise(self):
        with self.assertRaises(ValueError):
            TrackConfig(N=0)
        with self.assertRaises(ValueError):
            TrackConfig(cw=(0.1,))
        with self.assertRaises(ValueError):
            TrackConfig(cp=0.0)


if __name__ == '__main__':
    absltest.main()
