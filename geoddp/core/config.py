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

"""Configuration classes for DDP solvers and the track harness.

Tunables come from an opaque key/value source (`Params`) with typed
accessors, and are turned into plain dataclasses that are handed to
solver and harness constructors. Nothing here is global.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np


class Params:
    """Key/value lookup with typed accessors.

    Missing keys return the supplied default, mistyped values raise.

    Example:
        >>> params = Params({'mu': 0.01, 'N': 32, 'Q': [1.0, 1.0, 0.5]})
        >>> params.get_double('mu', 1e-3)
        0.01
        >>> params.get_vector('Q', [1.0, 1.0, 1.0])
        array([1. , 1. , 0.5])
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values = dict(values or {})

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def get_double(self, key: str, default: Optional[float] = None) -> float:
        if key not in self._values:
            return default
        value = self._values[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Parameter '{key}' is not a number: {value!r}")
        return float(value)

    def get_int(self, key: str, default: Optional[int] = None) -> int:
        if key not in self._values:
            return default
        value = self._values[key]
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise TypeError(f"Parameter '{key}' is not an integer: {value!r}")
        return int(value)

    def get_bool(self, key: str, default: Optional[bool] = None) -> bool:
        if key not in self._values:
            return default
        value = self._values[key]
        if not isinstance(value, (bool, np.bool_)):
            raise TypeError(f"Parameter '{key}' is not a boolean: {value!r}")
        return bool(value)

    def get_vector(
        self,
        key: str,
        default: Optional[Sequence[float]] = None,
        size: Optional[int] = None,
    ) -> np.ndarray:
        if key not in self._values:
            return None if default is None else np.asarray(default, dtype=float)
        value = np.asarray(self._values[key], dtype=float).reshape(-1)
        if size is not None and value.shape[0] != size:
            raise ValueError(
                f"Parameter '{key}' must have {size} entries, got {value.shape[0]}")
        return value


def _from_params(cls, params: Params, **overrides):
    """Fill a flat config dataclass from typed `Params` lookups."""
    kwargs = {}
    for f in fields(cls):
        if f.name in overrides or f.name not in params:
            continue
        default = getattr(cls, f.name, None)
        if f.type in ('bool', bool):
            kwargs[f.name] = params.get_bool(f.name)
        elif f.type in ('int', int):
            kwargs[f.name] = params.get_int(f.name)
        elif f.type in ('float', float):
            kwargs[f.name] = params.get_double(f.name)
        elif isinstance(default, tuple) or 'Tuple' in str(f.type):
            kwargs[f.name] = tuple(params.get_vector(f.name))
    kwargs.update(overrides)
    return cls(**kwargs)


@dataclass
class DdpConfig:
    """Configuration for the DDP engines.

    Attributes:
        max_iters: Maximum number of `iterate()` calls in `solve()`.
        tol: Convergence threshold on the predicted cost decrease.
        mu: Initial regularization added to the control Hessian.
        mu_min: Smallest non-zero regularization.
        mu_max: Regularization above which the solver reports divergence.
        dmu0: Base growth factor of the regularization (> 1).
        alpha_0: Initial line search step size.
        alpha_min: Minimum line search step size before giving up.
        min_decrease_ratio: Armijo-like acceptance threshold on the ratio of
            realized to predicted cost decrease.
        param_reg: Regularization added to the parameter block before the
            parameter step is solved (PDdp only).
    """
    max_iters: int = 100
    tol: float = 1e-8
    mu: float = 1e-3
    mu_min: float = 1e-6
    mu_max: float = 1e10
    dmu0: float = 2.0
    alpha_0: float = 1.0
    alpha_min: float = 0.00005
    min_decrease_ratio: float = 1e-4
    param_reg: float = 0.0

    def __post_init__(self):
        if self.max_iters < 1:
            raise ValueError(f"max_iters must be >= 1, got {self.max_iters}")
        if self.tol < 0:
            raise ValueError(f"tol must be >= 0, got {self.tol}")
        if self.mu < 0 or self.mu_min <= 0 or self.mu_max <= self.mu_min:
            raise ValueError(
                "Regularization requires mu >= 0 and 0 < mu_min < mu_max, got "
                f"mu={self.mu}, mu_min={self.mu_min}, mu_max={self.mu_max}")
        if self.dmu0 <= 1:
            raise ValueError(f"dmu0 must be > 1, got {self.dmu0}")
        if not 0 < self.alpha_min <= self.alpha_0 <= 1:
            raise ValueError(
                "Line search requires 0 < alpha_min <= alpha_0 <= 1, got "
                f"alpha_0={self.alpha_0}, alpha_min={self.alpha_min}")
        if self.param_reg < 0:
            raise ValueError(f"param_reg must be >= 0, got {self.param_reg}")

    @classmethod
    def from_params(cls, params: Params, **overrides) -> 'DdpConfig':
        return _from_params(cls, params, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GDocpConfig:
    """Configuration for the exterior-penalty constrained solver.

    Attributes:
        max_outer_iters: Maximum number of penalty escalations.
        constraints_threshold: Tolerance on the maximum constraint violation.
        penalty_init: Initial penalty weight.
        penalty_update_rate: Multiplier applied to the weight per outer iteration.
        ddp: Configuration of the inner unconstrained solver.
    """
    max_outer_iters: int = 8
    constraints_threshold: float = 1e-2
    penalty_init: float = 1.0
    penalty_update_rate: float = 10.0
    ddp: DdpConfig = field(default_factory=DdpConfig)

    def __post_init__(self):
        if isinstance(self.ddp, dict):
            self.ddp = DdpConfig(**self.ddp)
        if self.max_outer_iters < 1:
            raise ValueError(
                f"max_outer_iters must be >= 1, got {self.max_outer_iters}")
        if self.constraints_threshold < 0:
            raise ValueError("constraints_threshold must be >= 0")
        if self.penalty_init <= 0 or self.penalty_update_rate <= 1:
            raise ValueError(
                "Penalty requires penalty_init > 0 and penalty_update_rate > 1")

    @classmethod
    def from_params(cls, params: Params, **overrides) -> 'GDocpConfig':
        overrides.setdefault('ddp', DdpConfig.from_params(params))
        return _from_params(cls, params, **overrides)


@dataclass
class TrackConfig:
    """Configuration for the receding-horizon track harness.

    Attributes:
        tf: Total simulated time.
        N: Number of control segments of the controller horizon.
        Tc: Duration of the controller horizon (h = Tc / N).
        Ts: Time after which the estimator starts re-solving.
        radius: Radius of the circular reference path.
        speed: Forward speed along the reference.
        cw: Process noise variances of the two control channels.
        cp: Landmark observation noise variance.
        dmax: Maximum landmark observation range.
        num_landmarks: Number of randomly placed landmarks.
        sliding_window: Trailing window size M (controls); <= 0 uses the
            full history.
        optimize_controls: Whether to re-plan controls with DDP every tick.
        control_iters: DDP iterations per tick for the controller.
        estimator_iters: PDdp iterations per re-solve.
        estimate_disturbance: Whether p carries a disturbance velocity.
        true_disturbance: Disturbance velocity applied to the true vehicle.
        disturbance_prior_std: Prior standard deviation of the disturbance.
        landmark_prior_std: Prior standard deviation of landmark positions
            around their first estimate.
        Q, Qf, R: Diagonal controller cost weights.
        mu: Initial regularization of both solvers.
        seed: Random seed for noise and landmark placement.
    """
    tf: float = 30.0
    N: int = 20
    Tc: float = 2.0
    Ts: float = 1.0
    radius: float = 25.0
    speed: float = 5.0
    cw: Tuple[float, float] = (0.01, 0.001)
    cp: float = 0.01
    dmax: float = 15.0
    num_landmarks: int = 20
    sliding_window: int = -1
    optimize_controls: bool = True
    control_iters: int = 10
    estimator_iters: int = 10
    estimate_disturbance: bool = True
    true_disturbance: Tuple[float, float] = (0.2, -0.1)
    disturbance_prior_std: float = 1.0
    landmark_prior_std: float = 10.0
    Q: Tuple[float, float, float] = (0.1, 0.1, 0.1)
    Qf: Tuple[float, float, float] = (10.0, 10.0, 10.0)
    R: Tuple[float, float] = (0.1, 0.1)
    mu: float = 0.01
    seed: int = 1

    def __post_init__(self):
        self.cw = tuple(float(c) for c in self.cw)
        self.true_disturbance = tuple(float(d) for d in self.true_disturbance)
        if self.N < 1:
            raise ValueError(f"N must be >= 1, got {self.N}")
        if self.Tc <= 0 or self.tf <= 0:
            raise ValueError("Tc and tf must be positive")
        if len(self.cw) != 2 or min(self.cw) < 0:
            raise ValueError(f"cw must be two non-negative variances, got {self.cw}")
        if self.cp <= 0:
            raise ValueError(f"cp must be positive, got {self.cp}")
        if self.disturbance_prior_std <= 0 or self.landmark_prior_std <= 0:
            raise ValueError("Prior standard deviations must be positive")

    @property
    def h(self) -> float:
        return self.Tc / self.N

    @classmethod
    def from_params(cls, params: Params, **overrides) -> 'TrackConfig':
        return _from_params(cls, params, **overrides)
