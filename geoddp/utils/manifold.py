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

"""Manifold utilities for states living on curved spaces.

DDP works on local perturbations of the state. On a manifold these are
tangent vectors, related to points by two maps:

- difference(x, y): tangent vector v at x such that retract(x, v) == y
- retract(x, v): point reached from x along the tangent vector v

Provided manifolds:
- Euclidean(n): plain vectors, difference is subtraction
- SO3: 3x3 rotation matrices, log/exp maps of SO(3)
- SE2: planar poses stored as (theta, px, py), log/exp maps of SE(2)

All maps are written with jax.numpy and use series expansions near the
identity so that jacfwd/hessian through them stay finite.
"""

from dataclasses import dataclass
from typing import Tuple

import jax.numpy as jnp
from jax import Array

_SMALL_ANGLE = 1e-8
_NEAR_PI = 1e-6


def wrap_to_pi(x: Array) -> Array:
    """Wraps angles to lie within [-π, π) range.

    Args:
        x: Angle(s) in radians, can be scalar or array.

    Returns:
        Wrapped angle(s) in [-π, π) range.

    Example:
        >>> angle = jnp.array(3.5 * jnp.pi)  # 3.5π radians
        >>> wrapped = wrap_to_pi(angle)
        >>> print(wrapped)  # ≈ -0.5π
    """
    return (x + jnp.pi) % (2 * jnp.pi) - jnp.pi


def hat(w: Array) -> Array:
    """Skew-symmetric matrix of a 3-vector."""
    return jnp.array([
        [0.0, -w[2], w[1]],
        [w[2], 0.0, -w[0]],
        [-w[1], w[0], 0.0],
    ])


def vee(W: Array) -> Array:
    """Inverse of `hat` applied to the skew part of W."""
    return 0.5 * jnp.array([
        W[2, 1] - W[1, 2],
        W[0, 2] - W[2, 0],
        W[1, 0] - W[0, 1],
    ])


def so3_exp(w: Array) -> Array:
    """Rodrigues formula: rotation matrix for the rotation vector w."""
    theta2 = jnp.dot(w, w)
    small = theta2 < _SMALL_ANGLE
    safe_theta2 = jnp.where(small, 1.0, theta2)
    theta = jnp.sqrt(safe_theta2)
    a = jnp.where(small, 1.0 - theta2 / 6.0, jnp.sin(theta) / theta)
    b = jnp.where(small, 0.5 - theta2 / 24.0,
                  (1.0 - jnp.cos(theta)) / safe_theta2)
    W = hat(w)
    return jnp.eye(3) + a * W + b * (W @ W)


def so3_log(R: Array) -> Array:
    """Rotation vector of R, with angle in [0, π].

    Near π the skew part of R vanishes, so the axis is read from the
    symmetric part (R + R^T) / 2 - cos(theta) I = (1 - cos(theta)) n n^T
    instead. At exactly π both signs of the axis are valid.
    """
    w = vee(R)
    cos_theta = jnp.clip(0.5 * (jnp.trace(R) - 1.0), -1.0, 1.0)
    small = cos_theta > 1.0 - _SMALL_ANGLE
    near_pi = cos_theta < -1.0 + _NEAR_PI
    safe_cos = jnp.where(small | near_pi, 0.0, cos_theta)
    theta = jnp.arccos(safe_cos)
    # theta / sin(theta) ≈ 1 + theta^2 / 6 with theta^2 ≈ 2 (1 - cos)
    factor = jnp.where(small, 1.0 + (1.0 - cos_theta) / 3.0,
                       theta / jnp.sin(theta))

    scale = jnp.where(near_pi, 1.0 - cos_theta, 1.0)
    nn = (0.5 * (R + R.T) - cos_theta * jnp.eye(3)) / scale
    j = jnp.argmax(jnp.diag(nn))
    axis = nn[:, j] / jnp.sqrt(jnp.maximum(nn[j, j], _NEAR_PI))
    axis = jnp.where(jnp.dot(axis, w) < 0.0, -axis, axis)
    sin2 = jnp.dot(w, w)
    sin_theta = jnp.where(sin2 > 0.0,
                          jnp.sqrt(jnp.where(sin2 > 0.0, sin2, 1.0)), 0.0)
    theta_pi = jnp.arctan2(sin_theta, cos_theta)

    return jnp.where(near_pi, theta_pi * axis, factor * w)


def _se2_v_terms(theta: Array) -> Tuple[Array, Array]:
    """Entries of the SE(2) left Jacobian V = [[a, -b], [b, a]]."""
    small = theta * theta < _SMALL_ANGLE
    safe = jnp.where(small, 1.0, theta)
    a = jnp.where(small, 1.0 - theta ** 2 / 6.0, jnp.sin(safe) / safe)
    b = jnp.where(small, 0.5 * theta - theta ** 3 / 24.0,
                  (1.0 - jnp.cos(safe)) / safe)
    return a, b


def rot2(theta: Array) -> Array:
    c, s = jnp.cos(theta), jnp.sin(theta)
    return jnp.array([[c, -s], [s, c]])


def se2_exp(v: Array) -> Array:
    """Pose (theta, px, py) for the twist (omega, vx, vy)."""
    a, b = _se2_v_terms(v[0])
    t = jnp.array([a * v[1] - b * v[2], b * v[1] + a * v[2]])
    return jnp.concatenate([v[:1], t])


def se2_log(g: Array) -> Array:
    """Twist (omega, vx, vy) of the pose (theta, px, py)."""
    theta = wrap_to_pi(g[0])
    a, b = _se2_v_terms(theta)
    det = a * a + b * b
    v = jnp.array([a * g[1] + b * g[2], -b * g[1] + a * g[2]]) / det
    return jnp.concatenate([theta[None], v])


def se2_compose(x: Array, y: Array) -> Array:
    """Pose product x * y."""
    t = x[1:] + rot2(x[0]) @ y[1:]
    return jnp.concatenate([(x[0] + y[0])[None], t])


def se2_between(x: Array, y: Array) -> Array:
    """Relative pose x^{-1} * y."""
    t = rot2(x[0]).T @ (y[1:] - x[1:])
    return jnp.concatenate([(y[0] - x[0])[None], t])


class Manifold:
    """Interface for state manifolds.

    Attributes:
        dim: Dimension of the tangent space.
        shape: Shape of a point as stored in a state trajectory.
    """

    dim: int
    shape: Tuple[int, ...]

    def difference(self, x: Array, y: Array) -> Array:
        raise NotImplementedError

    def retract(self, x: Array, v: Array) -> Array:
        raise NotImplementedError

    def identity(self) -> Array:
        raise NotImplementedError


@dataclass(frozen=True)
class Euclidean(Manifold):
    """R^n with vector subtraction and addition."""
    n: int

    @property
    def dim(self) -> int:
        return self.n

    @property
    def shape(self) -> Tuple[int, ...]:
        return (self.n,)

    def difference(self, x: Array, y: Array) -> Array:
        return y - x

    def retract(self, x: Array, v: Array) -> Array:
        return x + v

    def identity(self) -> Array:
        return jnp.zeros(self.n)


@dataclass(frozen=True)
class SO3(Manifold):
    """Rotation matrices with body-frame perturbations x * exp(v)."""

    @property
    def dim(self) -> int:
        return 3

    @property
    def shape(self) -> Tuple[int, ...]:
        return (3, 3)

    def difference(self, x: Array, y: Array) -> Array:
        return so3_log(x.T @ y)

    def retract(self, x: Array, v: Array) -> Array:
        return x @ so3_exp(v)

    def identity(self) -> Array:
        return jnp.eye(3)


@dataclass(frozen=True)
class SE2(Manifold):
    """Planar poses (theta, px, py) with perturbations x * exp(v).

    Tangent vectors are ordered (omega, vx, vy), with the translational
    part expressed in the body frame of the reference pose.
    """

    @property
    def dim(self) -> int:
        return 3

    @property
    def shape(self) -> Tuple[int, ...]:
        return (3,)

    def difference(self, x: Array, y: Array) -> Array:
        return se2_log(se2_between(x, y))

    def retract(self, x: Array, v: Array) -> Array:
        y = se2_compose(x, se2_exp(v))
        return y.at[0].set(wrap_to_pi(y[0]))

    def identity(self) -> Array:
        return jnp.zeros(3)
