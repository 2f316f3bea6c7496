# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
SO(2) / SO(3) helpers for rotation and pose state vectors.

This module implements the small amount of rotation math the space
descriptors need in order to sample and sanity-check states:

    • Splitting a flat pose vector into position and rotation parts
    • Uniform sampling of planar angles and unit quaternions
    • Identity rotations
    • Membership tests (angle range, unit norm)

Representation
--------------
Rotations are stored the way the flat state layouts in `core.spaces`
expect them:

    SO(2): [yaw]                  with yaw in [-pi, pi)
    SO(3): [qx, qy, qz, qw]       unit quaternion, scalar last
    SE(2): [x, y, yaw]
    SE(3): [x, y, z, qx, qy, qz, qw]

All functions take and return `jax.numpy` arrays and draw randomness from
explicit `jax.random` keys, so callers stay in full control of seeding.
"""

from __future__ import annotations

import math

import jax
import jax.numpy as jnp

#: Length of the flat rotation state per rotation type.
SO2_STATE_SIZE = 1
SO3_STATE_SIZE = 4


def split_pose(v: jnp.ndarray, position_dim: int) -> tuple[jnp.ndarray, jnp.ndarray]:
    """
    Split a flat pose vector into position and rotation parts.

    v: [p_0 .. p_{k-1}, r_0 .. r_j]  with k = position_dim
    """
    v = jnp.asarray(v)
    return v[:position_dim], v[position_dim:]


def so2_identity() -> jnp.ndarray:
    return jnp.zeros(SO2_STATE_SIZE)


def so2_uniform(key: jax.Array) -> jnp.ndarray:
    """Uniform yaw in [-pi, pi)."""
    return jax.random.uniform(key, (SO2_STATE_SIZE,), minval=-math.pi, maxval=math.pi)


def so2_in_range(yaw: jnp.ndarray, tol: float = 1e-6) -> bool:
    yaw = jnp.asarray(yaw)
    return bool(jnp.all((yaw >= -math.pi - tol) & (yaw <= math.pi + tol)))


def quat_identity() -> jnp.ndarray:
    """Identity rotation as [qx, qy, qz, qw]."""
    return jnp.array([0.0, 0.0, 0.0, 1.0])


def quat_uniform(key: jax.Array) -> jnp.ndarray:
    """
    Uniformly distributed unit quaternion (Shoemake's method).

    Three uniforms u1, u2, u3 in [0, 1) give

        q = [sqrt(1-u1) sin(2 pi u2),
             sqrt(1-u1) cos(2 pi u2),
             sqrt(u1)   sin(2 pi u3),
             sqrt(u1)   cos(2 pi u3)]

    which is uniform with respect to the Haar measure on SO(3).
    """
    u1, u2, u3 = jax.random.uniform(key, (3,))
    a = jnp.sqrt(1.0 - u1)
    b = jnp.sqrt(u1)
    two_pi = 2.0 * math.pi
    return jnp.array(
        [
            a * jnp.sin(two_pi * u2),
            a * jnp.cos(two_pi * u2),
            b * jnp.sin(two_pi * u3),
            b * jnp.cos(two_pi * u3),
        ]
    )


def quat_is_unit(q: jnp.ndarray, tol: float = 1e-5) -> bool:
    q = jnp.asarray(q)
    return bool(jnp.abs(jnp.linalg.norm(q) - 1.0) <= tol)

