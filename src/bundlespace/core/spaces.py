# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
Configuration-space descriptors for BundleSpace.

This module is the minimal geometry substrate the bundle-space hierarchy
is built on. A *space descriptor* is an immutable description of a
configuration space; a *state* is a flat 1-D `jax.numpy` vector living in
that space. Descriptors know how long their state vectors are, how to draw
uniform samples, and how to lay out the states of compound spaces.

Supported spaces
----------------
RealVectorSpace
    Bounded (or unbounded) R^n. Measure is the volume of the bounds box.

SO2Space, SO3Space
    Planar rotation [yaw] and spatial rotation [qx, qy, qz, qw].

SE2Space, SE3Space
    Rigid-body poses. Structurally compound (position R^k × rotation) but
    tagged with their own `SpaceType`, so the classifier can recognize them
    before looking at their children.

CompoundSpace
    Ordered product of subspaces with per-subspace weights. A weight of zero
    removes the subspace from the product measure (used for zero-dimensional
    fibers in multi-agent products).

State layout
------------
Compound states are the concatenation of their children's states; the
offset table `state_index()` gives, for each child, the pair
`(start, size)` into the flat vector:

    SE(3)xR^4:  [x y z | qx qy qz qw | j0 j1 j2 j3]
                 \\____ SE(3), 7 ____/  \\__ R^4 __/

Note that `state_size` and `dimension` differ for SO(3) (4 vs 3) and SE(3)
(7 vs 6). All slicing in the quotient layer is done on `state_size`
offsets; all dimension bookkeeping on `dimension`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import ClassVar, List, Sequence, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from .errors import DegenerateSpace
from .math3d import (
    SO2_STATE_SIZE,
    SO3_STATE_SIZE,
    quat_identity,
    quat_is_unit,
    quat_uniform,
    so2_identity,
    so2_in_range,
    so2_uniform,
    split_pose,
)
from .types import SpaceType

SO2_MEASURE = 2.0 * math.pi
SO3_MEASURE = math.pi ** 2


@dataclass(frozen=True)
class RealVectorBounds:
    """Axis-aligned box [low_i, high_i] per coordinate."""
    low: Tuple[float, ...]
    high: Tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "low", tuple(float(v) for v in self.low))
        object.__setattr__(self, "high", tuple(float(v) for v in self.high))
        if len(self.low) != len(self.high):
            raise ValueError(
                f"Bounds have {len(self.low)} lower and {len(self.high)} upper values"
            )
        for k, (lo, hi) in enumerate(zip(self.low, self.high)):
            if lo > hi:
                raise ValueError(f"Bounds coordinate {k}: low {lo} > high {hi}")

    @staticmethod
    def box(dim: int, low: float, high: float) -> "RealVectorBounds":
        return RealVectorBounds(low=(float(low),) * dim, high=(float(high),) * dim)

    @staticmethod
    def unbounded(dim: int) -> "RealVectorBounds":
        return RealVectorBounds.box(dim, -math.inf, math.inf)

    @property
    def dim(self) -> int:
        return len(self.low)

    @property
    def is_bounded(self) -> bool:
        return bool(np.all(np.isfinite(self.low)) and np.all(np.isfinite(self.high)))

    def volume(self) -> float:
        # The empty product (R^0) has volume 1.
        widths = np.asarray(self.high, dtype=np.float64) - np.asarray(self.low, dtype=np.float64)
        return float(np.prod(widths))

    def sub(self, start: int, stop: int | None = None) -> "RealVectorBounds":
        """Bounds of the coordinates [start, stop)."""
        return RealVectorBounds(low=self.low[start:stop], high=self.high[start:stop])

    def contains(self, values: jnp.ndarray, tol: float = 1e-6) -> bool:
        values = np.asarray(values, dtype=np.float64)
        low = np.asarray(self.low, dtype=np.float64)
        high = np.asarray(self.high, dtype=np.float64)
        return bool(np.all(values >= low - tol) and np.all(values <= high + tol))


class StateSpace:
    """
    Abstract space descriptor.

    Subclasses provide `type`, `dimension`, `measure`, `state_size`,
    `sample_uniform`, `identity_state` and `satisfies_bounds`.
    """

    type: ClassVar[SpaceType] = SpaceType.OTHER

    @property
    def dimension(self) -> int:
        raise NotImplementedError

    @property
    def measure(self) -> float:
        raise NotImplementedError

    @property
    def state_size(self) -> int:
        raise NotImplementedError

    @property
    def is_compound(self) -> bool:
        return False

    @property
    def subspaces(self) -> Tuple["StateSpace", ...]:
        return ()

    @property
    def subspace_count(self) -> int:
        return len(self.subspaces)

    def sample_uniform(self, key: jax.Array) -> jnp.ndarray:
        raise NotImplementedError

    def identity_state(self) -> jnp.ndarray:
        raise NotImplementedError

    def satisfies_bounds(self, state: jnp.ndarray) -> bool:
        raise NotImplementedError

    def check_state(self, state: jnp.ndarray) -> jnp.ndarray:
        """Return `state` as a 1-D array, raising if its length is wrong."""
        state = jnp.asarray(state)
        if state.ndim != 1 or state.shape[0] != self.state_size:
            raise ValueError(
                f"State of shape {tuple(state.shape)} does not fit {self} "
                f"(expected ({self.state_size},))"
            )
        return state

    def state_index(self) -> List[Tuple[int, int]]:
        """(start, size) of every subspace inside a flat state."""
        index: List[Tuple[int, int]] = []
        offset = 0
        for sub in self.subspaces:
            index.append((offset, sub.state_size))
            offset += sub.state_size
        return index

    def unpack(self, state: jnp.ndarray) -> List[jnp.ndarray]:
        state = self.check_state(state)
        return [state[start:start + size] for start, size in self.state_index()]

    def pack(self, parts: Sequence[jnp.ndarray]) -> jnp.ndarray:
        if len(parts) != self.subspace_count:
            raise ValueError(
                f"{self} has {self.subspace_count} subspaces, got {len(parts)} parts"
            )
        return self.check_state(jnp.concatenate([jnp.asarray(p) for p in parts]))


@dataclass(frozen=True)
class RealVectorSpace(StateSpace):
    bounds: RealVectorBounds

    type: ClassVar[SpaceType] = SpaceType.REAL_VECTOR

    @staticmethod
    def box(dim: int, low: float = 0.0, high: float = 1.0) -> "RealVectorSpace":
        return RealVectorSpace(RealVectorBounds.box(dim, low, high))

    @staticmethod
    def unbounded(dim: int) -> "RealVectorSpace":
        return RealVectorSpace(RealVectorBounds.unbounded(dim))

    @property
    def dimension(self) -> int:
        return self.bounds.dim

    @property
    def measure(self) -> float:
        return self.bounds.volume()

    @property
    def state_size(self) -> int:
        return self.bounds.dim

    def sample_uniform(self, key: jax.Array) -> jnp.ndarray:
        if not self.bounds.is_bounded:
            raise DegenerateSpace(f"Cannot sample uniformly from unbounded {self}")
        low = jnp.asarray(self.bounds.low)
        high = jnp.asarray(self.bounds.high)
        return jax.random.uniform(key, (self.dimension,), minval=low, maxval=high)

    def identity_state(self) -> jnp.ndarray:
        return jnp.zeros(self.dimension)

    def satisfies_bounds(self, state: jnp.ndarray) -> bool:
        return self.bounds.contains(self.check_state(state))

    def __str__(self) -> str:
        return f"R^{self.dimension}"


@dataclass(frozen=True)
class SO2Space(StateSpace):
    type: ClassVar[SpaceType] = SpaceType.SO2

    @property
    def dimension(self) -> int:
        return 1

    @property
    def measure(self) -> float:
        return SO2_MEASURE

    @property
    def state_size(self) -> int:
        return SO2_STATE_SIZE

    def sample_uniform(self, key: jax.Array) -> jnp.ndarray:
        return so2_uniform(key)

    def identity_state(self) -> jnp.ndarray:
        return so2_identity()

    def satisfies_bounds(self, state: jnp.ndarray) -> bool:
        return so2_in_range(self.check_state(state))

    def __str__(self) -> str:
        return "SO(2)"


@dataclass(frozen=True)
class SO3Space(StateSpace):
    type: ClassVar[SpaceType] = SpaceType.SO3

    @property
    def dimension(self) -> int:
        return 3

    @property
    def measure(self) -> float:
        return SO3_MEASURE

    @property
    def state_size(self) -> int:
        return SO3_STATE_SIZE

    def sample_uniform(self, key: jax.Array) -> jnp.ndarray:
        return quat_uniform(key)

    def identity_state(self) -> jnp.ndarray:
        return quat_identity()

    def satisfies_bounds(self, state: jnp.ndarray) -> bool:
        return quat_is_unit(self.check_state(state))

    def __str__(self) -> str:
        return "SO(3)"


@dataclass(frozen=True)
class _RigidBodySpace(StateSpace):
    """Shared implementation of SE(2) / SE(3): position box × rotation."""
    bounds: RealVectorBounds

    position_dim: ClassVar[int] = 0

    def __post_init__(self) -> None:
        if self.bounds.dim != self.position_dim:
            raise ValueError(
                f"{self} needs {self.position_dim}-dimensional position bounds, "
                f"got {self.bounds.dim}"
            )

    @property
    def position(self) -> RealVectorSpace:
        return RealVectorSpace(self.bounds)

    @property
    def rotation(self) -> StateSpace:
        raise NotImplementedError

    @property
    def is_compound(self) -> bool:
        return True

    @property
    def subspaces(self) -> Tuple[StateSpace, ...]:
        return (self.position, self.rotation)

    @property
    def dimension(self) -> int:
        return self.position_dim + self.rotation.dimension

    @property
    def measure(self) -> float:
        return self.bounds.volume() * self.rotation.measure

    @property
    def state_size(self) -> int:
        return self.position_dim + self.rotation.state_size

    def sample_uniform(self, key: jax.Array) -> jnp.ndarray:
        k_pos, k_rot = jax.random.split(key)
        return jnp.concatenate(
            [self.position.sample_uniform(k_pos), self.rotation.sample_uniform(k_rot)]
        )

    def identity_state(self) -> jnp.ndarray:
        return jnp.concatenate(
            [self.position.identity_state(), self.rotation.identity_state()]
        )

    def satisfies_bounds(self, state: jnp.ndarray) -> bool:
        position, rotation = split_pose(self.check_state(state), self.position_dim)
        return self.bounds.contains(position) and self.rotation.satisfies_bounds(rotation)


@dataclass(frozen=True)
class SE2Space(_RigidBodySpace):
    type: ClassVar[SpaceType] = SpaceType.SE2
    position_dim: ClassVar[int] = 2

    @staticmethod
    def box(low: float = 0.0, high: float = 1.0) -> "SE2Space":
        return SE2Space(RealVectorBounds.box(2, low, high))

    @property
    def rotation(self) -> StateSpace:
        return SO2Space()

    def __str__(self) -> str:
        return "SE(2)"


@dataclass(frozen=True)
class SE3Space(_RigidBodySpace):
    type: ClassVar[SpaceType] = SpaceType.SE3
    position_dim: ClassVar[int] = 3

    @staticmethod
    def box(low: float = 0.0, high: float = 1.0) -> "SE3Space":
        return SE3Space(RealVectorBounds.box(3, low, high))

    @property
    def rotation(self) -> StateSpace:
        return SO3Space()

    def __str__(self) -> str:
        return "SE(3)"


@dataclass(frozen=True)
class CompoundSpace(StateSpace):
    """Ordered product of subspaces."""
    components: Tuple[StateSpace, ...]
    weights: Tuple[float, ...] = field(default=())

    type: ClassVar[SpaceType] = SpaceType.COMPOUND

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", tuple(self.components))
        if not self.weights:
            object.__setattr__(self, "weights", (1.0,) * len(self.components))
        else:
            object.__setattr__(self, "weights", tuple(float(w) for w in self.weights))
        if len(self.weights) != len(self.components):
            raise ValueError(
                f"CompoundSpace has {len(self.components)} subspaces "
                f"but {len(self.weights)} weights"
            )

    @staticmethod
    def of(*spaces: StateSpace) -> "CompoundSpace":
        return CompoundSpace(tuple(spaces))

    @property
    def is_compound(self) -> bool:
        return True

    @property
    def subspaces(self) -> Tuple[StateSpace, ...]:
        return self.components

    @property
    def dimension(self) -> int:
        return sum(s.dimension for s in self.components)

    @property
    def measure(self) -> float:
        m = 1.0
        for sub, w in zip(self.components, self.weights):
            if w > 0.0:
                m *= sub.measure
        return m

    @property
    def state_size(self) -> int:
        return sum(s.state_size for s in self.components)

    def sample_uniform(self, key: jax.Array) -> jnp.ndarray:
        if not self.components:
            return jnp.zeros(0)
        keys = jax.random.split(key, len(self.components))
        return jnp.concatenate(
            [sub.sample_uniform(k) for sub, k in zip(self.components, keys)]
        )

    def identity_state(self) -> jnp.ndarray:
        if not self.components:
            return jnp.zeros(0)
        return jnp.concatenate([sub.identity_state() for sub in self.components])

    def satisfies_bounds(self, state: jnp.ndarray) -> bool:
        return all(
            sub.satisfies_bounds(part)
            for sub, part in zip(self.components, self.unpack(state))
        )

    def __str__(self) -> str:
        return "x".join(str(s) for s in self.components)
