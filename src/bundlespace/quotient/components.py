# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
Per-pattern bundle-space components: fiber derivation, projection and merge.

A `Component` relates one logical agent's Bundle subspace X to its Base
subspace B through a recognized `DecompositionType`. It carries the Fiber
F (X ≅ B × F), derived once when the component is built, and exposes the
three state operators

    project_to_base(x)   : X -> B
    project_to_fiber(x)  : X -> F
    merge(b, f)          : B × F -> X

which satisfy, exactly and element-wise,

    merge(project_to_base(x), project_to_fiber(x)) == x
    project_to_base(merge(b, f))  == b
    project_to_fiber(merge(b, f)) == f

Dispatch
--------
The behaviour of a component is selected by its type tag through module
level registries, the same way residual functions are registered per factor
type in a factor graph:

    FIBER_SPACE_FNS[type](bundle, base)        -> Optional[StateSpace]
    PROJECT_BASE_FNS[type](component, x)       -> base state
    PROJECT_FIBER_FNS[type](component, x)      -> fiber state
    MERGE_FNS[type](component, b, f)           -> bundle state

Every `DecompositionType` has an entry in every registry; this is verified
when the module is imported.

Layouts
-------
For every fibered pattern the Base state is a prefix of the Bundle state
and the Fiber state is the remaining suffix. The split point is computed per
pattern from the Bundle / Base descriptors:

    RN_RM        x = [q_0 .. q_{m-1} | q_m .. q_{n-1}]           split m
    SE2_R2       x = [x y | yaw]                                 split 2
    SE3_R3       x = [x y z | qx qy qz qw]                       split 3
    XRN_X        x = [pose | j_0 .. j_{n-1}]                     split |pose|
    SE*RN_R*     x = [position | rotation j_0 .. j_{n-1}]        split k
    XRN_XRM      x = [pose j_0 .. j_{m-1} | j_m .. j_{n-1}]      split |pose| + m

where |pose| is the state size of the rigid-body part (3 for SE(2), 7 for
SE(3), 1 for SO(2), 4 for SO(3)).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import jax.numpy as jnp

from bundlespace.core.errors import ProjectionUnsupported
from bundlespace.core.spaces import CompoundSpace, RealVectorSpace, SO2Space, SO3Space, StateSpace
from bundlespace.core.types import RIGID_BODY_POSITION_DIM, DecompositionType

FiberSpaceFn = Callable[[StateSpace, Optional[StateSpace]], Optional[StateSpace]]


@dataclass(frozen=True)
class Component:
    """
    One logical agent's decomposition.

    - type: resolved decomposition tag
    - bundle: Bundle subspace descriptor
    - base: Base subspace descriptor (None at the root level)
    - fiber: derived Fiber descriptor (None for fiber-less types)
    """
    type: DecompositionType
    bundle: StateSpace
    base: Optional[StateSpace] = None
    fiber: Optional[StateSpace] = None

    @property
    def bundle_dimension(self) -> int:
        return self.bundle.dimension

    @property
    def base_dimension(self) -> int:
        return self.base.dimension if self.base is not None else 0

    @property
    def fiber_dimension(self) -> int:
        return self.fiber.dimension if self.fiber is not None else 0

    @property
    def is_relaxation(self) -> bool:
        return self.type == DecompositionType.CONSTRAINED_RELAXATION

    def project_to_base(self, x: jnp.ndarray) -> jnp.ndarray:
        return _lookup(PROJECT_BASE_FNS, self.type)(self, x)

    def project_to_fiber(self, x: jnp.ndarray) -> jnp.ndarray:
        return _lookup(PROJECT_FIBER_FNS, self.type)(self, x)

    def merge(self, base_state: jnp.ndarray, fiber_state: jnp.ndarray) -> jnp.ndarray:
        return _lookup(MERGE_FNS, self.type)(self, base_state, fiber_state)

    def describe(self) -> str:
        """Base | Bundle | Fiber, e.g. 'SE(2)xR^1 | SE(2)xR^3 | R^2'."""
        if self.base is None:
            return str(self.bundle)
        parts = [str(self.base), str(self.bundle)]
        if self.fiber is not None:
            parts.append(str(self.fiber))
        return " | ".join(parts)

    def __str__(self) -> str:
        return f"{self.type.value}: {self.describe()}"


def fiber_space(
    type_: DecompositionType, bundle: StateSpace, base: Optional[StateSpace] = None
) -> Optional[StateSpace]:
    """Derive the Fiber descriptor for `bundle` over `base` under `type_`."""
    return _lookup(FIBER_SPACE_FNS, type_)(bundle, base)


def _lookup(table: Dict[DecompositionType, Callable], type_: DecompositionType) -> Callable:
    fn = table.get(type_)
    if fn is None:
        raise ValueError(f"No function registered for decomposition type '{type_}'")
    return fn


# --------------------------------------------------------------------------
# Fiber derivation
# --------------------------------------------------------------------------

def _no_fiber(bundle: StateSpace, base: Optional[StateSpace]) -> Optional[StateSpace]:
    return None


def _fiber_rn_rm(bundle: StateSpace, base: Optional[StateSpace]) -> StateSpace:
    m = base.dimension
    return RealVectorSpace(bundle.bounds.sub(m))


def _fiber_so2(bundle: StateSpace, base: Optional[StateSpace]) -> StateSpace:
    return SO2Space()


def _fiber_so3(bundle: StateSpace, base: Optional[StateSpace]) -> StateSpace:
    return SO3Space()


def _fiber_xrn_x(bundle: StateSpace, base: Optional[StateSpace]) -> StateSpace:
    _, joints = bundle.subspaces
    return RealVectorSpace(joints.bounds)


def _fiber_xrn_r(bundle: StateSpace, base: Optional[StateSpace]) -> StateSpace:
    pose, joints = bundle.subspaces
    return CompoundSpace.of(pose.rotation, RealVectorSpace(joints.bounds))


def _fiber_xrn_xrm(bundle: StateSpace, base: Optional[StateSpace]) -> StateSpace:
    _, joints = bundle.subspaces
    m = base.subspaces[1].dimension
    return RealVectorSpace(joints.bounds.sub(m))


# --------------------------------------------------------------------------
# Split points (length of the Base prefix inside a Bundle state)
# --------------------------------------------------------------------------

def _split_rn_rm(c: Component) -> int:
    return c.base.dimension


def _split_rigid_over_position(c: Component) -> int:
    return RIGID_BODY_POSITION_DIM[c.bundle.type]


def _split_xrn_x(c: Component) -> int:
    pose, _ = c.bundle.subspaces
    return pose.state_size


def _split_xrn_r(c: Component) -> int:
    pose, _ = c.bundle.subspaces
    return RIGID_BODY_POSITION_DIM[pose.type]


def _split_xrn_xrm(c: Component) -> int:
    pose, _ = c.bundle.subspaces
    m = c.base.subspaces[1].dimension
    return pose.state_size + m


_SPLIT_FNS: Dict[DecompositionType, Callable[[Component], int]] = {
    DecompositionType.RN_RM: _split_rn_rm,
    DecompositionType.SE2_R2: _split_rigid_over_position,
    DecompositionType.SE3_R3: _split_rigid_over_position,
    DecompositionType.SE2RN_SE2: _split_xrn_x,
    DecompositionType.SE3RN_SE3: _split_xrn_x,
    DecompositionType.SO2RN_SO2: _split_xrn_x,
    DecompositionType.SO3RN_SO3: _split_xrn_x,
    DecompositionType.SE2RN_R2: _split_xrn_r,
    DecompositionType.SE3RN_R3: _split_xrn_r,
    DecompositionType.SE2RN_SE2RM: _split_xrn_xrm,
    DecompositionType.SE3RN_SE3RM: _split_xrn_xrm,
    DecompositionType.SO2RN_SO2RM: _split_xrn_xrm,
    DecompositionType.SO3RN_SO3RM: _split_xrn_xrm,
}


def _project_base_split(c: Component, x: jnp.ndarray) -> jnp.ndarray:
    x = c.bundle.check_state(x)
    return x[: _SPLIT_FNS[c.type](c)]


def _project_fiber_split(c: Component, x: jnp.ndarray) -> jnp.ndarray:
    x = c.bundle.check_state(x)
    return x[_SPLIT_FNS[c.type](c):]


def _merge_split(c: Component, base_state: jnp.ndarray, fiber_state: jnp.ndarray) -> jnp.ndarray:
    b = c.base.check_state(base_state)
    f = c.fiber.check_state(fiber_state)
    return c.bundle.check_state(jnp.concatenate([b, f]))


# --------------------------------------------------------------------------
# Fiber-less patterns
# --------------------------------------------------------------------------

def _project_base_identity(c: Component, x: jnp.ndarray) -> jnp.ndarray:
    # Base and Bundle share one layout.
    return c.base.check_state(c.bundle.check_state(x))


def _project_base_empty(c: Component, x: jnp.ndarray) -> jnp.ndarray:
    # Base is either zero-dimensional or the rigid-body head of (X, R^0).
    x = c.bundle.check_state(x)
    return c.base.check_state(x[: c.base.state_size])


def _unsupported(operation: str) -> Callable[..., jnp.ndarray]:
    def fn(c: Component, *states: jnp.ndarray) -> jnp.ndarray:
        raise ProjectionUnsupported(
            f"{operation} is not defined for decomposition '{c.type.value}' "
            f"({c.describe()}): it has no fiber"
        )

    fn.__name__ = f"_unsupported_{operation}"
    return fn


def _no_base(c: Component, x: jnp.ndarray) -> jnp.ndarray:
    raise ProjectionUnsupported(
        f"project_to_base is not defined for decomposition '{c.type.value}' "
        f"on {c.bundle} (dim {c.bundle.dimension}): it has no base"
    )


# --------------------------------------------------------------------------
# Registries
# --------------------------------------------------------------------------

FIBER_SPACE_FNS: Dict[DecompositionType, FiberSpaceFn] = {
    DecompositionType.NO_PROJECTION: _no_fiber,
    DecompositionType.EMPTY_SET: _no_fiber,
    DecompositionType.IDENTITY: _no_fiber,
    DecompositionType.CONSTRAINED_RELAXATION: _no_fiber,
    DecompositionType.UNKNOWN: _no_fiber,
    DecompositionType.RN_RM: _fiber_rn_rm,
    DecompositionType.SE2_R2: _fiber_so2,
    DecompositionType.SE3_R3: _fiber_so3,
    DecompositionType.SE2RN_SE2: _fiber_xrn_x,
    DecompositionType.SE3RN_SE3: _fiber_xrn_x,
    DecompositionType.SO2RN_SO2: _fiber_xrn_x,
    DecompositionType.SO3RN_SO3: _fiber_xrn_x,
    DecompositionType.SE2RN_R2: _fiber_xrn_r,
    DecompositionType.SE3RN_R3: _fiber_xrn_r,
    DecompositionType.SE2RN_SE2RM: _fiber_xrn_xrm,
    DecompositionType.SE3RN_SE3RM: _fiber_xrn_xrm,
    DecompositionType.SO2RN_SO2RM: _fiber_xrn_xrm,
    DecompositionType.SO3RN_SO3RM: _fiber_xrn_xrm,
}

PROJECT_BASE_FNS: Dict[DecompositionType, Callable] = {
    DecompositionType.NO_PROJECTION: _no_base,
    DecompositionType.UNKNOWN: _unsupported("project_to_base"),
    DecompositionType.EMPTY_SET: _project_base_empty,
    DecompositionType.IDENTITY: _project_base_identity,
    DecompositionType.CONSTRAINED_RELAXATION: _project_base_identity,
    **{t: _project_base_split for t in _SPLIT_FNS},
}

PROJECT_FIBER_FNS: Dict[DecompositionType, Callable] = {
    **{t: _unsupported("project_to_fiber") for t in FIBER_SPACE_FNS if not t.has_fiber},
    **{t: _project_fiber_split for t in _SPLIT_FNS},
}

MERGE_FNS: Dict[DecompositionType, Callable] = {
    **{t: _unsupported("merge") for t in FIBER_SPACE_FNS if not t.has_fiber},
    **{t: _merge_split for t in _SPLIT_FNS},
}


def _check_registries() -> None:
    tables = {
        "FIBER_SPACE_FNS": FIBER_SPACE_FNS,
        "PROJECT_BASE_FNS": PROJECT_BASE_FNS,
        "PROJECT_FIBER_FNS": PROJECT_FIBER_FNS,
        "MERGE_FNS": MERGE_FNS,
    }
    for name, table in tables.items():
        missing = [t.value for t in DecompositionType if t not in table]
        if missing:
            raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")
    fibered = {t for t in DecompositionType if t.has_fiber}
    if fibered != set(_SPLIT_FNS):
        raise RuntimeError("Split table does not match the fibered decomposition types")


_check_registries()
