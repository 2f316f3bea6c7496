# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
One level of a bundle-space hierarchy.

A `BundleSpace` node owns a configuration space (its *Bundle*, a
`SpaceInformation`) and, when it has a parent, relates that Bundle to the
parent's Bundle (its *Base*) through one `Component` per logical agent.
From the components it assembles a *Fiber* space such that

    Bundle ≅ Base × Fiber.

Sampling
--------
Samples are composed recursively down the chain. A root node draws
uniformly from its Bundle. A node with a parent draws a Fiber state
uniformly, asks its parent for a Base state (which recursively does the
same), and merges the two:

    x_L = merge(sample(L-1), u_F)

If the Fiber is zero-dimensional and Base and Bundle share one layout
(identity, constrained relaxation), the parent's sample is reused as the
Bundle state. An empty-set decomposition draws its Bundle uniformly; when
its Base still carries coordinates (a rigid body with zero joints under the
same body with joints) the parent's sample overwrites that leading part of
every agent's state.

The last Base and Fiber parts drawn by `sample` are kept on the node
(`last_base_sample`, `last_fiber_sample`); they are None until the first
composed draw.

Each call to `sample` counts towards `total_samples`; states accepted by the
Bundle feasibility predicate also count towards `total_feasible_samples`.
The importance of a level, `1 / (1 + total_samples)`, decays as it is
sampled.

Multi-agent spaces
------------------
For a compound of several agents, `project_to_base`, `project_to_fiber`
and `merge` run per agent on sub-slices of the flat state vectors. The
(start, size) tables for Bundle, Base and Fiber are computed once when the
node is built.

Construction validates the decomposition: every participating space must
have strictly positive, finite measure, and when a Fiber exists its
dimension plus the Base dimension must equal the Bundle dimension.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

import jax
import jax.numpy as jnp

from bundlespace.core.errors import (
    DegenerateSpace,
    InvalidDimensionOrdering,
    ProjectionUnsupported,
    SolveUnsupported,
)
from bundlespace.core.spaces import CompoundSpace, RealVectorSpace, StateSpace
from bundlespace.core.types import DecompositionType, NodeId, SpaceType
from bundlespace.core.validity import SpaceInformation
from bundlespace.quotient.components import Component
from bundlespace.quotient.factory import agent_subspaces, make_components

logger = logging.getLogger(__name__)

Slice = Tuple[int, int]

_EMBEDDED_TYPES = frozenset(
    {DecompositionType.IDENTITY, DecompositionType.CONSTRAINED_RELAXATION}
)


class LifecycleState(str, Enum):
    CONSTRUCTED = "constructed"
    SET_UP = "set_up"
    CLEARED = "cleared"


class OutOfBounds(NamedTuple):
    """A coordinate of a Bundle state outside its bounds."""
    component: int
    coordinate: int
    low: float
    value: float
    high: float


def _offsets(sizes: List[int]) -> List[Slice]:
    index: List[Slice] = []
    start = 0
    for size in sizes:
        index.append((start, size))
        start += size
    return index


def check_measure(name: str, space: StateSpace) -> None:
    """Raise `DegenerateSpace` unless `space` has strictly positive, finite measure."""
    measure = space.measure
    if not math.isfinite(measure):
        raise DegenerateSpace(
            f"{name} space {space} (dim {space.dimension}) has infinite measure {measure}"
        )
    if measure <= 0.0:
        raise DegenerateSpace(
            f"{name} space {space} (dim {space.dimension}) has zero measure {measure}"
        )


class BundleSpace:
    """
    A single level of the hierarchy: Bundle, Base (parent's Bundle) and Fiber.

    Nodes are linked parent -> child when constructed; the chain itself is
    owned by `multilevel.sequence.BundleSpaceSequence`.
    """

    def __init__(
        self,
        bundle: SpaceInformation,
        parent: Optional["BundleSpace"] = None,
        node_id: NodeId = NodeId(0),
    ):
        self._bundle_info = bundle
        self._parent = parent
        self._child: Optional[BundleSpace] = None
        self._id = node_id
        self._level = parent.level + 1 if parent is not None else 0

        base_info = parent.bundle_info if parent is not None else None
        self._components = make_components(bundle, base_info)
        self._fiber = self._make_fiber_space()

        self._check_bundle_space()

        self._bundle_index = _offsets([a.state_size for a in agent_subspaces(self.bundle)])
        self._base_index: List[Slice] = []
        self._fiber_index = _offsets([c.fiber.state_size if c.fiber is not None else 0 for c in self._components])

        self._base_scratch: Optional[jnp.ndarray] = None
        self._fiber_scratch: Optional[jnp.ndarray] = None
        if parent is not None:
            self._base_index = _offsets([a.state_size for a in agent_subspaces(self.base)])
            parent._child = self

        self._total_samples = 0
        self._total_feasible_samples = 0
        self._state = LifecycleState.CONSTRUCTED

        logger.info("Level %d (id %d): %s", self._level, self._id, self)
        logger.debug(
            "Level %d measures: bundle=%g base=%s fiber=%s",
            self._level,
            self.bundle.measure,
            f"{self.base.measure:g}" if self.base is not None else "-",
            f"{self._fiber.measure:g}" if self._fiber is not None else "-",
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _make_fiber_space(self) -> Optional[StateSpace]:
        if len(self._components) == 1:
            return self._components[0].fiber

        if all(c.fiber is None for c in self._components):
            return None

        fibers = []
        weights = []
        for c in self._components:
            fiber = c.fiber if c.fiber is not None else RealVectorSpace.box(0)
            fibers.append(fiber)
            weights.append(1.0 if fiber.dimension > 0 else 0.0)
        return CompoundSpace(tuple(fibers), tuple(weights))

    def _check_bundle_space(self) -> None:
        check_measure("Bundle", self.bundle)
        if self.base is not None:
            check_measure("Base", self.base)
        if self._fiber is not None:
            check_measure("Fiber", self._fiber)
            total = self.base_dimension + self.fiber_dimension
            if total != self.bundle_dimension:
                raise InvalidDimensionOrdering(
                    f"Base {self.base} (dim {self.base_dimension}) and Fiber {self._fiber} "
                    f"(dim {self.fiber_dimension}) do not add up to Bundle {self.bundle} "
                    f"(dim {self.bundle_dimension})"
                )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def lifecycle_state(self) -> LifecycleState:
        return self._state

    def setup(self) -> None:
        self._state = LifecycleState.SET_UP

    def clear(self) -> None:
        """Forget all samples drawn so far."""
        self._total_samples = 0
        self._total_feasible_samples = 0
        self._base_scratch = None
        self._fiber_scratch = None
        self._state = LifecycleState.CLEARED

    def solve(self, *args, **kwargs):
        raise SolveUnsupported(
            f"Level {self._level} cannot be solved on its own; "
            "solving is done by a planner over the whole sequence"
        )

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def sample_bundle(self, key: jax.Array) -> jnp.ndarray:
        """Uniform draw from the Bundle space."""
        return self.bundle.sample_uniform(key)

    def sample_fiber(self, key: jax.Array) -> jnp.ndarray:
        """Uniform draw from the Fiber space."""
        if self._fiber is None:
            raise ProjectionUnsupported(f"Level {self._level} ({self}) has no fiber to sample")
        return self._fiber.sample_uniform(key)

    def sample(self, key: jax.Array) -> Tuple[jnp.ndarray, bool]:
        """
        Draw a Bundle state by recursive composition down the chain.

        Returns (state, valid) where `valid` is the Bundle predicate's verdict.
        """
        if self._parent is None:
            x = self.sample_bundle(key)
        elif self.fiber_dimension > 0:
            k_fiber, k_base = jax.random.split(key)
            self._fiber_scratch = self.sample_fiber(k_fiber)
            self._base_scratch, _ = self._parent.sample(k_base)
            x = self.merge(self._base_scratch, self._fiber_scratch)
        elif self.base.state_size == self.bundle.state_size:
            self._base_scratch, _ = self._parent.sample(key)
            x = self.bundle.check_state(self._base_scratch)
        elif self.base.state_size == 0:
            x = self.sample_bundle(key)
        else:
            k_bundle, k_base = jax.random.split(key)
            self._base_scratch, _ = self._parent.sample(k_base)
            x = self._embed_base(self._base_scratch, self.sample_bundle(k_bundle))

        valid = self._bundle_info.is_valid(x)
        self._total_samples += 1
        if valid:
            self._total_feasible_samples += 1
        return x, valid

    def _embed_base(self, base_state: jnp.ndarray, x: jnp.ndarray) -> jnp.ndarray:
        """Overwrite the leading coordinates of every agent in `x` with its Base part."""
        parts = []
        for (x_start, x_size), (b_start, b_size) in zip(self._bundle_index, self._base_index):
            part = x[x_start:x_start + x_size]
            parts.append(part.at[:b_size].set(base_state[b_start:b_start + b_size]))
        return self.bundle.check_state(jnp.concatenate(parts))

    def get_importance(self) -> float:
        return 1.0 / (self._total_samples + 1)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def project_to_base(self, x: jnp.ndarray) -> jnp.ndarray:
        if len(self._components) == 1:
            return self._components[0].project_to_base(x)

        x = self.bundle.check_state(x)
        parts = []
        for c, (start, size) in zip(self._components, self._bundle_index):
            parts.append(c.project_to_base(x[start:start + size]))
        return self.base.check_state(jnp.concatenate(parts))

    def project_to_fiber(self, x: jnp.ndarray) -> jnp.ndarray:
        if len(self._components) == 1:
            return self._components[0].project_to_fiber(x)

        x = self.bundle.check_state(x)
        self._require_fiber("project_to_fiber")
        parts = []
        for c, (start, size) in zip(self._components, self._bundle_index):
            if c.type in _EMBEDDED_TYPES:
                parts.append(jnp.zeros(0))
            else:
                parts.append(c.project_to_fiber(x[start:start + size]))
        return self._fiber.check_state(jnp.concatenate(parts))

    def merge(self, base_state: jnp.ndarray, fiber_state: jnp.ndarray) -> jnp.ndarray:
        if len(self._components) == 1:
            return self._components[0].merge(base_state, fiber_state)

        self._require_fiber("merge")
        b = self.base.check_state(base_state)
        f = self._fiber.check_state(fiber_state)
        parts = []
        for c, (b_start, b_size), (f_start, f_size) in zip(
            self._components, self._base_index, self._fiber_index
        ):
            b_part = b[b_start:b_start + b_size]
            if c.type in _EMBEDDED_TYPES:
                parts.append(c.bundle.check_state(b_part))
            else:
                parts.append(c.merge(b_part, f[f_start:f_start + f_size]))
        return self.bundle.check_state(jnp.concatenate(parts))

    def _require_fiber(self, operation: str) -> None:
        if self._fiber is None:
            raise ProjectionUnsupported(
                f"{operation} is not defined on level {self._level} ({self}): it has no fiber"
            )

    # ------------------------------------------------------------------
    # Identity states and diagnostics
    # ------------------------------------------------------------------

    def identity_state_bundle(self) -> jnp.ndarray:
        return self.bundle.identity_state()

    def identity_state_base(self) -> jnp.ndarray:
        if self.base is None:
            raise ValueError(f"Level {self._level} has no base space")
        return self.base.identity_state()

    def identity_state_fiber(self) -> jnp.ndarray:
        if self._fiber is None:
            raise ValueError(f"Level {self._level} has no fiber space")
        return self._fiber.identity_state()

    def debug_invalid_state(self, x: jnp.ndarray) -> List[OutOfBounds]:
        """
        List the vector coordinates of `x` that lie outside their bounds.

        Only vector-valued parts are inspected: the Bundle itself when it is
        R^n, otherwise its immediate vector subspaces (the position part
        when the Bundle is SE(2) / SE(3)).
        """
        space = self.bundle
        if space.satisfies_bounds(x):
            return []

        if space.is_compound:
            subspaces = space.subspaces
            parts = space.unpack(x)
        else:
            subspaces = (space,)
            parts = [space.check_state(x)]

        violations: List[OutOfBounds] = []
        for m, (sub, part) in enumerate(zip(subspaces, parts)):
            if sub.type != SpaceType.REAL_VECTOR:
                continue
            for k, (lo, hi) in enumerate(zip(sub.bounds.low, sub.bounds.high)):
                qk = float(part[k])
                if qk < lo or qk > hi:
                    logger.warning(
                        "Out of bounds [component %d, coordinate %d] %g <= %g <= %g",
                        m, k, lo, qk, hi,
                    )
                    violations.append(OutOfBounds(m, k, lo, qk, hi))
        return violations

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def bundle_info(self) -> SpaceInformation:
        return self._bundle_info

    @property
    def bundle(self) -> StateSpace:
        return self._bundle_info.space

    @property
    def base(self) -> Optional[StateSpace]:
        return self._parent.bundle if self._parent is not None else None

    @property
    def fiber(self) -> Optional[StateSpace]:
        return self._fiber

    @property
    def bundle_dimension(self) -> int:
        return self.bundle.dimension

    @property
    def base_dimension(self) -> int:
        return self.base.dimension if self.base is not None else 0

    @property
    def fiber_dimension(self) -> int:
        return self._fiber.dimension if self._fiber is not None else 0

    @property
    def components(self) -> List[Component]:
        return list(self._components)

    @property
    def is_relaxation(self) -> bool:
        return any(c.is_relaxation for c in self._components)

    @property
    def parent(self) -> Optional["BundleSpace"]:
        return self._parent

    @property
    def child(self) -> Optional["BundleSpace"]:
        return self._child

    @property
    def has_parent(self) -> bool:
        return self._parent is not None

    @property
    def has_child(self) -> bool:
        return self._child is not None

    @property
    def level(self) -> int:
        return self._level

    @property
    def id(self) -> NodeId:
        return self._id

    @property
    def last_base_sample(self) -> Optional[jnp.ndarray]:
        return self._base_scratch

    @property
    def last_fiber_sample(self) -> Optional[jnp.ndarray]:
        return self._fiber_scratch

    @property
    def total_samples(self) -> int:
        return self._total_samples

    @property
    def total_feasible_samples(self) -> int:
        return self._total_feasible_samples

    def __str__(self) -> str:
        description = ", ".join(c.describe() for c in self._components)
        return f"[{description}] [importance {self.get_importance():g}]"
