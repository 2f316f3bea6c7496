# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
Build the per-agent `Component` list of a bundle-space level.

A configuration space may describe several independent agents (a compound
of robots). The factory splits Bundle and Base into logical agents,
classifies each (Bundle_i, Base_i) pair and derives its Fiber.

Logical agents
--------------
A space counts as a single agent when it is

    • not compound, or
    • SE(2) / SE(3) (structurally compound, but one rigid body), or
    • a canonical pair (X, R^n) with X in {SO(2), SO(3), SE(2), SE(3)}.

Otherwise every child of the compound is one agent.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from bundlespace.core.errors import InvalidDimensionOrdering, UnrecognizedDecomposition
from bundlespace.core.spaces import StateSpace
from bundlespace.core.types import RIGID_BODY_POSITION_DIM, DecompositionType
from bundlespace.core.validity import SpaceInformation
from .classifier import classify, describe, is_pose_plus_dof
from .components import Component, fiber_space

logger = logging.getLogger(__name__)


def count_components(space: StateSpace) -> int:
    """Number of logical agents described by `space`."""
    if not space.is_compound:
        return 1
    if space.type in RIGID_BODY_POSITION_DIM:
        return 1
    if is_pose_plus_dof(space):
        return 1
    return space.subspace_count


def agent_subspaces(space: StateSpace) -> List[StateSpace]:
    """The logical-agent subspaces of `space`, in state order."""
    if count_components(space) == 1:
        return [space]
    return list(space.subspaces)


def make_component(
    bundle: StateSpace,
    base: Optional[StateSpace] = None,
    validity_equivalent: bool = True,
) -> Component:
    """
    Classify `bundle` over `base` and build the matching component.

    An identity pair whose feasibility predicates differ becomes a
    constrained relaxation. Unanalysed composites are rejected.
    """
    type_ = classify(bundle, base)

    if type_ == DecompositionType.IDENTITY and not validity_equivalent:
        type_ = DecompositionType.CONSTRAINED_RELAXATION

    if type_ == DecompositionType.UNKNOWN:
        raise UnrecognizedDecomposition(
            f"Decomposition of Bundle {describe(bundle)} over Base {describe(base)} "
            "is not analysed; split it into recognized agents first"
        )

    fiber = fiber_space(type_, bundle, base)
    component = Component(type=type_, bundle=bundle, base=base, fiber=fiber)
    logger.debug("Built component %s", component)
    return component


def make_components(
    bundle_info: SpaceInformation,
    base_info: Optional[SpaceInformation] = None,
) -> List[Component]:
    """One component per logical agent of `bundle_info`."""
    bundle = bundle_info.space
    bundle_agents = agent_subspaces(bundle)

    if base_info is None:
        return [make_component(agent) for agent in bundle_agents]

    base = base_info.space
    base_agents = agent_subspaces(base)
    if len(bundle_agents) != len(base_agents):
        raise InvalidDimensionOrdering(
            f"Bundle {describe(bundle)} has {len(bundle_agents)} agents, "
            f"but Base {describe(base)} has {len(base_agents)}"
        )

    validity_equivalent = bundle_info.validity_checker == base_info.validity_checker
    return [
        make_component(bundle_agent, base_agent, validity_equivalent)
        for bundle_agent, base_agent in zip(bundle_agents, base_agents)
    ]
