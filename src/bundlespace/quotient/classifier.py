# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
Structural classification of (Bundle, Base) space pairs.

Given a Bundle space X and a Base space B obtained from X by dropping
degrees of freedom, `classify(X, B)` decides which entry of the closed
decomposition catalog relates them. The result determines the Fiber
space F with X ≅ B × F and the projection / merge arithmetic used by
`quotient.components`.

Catalog
-------
The recognized patterns are (n, m are vector dimensions):

    (1)  R^n       over R^m       0 < m < n  -> F = R^(n-m)       RN_RM
         R^n       over R^n                  -> identity
    (2)  SE(2)     over R^2                  -> F = SO(2)         SE2_R2
    (3)  SE(3)     over R^3                  -> F = SO(3)         SE3_R3
         SE(k)     over SE(k)                -> identity

    (4)  X x R^n   over X                    -> F = R^n           XRN_X
    (5)  SE(k)xR^n over R^k                  -> F = SO(k) x R^n   SE*RN_R*
    (6)  X x R^n   over X x R^m   0 < m < n  -> F = R^(n-m)       XRN_XRM
                                      m = n  -> identity
         with X in {SE(2), SE(3), SO(2), SO(3)}

    Base of dimension 0 (any Bundle)         -> empty set
    Unanalysed composites                    -> UNKNOWN

Any shape outside the catalog raises a descriptive error instead of
silently falling back to a default; the error message always names the
offending spaces and their dimensions.

Notes
-----
`classify` is pure and deterministic: it only inspects type tags and
dimensions of the descriptors (and of their immediate children), and never
mutates them.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from bundlespace.core.errors import InvalidDimensionOrdering, UnrecognizedDecomposition
from bundlespace.core.spaces import StateSpace
from bundlespace.core.types import (
    POSE_HEAD_TYPES,
    RIGID_BODY_POSITION_DIM,
    DecompositionType,
    SpaceType,
)

# (pose head type) -> (XRN over X, XRN over XRM, XRN over R^k or None)
_POSE_PLUS_DOF_TYPES: Dict[SpaceType, Tuple[DecompositionType, DecompositionType, Optional[DecompositionType]]] = {
    SpaceType.SE2: (
        DecompositionType.SE2RN_SE2,
        DecompositionType.SE2RN_SE2RM,
        DecompositionType.SE2RN_R2,
    ),
    SpaceType.SE3: (
        DecompositionType.SE3RN_SE3,
        DecompositionType.SE3RN_SE3RM,
        DecompositionType.SE3RN_R3,
    ),
    SpaceType.SO2: (
        DecompositionType.SO2RN_SO2,
        DecompositionType.SO2RN_SO2RM,
        None,
    ),
    SpaceType.SO3: (
        DecompositionType.SO3RN_SO3,
        DecompositionType.SO3RN_SO3RM,
        None,
    ),
}

_RIGID_OVER_POSITION: Dict[SpaceType, DecompositionType] = {
    SpaceType.SE2: DecompositionType.SE2_R2,
    SpaceType.SE3: DecompositionType.SE3_R3,
}


def describe(space: StateSpace) -> str:
    """Short human readable form used in error messages, e.g. 'SE(2)xR^3 (dim 6)'."""
    return f"{space} (dim {space.dimension})"


def is_pose_plus_dof(space: StateSpace) -> bool:
    """
    True if `space` is the canonical pair (X, R^n) with X a pose or rotation.

    This is the "one rigid body plus its joint vector" pattern, treated as a
    single logical agent even though it is structurally a two-element
    compound.
    """
    if space.type != SpaceType.COMPOUND or space.subspace_count != 2:
        return False
    head, tail = space.subspaces
    return head.type in POSE_HEAD_TYPES and tail.type == SpaceType.REAL_VECTOR


def classify(bundle: StateSpace, base: Optional[StateSpace] = None) -> DecompositionType:
    """
    Classify the decomposition of `bundle` over `base`.

    Returns `DecompositionType.NO_PROJECTION` when `base` is None (root of a
    hierarchy). Raises `InvalidDimensionOrdering` when the Base is larger than
    the Bundle (or subspace counts disagree) and `UnrecognizedDecomposition`
    for any shape outside the catalog.
    """
    if base is None:
        return DecompositionType.NO_PROJECTION

    n = bundle.dimension
    m = base.dimension
    if m > n:
        raise InvalidDimensionOrdering(
            "Dimensionality must be non-decreasing from Base to Bundle: "
            f"Bundle {describe(bundle)} vs Base {describe(base)}"
        )
    if m == 0:
        return DecompositionType.EMPTY_SET

    if bundle.type in _RIGID_OVER_POSITION:
        return _classify_rigid_body(bundle, base)
    if bundle.type == SpaceType.COMPOUND:
        return _classify_compound(bundle, base)
    return _classify_atomic(bundle, base)


def _classify_atomic(bundle: StateSpace, base: StateSpace) -> DecompositionType:
    if bundle.type == SpaceType.REAL_VECTOR:
        if base.type != SpaceType.REAL_VECTOR:
            raise UnrecognizedDecomposition(
                f"Bundle is {describe(bundle)} but Base {describe(base)} is not a vector space"
            )
        n, m = bundle.dimension, base.dimension
        if n > m:
            return DecompositionType.RN_RM
        return DecompositionType.IDENTITY

    if bundle.type in (SpaceType.SO2, SpaceType.SO3) and base.type == bundle.type:
        return DecompositionType.IDENTITY

    raise UnrecognizedDecomposition(
        f"Bundle {describe(bundle)} of type '{bundle.type.value}' cannot be "
        f"projected onto Base {describe(base)} of type '{base.type.value}'"
    )


def _classify_rigid_body(bundle: StateSpace, base: StateSpace) -> DecompositionType:
    position_dim = RIGID_BODY_POSITION_DIM[bundle.type]

    if base.type == bundle.type:
        return DecompositionType.IDENTITY

    if base.type == SpaceType.REAL_VECTOR:
        if base.dimension == position_dim:
            return _RIGID_OVER_POSITION[bundle.type]
        raise UnrecognizedDecomposition(
            f"Bundle is {describe(bundle)} but Base {describe(base)} is not its "
            f"{position_dim}-dimensional position space"
        )

    raise UnrecognizedDecomposition(
        f"Bundle is {describe(bundle)} but Base type '{base.type.value}' "
        f"({describe(base)}) is not handled"
    )


def _classify_compound(bundle: StateSpace, base: StateSpace) -> DecompositionType:
    if bundle.subspace_count == 2:
        if is_pose_plus_dof(bundle):
            return _classify_pose_plus_dof(bundle, base)

        head, tail = bundle.subspaces
        both_vectors = head.type == SpaceType.REAL_VECTOR and tail.type == SpaceType.REAL_VECTOR
        if both_vectors or (head.is_compound and tail.is_compound):
            return DecompositionType.UNKNOWN
        raise UnrecognizedDecomposition(
            f"Bundle compound {describe(bundle)} with subspaces "
            f"'{head.type.value}' and '{tail.type.value}' is not recognized"
        )

    if not base.is_compound:
        raise UnrecognizedDecomposition(
            f"Bundle {describe(bundle)} is compound, but Base {describe(base)} is not"
        )
    if bundle.subspace_count != base.subspace_count:
        raise InvalidDimensionOrdering(
            f"Bundle {describe(bundle)} has {bundle.subspace_count} subspaces, "
            f"but Base {describe(base)} has {base.subspace_count}"
        )
    return DecompositionType.UNKNOWN


def _classify_pose_plus_dof(bundle: StateSpace, base: StateSpace) -> DecompositionType:
    head, tail = bundle.subspaces
    n = tail.dimension
    over_head, over_smaller, over_position = _POSE_PLUS_DOF_TYPES[head.type]

    if base.type == head.type:
        return over_head

    if base.type == SpaceType.REAL_VECTOR:
        position_dim = RIGID_BODY_POSITION_DIM.get(head.type)
        if over_position is not None and base.dimension == position_dim:
            return over_position
        raise UnrecognizedDecomposition(
            f"Bundle is {describe(bundle)} but Base {describe(base)} is not the "
            f"position space of its '{head.type.value}' part"
        )

    if is_pose_plus_dof(base):
        base_head, base_tail = base.subspaces
        if base_head.type != head.type:
            raise UnrecognizedDecomposition(
                f"Bundle {describe(bundle)} and Base {describe(base)} have different "
                f"rigid-body parts ('{head.type.value}' vs '{base_head.type.value}')"
            )
        m = base_tail.dimension
        if m > n:
            raise InvalidDimensionOrdering(
                f"We require n >= m >= 0 but have n={n}, m={m}: "
                f"Bundle {describe(bundle)} vs Base {describe(base)}"
            )
        if m == n:
            return DecompositionType.IDENTITY
        if m == 0:
            return DecompositionType.EMPTY_SET
        return over_smaller

    raise UnrecognizedDecomposition(
        f"Bundle is {describe(bundle)} but Base {describe(base)} of type "
        f"'{base.type.value}' is not handled"
    )
