# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
Core tags and identifiers for BundleSpace.

This module defines the small, immutable vocabulary shared by every layer of
the bundle-space hierarchy. These types carry no geometry themselves: they
only label *what kind* of space or decomposition an object represents, while
the numerical work happens on flat `jax.numpy` state vectors in
`core.spaces` and `quotient.components`.

Types
-----
NodeId
    Identifier of a bundle-space node inside a sequence. Identifiers are
    handed out explicitly by `multilevel.sequence.BundleSpaceSequence`; there
    is no process-wide counter.

SpaceType
    Structural tag of a configuration space:
    - REAL_VECTOR: bounded R^n
    - SO2 / SO3: pure rotations
    - SE2 / SE3: rigid-body poses (position + rotation)
    - COMPOUND: ordered product of subspaces
    - OTHER: anything the classifier does not understand

DecompositionType
    Closed catalog of recognized (Bundle, Base) patterns. Every member
    belongs to exactly one `DecompositionFamily`, which is the coarse
    grouping used when talking about the catalog:

        RN_RM                          -> vector-in-vector
        SE2_R2                         -> rigid-2d-over-position
        SE3_R3                         -> rigid-3d-over-position
        SE2RN_SE2, SE3RN_SE3,
        SO2RN_SO2, SO3RN_SO3           -> extra-dof-over-rigid-body
        SE2RN_R2, SE3RN_R3             -> extra-dof-over-position
        SE2RN_SE2RM, SE3RN_SE3RM,
        SO2RN_SO2RM, SO3RN_SO3RM       -> extra-dof-over-smaller-extra-dof
        IDENTITY                       -> identity
        EMPTY_SET                      -> empty-fiber
        CONSTRAINED_RELAXATION         -> constrained-relaxation
        UNKNOWN                        -> unrecognized
        NO_PROJECTION                  -> no projection (root level)
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, NewType

NodeId = NewType("NodeId", int)


class SpaceType(str, Enum):
    """Structural type tag of a space descriptor."""
    REAL_VECTOR = "real_vector"
    SE2 = "se2"
    SE3 = "se3"
    SO2 = "so2"
    SO3 = "so3"
    COMPOUND = "compound"
    OTHER = "other"


#: Rigid-body types and the dimension of their position part.
RIGID_BODY_POSITION_DIM: Dict[SpaceType, int] = {
    SpaceType.SE2: 2,
    SpaceType.SE3: 3,
}

#: Types that may head a canonical "pose plus extra DOF" pair (X, R^n).
POSE_HEAD_TYPES = frozenset(
    {SpaceType.SE2, SpaceType.SE3, SpaceType.SO2, SpaceType.SO3}
)


class DecompositionFamily(str, Enum):
    NO_PROJECTION = "no-projection"
    VECTOR_IN_VECTOR = "vector-in-vector"
    RIGID_2D_OVER_POSITION = "rigid-2d-over-position"
    RIGID_3D_OVER_POSITION = "rigid-3d-over-position"
    EXTRA_DOF_OVER_RIGID_BODY = "rigid-body-with-extra-dof-over-rigid-body"
    EXTRA_DOF_OVER_POSITION = "rigid-body-with-extra-dof-over-position"
    EXTRA_DOF_OVER_SMALLER_EXTRA_DOF = "rigid-body-with-extra-dof-over-smaller-extra-dof"
    IDENTITY = "identity"
    EMPTY_FIBER = "empty-fiber"
    CONSTRAINED_RELAXATION = "constrained-relaxation"
    UNRECOGNIZED = "unrecognized"


class DecompositionType(str, Enum):
    """Tag of a (Bundle, Base) decomposition pattern."""
    NO_PROJECTION = "none"
    EMPTY_SET = "empty_set"
    IDENTITY = "identity"
    CONSTRAINED_RELAXATION = "constrained_relaxation"

    RN_RM = "rn_rm"

    SE2_R2 = "se2_r2"
    SE2RN_R2 = "se2rn_r2"
    SE2RN_SE2 = "se2rn_se2"
    SE2RN_SE2RM = "se2rn_se2rm"

    SO2RN_SO2 = "so2rn_so2"
    SO2RN_SO2RM = "so2rn_so2rm"

    SE3_R3 = "se3_r3"
    SE3RN_R3 = "se3rn_r3"
    SE3RN_SE3 = "se3rn_se3"
    SE3RN_SE3RM = "se3rn_se3rm"

    SO3RN_SO3 = "so3rn_so3"
    SO3RN_SO3RM = "so3rn_so3rm"

    UNKNOWN = "unknown"

    @property
    def family(self) -> DecompositionFamily:
        return TYPE_TO_FAMILY[self]

    @property
    def has_fiber(self) -> bool:
        """False for the types whose fiber is empty (nothing to project onto)."""
        return self not in FIBERLESS_TYPES


TYPE_TO_FAMILY: Dict[DecompositionType, DecompositionFamily] = {
    DecompositionType.NO_PROJECTION: DecompositionFamily.NO_PROJECTION,
    DecompositionType.EMPTY_SET: DecompositionFamily.EMPTY_FIBER,
    DecompositionType.IDENTITY: DecompositionFamily.IDENTITY,
    DecompositionType.CONSTRAINED_RELAXATION: DecompositionFamily.CONSTRAINED_RELAXATION,
    DecompositionType.RN_RM: DecompositionFamily.VECTOR_IN_VECTOR,
    DecompositionType.SE2_R2: DecompositionFamily.RIGID_2D_OVER_POSITION,
    DecompositionType.SE3_R3: DecompositionFamily.RIGID_3D_OVER_POSITION,
    DecompositionType.SE2RN_SE2: DecompositionFamily.EXTRA_DOF_OVER_RIGID_BODY,
    DecompositionType.SE3RN_SE3: DecompositionFamily.EXTRA_DOF_OVER_RIGID_BODY,
    DecompositionType.SO2RN_SO2: DecompositionFamily.EXTRA_DOF_OVER_RIGID_BODY,
    DecompositionType.SO3RN_SO3: DecompositionFamily.EXTRA_DOF_OVER_RIGID_BODY,
    DecompositionType.SE2RN_R2: DecompositionFamily.EXTRA_DOF_OVER_POSITION,
    DecompositionType.SE3RN_R3: DecompositionFamily.EXTRA_DOF_OVER_POSITION,
    DecompositionType.SE2RN_SE2RM: DecompositionFamily.EXTRA_DOF_OVER_SMALLER_EXTRA_DOF,
    DecompositionType.SE3RN_SE3RM: DecompositionFamily.EXTRA_DOF_OVER_SMALLER_EXTRA_DOF,
    DecompositionType.SO2RN_SO2RM: DecompositionFamily.EXTRA_DOF_OVER_SMALLER_EXTRA_DOF,
    DecompositionType.SO3RN_SO3RM: DecompositionFamily.EXTRA_DOF_OVER_SMALLER_EXTRA_DOF,
    DecompositionType.UNKNOWN: DecompositionFamily.UNRECOGNIZED,
}

FIBERLESS_TYPES = frozenset(
    {
        DecompositionType.NO_PROJECTION,
        DecompositionType.EMPTY_SET,
        DecompositionType.IDENTITY,
        DecompositionType.CONSTRAINED_RELAXATION,
        DecompositionType.UNKNOWN,
    }
)
