from __future__ import annotations

import jax
import jax.numpy as jnp
import pytest

from bundlespace.core.errors import InvalidDimensionOrdering
from bundlespace.core.spaces import CompoundSpace, RealVectorSpace, SE2Space
from bundlespace.core.types import DecompositionType
from bundlespace.core.validity import SpaceInformation
from bundlespace.multilevel.sequence import BundleSpaceSequence, SequenceConfig


def _infos(*spaces):
    return [SpaceInformation(s) for s in spaces]


def test_build_chain_assigns_ids_in_order():
    seq = BundleSpaceSequence.from_space_infos(
        _infos(RealVectorSpace.box(2), RealVectorSpace.box(4), RealVectorSpace.box(6))
    )
    assert len(seq) == 3
    assert [node.id for node in seq] == [0, 1, 2]
    assert [node.level for node in seq] == [0, 1, 2]
    assert seq.next_id == 3
    assert seq.coarsest is seq[0]
    assert seq.finest is seq[2]
    assert seq.parent(1) is seq[0]
    assert seq.child(1) is seq[2]
    assert seq.parent(0) is None
    assert seq.child(2) is None


def test_arm_hierarchy():
    """
    R^2 <- SE(2) <- SE(2)xR^2 <- SE(2)xR^4, a mobile base with a growing arm.
    """
    seq = BundleSpaceSequence.from_space_infos(
        _infos(
            RealVectorSpace.box(2),
            SE2Space.box(),
            CompoundSpace.of(SE2Space.box(), RealVectorSpace.box(2)),
            CompoundSpace.of(SE2Space.box(), RealVectorSpace.box(4)),
        )
    )
    types = [node.components[0].type for node in seq]
    assert types == [
        DecompositionType.NO_PROJECTION,
        DecompositionType.SE2_R2,
        DecompositionType.SE2RN_SE2,
        DecompositionType.SE2RN_SE2RM,
    ]

    x, valid = seq.sample(jax.random.PRNGKey(0))
    assert x.shape == (7,)
    assert valid
    assert seq.finest.bundle.satisfies_bounds(x)
    # One sample at the finest level reaches every level once.
    assert seq.importances() == pytest.approx([0.5, 0.5, 0.5, 0.5])


def test_invalid_level_raises_by_default():
    with pytest.raises(InvalidDimensionOrdering):
        BundleSpaceSequence.from_space_infos(
            _infos(RealVectorSpace.box(5), RealVectorSpace.box(3))
        )


def test_invalid_level_can_be_skipped():
    config = SequenceConfig(skip_invalid_levels=True)
    seq = BundleSpaceSequence.from_space_infos(
        _infos(
            RealVectorSpace.box(2),
            RealVectorSpace.box(5),
            RealVectorSpace.box(3),
            RealVectorSpace.box(6),
        ),
        config,
    )
    assert seq.skipped == [2]
    assert len(seq) == 3
    assert [node.bundle_dimension for node in seq] == [2, 5, 6]
    assert [node.id for node in seq] == [0, 1, 2]
    assert seq.finest.parent is seq[1]
    assert seq[1].child is seq.finest


def test_default_key_comes_from_seed():
    infos = _infos(RealVectorSpace.box(2), RealVectorSpace.box(3))
    a = BundleSpaceSequence.from_space_infos(infos, SequenceConfig(seed=42))
    b = BundleSpaceSequence.from_space_infos(infos, SequenceConfig(seed=42))

    xa, _ = a.sample()
    xb, _ = b.sample()
    assert jnp.array_equal(xa, xb)

    # The internal key advances between calls.
    xa2, _ = a.sample()
    assert not jnp.array_equal(xa, xa2)


def test_empty_sequence():
    seq = BundleSpaceSequence()
    assert len(seq) == 0
    assert seq.next_id == 0
    with pytest.raises(IndexError):
        seq.finest
