from __future__ import annotations

import jax
import jax.numpy as jnp
import pytest

from bundlespace.core.errors import ProjectionUnsupported
from bundlespace.core.spaces import (
    CompoundSpace,
    RealVectorBounds,
    RealVectorSpace,
    SE2Space,
    SE3Space,
    SO2Space,
    SO3Space,
)
from bundlespace.core.types import DecompositionType
from bundlespace.quotient.components import (
    FIBER_SPACE_FNS,
    MERGE_FNS,
    PROJECT_BASE_FNS,
    PROJECT_FIBER_FNS,
)
from bundlespace.quotient.factory import make_component


def _assert_laws(component, key):
    """merge/project are exact inverses on sampled states."""
    k_x, k_b, k_f = jax.random.split(key, 3)

    x = component.bundle.sample_uniform(k_x)
    b = component.project_to_base(x)
    f = component.project_to_fiber(x)
    assert jnp.array_equal(component.merge(b, f), x)

    b2 = component.base.sample_uniform(k_b)
    f2 = component.fiber.sample_uniform(k_f)
    x2 = component.merge(b2, f2)
    assert jnp.array_equal(component.project_to_base(x2), b2)
    assert jnp.array_equal(component.project_to_fiber(x2), f2)


def test_every_type_is_registered():
    for table in (FIBER_SPACE_FNS, PROJECT_BASE_FNS, PROJECT_FIBER_FNS, MERGE_FNS):
        assert set(table) == set(DecompositionType)


def test_vector_in_vector():
    bundle = RealVectorSpace(
        RealVectorBounds(low=(0, 0, 0, -1, -2), high=(1, 1, 1, 1, 2))
    )
    c = make_component(bundle, RealVectorSpace.box(3))
    assert c.type == DecompositionType.RN_RM
    assert c.fiber == RealVectorSpace(RealVectorBounds(low=(-1, -2), high=(1, 2)))
    assert c.fiber_dimension == 2

    x = jnp.array([1.0, 2.0, 3.0, 4.0, 5.0])
    assert jnp.array_equal(c.project_to_base(x), jnp.array([1.0, 2.0, 3.0]))
    assert jnp.array_equal(c.project_to_fiber(x), jnp.array([4.0, 5.0]))
    assert jnp.array_equal(
        c.merge(jnp.array([1.0, 2.0, 3.0]), jnp.array([4.0, 5.0])), x
    )
    _assert_laws(c, jax.random.PRNGKey(0))


def test_se2_over_r2():
    c = make_component(SE2Space.box(), RealVectorSpace.box(2))
    assert c.type == DecompositionType.SE2_R2
    assert c.fiber == SO2Space()

    x = jnp.array([0.3, 0.7, 1.2])
    assert jnp.array_equal(c.project_to_base(x), jnp.array([0.3, 0.7]))
    assert jnp.array_equal(c.project_to_fiber(x), jnp.array([1.2]))
    _assert_laws(c, jax.random.PRNGKey(1))


def test_se3_over_r3():
    c = make_component(SE3Space.box(), RealVectorSpace.box(3))
    assert c.type == DecompositionType.SE3_R3
    assert c.fiber == SO3Space()
    assert c.fiber_dimension == 3
    _assert_laws(c, jax.random.PRNGKey(2))


def test_se2_with_joints_over_smaller_joint_set():
    """
    (SE(2), R^3) over (SE(2), R^1): the fiber holds the two trailing joints.
    """
    joints = RealVectorSpace(RealVectorBounds(low=(0, -1, -2), high=(1, 1, 2)))
    bundle = CompoundSpace.of(SE2Space.box(), joints)
    base = CompoundSpace.of(SE2Space.box(), RealVectorSpace.box(1))

    c = make_component(bundle, base)
    assert c.type == DecompositionType.SE2RN_SE2RM
    assert c.fiber == RealVectorSpace(RealVectorBounds(low=(-1, -2), high=(1, 2)))
    assert c.describe() == "SE(2)xR^1 | SE(2)xR^3 | R^2"

    x = jnp.array([0.1, 0.2, 0.3, 0.5, 0.6, 0.7])
    assert jnp.array_equal(c.project_to_base(x), x[:4])
    assert jnp.array_equal(c.project_to_fiber(x), jnp.array([0.6, 0.7]))
    _assert_laws(c, jax.random.PRNGKey(3))


def test_se3_with_joints_over_position():
    bundle = CompoundSpace.of(SE3Space.box(), RealVectorSpace.box(4, -1.0, 1.0))
    c = make_component(bundle, RealVectorSpace.box(3))
    assert c.type == DecompositionType.SE3RN_R3
    assert c.fiber == CompoundSpace.of(SO3Space(), RealVectorSpace.box(4, -1.0, 1.0))
    assert c.fiber_dimension == 7

    x = bundle.sample_uniform(jax.random.PRNGKey(4))
    assert jnp.array_equal(c.project_to_base(x), x[:3])
    assert jnp.array_equal(c.project_to_fiber(x), x[3:])
    _assert_laws(c, jax.random.PRNGKey(5))


@pytest.mark.parametrize(
    "head, expected",
    [
        (SE2Space.box(), DecompositionType.SE2RN_SE2),
        (SE3Space.box(), DecompositionType.SE3RN_SE3),
        (SO2Space(), DecompositionType.SO2RN_SO2),
        (SO3Space(), DecompositionType.SO3RN_SO3),
    ],
)
def test_joints_over_rigid_body(head, expected):
    joints = RealVectorSpace.box(3, -2.0, 2.0)
    c = make_component(CompoundSpace.of(head, joints), head)
    assert c.type == expected
    assert c.fiber == joints

    x = c.bundle.sample_uniform(jax.random.PRNGKey(6))
    assert jnp.array_equal(c.project_to_base(x), x[: head.state_size])
    _assert_laws(c, jax.random.PRNGKey(7))


@pytest.mark.parametrize(
    "head, expected",
    [
        (SE3Space.box(), DecompositionType.SE3RN_SE3RM),
        (SO2Space(), DecompositionType.SO2RN_SO2RM),
        (SO3Space(), DecompositionType.SO3RN_SO3RM),
    ],
)
def test_joints_over_fewer_joints(head, expected):
    bundle = CompoundSpace.of(head, RealVectorSpace.box(4))
    base = CompoundSpace.of(head, RealVectorSpace.box(1))
    c = make_component(bundle, base)
    assert c.type == expected
    assert c.fiber == RealVectorSpace.box(3)
    _assert_laws(c, jax.random.PRNGKey(8))


def test_identity_has_no_fiber():
    c = make_component(SE2Space.box(), SE2Space.box())
    assert c.type == DecompositionType.IDENTITY
    assert c.fiber is None
    assert c.describe() == "SE(2) | SE(2)"

    x = jnp.array([0.1, 0.2, 0.3])
    assert jnp.array_equal(c.project_to_base(x), x)
    with pytest.raises(ProjectionUnsupported):
        c.project_to_fiber(x)
    with pytest.raises(ProjectionUnsupported):
        c.merge(x, jnp.zeros(0))


def test_relaxation_behaves_like_identity():
    c = make_component(RealVectorSpace.box(3), RealVectorSpace.box(3), validity_equivalent=False)
    assert c.type == DecompositionType.CONSTRAINED_RELAXATION
    assert c.is_relaxation
    x = jnp.array([0.1, 0.2, 0.3])
    assert jnp.array_equal(c.project_to_base(x), x)
    with pytest.raises(ProjectionUnsupported):
        c.merge(x, jnp.zeros(0))


def test_empty_set_and_root_components():
    empty = make_component(RealVectorSpace.box(3), RealVectorSpace.box(0))
    assert empty.type == DecompositionType.EMPTY_SET
    assert empty.fiber is None
    assert empty.project_to_base(jnp.zeros(3)).shape == (0,)
    with pytest.raises(ProjectionUnsupported):
        empty.project_to_fiber(jnp.zeros(3))

    root = make_component(RealVectorSpace.box(3))
    assert root.type == DecompositionType.NO_PROJECTION
    assert root.describe() == "R^3"
    with pytest.raises(ProjectionUnsupported):
        root.project_to_base(jnp.zeros(3))


def test_wrong_state_length_is_rejected():
    c = make_component(RealVectorSpace.box(5), RealVectorSpace.box(3))
    with pytest.raises(ValueError):
        c.project_to_base(jnp.zeros(4))
    with pytest.raises(ValueError):
        c.merge(jnp.zeros(3), jnp.zeros(3))


def test_se2_with_joints_over_position():
    bundle = CompoundSpace.of(SE2Space.box(), RealVectorSpace.box(2, -1.0, 1.0))
    c = make_component(bundle, RealVectorSpace.box(2))
    assert c.type == DecompositionType.SE2RN_R2
    assert c.fiber == CompoundSpace.of(SO2Space(), RealVectorSpace.box(2, -1.0, 1.0))
    assert c.fiber_dimension == 3

    x = jnp.array([0.1, 0.2, 0.3, 0.4, 0.5])
    assert jnp.array_equal(c.project_to_base(x), jnp.array([0.1, 0.2]))
    assert jnp.array_equal(c.project_to_fiber(x), jnp.array([0.3, 0.4, 0.5]))
    _assert_laws(c, jax.random.PRNGKey(9))


def test_se2_merge_places_yaw_after_position():
    c = make_component(SE2Space.box(), RealVectorSpace.box(2))
    theta = 0.5
    pose = c.merge(jnp.array([1.0, 2.0]), jnp.array([theta]))
    assert jnp.array_equal(pose, jnp.array([1.0, 2.0, theta]))
    assert jnp.array_equal(c.project_to_fiber(pose), jnp.array([theta]))


def test_zero_joint_base_projects_to_pose():
    bundle = CompoundSpace.of(SE2Space.box(), RealVectorSpace.box(3))
    base = CompoundSpace.of(SE2Space.box(), RealVectorSpace.box(0))
    c = make_component(bundle, base)
    assert c.type == DecompositionType.EMPTY_SET
    assert c.fiber is None

    x = jnp.array([0.3, 0.7, 1.2, 0.1, 0.2, 0.3])
    assert jnp.array_equal(c.project_to_base(x), jnp.array([0.3, 0.7, 1.2]))
    with pytest.raises(ProjectionUnsupported):
        c.merge(x[:3], jnp.zeros(0))
