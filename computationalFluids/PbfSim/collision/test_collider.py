# -- Collider Tests -- #

'''
Penetration handling, restitution, friction and boundary motion of
the generic collider.

Sean Bowman [10/19/2026]
'''

import numpy as np
import pytest

from computationalFluids.PbfSim.collision.collider import (
    Collider,
    RigidBodyMotion,
    ScriptedMotion,
    StaticMotion,
)
from computationalFluids.PbfSim.geometry.surfaces import (
    Box,
    DegenerateSurfaceError,
    Plane,
    Sphere,
)

radius = 0.1


def _floorCollider(frictionCoefficient: float = 0.0, motion=None) -> Collider:
    floor = Plane(normal=[0.0, 1.0], point=[0.0, 0.0])
    return Collider(floor, motion=motion, frictionCoefficient=frictionCoefficient)


def testInelasticContactKillsNormalVelocity():
    collider = _floorCollider()
    position, velocity = collider.resolveCollision(
        radius, 0.0, np.array([0.0, 0.05]), np.array([1.0, -2.0])
    )

    np.testing.assert_allclose(position, [0.0, radius])
    np.testing.assert_allclose(velocity, [1.0, 0.0])


def testElasticContactReflectsNormalVelocity():
    collider = _floorCollider()
    _, velocity = collider.resolveCollision(
        radius, 1.0, np.array([0.0, 0.05]), np.array([1.0, -2.0])
    )
    np.testing.assert_allclose(velocity, [1.0, 2.0])


def testFrictionDampsTangentialVelocity():
    moderate = _floorCollider(frictionCoefficient=0.1)
    _, velocity = moderate.resolveCollision(
        radius, 0.0, np.array([0.0, 0.05]), np.array([1.0, -2.0])
    )
    # scale = 1 - mu * (1 + e) * |vn| / |vt| = 1 - 0.1 * 2 / 1
    np.testing.assert_allclose(velocity, [0.8, 0.0])

    sticky = _floorCollider(frictionCoefficient=10.0)
    _, velocity = sticky.resolveCollision(
        radius, 0.5, np.array([0.0, 0.05]), np.array([1.0, -2.0])
    )
    np.testing.assert_allclose(velocity, [0.0, 1.0])


def testNegativeFrictionClampsToZero():
    collider = _floorCollider(frictionCoefficient=-3.0)
    assert collider.frictionCoefficient == 0.0

    collider.setFrictionCoefficient(0.4)
    assert collider.frictionCoefficient == pytest.approx(0.4)


def testSeparatingContactKeepsVelocity():
    collider = _floorCollider(frictionCoefficient=1.0)
    position, velocity = collider.resolveCollision(
        radius, 0.0, np.array([0.3, 0.02]), np.array([0.5, 2.0])
    )

    np.testing.assert_allclose(position, [0.3, radius])
    np.testing.assert_allclose(velocity, [0.5, 2.0])


def testPointExactlyAtRadiusIsUntouched():
    collider = _floorCollider()
    position, velocity = collider.resolveCollision(
        radius, 0.0, np.array([0.0, radius]), np.array([0.0, -1.0])
    )

    np.testing.assert_array_equal(position, [0.0, radius])
    np.testing.assert_array_equal(velocity, [0.0, -1.0])


def testPointOnSolidSideIsProjectedOut():
    collider = _floorCollider()
    position, _ = collider.resolveCollision(
        radius, 0.0, np.array([0.4, -0.5]), np.array([0.0, -1.0])
    )
    np.testing.assert_allclose(position, [0.4, radius])


def testResolvedPointsClearTheBoundary():
    bowl = Sphere(center=[0.0, 0.0], radius=1.0, isNormalFlipped=True)
    collider = Collider(bowl)

    rng = np.random.default_rng(5)
    positions = rng.uniform(-1.5, 1.5, size=(200, 2))
    velocities = rng.normal(size=(200, 2))
    positionsBefore = positions.copy()

    newPositions, _ = collider.resolveCollisionBatch(radius, 0.3, positions, velocities)

    np.testing.assert_array_equal(positions, positionsBefore)
    distances = bowl.closestPointBatch(newPositions).distances
    assert np.all(distances >= radius - 1e-9)
    assert not np.any(bowl.isInside(newPositions))


def testBoxContainerWallContact():
    container = Box(lowerCorner=[0.0, 0.0], upperCorner=[1.0, 1.0], isNormalFlipped=True)
    collider = Collider(container)

    positions = np.array([[0.5, 0.02], [1.2, 0.5], [0.5, 0.5]])
    velocities = np.array([[0.0, -1.0], [1.0, 0.0], [0.3, 0.3]])
    newPositions, newVelocities = collider.resolveCollisionBatch(radius, 0.0, positions, velocities)

    np.testing.assert_allclose(newPositions, [[0.5, radius], [1.0 - radius, 0.5], [0.5, 0.5]])
    np.testing.assert_allclose(newVelocities, [[0.0, 0.0], [0.0, 0.0], [0.3, 0.3]])


@pytest.mark.parametrize('dimensions', [2, 3])
def testBoxCornerClearsEveryWall(dimensions):
    container = Box(
        lowerCorner=np.zeros(dimensions), upperCorner=np.ones(dimensions), isNormalFlipped=True
    )
    collider = Collider(container)

    position, velocity = collider.resolveCollision(
        radius, 0.5, np.full(dimensions, 0.05), -np.ones(dimensions)
    )

    np.testing.assert_allclose(position, np.full(dimensions, radius))
    np.testing.assert_allclose(velocity, np.full(dimensions, 0.5))
    assert container.closestPoint(position).distance >= radius - 1e-12


def testPointOutsideBoxCornerReturnsInside():
    container = Box(lowerCorner=[0.0, 0.0], upperCorner=[1.0, 1.0], isNormalFlipped=True)
    collider = Collider(container)

    position, velocity = collider.resolveCollision(
        radius, 0.0, np.array([-0.2, -0.2]), np.array([-1.0, -1.0])
    )

    np.testing.assert_allclose(position, [radius, radius])
    np.testing.assert_allclose(velocity, [0.0, 0.0], atol=1e-12)


def testZeroRadiusPointOnSurfaceIsUntouched():
    collider = _floorCollider()
    position, velocity = collider.resolveCollision(
        0.0, 0.0, np.array([0.3, 0.0]), np.array([1.0, -1.0])
    )

    np.testing.assert_array_equal(position, [0.3, 0.0])
    np.testing.assert_array_equal(velocity, [1.0, -1.0])


def testZeroRadiusPointBelowSurfaceIsProjectedOnto():
    collider = _floorCollider()
    position, velocity = collider.resolveCollision(
        0.0, 0.0, np.array([0.3, -1e-9]), np.array([1.0, -1.0])
    )

    np.testing.assert_allclose(position, [0.3, 0.0], atol=1e-15)
    np.testing.assert_allclose(velocity, [1.0, 0.0])


def testSphereCenterQueryRaises():
    collider = Collider(Sphere(center=[0.0, 0.0], radius=1.0))
    with pytest.raises(DegenerateSurfaceError):
        collider.resolveCollision(radius, 0.0, np.zeros(2), np.zeros(2))


def testColliderRequiresSurface():
    with pytest.raises(ValueError):
        Collider(None)


def testRigidBodyVelocity():
    planar = RigidBodyMotion(linearVelocity=[1.0, 0.0], angularVelocity=2.0)
    np.testing.assert_allclose(planar.velocityAt(np.array([0.0, 1.0])), [-1.0, 0.0])

    spatial = RigidBodyMotion(linearVelocity=[0.0, 0.0, 0.0], angularVelocity=[0.0, 0.0, 1.0])
    np.testing.assert_allclose(
        spatial.velocityAt(np.array([[1.0, 0.0, 0.0], [0.0, 2.0, 0.0]])),
        [[0.0, 1.0, 0.0], [-2.0, 0.0, 0.0]],
    )

    np.testing.assert_array_equal(StaticMotion().velocityAt(np.ones((3, 2))), np.zeros((3, 2)))


def testMovingBoundaryRestitutionIsRelative():
    rising = RigidBodyMotion(linearVelocity=[0.0, 1.0])
    collider = _floorCollider(motion=rising)
    _, velocity = collider.resolveCollision(
        radius, 0.5, np.array([0.0, 0.05]), np.array([0.0, 0.0])
    )
    # Relative normal velocity -1 reflects to +0.5, then the floor velocity is added back
    np.testing.assert_allclose(velocity, [0.0, 1.5])


def testScriptedMotionFollowsTime():
    motion = ScriptedMotion(lambda points, t: np.array([t, 0.0]))
    collider = _floorCollider(motion=motion)
    collider.update(2.0, 0.1)

    np.testing.assert_allclose(collider.velocityAt(np.zeros((2, 2))), [[2.0, 0.0], [2.0, 0.0]])
