# -- Generic Collider -- #

'''
Collision resolution of particles against arbitrary boundary surfaces.

A Collider owns a boundary surface (shared, never mutated) and a
motion model that supplies the boundary velocity at any point. The
resolution machinery (penetration test, positional projection,
restitution and friction) lives entirely in the Collider; motion
models only answer velocityAt, so static, rigid and scripted
boundaries all share the same resolution code.

Resolution per particle:
    1. Query closest point, normal and distance on the surface
    2. Penetrating if on the solid side or closer than the radius
    3. Project the position to closestPoint + radius * normal
    4. Split the velocity relative to the boundary into normal and
       tangential parts
    5. If approaching: reflect the normal part scaled by restitution
       and damp the tangential part with a Coulomb-like friction cap
    6. Add the boundary velocity back

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

import numpy as np

from computationalFluids.PbfSim.geometry.surfaces import DegenerateSurfaceError, Surface

logger = logging.getLogger(__name__)


######################################################################
# -- Motion Models -- #
######################################################################

class ColliderMotion(Protocol):
    '''Protocol for boundary motion models.'''

    def velocityAt(self, points: np.ndarray) -> np.ndarray:
        '''Boundary velocity at (dim,) or (N, dim) points [m/s].'''
        ...


class StaticMotion:
    '''Boundary at rest.'''

    def velocityAt(self, points: np.ndarray) -> np.ndarray:
        return np.zeros_like(np.asarray(points, dtype=float))


class RigidBodyMotion:
    '''
    Rigid body motion: v(x) = v_lin + omega x (x - origin).

    In 2D the angular velocity is a scalar rotation rate about the
    out-of-plane axis; in 3D it is a vector.

    Parameters:
    -----------
    linearVelocity : array-like
        Translational velocity [m/s]
    angularVelocity : float | array-like
        Angular velocity [rad/s]
    origin : array-like | None
        Center of rotation [m] (defaults to the coordinate origin)
    '''

    def __init__(
        self,
        linearVelocity: Sequence[float],
        angularVelocity: float | Sequence[float] = 0.0,
        origin: Sequence[float] | None = None,
    ) -> None:
        self.linearVelocity = np.asarray(linearVelocity, dtype=float).copy()
        dimensions = self.linearVelocity.shape[0]

        angular = np.asarray(angularVelocity, dtype=float)
        if dimensions == 3 and angular.ndim == 0:
            angular = np.array([0.0, 0.0, float(angular)])
        self.angularVelocity = angular.copy()

        if origin is None:
            origin = np.zeros(dimensions)
        self.origin = np.asarray(origin, dtype=float).copy()

    def velocityAt(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=float)
        r = points - self.origin

        if self.linearVelocity.shape[0] == 2:
            omega = float(self.angularVelocity)
            rotational = omega * np.stack([-r[..., 1], r[..., 0]], axis=-1)
        else:
            rotational = np.cross(self.angularVelocity, r)

        return self.linearVelocity + rotational


class ScriptedMotion:
    '''
    Time-dependent boundary velocity from a user function.

    Parameters:
    -----------
    velocityFunction : Callable[[np.ndarray, float], np.ndarray]
        velocityFunction(points, time) -> velocities with the shape of points
    '''

    def __init__(self, velocityFunction: Callable[[np.ndarray, float], np.ndarray]) -> None:
        self._velocityFunction = velocityFunction
        self.currentTime = 0.0

    def update(self, currentTime: float, timeInterval: float) -> None:
        self.currentTime = currentTime

    def velocityAt(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=float)
        velocities = np.asarray(self._velocityFunction(points, self.currentTime), dtype=float)
        return np.broadcast_to(velocities, points.shape).copy()


######################################################################
# -- Collider Query Result -- #
######################################################################

@dataclass
class ColliderQueryResult:
    '''
    Closest-point data for a batch of query points.

    Parameters:
    -----------
    distances : np.ndarray
        Unsigned distances to the surface [m], shape (N,)
    points : np.ndarray
        Closest surface points [m], shape (N, dim)
    normals : np.ndarray
        Outward unit normals, shape (N, dim)
    velocities : np.ndarray
        Boundary velocity at the closest points [m/s], shape (N, dim)
    '''

    distances: np.ndarray
    points: np.ndarray
    normals: np.ndarray
    velocities: np.ndarray


######################################################################
# -- Collider -- #
######################################################################

class Collider:
    '''
    Resolves particle penetration against a boundary surface.

    Parameters:
    -----------
    surface : Surface
        Boundary surface (shared, read-only)
    motion : ColliderMotion | None
        Boundary motion model (defaults to StaticMotion)
    frictionCoefficient : float
        Coulomb-like friction coefficient (negative values clamp to 0)
    '''

    def __init__(
        self,
        surface: Surface,
        motion: ColliderMotion | None = None,
        frictionCoefficient: float = 0.0,
    ) -> None:
        self._surface: Surface | None = None
        self._motion = motion if motion is not None else StaticMotion()
        self._frictionCoefficient = 0.0

        self._setSurface(surface)
        self.setFrictionCoefficient(frictionCoefficient)

    ######################################################################
    # -- Configuration -- #
    ######################################################################

    @property
    def surface(self) -> Surface:
        '''Boundary surface.'''
        return self._surface

    @property
    def motion(self) -> ColliderMotion:
        '''Boundary motion model.'''
        return self._motion

    @property
    def frictionCoefficient(self) -> float:
        '''Friction coefficient (>= 0).'''
        return self._frictionCoefficient

    def setFrictionCoefficient(self, newFrictionCoefficient: float) -> None:
        '''
        Set the friction coefficient.

        Negative inputs are clamped to zero.
        '''
        if newFrictionCoefficient < 0.0:
            logger.debug('Clamping friction coefficient %g to 0', newFrictionCoefficient)
        self._frictionCoefficient = max(float(newFrictionCoefficient), 0.0)

    def velocityAt(self, point: np.ndarray) -> np.ndarray:
        '''
        Boundary velocity at a point.

        Parameters:
        -----------
        point : np.ndarray
            Query point(s), shape (dim,) or (N, dim)

        Returns:
        --------
        np.ndarray : Boundary velocity with the shape of point [m/s]
        '''
        return self._motion.velocityAt(point)

    def update(self, currentTime: float, timeInterval: float) -> None:
        '''Advance time-dependent motion models to currentTime.'''
        update = getattr(self._motion, 'update', None)
        if update is not None:
            update(currentTime, timeInterval)

    ######################################################################
    # -- Collision Resolution -- #
    ######################################################################

    def resolveCollision(
        self,
        radius: float,
        restitutionCoefficient: float,
        position: np.ndarray,
        velocity: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        '''
        Resolve a single point against the boundary.

        Parameters:
        -----------
        radius : float
            Radius of the colliding point [m]
        restitutionCoefficient : float
            0 = fully inelastic, 1 = perfectly elastic
        position : np.ndarray
            Point position [m], shape (dim,)
        velocity : np.ndarray
            Point velocity [m/s], shape (dim,)

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (newPosition, newVelocity)

        Raises:
        -------
        DegenerateSurfaceError : If the surface has no closest point
        '''
        newPositions, newVelocities = self.resolveCollisionBatch(
            radius,
            restitutionCoefficient,
            np.reshape(np.asarray(position, dtype=float), (1, -1)),
            np.reshape(np.asarray(velocity, dtype=float), (1, -1)),
        )
        return (newPositions[0], newVelocities[0])

    def resolveCollisionBatch(
        self,
        radius: float,
        restitutionCoefficient: float,
        positions: np.ndarray,
        velocities: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        '''
        Resolve an array of points against the boundary.

        Inputs are not modified; new arrays are returned.

        Parameters:
        -----------
        radius : float
            Radius of every colliding point [m]
        restitutionCoefficient : float
            0 = fully inelastic, 1 = perfectly elastic
        positions : np.ndarray
            Point positions [m], shape (N, dim)
        velocities : np.ndarray
            Point velocities [m/s], shape (N, dim)

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (newPositions, newVelocities)

        Raises:
        -------
        DegenerateSurfaceError : If the surface has no closest point
        '''
        positions = np.asarray(positions, dtype=float)
        velocities = np.asarray(velocities, dtype=float)
        newPositions = positions.copy()
        newVelocities = velocities.copy()
        if len(positions) == 0:
            return (newPositions, newVelocities)

        # A point pushed off one face can still touch an adjacent face
        # (box corners), so re-resolve what remains: one pass per axis plus
        # one for points that start outside a corner
        candidates = np.arange(len(positions))
        for _ in range(positions.shape[1] + 1):
            candidatePositions = newPositions[candidates]
            result = self._getClosestPoint(self._surface, candidatePositions)
            penetrating = self._isPenetrating(result, candidatePositions, radius)
            if not np.any(penetrating):
                break

            candidates = candidates[penetrating]
            newPositions[candidates], newVelocities[candidates] = self._respondToContact(
                radius,
                restitutionCoefficient,
                result.points[penetrating],
                result.normals[penetrating],
                result.velocities[penetrating],
                newVelocities[candidates],
            )

        return (newPositions, newVelocities)

    def _respondToContact(
        self,
        radius: float,
        restitutionCoefficient: float,
        surfacePoints: np.ndarray,
        normals: np.ndarray,
        boundaryVel: np.ndarray,
        velocities: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        '''
        Project penetrating points out and apply restitution and friction.

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (newPositions, newVelocities)
        '''
        # Positional correction: sit exactly one radius off the surface
        newPositions = surfacePoints + radius * normals

        relativeVel = velocities - boundaryVel
        normalDot = np.sum(normals * relativeVel, axis=1)
        relativeVelN = normalDot[:, np.newaxis] * normals
        relativeVelT = relativeVel - relativeVelN

        # Separating contacts keep their velocity
        approaching = normalDot < 0.0

        # Normal change magnitude |dVn| = (1 + e) * |vn|
        deltaVelN = (1.0 + restitutionCoefficient) * np.abs(normalDot)
        tangentialSpeed = np.linalg.norm(relativeVelT, axis=1)
        safeSpeed = np.where(tangentialSpeed > 0.0, tangentialSpeed, 1.0)
        frictionScale = np.where(
            tangentialSpeed > 0.0,
            np.maximum(1.0 - self._frictionCoefficient * deltaVelN / safeSpeed, 0.0),
            1.0,
        )

        resolvedVel = (
            -restitutionCoefficient * relativeVelN
            + frictionScale[:, np.newaxis] * relativeVelT
            + boundaryVel
        )

        newVelocities = velocities.copy()
        newVelocities[approaching] = resolvedVel[approaching]

        return (newPositions, newVelocities)

    ######################################################################
    # -- Helpers for Motion Variants -- #
    ######################################################################

    def _setSurface(self, newSurface: Surface) -> None:
        '''Assign the boundary surface.'''
        if newSurface is None:
            raise ValueError('Collider requires a surface')
        self._surface = newSurface

    def _getClosestPoint(self, surface: Surface, queryPoints: np.ndarray) -> ColliderQueryResult:
        '''
        Query closest-point information including boundary velocity.

        Parameters:
        -----------
        surface : Surface
            Surface to query
        queryPoints : np.ndarray
            Query points, shape (N, dim)

        Returns:
        --------
        ColliderQueryResult : Distances, points, normals, velocities

        Raises:
        -------
        DegenerateSurfaceError : If any closest point is not finite
        '''
        query = surface.closestPointBatch(queryPoints)
        if not (np.all(np.isfinite(query.points)) and np.all(np.isfinite(query.normals))
                and np.all(np.isfinite(query.distances))):
            raise DegenerateSurfaceError('Surface returned a non-finite closest point')

        return ColliderQueryResult(
            distances=query.distances,
            points=query.points,
            normals=query.normals,
            velocities=self.velocityAt(query.points),
        )

    def _isPenetrating(
        self,
        colliderPoint: ColliderQueryResult,
        positions: np.ndarray,
        radius: float,
    ) -> np.ndarray:
        '''
        Penetration predicate (pure).

        A point penetrates if it is on the solid side of the surface
        or strictly closer than radius. A point exactly at radius on
        the fluid side does not penetrate.

        Returns:
        --------
        np.ndarray : Boolean mask, shape (N,)
        '''
        side = np.sum((positions - colliderPoint.points) * colliderPoint.normals, axis=1)
        return (side < 0.0) | (colliderPoint.distances < radius)
