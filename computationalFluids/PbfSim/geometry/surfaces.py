# -- Boundary Surfaces -- #

'''
Analytic boundary surfaces answering closest-point queries.

Every surface maps a query point to the closest point on the
surface, the outward surface normal there, and the unsigned
distance. Queries are deterministic and side-effect-free, and each
surface offers a vectorized batch form so colliders can resolve all
particles of a step in one call.

Normals point away from the solid. Setting isNormalFlipped turns a
closed shape into a container (the fluid lives inside).

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np


class DegenerateSurfaceError(ValueError):
    '''Raised when a surface cannot determine a closest point.'''


######################################################################
# -- Query Results -- #
######################################################################

@dataclass
class SurfaceQuery:
    '''
    Closest-point query result for a single point.

    Parameters:
    -----------
    point : np.ndarray
        Closest point on the surface [m], shape (dim,)
    normal : np.ndarray
        Unit surface normal at the closest point, shape (dim,)
    distance : float
        Unsigned distance from the query to the closest point [m]
    '''

    point: np.ndarray
    normal: np.ndarray
    distance: float


@dataclass
class SurfaceQueryBatch:
    '''
    Closest-point query results for an array of points.

    Parameters:
    -----------
    points : np.ndarray
        Closest points, shape (N, dim)
    normals : np.ndarray
        Unit normals, shape (N, dim)
    distances : np.ndarray
        Unsigned distances, shape (N,)
    '''

    points: np.ndarray
    normals: np.ndarray
    distances: np.ndarray

    def __len__(self) -> int:
        return len(self.distances)

    def at(self, index: int) -> SurfaceQuery:
        '''Extract the result for one query point.'''
        return SurfaceQuery(
            point=self.points[index].copy(),
            normal=self.normals[index].copy(),
            distance=float(self.distances[index]),
        )


######################################################################
# -- Surface Protocol -- #
######################################################################

class Surface(Protocol):
    '''Protocol for boundary surfaces.'''

    @property
    def dimensions(self) -> int:
        '''Number of spatial dimensions (2 or 3).'''
        ...

    def closestPoint(self, query: np.ndarray) -> SurfaceQuery:
        '''Closest point, normal and distance for a single query.'''
        ...

    def closestPointBatch(self, queries: np.ndarray) -> SurfaceQueryBatch:
        '''Closest points, normals and distances for (N, dim) queries.'''
        ...

    def isInside(self, query: np.ndarray) -> bool | np.ndarray:
        '''True where the query lies on the solid side of the surface.'''
        ...


class _SurfaceBase(ABC):
    '''Abstract base: shared single-point and batch plumbing for surfaces.'''

    _dimensions: int

    @property
    def dimensions(self) -> int:
        '''Number of spatial dimensions.'''
        return self._dimensions

    def closestPoint(self, query: np.ndarray) -> SurfaceQuery:
        '''
        Closest point, normal and distance for a single query point.

        Parameters:
        -----------
        query : np.ndarray
            Query point [m], shape (dim,)

        Returns:
        --------
        SurfaceQuery : Closest-point result
        '''
        return self.closestPointBatch(np.reshape(query, (1, -1))).at(0)

    def closestPointBatch(self, queries: np.ndarray) -> SurfaceQueryBatch:
        queries = self._asQueries(queries)
        return self._closestPointBatch(queries)

    def isInside(self, query: np.ndarray) -> bool | np.ndarray:
        query = np.asarray(query, dtype=float)
        if query.ndim == 1:
            return bool(self._isInsideBatch(self._asQueries(query))[0])
        return self._isInsideBatch(self._asQueries(query))

    @abstractmethod
    def _closestPointBatch(self, queries: np.ndarray) -> SurfaceQueryBatch:
        '''Closest points, normals and distances for validated (N, dim) queries.'''

    def _isInsideBatch(self, queries: np.ndarray) -> np.ndarray:
        # Solid side is opposite to the outward normal
        result = self._closestPointBatch(queries)
        return np.sum((queries - result.points) * result.normals, axis=1) < 0.0

    def _asQueries(self, queries: np.ndarray) -> np.ndarray:
        queries = np.atleast_2d(np.asarray(queries, dtype=float))
        if queries.shape[1] != self._dimensions:
            raise ValueError(
                f'Expected {self._dimensions}D query points, got shape {queries.shape}'
            )
        return queries


def _asVector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    vector = np.asarray(values, dtype=float).copy()
    if vector.ndim != 1 or vector.shape[0] not in (2, 3):
        raise ValueError(f'Expected a 2D or 3D vector, got shape {vector.shape}')
    return vector


######################################################################
# -- Plane -- #
######################################################################

class Plane(_SurfaceBase):
    '''
    Infinite plane (a line in 2D).

    The solid occupies the half-space opposite to the normal.

    Parameters:
    -----------
    normal : array-like
        Outward plane normal (normalized on construction)
    point : array-like
        Any point on the plane [m]
    '''

    def __init__(self, normal: Sequence[float], point: Sequence[float]) -> None:
        normal = _asVector(normal)
        point = _asVector(point)
        if normal.shape != point.shape:
            raise ValueError('Plane normal and point must have the same dimension')

        length = np.linalg.norm(normal)
        if length < 1e-12:
            raise ValueError('Plane normal must be non-zero')

        self._normal = normal / length
        self._point = point
        self._dimensions = normal.shape[0]

    @property
    def normal(self) -> np.ndarray:
        '''Unit plane normal.'''
        return self._normal.copy()

    @property
    def point(self) -> np.ndarray:
        '''Reference point on the plane [m].'''
        return self._point.copy()

    def _closestPointBatch(self, queries: np.ndarray) -> SurfaceQueryBatch:
        signedDistances = (queries - self._point) @ self._normal
        points = queries - signedDistances[:, np.newaxis] * self._normal
        normals = np.broadcast_to(self._normal, queries.shape).copy()
        return SurfaceQueryBatch(points, normals, np.abs(signedDistances))


######################################################################
# -- Sphere -- #
######################################################################

class Sphere(_SurfaceBase):
    '''
    Sphere (a circle in 2D).

    Parameters:
    -----------
    center : array-like
        Sphere center [m]
    radius : float
        Sphere radius [m]
    isNormalFlipped : bool
        If True, normals point toward the center (container)
    '''

    def __init__(
        self,
        center: Sequence[float],
        radius: float,
        isNormalFlipped: bool = False,
    ) -> None:
        if radius <= 0.0:
            raise ValueError(f'Sphere radius must be positive, got {radius}')
        self._center = _asVector(center)
        self._radius = float(radius)
        self._isNormalFlipped = isNormalFlipped
        self._dimensions = self._center.shape[0]

    @property
    def center(self) -> np.ndarray:
        '''Sphere center [m].'''
        return self._center.copy()

    @property
    def radius(self) -> float:
        '''Sphere radius [m].'''
        return self._radius

    def _closestPointBatch(self, queries: np.ndarray) -> SurfaceQueryBatch:
        offsets = queries - self._center
        lengths = np.linalg.norm(offsets, axis=1)
        if np.any(lengths < 1e-12):
            raise DegenerateSurfaceError(
                'Closest point on a sphere is undefined at its center'
            )

        directions = offsets / lengths[:, np.newaxis]
        points = self._center + self._radius * directions
        normals = -directions if self._isNormalFlipped else directions
        return SurfaceQueryBatch(points, normals, np.abs(lengths - self._radius))


######################################################################
# -- Axis-Aligned Box -- #
######################################################################

class Box(_SurfaceBase):
    '''
    Axis-aligned box (a rectangle in 2D).

    Outside queries project onto the box by clamping; inside queries
    snap to the nearest face. With isNormalFlipped the box acts as a
    closed container.

    Parameters:
    -----------
    lowerCorner : array-like
        Minimum corner [m]
    upperCorner : array-like
        Maximum corner [m]
    isNormalFlipped : bool
        If True, normals point into the box (container)
    '''

    def __init__(
        self,
        lowerCorner: Sequence[float],
        upperCorner: Sequence[float],
        isNormalFlipped: bool = False,
    ) -> None:
        lowerCorner = _asVector(lowerCorner)
        upperCorner = _asVector(upperCorner)
        if lowerCorner.shape != upperCorner.shape:
            raise ValueError('Box corners must have the same dimension')
        if np.any(upperCorner <= lowerCorner):
            raise ValueError('Box upper corner must exceed the lower corner on every axis')

        self._lower = lowerCorner
        self._upper = upperCorner
        self._isNormalFlipped = isNormalFlipped
        self._dimensions = lowerCorner.shape[0]

    @property
    def lowerCorner(self) -> np.ndarray:
        '''Minimum corner [m].'''
        return self._lower.copy()

    @property
    def upperCorner(self) -> np.ndarray:
        '''Maximum corner [m].'''
        return self._upper.copy()

    def _closestPointBatch(self, queries: np.ndarray) -> SurfaceQueryBatch:
        nQueries, dim = queries.shape
        points = np.clip(queries, self._lower, self._upper)
        normals = np.zeros_like(queries)
        distances = np.zeros(nQueries)

        # --- Outside: clamped point, normal along the offset --- #
        offsets = queries - points
        offsetLengths = np.linalg.norm(offsets, axis=1)
        outside = offsetLengths > 0.0
        if np.any(outside):
            normals[outside] = offsets[outside] / offsetLengths[outside, np.newaxis]
            distances[outside] = offsetLengths[outside]

        # --- Inside (or on the surface): nearest face --- #
        inside = ~outside
        if np.any(inside):
            q = queries[inside]
            faceDistances = np.hstack([q - self._lower, self._upper - q])  # (n, 2*dim)
            face = np.argmin(faceDistances, axis=1)
            axis = face % dim
            isUpper = face >= dim
            rows = np.arange(len(q))

            facePoints = q.copy()
            facePoints[rows, axis] = np.where(isUpper, self._upper[axis], self._lower[axis])
            faceNormals = np.zeros_like(q)
            faceNormals[rows, axis] = np.where(isUpper, 1.0, -1.0)

            points[inside] = facePoints
            normals[inside] = faceNormals
            distances[inside] = faceDistances[rows, face]

        if self._isNormalFlipped:
            normals = -normals

        return SurfaceQueryBatch(points, normals, distances)

    def _isInsideBatch(self, queries: np.ndarray) -> np.ndarray:
        withinBox = np.all((queries >= self._lower) & (queries <= self._upper), axis=1)
        return ~withinBox if self._isNormalFlipped else withinBox


######################################################################
# -- Surface Set -- #
######################################################################

class SurfaceSet(_SurfaceBase):
    '''
    Union of surfaces; each query reports the closest child result.

    Parameters:
    -----------
    surfaces : Sequence[Surface]
        Child surfaces, all of the same dimension
    '''

    def __init__(self, surfaces: Sequence[Surface]) -> None:
        surfaces = list(surfaces)
        if not surfaces:
            raise ValueError('SurfaceSet needs at least one surface')

        dims = {s.dimensions for s in surfaces}
        if len(dims) != 1:
            raise ValueError(f'Mixed surface dimensions: {sorted(dims)}')

        self._surfaces = surfaces
        self._dimensions = dims.pop()

    @property
    def surfaces(self) -> list[Surface]:
        '''Child surfaces.'''
        return list(self._surfaces)

    def _closestPointBatch(self, queries: np.ndarray) -> SurfaceQueryBatch:
        results = [s.closestPointBatch(queries) for s in self._surfaces]
        allDistances = np.stack([r.distances for r in results])  # (nSurfaces, N)
        nearest = np.argmin(allDistances, axis=0)
        rows = np.arange(len(queries))

        points = np.stack([r.points for r in results])[nearest, rows]
        normals = np.stack([r.normals for r in results])[nearest, rows]
        return SurfaceQueryBatch(points, normals, allDistances[nearest, rows])

    def _isInsideBatch(self, queries: np.ndarray) -> np.ndarray:
        inside = np.zeros(len(queries), dtype=bool)
        for surface in self._surfaces:
            inside |= np.asarray(surface.isInside(queries), dtype=bool)
        return inside
