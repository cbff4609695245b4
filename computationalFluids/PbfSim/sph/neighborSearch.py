# -- Neighbor Search for PBF -- #

'''
Neighbor pair search for SPH-backed particle systems.

Two interchangeable backends produce the same unique pair set
(i < j) for a given radius:
- SpatialHashGrid: cell-linked list with a half-stencil traversal,
  vectorized distance checks per cell pair
- KdTreeSearch: scipy cKDTree pair query

Pairs are the shared currency of every PBF pass: densities,
constraint gradients, position corrections, viscosity and vorticity
all scatter-accumulate over the same (iIdx, jIdx) arrays.

References:
-----------
Ihmsen et al. (2011) -- Parallel Neighbor-Search for SPH
Green (2010) -- Particle Simulation using CUDA

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from typing import Protocol

import numpy as np
from scipy.spatial import cKDTree


def _emptyPairs() -> tuple[np.ndarray, np.ndarray]:
    return (np.array([], dtype=np.int64), np.array([], dtype=np.int64))


#--------------------------------------------------------------------#
# -- Neighbor Search Protocol -- #
#--------------------------------------------------------------------#

class NeighborSearch(Protocol):
    '''Protocol for neighbor search algorithms.'''

    def build(self, positions: np.ndarray) -> None:
        '''Build spatial data structure from particle positions.'''
        ...

    def queryPairs(self, radius: float) -> tuple[np.ndarray, np.ndarray]:
        '''
        Find all particle pairs with |x_i - x_j| <= radius (inclusive, as
        scipy cKDTree.query_pairs).

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] :
            (i_indices, j_indices) where particle i and j are neighbors.
            Each pair appears once with i < j.
        '''
        ...


#--------------------------------------------------------------------#
# -- Spatial Hash Grid -- #
#--------------------------------------------------------------------#

class SpatialHashGrid:
    '''
    Uniform grid spatial hashing for 2D/3D neighbor search.

    Cell size equals the kernel radius. Particles are binned into
    cells using integer coordinates. For neighbor queries, only the
    9 (2D) or 27 (3D) adjacent cells are searched, and of those only
    the lexicographically positive half so each pair is found once.

    Parameters:
    -----------
    cellSize : float
        Grid cell size [m], should be at least the query radius
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    def __init__(self, cellSize: float, dimensions: int = 2) -> None:
        if cellSize <= 0.0:
            raise ValueError(f'Cell size must be positive, got {cellSize}')
        self._cellSize = cellSize
        self._dimensions = dimensions
        self._positions: np.ndarray | None = None
        self._cells: dict[tuple, np.ndarray] = {}

        self._halfStencil = self._computeHalfStencil()

    @property
    def cellSize(self) -> float:
        '''Grid cell size [m].'''
        return self._cellSize

    def build(self, positions: np.ndarray) -> None:
        '''
        Build the spatial hash grid from particle positions.

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions, shape (N, dim)
        '''
        self._positions = positions
        self._cells.clear()

        cellIndices = np.floor(positions / self._cellSize).astype(np.int64)

        cellDict: dict[tuple, list[int]] = {}
        for i in range(len(positions)):
            cellDict.setdefault(tuple(cellIndices[i]), []).append(i)

        self._cells = {k: np.array(v, dtype=np.int64) for k, v in cellDict.items()}

    def queryPairs(self, radius: float) -> tuple[np.ndarray, np.ndarray]:
        '''
        Find all unique particle pairs (i, j) within the given radius.

        Parameters:
        -----------
        radius : float
            Search radius [m], must not exceed the cell size

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] :
            (iIndices, jIndices) arrays of neighbor pair indices, i < j
        '''
        if radius > self._cellSize:
            raise ValueError(
                f'Query radius {radius} exceeds grid cell size {self._cellSize}'
            )
        if self._positions is None:
            return _emptyPairs()

        radiusSq = radius * radius
        positions = self._positions
        iChunks: list[np.ndarray] = []
        jChunks: list[np.ndarray] = []

        for cellKey, cellParticles in self._cells.items():
            cellPos = positions[cellParticles]

            # --- Pairs within the same cell (upper triangle) --- #
            nCell = len(cellParticles)
            if nCell > 1:
                diff = cellPos[:, np.newaxis, :] - cellPos[np.newaxis, :, :]
                distSq = np.sum(diff * diff, axis=2)

                rowIdx, colIdx = np.triu_indices(nCell, k=1)
                withinRadius = distSq[rowIdx, colIdx] <= radiusSq
                if np.any(withinRadius):
                    iChunks.append(cellParticles[rowIdx[withinRadius]])
                    jChunks.append(cellParticles[colIdx[withinRadius]])

            # --- Cross-pairs with neighbor cells (half-stencil only) --- #
            for offset in self._halfStencil:
                neighborKey = tuple(cellKey[d] + offset[d] for d in range(self._dimensions))
                neighborParticles = self._cells.get(neighborKey)
                if neighborParticles is None:
                    continue

                neighborPos = positions[neighborParticles]
                diff = cellPos[:, np.newaxis, :] - neighborPos[np.newaxis, :, :]
                distSq = np.sum(diff * diff, axis=2)

                localI, localJ = np.where(distSq <= radiusSq)
                if len(localI) > 0:
                    iChunks.append(cellParticles[localI])
                    jChunks.append(neighborParticles[localJ])

        if not iChunks:
            return _emptyPairs()

        iAll = np.concatenate(iChunks)
        jAll = np.concatenate(jChunks)

        # Canonical ordering i < j
        return (np.minimum(iAll, jAll), np.maximum(iAll, jAll))

    def _computeHalfStencil(self) -> list[tuple[int, ...]]:
        '''
        Compute the half-stencil: neighbor offsets that avoid double-counting.

        Only offsets that come after (0, 0, ...) in lexicographic order
        are kept, which is exactly half of the non-self neighbors.

        Returns:
        --------
        list[tuple[int, ...]] : Half-stencil offsets
        '''
        if self._dimensions == 2:
            return [
                (1, -1), (1, 0), (1, 1),
                (0, 1),
            ]
        else:
            offsets = []
            for dx in range(-1, 2):
                for dy in range(-1, 2):
                    for dz in range(-1, 2):
                        if (dx, dy, dz) > (0, 0, 0):
                            offsets.append((dx, dy, dz))
            return offsets


#--------------------------------------------------------------------#
# -- KD-Tree Search -- #
#--------------------------------------------------------------------#

class KdTreeSearch:
    '''
    Neighbor search backed by scipy's cKDTree.

    Does not need a cell size and handles strongly non-uniform
    particle distributions better than the hash grid.

    Parameters:
    -----------
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    def __init__(self, dimensions: int = 2) -> None:
        self._dimensions = dimensions
        self._tree: cKDTree | None = None

    def build(self, positions: np.ndarray) -> None:
        '''Build the tree from particle positions, shape (N, dim).'''
        self._tree = cKDTree(positions) if len(positions) > 0 else None

    def queryPairs(self, radius: float) -> tuple[np.ndarray, np.ndarray]:
        '''Find all unique particle pairs (i, j), i < j, within radius.'''
        if self._tree is None:
            return _emptyPairs()

        pairs = self._tree.query_pairs(radius, output_type='ndarray')
        if len(pairs) == 0:
            return _emptyPairs()

        pairs = pairs.astype(np.int64)
        return (pairs[:, 0], pairs[:, 1])


#--------------------------------------------------------------------#
# -- Helpers -- #
#--------------------------------------------------------------------#

def pairsToNeighborLists(
    iIdx: np.ndarray, jIdx: np.ndarray, nParticles: int
) -> list[np.ndarray]:
    '''
    Expand unique pairs into per-particle neighbor index arrays.

    Parameters:
    -----------
    iIdx, jIdx : np.ndarray
        Unique neighbor pairs (each pair listed once)
    nParticles : int
        Number of particles

    Returns:
    --------
    list[np.ndarray] : Sorted neighbor indices for each particle
    '''
    if nParticles == 0:
        return []

    owners = np.concatenate([iIdx, jIdx])
    others = np.concatenate([jIdx, iIdx])
    order = np.lexsort((others, owners))
    owners = owners[order]
    others = others[order]

    splits = np.searchsorted(owners, np.arange(1, nParticles))
    return np.split(others, splits)


def createNeighborSearch(
    searchType: str, cellSize: float, dimensions: int = 2
) -> NeighborSearch:
    '''
    Create a neighbor search backend by name.

    Parameters:
    -----------
    searchType : str
        'hashGrid' or 'kdTree'
    cellSize : float
        Hash grid cell size [m] (ignored by the kd-tree)
    dimensions : int
        Number of spatial dimensions (2 or 3)

    Returns:
    --------
    NeighborSearch : Search backend

    Raises:
    -------
    ValueError : If search type is unknown
    '''
    if searchType == 'hashGrid':
        return SpatialHashGrid(cellSize, dimensions)
    elif searchType == 'kdTree':
        return KdTreeSearch(dimensions)
    else:
        raise ValueError(f'Unknown neighbor search type: {searchType}')
