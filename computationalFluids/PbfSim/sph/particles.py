# -- Particle System Data -- #

'''
Dataclasses holding particle state for PBF simulations.

ParticleSystemData stores positions, velocities and accumulated
forces as contiguous NumPy arrays with a single particle mass and
radius. SphSystemData extends it with the SPH view of the same
particles: target density and spacing, kernel radius, per-particle
densities and the neighbor pairs built from current positions.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from computationalFluids.PbfSim import constants as const
from computationalFluids.PbfSim.sph.kernels import Poly6Kernel, SpikyKernel
from computationalFluids.PbfSim.sph.neighborSearch import createNeighborSearch, pairsToNeighborLists

logger = logging.getLogger(__name__)


def verticalAxis(dimensions: int) -> int:
    '''Index of the vertical axis: y (1) in 2D, z (2) in 3D.'''
    return 2 if dimensions == 3 else 1


######################################################################
# -- Particle System Data -- #
######################################################################

@dataclass
class ParticleSystemData:
    '''
    Generic particle system state.

    Vector arrays have shape (nParticles, nDimensions).

    Parameters:
    -----------
    positions : np.ndarray
        Particle positions [m], shape (N, dim)
    velocities : np.ndarray
        Particle velocities [m/s], shape (N, dim)
    forces : np.ndarray
        Accumulated external forces [N], shape (N, dim)
    mass : float
        Mass of every particle [kg]
    radius : float
        Radius of every particle [m]
    '''

    positions: np.ndarray
    velocities: np.ndarray
    forces: np.ndarray
    mass: float = 1e-3
    radius: float = 1e-3

    @classmethod
    def empty(cls, dimensions: int = 2, **kwargs) -> ParticleSystemData:
        '''Create a particle system with no particles.'''
        return cls(
            positions=np.zeros((0, dimensions)),
            velocities=np.zeros((0, dimensions)),
            forces=np.zeros((0, dimensions)),
            **kwargs,
        )

    @property
    def numberOfParticles(self) -> int:
        '''Number of particles.'''
        return self.positions.shape[0]

    @property
    def dimensions(self) -> int:
        '''Number of spatial dimensions (2 or 3).'''
        return self.positions.shape[1]

    def addParticles(
        self,
        positions: np.ndarray,
        velocities: np.ndarray | None = None,
        forces: np.ndarray | None = None,
    ) -> None:
        '''
        Append particles to the system.

        Parameters:
        -----------
        positions : np.ndarray
            New particle positions, shape (M, dim)
        velocities : np.ndarray | None
            New particle velocities (zero if omitted)
        forces : np.ndarray | None
            New particle forces (zero if omitted)
        '''
        positions = np.atleast_2d(np.asarray(positions, dtype=float))
        if positions.shape[1] != self.dimensions:
            raise ValueError(
                f'Expected {self.dimensions}D positions, got shape {positions.shape}'
            )

        nNew = positions.shape[0]
        if velocities is None:
            velocities = np.zeros((nNew, self.dimensions))
        if forces is None:
            forces = np.zeros((nNew, self.dimensions))

        velocities = np.atleast_2d(np.asarray(velocities, dtype=float))
        forces = np.atleast_2d(np.asarray(forces, dtype=float))
        if velocities.shape != positions.shape or forces.shape != positions.shape:
            raise ValueError('Velocities and forces must match the positions shape')

        self.positions = np.vstack([self.positions, positions])
        self.velocities = np.vstack([self.velocities, velocities])
        self.forces = np.vstack([self.forces, forces])

    def kineticEnergy(self) -> float:
        '''
        Total kinetic energy.

        KE = (1/2) * m * sum_i |v_i|^2

        Returns:
        --------
        float : Kinetic energy [J]
        '''
        return 0.5 * self.mass * float(np.sum(self.velocities * self.velocities))

    def potentialEnergy(self, gravity: float = const.gravity) -> float:
        '''
        Total gravitational potential energy relative to height 0.

        Parameters:
        -----------
        gravity : float
            Gravitational acceleration magnitude [m/s^2]

        Returns:
        --------
        float : Potential energy [J]
        '''
        heights = self.positions[:, verticalAxis(self.dimensions)]
        return self.mass * gravity * float(np.sum(heights))

    def maxSpeed(self) -> float:
        '''Maximum velocity magnitude [m/s].'''
        if self.numberOfParticles == 0:
            return 0.0
        return float(np.max(np.linalg.norm(self.velocities, axis=1)))


######################################################################
# -- SPH System Data -- #
######################################################################

@dataclass
class SphSystemData(ParticleSystemData):
    '''
    Particle system with SPH density and neighbor information.

    The particle radius always equals the target spacing, and the
    particle mass is derived so that a regular lattice at the target
    spacing evaluates to exactly the target density. Any mass or
    radius passed to the constructor is therefore overwritten.

    Parameters:
    -----------
    targetDensity : float
        Rest density rho_0 [kg/m^dim]
    targetSpacing : float
        Rest particle spacing [m]
    relativeKernelRadius : float
        Kernel radius to spacing ratio
    neighborSearchType : str
        Neighbor search backend: 'hashGrid' or 'kdTree'
    '''

    targetDensity: float = const.waterDensity
    targetSpacing: float = const.defaultTargetSpacing
    relativeKernelRadius: float = const.defaultRelativeKernelRadius
    neighborSearchType: str = 'hashGrid'
    densities: np.ndarray = field(default=None)

    _neighborPairs: tuple[np.ndarray, np.ndarray] = field(default=None, init=False, repr=False)
    _neighborLists: list[np.ndarray] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.densities is None:
            self.densities = np.zeros(self.numberOfParticles)
        self._poly6 = Poly6Kernel(self.dimensions)
        self._spiky = SpikyKernel(self.dimensions)
        self._neighborPairs = (np.array([], dtype=np.int64), np.array([], dtype=np.int64))
        self.setTargetSpacing(self.targetSpacing)

    ######################################################################
    # -- Discretization Parameters -- #
    ######################################################################

    @property
    def kernelRadius(self) -> float:
        '''Kernel (support) radius h [m].'''
        return self.relativeKernelRadius * self.targetSpacing

    @property
    def poly6Kernel(self) -> Poly6Kernel:
        '''Standard kernel used for density and smoothing.'''
        return self._poly6

    @property
    def spikyKernel(self) -> SpikyKernel:
        '''Spiky kernel used for gradients.'''
        return self._spiky

    def setTargetDensity(self, targetDensity: float) -> None:
        '''Set the rest density and recompute the particle mass.'''
        if targetDensity <= 0.0:
            raise ValueError(f'Target density must be positive, got {targetDensity}')
        self.targetDensity = targetDensity
        self._computeMass()

    def setTargetSpacing(self, targetSpacing: float) -> None:
        '''Set the rest spacing; updates radius, kernel radius and mass.'''
        if targetSpacing <= 0.0:
            raise ValueError(f'Target spacing must be positive, got {targetSpacing}')
        self.targetSpacing = targetSpacing
        self.radius = targetSpacing
        self._computeMass()

    def setRelativeKernelRadius(self, relativeKernelRadius: float) -> None:
        '''Set the kernel radius to spacing ratio and recompute the mass.'''
        if relativeKernelRadius <= 0.0:
            raise ValueError(
                f'Relative kernel radius must be positive, got {relativeKernelRadius}'
            )
        self.relativeKernelRadius = relativeKernelRadius
        self._computeMass()

    def _computeMass(self) -> None:
        '''
        Derive particle mass from the lattice number density.

        m = rho_0 / sum_k W(|x_k|)

        where x_k runs over a regular lattice at the target spacing
        (square in 2D, cubic in 3D) centered on the origin.
        '''
        h = self.kernelRadius
        s = self.targetSpacing
        nCells = int(math.ceil(h / s))

        axis = np.arange(-nCells, nCells + 1) * s
        grids = np.meshgrid(*([axis] * self.dimensions), indexing='ij')
        lattice = np.column_stack([g.ravel() for g in grids])

        numberDensity = float(np.sum(self._poly6.evaluateBatch(
            np.linalg.norm(lattice, axis=1), h
        )))
        self.mass = self.targetDensity / numberDensity

        logger.debug(
            'SPH mass %.6g for density %.6g, spacing %.6g, kernel radius %.6g',
            self.mass, self.targetDensity, s, h,
        )

    ######################################################################
    # -- Particles -- #
    ######################################################################

    def addParticles(
        self,
        positions: np.ndarray,
        velocities: np.ndarray | None = None,
        forces: np.ndarray | None = None,
    ) -> None:
        '''Append particles; new densities start at zero and stored neighbors are cleared.'''
        nBefore = self.numberOfParticles
        super().addParticles(positions, velocities, forces)
        nNew = self.numberOfParticles - nBefore
        self.densities = np.concatenate([self.densities, np.zeros(nNew)])
        self.setNeighborPairs((np.array([], dtype=np.int64), np.array([], dtype=np.int64)))

    ######################################################################
    # -- Neighbors and Density -- #
    ######################################################################

    @property
    def neighborPairs(self) -> tuple[np.ndarray, np.ndarray]:
        '''Unique neighbor pairs (iIdx, jIdx) with i < j.'''
        return self._neighborPairs

    @property
    def neighborLists(self) -> list[np.ndarray]:
        '''Per-particle neighbor index arrays, derived from the pairs.'''
        if self._neighborLists is None:
            iIdx, jIdx = self._neighborPairs
            self._neighborLists = pairsToNeighborLists(iIdx, jIdx, self.numberOfParticles)
        return self._neighborLists

    def queryNeighborPairs(self, positions: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        '''
        Find neighbor pairs within the kernel radius without storing them.

        Parameters:
        -----------
        positions : np.ndarray
            Positions to search, shape (N, dim)

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (iIdx, jIdx) with i < j
        '''
        search = createNeighborSearch(
            self.neighborSearchType, self.kernelRadius, self.dimensions
        )
        search.build(positions)
        return search.queryPairs(self.kernelRadius)

    def setNeighborPairs(self, pairs: tuple[np.ndarray, np.ndarray]) -> None:
        '''Store neighbor pairs found for the current positions.'''
        self._neighborPairs = pairs
        self._neighborLists = None

    def buildNeighborLists(self, positions: np.ndarray | None = None) -> None:
        '''
        Rebuild and store neighbor pairs within the kernel radius.

        Parameters:
        -----------
        positions : np.ndarray | None
            Positions to search (defaults to the stored positions)
        '''
        if positions is None:
            positions = self.positions
        self.setNeighborPairs(self.queryNeighborPairs(positions))

    def computeDensities(
        self,
        positions: np.ndarray | None = None,
        pairs: tuple[np.ndarray, np.ndarray] | None = None,
    ) -> np.ndarray:
        '''
        SPH density summation over neighbor pairs.

        rho_i = m * (W(0) + sum_j W(|x_i - x_j|))

        Parameters:
        -----------
        positions : np.ndarray | None
            Positions to evaluate (defaults to the stored positions)
        pairs : tuple[np.ndarray, np.ndarray] | None
            Neighbor pairs (defaults to the stored pairs)

        Returns:
        --------
        np.ndarray : Densities, shape (N,)
        '''
        if positions is None:
            positions = self.positions
        if pairs is None:
            pairs = self._neighborPairs

        h = self.kernelRadius
        densities = np.full(len(positions), self._poly6.evaluate(0.0, h))

        iIdx, jIdx = pairs
        if len(iIdx) > 0:
            dist = np.linalg.norm(positions[iIdx] - positions[jIdx], axis=1)
            wij = self._poly6.evaluateBatch(dist, h)
            np.add.at(densities, iIdx, wij)
            np.add.at(densities, jIdx, wij)

        return self.mass * densities

    def updateDensities(self, positions: np.ndarray | None = None) -> None:
        '''Recompute and store densities (see computeDensities).'''
        self.densities = self.computeDensities(positions)

    def maxDensityError(self) -> float:
        '''
        Maximum relative density error max |rho_i - rho_0| / rho_0.

        Returns:
        --------
        float : Maximum relative density error (dimensionless)
        '''
        if self.numberOfParticles == 0:
            return 0.0
        errors = np.abs(self.densities - self.targetDensity) / self.targetDensity
        return float(np.max(errors))
