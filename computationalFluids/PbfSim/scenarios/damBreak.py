# -- Dam Break Scenario -- #

'''
Dam break in a closed rectangular container.

A rectangular column of fluid sits in the corner of a closed tank
and collapses under gravity once released. The container is a single
axis-aligned Box collider with flipped normals, so the fluid lives
inside and the walls push particles back in.

The scenario creates:
1. Fluid particles on a regular lattice at the target spacing
2. A container collider with restitution and friction from the config
3. A SimulationConfig with the PBF parameters

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from computationalFluids.PbfSim import constants as const
from computationalFluids.PbfSim.collision.collider import Collider
from computationalFluids.PbfSim.geometry.surfaces import Box
from computationalFluids.PbfSim.solvers.pbfSolver import PbfSolver, createPbfSolver
from computationalFluids.PbfSim.sph.protocols import SimulationConfig


######################################################################
# -- Dam Break Configuration -- #
######################################################################

@dataclass
class DamBreakConfig:
    '''
    Configuration for a dam break scenario.

    Horizontal extents are (width) in 2D and (width, depth) in 3D;
    height is always along the vertical axis.

    Parameters:
    -----------
    dimensions : int
        Number of spatial dimensions (2 or 3)
    tankWidth : float
        Container width [m]
    tankDepth : float
        Container depth [m] (3D only)
    tankHeight : float
        Container height [m]
    columnWidth : float
        Fluid column width [m]
    columnDepth : float
        Fluid column depth [m] (3D only)
    columnHeight : float
        Fluid column height [m]
    particleSpacing : float
        Inter-particle spacing [m]
    restitutionCoefficient : float
        Wall restitution (0 - 1)
    frictionCoefficient : float
        Wall friction coefficient
    endTime : float
        Simulation end time [s]
    outputInterval : float
        Time between output frames [s]
    '''

    dimensions: int = 2
    tankWidth: float = 2.0
    tankDepth: float = 1.0
    tankHeight: float = 1.0
    columnWidth: float = 0.5
    columnDepth: float = 1.0
    columnHeight: float = 0.8
    particleSpacing: float = 0.05
    restitutionCoefficient: float = 0.0
    frictionCoefficient: float = 0.0
    endTime: float = 2.0
    outputInterval: float = 1.0 / 60.0

    @classmethod
    def small2D(cls) -> DamBreakConfig:
        '''
        Small 2D dam break for quick testing.

        ~150 fluid particles, runs in seconds.
        '''
        return cls(
            dimensions=2,
            tankWidth=2.0,
            tankHeight=1.0,
            columnWidth=0.5,
            columnHeight=0.8,
            particleSpacing=0.05,
            endTime=1.0,
        )

    @classmethod
    def standard2D(cls) -> DamBreakConfig:
        '''
        Standard 2D dam break.

        ~750 fluid particles.
        '''
        return cls(
            dimensions=2,
            tankWidth=3.2,
            tankHeight=1.6,
            columnWidth=1.0,
            columnHeight=1.2,
            particleSpacing=0.04,
            endTime=3.0,
        )

    @classmethod
    def small3D(cls) -> DamBreakConfig:
        '''
        Small 3D dam break.

        ~100 fluid particles, coarse but quick.
        '''
        return cls(
            dimensions=3,
            tankWidth=1.0,
            tankDepth=0.6,
            tankHeight=1.0,
            columnWidth=0.4,
            columnDepth=0.4,
            columnHeight=0.6,
            particleSpacing=0.1,
            endTime=1.0,
        )


######################################################################
# -- Scenario Creation -- #
######################################################################

def _latticeAxis(extent: float, spacing: float) -> np.ndarray:
    '''Lattice coordinates one spacing off the wall, within extent.'''
    nPoints = max(int(np.floor(extent / spacing + 1e-9)), 1)
    return spacing * (1.0 + np.arange(nPoints))


def createDamBreak(
    damConfig: DamBreakConfig,
    simConfig: SimulationConfig | None = None,
) -> tuple[SimulationConfig, PbfSolver]:
    '''
    Create a dam break simulation from configuration.

    The fluid column starts one particle radius (= spacing) off the
    container walls so no particle initially penetrates the collider.

    Parameters:
    -----------
    damConfig : DamBreakConfig
        Scenario geometry and defaults
    simConfig : SimulationConfig | None
        Full solver configuration; when given, its dimensions, spacing,
        restitution and friction replace those of damConfig

    Returns:
    --------
    tuple[SimulationConfig, PbfSolver] :
        Ready-to-run configuration and solver with particles and collider
    '''
    if simConfig is None:
        simConfig = SimulationConfig(
            dimensions=damConfig.dimensions,
            targetDensity=const.waterDensity,
            targetSpacing=damConfig.particleSpacing,
            endTime=damConfig.endTime,
            outputInterval=damConfig.outputInterval,
            restitutionCoefficient=damConfig.restitutionCoefficient,
            frictionCoefficient=damConfig.frictionCoefficient,
        )

    s = simConfig.targetSpacing
    dims = simConfig.dimensions

    if dims == 2:
        lowerCorner = np.zeros(2)
        upperCorner = np.array([damConfig.tankWidth, damConfig.tankHeight])
        axes = [
            _latticeAxis(damConfig.columnWidth, s),
            _latticeAxis(damConfig.columnHeight, s),
        ]
    else:
        lowerCorner = np.zeros(3)
        upperCorner = np.array([damConfig.tankWidth, damConfig.tankDepth, damConfig.tankHeight])
        axes = [
            _latticeAxis(damConfig.columnWidth, s),
            _latticeAxis(damConfig.columnDepth, s),
            _latticeAxis(damConfig.columnHeight, s),
        ]

    solver = createPbfSolver(simConfig)

    ######################################################################
    # Container collider
    ######################################################################
    container = Box(lowerCorner, upperCorner, isNormalFlipped=True)
    solver.setCollider(Collider(container, frictionCoefficient=simConfig.frictionCoefficient))

    ######################################################################
    # Fluid particles
    ######################################################################
    grids = np.meshgrid(*axes, indexing='ij')
    positions = np.column_stack([g.ravel() for g in grids])

    # Keep the column inside the container
    inside = np.all(positions <= upperCorner - s, axis=1)
    solver.sphSystemData.addParticles(positions[inside])

    return (simConfig, solver)
