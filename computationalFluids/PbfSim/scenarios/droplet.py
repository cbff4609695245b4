# -- Bouncing Droplet Scenario -- #

'''
A single particle dropped onto a floor plane.

Without neighbors the density constraint is inactive, so the particle
follows ballistic flight until it hits the floor collider and bounces
with the configured restitution. Useful for checking the collider in
isolation: successive bounce apexes shrink by roughly e^2.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from computationalFluids.PbfSim import constants as const
from computationalFluids.PbfSim.collision.collider import Collider
from computationalFluids.PbfSim.geometry.surfaces import Plane
from computationalFluids.PbfSim.solvers.pbfSolver import PbfSolver, createPbfSolver
from computationalFluids.PbfSim.sph.particles import verticalAxis
from computationalFluids.PbfSim.sph.protocols import SimulationConfig


@dataclass
class DropletConfig:
    '''
    Configuration for the bouncing droplet scenario.

    Parameters:
    -----------
    dimensions : int
        Number of spatial dimensions (2 or 3)
    dropHeight : float
        Initial height of the particle center above the floor [m]
    particleSpacing : float
        Target spacing, which is also the particle radius [m]
    restitutionCoefficient : float
        Floor restitution (0 - 1)
    frictionCoefficient : float
        Floor friction coefficient
    fixedSubTimeSteps : int
        Sub-steps per output frame
    endTime : float
        Simulation end time [s]
    outputInterval : float
        Time between output frames [s]
    '''

    dimensions: int = 2
    dropHeight: float = 1.0
    particleSpacing: float = const.defaultTargetSpacing
    restitutionCoefficient: float = 0.5
    frictionCoefficient: float = 0.0
    fixedSubTimeSteps: int = 4
    endTime: float = 3.0
    outputInterval: float = 1.0 / 60.0


def createDroplet(
    dropConfig: DropletConfig,
    simConfig: SimulationConfig | None = None,
) -> tuple[SimulationConfig, PbfSolver]:
    '''
    Create the bouncing droplet simulation.

    Parameters:
    -----------
    dropConfig : DropletConfig
        Scenario geometry and defaults
    simConfig : SimulationConfig | None
        Full solver configuration; when given, it replaces the solver
        settings of dropConfig

    Returns:
    --------
    tuple[SimulationConfig, PbfSolver] :
        Ready-to-run configuration and solver with one particle
    '''
    if simConfig is None:
        simConfig = SimulationConfig(
            dimensions=dropConfig.dimensions,
            targetSpacing=dropConfig.particleSpacing,
            endTime=dropConfig.endTime,
            outputInterval=dropConfig.outputInterval,
            fixedSubTimeSteps=dropConfig.fixedSubTimeSteps,
            restitutionCoefficient=dropConfig.restitutionCoefficient,
            frictionCoefficient=dropConfig.frictionCoefficient,
        )
    solver = createPbfSolver(simConfig)

    dims = simConfig.dimensions
    up = np.zeros(dims)
    up[verticalAxis(dims)] = 1.0
    floor = Plane(normal=up, point=np.zeros(dims))
    solver.setCollider(Collider(floor, frictionCoefficient=simConfig.frictionCoefficient))

    solver.sphSystemData.addParticles(dropConfig.dropHeight * up)

    return (simConfig, solver)
