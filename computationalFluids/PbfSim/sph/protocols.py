# -- PBF Simulation Protocols -- #

'''
Configuration and state dataclasses for PBF simulations.

Defines SimulationConfig (all tunable parameters with their
defaults, loadable from JSON), SimulationState (per-step scalar
diagnostics) and the solver protocol that the runner drives.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Protocol, TYPE_CHECKING

import numpy as np

from computationalFluids.PbfSim import constants as const

if TYPE_CHECKING:
    from computationalFluids.PbfSim.sph.particles import ParticleSystemData


def defaultGravity(dimensions: int) -> np.ndarray:
    '''Gravity vector along -y in 2D and -z in 3D [m/s^2].'''
    gravityVec = np.zeros(dimensions)
    gravityVec[2 if dimensions == 3 else 1] = -const.gravity
    return gravityVec


######################################################################
# -- Simulation Configuration -- #
######################################################################

@dataclass
class SimulationConfig:
    '''
    Configuration for a PBF simulation.

    Parameters:
    -----------
    dimensions : int
        Number of spatial dimensions (2 or 3)
    targetDensity : float
        Rest density rho_0 [kg/m^dim]
    targetSpacing : float
        Rest particle spacing [m]
    relativeKernelRadius : float
        Kernel radius / spacing ratio
    gravity : np.ndarray
        Gravity vector [m/s^2]
    endTime : float
        Simulation end time [s]
    outputInterval : float
        Time between output frames [s]
    fixedSubTimeSteps : int | None
        Sub-steps per frame; None selects adaptive sub-stepping
    restitutionCoefficient : float
        Collider restitution (0 - 1)
    frictionCoefficient : float
        Collider friction coefficient (>= 0)
    dragCoefficient : float
        Linear air drag coefficient [kg/s]
    maxNumberOfIterations : int
        Density constraint iterations per step
    pseudoViscosityCoefficient : float
        Velocity smoothing factor (0 - 1)
    lambdaRelaxation : float
        Constraint relaxation epsilon
    vorticityConfinementStrength : float
        Vorticity confinement epsilon (0 disables)
    antiClusteringDenominatorFactor : float
        Delta q as a fraction of the target spacing
    antiClusteringStrength : float
        Tensile correction strength k
    antiClusteringExponent : float
        Tensile correction exponent n
    neighborSearchType : str
        'hashGrid' or 'kdTree'
    '''

    dimensions: int = 2
    targetDensity: float = const.waterDensity
    targetSpacing: float = const.defaultTargetSpacing
    relativeKernelRadius: float = const.defaultRelativeKernelRadius
    gravity: np.ndarray | None = None
    endTime: float = 2.0
    outputInterval: float = 1.0 / 60.0
    fixedSubTimeSteps: int | None = None
    restitutionCoefficient: float = const.defaultRestitutionCoefficient
    frictionCoefficient: float = 0.0
    dragCoefficient: float = const.defaultDragCoefficient
    maxNumberOfIterations: int = const.defaultMaxNumberOfIterations
    pseudoViscosityCoefficient: float = const.defaultPseudoViscosityCoefficient
    lambdaRelaxation: float = const.defaultLambdaRelaxation
    vorticityConfinementStrength: float = const.defaultVorticityConfinementStrength
    antiClusteringDenominatorFactor: float = const.defaultAntiClusteringDenominatorFactor
    antiClusteringStrength: float = const.defaultAntiClusteringStrength
    antiClusteringExponent: float = const.defaultAntiClusteringExponent
    neighborSearchType: str = 'hashGrid'

    def __post_init__(self) -> None:
        if self.dimensions not in (2, 3):
            raise ValueError(f'Dimensions must be 2 or 3, got {self.dimensions}')
        if self.gravity is None:
            self.gravity = defaultGravity(self.dimensions)
        else:
            self.gravity = np.asarray(self.gravity, dtype=float)

    @property
    def kernelRadius(self) -> float:
        '''Kernel radius h = relativeKernelRadius * targetSpacing [m].'''
        return self.relativeKernelRadius * self.targetSpacing

    @classmethod
    def fromJson(cls, configPath: str) -> SimulationConfig:
        '''
        Load configuration from a JSON file.

        Reads the 'simulation', 'fluid', 'pbf' and 'collider' sections;
        missing keys fall back to the defaults.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file

        Returns:
        --------
        SimulationConfig : Loaded configuration
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)

        return cls.fromDict(data)

    @classmethod
    def fromDict(cls, data: dict) -> SimulationConfig:
        '''Build a configuration from parsed JSON sections.'''
        simSection = data.get('simulation', {})
        fluidSection = data.get('fluid', {})
        pbfSection = data.get('pbf', {})
        colliderSection = data.get('collider', {})

        dimensions = simSection.get('dimensions', 2)

        gravityVec = defaultGravity(dimensions)
        if 'gravity' in fluidSection:
            gravityVec *= fluidSection['gravity'] / const.gravity

        return cls(
            dimensions=dimensions,
            targetDensity=fluidSection.get('density', const.waterDensity),
            targetSpacing=pbfSection.get('targetSpacing', const.defaultTargetSpacing),
            relativeKernelRadius=pbfSection.get(
                'relativeKernelRadius', const.defaultRelativeKernelRadius
            ),
            gravity=gravityVec,
            endTime=simSection.get('endTime', 2.0),
            outputInterval=simSection.get('outputInterval', 1.0 / 60.0),
            fixedSubTimeSteps=simSection.get('fixedSubTimeSteps'),
            restitutionCoefficient=colliderSection.get(
                'restitution', const.defaultRestitutionCoefficient
            ),
            frictionCoefficient=colliderSection.get('friction', 0.0),
            dragCoefficient=fluidSection.get('drag', const.defaultDragCoefficient),
            maxNumberOfIterations=pbfSection.get(
                'maxIterations', const.defaultMaxNumberOfIterations
            ),
            pseudoViscosityCoefficient=pbfSection.get(
                'pseudoViscosity', const.defaultPseudoViscosityCoefficient
            ),
            lambdaRelaxation=pbfSection.get('lambdaRelaxation', const.defaultLambdaRelaxation),
            vorticityConfinementStrength=pbfSection.get(
                'vorticityConfinement', const.defaultVorticityConfinementStrength
            ),
            antiClusteringDenominatorFactor=pbfSection.get(
                'antiClusteringDenominator', const.defaultAntiClusteringDenominatorFactor
            ),
            antiClusteringStrength=pbfSection.get(
                'antiClusteringStrength', const.defaultAntiClusteringStrength
            ),
            antiClusteringExponent=pbfSection.get(
                'antiClusteringExponent', const.defaultAntiClusteringExponent
            ),
            neighborSearchType=pbfSection.get('neighborSearch', 'hashGrid'),
        )


######################################################################
# -- Simulation State -- #
######################################################################

@dataclass
class SimulationState:
    '''
    Snapshot of the simulation at a given time.

    Parameters:
    -----------
    time : float
        Current simulation time [s]
    step : int
        Number of completed sub-steps
    dt : float
        Last sub-step size [s]
    kineticEnergy : float
        Total kinetic energy [J]
    potentialEnergy : float
        Total gravitational potential energy [J]
    maxVelocity : float
        Maximum particle speed [m/s]
    maxDensityError : float
        Maximum relative density error |rho - rho_0| / rho_0
    '''

    time: float
    step: int
    dt: float
    kineticEnergy: float
    potentialEnergy: float
    maxVelocity: float
    maxDensityError: float = 0.0

    @property
    def totalEnergy(self) -> float:
        '''Total mechanical energy (KE + PE) [J].'''
        return self.kineticEnergy + self.potentialEnergy


######################################################################
# -- Solver Protocol -- #
######################################################################

class ParticleSolver(Protocol):
    '''Protocol for particle solvers driven by the runner.'''

    def advance(self, timeInterval: float) -> SimulationState:
        '''Advance by timeInterval using sub-steps and return the state.'''
        ...

    def advanceTimeStep(self, timeStepInSeconds: float) -> None:
        '''Advance exactly one sub-step.'''
        ...

    @property
    def currentState(self) -> SimulationState:
        '''Current simulation state snapshot.'''
        ...

    @property
    def particleSystemData(self) -> ParticleSystemData:
        '''Access the particle system.'''
        ...
