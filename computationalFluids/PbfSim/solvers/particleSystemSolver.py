# -- Particle System Solver -- #

'''
Base solver for particle systems with external forces and colliders.

Owns the particle data, the driver loop (frame updates split into
fixed or CFL-adaptive sub-steps) and the shared per-step plumbing:
collider update, external force accumulation (gravity, linear air
drag with an optional wind field) and collision resolution. Subclasses
supply the actual integration through _onAdvanceTimeStep.

A sub-step is all-or-nothing: integration works on fresh arrays and
the particle data is overwritten only after every stage succeeded.

Algorithm per sub-step:
    1. Update the collider to the current time
    2. Accumulate external forces
    3. Integrate (subclass)
    4. Resolve collisions (subclass, via resolveCollision)
    5. Commit positions, velocities and forces

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import logging
import math
from typing import Callable

import numpy as np

from computationalFluids.PbfSim import constants as const
from computationalFluids.PbfSim.collision.collider import Collider
from computationalFluids.PbfSim.sph.particles import ParticleSystemData, verticalAxis
from computationalFluids.PbfSim.sph.protocols import SimulationState, defaultGravity

logger = logging.getLogger(__name__)


class ParticleSystemSolver:
    '''
    Semi-implicit Euler particle solver with gravity, drag and collisions.

    Parameters:
    -----------
    dimensions : int
        Number of spatial dimensions (2 or 3)
    radius : float
        Particle radius [m]
    mass : float
        Particle mass [kg]
    particleSystemData : ParticleSystemData | None
        Existing particle data to drive (overrides radius and mass)
    '''

    def __init__(
        self,
        dimensions: int = 2,
        radius: float = 1e-3,
        mass: float = 1e-3,
        particleSystemData: ParticleSystemData | None = None,
    ) -> None:
        if dimensions not in (2, 3):
            raise ValueError(f'Dimensions must be 2 or 3, got {dimensions}')

        if particleSystemData is None:
            particleSystemData = ParticleSystemData.empty(dimensions, mass=mass, radius=radius)
        self._particleSystemData = particleSystemData

        self._gravity = defaultGravity(dimensions)
        self._dragCoefficient = const.defaultDragCoefficient
        self._restitutionCoefficient = const.defaultRestitutionCoefficient
        self._wind: Callable[[np.ndarray], np.ndarray] | None = None
        self._collider: Collider | None = None

        self._isUsingFixedSubTimeSteps = True
        self._numberOfFixedSubTimeSteps = 1

        self._currentTime = 0.0
        self._currentStep = 0
        self._currentFrame = 0
        self._lastTimeStep = 0.0

    ######################################################################
    # -- Parameters -- #
    ######################################################################

    @property
    def particleSystemData(self) -> ParticleSystemData:
        '''Particle state driven by this solver.'''
        return self._particleSystemData

    @property
    def dimensions(self) -> int:
        return self._particleSystemData.dimensions

    @property
    def gravity(self) -> np.ndarray:
        '''Gravity vector [m/s^2].'''
        return self._gravity.copy()

    def setGravity(self, newGravity: np.ndarray) -> None:
        newGravity = np.asarray(newGravity, dtype=float)
        if newGravity.shape != (self.dimensions,):
            raise ValueError(
                f'Gravity must have shape ({self.dimensions},), got {newGravity.shape}'
            )
        self._gravity = newGravity.copy()

    @property
    def dragCoefficient(self) -> float:
        '''Linear air drag coefficient [kg/s].'''
        return self._dragCoefficient

    def setDragCoefficient(self, newDragCoefficient: float) -> None:
        '''Set the drag coefficient; negative inputs clamp to 0.'''
        self._dragCoefficient = max(float(newDragCoefficient), 0.0)

    @property
    def restitutionCoefficient(self) -> float:
        '''Collision restitution coefficient (0 - 1).'''
        return self._restitutionCoefficient

    def setRestitutionCoefficient(self, newRestitutionCoefficient: float) -> None:
        '''Set the restitution coefficient, clamped to [0, 1].'''
        self._restitutionCoefficient = min(max(float(newRestitutionCoefficient), 0.0), 1.0)

    @property
    def wind(self) -> Callable[[np.ndarray], np.ndarray] | None:
        '''Wind velocity field, wind(positions) -> velocities [m/s].'''
        return self._wind

    def setWind(self, newWind: Callable[[np.ndarray], np.ndarray] | None) -> None:
        self._wind = newWind

    @property
    def collider(self) -> Collider | None:
        '''Boundary collider (None disables collisions).'''
        return self._collider

    def setCollider(self, newCollider: Collider | None) -> None:
        self._collider = newCollider

    @property
    def isUsingFixedSubTimeSteps(self) -> bool:
        return self._isUsingFixedSubTimeSteps

    def setIsUsingFixedSubTimeSteps(self, isUsingFixedSubTimeSteps: bool) -> None:
        self._isUsingFixedSubTimeSteps = bool(isUsingFixedSubTimeSteps)

    @property
    def numberOfFixedSubTimeSteps(self) -> int:
        '''Sub-steps per advance when fixed sub-stepping is on.'''
        return self._numberOfFixedSubTimeSteps

    def setNumberOfFixedSubTimeSteps(self, numberOfSteps: int) -> None:
        if numberOfSteps < 1:
            raise ValueError(f'Number of sub-steps must be at least 1, got {numberOfSteps}')
        self._numberOfFixedSubTimeSteps = int(numberOfSteps)

    @property
    def currentTime(self) -> float:
        '''Simulated time [s].'''
        return self._currentTime

    @property
    def currentStep(self) -> int:
        '''Number of completed sub-steps.'''
        return self._currentStep

    ######################################################################
    # -- Driver -- #
    ######################################################################

    def update(self, frameIndex: int, frameInterval: float) -> SimulationState:
        '''
        Advance frame by frame until frameIndex is reached.

        Frames at or before the current frame are ignored.

        Parameters:
        -----------
        frameIndex : int
            Target frame index
        frameInterval : float
            Duration of one frame [s]

        Returns:
        --------
        SimulationState : State after the last advanced frame
        '''
        while self._currentFrame < frameIndex:
            self.advance(frameInterval)
            self._currentFrame += 1
        return self.currentState

    def advance(self, timeInterval: float) -> SimulationState:
        '''
        Advance by timeInterval using fixed or adaptive sub-steps.

        Parameters:
        -----------
        timeInterval : float
            Time to advance [s]

        Returns:
        --------
        SimulationState : State after advancing
        '''
        if timeInterval < 0.0:
            raise ValueError(f'Time interval must be non-negative, got {timeInterval}')
        if timeInterval == 0.0:
            return self.currentState

        if self._isUsingFixedSubTimeSteps:
            nSubSteps = self._numberOfFixedSubTimeSteps
        else:
            nSubSteps = self.numberOfSubTimeSteps(timeInterval)

        subTimeStep = timeInterval / nSubSteps
        logger.debug(
            'Advancing %.4g s in %d sub-step(s) of %.4g s', timeInterval, nSubSteps, subTimeStep
        )
        for _ in range(nSubSteps):
            self.advanceTimeStep(subTimeStep)

        return self.currentState

    def numberOfSubTimeSteps(self, timeIntervalInSeconds: float) -> int:
        '''
        CFL-based sub-step count for an interval.

        n = ceil(dt * (v_max + |g| * dt) / (C_cfl * L))

        where L is the characteristic length of the particle system.

        Parameters:
        -----------
        timeIntervalInSeconds : float
            Interval to subdivide [s]

        Returns:
        --------
        int : Number of sub-steps (at least 1)
        '''
        speed = (
            self._particleSystemData.maxSpeed()
            + float(np.linalg.norm(self._gravity)) * timeIntervalInSeconds
        )
        if speed <= 0.0:
            return 1

        lengthScale = self._cflLengthScale()
        nSubSteps = math.ceil(timeIntervalInSeconds * speed / (const.cflNumber * lengthScale))
        return max(1, int(nSubSteps))

    def advanceTimeStep(self, timeStepInSeconds: float) -> None:
        '''
        Advance exactly one sub-step.

        Zero-length steps are no-ops. If any stage raises, the particle
        data is left as it was before the call.

        Parameters:
        -----------
        timeStepInSeconds : float
            Sub-step size [s]
        '''
        if timeStepInSeconds < 0.0:
            raise ValueError(f'Time step must be non-negative, got {timeStepInSeconds}')
        if timeStepInSeconds == 0.0:
            return

        data = self._particleSystemData
        if data.numberOfParticles > 0:
            self._beginAdvanceTimeStep(timeStepInSeconds)
            forces = self._accumulateForces(data.positions, data.velocities)
            newPositions, newVelocities = self._onAdvanceTimeStep(timeStepInSeconds, forces)
            self._endAdvanceTimeStep(newPositions, newVelocities, forces)

        self._currentTime += timeStepInSeconds
        self._currentStep += 1
        self._lastTimeStep = timeStepInSeconds

    @property
    def currentState(self) -> SimulationState:
        '''Snapshot of the current simulation state.'''
        data = self._particleSystemData
        gravityMagnitude = abs(float(self._gravity[verticalAxis(self.dimensions)]))

        return SimulationState(
            time=self._currentTime,
            step=self._currentStep,
            dt=self._lastTimeStep,
            kineticEnergy=data.kineticEnergy(),
            potentialEnergy=data.potentialEnergy(gravityMagnitude),
            maxVelocity=data.maxSpeed(),
            maxDensityError=self._maxDensityError(),
        )

    ######################################################################
    # -- Sub-Step Stages -- #
    ######################################################################

    def _beginAdvanceTimeStep(self, timeStepInSeconds: float) -> None:
        if self._collider is not None:
            self._collider.update(self._currentTime, timeStepInSeconds)

    def _accumulateForces(self, positions: np.ndarray, velocities: np.ndarray) -> np.ndarray:
        '''
        External forces on every particle.

        f_i = m * g - c_d * (v_i - v_wind(x_i))

        Returns:
        --------
        np.ndarray : Forces [N], shape (N, dim)
        '''
        mass = self._particleSystemData.mass
        forces = np.broadcast_to(mass * self._gravity, positions.shape).copy()

        if self._wind is not None:
            relativeVel = velocities - np.asarray(self._wind(positions), dtype=float)
        else:
            relativeVel = velocities
        forces -= self._dragCoefficient * relativeVel

        return forces

    def _onAdvanceTimeStep(
        self, timeStepInSeconds: float, forces: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        '''
        Semi-implicit Euler integration followed by collision handling.

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (newPositions, newVelocities)
        '''
        data = self._particleSystemData
        newVelocities = data.velocities + timeStepInSeconds * forces / data.mass
        newPositions = data.positions + timeStepInSeconds * newVelocities
        return self.resolveCollision(newPositions, newVelocities)

    def _endAdvanceTimeStep(
        self,
        newPositions: np.ndarray,
        newVelocities: np.ndarray,
        forces: np.ndarray,
    ) -> None:
        data = self._particleSystemData
        data.positions = newPositions
        data.velocities = newVelocities
        data.forces = forces

    def resolveCollision(
        self, positions: np.ndarray, velocities: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        '''
        Resolve collisions against the collider, if any.

        Parameters:
        -----------
        positions : np.ndarray
            Candidate positions [m], shape (N, dim)
        velocities : np.ndarray
            Candidate velocities [m/s], shape (N, dim)

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (positions, velocities) after collision
        '''
        if self._collider is None:
            return (positions, velocities)

        return self._collider.resolveCollisionBatch(
            self._particleSystemData.radius,
            self._restitutionCoefficient,
            positions,
            velocities,
        )

    def _cflLengthScale(self) -> float:
        return self._particleSystemData.radius

    def _maxDensityError(self) -> float:
        return 0.0
