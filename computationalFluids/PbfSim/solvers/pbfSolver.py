# -- Position Based Fluids Solver -- #

'''
Position Based Fluids (PBF) solver.

Enforces incompressibility by iteratively projecting predicted
particle positions onto the density constraint C_i = rho_i/rho_0 - 1
rather than computing pressure forces. Each projection is a Jacobi
pass: every position correction of an iteration is computed from
the same positions and applied together.

All per-particle sums are vectorized over the unique neighbor pairs
(iIdx, jIdx) and scatter-accumulated with np.add.at. For a pair
(i, j) the spiky gradient gradW_ij = grad_i W(x_i - x_j) contributes
to particle i with a plus sign and to particle j with a minus sign.

Algorithm per time step:
    1. Snapshot positions x0
    2. Predict: v += dt * f / m, x += dt * v
    3. Build neighbor pairs at the predicted positions
    4. Repeat maxNumberOfIterations times:
        a. rho_i = m * sum_j W_ij
        b. lambda_i = -C_i / (sum_k |grad_k C_i|^2 + eps)
        c. dp_i = (m / rho_0) * sum_j (lambda_i + lambda_j + s_corr) gradW_ij
        d. x += dp
    5. Velocity from displacement: v = (x - x0) / dt
    6. Pseudo-viscosity (velocity smoothing)
    7. Vorticity confinement
    8. Collision resolution

References:
-----------
Macklin & Mueller (2013) -- Position Based Fluids
Monaghan (2000) -- SPH without a tensile instability
Fedkiw et al. (2001) -- Visual simulation of smoke

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from computationalFluids.PbfSim import constants as const
from computationalFluids.PbfSim.solvers.particleSystemSolver import ParticleSystemSolver
from computationalFluids.PbfSim.sph.particles import SphSystemData

if TYPE_CHECKING:
    from computationalFluids.PbfSim.sph.protocols import SimulationConfig

logger = logging.getLogger(__name__)

Pairs = tuple[np.ndarray, np.ndarray]


def _cross2(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    '''Out-of-plane component of the 2D cross product a x b.'''
    return a[:, 0] * b[:, 1] - a[:, 1] * b[:, 0]


class PbfSolver(ParticleSystemSolver):
    '''
    Position Based Fluids solver.

    Parameters:
    -----------
    targetDensity : float
        Rest density rho_0 [kg/m^dim]
    targetSpacing : float
        Rest particle spacing [m]
    relativeKernelRadius : float
        Kernel radius / spacing ratio
    dimensions : int
        Number of spatial dimensions (2 or 3)
    neighborSearchType : str
        'hashGrid' or 'kdTree'
    '''

    def __init__(
        self,
        targetDensity: float = const.waterDensity,
        targetSpacing: float = const.defaultTargetSpacing,
        relativeKernelRadius: float = const.defaultRelativeKernelRadius,
        dimensions: int = 2,
        neighborSearchType: str = 'hashGrid',
    ) -> None:
        if dimensions not in (2, 3):
            raise ValueError(f'Dimensions must be 2 or 3, got {dimensions}')

        sphData = SphSystemData.empty(
            dimensions,
            targetDensity=targetDensity,
            targetSpacing=targetSpacing,
            relativeKernelRadius=relativeKernelRadius,
            neighborSearchType=neighborSearchType,
        )
        super().__init__(dimensions=dimensions, particleSystemData=sphData)

        self._pseudoViscosityCoefficient = const.defaultPseudoViscosityCoefficient
        self._maxNumberOfIterations = const.defaultMaxNumberOfIterations
        self._lambdaRelaxation = const.defaultLambdaRelaxation
        self._antiClusteringDenominatorFactor = const.defaultAntiClusteringDenominatorFactor
        self._antiClusteringStrength = const.defaultAntiClusteringStrength
        self._antiClusteringExponent = const.defaultAntiClusteringExponent
        self._vorticityConfinementStrength = const.defaultVorticityConfinementStrength

        self._originalPositions = np.zeros((0, dimensions))
        self._pendingPairs: Pairs | None = None
        self._pendingDensities: np.ndarray | None = None

    @staticmethod
    def builder() -> PbfSolverBuilder:
        '''Fluent builder with default discretization parameters.'''
        return PbfSolverBuilder()

    ######################################################################
    # -- Parameters -- #
    ######################################################################

    @property
    def sphSystemData(self) -> SphSystemData:
        '''SPH view of the particle system.'''
        return self._particleSystemData

    @property
    def pseudoViscosityCoefficient(self) -> float:
        return self._pseudoViscosityCoefficient

    def setPseudoViscosityCoefficient(self, newCoefficient: float) -> None:
        '''Set the velocity smoothing factor, clamped to [0, 1].'''
        self._pseudoViscosityCoefficient = min(max(float(newCoefficient), 0.0), 1.0)

    @property
    def maxNumberOfIterations(self) -> int:
        return self._maxNumberOfIterations

    def setMaxNumberOfIterations(self, numberOfIterations: int) -> None:
        '''Set the constraint iteration count; negative inputs clamp to 0.'''
        self._maxNumberOfIterations = max(int(numberOfIterations), 0)

    @property
    def lambdaRelaxation(self) -> float:
        return self._lambdaRelaxation

    def setLambdaRelaxation(self, newLambdaRelaxation: float) -> None:
        '''Set the constraint relaxation epsilon (kept strictly positive).'''
        if newLambdaRelaxation < const.minLambdaRelaxation:
            logger.debug(
                'Clamping lambda relaxation %g to %g',
                newLambdaRelaxation, const.minLambdaRelaxation,
            )
        self._lambdaRelaxation = max(float(newLambdaRelaxation), const.minLambdaRelaxation)

    @property
    def antiClusteringDenominatorFactor(self) -> float:
        return self._antiClusteringDenominatorFactor

    def setAntiClusteringDenominatorFactor(self, newFactor: float) -> None:
        self._antiClusteringDenominatorFactor = max(float(newFactor), 0.0)

    @property
    def antiClusteringStrength(self) -> float:
        return self._antiClusteringStrength

    def setAntiClusteringStrength(self, newStrength: float) -> None:
        self._antiClusteringStrength = max(float(newStrength), 0.0)

    @property
    def antiClusteringExponent(self) -> float:
        return self._antiClusteringExponent

    def setAntiClusteringExponent(self, newExponent: float) -> None:
        self._antiClusteringExponent = max(float(newExponent), 0.0)

    @property
    def vorticityConfinementStrength(self) -> float:
        return self._vorticityConfinementStrength

    def setVorticityConfinementStrength(self, newStrength: float) -> None:
        '''Set the vorticity confinement epsilon; negative inputs clamp to 0.'''
        self._vorticityConfinementStrength = max(float(newStrength), 0.0)

    ######################################################################
    # -- Time Step -- #
    ######################################################################

    def _onAdvanceTimeStep(
        self, timeStepInSeconds: float, forces: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        sph = self.sphSystemData
        self._originalPositions = sph.positions.copy()

        positions, velocities = self.predictPosition(
            timeStepInSeconds, sph.positions, sph.velocities, forces
        )

        pairs = sph.queryNeighborPairs(positions)
        positions = self.solveDensityConstraint(positions, pairs)

        velocities = self.updatePosition(timeStepInSeconds, positions)

        densities = sph.computeDensities(positions, pairs)
        velocities = self.computePseudoViscosity(positions, velocities, densities, pairs)
        velocities = self.computeVorticityConfinement(
            timeStepInSeconds, positions, velocities, densities, pairs
        )

        positions, velocities = self.resolveCollision(positions, velocities)

        self._pendingPairs = pairs
        self._pendingDensities = densities
        return (positions, velocities)

    def _endAdvanceTimeStep(
        self,
        newPositions: np.ndarray,
        newVelocities: np.ndarray,
        forces: np.ndarray,
    ) -> None:
        super()._endAdvanceTimeStep(newPositions, newVelocities, forces)

        sph = self.sphSystemData
        sph.setNeighborPairs(self._pendingPairs)
        sph.densities = self._pendingDensities
        self._pendingPairs = None
        self._pendingDensities = None

    def _cflLengthScale(self) -> float:
        return self.sphSystemData.kernelRadius

    def _maxDensityError(self) -> float:
        return self.sphSystemData.maxDensityError()

    ######################################################################
    # -- Prediction -- #
    ######################################################################

    def predictPosition(
        self,
        timeStepInSeconds: float,
        positions: np.ndarray,
        velocities: np.ndarray,
        forces: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        '''
        Explicit prediction from external forces.

        v* = v + dt * f / m
        x* = x + dt * v*

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (predictedPositions, predictedVelocities)
        '''
        mass = self.sphSystemData.mass
        newVelocities = velocities + timeStepInSeconds * forces / mass
        newPositions = positions + timeStepInSeconds * newVelocities
        return (newPositions, newVelocities)

    ######################################################################
    # -- Density Constraint (Vectorized) -- #
    ######################################################################

    def solveDensityConstraint(self, positions: np.ndarray, pairs: Pairs) -> np.ndarray:
        '''
        Jacobi iterations projecting positions onto rho_i = rho_0.

        The constraint gradient with respect to particle k is

            grad_k C_i = (m / rho_0) * sum_j gradW_ij      (k = i)
            grad_k C_i = -(m / rho_0) * gradW_ik           (k = j)

        so sum_k |grad_k C_i|^2 = |sum_j g_ij|^2 + sum_j |g_ij|^2 with
        g_ij = (m / rho_0) * gradW_ij.

        The tensile (anti-clustering) term is

            s_corr = -k * (W(r_ij) / W(dq))^n,   dq = factor * spacing

        Parameters:
        -----------
        positions : np.ndarray
            Predicted positions [m], shape (N, dim)
        pairs : tuple[np.ndarray, np.ndarray]
            Neighbor pairs at the predicted positions

        Returns:
        --------
        np.ndarray : Corrected positions [m], shape (N, dim)
        '''
        sph = self.sphSystemData
        positions = positions.copy()
        iIdx, jIdx = pairs
        if self._maxNumberOfIterations == 0 or len(iIdx) == 0:
            return positions

        nParticles, dim = positions.shape
        h = sph.kernelRadius
        rho0 = sph.targetDensity
        gradScale = sph.mass / rho0

        deltaQ = self._antiClusteringDenominatorFactor * sph.targetSpacing
        wDeltaQ = sph.poly6Kernel.evaluate(deltaQ, h)
        useAntiClustering = self._antiClusteringStrength > 0.0 and wDeltaQ > 0.0

        for _ in range(self._maxNumberOfIterations):
            densities = sph.computeDensities(positions, pairs)
            constraint = densities / rho0 - 1.0

            dr = positions[iIdx] - positions[jIdx]
            dist = np.linalg.norm(dr, axis=1)
            gradC = gradScale * sph.spikyKernel.gradientBatch(dr, dist, h)  # (nPairs, dim)

            # --- Lambda --- #
            gradSum = np.zeros((nParticles, dim))
            np.add.at(gradSum, iIdx, gradC)
            np.add.at(gradSum, jIdx, -gradC)

            pairGradSq = np.sum(gradC * gradC, axis=1)
            gradSqSum = np.sum(gradSum * gradSum, axis=1)
            np.add.at(gradSqSum, iIdx, pairGradSq)
            np.add.at(gradSqSum, jIdx, pairGradSq)

            lambdas = -constraint / (gradSqSum + self._lambdaRelaxation)

            # --- Position correction --- #
            pairCoeff = lambdas[iIdx] + lambdas[jIdx]
            if useAntiClustering:
                wij = sph.poly6Kernel.evaluateBatch(dist, h)
                pairCoeff = pairCoeff - self._antiClusteringStrength * (
                    wij / wDeltaQ
                ) ** self._antiClusteringExponent

            contrib = pairCoeff[:, np.newaxis] * gradC
            deltaP = np.zeros_like(positions)
            np.add.at(deltaP, iIdx, contrib)
            np.add.at(deltaP, jIdx, -contrib)

            positions += deltaP

        logger.debug(
            'Density constraint: %d iterations, max |C| = %.3e before last correction',
            self._maxNumberOfIterations, float(np.max(np.abs(constraint))),
        )
        return positions

    ######################################################################
    # -- Velocity Update -- #
    ######################################################################

    def updatePosition(self, timeStepInSeconds: float, positions: np.ndarray) -> np.ndarray:
        '''
        Velocity from the net displacement of the step.

        v = (x - x0) / dt

        Returns:
        --------
        np.ndarray : New velocities [m/s], shape (N, dim)
        '''
        return (positions - self._originalPositions) / timeStepInSeconds

    def computePseudoViscosity(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        densities: np.ndarray,
        pairs: Pairs,
    ) -> np.ndarray:
        '''
        Blend each velocity toward its kernel-weighted neighborhood average.

        v_avg_i = sum_j (m / rho_j) W_ij v_j / sum_j (m / rho_j) W_ij
        v_i <- v_i + c * (v_avg_i - v_i)

        Sums include the particle itself. The result is bounded by the
        neighborhood velocities, so it never adds energy.

        Returns:
        --------
        np.ndarray : Smoothed velocities [m/s], shape (N, dim)
        '''
        coefficient = self._pseudoViscosityCoefficient
        if coefficient <= 0.0 or len(positions) == 0:
            return velocities.copy()

        sph = self.sphSystemData
        h = sph.kernelRadius
        volumes = sph.mass / densities

        weightSum = volumes * sph.poly6Kernel.evaluate(0.0, h)
        smoothedVel = weightSum[:, np.newaxis] * velocities

        iIdx, jIdx = pairs
        if len(iIdx) > 0:
            dist = np.linalg.norm(positions[iIdx] - positions[jIdx], axis=1)
            wij = sph.poly6Kernel.evaluateBatch(dist, h)
            weightJ = volumes[jIdx] * wij
            weightI = volumes[iIdx] * wij

            np.add.at(smoothedVel, iIdx, weightJ[:, np.newaxis] * velocities[jIdx])
            np.add.at(smoothedVel, jIdx, weightI[:, np.newaxis] * velocities[iIdx])
            np.add.at(weightSum, iIdx, weightJ)
            np.add.at(weightSum, jIdx, weightI)

        smoothedVel /= weightSum[:, np.newaxis]
        return velocities + coefficient * (smoothedVel - velocities)

    ######################################################################
    # -- Vorticity Confinement -- #
    ######################################################################

    def computeVorticity(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        densities: np.ndarray,
        pairs: Pairs,
    ) -> np.ndarray:
        '''
        SPH estimate of the velocity curl.

        omega_i = sum_j (m / rho_j) gradW_ij x (v_j - v_i)

        Returns:
        --------
        np.ndarray : Vorticity, shape (N,) in 2D or (N, 3) in 3D [1/s]
        '''
        sph = self.sphSystemData
        nParticles, dim = positions.shape
        vorticity = np.zeros(nParticles) if dim == 2 else np.zeros((nParticles, 3))

        iIdx, jIdx = pairs
        if len(iIdx) == 0:
            return vorticity

        h = sph.kernelRadius
        volumes = sph.mass / densities
        dr = positions[iIdx] - positions[jIdx]
        dist = np.linalg.norm(dr, axis=1)
        gradW = sph.spikyKernel.gradientBatch(dr, dist, h)
        dv = velocities[jIdx] - velocities[iIdx]

        # grad_j W_ji = -gradW_ij and v_i - v_j = -dv, so both ends share the curl term
        if dim == 2:
            curl = _cross2(gradW, dv)
            np.add.at(vorticity, iIdx, volumes[jIdx] * curl)
            np.add.at(vorticity, jIdx, volumes[iIdx] * curl)
        else:
            curl = np.cross(gradW, dv)
            np.add.at(vorticity, iIdx, volumes[jIdx, np.newaxis] * curl)
            np.add.at(vorticity, jIdx, volumes[iIdx, np.newaxis] * curl)

        return vorticity

    def computeVorticityConfinement(
        self,
        timeStepInSeconds: float,
        positions: np.ndarray,
        velocities: np.ndarray,
        densities: np.ndarray,
        pairs: Pairs,
    ) -> np.ndarray:
        '''
        Re-inject rotational energy lost to numerical damping.

        eta_i = sum_j (m / rho_j) (|omega_j| - |omega_i|) gradW_ij
        N_i = eta_i / |eta_i|
        v_i += dt * eps * (N_i x omega_i)

        Skipped entirely when the confinement strength is zero.

        Returns:
        --------
        np.ndarray : Velocities [m/s], shape (N, dim)
        '''
        strength = self._vorticityConfinementStrength
        iIdx, jIdx = pairs
        if strength <= 0.0 or len(iIdx) == 0:
            return velocities.copy()

        sph = self.sphSystemData
        h = sph.kernelRadius
        dim = positions.shape[1]
        volumes = sph.mass / densities

        vorticity = self.computeVorticity(positions, velocities, densities, pairs)
        vorticityMag = np.abs(vorticity) if dim == 2 else np.linalg.norm(vorticity, axis=1)

        dr = positions[iIdx] - positions[jIdx]
        dist = np.linalg.norm(dr, axis=1)
        gradW = sph.spikyKernel.gradientBatch(dr, dist, h)
        magDiff = vorticityMag[jIdx] - vorticityMag[iIdx]

        # (|w_i| - |w_j|) * grad_j W_ji = (|w_j| - |w_i|) * gradW_ij
        eta = np.zeros_like(positions)
        np.add.at(eta, iIdx, (volumes[jIdx] * magDiff)[:, np.newaxis] * gradW)
        np.add.at(eta, jIdx, (volumes[iIdx] * magDiff)[:, np.newaxis] * gradW)

        etaMag = np.linalg.norm(eta, axis=1)
        normals = np.zeros_like(eta)
        hasGradient = etaMag > 1e-12
        normals[hasGradient] = eta[hasGradient] / etaMag[hasGradient, np.newaxis]

        if dim == 2:
            # N x (omega z) = (N_y omega, -N_x omega)
            confinement = np.column_stack([
                normals[:, 1] * vorticity,
                -normals[:, 0] * vorticity,
            ])
        else:
            confinement = np.cross(normals, vorticity)

        return velocities + timeStepInSeconds * strength * confinement


######################################################################
# -- Builder -- #
######################################################################

class PbfSolverBuilder:
    '''
    Fluent builder for PbfSolver.

    Defaults: target density 1000, target spacing 0.1, relative kernel
    radius 1.8, two dimensions.
    '''

    def __init__(self) -> None:
        self._targetDensity = const.waterDensity
        self._targetSpacing = const.defaultTargetSpacing
        self._relativeKernelRadius = const.defaultRelativeKernelRadius
        self._dimensions = 2

    def withTargetDensity(self, targetDensity: float) -> PbfSolverBuilder:
        self._targetDensity = targetDensity
        return self

    def withTargetSpacing(self, targetSpacing: float) -> PbfSolverBuilder:
        self._targetSpacing = targetSpacing
        return self

    def withRelativeKernelRadius(self, relativeKernelRadius: float) -> PbfSolverBuilder:
        self._relativeKernelRadius = relativeKernelRadius
        return self

    def withDimensions(self, dimensions: int) -> PbfSolverBuilder:
        self._dimensions = dimensions
        return self

    def build(self) -> PbfSolver:
        '''Construct the solver with the accumulated parameters.'''
        return PbfSolver(
            targetDensity=self._targetDensity,
            targetSpacing=self._targetSpacing,
            relativeKernelRadius=self._relativeKernelRadius,
            dimensions=self._dimensions,
        )


######################################################################
# -- Factory -- #
######################################################################

def createPbfSolver(simConfig: SimulationConfig) -> PbfSolver:
    '''
    Create a PBF solver with every parameter taken from a configuration.

    The collider is not part of the configuration; scenarios attach it.

    Parameters:
    -----------
    simConfig : SimulationConfig
        Simulation configuration

    Returns:
    --------
    PbfSolver : Configured solver with no particles
    '''
    solver = PbfSolver(
        targetDensity=simConfig.targetDensity,
        targetSpacing=simConfig.targetSpacing,
        relativeKernelRadius=simConfig.relativeKernelRadius,
        dimensions=simConfig.dimensions,
        neighborSearchType=simConfig.neighborSearchType,
    )

    solver.setGravity(simConfig.gravity)
    solver.setDragCoefficient(simConfig.dragCoefficient)
    solver.setRestitutionCoefficient(simConfig.restitutionCoefficient)

    solver.setMaxNumberOfIterations(simConfig.maxNumberOfIterations)
    solver.setPseudoViscosityCoefficient(simConfig.pseudoViscosityCoefficient)
    solver.setLambdaRelaxation(simConfig.lambdaRelaxation)
    solver.setVorticityConfinementStrength(simConfig.vorticityConfinementStrength)
    solver.setAntiClusteringDenominatorFactor(simConfig.antiClusteringDenominatorFactor)
    solver.setAntiClusteringStrength(simConfig.antiClusteringStrength)
    solver.setAntiClusteringExponent(simConfig.antiClusteringExponent)

    if simConfig.fixedSubTimeSteps is None:
        solver.setIsUsingFixedSubTimeSteps(False)
    else:
        solver.setIsUsingFixedSubTimeSteps(True)
        solver.setNumberOfFixedSubTimeSteps(simConfig.fixedSubTimeSteps)

    return solver
