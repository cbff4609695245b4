# -- PBF Solver Tests -- #

'''
Builder defaults, parameter clamps, constraint projection and
end-to-end behavior of the Position Based Fluids solver.

Sean Bowman [10/19/2026]
'''

import math

import numpy as np
import pytest

from computationalFluids.PbfSim.collision.collider import Collider
from computationalFluids.PbfSim.geometry.surfaces import DegenerateSurfaceError, Sphere
from computationalFluids.PbfSim.scenarios.droplet import DropletConfig, createDroplet
from computationalFluids.PbfSim.solvers.pbfSolver import PbfSolver, PbfSolverBuilder
from computationalFluids.PbfSim.sph.protocols import SimulationState

spacing = 0.1


def _restLattice(nPerAxis: int) -> np.ndarray:
    axis = np.arange(nPerAxis) * spacing
    xx, yy = np.meshgrid(axis, axis, indexing='ij')
    return np.column_stack([xx.ravel(), yy.ravel()])


def _weightlessSolver() -> PbfSolver:
    solver = PbfSolver.builder().withTargetSpacing(spacing).build()
    solver.setGravity(np.zeros(2))
    solver.setDragCoefficient(0.0)
    return solver


######################################################################
# -- Construction and Parameters -- #
######################################################################

def testBuilderDefaults():
    builder = PbfSolver.builder()
    assert isinstance(builder, PbfSolverBuilder)

    solver = builder.build()
    sph = solver.sphSystemData
    assert sph.targetDensity == pytest.approx(1000.0)
    assert sph.targetSpacing == pytest.approx(0.1)
    assert sph.relativeKernelRadius == pytest.approx(1.8)
    assert solver.dimensions == 2

    assert solver.maxNumberOfIterations == 10
    assert solver.pseudoViscosityCoefficient == pytest.approx(0.01)
    assert solver.lambdaRelaxation == pytest.approx(10.0)
    assert solver.antiClusteringDenominatorFactor == pytest.approx(0.2)
    assert solver.antiClusteringStrength == pytest.approx(1e-6)
    assert solver.antiClusteringExponent == pytest.approx(4.0)
    assert solver.vorticityConfinementStrength == 0.0


def testBuilderOverrides():
    solver = (
        PbfSolver.builder()
        .withTargetDensity(500.0)
        .withTargetSpacing(0.05)
        .withRelativeKernelRadius(2.0)
        .withDimensions(3)
        .build()
    )
    sph = solver.sphSystemData
    assert sph.targetDensity == pytest.approx(500.0)
    assert sph.kernelRadius == pytest.approx(0.1)
    assert sph.radius == pytest.approx(0.05)
    assert solver.dimensions == 3
    np.testing.assert_allclose(solver.gravity, [0.0, 0.0, -9.81])


def testParameterClamps():
    solver = PbfSolver()

    solver.setPseudoViscosityCoefficient(2.0)
    assert solver.pseudoViscosityCoefficient == 1.0
    solver.setPseudoViscosityCoefficient(-1.0)
    assert solver.pseudoViscosityCoefficient == 0.0

    solver.setMaxNumberOfIterations(-4)
    assert solver.maxNumberOfIterations == 0

    solver.setLambdaRelaxation(0.0)
    assert solver.lambdaRelaxation > 0.0

    solver.setVorticityConfinementStrength(-1.0)
    assert solver.vorticityConfinementStrength == 0.0


######################################################################
# -- Time Stepping -- #
######################################################################

def testZeroAndNegativeTimeSteps():
    solver = _weightlessSolver()
    solver.sphSystemData.addParticles(np.array([[0.0, 0.0], [0.05, 0.0]]))
    before = solver.sphSystemData.positions.copy()

    solver.advanceTimeStep(0.0)
    np.testing.assert_array_equal(solver.sphSystemData.positions, before)
    assert solver.currentStep == 0

    with pytest.raises(ValueError):
        solver.advanceTimeStep(-1e-3)


def testZeroIterationsKeepsPrediction():
    solver = PbfSolver.builder().withTargetSpacing(spacing).build()
    solver.setDragCoefficient(0.0)
    solver.setMaxNumberOfIterations(0)
    solver.setPseudoViscosityCoefficient(0.0)

    positions = np.array([[0.0, 1.0], [0.03, 1.0]])
    velocities = np.array([[1.0, 0.0], [0.0, 0.5]])
    solver.sphSystemData.addParticles(positions, velocities)

    dt = 0.01
    solver.advanceTimeStep(dt)

    expectedVel = velocities + dt * np.array([0.0, -9.81])
    np.testing.assert_allclose(solver.sphSystemData.velocities, expectedVel)
    np.testing.assert_allclose(solver.sphSystemData.positions, positions + dt * expectedVel)


def testRestLatticeInteriorIsUnchanged():
    solver = _weightlessSolver()
    nPerAxis = 45
    solver.sphSystemData.addParticles(_restLattice(nPerAxis))
    before = solver.sphSystemData.positions.copy()

    solver.advanceTimeStep(1.0 / 60.0)

    # Free-surface disturbance spreads about two rows per iteration
    grid = np.arange(nPerAxis * nPerAxis).reshape(nPerAxis, nPerAxis)
    center = grid[21:24, 21:24].ravel()
    displacement = solver.sphSystemData.positions[center] - before[center]
    assert np.max(np.abs(displacement)) < 1e-8
    assert np.max(np.abs(solver.sphSystemData.velocities[center])) < 1e-6
    np.testing.assert_allclose(solver.sphSystemData.densities[center], 1000.0, rtol=1e-8)


def testCompressedClusterExpands():
    solver = _weightlessSolver()
    axis = np.arange(5) * 0.5 * spacing
    xx, yy = np.meshgrid(axis, axis, indexing='ij')
    solver.sphSystemData.addParticles(np.column_stack([xx.ravel(), yy.ravel()]))

    def spread(positions):
        return float(np.mean(np.linalg.norm(positions - positions.mean(axis=0), axis=1)))

    before = solver.sphSystemData.positions.copy()
    solver.advanceTimeStep(1e-3)
    after = solver.sphSystemData.positions

    assert spread(after) > spread(before)
    np.testing.assert_allclose(after.mean(axis=0), before.mean(axis=0), atol=1e-12)


def _projectClosePair(antiClusteringStrength: float, denominatorFactor: float = 0.2) -> np.ndarray:
    solver = _weightlessSolver()
    solver.setMaxNumberOfIterations(1)
    solver.setAntiClusteringStrength(antiClusteringStrength)
    solver.setAntiClusteringDenominatorFactor(denominatorFactor)

    positions = np.array([[0.0, 0.0], [0.2 * spacing, 0.0]])
    pairs = solver.sphSystemData.queryNeighborPairs(positions)
    return solver.solveDensityConstraint(positions, pairs)


def testAntiClusteringPushesClosePairApart():
    without = _projectClosePair(0.0)
    strong = _projectClosePair(1e-2)

    separationWithout = np.linalg.norm(without[1] - without[0])
    separationStrong = np.linalg.norm(strong[1] - strong[0])

    assert separationStrong > separationWithout
    assert separationStrong > 0.2 * spacing
    np.testing.assert_allclose(strong.mean(axis=0), [0.1 * spacing, 0.0], atol=1e-12)


def testAntiClusteringSkippedOutsideKernelSupport():
    # dq = 2 * spacing lies beyond the kernel radius, so W(dq) = 0
    without = _projectClosePair(0.0, denominatorFactor=2.0)
    skipped = _projectClosePair(1.0, denominatorFactor=2.0)

    assert np.all(np.isfinite(skipped))
    np.testing.assert_allclose(skipped, without)


def testDegenerateColliderLeavesStateUntouched():
    solver = _weightlessSolver()
    solver.sphSystemData.addParticles(np.array([[0.0, 0.0]]), np.array([[0.0, 0.0]]))
    solver.setCollider(Collider(Sphere(center=[0.0, 0.0], radius=1.0)))
    before = solver.sphSystemData.positions.copy()

    with pytest.raises(DegenerateSurfaceError):
        solver.advanceTimeStep(0.01)

    np.testing.assert_array_equal(solver.sphSystemData.positions, before)
    assert solver.currentStep == 0
    assert solver.currentTime == 0.0


def testAdaptiveSubStepsUseKernelRadius():
    solver = PbfSolver()
    solver.sphSystemData.addParticles(np.array([[0.0, 0.0]]), np.array([[10.0, 0.0]]))

    interval = 0.1
    speed = 10.0 + 9.81 * interval
    expected = math.ceil(interval * speed / (0.4 * solver.sphSystemData.kernelRadius))
    assert solver.numberOfSubTimeSteps(interval) == expected


def testStepReportsState():
    solver = _weightlessSolver()
    solver.sphSystemData.addParticles(_restLattice(5))
    state = solver.advance(0.01)

    assert isinstance(state, SimulationState)
    assert state.step == 1
    assert np.all(solver.sphSystemData.densities > 0.0)
    assert state.maxDensityError == pytest.approx(solver.sphSystemData.maxDensityError())


######################################################################
# -- Velocity Post-Processing -- #
######################################################################

def _pairSetup():
    solver = _weightlessSolver()
    sph = solver.sphSystemData
    positions = np.array([[0.0, 0.0], [0.1, 0.0]])
    pairs = sph.queryNeighborPairs(positions)
    densities = sph.computeDensities(positions, pairs)
    return solver, positions, pairs, densities


def testPseudoViscosityBlendsTowardNeighbors():
    solver, positions, pairs, densities = _pairSetup()
    velocities = np.array([[1.0, 0.0], [-1.0, 0.0]])

    solver.setPseudoViscosityCoefficient(0.0)
    untouched = solver.computePseudoViscosity(positions, velocities, densities, pairs)
    np.testing.assert_array_equal(untouched, velocities)

    solver.setPseudoViscosityCoefficient(1.0)
    smoothed = solver.computePseudoViscosity(positions, velocities, densities, pairs)
    assert 0.0 < smoothed[0, 0] < 1.0
    assert smoothed[1, 0] == pytest.approx(-smoothed[0, 0])
    assert np.sum(smoothed * smoothed) < np.sum(velocities * velocities)


def testVorticityOfRigidRotation():
    solver = _weightlessSolver()
    sph = solver.sphSystemData
    positions = _restLattice(9) - 4 * spacing
    omega = 3.0
    velocities = omega * np.column_stack([-positions[:, 1], positions[:, 0]])

    pairs = sph.queryNeighborPairs(positions)
    densities = sph.computeDensities(positions, pairs)
    vorticity = solver.computeVorticity(positions, velocities, densities, pairs)

    centerIdx = int(np.argmin(np.linalg.norm(positions, axis=1)))
    assert vorticity[centerIdx] == pytest.approx(2.0 * omega, rel=0.25)


def testVorticityConfinementDisabledAtZeroStrength():
    solver, positions, pairs, densities = _pairSetup()
    velocities = np.array([[0.0, 1.0], [0.0, -1.0]])

    result = solver.computeVorticityConfinement(0.01, positions, velocities, densities, pairs)
    np.testing.assert_array_equal(result, velocities)


def testVorticityConfinementAddsVelocity():
    solver = _weightlessSolver()
    sph = solver.sphSystemData
    positions = _restLattice(7) - 3 * spacing
    radii = np.linalg.norm(positions, axis=1)
    # Vortex concentrated at the origin
    velocities = np.column_stack([-positions[:, 1], positions[:, 0]]) * np.exp(-radii / 0.1)[:, None]

    pairs = sph.queryNeighborPairs(positions)
    densities = sph.computeDensities(positions, pairs)

    solver.setVorticityConfinementStrength(1.0)
    result = solver.computeVorticityConfinement(0.01, positions, velocities, densities, pairs)
    assert not np.allclose(result, velocities)


######################################################################
# -- End to End -- #
######################################################################

def testDropletBouncesAndSettles():
    _, solver = createDroplet(DropletConfig(dropHeight=1.0, restitutionCoefficient=0.5))
    radius = solver.sphSystemData.radius
    dt = 1.0 / 240.0

    heights = []
    for _ in range(900):
        solver.advanceTimeStep(dt)
        heights.append(solver.sphSystemData.positions[0, 1])
        assert heights[-1] >= radius - 1e-9

    apexes = [
        heights[k] for k in range(1, len(heights) - 1)
        if heights[k] > heights[k - 1] and heights[k] >= heights[k + 1] and heights[k] > radius + 1e-3
    ]
    assert len(apexes) >= 2
    assert all(later < earlier for earlier, later in zip(apexes, apexes[1:]))
    assert heights[-1] == pytest.approx(radius, abs=1e-6)
