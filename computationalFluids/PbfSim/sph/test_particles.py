# -- Particle System Data Tests -- #

'''
Particle bookkeeping, lattice-calibrated SPH mass and densities.

Sean Bowman [10/19/2026]
'''

import numpy as np
import pytest

from computationalFluids.PbfSim.sph.particles import ParticleSystemData, SphSystemData


def _lattice(nPerAxis: int, spacing: float, dimensions: int) -> np.ndarray:
    axis = np.arange(nPerAxis) * spacing
    grids = np.meshgrid(*([axis] * dimensions), indexing='ij')
    return np.column_stack([g.ravel() for g in grids])


def testAddParticlesDefaultsToRest():
    data = ParticleSystemData.empty(2)
    data.addParticles(np.array([[0.0, 1.0], [2.0, 3.0]]))

    assert data.numberOfParticles == 2
    assert data.dimensions == 2
    np.testing.assert_array_equal(data.velocities, np.zeros((2, 2)))
    np.testing.assert_array_equal(data.forces, np.zeros((2, 2)))


def testAddParticlesRejectsWrongShape():
    data = ParticleSystemData.empty(3)
    with pytest.raises(ValueError):
        data.addParticles(np.zeros((2, 2)))
    with pytest.raises(ValueError):
        data.addParticles(np.zeros((2, 3)), velocities=np.zeros((1, 3)))


def testEnergiesAndMaxSpeed():
    data = ParticleSystemData.empty(2, mass=2.0)
    data.addParticles(np.array([[0.0, 1.0], [0.0, 3.0]]), velocities=np.array([[3.0, 4.0], [0.0, 1.0]]))

    assert data.kineticEnergy() == pytest.approx(0.5 * 2.0 * (25.0 + 1.0))
    assert data.potentialEnergy(10.0) == pytest.approx(2.0 * 10.0 * 4.0)
    assert data.maxSpeed() == pytest.approx(5.0)
    assert ParticleSystemData.empty(2).maxSpeed() == 0.0


def testRadiusFollowsTargetSpacing():
    sph = SphSystemData.empty(2, targetSpacing=0.05)
    assert sph.radius == pytest.approx(0.05)
    assert sph.kernelRadius == pytest.approx(0.05 * 1.8)

    sph.setTargetSpacing(0.2)
    assert sph.radius == pytest.approx(0.2)


@pytest.mark.parametrize('dimensions, nPerAxis', [(2, 11), (3, 7)])
def testLatticeInteriorHasTargetDensity(dimensions, nPerAxis):
    spacing = 0.1
    sph = SphSystemData.empty(dimensions, targetDensity=1000.0, targetSpacing=spacing)
    sph.addParticles(_lattice(nPerAxis, spacing, dimensions))
    sph.buildNeighborLists()
    sph.updateDensities()

    center = np.full(dimensions, (nPerAxis // 2) * spacing)
    centerIdx = int(np.argmin(np.linalg.norm(sph.positions - center, axis=1)))
    assert sph.densities[centerIdx] == pytest.approx(1000.0, rel=1e-10)

    # Free-surface particles miss neighbors
    assert sph.densities[0] < 1000.0
    assert sph.maxDensityError() > 0.0


def testSetterValidation():
    sph = SphSystemData.empty(2)
    with pytest.raises(ValueError):
        sph.setTargetDensity(0.0)
    with pytest.raises(ValueError):
        sph.setTargetSpacing(-0.1)
    with pytest.raises(ValueError):
        sph.setRelativeKernelRadius(0.0)


def testMassScalesWithTargetDensity():
    sph = SphSystemData.empty(2)
    mass = sph.mass
    sph.setTargetDensity(2000.0)
    assert sph.mass == pytest.approx(2.0 * mass)


def testNeighborListsAndDensityBookkeeping():
    sph = SphSystemData.empty(2, targetSpacing=0.1)
    sph.addParticles(np.array([[0.0, 0.0], [0.1, 0.0], [1.0, 1.0]]))
    assert len(sph.densities) == 3

    sph.buildNeighborLists()
    lists = sph.neighborLists
    assert lists[0].tolist() == [1]
    assert lists[1].tolist() == [0]
    assert lists[2].tolist() == []

    # Isolated particle only sees itself
    densities = sph.computeDensities()
    assert densities[2] == pytest.approx(sph.mass * sph.poly6Kernel.evaluate(0.0, sph.kernelRadius))
    assert densities[0] == pytest.approx(densities[1])


def testAddParticlesClearsStoredNeighbors():
    sph = SphSystemData.empty(2, targetSpacing=0.1)
    sph.addParticles(np.array([[0.0, 0.0], [0.1, 0.0]]))
    sph.buildNeighborLists()
    assert len(sph.neighborLists) == 2

    sph.addParticles(np.array([[0.05, 0.05]]))

    assert len(sph.neighborPairs[0]) == 0
    assert len(sph.neighborLists) == 3
    assert sph.neighborLists[2].tolist() == []

    sph.buildNeighborLists()
    assert sorted(sph.neighborLists[2].tolist()) == [0, 1]
