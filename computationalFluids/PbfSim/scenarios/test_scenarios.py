# -- Scenario Tests -- #

'''
Dam break and droplet set-ups produce valid initial states.

Sean Bowman [10/19/2026]
'''

import numpy as np
import pytest

from computationalFluids.PbfSim.geometry.surfaces import Box, Plane
from computationalFluids.PbfSim.scenarios.damBreak import DamBreakConfig, createDamBreak
from computationalFluids.PbfSim.scenarios.droplet import DropletConfig, createDroplet
from computationalFluids.PbfSim.sph.protocols import SimulationConfig


@pytest.mark.parametrize('preset', [DamBreakConfig.small2D, DamBreakConfig.standard2D, DamBreakConfig.small3D])
def testDamBreakPresets(preset):
    damConfig = preset()
    simConfig, solver = createDamBreak(damConfig)
    sph = solver.sphSystemData

    assert simConfig.dimensions == damConfig.dimensions
    assert sph.numberOfParticles > 0
    assert sph.targetSpacing == pytest.approx(damConfig.particleSpacing)
    assert isinstance(solver.collider.surface, Box)

    # Every particle starts at least one radius inside the container
    container = solver.collider.surface
    distances = container.closestPointBatch(sph.positions).distances
    assert np.all(distances >= sph.radius - 1e-9)
    assert not np.any(container.isInside(sph.positions))


def testSmallDamBreakParticleCount():
    _, solver = createDamBreak(DamBreakConfig.small2D())
    assert solver.sphSystemData.numberOfParticles == 10 * 16


def testDamBreakHonorsSimulationConfig():
    simConfig = SimulationConfig(targetSpacing=0.1, frictionCoefficient=0.3, fixedSubTimeSteps=3)
    returnedConfig, solver = createDamBreak(DamBreakConfig.small2D(), simConfig)

    assert returnedConfig is simConfig
    assert solver.sphSystemData.targetSpacing == pytest.approx(0.1)
    assert solver.collider.frictionCoefficient == pytest.approx(0.3)
    assert solver.numberOfFixedSubTimeSteps == 3


def testDamBreakColumnStaysInTank():
    damConfig = DamBreakConfig.small2D()
    _, solver = createDamBreak(damConfig)
    state = solver.advance(1.0 / 60.0)
    positions = solver.sphSystemData.positions

    assert state.maxVelocity < 2.0
    assert np.all(positions >= -1e-9)
    assert np.all(positions <= np.array([damConfig.tankWidth, damConfig.tankHeight]) + 1e-9)


def testDamBreakParticlesKeepClearOfWalls():
    _, solver = createDamBreak(DamBreakConfig.small2D())
    sph = solver.sphSystemData
    container = solver.collider.surface

    for _ in range(120):
        solver.advanceTimeStep(1.0 / 240.0)
        distances = container.closestPointBatch(sph.positions).distances
        assert np.all(distances >= sph.radius - 1e-9)
        assert not np.any(container.isInside(sph.positions))


def testDropletSetup():
    simConfig, solver = createDroplet(DropletConfig(dimensions=3, dropHeight=2.0))
    sph = solver.sphSystemData

    assert sph.numberOfParticles == 1
    np.testing.assert_allclose(sph.positions[0], [0.0, 0.0, 2.0])
    assert isinstance(solver.collider.surface, Plane)
    assert solver.restitutionCoefficient == pytest.approx(0.5)
    assert solver.isUsingFixedSubTimeSteps
    assert simConfig.fixedSubTimeSteps == 4
