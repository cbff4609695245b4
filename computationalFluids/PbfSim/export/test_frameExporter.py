# -- Frame Exporter Tests -- #

'''
Frame recording and JSON export.

Sean Bowman [10/19/2026]
'''

import json
import os

import numpy as np

from computationalFluids.PbfSim.export.frameExporter import FrameExporter
from computationalFluids.PbfSim.sph.particles import ParticleSystemData, SphSystemData
from computationalFluids.PbfSim.sph.protocols import SimulationConfig, SimulationState


def _state(time: float, step: int) -> SimulationState:
    return SimulationState(
        time=time, step=step, dt=0.01,
        kineticEnergy=0.5, potentialEnergy=2.0, maxVelocity=1.0,
    )


def testAddFrameRecordsParticleFields():
    particles = SphSystemData.empty(2)
    particles.addParticles(np.array([[0.1, 0.2], [0.3, 0.4]]), np.array([[3.0, 4.0], [0.0, 0.0]]))
    particles.updateDensities()

    exporter = FrameExporter()
    exporter.addFrame(_state(0.0, 0), particles)

    assert exporter.nFrames == 1
    frame = exporter.frames[0]
    assert frame['positions'] == [[0.1, 0.2], [0.3, 0.4]]
    assert frame['speeds'] == [5.0, 0.0]
    assert len(frame['densities']) == 2


def testPlainParticlesHaveNoDensities():
    particles = ParticleSystemData.empty(3)
    particles.addParticles(np.zeros((1, 3)))

    exporter = FrameExporter()
    exporter.addFrame(_state(0.0, 0), particles)

    assert 'densities' not in exporter.frames[0]


def testExportWritesJson(tmp_path):
    particles = SphSystemData.empty(2)
    particles.addParticles(np.array([[0.0, 1.0]]))

    exporter = FrameExporter()
    for step in range(3):
        exporter.addFrame(_state(0.1 * step, step), particles)

    config = SimulationConfig(endTime=0.2, outputInterval=0.1)
    exportPath = exporter.export(config, str(tmp_path / 'frames'), 'unitTest')

    assert os.path.basename(exportPath) == 'unitTest_frames.json'
    with open(exportPath, 'r') as f:
        document = json.load(f)

    assert document['metadata']['scenario'] == 'unitTest'
    assert document['metadata']['nFrames'] == 3
    assert document['metadata']['gravity'] == [0.0, -9.81]
    assert document['energyHistory']['time'] == [0.0, 0.1, 0.2]
    assert len(document['frames']) == 3


def testClear():
    particles = SphSystemData.empty(2)
    exporter = FrameExporter()
    exporter.addFrame(_state(0.0, 0), particles)
    exporter.clear()
    assert exporter.nFrames == 0
