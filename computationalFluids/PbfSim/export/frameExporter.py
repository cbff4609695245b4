# -- Frame Exporter -- #

'''
Collects simulation frames and writes them to JSON.

Each frame stores particle positions, velocity magnitudes and SPH
densities together with the scalar state (time, step, energies).
The exported file is self-describing: a metadata block with the
simulation configuration, the frame list and an energy history for
quick plotting.

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import json
import logging
import os

import numpy as np

from computationalFluids.PbfSim.sph.particles import ParticleSystemData
from computationalFluids.PbfSim.sph.protocols import SimulationConfig, SimulationState

logger = logging.getLogger(__name__)

# Decimal places kept for particle fields in the exported JSON
_precision = 5


class FrameExporter:
    '''
    Accumulates frames during a run and exports them as JSON.
    '''

    def __init__(self) -> None:
        self._frames: list[dict] = []

    @property
    def nFrames(self) -> int:
        '''Number of recorded frames.'''
        return len(self._frames)

    @property
    def frames(self) -> list[dict]:
        return list(self._frames)

    def clear(self) -> None:
        self._frames.clear()

    def addFrame(self, state: SimulationState, particles: ParticleSystemData) -> None:
        '''
        Record one frame.

        Parameters:
        -----------
        state : SimulationState
            Scalar simulation state at this frame
        particles : ParticleSystemData
            Particle data (densities are included for SPH data)
        '''
        speeds = np.linalg.norm(particles.velocities, axis=1)
        densities = getattr(particles, 'densities', None)

        frame = {
            'time': float(state.time),
            'step': int(state.step),
            'kineticEnergy': float(state.kineticEnergy),
            'potentialEnergy': float(state.potentialEnergy),
            'maxDensityError': float(state.maxDensityError),
            'positions': np.round(particles.positions, _precision).tolist(),
            'speeds': np.round(speeds, _precision).tolist(),
        }
        if densities is not None:
            frame['densities'] = np.round(densities, _precision).tolist()

        self._frames.append(frame)

    def toDict(self, config: SimulationConfig, scenarioName: str) -> dict:
        '''
        Assemble the export document.

        Parameters:
        -----------
        config : SimulationConfig
            Configuration used for the run
        scenarioName : str
            Scenario label stored in the metadata

        Returns:
        --------
        dict : JSON-serializable export document
        '''
        metadata = {
            'scenario': scenarioName,
            'dimensions': config.dimensions,
            'targetDensity': config.targetDensity,
            'targetSpacing': config.targetSpacing,
            'kernelRadius': config.kernelRadius,
            'gravity': np.asarray(config.gravity).tolist(),
            'endTime': config.endTime,
            'outputInterval': config.outputInterval,
            'nFrames': self.nFrames,
        }

        energyHistory = {
            'time': [f['time'] for f in self._frames],
            'kineticEnergy': [f['kineticEnergy'] for f in self._frames],
            'potentialEnergy': [f['potentialEnergy'] for f in self._frames],
        }

        return {
            'metadata': metadata,
            'energyHistory': energyHistory,
            'frames': self._frames,
        }

    def export(self, config: SimulationConfig, outputDir: str, scenarioName: str) -> str:
        '''
        Write all frames to {outputDir}/{scenarioName}_frames.json.

        Returns:
        --------
        str : Path of the written file
        '''
        os.makedirs(outputDir, exist_ok=True)
        exportPath = os.path.join(outputDir, f'{scenarioName}_frames.json')

        with open(exportPath, 'w') as f:
            json.dump(self.toDict(config, scenarioName), f)

        logger.info('Exported %d frames to %s', self.nFrames, exportPath)
        return exportPath
