# -- PBF Simulation Runner -- #

'''
Command-line entry point for running Position Based Fluids simulations.

Builds a scenario (dam break or bouncing droplet), advances the
solver frame by frame with progress reporting, and optionally
exports frame data to JSON.

Usage:
    pbfsim                                          # Default small 2D dam break
    pbfsim --preset standard                        # Standard quality 2D dam break
    pbfsim --scenario droplet                       # Single bouncing particle
    pbfsim --config configs/damBreak2D.json
    pbfsim --no-export --verbose                    # Debug logging, no export

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import argparse
import json
import logging
import math
import time as timeModule

from computationalFluids.PbfSim.export.frameExporter import FrameExporter
from computationalFluids.PbfSim.scenarios.damBreak import DamBreakConfig, createDamBreak
from computationalFluids.PbfSim.scenarios.droplet import DropletConfig, createDroplet
from computationalFluids.PbfSim.solvers.pbfSolver import PbfSolver
from computationalFluids.PbfSim.sph.protocols import SimulationConfig

logger = logging.getLogger(__name__)

_defaultOutputDir = 'computationalFluids/PbfSim/output'


#--------------------------------------------------------------------#
# -- CLI Argument Parser -- #
#--------------------------------------------------------------------#

def buildParser() -> argparse.ArgumentParser:
    '''Build the CLI argument parser.'''
    parser = argparse.ArgumentParser(
        description='PbfSim -- Position Based Fluids simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to JSON configuration file',
    )
    parser.add_argument(
        '--scenario', type=str, default='damBreak',
        choices=['damBreak', 'droplet'],
        help='Simulation scenario type (default: damBreak)',
    )
    parser.add_argument(
        '--preset', type=str, default='small',
        choices=['small', 'standard', 'small3D'],
        help='Dam break preset (default: small)',
    )
    parser.add_argument(
        '--no-export', action='store_true',
        help='Skip frame data export',
    )
    parser.add_argument(
        '--output-dir', type=str, default=_defaultOutputDir,
        help='Output directory for exported frames (default: PbfSim/output)',
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='Enable debug logging',
    )

    return parser


#--------------------------------------------------------------------#
# -- Runner Class -- #
#--------------------------------------------------------------------#

class PbfSimRunner:
    '''
    Runs a PBF simulation and stores results.

    Handles the full pipeline: scenario setup, simulation loop
    with progress reporting, and optional frame export.
    '''

    def __init__(self) -> None:
        self._exporter: FrameExporter = FrameExporter()

    @property
    def exporter(self) -> FrameExporter:
        return self._exporter

    def runFromConfig(
        self,
        configPath: str,
        doExport: bool = True,
        exportDir: str = _defaultOutputDir,
    ) -> dict:
        '''
        Run simulation from a JSON configuration file.

        The scenario is chosen by simulation.type ('damBreak' or
        'droplet'); geometry comes from the 'tank' or 'droplet'
        section and solver settings from SimulationConfig.fromJson.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file
        doExport : bool
            Whether to export frame data
        exportDir : str
            Output directory for frame export

        Returns:
        --------
        dict : Simulation results summary
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)

        simConfig = SimulationConfig.fromDict(data)
        scenarioType = data.get('simulation', {}).get('type', 'damBreak')

        if scenarioType == 'droplet':
            dropSection = data.get('droplet', {})
            dropConfig = DropletConfig(
                dimensions=simConfig.dimensions,
                dropHeight=dropSection.get('dropHeight', 1.0),
            )
            simConfig, solver = createDroplet(dropConfig, simConfig)
        elif scenarioType == 'damBreak':
            tankSection = data.get('tank', {})
            damConfig = DamBreakConfig(
                dimensions=simConfig.dimensions,
                tankWidth=tankSection.get('width', 2.0),
                tankDepth=tankSection.get('depth', 1.0),
                tankHeight=tankSection.get('height', 1.0),
                columnWidth=tankSection.get('columnWidth', 0.5),
                columnDepth=tankSection.get('columnDepth', 1.0),
                columnHeight=tankSection.get('columnHeight', 0.8),
            )
            simConfig, solver = createDamBreak(damConfig, simConfig)
        else:
            raise ValueError(f'Unknown scenario type: {scenarioType}')

        return self.run(simConfig, solver, scenarioType, doExport=doExport, exportDir=exportDir)

    def runDamBreak(
        self,
        damConfig: DamBreakConfig,
        doExport: bool = True,
        exportDir: str = _defaultOutputDir,
    ) -> dict:
        '''Run a dam break simulation (see run).'''
        simConfig, solver = createDamBreak(damConfig)
        return self.run(simConfig, solver, 'damBreak', doExport=doExport, exportDir=exportDir)

    def runDroplet(
        self,
        dropConfig: DropletConfig,
        doExport: bool = True,
        exportDir: str = _defaultOutputDir,
    ) -> dict:
        '''Run the bouncing droplet simulation (see run).'''
        simConfig, solver = createDroplet(dropConfig)
        return self.run(simConfig, solver, 'droplet', doExport=doExport, exportDir=exportDir)

    def run(
        self,
        simConfig: SimulationConfig,
        solver: PbfSolver,
        scenarioName: str,
        doExport: bool = True,
        exportDir: str = _defaultOutputDir,
    ) -> dict:
        '''
        Advance a prepared solver to the configured end time.

        Parameters:
        -----------
        simConfig : SimulationConfig
            Configuration (end time, output interval)
        solver : PbfSolver
            Solver with particles and collider already set up
        scenarioName : str
            Label for banners and the export file name
        doExport : bool
            Whether to export frame data
        exportDir : str
            Output directory for frame export

        Returns:
        --------
        dict : Simulation results summary
        '''
        sph = solver.sphSystemData

        print()
        print('=' * 62)
        print(f'  PBFSIM -- POSITION BASED FLUIDS ({scenarioName})')
        print('=' * 62)
        print()

        #--------------------------------------------------------------------#
        # Scenario Setup
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  SCENARIO SETUP')
        print('-' * 62)
        print(f'  Dimensions:        {simConfig.dimensions:8d}D')
        print(f'  Target Density:    {sph.targetDensity:8.1f} kg/m^{simConfig.dimensions}')
        print(f'  Target Spacing:    {sph.targetSpacing:8.4f} m')
        print(f'  Kernel Radius:     {sph.kernelRadius:8.4f} m')
        print(f'  Particle Mass:     {sph.mass:8.4f} kg')
        print(f'  Particles:         {sph.numberOfParticles:8d}')
        print(f'  Iterations:        {solver.maxNumberOfIterations:8d}')
        if solver.isUsingFixedSubTimeSteps:
            print(f'  Sub-steps/frame:   {solver.numberOfFixedSubTimeSteps:8d}')
        else:
            print(f'  Sub-steps/frame:   {"adaptive":>8}')
        print(f'  End Time:          {simConfig.endTime:8.2f} s')
        print()

        sph.buildNeighborLists()
        sph.updateDensities()
        self._exporter.addFrame(solver.currentState, sph)

        #--------------------------------------------------------------------#
        # Simulation Loop
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  RUNNING SIMULATION')
        print('-' * 62)
        print()
        print(f'  {"Time":>8}  {"Step":>8}  {"dt":>10}  {"MaxVel":>8}  {"DensErr":>8}  {"Energy":>10}')
        print(f'  {"(s)":>8}  {"":>8}  {"(s)":>10}  {"(m/s)":>8}  {"(%)":>8}  {"(J)":>10}')
        print('  ' + '-' * 58)

        wallClockStart = timeModule.time()
        nFrames = max(1, int(math.ceil(simConfig.endTime / simConfig.outputInterval - 1e-9)))
        printEvery = max(1, nFrames // 20)

        for frameIndex in range(1, nFrames + 1):
            state = solver.update(frameIndex, simConfig.outputInterval)
            self._exporter.addFrame(state, sph)

            if frameIndex % printEvery == 0 or frameIndex == nFrames:
                print(
                    f'  {state.time:8.4f}  {state.step:8d}  {state.dt:10.2e}  '
                    f'{state.maxVelocity:8.4f}  {state.maxDensityError * 100:8.3f}  '
                    f'{state.totalEnergy:10.4f}'
                )

        wallClockSeconds = timeModule.time() - wallClockStart
        finalState = solver.currentState

        print()
        print(f'  Simulation complete.')
        print(f'  Total steps:       {finalState.step:8d}')
        print(f'  Wall-clock time:   {wallClockSeconds:8.1f} s')
        print(f'  Frames recorded:   {self._exporter.nFrames:8d}')
        print()

        #--------------------------------------------------------------------#
        # Export
        #--------------------------------------------------------------------#
        exportPath = None
        if doExport:
            print('-' * 62)
            print('  EXPORTING FRAME DATA')
            print('-' * 62)

            exportPath = self._exporter.export(
                config=simConfig,
                outputDir=exportDir,
                scenarioName=scenarioName,
            )
            print(f'  Exported to: {exportPath}')
            print()

        #--------------------------------------------------------------------#
        # Summary
        #--------------------------------------------------------------------#
        print('=' * 62)
        print('  SIMULATION SUMMARY')
        print('=' * 62)
        print(f'  Final KE:          {finalState.kineticEnergy:10.6f} J')
        print(f'  Final PE:          {finalState.potentialEnergy:10.6f} J')
        print(f'  Final Total E:     {finalState.totalEnergy:10.6f} J')
        print(f'  Max Density Error: {finalState.maxDensityError * 100:8.3f} %')
        print(f'  Max Velocity:      {finalState.maxVelocity:8.4f} m/s')
        print('=' * 62)
        print()

        return {
            'finalState': finalState,
            'wallClockSeconds': wallClockSeconds,
            'nFrames': self._exporter.nFrames,
            'exportPath': exportPath,
        }


#--------------------------------------------------------------------#
# -- CLI Entry Point -- #
#--------------------------------------------------------------------#

def main(argv: list[str] | None = None) -> None:
    '''CLI entry point.'''
    parser = buildParser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    runner = PbfSimRunner()
    doExport = not args.no_export

    if args.config:
        runner.runFromConfig(args.config, doExport=doExport, exportDir=args.output_dir)
    elif args.scenario == 'droplet':
        runner.runDroplet(DropletConfig(), doExport=doExport, exportDir=args.output_dir)
    else:
        damBreakPresets = {
            'small': DamBreakConfig.small2D,
            'standard': DamBreakConfig.standard2D,
            'small3D': DamBreakConfig.small3D,
        }
        damConfig = damBreakPresets[args.preset]()
        runner.runDamBreak(damConfig, doExport=doExport, exportDir=args.output_dir)


if __name__ == '__main__':
    main()
