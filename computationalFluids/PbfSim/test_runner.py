# -- Runner Tests -- #

'''
End-to-end runs through the CLI runner on small scenarios.

Sean Bowman [10/19/2026]
'''

import json
import os

import pytest

from computationalFluids.PbfSim.runner import PbfSimRunner, buildParser, main
from computationalFluids.PbfSim.scenarios.droplet import DropletConfig


def testParserDefaults():
    args = buildParser().parse_args([])
    assert args.scenario == 'damBreak'
    assert args.preset == 'small'
    assert not args.no_export
    assert args.config is None


def testRunDropletExports(tmp_path):
    runner = PbfSimRunner()
    results = runner.runDroplet(
        DropletConfig(endTime=0.5, outputInterval=0.05),
        exportDir=str(tmp_path),
    )

    # Initial frame plus ten output frames
    assert results['nFrames'] == 11
    assert results['finalState'].time == pytest.approx(0.5)
    assert os.path.exists(results['exportPath'])


def testRunFromConfig(tmp_path):
    configPath = tmp_path / 'droplet.json'
    configPath.write_text(json.dumps({
        'simulation': {'type': 'droplet', 'dimensions': 3, 'endTime': 0.1, 'outputInterval': 0.05},
        'pbf': {'targetSpacing': 0.1},
        'droplet': {'dropHeight': 0.5},
    }))

    results = PbfSimRunner().runFromConfig(str(configPath), doExport=False)

    assert results['exportPath'] is None
    assert results['nFrames'] == 3
    assert results['finalState'].potentialEnergy > 0.0


def testRunFromConfigUnknownScenario(tmp_path):
    configPath = tmp_path / 'bad.json'
    configPath.write_text(json.dumps({'simulation': {'type': 'sloshing'}}))

    with pytest.raises(ValueError):
        PbfSimRunner().runFromConfig(str(configPath), doExport=False)


def testMainDroplet(capsys):
    main(['--scenario', 'droplet', '--no-export'])
    captured = capsys.readouterr()
    assert 'SIMULATION SUMMARY' in captured.out
