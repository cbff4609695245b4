# -- Simulation Scenarios Package -- #

'''
Pre-configured simulation scenarios for PBF.

Each scenario provides initial conditions (particle layout,
collider geometry) and configuration for a specific problem.

Sean Bowman [10/19/2026]
'''

from computationalFluids.PbfSim.scenarios.damBreak import DamBreakConfig, createDamBreak
from computationalFluids.PbfSim.scenarios.droplet import DropletConfig, createDroplet
