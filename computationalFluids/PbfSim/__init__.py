# -- PbfSim Package -- #

'''
Position Based Fluids simulation with generic boundary colliders.

Dam breaks and bouncing-droplet checks driven by a PBF solver that
projects particle positions onto a constant-density constraint.

Sean Bowman [10/19/2026]
'''

__version__ = '0.1.0'

from computationalFluids.PbfSim.runner import PbfSimRunner
from computationalFluids.PbfSim.solvers.pbfSolver import PbfSolver, PbfSolverBuilder
from computationalFluids.PbfSim.collision.collider import Collider
from computationalFluids.PbfSim.scenarios.damBreak import DamBreakConfig
from computationalFluids.PbfSim.export.frameExporter import FrameExporter
