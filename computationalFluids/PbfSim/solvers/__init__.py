# -- Solvers Package -- #

'''
Particle system solvers: the generic force-driven base solver and
the Position Based Fluids solver built on it.

Sean Bowman [10/19/2026]
'''

from computationalFluids.PbfSim.solvers.particleSystemSolver import ParticleSystemSolver
from computationalFluids.PbfSim.solvers.pbfSolver import PbfSolver, PbfSolverBuilder, createPbfSolver
