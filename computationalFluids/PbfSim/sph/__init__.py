# -- SPH Support Package -- #

'''
SPH building blocks for the PBF solver.

Provides kernel functions, neighbor search, particle data and the
configuration / state dataclasses.

Sean Bowman [10/19/2026]
'''

from computationalFluids.PbfSim.sph.protocols import SimulationConfig, SimulationState
from computationalFluids.PbfSim.sph.kernels import Poly6Kernel, SpikyKernel, createKernel
from computationalFluids.PbfSim.sph.neighborSearch import SpatialHashGrid, KdTreeSearch, createNeighborSearch
from computationalFluids.PbfSim.sph.particles import ParticleSystemData, SphSystemData
