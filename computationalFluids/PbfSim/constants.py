# -- Physical Constants for PBF Fluid Simulation -- #

'''
Physical and numerical constants for Position Based Fluids.
All values in SI units unless otherwise noted.

References:
-----------
Macklin & Mueller (2013) -- Position Based Fluids
Mueller et al. (2007) -- Position Based Dynamics

Sean Bowman [10/19/2026]
'''

#--------------------------------------------------------------------#
# -- Fluid Properties -- #
#--------------------------------------------------------------------#

# Rest density of liquid water [kg/m^3]
waterDensity: float = 1000.0

# Gravitational acceleration [m/s^2]
gravity: float = 9.81

#--------------------------------------------------------------------#
# -- Particle Discretization -- #
#--------------------------------------------------------------------#

# Default target particle spacing [m]
defaultTargetSpacing: float = 0.1

# Kernel radius to particle spacing ratio
# kernelRadius = relativeKernelRadius * targetSpacing
defaultRelativeKernelRadius: float = 1.8

#--------------------------------------------------------------------#
# -- Particle System Solver Defaults -- #
#--------------------------------------------------------------------#

# Linear drag coefficient against the wind field [kg/s]
defaultDragCoefficient: float = 1e-4

# Restitution applied by colliders (0 = inelastic, 1 = elastic)
defaultRestitutionCoefficient: float = 0.0

# CFL number for adaptive sub-stepping
# dt = cflNumber * lengthScale / maxSpeed
cflNumber: float = 0.4

#--------------------------------------------------------------------#
# -- PBF Solver Defaults -- #
#--------------------------------------------------------------------#

# XSPH-style velocity blending factor, range [0, 1]
defaultPseudoViscosityCoefficient: float = 0.01

# Density constraint projection iterations per step
defaultMaxNumberOfIterations: int = 10

# Constraint force mixing term (epsilon) in the lambda denominator
defaultLambdaRelaxation: float = 10.0

# Smallest allowed lambda relaxation (keeps the denominator positive)
minLambdaRelaxation: float = 1e-12

# Tensile instability correction (s_corr) parameters
# Paper recommends delta q in [0.1, 0.3] of the reference length
defaultAntiClusteringDenominatorFactor: float = 0.2
defaultAntiClusteringStrength: float = 1e-6
defaultAntiClusteringExponent: float = 4.0

# Vorticity confinement epsilon; 0 disables the pass
defaultVorticityConfinementStrength: float = 0.0
