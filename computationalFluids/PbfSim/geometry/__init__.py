# -- Geometry Package -- #

'''
Analytic boundary surfaces with closest-point queries.

Sean Bowman [10/19/2026]
'''

from computationalFluids.PbfSim.geometry.surfaces import (
    DegenerateSurfaceError,
    SurfaceQuery,
    Plane,
    Sphere,
    Box,
    SurfaceSet,
)
