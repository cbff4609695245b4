# -- Collision Package -- #

'''
Particle-boundary collision resolution.

Sean Bowman [10/19/2026]
'''

from computationalFluids.PbfSim.collision.collider import (
    Collider,
    StaticMotion,
    RigidBodyMotion,
    ScriptedMotion,
)
