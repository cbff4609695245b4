# -- Computational Fluids Package -- #

'''
Master package for the Computational Fluids toolkit.

Domain-specific sub-packages:
    - PbfSim: Position Based Fluids solver with generic colliders

Sean Bowman [10/19/2026]
'''
