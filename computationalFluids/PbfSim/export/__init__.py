# -- Export Package -- #

'''
Frame data export for post-processing.

Sean Bowman [10/19/2026]
'''

from computationalFluids.PbfSim.export.frameExporter import FrameExporter
