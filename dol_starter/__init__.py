"""
DOL Motor Starter Simulator

Control logic of a Direct-On-Line motor starter plus a time-based
simulation of its rotor speed, current draw and winding temperature.

Architecture:
- plc: motor state machine (snapshot, actions, reducer, controller)
- simulation: clocks, ramp curves, physics, the timer-owning driver
- main: FastAPI surface for a local control surface
"""

__version__ = "0.1.0"
