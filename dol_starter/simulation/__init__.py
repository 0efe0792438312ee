"""
Simulation Module

Time-based progression of the starter: clocks, ramp curves, physics.
The driver lives in simulation.driver (it depends on the plc package).
"""

from .clock import Clock, TimerHandle, AsyncioClock, ManualClock
from .ramp import ease_in_out_cubic, ease_out_cubic, start_ramp_rpm, stop_ramp_rpm

__all__ = [
    'Clock',
    'TimerHandle',
    'AsyncioClock',
    'ManualClock',
    'ease_in_out_cubic',
    'ease_out_cubic',
    'start_ramp_rpm',
    'stop_ramp_rpm',
]
