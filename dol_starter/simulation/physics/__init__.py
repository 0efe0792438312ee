"""
Physics Module for the DOL Starter Simulation

Derived electrical/thermal quantities of the motor.
All functions are pure: same RPM in, same values out.

Architecture:
- Reducer calls derive_quantities() inside every SET_RPM transition
- Simulation driver never writes current/temperature directly
"""

from .motor_physics import (
    AMBIENT_TEMP_C,
    MAX_TEMP_C,
    RATED_CURRENT_A,
    derive_current,
    derive_temperature,
    derive_quantities,
    speed_ratio,
)

__all__ = [
    'AMBIENT_TEMP_C',
    'MAX_TEMP_C',
    'RATED_CURRENT_A',
    'derive_current',
    'derive_temperature',
    'derive_quantities',
    'speed_ratio',
]
