"""
Motor State Management

Implements the DOL starter motor state machine states:
STOPPED → STARTING → RUNNING → STOPPING → STOPPED
plus the latched OVERLOAD / FAULT / EMERGENCY_STOP conditions.
"""

from enum import Enum


class MotorState(str, Enum):
    """
    DOL Starter Motor State

    Exactly one state is active at any time.
    """
    STOPPED = "STOPPED"                # Contactor open, rotor at rest
    STARTING = "STARTING"              # Contactor closed, rotor accelerating
    RUNNING = "RUNNING"                # Rotor at rated speed
    STOPPING = "STOPPING"              # Contactor open, rotor coasting down
    FAULT = "FAULT"                    # Generic fault, requires reset
    OVERLOAD = "OVERLOAD"              # Overload relay tripped, requires reset
    EMERGENCY_STOP = "EMERGENCY_STOP"  # E-stop latched, requires reset


# States in which the contactor is allowed to carry current
ENERGIZED_STATES = frozenset({MotorState.STARTING, MotorState.RUNNING})

# States in which the rotor must be at rest
AT_REST_STATES = frozenset({
    MotorState.STOPPED,
    MotorState.FAULT,
    MotorState.OVERLOAD,
    MotorState.EMERGENCY_STOP,
})

# States that need an explicit reset before the motor can start again
LATCHED_STATES = frozenset({
    MotorState.FAULT,
    MotorState.OVERLOAD,
    MotorState.EMERGENCY_STOP,
})
