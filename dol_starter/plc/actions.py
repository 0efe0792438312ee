"""
Action Types for the Motor State Machine

Actions are the ONLY way to change the motor snapshot.

CRITICAL RULES:
- Closed set: every action type is enumerated here
- Actions carry their dispatch timestamp (reducer never reads a clock)
- Operator actions and simulation actions share one queue
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ActionType(str, Enum):
    """
    Motor action types.
    """
    # Operator actions
    PRESS_START_BUTTON = "PRESS_START_BUTTON"
    RELEASE_START_BUTTON = "RELEASE_START_BUTTON"
    PRESS_STOP_BUTTON = "PRESS_STOP_BUTTON"
    RELEASE_STOP_BUTTON = "RELEASE_STOP_BUTTON"
    TRIGGER_EMERGENCY_STOP = "TRIGGER_EMERGENCY_STOP"
    RESET_EMERGENCY_STOP = "RESET_EMERGENCY_STOP"
    TOGGLE_MCB = "TOGGLE_MCB"
    RESET_OVERLOAD = "RESET_OVERLOAD"
    RESET_RUNTIME = "RESET_RUNTIME"
    RESET_FAULT = "RESET_FAULT"

    # System actions (sensors / simulation driver)
    TRIP_OVERLOAD = "TRIP_OVERLOAD"
    TRIP_FAULT = "TRIP_FAULT"
    UPDATE_RUNTIME = "UPDATE_RUNTIME"
    SET_RPM = "SET_RPM"


@dataclass(frozen=True)
class Action:
    """
    One dispatched action.

    `value` is only meaningful for SET_RPM, `reason` only for TRIP_FAULT.
    """
    type: ActionType
    timestamp: float = 0.0  # ms, clock time at dispatch
    value: Optional[float] = None
    reason: Optional[str] = None

    def __repr__(self) -> str:
        name = self.type.value if isinstance(self.type, ActionType) else str(self.type)
        if self.value is not None:
            return f"Action({name}, value={self.value}, t={self.timestamp:.0f}ms)"
        return f"Action({name}, t={self.timestamp:.0f}ms)"
