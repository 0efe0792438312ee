"""
Starter Control Logic

The motor state machine: states, snapshot, actions, the pure reducer and
the session-owned controller.

NO:
- Timers (simulation.driver owns them)
- Rendering or presentation logic
"""

from .motor_state import MotorState
from .snapshot import MotorSnapshot, initial_snapshot
from .actions import Action, ActionType
from .reducer import transition, start_guard
from .controller import MotorController, TransitionRecord

__all__ = [
    'MotorState',
    'MotorSnapshot',
    'initial_snapshot',
    'Action',
    'ActionType',
    'transition',
    'start_guard',
    'MotorController',
    'TransitionRecord',
]
