"""
Motor Controller

Owns the single motor snapshot for one session and is the only writer to it.

CRITICAL RULES:
- Every change goes through dispatch() -> transition()
- Dispatches are serialized FIFO; a dispatch issued from a subscriber is
  queued and applied after the current one (never nested)
- Subscribers are notified synchronously, in order, after each change
- A failing subscriber is logged and never aborts the dispatch
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional

from .actions import Action, ActionType
from .reducer import transition
from .snapshot import MotorSnapshot, initial_snapshot, DEFAULT_RATED_RPM, DEFAULT_SYSTEM_VOLTAGE
from ..simulation.clock import Clock

logger = logging.getLogger("MotorController")

Subscriber = Callable[[MotorSnapshot], None]

# High-rate simulation actions are only logged when they change the state
_QUIET_ACTIONS = frozenset({ActionType.SET_RPM, ActionType.UPDATE_RUNTIME})


@dataclass(frozen=True)
class TransitionRecord:
    """One entry of the diagnostic transition log."""
    timestamp: float  # ms, clock time
    action: str
    from_state: str
    to_state: str
    fault_condition: Optional[str]

    def to_dict(self):
        return {
            "timestamp": self.timestamp,
            "action": self.action,
            "fromState": self.from_state,
            "toState": self.to_state,
            "faultCondition": self.fault_condition,
        }


class MotorController:
    """
    Session-owned motor state machine.

    Constructed once per session and passed by reference to whatever hosts
    the control surface.
    """

    def __init__(self, clock: Clock,
                 rated_rpm: float = DEFAULT_RATED_RPM,
                 system_voltage: float = DEFAULT_SYSTEM_VOLTAGE,
                 log_size: int = 200,
                 snapshot: Optional[MotorSnapshot] = None):
        self._clock = clock
        self._snapshot = snapshot or initial_snapshot(rated_rpm, system_voltage)
        self._subscribers: List[Subscriber] = []
        self._queue: Deque[Action] = deque()
        self._dispatching = False
        self._log: Deque[TransitionRecord] = deque(maxlen=log_size)

    @property
    def snapshot(self) -> MotorSnapshot:
        """Latest snapshot (immutable)."""
        return self._snapshot

    @property
    def clock(self) -> Clock:
        return self._clock

    # ============================================================
    # SUBSCRIPTION
    # ============================================================

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for every new snapshot. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def get_transition_log(self) -> List[TransitionRecord]:
        """Recent transitions (for debugging/analysis)."""
        return list(self._log)

    # ============================================================
    # DISPATCH
    # ============================================================

    def dispatch(self, action: Action) -> MotorSnapshot:
        """Queue an action and drain the queue unless a dispatch is already running."""
        self._queue.append(action)
        if self._dispatching:
            return self._snapshot

        self._dispatching = True
        try:
            while self._queue:
                self._apply(self._queue.popleft())
        finally:
            self._dispatching = False
        return self._snapshot

    def _apply(self, action: Action):
        previous = self._snapshot
        current = transition(previous, action)
        if current is previous:
            return

        self._snapshot = current
        self._record(action, previous, current)

        for callback in list(self._subscribers):
            try:
                callback(current)
            except Exception:
                logger.error(f"Subscriber {callback!r} failed on {action!r}", exc_info=True)

    def _record(self, action: Action, previous: MotorSnapshot, current: MotorSnapshot):
        state_changed = previous.motor_state != current.motor_state
        fault_changed = previous.fault_condition != current.fault_condition

        if state_changed:
            logger.info(f"{previous.motor_state.value} -> {current.motor_state.value} ({action.type.value})")
        if fault_changed and current.fault_condition:
            logger.warning(f"Fault condition: {current.fault_condition}")

        if action.type in _QUIET_ACTIONS and not state_changed:
            return
        self._log.append(TransitionRecord(
            timestamp=action.timestamp,
            action=action.type.value,
            from_state=previous.motor_state.value,
            to_state=current.motor_state.value,
            fault_condition=current.fault_condition,
        ))

    def _action(self, action_type: ActionType, value: Optional[float] = None,
                reason: Optional[str] = None) -> MotorSnapshot:
        return self.dispatch(Action(action_type, timestamp=self._clock.now_ms(), value=value, reason=reason))

    # ============================================================
    # ACTION API (Control Surface)
    # ============================================================

    def press_start(self) -> MotorSnapshot:
        return self._action(ActionType.PRESS_START_BUTTON)

    def release_start(self) -> MotorSnapshot:
        return self._action(ActionType.RELEASE_START_BUTTON)

    def press_stop(self) -> MotorSnapshot:
        return self._action(ActionType.PRESS_STOP_BUTTON)

    def release_stop(self) -> MotorSnapshot:
        return self._action(ActionType.RELEASE_STOP_BUTTON)

    def start(self) -> MotorSnapshot:
        """Momentary start: press immediately followed by release."""
        self.press_start()
        return self.release_start()

    def stop(self) -> MotorSnapshot:
        """Momentary stop: press immediately followed by release."""
        self.press_stop()
        return self.release_stop()

    def trigger_emergency_stop(self) -> MotorSnapshot:
        return self._action(ActionType.TRIGGER_EMERGENCY_STOP)

    def reset_emergency_stop(self) -> MotorSnapshot:
        return self._action(ActionType.RESET_EMERGENCY_STOP)

    def toggle_mcb(self) -> MotorSnapshot:
        return self._action(ActionType.TOGGLE_MCB)

    def reset_overload(self) -> MotorSnapshot:
        return self._action(ActionType.RESET_OVERLOAD)

    def reset_runtime(self) -> MotorSnapshot:
        return self._action(ActionType.RESET_RUNTIME)

    def reset_fault(self) -> MotorSnapshot:
        return self._action(ActionType.RESET_FAULT)

    # ============================================================
    # SYSTEM API (sensors / simulation driver)
    # ============================================================

    def trip_overload(self) -> MotorSnapshot:
        return self._action(ActionType.TRIP_OVERLOAD)

    def trip_fault(self, reason: Optional[str] = None) -> MotorSnapshot:
        return self._action(ActionType.TRIP_FAULT, reason=reason)

    def set_rpm(self, value: float) -> MotorSnapshot:
        return self._action(ActionType.SET_RPM, value=value)

    def tick_runtime(self) -> MotorSnapshot:
        return self._action(ActionType.UPDATE_RUNTIME)
