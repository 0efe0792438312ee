"""
Motor State Machine Core

Pure transition function: (snapshot, action) -> snapshot.

CRITICAL RULES:
- Total: every (state, action) pair maps to a snapshot, never raises
- Guard violations are reported via fault_condition, NOT exceptions
- Unknown actions return the input snapshot unchanged (same object)
- No clocks, no timers: time arrives on the action
- Copy-on-write only (dataclasses.replace)

Interlocks (start guard priority, first failing guard is reported):
    emergency stop active > overload tripped > fault active > MCB open
"""

from dataclasses import replace
from math import isfinite
from typing import Callable, Dict, Optional

from .actions import Action, ActionType
from .motor_state import MotorState, AT_REST_STATES, ENERGIZED_STATES, LATCHED_STATES
from .snapshot import MotorSnapshot
from ..simulation.physics.motor_physics import derive_quantities

# Fraction of rated speed at which STARTING becomes RUNNING
RUNNING_THRESHOLD = 0.95

# Fault messages
FAULT_START_ESTOP = "Cannot start: Emergency stop is active"
FAULT_START_OVERLOAD = "Cannot start: Overload tripped - reset required"
FAULT_START_FAULT = "Cannot start: Fault active - reset required"
FAULT_START_MCB = "Cannot start: MCB is open"
FAULT_MCB_LOCKED = "Cannot operate MCB: Overload tripped - reset required"
FAULT_ESTOP = "EMERGENCY STOP ACTIVATED"
FAULT_OVERLOAD = "OVERLOAD: Motor current exceeded safe limits"
FAULT_MCB_OPENED = "MCB opened"
FAULT_GENERIC = "FAULT: Motor fault detected"

# Non-latched messages an operator may acknowledge with RESET_FAULT
ACKNOWLEDGEABLE_FAULTS = frozenset({
    FAULT_START_ESTOP,
    FAULT_START_OVERLOAD,
    FAULT_START_FAULT,
    FAULT_START_MCB,
    FAULT_MCB_LOCKED,
    FAULT_MCB_OPENED,
})

# Messages that only make sense while the overload latch is set
OVERLOAD_FAULTS = frozenset({FAULT_OVERLOAD, FAULT_START_OVERLOAD, FAULT_MCB_LOCKED})

Handler = Callable[[MotorSnapshot, Action], MotorSnapshot]


# ============================================================
# HELPERS
# ============================================================

def start_guard(snapshot: MotorSnapshot) -> Optional[str]:
    """Return the highest-priority reason the motor cannot start, or None."""
    if snapshot.is_emergency_stop_active or snapshot.motor_state == MotorState.EMERGENCY_STOP:
        return FAULT_START_ESTOP
    if snapshot.overload_tripped:
        return FAULT_START_OVERLOAD
    if snapshot.motor_state == MotorState.FAULT:
        return FAULT_START_FAULT
    if not snapshot.mcb_closed:
        return FAULT_START_MCB
    return None


def _with_fault(snapshot: MotorSnapshot, message: Optional[str]) -> MotorSnapshot:
    if snapshot.fault_condition == message:
        return snapshot
    return replace(snapshot, fault_condition=message)


def _de_energize(snapshot: MotorSnapshot, **changes) -> MotorSnapshot:
    """
    Open the contactor and force the rotor to rest in one step (no ramp).

    Derived current/temperature are recomputed for RPM 0.
    """
    derived = derive_quantities(0.0, snapshot.rated_rpm, snapshot.motor_temperature)
    return replace(
        snapshot,
        motor_rpm=0.0,
        is_contactor_energized=False,
        current_flow=False,
        start_time=None,
        **derived,
        **changes,
    )


# ============================================================
# OPERATOR ACTIONS
# ============================================================

def _press_start(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    reason = start_guard(s)
    if reason is not None:
        return _with_fault(s, reason)

    if s.motor_state != MotorState.STOPPED:
        # Already starting/running/coasting: momentary flag only
        if s.is_start_button_pressed:
            return s
        return replace(s, is_start_button_pressed=True)

    return replace(
        s,
        motor_state=MotorState.STARTING,
        is_start_button_pressed=True,
        is_stop_button_pressed=False,
        is_contactor_energized=True,  # Contactor pulls in
        current_flow=s.mcb_closed,
        start_time=a.timestamp,
        fault_condition=None,
    )


def _release_start(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    # Contactor holds in through its auxiliary contact, release is visual only
    if not s.is_start_button_pressed:
        return s
    return replace(s, is_start_button_pressed=False)


def _press_stop(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if s.motor_state in ENERGIZED_STATES:
        return replace(
            s,
            motor_state=MotorState.STOPPING,
            is_stop_button_pressed=True,
            is_start_button_pressed=False,
            is_contactor_energized=False,  # Breaks the contactor coil circuit
            current_flow=False,
            start_time=a.timestamp,
        )
    if s.is_stop_button_pressed:
        return s
    return replace(s, is_stop_button_pressed=True)


def _release_stop(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if not s.is_stop_button_pressed:
        return s
    return replace(s, is_stop_button_pressed=False)


def _trigger_emergency_stop(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if s.motor_state == MotorState.EMERGENCY_STOP:
        return s
    return _de_energize(
        s,
        motor_state=MotorState.EMERGENCY_STOP,
        is_emergency_stop_active=True,
        is_start_button_pressed=False,
        is_stop_button_pressed=False,
        fault_condition=FAULT_ESTOP,
    )


def _reset_emergency_stop(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if not s.is_emergency_stop_active and s.motor_state != MotorState.EMERGENCY_STOP:
        return s
    return replace(
        s,
        motor_state=MotorState.STOPPED,
        is_emergency_stop_active=False,
        fault_condition=None,
        motor_rpm=0.0,
    )


def _toggle_mcb(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if s.overload_tripped:
        # Breaker is locked out until the overload relay is reset
        if s.motor_state == MotorState.EMERGENCY_STOP:
            return s
        return _with_fault(s, FAULT_MCB_LOCKED)

    latched = s.motor_state in LATCHED_STATES

    if s.mcb_closed:
        # Opening
        if latched:
            return replace(s, mcb_closed=False, current_flow=False)
        return _de_energize(
            s,
            motor_state=MotorState.STOPPED,
            mcb_closed=False,
            fault_condition=FAULT_MCB_OPENED,
        )

    # Closing
    if latched:
        return replace(s, mcb_closed=True)
    return replace(s, mcb_closed=True, fault_condition=None)


def _reset_overload(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if not s.overload_tripped:
        return s
    if s.motor_state == MotorState.OVERLOAD:
        return replace(
            s,
            motor_state=MotorState.STOPPED,
            overload_tripped=False,
            fault_condition=None,
        )
    # Latched while another condition owns the state (e.g. e-stop)
    fault = None if s.fault_condition in OVERLOAD_FAULTS else s.fault_condition
    return replace(s, overload_tripped=False, fault_condition=fault)


def _reset_runtime(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if s.motor_state == MotorState.RUNNING:
        return replace(s, running_time=0, start_time=a.timestamp)
    if s.running_time == 0:
        return s
    # start_time anchors ramps outside RUNNING, leave it alone
    return replace(s, running_time=0)


def _reset_fault(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if s.motor_state == MotorState.FAULT:
        return replace(s, motor_state=MotorState.STOPPED, fault_condition=None)
    if s.motor_state not in LATCHED_STATES and s.fault_condition in ACKNOWLEDGEABLE_FAULTS:
        return replace(s, fault_condition=None)
    return s


# ============================================================
# SYSTEM ACTIONS
# ============================================================

def _trip_overload(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if s.motor_state == MotorState.EMERGENCY_STOP:
        # E-stop overrides every transition, only latch the relay
        if s.overload_tripped:
            return s
        return replace(s, overload_tripped=True)
    if s.motor_state == MotorState.OVERLOAD:
        return s
    return _de_energize(
        s,
        motor_state=MotorState.OVERLOAD,
        overload_tripped=True,
        fault_condition=FAULT_OVERLOAD,
    )


def _trip_fault(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if s.motor_state == MotorState.EMERGENCY_STOP:
        return s
    reason = a.reason or FAULT_GENERIC
    if s.motor_state in (MotorState.FAULT, MotorState.OVERLOAD):
        # Already latched and de-energized; OVERLOAD keeps its reset path
        return _with_fault(s, reason)
    return _de_energize(s, motor_state=MotorState.FAULT, fault_condition=reason)


def _set_rpm(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    value = a.value if a.value is not None else 0.0
    if not isfinite(value):
        return s

    rated = s.rated_rpm
    rpm = max(0.0, min(float(value), rated))
    state = s.motor_state
    start_time = s.start_time

    if state in AT_REST_STATES:
        rpm = 0.0
    elif state == MotorState.RUNNING:
        rpm = max(rpm, rated * RUNNING_THRESHOLD)
    elif state == MotorState.STARTING and rpm >= rated * RUNNING_THRESHOLD:
        state = MotorState.RUNNING
        rpm = rated  # Pinned to rated
    elif state == MotorState.STOPPING and rpm == 0.0:
        state = MotorState.STOPPED
        start_time = None

    derived = derive_quantities(rpm, rated, s.motor_temperature)
    return replace(s, motor_state=state, motor_rpm=rpm, start_time=start_time, **derived)


def _update_runtime(s: MotorSnapshot, a: Action) -> MotorSnapshot:
    if s.motor_state != MotorState.RUNNING:
        return s
    return replace(s, running_time=s.running_time + 1)


_HANDLERS: Dict[ActionType, Handler] = {
    ActionType.PRESS_START_BUTTON: _press_start,
    ActionType.RELEASE_START_BUTTON: _release_start,
    ActionType.PRESS_STOP_BUTTON: _press_stop,
    ActionType.RELEASE_STOP_BUTTON: _release_stop,
    ActionType.TRIGGER_EMERGENCY_STOP: _trigger_emergency_stop,
    ActionType.RESET_EMERGENCY_STOP: _reset_emergency_stop,
    ActionType.TOGGLE_MCB: _toggle_mcb,
    ActionType.RESET_OVERLOAD: _reset_overload,
    ActionType.RESET_RUNTIME: _reset_runtime,
    ActionType.RESET_FAULT: _reset_fault,
    ActionType.TRIP_OVERLOAD: _trip_overload,
    ActionType.TRIP_FAULT: _trip_fault,
    ActionType.SET_RPM: _set_rpm,
    ActionType.UPDATE_RUNTIME: _update_runtime,
}


def transition(snapshot: MotorSnapshot, action: Action) -> MotorSnapshot:
    """
    Apply one action to a snapshot.

    Unknown action types are a no-op: the same snapshot object is returned.
    """
    handler = _HANDLERS.get(action.type)
    if handler is None:
        return snapshot
    return handler(snapshot, action)
