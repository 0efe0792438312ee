"""
Motor State Machine Core - Transition Tests

Validates:
1. Transition table (start, ramp completion, stop, e-stop, overload, MCB, runtime)
2. Guard violations reported via fault_condition, state unchanged
3. Latches (e-stop, overload) and their resets
4. Invariants over every short action sequence
"""

from dataclasses import replace
from itertools import product

from dol_starter.plc.actions import Action, ActionType
from dol_starter.plc.motor_state import MotorState, AT_REST_STATES, ENERGIZED_STATES
from dol_starter.plc.reducer import (
    FAULT_MCB_OPENED,
    RUNNING_THRESHOLD,
    transition,
)
from dol_starter.plc.snapshot import initial_snapshot

RATED = 1480.0


def _act(action_type, t=0.0, value=None, reason=None):
    return Action(action_type, timestamp=t, value=value, reason=reason)


def _run(snapshot, *actions):
    for action in actions:
        snapshot = transition(snapshot, action)
    return snapshot


def _running():
    return _run(
        initial_snapshot(RATED),
        _act(ActionType.PRESS_START_BUTTON, t=0.0),
        _act(ActionType.RELEASE_START_BUTTON, t=100.0),
        _act(ActionType.SET_RPM, t=2000.0, value=RATED),
    )


def _assert_invariants(s):
    if s.is_contactor_energized:
        assert s.motor_state in ENERGIZED_STATES
    if s.motor_state in AT_REST_STATES:
        assert s.motor_rpm == 0
    if s.motor_state == MotorState.RUNNING:
        assert s.motor_rpm >= RATED * RUNNING_THRESHOLD
    if s.motor_state == MotorState.OVERLOAD:
        assert s.overload_tripped
    assert s.current_flow == (s.is_contactor_energized and s.mcb_closed)
    assert 0 <= s.motor_rpm <= s.rated_rpm


# ============================================================
# START / RUN / STOP
# ============================================================

def test_initial_snapshot_is_at_rest():
    s = initial_snapshot(RATED)

    assert s.motor_state == MotorState.STOPPED
    assert s.motor_rpm == 0
    assert s.mcb_closed is True
    assert s.overload_tripped is False
    assert s.fault_condition is None
    assert s.motor_temperature == 25.0
    assert s.system_voltage == 400.0


def test_press_start_from_stopped_enters_starting():
    s = transition(initial_snapshot(RATED), _act(ActionType.PRESS_START_BUTTON, t=1234.0))

    assert s.motor_state == MotorState.STARTING
    assert s.is_contactor_energized is True
    assert s.current_flow is True
    assert s.fault_condition is None
    assert s.start_time == 1234.0
    assert s.is_start_button_pressed is True


def test_rpm_reaching_threshold_enters_running_pinned_to_rated():
    starting = transition(initial_snapshot(RATED), _act(ActionType.PRESS_START_BUTTON))

    below = transition(starting, _act(ActionType.SET_RPM, value=RATED * 0.9))
    assert below.motor_state == MotorState.STARTING

    running = transition(below, _act(ActionType.SET_RPM, value=RATED * 0.95))
    assert running.motor_state == MotorState.RUNNING
    assert running.motor_rpm == RATED


def test_release_start_only_clears_flag():
    starting = transition(initial_snapshot(RATED), _act(ActionType.PRESS_START_BUTTON))
    released = transition(starting, _act(ActionType.RELEASE_START_BUTTON))

    assert released.motor_state == MotorState.STARTING
    assert released.is_start_button_pressed is False
    assert released.is_contactor_energized is True

    # Releasing again never re-triggers anything
    assert transition(released, _act(ActionType.RELEASE_START_BUTTON)) is released


def test_press_stop_from_running_enters_stopping_then_stopped_at_zero_rpm():
    stopping = transition(_running(), _act(ActionType.PRESS_STOP_BUTTON, t=5000.0))

    assert stopping.motor_state == MotorState.STOPPING
    assert stopping.is_contactor_energized is False
    assert stopping.current_flow is False
    assert stopping.start_time == 5000.0
    assert stopping.motor_rpm == RATED

    mid = transition(stopping, _act(ActionType.SET_RPM, value=600))
    assert mid.motor_state == MotorState.STOPPING

    stopped = transition(mid, _act(ActionType.SET_RPM, value=0))
    assert stopped.motor_state == MotorState.STOPPED
    assert stopped.motor_rpm == 0
    assert stopped.start_time is None


def test_press_stop_from_starting_enters_stopping():
    starting = transition(initial_snapshot(RATED), _act(ActionType.PRESS_START_BUTTON))
    s = transition(starting, _act(ActionType.PRESS_STOP_BUTTON))

    assert s.motor_state == MotorState.STOPPING
    assert s.is_stop_button_pressed is True
    assert s.is_start_button_pressed is False


def test_press_stop_when_stopped_only_sets_flag():
    s = transition(initial_snapshot(RATED), _act(ActionType.PRESS_STOP_BUTTON))

    assert s.motor_state == MotorState.STOPPED
    assert s.is_stop_button_pressed is True
    assert transition(s, _act(ActionType.RELEASE_STOP_BUTTON)).is_stop_button_pressed is False


def test_press_start_while_running_does_not_restart_ramp():
    running = transition(_running(), _act(ActionType.RELEASE_START_BUTTON))
    s = transition(running, _act(ActionType.PRESS_START_BUTTON, t=9000.0))

    assert s.motor_state == MotorState.RUNNING
    assert s.start_time == running.start_time
    assert s.is_start_button_pressed is True


# ============================================================
# GUARDS
# ============================================================

def test_start_with_open_mcb_reports_breaker():
    opened = transition(initial_snapshot(RATED), _act(ActionType.TOGGLE_MCB))
    assert opened.mcb_closed is False

    s = transition(opened, _act(ActionType.PRESS_START_BUTTON))

    assert s.motor_state == MotorState.STOPPED
    assert s.fault_condition is not None
    assert "MCB" in s.fault_condition
    assert s.is_contactor_energized is False


def test_guard_priority_emergency_over_overload_over_mcb():
    s = replace(
        initial_snapshot(RATED),
        motor_state=MotorState.EMERGENCY_STOP,
        is_emergency_stop_active=True,
        overload_tripped=True,
        mcb_closed=False,
    )
    s = transition(s, _act(ActionType.PRESS_START_BUTTON))
    assert "Emergency" in s.fault_condition

    s = replace(initial_snapshot(RATED), overload_tripped=True, mcb_closed=False)
    s = transition(s, _act(ActionType.PRESS_START_BUTTON))
    assert "Overload" in s.fault_condition


def test_start_from_overload_only_updates_fault():
    overload = transition(_running(), _act(ActionType.TRIP_OVERLOAD))
    # Put a different message in place so the change is observable
    before = replace(overload, fault_condition="previous")

    after = transition(before, _act(ActionType.PRESS_START_BUTTON))

    assert after.motor_state == MotorState.OVERLOAD
    assert "overload" in after.fault_condition.lower()
    assert replace(before, fault_condition=after.fault_condition) == after


# ============================================================
# EMERGENCY STOP
# ============================================================

def test_emergency_stop_from_running_is_immediate():
    s = transition(_running(), _act(ActionType.TRIGGER_EMERGENCY_STOP))

    assert s.motor_state == MotorState.EMERGENCY_STOP
    assert s.motor_rpm == 0
    assert s.is_contactor_energized is False
    assert s.current_flow is False
    assert s.system_current == 0
    assert s.is_emergency_stop_active is True
    assert s.start_time is None
    assert s.fault_condition == "EMERGENCY STOP ACTIVATED"


def test_emergency_stop_latch_holds_until_reset():
    s = transition(_running(), _act(ActionType.TRIGGER_EMERGENCY_STOP))
    for _ in range(5):
        s = transition(s, _act(ActionType.PRESS_START_BUTTON))
        assert s.motor_state == MotorState.EMERGENCY_STOP

    s = transition(s, _act(ActionType.RESET_EMERGENCY_STOP))
    assert s.motor_state == MotorState.STOPPED
    assert s.is_emergency_stop_active is False
    assert s.fault_condition is None
    assert s.motor_rpm == 0

    s = transition(s, _act(ActionType.PRESS_START_BUTTON))
    assert s.motor_state == MotorState.STARTING


def test_emergency_stop_overrides_overload_and_mcb():
    s = transition(_running(), _act(ActionType.TRIGGER_EMERGENCY_STOP))

    s = transition(s, _act(ActionType.TOGGLE_MCB))
    assert s.motor_state == MotorState.EMERGENCY_STOP
    assert s.mcb_closed is False

    s = transition(s, _act(ActionType.TOGGLE_MCB))
    assert s.mcb_closed is True

    s = transition(s, _act(ActionType.TRIP_OVERLOAD))
    assert s.motor_state == MotorState.EMERGENCY_STOP
    assert s.overload_tripped is True
    assert s.fault_condition == "EMERGENCY STOP ACTIVATED"

    s = transition(s, _act(ActionType.RESET_EMERGENCY_STOP))
    assert s.motor_state == MotorState.STOPPED
    assert s.overload_tripped is True


# ============================================================
# OVERLOAD
# ============================================================

def test_overload_trip_and_reset():
    s = transition(_running(), _act(ActionType.TRIP_OVERLOAD))

    assert s.motor_state == MotorState.OVERLOAD
    assert s.overload_tripped is True
    assert s.is_contactor_energized is False
    assert s.motor_rpm == 0
    assert "OVERLOAD" in s.fault_condition

    s = transition(s, _act(ActionType.RESET_OVERLOAD))
    assert s.motor_state == MotorState.STOPPED
    assert s.overload_tripped is False
    assert s.fault_condition is None


def test_reset_overload_without_trip_is_noop():
    for s in (initial_snapshot(RATED), _running()):
        assert transition(s, _act(ActionType.RESET_OVERLOAD)) is s


def test_mcb_locked_while_overload_tripped():
    s = transition(initial_snapshot(RATED), _act(ActionType.TRIP_OVERLOAD))
    toggled = transition(s, _act(ActionType.TOGGLE_MCB))

    assert toggled.mcb_closed is True
    assert "Overload" in toggled.fault_condition
    assert toggled.motor_state == MotorState.OVERLOAD


# ============================================================
# MCB
# ============================================================

def test_opening_mcb_forces_stop():
    s = transition(_running(), _act(ActionType.TOGGLE_MCB))

    assert s.motor_state == MotorState.STOPPED
    assert s.mcb_closed is False
    assert s.is_contactor_energized is False
    assert s.current_flow is False
    assert s.motor_rpm == 0
    assert s.fault_condition == FAULT_MCB_OPENED

    closed = transition(s, _act(ActionType.TOGGLE_MCB))
    assert closed.mcb_closed is True
    assert closed.fault_condition is None
    assert closed.motor_state == MotorState.STOPPED


# ============================================================
# RUNTIME
# ============================================================

def test_reset_runtime_while_running():
    s = replace(_running(), running_time=120)
    s = transition(s, _act(ActionType.RESET_RUNTIME, t=7000.0))

    assert s.running_time == 0
    assert s.motor_state == MotorState.RUNNING
    assert s.start_time == 7000.0


def test_update_runtime_only_counts_while_running():
    running = _running()
    assert transition(running, _act(ActionType.UPDATE_RUNTIME)).running_time == 1

    stopped = initial_snapshot(RATED)
    assert transition(stopped, _act(ActionType.UPDATE_RUNTIME)) is stopped


def test_reset_runtime_outside_running_keeps_ramp_anchor():
    starting = transition(initial_snapshot(RATED), _act(ActionType.PRESS_START_BUTTON, t=50.0))
    s = transition(replace(starting, running_time=9), _act(ActionType.RESET_RUNTIME, t=80.0))

    assert s.running_time == 0
    assert s.start_time == 50.0


# ============================================================
# SET_RPM / DERIVED QUANTITIES
# ============================================================

def test_set_rpm_clamps_and_derives_quantities():
    starting = transition(initial_snapshot(RATED), _act(ActionType.PRESS_START_BUTTON))

    half = transition(starting, _act(ActionType.SET_RPM, value=RATED / 2))
    assert half.motor_rpm == RATED / 2
    assert half.system_current == 3.0
    assert half.motor_temperature == 57.5

    negative = transition(starting, _act(ActionType.SET_RPM, value=-100))
    assert negative.motor_rpm == 0

    over = transition(starting, _act(ActionType.SET_RPM, value=99999))
    assert over.motor_rpm == RATED
    assert over.motor_state == MotorState.RUNNING


def test_set_rpm_ignored_at_rest_and_non_finite():
    stopped = initial_snapshot(RATED)
    s = transition(stopped, _act(ActionType.SET_RPM, value=800))
    assert s.motor_rpm == 0
    assert s.motor_state == MotorState.STOPPED

    assert transition(stopped, _act(ActionType.SET_RPM, value=float("nan"))) is stopped


def test_set_rpm_keeps_running_speed_above_threshold():
    s = transition(_running(), _act(ActionType.SET_RPM, value=100))

    assert s.motor_state == MotorState.RUNNING
    assert s.motor_rpm == RATED * RUNNING_THRESHOLD


# ============================================================
# GENERIC FAULT
# ============================================================

def test_trip_fault_and_reset_fault():
    s = transition(_running(), _act(ActionType.TRIP_FAULT, reason="Phase loss"))

    assert s.motor_state == MotorState.FAULT
    assert s.fault_condition == "Phase loss"
    assert s.motor_rpm == 0

    blocked = transition(s, _act(ActionType.PRESS_START_BUTTON))
    assert blocked.motor_state == MotorState.FAULT
    assert "Fault" in blocked.fault_condition

    reset = transition(blocked, _act(ActionType.RESET_FAULT))
    assert reset.motor_state == MotorState.STOPPED
    assert reset.fault_condition is None


def test_reset_fault_acknowledges_guard_message():
    opened = transition(initial_snapshot(RATED), _act(ActionType.TOGGLE_MCB))
    s = transition(opened, _act(ActionType.RESET_FAULT))

    assert s.fault_condition is None
    assert s.mcb_closed is False


def test_fault_during_overload_keeps_overload_latch():
    overload = transition(_running(), _act(ActionType.TRIP_OVERLOAD))
    s = transition(overload, _act(ActionType.TRIP_FAULT, reason="Phase loss"))

    assert s.motor_state == MotorState.OVERLOAD
    assert s.overload_tripped is True
    assert s.fault_condition == "Phase loss"

    # Only the overload reset clears it
    assert transition(s, _act(ActionType.RESET_FAULT)) is s
    reset = transition(s, _act(ActionType.RESET_OVERLOAD))
    assert reset.motor_state == MotorState.STOPPED
    assert reset.overload_tripped is False
    assert reset.fault_condition is None


# ============================================================
# CLOSED ACTION SET / INVARIANTS
# ============================================================

def test_unknown_action_returns_same_snapshot():
    s = _running()
    assert transition(s, Action("NOT_AN_ACTION")) is s


ALL_ACTIONS = [
    _act(ActionType.PRESS_START_BUTTON),
    _act(ActionType.RELEASE_START_BUTTON),
    _act(ActionType.PRESS_STOP_BUTTON),
    _act(ActionType.RELEASE_STOP_BUTTON),
    _act(ActionType.TRIGGER_EMERGENCY_STOP),
    _act(ActionType.RESET_EMERGENCY_STOP),
    _act(ActionType.TOGGLE_MCB),
    _act(ActionType.RESET_OVERLOAD),
    _act(ActionType.RESET_RUNTIME),
    _act(ActionType.UPDATE_RUNTIME),
    _act(ActionType.TRIP_OVERLOAD),
    _act(ActionType.TRIP_FAULT),
    _act(ActionType.RESET_FAULT),
    _act(ActionType.SET_RPM, value=RATED),
    _act(ActionType.SET_RPM, value=700),
    _act(ActionType.SET_RPM, value=0),
]


def test_invariants_hold_for_all_short_sequences():
    for sequence in product(ALL_ACTIONS, repeat=4):
        s = initial_snapshot(RATED)
        for action in sequence:
            s = transition(s, action)
            _assert_invariants(s)


def test_emergency_latch_survives_any_sequence_without_reset():
    without_reset = [a for a in ALL_ACTIONS if a.type != ActionType.RESET_EMERGENCY_STOP]
    latched = transition(_running(), _act(ActionType.TRIGGER_EMERGENCY_STOP))

    for sequence in product(without_reset, repeat=3):
        s = latched
        for action in sequence:
            s = transition(s, action)
            assert s.motor_state == MotorState.EMERGENCY_STOP
            assert s.motor_rpm == 0
