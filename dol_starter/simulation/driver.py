"""
Simulation Driver

Owns ALL time-based progression of the starter. The reducer never schedules.

Phases:
- STARTING: sample the ease-in-out ramp every ramp_sample_interval_ms -> SET_RPM
- STOPPING: sample the ease-out ramp every stop_sample_interval_ms -> SET_RPM
- RUNNING:  runtime tick every runtime_interval_ms -> UPDATE_RUNTIME
- anything else: no timers

CRITICAL RULES:
- All timers of a phase are cancelled BEFORE the next phase's timers start
- The driver is a synchronous subscriber, so entering EMERGENCY_STOP cancels
  timers inside the very dispatch that entered it
- Every timer callback checks its phase generation before dispatching, so a
  stale timer can never overwrite a newer snapshot
- shutdown() cancels everything and unsubscribes
"""

import logging
from typing import List, Optional, Tuple

from .clock import Clock, TimerHandle
from .ramp import start_ramp_rpm, stop_ramp_rpm
from ..plc.controller import MotorController
from ..plc.motor_state import MotorState
from ..plc.snapshot import MotorSnapshot
from ..settings import StarterConfig

logger = logging.getLogger("SimulationDriver")

Phase = Tuple[MotorState, Optional[float]]

_RAMP_STATES = (MotorState.STARTING, MotorState.STOPPING)


class SimulationDriver:
    """Feeds synthetic sensor actions (RPM, runtime) into the controller."""

    def __init__(self, controller: MotorController, clock: Clock, config: Optional[StarterConfig] = None):
        self._controller = controller
        self._clock = clock
        self._config = config or StarterConfig()
        self._timers: List[TimerHandle] = []
        self._phase: Optional[Phase] = None
        self._generation = 0
        self._unsubscribe = None

    @property
    def phase(self) -> Optional[MotorState]:
        return self._phase[0] if self._phase else None

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def start(self):
        """Subscribe to the controller and adopt its current phase."""
        if self.running:
            return
        self._unsubscribe = self._controller.subscribe(self._on_snapshot)
        logger.info("Simulation driver started")
        self._on_snapshot(self._controller.snapshot)

    def shutdown(self):
        """Cancel every timer and stop observing the controller."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_timers()
        self._phase = None
        self._generation += 1
        logger.info("Simulation driver stopped")

    # ============================================================
    # PHASE HANDLING
    # ============================================================

    def _on_snapshot(self, snapshot: MotorSnapshot):
        state = snapshot.motor_state
        # A new start_time inside a ramp state means a new ramp
        anchor = snapshot.start_time if state in _RAMP_STATES else None
        phase = (state, anchor)
        if phase != self._phase:
            self._enter_phase(snapshot, phase)
        self._check_thermal(snapshot)

    def _enter_phase(self, snapshot: MotorSnapshot, phase: Phase):
        self._cancel_timers()
        self._phase = phase
        self._generation += 1
        generation = self._generation

        state = snapshot.motor_state
        if state == MotorState.STARTING:
            self._start_ramp_up(snapshot, generation)
        elif state == MotorState.STOPPING:
            self._start_ramp_down(snapshot, generation)
        elif state == MotorState.RUNNING:
            self._start_runtime(generation)
        else:
            logger.debug(f"Phase {state.value}: no timers")

    def _cancel_timers(self):
        if self._timers:
            logger.debug(f"Cancelling {len(self._timers)} timer(s)")
        for timer in self._timers:
            timer.cancel()
        self._timers = []

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ============================================================
    # TIMERS
    # ============================================================

    def _start_ramp_up(self, snapshot: MotorSnapshot, generation: int):
        anchor = snapshot.start_time if snapshot.start_time is not None else self._clock.now_ms()
        rated = snapshot.rated_rpm
        duration = self._config.ramp_duration_ms

        def sample():
            if not self._is_current(generation):
                return
            rpm = start_ramp_rpm(self._clock.now_ms() - anchor, duration, rated)
            self._controller.set_rpm(rpm)

        logger.debug(f"Ramp up: 0 -> {rated:.0f} rpm over {duration:.0f} ms")
        self._timers.append(self._clock.call_every(self._config.ramp_sample_interval_ms, sample))

    def _start_ramp_down(self, snapshot: MotorSnapshot, generation: int):
        anchor = snapshot.start_time if snapshot.start_time is not None else self._clock.now_ms()
        from_rpm = snapshot.motor_rpm
        duration = self._config.stop_duration_ms

        def sample():
            if not self._is_current(generation):
                return
            rpm = stop_ramp_rpm(self._clock.now_ms() - anchor, duration, from_rpm)
            self._controller.set_rpm(rpm)

        logger.debug(f"Ramp down: {from_rpm:.0f} -> 0 rpm over {duration:.0f} ms")
        self._timers.append(self._clock.call_every(self._config.stop_sample_interval_ms, sample))

    def _start_runtime(self, generation: int):
        def tick():
            if not self._is_current(generation):
                return
            self._controller.tick_runtime()

        self._timers.append(self._clock.call_every(self._config.runtime_interval_ms, tick))

    # ============================================================
    # THERMAL OVERLOAD RELAY
    # ============================================================

    def _check_thermal(self, snapshot: MotorSnapshot):
        limit = self._config.thermal_trip_c
        if limit is None or not snapshot.is_contactor_energized:
            return
        if snapshot.motor_temperature >= limit:
            logger.warning(f"Thermal limit reached: {snapshot.motor_temperature:.1f}°C >= {limit:.1f}°C")
            self._controller.trip_overload()
