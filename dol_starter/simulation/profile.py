"""
Ramp Profile Recorder

Runs one full start -> run -> stop cycle on a ManualClock and records every
snapshot change. Used to validate ramp timing and to plot RPM / current /
temperature curves.

Expected Response:
- RPM rises on an S-curve and reaches RUNNING at ~77% of the ramp duration
- RPM falls on an ease-out curve to 0 within the stop duration
- Current and temperature follow RPM
"""

import logging
from typing import Any, Dict, List, Optional

from .clock import ManualClock
from ..factory import build_session
from ..plc.motor_state import MotorState
from ..settings import StarterConfig

logger = logging.getLogger("Profile")


def record_cycle(config: Optional[StarterConfig] = None, run_ms: float = 1000.0) -> List[Dict[str, Any]]:
    """Simulate start, `run_ms` of running, then stop. Returns one sample per snapshot change."""
    config = config or StarterConfig()
    clock = ManualClock()
    session = build_session(config, clock)
    controller = session.controller

    samples: List[Dict[str, Any]] = []

    def capture(snapshot):
        samples.append({
            't_ms': clock.now_ms(),
            'state': snapshot.motor_state.value,
            'rpm': snapshot.motor_rpm,
            'current': snapshot.system_current,
            'temperature': snapshot.motor_temperature,
        })

    unsubscribe = controller.subscribe(capture)
    session.start()
    capture(controller.snapshot)

    try:
        controller.start()
        clock.advance(config.ramp_duration_ms + config.ramp_sample_interval_ms)
        clock.advance(run_ms)
        controller.stop()
        clock.advance(config.stop_duration_ms + config.stop_sample_interval_ms)
    finally:
        unsubscribe()
        session.shutdown()

    return samples


def summarize(samples: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Key timings and peaks of a recorded cycle."""
    def first_time(state: str) -> Optional[float]:
        return next((s['t_ms'] for s in samples if s['state'] == state), None)

    started = first_time(MotorState.STARTING.value)
    running = first_time(MotorState.RUNNING.value)
    stopping = first_time(MotorState.STOPPING.value)
    stopped_after = None
    if stopping is not None:
        stopped_after = next(
            (s['t_ms'] for s in samples if s['t_ms'] >= stopping and s['state'] == MotorState.STOPPED.value),
            None,
        )

    return {
        'time_to_running_ms': None if started is None or running is None else running - started,
        'time_to_stopped_ms': None if stopping is None or stopped_after is None else stopped_after - stopping,
        'peak_rpm': max((s['rpm'] for s in samples), default=0.0),
        'peak_current': max((s['current'] for s in samples), default=0.0),
        'peak_temperature': max((s['temperature'] for s in samples), default=0.0),
        'samples': len(samples),
    }


def plot_profile(samples: List[Dict[str, Any]], output_path: str) -> str:
    """Plot RPM, current and temperature against time into a PNG."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    time_data = [s['t_ms'] / 1000.0 for s in samples]

    fig, axes = plt.subplots(3, 1, figsize=(10, 8), sharex=True)

    axes[0].step(time_data, [s['rpm'] for s in samples], where='post', color='tab:blue')
    axes[0].set_ylabel('Speed (rpm)')
    axes[0].set_title('DOL Starter Ramp Profile')
    axes[0].grid(True)

    axes[1].step(time_data, [s['current'] for s in samples], where='post', color='tab:orange')
    axes[1].set_ylabel('Current (A)')
    axes[1].grid(True)

    axes[2].step(time_data, [s['temperature'] for s in samples], where='post', color='tab:red')
    axes[2].set_ylabel('Temperature (°C)')
    axes[2].set_xlabel('Time (s)')
    axes[2].grid(True)

    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)

    logger.info(f"Profile plot saved to {output_path}")
    return output_path
