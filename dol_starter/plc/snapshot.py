"""
Motor Snapshot

The single state record of the starter. Immutable: every transition
produces a new snapshot via dataclasses.replace (copy-on-write).
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional

from .motor_state import MotorState
from ..simulation.physics.motor_physics import AMBIENT_TEMP_C

DEFAULT_RATED_RPM = 1480.0     # Standard 4-pole motor at 50Hz
DEFAULT_SYSTEM_VOLTAGE = 400.0  # 400V 3-phase


@dataclass(frozen=True)
class MotorSnapshot:
    """Complete control-circuit + power-circuit state of the starter."""

    # Motor state
    motor_state: MotorState = MotorState.STOPPED
    motor_rpm: float = 0.0
    rated_rpm: float = DEFAULT_RATED_RPM

    # Control circuit
    is_contactor_energized: bool = False
    is_start_button_pressed: bool = False
    is_stop_button_pressed: bool = False
    is_emergency_stop_active: bool = False

    # Power circuit
    current_flow: bool = False
    mcb_closed: bool = True
    overload_tripped: bool = False

    # Status and monitoring
    running_time: int = 0               # seconds
    start_time: Optional[float] = None  # ms, clock time of current ramp
    fault_condition: Optional[str] = None

    # System status
    system_voltage: float = DEFAULT_SYSTEM_VOLTAGE
    system_current: float = 0.0         # A
    motor_temperature: float = AMBIENT_TEMP_C

    def to_dict(self) -> Dict[str, Any]:
        """Control surface representation (camelCase field names)."""
        return {
            "motorState": self.motor_state.value,
            "motorRPM": self.motor_rpm,
            "ratedRPM": self.rated_rpm,
            "isContactorEnergized": self.is_contactor_energized,
            "isStartButtonPressed": self.is_start_button_pressed,
            "isStopButtonPressed": self.is_stop_button_pressed,
            "isEmergencyStopActive": self.is_emergency_stop_active,
            "currentFlow": self.current_flow,
            "mcbClosed": self.mcb_closed,
            "overloadTripped": self.overload_tripped,
            "runningTime": self.running_time,
            "startTime": self.start_time,
            "faultCondition": self.fault_condition,
            "systemVoltage": self.system_voltage,
            "systemCurrent": self.system_current,
            "motorTemperature": self.motor_temperature,
        }


def initial_snapshot(rated_rpm: float = DEFAULT_RATED_RPM,
                     system_voltage: float = DEFAULT_SYSTEM_VOLTAGE) -> MotorSnapshot:
    """All fields at rest: STOPPED, RPM 0, breaker closed, no faults."""
    return MotorSnapshot(rated_rpm=float(rated_rpm), system_voltage=float(system_voltage))
