"""
Motor Electrical & Thermal Physics Model

Illustrative (NOT engineering-grade) model of a DOL-started induction motor.

Physics:
    I = I_rated * (k_base + (1 - k_base) * rpm / rpm_rated)     for rpm > 0
    T = min(T_max, T_ambient + ΔT_rated * rpm / rpm_rated)      for rpm > 0
    T = max(T_ambient, T_prev - cooldown_step)                  for rpm == 0

Features:
- Nonzero baseline current (magnetizing / no-load current)
- Temperature ceiling proportional to speed
- Stepwise cool-down toward ambient once the rotor stops

Both quantities are pure functions of RPM (plus previous temperature), so
they can be recomputed inside the same transition that updates RPM.
"""

from typing import Dict

# Physical parameters
AMBIENT_TEMP_C = 25.0       # °C (ambient temperature)
MAX_TEMP_C = 90.0           # °C (temperature at rated speed / ceiling)
RATED_CURRENT_A = 5.0       # A (display scale, full load)
BASE_LOAD_FACTOR = 0.2      # 20% of rated current at minimal speed
COOLDOWN_STEP_C = 0.1       # °C per RPM update while at rest


def speed_ratio(rpm: float, rated_rpm: float) -> float:
    """Normalized speed in [0, 1]."""
    if rated_rpm <= 0:
        return 0.0
    return max(0.0, min(1.0, rpm / rated_rpm))


def derive_current(rpm: float, rated_rpm: float) -> float:
    """
    Line current drawn at the given speed.

    Returns 0 when the rotor is at rest (contactor open).
    """
    if rpm <= 0:
        return 0.0
    load_factor = BASE_LOAD_FACTOR + speed_ratio(rpm, rated_rpm) * (1.0 - BASE_LOAD_FACTOR)
    return RATED_CURRENT_A * load_factor


def derive_temperature(rpm: float, rated_rpm: float, previous_temp: float) -> float:
    """
    Winding temperature after one RPM update.

    Rises toward a ceiling proportional to speed, decays toward ambient at rest.
    """
    if rpm > 0:
        return min(MAX_TEMP_C, AMBIENT_TEMP_C + speed_ratio(rpm, rated_rpm) * (MAX_TEMP_C - AMBIENT_TEMP_C))
    return max(AMBIENT_TEMP_C, previous_temp - COOLDOWN_STEP_C)


def derive_quantities(rpm: float, rated_rpm: float, previous_temp: float) -> Dict[str, float]:
    """
    Compute all derived quantities for one RPM update.

    Returns:
        {
            'system_current': float,     # A
            'motor_temperature': float,  # °C
        }
    """
    return {
        'system_current': round(derive_current(rpm, rated_rpm), 3),
        'motor_temperature': round(derive_temperature(rpm, rated_rpm, previous_temp), 2),
    }
