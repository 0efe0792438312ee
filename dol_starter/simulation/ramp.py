"""
RPM Ramp Curves

Start: ease-in-out cubic over ramp_duration_ms.
Stop:  ease-out cubic over ramp_duration_ms * stop_duration_ratio.
"""


def ease_in_out_cubic(t: float) -> float:
    """Smooth acceleration: slow start, fast middle, slow finish."""
    if t < 0.5:
        return 4 * t * t * t
    return 1 - ((-2 * t + 2) ** 3) / 2


def ease_out_cubic(t: float) -> float:
    """Smooth deceleration: fast at first, settling at the end."""
    return 1 - (1 - t) ** 3


def ramp_progress(elapsed_ms: float, duration_ms: float) -> float:
    """Normalized progress in [0, 1]."""
    if duration_ms <= 0:
        return 1.0
    return max(0.0, min(elapsed_ms / duration_ms, 1.0))


def start_ramp_rpm(elapsed_ms: float, duration_ms: float, rated_rpm: float) -> float:
    """RPM on the acceleration curve `elapsed_ms` after the start press."""
    return float(round(rated_rpm * ease_in_out_cubic(ramp_progress(elapsed_ms, duration_ms))))


def stop_ramp_rpm(elapsed_ms: float, duration_ms: float, from_rpm: float) -> float:
    """RPM on the deceleration curve `elapsed_ms` after the stop press."""
    return float(round(from_rpm * (1 - ease_out_cubic(ramp_progress(elapsed_ms, duration_ms)))))
