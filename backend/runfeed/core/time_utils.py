import math

from runfeed.core.constants import PACE_PLACEHOLDER


def seconds_to_hhmmss(total_seconds: float) -> str:
    """
    Convert total seconds -> 'HH:MM:SS'.
    Example: 2732 -> '00:45:32'
    """
    total_seconds = int(total_seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_clock(total_seconds: float) -> str:
    """Running clock as 'MM:SS' (minutes keep counting past 59)."""
    total_seconds = int(total_seconds)
    return f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"


def is_displayable_pace(pace: float | None) -> bool:
    return pace is not None and math.isfinite(pace) and pace > 0


def format_pace(pace: float | None, suffix: str = "") -> str:
    """
    Render a pace in min/km as 'M:SS'.
    Example: 5.5 -> '5:30'

    Zero, missing, negative and non-finite paces render as '--:--' so a
    placeholder is shown instead of a meaningless number.
    """
    if not is_displayable_pace(pace):
        return PACE_PLACEHOLDER
    minutes = int(pace)
    seconds = int((pace - minutes) * 60)
    return f"{minutes}:{seconds:02d}{suffix}"


def compute_avg_pace(duration_seconds: float, distance_km: float) -> float | None:
    """
    Average pace in min/km, or None when no distance was covered.
    Example: duration=1800 sec, distance=6.0 -> 5.0
    """
    if distance_km is None or distance_km <= 0:
        return None
    pace = (duration_seconds / 60.0) / distance_km
    if not math.isfinite(pace):
        return None
    return pace
