"""Shared tracking constants.

Centralizes the unit conversions and plausibility limits used by the run
tracker so we can document and adjust them in one place.
"""

# One kilometer in meters
KM_M = 1000.0

# Mean Earth radius used by the haversine formula (meters)
EARTH_RADIUS_M = 6371000.0

# m/s -> min/km: pace = PACE_FACTOR / speed  (1000 / 60)
PACE_FACTOR = 16.6667

# Instantaneous paces at or above this (min/km) are treated as noise.
MAX_PLAUSIBLE_PACE_MIN_PER_KM = 60.0

# Rendered whenever a pace is zero, missing or non-finite.
PACE_PLACEHOLDER = "--:--"

# Distance between split boundaries (km)
SPLIT_KM = 1.0
