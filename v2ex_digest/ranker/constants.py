"""Constants for time-decay scoring."""

# Score = (replies - 1) / (hours_since_post + HOUR_OFFSET) ^ GRAVITY
GRAVITY: float = 1.8
HOUR_OFFSET: float = 2.0

SECONDS_PER_HOUR: float = 3600.0
