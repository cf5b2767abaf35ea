"""Quiz-related constants shared across the core and API layers."""

DEFAULT_TIME_LIMIT_MINUTES: int = 30
DEFAULT_POINTS: int = 1
TICK_INTERVAL_SECONDS: float = 1.0
LOW_TIME_WARNING_SECONDS: int = 300
RECENT_RESULTS_LIMIT: int = 5
MENTOR_RECENT_RESULTS_LIMIT: int = 3

# Lower bound (inclusive) of each band, highest first.
PERFORMANCE_BANDS: tuple[tuple[float, str], ...] = (
    (90.0, "Excellent"),
    (80.0, "Good"),
    (70.0, "Satisfactory"),
)
FALLBACK_PERFORMANCE_BAND: str = "Needs Improvement"

# Finished attempts kept readable by id before the oldest are released.
FINISHED_ATTEMPT_LIMIT: int = 256
