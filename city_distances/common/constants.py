"""Application constants."""

USER_AGENT = "tracktopia-city-distances/1.0"
SOURCE_TAG = "generated"
EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0
MIN_COS_LAT = 1e-6
EXIT_SUCCESS = 0
EXIT_HARD_FAIL = 20
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "event",
    "status",
    "batch",
    "rows_in",
    "rows_out",
    "duration_ms",
    "error_code",
    "message",
)
