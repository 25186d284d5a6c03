"""Application constants."""

USER_AGENT = "seclog-stats/1.0"
COMMANDS = ("analyze", "partitions")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20

EXPECTED_SOURCE = "security.log"
DENIED_MARKER = "denied"
UNKNOWN_COUNTRY = "Unknown"
UNKNOWN_ASN = 0

START_OLDEST = "oldest"
START_NEWEST = "newest"
START_POSITIONS = (START_OLDEST, START_NEWEST)

LOCAL_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_STAMP_FORMAT = "%Y%m%d_%H%M%S"

# Presets offered for the start of the window, relative to its end.
SINCE_PRESETS = {
    "1h": 1 * 3600,
    "6h": 6 * 3600,
    "12h": 12 * 3600,
    "1d": 24 * 3600,
    "7d": 7 * 24 * 3600,
    "30d": 30 * 24 * 3600,
    "all": None,
}

EXPORT_HEADERS = ["Type", "Country", "IP/Domain", "Count"]

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "topic",
    "partition",
    "event",
    "status",
    "duration_ms",
    "records_in",
    "records_out",
    "error_code",
    "message",
)
