"""Application constants."""

# Set input limits (sanitized at the mutation boundary)
MAX_WEIGHT = 9999
MAX_REPS = 999

# Legacy templates stored a bare set count, or nothing usable at all
DEFAULT_LEGACY_SET_COUNT = 3

# Undo window for a deleted set
UNDO_WINDOW_SECONDS = 4.0

# Rest timer
REST_TIMER_MAX_SECONDS = 600
REST_TIMER_ADJUST_STEP = 15
DEFAULT_REST_SECONDS = 120

# In-session coaching fires on this completed set of an exercise
COACHING_SET_NUMBER = 3

# Epley: weight * (1 + reps / EPLEY_DIVISOR)
EPLEY_DIVISOR = 30

# A persisted coaching context older than this is discarded
STALE_SESSION_HOURS = 3.0

# Workout comparison shows at most this many exercise improvements
MAX_COMPARISON_IMPROVEMENTS = 2

# Owner of requests that carry no X-User-Id header
DEFAULT_USER_ID = "default"
