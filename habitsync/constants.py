"""
Application-wide constants.
Runtime values can be overridden through HABITSYNC_* environment variables.
"""
import os

# Database
DATABASE_URL = os.getenv("HABITSYNC_DATABASE_URL", "sqlite:///./habitsync.db")

# Logging
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/habitsync"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"
LOG_DIRECTORY = os.getenv("HABITSYNC_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("HABITSYNC_LOG_FILE", "habitsync.log")

# CORS settings for the web frontend
CORS_ALLOWED_ORIGINS = os.getenv(
    "HABITSYNC_CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")

# Collections (wire contract)
HABITS_COLLECTION = "habits"
BACKUPS_COLLECTION = "backups"
CREATED_AT_FIELD = "createdAt"

# Scope layout
DAYS_IN_SCOPE = 30
HABIT_GOAL = 30
MAX_HABITS_PER_SCOPE = int(os.getenv("HABITSYNC_MAX_HABITS", "15"))

# Presentation hints
HABIT_COLORS = ["#34d399", "#60a5fa", "#fb7185", "#facc15", "#a78bfa"]
DEFAULT_CATEGORY = "Other"

# Priority buckets, evaluated top to bottom: (lower_bound, strict, label)
PRIORITY_HIGH = "High"
PRIORITY_MEDIUM = "Medium"
PRIORITY_LOW = "Low"
PRIORITY_OPTIONAL = "Optional"
PRIORITY_THRESHOLDS = (
    (70.0, False, PRIORITY_HIGH),
    (40.0, False, PRIORITY_MEDIUM),
    (0.0, True, PRIORITY_LOW),
)

# Mood series derived from daily completion
MOOD_OFFSET = 15
MOTIVATION_OFFSET = 5
MOOD_FLOOR = 20
MOOD_CEILING = 100

# Subscription retry (exponential backoff)
SUBSCRIBE_RETRY_ATTEMPTS = int(os.getenv("HABITSYNC_SUBSCRIBE_RETRY_ATTEMPTS", "5"))
SUBSCRIBE_BACKOFF_BASE = float(os.getenv("HABITSYNC_SUBSCRIBE_BACKOFF_BASE", "0.5"))
SUBSCRIBE_BACKOFF_MAX = float(os.getenv("HABITSYNC_SUBSCRIBE_BACKOFF_MAX", "30"))

# Update/delete are idempotent and may be retried; inserts never are
MUTATION_RETRY_ATTEMPTS = int(os.getenv("HABITSYNC_MUTATION_RETRY_ATTEMPTS", "0"))
