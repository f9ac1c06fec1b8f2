"""Core constants for quotesctl."""

from enum import Enum


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class SourceKind(str, Enum):
    """Where delivered payloads come from."""

    RANDOM_WALK = "random_walk"
    FILE = "file"


class PaceEvent(str, Enum):
    """Events a paced delivery loop can wake up on."""

    TICK = "tick"
    CANCEL = "cancel"


# ============================================
# Default Values
# ============================================

DEFAULT_BROKER = "127.0.0.1:9092"
DEFAULT_TOPIC = "quotes"
DEFAULT_CLIENT_ID = "quotesctl"
DEFAULT_FLUSH_TIMEOUT_SECONDS = 30.0

DEFAULT_INTERVAL_MS = 1000
DEFAULT_CHUNK_SIZE = 1000  # bulk generate, unpaced flush
HISTORY_CHUNK_SIZE = 500  # history reload
MAX_BATCH_SIZE = 1000

BULK_PROGRESS_EVERY = 500
PACED_PROGRESS_EVERY = 100

# ============================================
# Application Constants
# ============================================

APP_NAME = "quotesctl"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
