from enum import Enum

USER_AGENT = "mangarr"

# (connect, read) in seconds
REQUEST_TIMEOUT = (30.0, 60.0)

RETRY_ATTEMPTS = 3
RETRY_DELAY = 3.0
RETRY_MAX_JITTER = 1.0

DEFAULT_NAMING_TEMPLATE = "{manga:<.>} Ch. {num:3}{title: - <.>}"
DEFAULT_CHECK_INTERVAL = 15
MONITOR_LEAD_TIME = 40.0

WIDTH_BIN_SIZE = 10

IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class ArchiveFormat(Enum):
    """Represents supported chapter archive formats."""
    CBZ = "cbz"
    PDF = "pdf"


class ChapterOutcome(Enum):
    """Represents the result of one chapter download request."""
    DOWNLOADED = "downloaded"
    SKIPPED = "skipped"
    LOCKED = "locked"


class SelectionMode(Enum):
    """Represents how chapters are chosen for a title."""
    FIRST = "first"
    LATEST = "latest"
    EXPRESSION = "expression"
