"""Configuration settings for FocusFy."""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv


def get_base_dir() -> Path:
    """
    Get the base directory for the application.

    Returns:
        Path to the directory containing this file.
    """
    return Path(__file__).parent


def get_user_data_dir() -> Path:
    """
    Get the directory for user-writable data (stats, auth tokens, etc.).

    FOCUSFY_DATA_DIR overrides the location. Otherwise development checkouts
    keep data next to the code and everything else uses the platform's
    per-user application data folder.

    Returns:
        Path to the user data directory.
    """
    override = os.getenv("FOCUSFY_DATA_DIR", "")
    if override:
        return Path(override)

    if (get_base_dir() / ".env").exists():
        # Development mode
        return get_base_dir() / "data"

    if sys.platform == 'darwin':
        return Path.home() / "Library" / "Application Support" / "FocusFy"
    elif sys.platform == 'win32':
        appdata = os.environ.get('APPDATA')
        if appdata:
            return Path(appdata) / "FocusFy"
        return Path.home() / "AppData" / "Roaming" / "FocusFy"
    return Path.home() / ".local" / "share" / "FocusFy"


def _get_bool(env_var: str, default: bool = False) -> bool:
    """Read a true/false flag from the environment."""
    value = os.getenv(env_var, "")
    if not value:
        return default
    return value.lower() in ("true", "1", "yes")


def _get_optional_float(env_var: str) -> "float | None":
    """Read an optional positive float; blank or invalid means None."""
    value = os.getenv(env_var, "")
    if not value:
        return None
    try:
        parsed = float(value)
    except ValueError:
        import logging
        logging.getLogger(__name__).warning(f"{env_var} is not a number: {value!r}")
        return None
    return parsed if parsed > 0 else None


# Load environment variables from the project .env file
# Explicit path so .env is found regardless of current working directory
_env_path = Path(__file__).parent / ".env"
load_dotenv(_env_path)

# Base directory (for bundled resources like assets)
BASE_DIR = get_base_dir()

# User data directory (for writable data like stats and auth tokens)
USER_DATA_DIR = get_user_data_dir()

# Remote collector configuration
# Empty FOCUS_API_URL means local-only mode: no remote calls are attempted
FOCUS_API_URL = os.getenv("FOCUS_API_URL", "").rstrip("/")
FOCUS_ANALYZE_URL = os.getenv("FOCUS_ANALYZE_URL", "").rstrip("/") or FOCUS_API_URL
FOCUS_API_TOKEN = os.getenv("FOCUS_API_TOKEN", "")
FOCUS_HTTP_TIMEOUT = _get_optional_float("FOCUS_HTTP_TIMEOUT")  # None = no timeout
AUTH_FILE = USER_DATA_DIR / "auth.json"

# Local user whose statistics record is updated at session end
USER_ID = os.getenv("FOCUSFY_USER_ID", "local")

# Session durations (minutes)
DEFAULT_DURATION_MINUTES = 25
MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 120
STEP_DURATION_MINUTES = 5

# Scheduling
TICK_INTERVAL_SECONDS = 1.0
SAMPLE_INTERVAL_SECONDS = 1.5
MAX_INFLIGHT_ANALYSES = 2  # Analyses allowed in flight before a cycle is skipped
TASK_JOIN_TIMEOUT = 2.0

# Camera Configuration
CAMERA_INDEX = 0
JPEG_QUALITY = 80  # Encoding quality for frames sent to the scorer

# Focus scoring
BASE_FOCUS_SCORE = 100
GAZE_OFF_CENTER_PENALTY = 30
BLINK_PENALTY_PER_UNIT = 5
MAX_BLINK_PENALTY = 30
DEFAULT_CONFIDENCE = 0.5

# Legacy placeholder score (random jitter on each tick while the camera is on)
# Display-only; never recorded as a sample
PLACEHOLDER_SCORING = _get_bool("PLACEHOLDER_SCORING", False)
PLACEHOLDER_SCORE_RANGE = (80, 99)

# Statistics record defaults
DEFAULT_WEEKLY_GOAL_HOURS = 20

# Session statuses
STATUS_IDLE = "idle"
STATUS_RUNNING = "running"
STATUS_PAUSED = "paused"
STATUS_COMPLETED = "completed"


# Save reports to user's Downloads folder (with fallback)
def _get_reports_dir() -> Path:
    """Get the reports directory with fallback if Downloads doesn't exist."""
    downloads = Path.home() / "Downloads"
    if downloads.exists() and downloads.is_dir():
        return downloads
    documents = Path.home() / "Documents"
    if documents.exists() and documents.is_dir():
        return documents
    return USER_DATA_DIR / "reports"

REPORTS_DIR = _get_reports_dir()

# Ensure user data directory exists
try:
    USER_DATA_DIR.mkdir(parents=True, exist_ok=True)
except Exception as e:
    import logging
    logging.getLogger(__name__).error(f"Failed to create data directory {USER_DATA_DIR}: {e}")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # Can override in .env: DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
