"""Constants for cascadelab."""

from pathlib import Path

# ============================================================================
# Table Names
# ============================================================================

ORIGIN_TABLE = "ORIGIN"
CONTENT_TABLE = "CONTENT"

# ============================================================================
# Defaults
# ============================================================================

DEFAULT_APP_DIR = Path.home() / ".cascadelab"
DEFAULT_DATABASE_PATH = str(DEFAULT_APP_DIR / "cascadelab.db")
DEFAULT_INVALIDATE_ON_BULK = True

# Logging defaults
DEFAULT_LOG_DIR = DEFAULT_APP_DIR / "logs"
DEFAULT_LOG_FILE = "cascadelab.log"
DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_LOG_BACKUP_COUNT = 5

# Seed data used by the cascade scenarios
SCENARIO_ORIGIN_NAME = "Origin 1"
SCENARIO_CONTENT_NAME = "Content 1"
