"""
FILE: kanmd/core/constants.py
PURPOSE: Constants used throughout the application
EXPORTS:
  - PRIORITIES, DEFAULT_PRIORITY, PRIORITY_ORDER
  - DEFAULT_COLUMNS, DEFAULT_BOARD_NAME
  - BOARD_FILE, CARD_SUFFIX, TEMP_SUFFIX
  - get_board_dir() -> Path
DEPENDENCIES:
  - os, pathlib (stdlib)
NOTES:
  - Single source of truth for priority values and on-disk names
  - Board root comes from $KANMD_DIR, else ./.kanban (resolved on every call)
"""

import os
from pathlib import Path

# Priority constants (sort order: high first)
PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"
PRIORITIES = (PRIORITY_HIGH, PRIORITY_MEDIUM, PRIORITY_LOW)
DEFAULT_PRIORITY = PRIORITY_MEDIUM
PRIORITY_ORDER = {p: i for i, p in enumerate(PRIORITIES)}

# Board layout
DEFAULT_BOARD_NAME = "Project Board"
DEFAULT_COLUMNS = ("todo", "in-progress", "review", "done")
BOARD_FILE = "board.yaml"
CARD_SUFFIX = ".md"
TEMP_SUFFIX = ".tmp"
DEFAULT_TITLE = "Untitled"

# Card ids
MAX_ID_LENGTH = 50

# Board root location
BOARD_DIR_ENV = "KANMD_DIR"
DEFAULT_BOARD_DIRNAME = ".kanban"

# Watch tuning
DEBOUNCE_SECONDS = 0.1
POLL_INTERVAL_SECONDS = 1.0
POLL_ERROR_THRESHOLD = 3


def get_board_dir() -> Path:
    """Resolve the board root from the environment or the working directory."""
    override = os.environ.get(BOARD_DIR_ENV)
    if override:
        return Path(override).resolve()
    return Path.cwd() / DEFAULT_BOARD_DIRNAME
