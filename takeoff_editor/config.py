"""
Configuration and constants for the takeoff editor.

Contains:
- Draft store location and recovery window
- Commit endpoint settings
- Edit session limits
- Logging level for the CLI
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Draft (crash recovery) store
DRAFT_DB_PATH = os.environ.get("TAKEOFF_DRAFT_DB_PATH", "takeoff_editor/data/drafts.db")
DRAFT_MAX_AGE_MINUTES = float(os.environ.get("TAKEOFF_DRAFT_MAX_AGE_MINUTES", "60"))
AUTOSAVE_INTERVAL_SECONDS = float(os.environ.get("TAKEOFF_AUTOSAVE_INTERVAL_SECONDS", "30"))

# Commit ("validate") endpoint
COMMIT_URL = os.environ.get("TAKEOFF_COMMIT_URL")
COMMIT_TIMEOUT_SECONDS = float(os.environ.get("TAKEOFF_COMMIT_TIMEOUT", "30"))

# Edit session
MAX_UNDO_STACK_SIZE = int(os.environ.get("TAKEOFF_MAX_UNDO", "50"))

# Logging
LOG_LEVEL = os.environ.get("TAKEOFF_LOG_LEVEL", "INFO")
