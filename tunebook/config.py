"""Constants, paths, and data-dump URLs."""

import os

# ── Paths ──────────────────────────────────────────────────────────────
DB_DIR = os.path.expanduser("~/.tunebook")
DB_PATH = os.path.join(DB_DIR, "tunebook.db")
DATA_DIR = os.path.join(DB_DIR, "data")
OUTPUT_DIR = os.path.join(DB_DIR, "processed")

# ── TheSession data dump ───────────────────────────────────────────────
DUMP_BASE_URL = "https://raw.githubusercontent.com/adactio/TheSession-data/main/json"
DUMP_USER_AGENT = "TunebookBot/1.0 (TheSession.org data normalization)"
DUMP_RATE_LIMIT = 0.5  # seconds between requests
DUMP_DEFAULT_WORKERS = 4

# Input name → file name.  The loader tries <data_dir>/json/<file> before
# <data_dir>/<file>.
INPUT_FILES = {
    "tunes": "tunes.json",
    "sets": "sets.json",
    "recordings": "recordings.json",
    "sessions": "sessions.json",
    "aliases": "aliases.json",
    "popularity": "tune_popularity.json",
}

# Output collection → file name written by the exporter
OUTPUT_FILES = {
    "tunes": "processed_tunes.json",
    "sets": "processed_sets.json",
    "recordings": "processed_recordings.json",
    "sessions": "processed_sessions.json",
    "users": "processed_users.json",
}

# ── Feature extraction ────────────────────────────────────────────────
DEFAULT_KEY_SIGNATURE = "C"
DEFAULT_TIME_SIGNATURE = "4/4"
RHYTHM_PATTERN_LENGTH = 32

# ── Normalization ──────────────────────────────────────────────────────
PROGRESS_INTERVAL = 1000      # print a checkpoint every N settings

# ── Reporting ──────────────────────────────────────────────────────────
MAX_ERRORS_SHOWN = 10
