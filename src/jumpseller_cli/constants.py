import os
from pathlib import Path

"""Global constants and configuration path definitions for the Jumpseller CLI.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, remote endpoints and the default sync rules used across the
application.
"""

# --- Identity ---
APP_NAME = "jumpseller"
"""str: The application name, also used as the logger name."""

VERSION = "0.1.0"
"""str: The CLI version reported by `--version`."""

# --- Remote ---
PRODUCTION_SUFFIX = ".jumpseller.com"
"""str: Domain suffix for production stores."""

LOCAL_SUFFIX = ".localhost"
"""str: Domain suffix for stores served by a local development stack."""

TEST_STORE = "test" + LOCAL_SUFFIX
"""str: The store the `test` shorthand expands to."""

API_URL = "https://api.jumpseller.com"
"""str: Base URL of the production API."""

LOCAL_API_URL = "http://api.localhost"
"""str: Base URL of the API for `.localhost` stores."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "jumpseller"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "jumpseller.log"
"""Path: The file path for the CLI logs."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/jumpseller"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The settings file path."""

CREDENTIALS_FILE_NAME = "credentials"
"""str: Name of the credentials file inside the config directory."""

GLOBAL_STORE_FILE_NAME = "store"
"""str: Name of the global default store file inside the config directory."""

LOCAL_STORE_FILE = ".jumpseller-store"
"""str: Name of the per-project default store file, searched for upwards."""

LOCAL_CONFIG_FILE = "jumpseller.toml"
"""str: Name of the per-project settings file."""

# --- Git / Watch Constants ---
GIT_LOCK_FILES = [
    "MERGE_HEAD",
    "REBASE_HEAD",
    "CHERRY_PICK_HEAD",
    "BISECT_LOG",
    "rebase-merge",
    "rebase-apply",
]
"""
list[str]: Git internal files indicating an
active state (merge/rebase) in the repository.
"""

GIT_INDEX_LOCK = "index.lock"
"""str: The lock git holds on the index while it rewrites the working tree."""

UNSAFE_PATTERNS = ["components/*.json"]
"""
list[str]: Patterns blocked by default during `theme watch`,
since writes to them can be quite destructive.
"""
