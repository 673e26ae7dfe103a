"""Core constants used across RetroState modules.

This module centralizes storage layout names and numeric limits.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".retrostate")
STATES_DIR_NAME = "states"
CATALOG_FILE_NAME = "catalog.json"
STATE_FILE_NAME = "state.json"
VERIFICATION_REPORT_FILE_NAME = "verification_report.json"
TOKEN_BITS = 63
MAX_TOKEN = (1 << TOKEN_BITS) - 1
DEFAULT_RANDOM_SEED = 42
DEFAULT_MACHINE_MODEL = "unknown"
REGISTER_FIELD_NAMES = (
    "ix",
    "iy",
    "pc",
    "sp",
    "af",
    "bc",
    "de",
    "hl",
    "af_prime",
    "bc_prime",
    "de_prime",
    "hl_prime",
    "i",
    "r_1",
    "r_2",
)
VERIFY_QUICK_REGION_SIZE = 2048
VERIFY_FULL_REGION_SIZE = 32000
VERIFY_REGION_COUNT = 10
VERIFY_CONCURRENT_WORKERS = 8
