"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).

Per-facility values (timezone, bookable window, slot width, overlays) are
stored alongside the facility's rule rows; the values here are only the
fallback used when a facility has no policy row yet.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "court_booking.db"))

# ── Facility defaults ─────────────────────────────────────────────────────

FACILITY_TIMEZONE: str = os.getenv("FACILITY_TIMEZONE", "America/New_York")
DAY_START_HOUR: int = int(os.getenv("DAY_START_HOUR", "6"))
DAY_END_HOUR: int = int(os.getenv("DAY_END_HOUR", "21"))
SLOT_GRANULARITY_MINUTES: int = int(os.getenv("SLOT_GRANULARITY_MINUTES", "15"))

# ── Rule registry ─────────────────────────────────────────────────────────

# How long a facility's loaded rule set stays cached (seconds).
# 0 keeps it until explicitly invalidated by the admin surface.
RULE_CACHE_TTL_SECONDS: float = float(os.getenv("RULE_CACHE_TTL_SECONDS", "300"))

# Informational rules that may be skipped (fail open) when the history they
# need cannot be read. Safety-critical rules are never skipped regardless.
FAIL_OPEN_RULE_CODES: frozenset[str] = frozenset(
    code.strip().upper()
    for code in os.getenv("FAIL_OPEN_RULE_CODES", "").split(",")
    if code.strip()
)

# ── Server ────────────────────────────────────────────────────────────────

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
API_RELOAD: bool = os.getenv("API_RELOAD", "false").lower() == "true"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").lower()
