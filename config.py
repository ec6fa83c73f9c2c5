"""
Reload - Centralised configuration.

All tunables live here.  Every other module imports from config
instead of reading os.environ directly.
"""

from __future__ import annotations
import os
from pathlib import Path


# ── Paths ──────────────────────────────────────────────────────────────
BASE_DIR    = Path(__file__).resolve().parent
UPLOAD_DIR  = Path(os.environ.get("RELOAD_UPLOAD_DIR", BASE_DIR / "uploads" / "temp"))

# ── Database ───────────────────────────────────────────────────────────
DB_URL = os.environ.get("RELOAD_DB", f"sqlite:///{BASE_DIR / 'reloading.sqlite'}")

# ── Server ─────────────────────────────────────────────────────────────
HOST      = os.environ.get("RELOAD_HOST", "0.0.0.0")
PORT      = int(os.environ.get("RELOAD_PORT", "3000"))
DEBUG     = os.environ.get("RELOAD_DEBUG", "0") == "1"
LOG_LEVEL = os.environ.get("RELOAD_LOG_LEVEL", "INFO").upper()

# ── Uploads ────────────────────────────────────────────────────────────
MAX_UPLOAD_MB             = int(os.environ.get("RELOAD_MAX_UPLOAD_MB", "10"))
ALLOWED_IMPORT_EXTENSIONS = (".xlsx",)

# ── Pagination ─────────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE     = 50
API_MAX_LIMIT         = 1000
PREVIEW_DEFAULT_LIMIT = 10
