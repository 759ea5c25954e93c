"""Helpers for constructing standard file paths."""

import re
from datetime import datetime
from pathlib import Path

from ..config.app_config import AppPaths

# Allow only alphanumerics, underscore, dot, and dash.
_SESSION_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]+")

EXPORT_FILENAME = "recording.csv"


def _sanitize_session_name(name: str) -> str:
    """Replace disallowed characters with '_' and fall back to 'session'."""
    cleaned = _SESSION_NAME_RE.sub("_", name).strip("_")
    return cleaned or "session"


def session_directory(name: str, base: Path | None = None) -> Path:
    """
    Timestamped directory for one recording session.

    Example: "grip_test_20251204_153045" under the exports folder.
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    root = base or AppPaths().exports
    safe_name = _sanitize_session_name(name)
    return root / f"{safe_name}_{timestamp}"


def export_path(name: str, base: Path | None = None) -> Path:
    return session_directory(name, base) / EXPORT_FILENAME
