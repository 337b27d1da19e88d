"""
Formatters — Turning records into display strings

- Relative sync times ("5h ago", "never")
- Short content hashes
- Per-mirror status lines
- JSON for --format json

Dependency direction: commands -> presentation -> core
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .symbols import HASH_DISPLAY_LENGTH, SymbolSet, symbol_for_state


# (seconds per unit, suffix), largest first; a week or more shows the date
RELATIVE_UNITS = ((86400, "d"), (3600, "h"), (60, "m"))
DATE_AFTER_SECONDS = 7 * 86400


def format_timestamp(iso_str: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Time since an ISO 8601 instant, e.g. "23m ago", "3d ago", "2026-01-15".

    "never" for no timestamp, "just now" under a minute (or in the future),
    "unknown" when it does not parse. Naive timestamps are taken as UTC.
    """
    if not iso_str:
        return "never"

    try:
        # fromisoformat() before 3.11 rejects the Z suffix
        ts = datetime.fromisoformat(iso_str[:-1] + '+00:00' if iso_str.endswith('Z') else iso_str)
    except (ValueError, TypeError):
        return "unknown"
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)

    elapsed = ((now or datetime.now(timezone.utc)) - ts).total_seconds()
    if elapsed >= DATE_AFTER_SECONDS:
        return ts.strftime("%Y-%m-%d")
    for seconds, suffix in RELATIVE_UNITS:
        if elapsed >= seconds:
            return f"{int(elapsed // seconds)}{suffix} ago"
    return "just now"


def short_hash(digest: str, length: int = HASH_DISPLAY_LENGTH) -> str:
    """Hash prefix for display; "-" for an empty hash."""
    if not digest:
        return "-"
    return digest[:length]


def format_mirror_line(symbols: SymbolSet, state: str, path: str, detail: Optional[str] = None) -> str:
    """
    Format one mirror with its state symbol.

    Example:
        "  ≠ /home/me/notes/readme.md (drifted)"
    """
    line = f"  {symbol_for_state(symbols, state)} {path} ({state.replace('_', ' ')})"
    if detail:
        line += f": {detail}"
    return line


def render_json(data: Any) -> str:
    """Pretty JSON for piping; objects with to_dict() are expanded."""
    return json.dumps(data, indent=2, default=_json_serializer, ensure_ascii=False)


def _json_serializer(obj: Any) -> Any:
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)
