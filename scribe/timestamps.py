"""Canonical HH:MM:SS.mmm timestamp handling."""

import math
import re
from typing import Any

ZERO_TIMESTAMP = "00:00:00.000"
MAX_TIMESTAMP = "99:59:59.999"
MAX_TIMESTAMP_MS = ((99 * 3600 + 59 * 60 + 59) * 1000) + 999

# ASCII digits only; other Unicode digits are noise and get stripped.
# Bare seconds count, e.g. "123.456"
SECONDS_RE = re.compile(r"^\d+(?:\.\d+)?$", re.ASCII)
CANONICAL_RE = re.compile(r"^(\d{2}):(\d{2}):(\d{2})\.(\d{3})$", re.ASCII)
_NON_TIME_CHARS_RE = re.compile(r"[^\d:.]", re.ASCII)
_SEPARATOR_RE = re.compile(r"[:.]")


def _from_seconds(raw: str) -> str:
    total_ms = int(math.floor(float(raw) * 1000 + 0.5))
    if total_ms > MAX_TIMESTAMP_MS:
        # the hour field has two digits
        return MAX_TIMESTAMP
    ms = total_ms % 1000
    total_sec = total_ms // 1000
    s = total_sec % 60
    m = (total_sec % 3600) // 60
    h = total_sec // 3600
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"


def normalize_timestamp(value: Any) -> str:
    """Normalize a timestamp-like value to HH:MM:SS.mmm.

    Accepted examples:
    - 123.456 (raw seconds)
    - 01:02:03.456 / 01:02:03:456
    - 02:15.500 (MM:SS.mmm)
    - 01:02:03 (HH:MM:SS)
    - 5:30 (MM:SS)
    - 7 (seconds only)

    Never raises; anything unusable becomes 00:00:00.000.
    """
    if value is None:
        return ZERO_TIMESTAMP
    raw = str(value).strip()
    if not raw:
        return ZERO_TIMESTAMP

    if SECONDS_RE.match(raw):
        return _from_seconds(raw)

    clean = _NON_TIME_CHARS_RE.sub("", raw)
    parts = _SEPARATOR_RE.split(clean)

    hh, mm, ss, mmm = "00", "00", "00", "000"
    if len(parts) >= 4:
        hh, mm, ss, mmm = parts[:4]
    elif len(parts) == 3:
        # Models mix MM:SS.mmm and HH:MM:SS; a 3-digit tail means milliseconds.
        if len(parts[2]) == 3:
            mm, ss, mmm = parts
        else:
            hh, mm, ss = parts
    elif len(parts) == 2:
        mm, ss = parts
    elif len(parts) == 1:
        ss = parts[0]

    return (
        f"{hh.rjust(2, '0')[:2]}:{mm.rjust(2, '0')[:2]}:"
        f"{ss.rjust(2, '0')[:2]}.{mmm.ljust(3, '0')[:3]}"
    )


def timestamp_to_ms(value: Any) -> int:
    """Convert a timestamp (normalized first) to milliseconds."""
    m = CANONICAL_RE.match(normalize_timestamp(value))
    if not m:
        return 0
    h, mi, s, ms = (int(g) for g in m.groups())
    return ((h * 3600 + mi * 60 + s) * 1000) + ms


def ms_to_srt_time(total_ms: int) -> str:
    """Convert milliseconds to a standard SRT timestamp string HH:MM:SS,ms."""
    if total_ms < 0:
        total_ms = 0
    ms = total_ms % 1000
    total_sec = total_ms // 1000
    s = total_sec % 60
    total_min = total_sec // 60
    m = total_min % 60
    h = total_min // 60
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"
