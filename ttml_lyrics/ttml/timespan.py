from __future__ import annotations

import re

from .errors import TimespanError

# [[hh:]mm:]ss[.fff]
_CLOCK_RE = re.compile(r"^(?:(?:(\d+):)?(\d+):)?(\d+)(?:\.(\d+))?$")
# 1.5s / 250ms / 2m / 1h
_OFFSET_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|h|m|s)$")

_METRIC_MS = {"h": 3_600_000, "m": 60_000, "s": 1_000, "ms": 1}


def parse_timespan(text: str) -> int:
    """
    Decode a TTML time expression to integer milliseconds.

    Supported:
    - clock time: ss, mm:ss, hh:mm:ss, each with an optional .fraction
    - offset time: <number>h, <number>m, <number>s, <number>ms
    """
    raw = (text or "").strip()
    if not raw:
        raise TimespanError("Empty time expression")

    off = _OFFSET_RE.match(raw)
    if off:
        return int(round(float(off.group(1)) * _METRIC_MS[off.group(2)]))

    m = _CLOCK_RE.match(raw)
    if not m:
        raise TimespanError(f"Invalid time expression: {text!r}")

    hours_s, minutes_s, seconds_s, frac = m.groups()
    hours = int(hours_s) if hours_s else 0
    minutes = int(minutes_s) if minutes_s else 0
    seconds = int(seconds_s)
    if minutes_s is not None and seconds > 59:
        raise TimespanError(f"Invalid seconds: {seconds}")
    if hours_s is not None and minutes > 59:
        raise TimespanError(f"Invalid minutes: {minutes}")

    # "5" -> 500ms, "05" -> 50ms, "123456" -> 123ms
    ms = int(frac.ljust(3, "0")[:3]) if frac else 0
    return ((hours * 60 + minutes) * 60 + seconds) * 1000 + ms


def format_timespan(ms: int) -> str:
    # mm:ss.mmm, hours folded into minutes
    m, rem = divmod(max(ms, 0), 60_000)
    s, ms2 = divmod(rem, 1_000)
    return f"{m:02d}:{s:02d}.{ms2:03d}"
