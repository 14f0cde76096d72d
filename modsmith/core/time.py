# modsmith/core/time.py
from __future__ import annotations
import datetime as dt
import time

__all__ = ["nowMonotonicMs", "utcNowIso", "parseIso", "mtimeIso"]



def nowMonotonicMs() -> int:
    """Returns the current monotonic time in milliseconds."""
    return int(time.perf_counter() * 1000)



def utcNowIso() -> str:
    now = dt.datetime.now(dt.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")



def parseIso(value: str) -> dt.datetime:
    """
    Parses an ISO-8601 timestamp as written by utcNowIso().
    Naive values are treated as UTC; unparsable values sort as the epoch.
    """
    try:
        parsed = dt.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return dt.datetime.fromtimestamp(0, dt.timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed



def mtimeIso(mtime: float) -> str:
    stamp = dt.datetime.fromtimestamp(mtime, dt.timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")
