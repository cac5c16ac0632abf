"""Timer arithmetic for the active board.

While running only timer_started_at is stored; clients compute
remaining = time_limit*60 - elapsed. A pause stores the remaining seconds, and a
resume back-dates timer_started_at so the same client formula continues from
the paused value instead of the board's full duration.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

Timestamp = Union[str, datetime, None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Timestamp) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def elapsed_seconds(started_at: Timestamp, now: Optional[datetime] = None) -> int:
    start = parse_timestamp(started_at)
    if start is None:
        return 0
    return max(0, int(((now or utcnow()) - start).total_seconds()))


def remaining_seconds(
    time_limit_minutes: int,
    running: bool,
    started_at: Timestamp,
    paused_remaining: Optional[int],
    now: Optional[datetime] = None,
) -> int:
    total = time_limit_minutes * 60
    if running:
        return max(0, total - elapsed_seconds(started_at, now))
    if paused_remaining is not None:
        return max(0, min(total, paused_remaining))
    return total


def reset_fields() -> Dict[str, Any]:
    return {"timer_running": False, "timer_started_at": None, "time_remaining": None}


def start_fields(time_limit_minutes: int, paused_remaining: Optional[int], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    total = time_limit_minutes * 60
    already_elapsed = 0
    if paused_remaining is not None:
        already_elapsed = total - max(0, min(total, paused_remaining))
    started_at = now - timedelta(seconds=already_elapsed)
    return {"timer_running": True, "timer_started_at": started_at.isoformat(), "time_remaining": None}


def stop_fields(time_limit_minutes: int, started_at: Timestamp, now: Optional[datetime] = None) -> Dict[str, Any]:
    remaining = remaining_seconds(time_limit_minutes, True, started_at, None, now)
    return {"timer_running": False, "timer_started_at": None, "time_remaining": remaining}
