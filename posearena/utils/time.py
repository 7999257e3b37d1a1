from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    text = ts.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_iso(s: object) -> Optional[datetime]:
    if not isinstance(s, str):
        return None
    text = s.strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        # Naive stamps are taken as local wall time.
        parsed = parsed.astimezone()
    return parsed


def same_local_day(a: datetime, b: datetime) -> bool:
    return a.astimezone().date() == b.astimezone().date()


def within_last(ts: datetime, now: datetime, span: timedelta) -> bool:
    return ts >= now - span
