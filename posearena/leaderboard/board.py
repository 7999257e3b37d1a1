from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
import json
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError, field_validator

from ..errors import CorruptPersistedState
from ..game.session import SessionSummary
from ..storage.kv import KeyValueStore
from ..utils.eventlog import NULL_LOG, EventLog, format_fields
from ..utils.time import parse_iso, same_local_day, to_iso, utc_now, within_last


DEFAULT_CAPACITY = 200
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr
    score: int = 0
    accuracy: int = 0
    timestamp: str = ""
    attempts: int = 1

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("empty name")
        return v

    @field_validator("score", "accuracy", mode="before")
    @classmethod
    def _lenient_int(cls, v: Any) -> int:
        try:
            return int(float(v))
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("attempts", mode="before")
    @classmethod
    def _lenient_attempts(cls, v: Any) -> int:
        # Entries written before attempts were tracked count as one game.
        try:
            return max(1, int(float(v)))
        except (TypeError, ValueError, OverflowError):
            return 1

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_text(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @property
    def key(self) -> str:
        return name_key(self.name)

    @property
    def recorded_at(self) -> Optional[datetime]:
        return parse_iso(self.timestamp)


def name_key(name: str) -> str:
    return name.strip().casefold()


def _sort_key(entry: LeaderboardEntry) -> tuple:
    return (-entry.score, -(entry.recorded_at or _OLDEST).timestamp())


def sort_entries(entries: Iterable[LeaderboardEntry]) -> List[LeaderboardEntry]:
    """Score descending; ties go to the most recent timestamp."""
    return sorted(entries, key=_sort_key)


def parse_entries(raw: Optional[str]) -> List[LeaderboardEntry]:
    """Decode a stored leaderboard document.

    Raises ``CorruptPersistedState`` when the document is not a JSON array.
    Individual entries that fail validation are dropped, and when a name
    appears more than once only its best-ranked entry is kept.
    """
    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptPersistedState(f"Leaderboard is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise CorruptPersistedState("Leaderboard document is not a list")

    parsed: List[LeaderboardEntry] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        try:
            parsed.append(LeaderboardEntry.model_validate(item))
        except ValidationError:
            continue

    seen: set[str] = set()
    out: List[LeaderboardEntry] = []
    for entry in sort_entries(parsed):
        if entry.key in seen:
            continue
        seen.add(entry.key)
        out.append(entry)
    return out


def dump_entries(entries: Sequence[LeaderboardEntry]) -> str:
    return json.dumps([e.model_dump() for e in entries], indent=2)


def merge_session(
    entries: Sequence[LeaderboardEntry],
    summary: SessionSummary,
    now: Optional[datetime] = None,
    capacity: int = DEFAULT_CAPACITY,
) -> List[LeaderboardEntry]:
    """Fold one finished session into the collection and return the new list."""
    stamp = to_iso(now or utc_now())
    key = name_key(summary.player_name)
    merged: List[LeaderboardEntry] = []
    found = False
    for entry in entries:
        if not found and entry.key == key:
            found = True
            merged.append(
                entry.model_copy(
                    update={
                        "score": entry.score + summary.total_score,
                        "accuracy": summary.mean_best_accuracy,
                        "timestamp": stamp,
                        "attempts": entry.attempts + 1,
                    }
                )
            )
        else:
            merged.append(entry)
    if not found:
        merged.append(
            LeaderboardEntry(
                name=summary.player_name,
                score=summary.total_score,
                accuracy=summary.mean_best_accuracy,
                timestamp=stamp,
                attempts=1,
            )
        )
    return sort_entries(merged)[: max(0, capacity)]


class TimeWindow(str, Enum):
    TODAY = "today"
    WEEK = "week"
    ALLTIME = "alltime"


def filter_window(
    entries: Iterable[LeaderboardEntry],
    window: TimeWindow = TimeWindow.ALLTIME,
    now: Optional[datetime] = None,
) -> List[LeaderboardEntry]:
    window = TimeWindow(window)
    if window == TimeWindow.ALLTIME:
        return list(entries)
    now = now or utc_now()
    out: List[LeaderboardEntry] = []
    for entry in entries:
        ts = entry.recorded_at
        if ts is None:
            continue
        if window == TimeWindow.TODAY and same_local_day(ts, now):
            out.append(entry)
        elif window == TimeWindow.WEEK and within_last(ts, now, timedelta(days=7)):
            out.append(entry)
    return out


@dataclass(frozen=True)
class RankedEntry:
    rank: int
    entry: LeaderboardEntry


def rank_entries(
    entries: Iterable[LeaderboardEntry],
    window: TimeWindow = TimeWindow.ALLTIME,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[RankedEntry]:
    ranked = sort_entries(filter_window(entries, window, now))
    if limit is not None:
        ranked = ranked[: max(0, limit)]
    return [RankedEntry(rank=i + 1, entry=e) for i, e in enumerate(ranked)]


@dataclass(frozen=True)
class LeaderboardStats:
    total_players: int
    games_played: int
    high_score: int


def leaderboard_stats(entries: Sequence[LeaderboardEntry]) -> LeaderboardStats:
    return LeaderboardStats(
        total_players=len(entries),
        games_played=sum(e.attempts for e in entries),
        high_score=max((e.score for e in entries), default=0),
    )


class Leaderboard:
    """Persisted leaderboard on top of a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "leaderboard",
        capacity: int = DEFAULT_CAPACITY,
        log: Optional[EventLog] = None,
    ) -> None:
        self.store = store
        self.key = key
        self.capacity = capacity
        self.log = log or NULL_LOG

    def load(self) -> List[LeaderboardEntry]:
        try:
            raw = self.store.get(self.key)
            return parse_entries(raw)
        except (CorruptPersistedState, OSError, UnicodeDecodeError) as exc:
            self.log.warning(format_fields(event="leaderboard_unreadable", key=self.key, error=exc))
            return []

    def record(self, summary: SessionSummary, now: Optional[datetime] = None) -> List[LeaderboardEntry]:
        entries = merge_session(self.load(), summary, now=now, capacity=self.capacity)
        self.store.set(self.key, dump_entries(entries))
        self.log.info(
            format_fields(
                event="leaderboard_recorded",
                player=summary.player_name,
                added=summary.total_score,
                entries=len(entries),
            )
        )
        return entries

    def ranked(
        self,
        window: TimeWindow = TimeWindow.ALLTIME,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[RankedEntry]:
        return rank_entries(self.load(), window, now, limit)

    def stats(self) -> LeaderboardStats:
        return leaderboard_stats(self.load())
