from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json
from pathlib import Path
import tempfile
import unittest

from posearena.errors import CorruptPersistedState
from posearena.game.session import SessionSummary
from posearena.leaderboard.board import (
    Leaderboard,
    LeaderboardEntry,
    TimeWindow,
    leaderboard_stats,
    merge_session,
    parse_entries,
    rank_entries,
)
from posearena.storage.kv import JsonFileStore, MemoryStore
from posearena.utils.time import to_iso


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _summary(name: str, total: int, bests=(80,)) -> SessionSummary:
    return SessionSummary(
        player_name=name,
        total_score=total,
        per_round_best_accuracy=tuple(bests),
        passed_count=0,
        failed_count=len(bests),
        completed_at=NOW,
    )


def _entry(name: str, score: int, ts: datetime = NOW, attempts: int = 1) -> LeaderboardEntry:
    return LeaderboardEntry(name=name, score=score, accuracy=50, timestamp=to_iso(ts), attempts=attempts)


class MergeTests(unittest.TestCase):
    def test_same_player_accumulates(self) -> None:
        entries = merge_session([], _summary("Ana", 10), NOW)
        entries = merge_session(entries, _summary("ana", 15, bests=(90, 71)), NOW + timedelta(minutes=5))
        self.assertEqual(len(entries), 1)
        e = entries[0]
        self.assertEqual(e.name, "Ana")
        self.assertEqual(e.score, 25)
        self.assertEqual(e.attempts, 2)
        self.assertEqual(e.accuracy, 81)
        self.assertEqual(e.timestamp, "2026-03-10T12:05:00.000Z")

    def test_sorted_by_score_then_recency(self) -> None:
        older = _entry("Old", 30, NOW - timedelta(days=1))
        entries = merge_session([older, _entry("Low", 5)], _summary("New", 30), NOW)
        self.assertEqual([e.name for e in entries], ["New", "Old", "Low"])

    def test_capacity_evicts_lowest(self) -> None:
        entries = [_entry(f"p{i}", 100 + i) for i in range(200)]
        out = merge_session(entries, _summary("late", 150), NOW, capacity=200)
        self.assertEqual(len(out), 200)
        self.assertIn("late", [e.name for e in out])
        self.assertNotIn("p0", [e.name for e in out])
        out = merge_session(entries, _summary("tiny", 1), NOW, capacity=200)
        self.assertNotIn("tiny", [e.name for e in out])

    def test_merge_order_does_not_change_totals(self) -> None:
        a = [_summary("Ana", 4), _summary("Bo", 7), _summary("ANA", 9)]
        b = [a[2], a[1], a[0]]
        left, right = [], []
        for s in a:
            left = merge_session(left, s, NOW)
        for s in b:
            right = merge_session(right, s, NOW)
        totals = lambda es: {e.name.casefold(): (e.score, e.attempts) for e in es}
        self.assertEqual(totals(left), totals(right))
        self.assertEqual(totals(left)["ana"], (13, 2))


class ParseTests(unittest.TestCase):
    def test_corrupt_document_raises(self) -> None:
        with self.assertRaises(CorruptPersistedState):
            parse_entries("{not json")
        with self.assertRaises(CorruptPersistedState):
            parse_entries('{"name": "x"}')

    def test_invalid_entries_are_dropped(self) -> None:
        raw = json.dumps(
            [
                {"name": "Ana", "score": "12", "accuracy": 80.6, "timestamp": to_iso(NOW)},
                {"name": 42, "score": 99},
                {"score": 99},
                {"name": "   ", "score": 1},
                "junk",
                {"name": "Bo", "score": None, "attempts": "x"},
            ]
        )
        entries = parse_entries(raw)
        self.assertEqual([e.name for e in entries], ["Ana", "Bo"])
        self.assertEqual(entries[0].score, 12)
        self.assertEqual(entries[0].accuracy, 80)
        self.assertEqual(entries[0].attempts, 1)
        self.assertEqual(entries[1].score, 0)

    def test_duplicate_names_keep_best(self) -> None:
        raw = json.dumps([{"name": "ana", "score": 3}, {"name": "Ana", "score": 40}])
        entries = parse_entries(raw)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].score, 40)

    def test_empty_storage(self) -> None:
        self.assertEqual(parse_entries(None), [])
        self.assertEqual(parse_entries("  "), [])


class WindowTests(unittest.TestCase):
    def test_windows(self) -> None:
        entries = [
            _entry("now", 1, NOW),
            _entry("three_days", 2, NOW - timedelta(days=3)),
            _entry("old", 3, NOW - timedelta(days=8)),
            LeaderboardEntry(name="undated", score=4),
        ]
        alltime = rank_entries(entries, TimeWindow.ALLTIME, NOW)
        self.assertEqual([r.entry.name for r in alltime], ["undated", "old", "three_days", "now"])
        self.assertEqual([r.rank for r in alltime], [1, 2, 3, 4])
        week = rank_entries(entries, TimeWindow.WEEK, NOW)
        self.assertEqual([r.entry.name for r in week], ["three_days", "now"])
        today = rank_entries(entries, TimeWindow.TODAY, NOW)
        self.assertEqual([r.entry.name for r in today], ["now"])
        self.assertEqual(len(rank_entries(entries, "alltime", NOW, limit=2)), 2)

    def test_stats(self) -> None:
        stats = leaderboard_stats([_entry("a", 10, attempts=3), _entry("b", 25)])
        self.assertEqual(stats.total_players, 2)
        self.assertEqual(stats.games_played, 4)
        self.assertEqual(stats.high_score, 25)
        self.assertEqual(leaderboard_stats([]).high_score, 0)


class LeaderboardStoreTests(unittest.TestCase):
    def test_record_persists_to_disk(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            board = Leaderboard(JsonFileStore(root=Path(tmpdir)))
            board.record(_summary("Ana", 10), NOW)
            board.record(_summary("Ana", 15), NOW)
            data = json.loads((Path(tmpdir) / "leaderboard.json").read_text(encoding="utf-8"))
            self.assertEqual(data[0]["name"], "Ana")
            self.assertEqual(data[0]["score"], 25)
            self.assertEqual(data[0]["attempts"], 2)
            self.assertEqual(set(data[0]), {"name", "score", "accuracy", "timestamp", "attempts"})

    def test_corrupt_storage_loads_empty_and_logs(self) -> None:
        from posearena.utils.eventlog import EventLog

        with tempfile.TemporaryDirectory() as tmpdir:
            store = MemoryStore({"leaderboard": "[{oops"})
            log_path = Path(tmpdir) / "game.log"
            board = Leaderboard(store, log=EventLog(log_path))
            self.assertEqual(board.load(), [])
            self.assertIn("event=leaderboard_unreadable", log_path.read_text(encoding="utf-8"))
            board.record(_summary("Ana", 5), NOW)
            self.assertEqual(len(parse_entries(store.get("leaderboard"))), 1)

    def test_ranked_does_not_write(self) -> None:
        store = MemoryStore({"leaderboard": json.dumps([{"name": "Ana", "score": 3}])})
        board = Leaderboard(store)
        before = store.get("leaderboard")
        board.ranked(TimeWindow.TODAY, NOW)
        board.stats()
        self.assertEqual(store.get("leaderboard"), before)


if __name__ == "__main__":
    unittest.main()
