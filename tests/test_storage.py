from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from posearena.storage.kv import JsonFileStore, MemoryStore
from posearena.utils.eventlog import EventLog, format_fields


class JsonFileStoreTests(unittest.TestCase):
    def test_missing_key_reads_none(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertIsNone(JsonFileStore(root=Path(tmpdir)).get("leaderboard"))

    def test_set_replaces_whole_document(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = JsonFileStore(root=Path(tmpdir) / "nested")
            store.set("leaderboard", "[1, 2, 3]")
            store.set("leaderboard", "[]")
            self.assertEqual(store.get("leaderboard"), "[]")
            leftovers = [p.name for p in (Path(tmpdir) / "nested").iterdir()]
            self.assertEqual(leftovers, ["leaderboard.json"])

    def test_key_is_sanitised(self) -> None:
        store = JsonFileStore(root=Path("/tmp/x"))
        self.assertEqual(store.path_for("../Leader Board").name, "leaderboard.json")

    def test_memory_store(self) -> None:
        store = MemoryStore()
        self.assertIsNone(store.get("k"))
        store.set("k", "v")
        self.assertEqual(store.get("k"), "v")


class EventLogTests(unittest.TestCase):
    def test_lines_are_formatted_and_filtered(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            log = EventLog(Path(tmpdir) / "logs" / "game.log", min_level="INFO")
            log.log("DEBUG", "hidden")
            log.info(format_fields(event="round_resolved", points=8))
            log.error("bad")
            recent = log.read_recent()
        lines = recent.splitlines()
        self.assertEqual(len(lines), 2)
        self.assertRegex(lines[0], r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[INFO\] event=round_resolved points=8$")
        self.assertIn("[ERROR] bad", lines[1])

    def test_disabled_log_is_silent(self) -> None:
        log = EventLog(path=None)
        log.info("nothing")
        self.assertEqual(log.read_recent(), "No logs available.")

    def test_unwritable_path_does_not_raise(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = Path(tmpdir) / "file"
            blocker.write_text("x", encoding="utf-8")
            log = EventLog(blocker / "game.log")
            log.error("still fine")


if __name__ == "__main__":
    unittest.main()
