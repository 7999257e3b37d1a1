from __future__ import annotations

from datetime import datetime
from pathlib import Path
import threading
from typing import Optional


LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class EventLog:
    """Append-only text log shared by the game components.

    Lines look like ``2026-01-31 18:02:11 [INFO] event=round_resolved outcome=passed``.
    Write failures are ignored so logging can never break a round.
    """

    def __init__(self, path: Optional[Path] = None, min_level: str = "INFO") -> None:
        self.path = Path(path) if path is not None else None
        self.min_level = min_level.upper() if min_level.upper() in LEVELS else "INFO"
        self._lock = threading.Lock()

    def enabled_for(self, level: str) -> bool:
        level = level.upper()
        if level not in LEVELS:
            return True
        return LEVELS.index(level) >= LEVELS.index(self.min_level)

    def log(self, level: str, message: str) -> None:
        if self.path is None or not self.enabled_for(level):
            return
        try:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            line = f"{timestamp} [{level.upper()}] {message}\n"
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(line)
        except Exception:
            return

    def info(self, message: str) -> None:
        self.log("INFO", message)

    def warning(self, message: str) -> None:
        self.log("WARNING", message)

    def error(self, message: str) -> None:
        self.log("ERROR", message)

    def read_recent(self, max_lines: int = 120) -> str:
        if self.path is None or not self.path.exists():
            return "No logs available."
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except Exception as exc:
            return f"Unable to read logs: {exc}"
        tail = lines[-max_lines:] if max_lines > 0 else lines
        return "\n".join(tail)


def format_fields(**fields: object) -> str:
    return " ".join(f"{k}={v}" for k, v in fields.items())


NULL_LOG = EventLog(path=None)
