from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tempfile
import threading
from typing import Dict, Optional, Protocol


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


@dataclass
class JsonFileStore:
    """One ``<key>.json`` file per key under ``root``.

    Writes go to a temp file in the same directory and are swapped in with
    ``os.replace`` so a reader never sees a half-written document.
    """

    root: Path
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def path_for(self, key: str) -> Path:
        safe = "".join(c for c in key.lower() if c.isalnum() or c in "-_").strip() or "default"
        return Path(self.root) / f"{safe}.json"

    def get(self, key: str) -> Optional[str]:
        p = self.path_for(key)
        if not p.exists():
            return None
        return p.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        p = self.path_for(key)
        with self._lock:
            p.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{p.stem}-", suffix=".tmp", dir=str(p.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, p)
            except BaseException:
                try:
                    os.unlink(tmp)
                except OSError:
                    pass
                raise


@dataclass
class MemoryStore:
    data: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
