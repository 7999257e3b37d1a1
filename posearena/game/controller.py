from __future__ import annotations

import queue
import threading
import time
from typing import Callable, Optional, Protocol, Tuple

from ..metrics.keypoints import Pose
from ..utils.eventlog import NULL_LOG, EventLog, format_fields
from .session import GameSession, SessionSnapshot, SessionSummary


class Tracker(Protocol):
    def read(self) -> Optional[Pose]:
        ...

    def close(self) -> None:
        ...


_SAMPLE = "sample"
_TICK = "tick"
_STOP = "stop"

Event = Tuple[str, Optional[Pose], float]


class GameController:
    """Drives a session from a tracker on background threads.

    A sampler thread reads the tracker, a ticker thread checks the round
    deadline, and a single worker thread applies both to the session. Only
    the worker touches session state.
    """

    def __init__(
        self,
        session: GameSession,
        tracker: Tracker,
        sample_interval: float = 0.08,
        tick_interval: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
        on_finished: Optional[Callable[[SessionSummary], None]] = None,
        log: Optional[EventLog] = None,
    ) -> None:
        self.session = session
        self.tracker = tracker
        self.sample_interval = sample_interval
        self.tick_interval = tick_interval
        self.clock = clock
        self.on_finished = on_finished
        self.log = log or NULL_LOG
        self.error: Optional[str] = None

        self._q: "queue.Queue[Event]" = queue.Queue()
        self._running = threading.Event()
        self._done = threading.Event()
        self._wake = threading.Event()
        self._sample_pending = threading.Event()
        self._state_lock = threading.Lock()
        # Held around tracker.read() and tracker.close(); close never lands mid-read.
        self._tracker_lock = threading.Lock()
        self._tracker_closed = False
        self._stop_lock = threading.Lock()
        self._stopped = False
        self._threads: list[threading.Thread] = []

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def start(self) -> None:
        if self._threads:
            return
        self._running.set()
        with self._state_lock:
            self.session.start(self.clock())
        self.log.info(
            format_fields(
                event="session_started",
                player=self.session.player_name,
                rounds=len(self.session.challenges),
            )
        )
        self._threads = [
            threading.Thread(target=self._work, name="posearena-worker", daemon=True),
            threading.Thread(target=self._sample_loop, name="posearena-sampler", daemon=True),
            threading.Thread(target=self._tick_loop, name="posearena-ticker", daemon=True),
        ]
        for t in self._threads:
            t.start()

    def stop(self) -> None:
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True
        self._running.clear()
        self._wake.set()
        self._q.put((_STOP, None, 0.0))
        current = threading.current_thread()
        for t in self._threads:
            if t is not current:
                t.join(timeout=1.0)
        with self._state_lock:
            if not self.session.finished:
                self.session.abort()
        with self._tracker_lock:
            self._tracker_closed = True
            try:
                self.tracker.close()
            except Exception as exc:
                self.log.warning(format_fields(event="tracker_close_failed", error=exc))
        self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def snapshot(self) -> SessionSnapshot:
        with self._state_lock:
            return self.session.snapshot(self.clock())

    def __enter__(self) -> "GameController":
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop()

    def _sample_loop(self) -> None:
        while self._running.is_set():
            if not self._sample_pending.is_set():
                with self._tracker_lock:
                    if self._tracker_closed:
                        return
                    try:
                        pose = self.tracker.read()
                    except Exception as exc:
                        self.log.warning(format_fields(event="tracker_read_failed", error=exc))
                        pose = None
                self._sample_pending.set()
                self._q.put((_SAMPLE, pose, self.clock()))
            self._wake.wait(self.sample_interval)

    def _tick_loop(self) -> None:
        while self._running.is_set():
            self._q.put((_TICK, None, self.clock()))
            self._wake.wait(self.tick_interval)

    def _work(self) -> None:
        try:
            while True:
                kind, pose, ts = self._q.get()
                if kind == _STOP:
                    return
                with self._state_lock:
                    before = len(self.session.results)
                    if kind == _SAMPLE:
                        self.session.handle_sample(pose, ts)
                        self._sample_pending.clear()
                    else:
                        self.session.handle_tick(ts)
                    resolved = self.session.results[before:]
                    finished = self.session.finished
                for result in resolved:
                    self.log.info(
                        format_fields(
                            event="round_resolved",
                            challenge=result.challenge_id,
                            outcome=result.outcome.value,
                            best=result.best_accuracy,
                            points=result.points,
                        )
                    )
                if finished:
                    self._finish()
                    return
        except Exception as exc:
            self.error = str(exc)
            self.log.error(format_fields(event="worker_failed", error=exc))
            self._running.clear()
            self._wake.set()
            self._done.set()

    def _finish(self) -> None:
        summary = self.session.summary
        self._running.clear()
        self._wake.set()
        if summary is not None:
            self.log.info(
                format_fields(
                    event="session_finished",
                    player=summary.player_name,
                    score=summary.total_score,
                    passed=summary.passed_count,
                )
            )
            if self.on_finished is not None:
                try:
                    self.on_finished(summary)
                except Exception as exc:
                    self.log.error(format_fields(event="on_finished_failed", error=exc))
        self._done.set()
