from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config import RoundSettings
from ..errors import InvalidPlayerName
from ..metrics.geometry import to_accuracy
from ..metrics.keypoints import Pose
from ..poses.library import Challenge
from ..utils.time import to_iso, utc_now
from .accuracy import AccuracySource, GeometricAccuracySource
from .round import Round, RoundOutcome, RoundSnapshot


SourceFactory = Callable[[Challenge], AccuracySource]


class SessionState(str, Enum):
    READY = "ready"
    PLAYING = "playing"
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass(frozen=True)
class RoundResult:
    index: int
    challenge_id: str
    outcome: RoundOutcome
    best_accuracy: int
    points: int


@dataclass(frozen=True)
class SessionSummary:
    player_name: str
    total_score: int
    per_round_best_accuracy: tuple[int, ...]
    passed_count: int
    failed_count: int
    completed_at: datetime
    rounds: tuple[RoundResult, ...] = ()

    @property
    def mean_best_accuracy(self) -> int:
        if not self.per_round_best_accuracy:
            return 0
        return to_accuracy(sum(self.per_round_best_accuracy) / len(self.per_round_best_accuracy))

    def to_handoff(self) -> Dict[str, Any]:
        return {
            "playerName": self.player_name,
            "totalScore": self.total_score,
            "perRoundBestAccuracy": list(self.per_round_best_accuracy),
            "timestamp": to_iso(self.completed_at),
        }


@dataclass(frozen=True)
class SessionSnapshot:
    player_name: str
    state: SessionState
    round_index: int
    round_count: int
    total_score: int
    current_round: Optional[RoundSnapshot]
    results: tuple[RoundResult, ...] = field(default_factory=tuple)


def normalize_player_name(name: Any) -> str:
    text = str(name or "").strip()
    if not text:
        raise InvalidPlayerName("Player name must not be empty")
    return text


class GameSession:
    """Plays an ordered list of challenges for one player.

    Not thread-safe: the controller's worker is the only caller once a
    session is running. ``now`` is monotonic seconds; ``wall_clock`` stamps
    the summary.
    """

    EVENTS = ("round_resolved", "finished")

    def __init__(
        self,
        player_name: str,
        challenges: Sequence[Challenge],
        round_settings: Optional[RoundSettings] = None,
        source_factory: Optional[SourceFactory] = None,
        wall_clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.player_name = normalize_player_name(player_name)
        if not challenges:
            raise ValueError("A session needs at least one challenge")
        self.challenges: List[Challenge] = list(challenges)
        self.round_settings = round_settings or RoundSettings()
        self.source_factory: SourceFactory = source_factory or GeometricAccuracySource
        self.wall_clock = wall_clock

        self.state = SessionState.READY
        self.round_index = 0
        self.total_score = 0
        self.results: List[RoundResult] = []
        self.summary: Optional[SessionSummary] = None
        self._round: Optional[Round] = None
        self._source: Optional[AccuracySource] = None
        self._recorded: set[int] = set()
        self._subscribers: Dict[int, tuple[str, Callable[[Any], None]]] = {}
        self._next_subscriber_id = 1

    @property
    def current_round(self) -> Optional[Round]:
        return self._round

    @property
    def finished(self) -> bool:
        return self.state == SessionState.FINISHED

    @property
    def active(self) -> bool:
        return self.state == SessionState.PLAYING

    def subscribe(self, event: str, callback: Callable[[Any], None]) -> int:
        if event not in self.EVENTS:
            raise ValueError(f"Unknown session event: {event}")
        token = self._next_subscriber_id
        self._next_subscriber_id += 1
        self._subscribers[token] = (event, callback)
        return token

    def unsubscribe(self, token: int) -> None:
        self._subscribers.pop(token, None)

    def _emit(self, event: str, payload: Any) -> None:
        for name, callback in list(self._subscribers.values()):
            if name != event:
                continue
            try:
                callback(payload)
            except Exception:
                continue

    def start(self, now: float) -> None:
        if self.state != SessionState.READY:
            return
        self.state = SessionState.PLAYING
        self._arm(0, now)

    def handle_sample(self, pose: Optional[Pose], now: float) -> None:
        if not self.active or self._round is None or self._source is None:
            return
        if self._source.on_sample(self._round, pose, now):
            self._on_resolved(now)

    def handle_tick(self, now: float) -> None:
        if not self.active or self._round is None:
            return
        if self._round.check_deadline(now):
            self._on_resolved(now)

    def abort(self) -> None:
        if self.state in (SessionState.FINISHED, SessionState.ABORTED):
            return
        self.state = SessionState.ABORTED
        self._close_source()

    def snapshot(self, now: float) -> SessionSnapshot:
        return SessionSnapshot(
            player_name=self.player_name,
            state=self.state,
            round_index=self.round_index,
            round_count=len(self.challenges),
            total_score=self.total_score,
            current_round=self._round.snapshot(now) if self._round is not None else None,
            results=tuple(self.results),
        )

    def _arm(self, index: int, now: float) -> None:
        self._close_source()
        self.round_index = index
        challenge = self.challenges[index]
        self._round = Round(challenge, self.round_settings)
        self._source = self.source_factory(challenge)
        self._round.arm(now)

    def _on_resolved(self, now: float) -> None:
        rnd = self._round
        if rnd is None or not rnd.resolved or self.round_index in self._recorded:
            return
        self._recorded.add(self.round_index)
        result = RoundResult(
            index=self.round_index,
            challenge_id=rnd.challenge_id,
            outcome=rnd.outcome,
            best_accuracy=rnd.best_accuracy,
            points=rnd.points,
        )
        self.results.append(result)
        self.total_score += result.points
        self._emit("round_resolved", result)

        # A source that blocked (oracle judgement) resolves later than the sample.
        armed_at = max(now, rnd.resolved_at) if rnd.resolved_at is not None else now
        next_index = self.round_index + 1
        if next_index < len(self.challenges):
            self._arm(next_index, armed_at)
            return
        self._finish()

    def _finish(self) -> None:
        self._close_source()
        self.state = SessionState.FINISHED
        self.summary = SessionSummary(
            player_name=self.player_name,
            total_score=self.total_score,
            per_round_best_accuracy=tuple(r.best_accuracy for r in self.results),
            passed_count=sum(1 for r in self.results if r.outcome == RoundOutcome.PASSED),
            failed_count=sum(1 for r in self.results if r.outcome != RoundOutcome.PASSED),
            completed_at=self.wall_clock(),
            rounds=tuple(self.results),
        )
        self._emit("finished", self.summary)

    def _close_source(self) -> None:
        if self._source is not None:
            self._source.close()
            self._source = None
