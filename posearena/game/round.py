from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config import RoundSettings
from ..metrics.geometry import points_for, to_accuracy
from ..poses.library import Challenge


class RoundState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    HOLDING = "holding"
    RESOLVED = "resolved"


class RoundOutcome(str, Enum):
    PENDING = "pending"
    PASSED = "passed"
    TIMED_OUT = "timedOut"


@dataclass(frozen=True)
class RoundSnapshot:
    challenge_id: str
    state: RoundState
    outcome: RoundOutcome
    last_accuracy: int
    best_accuracy: int
    hold_elapsed_sec: float
    time_left_sec: float
    points: int


class Round:
    """Timed attempt at one challenge.

    ``now`` values are monotonic seconds supplied by the caller; the round
    never reads a clock itself. Once resolved every further call is a no-op.
    """

    def __init__(self, challenge: Challenge, settings: Optional[RoundSettings] = None) -> None:
        self.challenge = challenge
        self.settings = settings or RoundSettings()
        self.state = RoundState.IDLE
        self.outcome = RoundOutcome.PENDING
        self.deadline: Optional[float] = None
        self.hold_started_at: Optional[float] = None
        self.best_accuracy = 0
        self.last_accuracy = 0
        self.points = 0
        self.armed_at: Optional[float] = None
        self.resolved_at: Optional[float] = None

    @property
    def challenge_id(self) -> str:
        return self.challenge.id

    @property
    def resolved(self) -> bool:
        return self.state == RoundState.RESOLVED

    def arm(self, now: float) -> None:
        if self.resolved:
            return
        self.state = RoundState.ARMED
        self.armed_at = now
        self.deadline = now + self.settings.time_limit_sec
        self.hold_started_at = None
        self.best_accuracy = 0
        self.last_accuracy = 0

    def observe(self, accuracy: Optional[float], now: float) -> bool:
        """Feed one accuracy sample. Returns True if this sample passed the round."""
        if self.state not in (RoundState.ARMED, RoundState.HOLDING):
            return False
        acc = to_accuracy(accuracy) if accuracy is not None else 0
        self.last_accuracy = acc
        if acc > self.best_accuracy:
            self.best_accuracy = acc
        if self._update_hold(acc >= self.settings.pass_threshold, now):
            self._resolve(RoundOutcome.PASSED, now)
            return True
        return False

    def observe_stability(self, stable: bool, now: float) -> bool:
        """Track a hold on an arbitrary condition without scoring.

        Returns True once the condition has held for ``hold_sec``; the caller
        is then expected to judge the round with :meth:`resolve_judged`.
        """
        if self.state not in (RoundState.ARMED, RoundState.HOLDING):
            return False
        return self._update_hold(stable, now)

    def resolve_judged(self, accuracy: Optional[float], now: float) -> bool:
        """Resolve from a one-shot accuracy judgement (e.g. an external oracle)."""
        if self.state not in (RoundState.ARMED, RoundState.HOLDING):
            return False
        acc = to_accuracy(accuracy) if accuracy is not None else 0
        self.last_accuracy = acc
        if acc > self.best_accuracy:
            self.best_accuracy = acc
        passed = acc >= self.settings.pass_threshold
        self._resolve(RoundOutcome.PASSED if passed else RoundOutcome.TIMED_OUT, now)
        return True

    def check_deadline(self, now: float) -> bool:
        """Returns True if this call timed the round out."""
        if self.state not in (RoundState.ARMED, RoundState.HOLDING):
            return False
        if self.deadline is None or now < self.deadline:
            return False
        self._resolve(RoundOutcome.TIMED_OUT, now)
        return True

    def hold_elapsed(self, now: float) -> float:
        if self.hold_started_at is None or self.resolved:
            return 0.0
        return max(0.0, now - self.hold_started_at)

    def time_left(self, now: float) -> float:
        if self.deadline is None:
            return self.settings.time_limit_sec
        if self.resolved:
            return 0.0
        return max(0.0, self.deadline - now)

    def snapshot(self, now: float) -> RoundSnapshot:
        return RoundSnapshot(
            challenge_id=self.challenge_id,
            state=self.state,
            outcome=self.outcome,
            last_accuracy=self.last_accuracy,
            best_accuracy=self.best_accuracy,
            hold_elapsed_sec=self.hold_elapsed(now),
            time_left_sec=self.time_left(now),
            points=self.points,
        )

    def _update_hold(self, condition: bool, now: float) -> bool:
        # The hold must be continuous; any miss restarts the clock.
        if not condition:
            self.hold_started_at = None
            self.state = RoundState.ARMED
            return False
        if self.hold_started_at is None:
            self.hold_started_at = now
            self.state = RoundState.HOLDING
        return now - self.hold_started_at >= self.settings.hold_sec

    def _resolve(self, outcome: RoundOutcome, now: float) -> None:
        self.state = RoundState.RESOLVED
        self.outcome = outcome
        self.hold_started_at = None
        self.resolved_at = now
        # Timeouts still pay out on the best accuracy reached.
        self.points = points_for(self.best_accuracy)
