from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence

from .config import GameSettings
from .errors import OracleUnavailable
from .game.accuracy import GeometricAccuracySource, ImageSource, OracleAccuracySource
from .game.controller import GameController
from .game.session import GameSession, SessionSummary, SourceFactory
from .leaderboard.board import Leaderboard
from .metrics.keypoints import Pose
from .poses.library import Challenge, select_challenges
from .storage.kv import JsonFileStore
from .utils.eventlog import EventLog, format_fields


@dataclass(frozen=True)
class Sample:
    t: float
    pose: Optional[Pose]


def make_log(settings: GameSettings) -> EventLog:
    return EventLog(path=settings.logging.resolved_path(), min_level=settings.logging.level)


def open_leaderboard(settings: GameSettings, log: Optional[EventLog] = None) -> Leaderboard:
    lb = settings.leaderboard
    return Leaderboard(
        JsonFileStore(root=lb.resolved_storage_dir()),
        key=lb.key,
        capacity=lb.capacity,
        log=log,
    )


def session_challenges(
    settings: GameSettings,
    ids: Optional[Sequence[str]] = None,
    routine: Optional[str] = None,
) -> List[Challenge]:
    s = settings.session
    return select_challenges(
        ids=list(ids or s.challenges),
        routine=routine or s.routine,
        count=s.rounds,
    )


def oracle_sources(settings: GameSettings, oracle: Any, image_source: ImageSource, log: EventLog) -> SourceFactory:
    def factory(challenge: Challenge) -> OracleAccuracySource:
        return OracleAccuracySource(
            challenge,
            oracle,
            image_source,
            oracle_settings=settings.oracle,
            tracking=settings.tracking,
            log=log,
        )

    return factory


def load_samples(path: Path, min_confidence: float) -> List[Sample]:
    """Read a JSON-lines recording: ``{"t": seconds, "keypoints": [...] | null}``.

    Blank lines are skipped; samples are returned in time order.
    """
    out: List[Sample] = []
    with Path(path).open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                rec = json.loads(line)
                t = float(rec["t"])
            except (ValueError, KeyError, TypeError) as exc:
                raise ValueError(f"{path}:{lineno}: bad sample ({exc})") from exc
            kps = rec.get("keypoints")
            pose = Pose.from_keypoints(kps, min_confidence=min_confidence) if kps else None
            out.append(Sample(t=t, pose=pose))
    out.sort(key=lambda s: s.t)
    return out


def replay_session(session: GameSession, samples: Iterable[Sample], tick_interval: float) -> Optional[SessionSummary]:
    """Play recorded samples through a session on a simulated clock.

    Deadline ticks fire every ``tick_interval`` seconds between samples, and
    keep firing after the recording ends until the last round times out.
    """
    session.start(0.0)
    next_tick = tick_interval
    for sample in samples:
        while next_tick <= sample.t and not session.finished:
            session.handle_tick(next_tick)
            next_tick += tick_interval
        if session.finished:
            break
        session.handle_sample(sample.pose, sample.t)
    while not session.finished:
        session.handle_tick(next_tick)
        next_tick += tick_interval
    return session.summary


def run_replay(
    settings: GameSettings,
    player: str,
    samples_path: Path,
    ids: Optional[Sequence[str]] = None,
    routine: Optional[str] = None,
    record: bool = True,
) -> SessionSummary:
    log = make_log(settings)
    challenges = session_challenges(settings, ids, routine)
    session = GameSession(player, challenges, settings.round, source_factory=GeometricAccuracySource)
    samples = load_samples(samples_path, settings.tracking.min_joint_confidence)
    log.info(format_fields(event="replay_started", player=session.player_name, samples=len(samples)))
    summary = replay_session(session, samples, settings.sampling.deadline_check_interval_sec)
    assert summary is not None
    if record:
        open_leaderboard(settings, log).record(summary)
    return summary


def run_live(
    settings: GameSettings,
    player: str,
    camera: int | str = 0,
    source_kind: Optional[str] = None,
    ids: Optional[Sequence[str]] = None,
    routine: Optional[str] = None,
    status: Callable[[str], None] = print,
) -> Optional[SessionSummary]:
    from .vision.pose import CameraTracker

    log = make_log(settings)
    challenges = session_challenges(settings, ids, routine)
    tracker = CameraTracker(camera=camera, tracking=settings.tracking)

    kind = source_kind or settings.session.accuracy_source
    factory: SourceFactory = GeometricAccuracySource
    if kind == "oracle":
        from .oracle import GeminiOracle

        try:
            oracle = GeminiOracle(settings.oracle)
        except OracleUnavailable:
            tracker.close()
            raise
        factory = oracle_sources(settings, oracle, tracker.capture_jpeg, log)

    session = GameSession(player, challenges, settings.round, source_factory=factory)
    leaderboard = open_leaderboard(settings, log)
    controller = GameController(
        session,
        tracker,
        sample_interval=settings.sampling.interval_sec,
        tick_interval=settings.sampling.deadline_check_interval_sec,
        on_finished=leaderboard.record,
        log=log,
    )

    last_line = ""
    with controller:
        try:
            while not controller.wait(0.25):
                snap = controller.snapshot()
                rnd = snap.current_round
                if rnd is None:
                    continue
                line = (
                    f"[posearena] round {snap.round_index + 1}/{snap.round_count} "
                    f"{rnd.challenge_id} acc={rnd.last_accuracy} best={rnd.best_accuracy} "
                    f"hold={rnd.hold_elapsed_sec:.1f}s left={rnd.time_left_sec:.0f}s score={snap.total_score}"
                )
                if line != last_line:
                    status(line)
                    last_line = line
        except KeyboardInterrupt:
            status("[posearena] Interrupted; session aborted.")
            return None
    if controller.error:
        status(f"[posearena] Session failed: {controller.error}")
    return session.summary
