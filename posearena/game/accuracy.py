from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
import time
from typing import Callable, Optional, Protocol

from ..config import OracleSettings, TrackingSettings
from ..errors import OracleUnavailable
from ..metrics.keypoints import Pose
from ..metrics.quality import is_body_plausible
from ..oracle import Oracle
from ..poses.library import Challenge
from ..utils.eventlog import NULL_LOG, EventLog, format_fields
from .round import Round


ImageSource = Callable[[], Optional[bytes]]


class AccuracySource(Protocol):
    def on_sample(self, rnd: Round, pose: Optional[Pose], now: float) -> bool:
        """Feed one tracker sample to ``rnd``. Returns True if it resolved the round."""
        ...

    def close(self) -> None:
        ...


class GeometricAccuracySource:
    """Scores every sample with the challenge's validator."""

    def __init__(self, challenge: Challenge) -> None:
        self.challenge = challenge

    def on_sample(self, rnd: Round, pose: Optional[Pose], now: float) -> bool:
        acc = self.challenge.validate(pose) if pose is not None else 0
        return rnd.observe(acc, now)

    def close(self) -> None:
        return None


class OracleAccuracySource:
    """Holds on a plausible body, then asks the oracle for one judgement.

    The oracle call is bounded by ``timeout_sec`` per attempt and retried
    ``retries`` times. Any failure is logged and scored as 0.
    """

    def __init__(
        self,
        challenge: Challenge,
        oracle: Oracle,
        image_source: ImageSource,
        oracle_settings: Optional[OracleSettings] = None,
        tracking: Optional[TrackingSettings] = None,
        log: Optional[EventLog] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.challenge = challenge
        self.oracle = oracle
        self.image_source = image_source
        self.settings = oracle_settings or OracleSettings()
        self.tracking = tracking or TrackingSettings()
        self.log = log or NULL_LOG
        self.clock = clock
        self._executor: Optional[ThreadPoolExecutor] = None

    def on_sample(self, rnd: Round, pose: Optional[Pose], now: float) -> bool:
        plausible = is_body_plausible(
            pose,
            min_confidence=self.tracking.quality_joint_confidence,
            min_joints=self.tracking.min_plausible_joints,
        )
        if not rnd.observe_stability(plausible, now):
            return False
        accuracy = self.judge()
        # The judgement can block for seconds; resolve at the time it returned.
        return rnd.resolve_judged(accuracy, max(now, self.clock()))

    def judge(self) -> int:
        try:
            image = self.image_source()
        except Exception as exc:
            self.log.warning(format_fields(event="oracle_capture_failed", challenge=self.challenge.id, error=exc))
            return 0
        if not image:
            self.log.warning(format_fields(event="oracle_capture_empty", challenge=self.challenge.id))
            return 0

        attempts = self.settings.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self._judge_once(image)
            except FutureTimeout:
                reason = "timeout"
            except OracleUnavailable as exc:
                reason = str(exc)
            except Exception as exc:
                reason = f"{type(exc).__name__}: {exc}"
            self.log.warning(
                format_fields(
                    event="oracle_failed",
                    challenge=self.challenge.id,
                    attempt=attempt,
                    reason=reason,
                )
            )
        return 0

    def _judge_once(self, image: bytes) -> int:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="oracle")
        future = self._executor.submit(
            self.oracle.judge, image, self.challenge.display_name, self.challenge.description
        )
        try:
            value = future.result(timeout=self.settings.timeout_sec)
        except FutureTimeout:
            future.cancel()
            # A hung call keeps its worker; start fresh for the next attempt.
            self._executor.shutdown(wait=False)
            self._executor = None
            raise
        return max(0, min(100, int(value)))

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
