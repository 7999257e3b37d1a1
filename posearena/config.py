from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .metrics.keypoints import MIN_JOINT_CONFIDENCE, QUALITY_JOINT_CONFIDENCE
from .poses.library import DEFAULT_ROUND_COUNT, ROUTINES, resolve_challenges


AccuracySourceKind = Literal["geometric", "oracle"]

_REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = _REPO_ROOT / "config" / "game.yaml"


class RoundSettings(BaseModel):
    time_limit_sec: float = Field(default=20.0, gt=0)
    hold_sec: float = Field(default=2.0, ge=0)
    pass_threshold: int = Field(default=80, ge=0, le=100)


class SamplingSettings(BaseModel):
    # ~12.5 samples/s keeps the tracker load low on kiosk hardware.
    interval_sec: float = Field(default=0.08, gt=0)
    deadline_check_hz: float = Field(default=5.0, gt=0)

    @property
    def deadline_check_interval_sec(self) -> float:
        return 1.0 / self.deadline_check_hz


class TrackingSettings(BaseModel):
    min_joint_confidence: float = Field(default=MIN_JOINT_CONFIDENCE, ge=0, le=1)
    quality_joint_confidence: float = Field(default=QUALITY_JOINT_CONFIDENCE, ge=0, le=1)
    min_plausible_joints: int = Field(default=10, ge=1, le=17)


class SessionSettings(BaseModel):
    rounds: int = Field(default=DEFAULT_ROUND_COUNT, ge=1)
    challenges: list[str] = Field(default_factory=list)
    routine: Optional[str] = None
    accuracy_source: AccuracySourceKind = "geometric"

    @field_validator("challenges")
    @classmethod
    def _known_challenges(cls, v: list[str]) -> list[str]:
        # Raises UnknownChallengeError so a typo fails at startup.
        resolve_challenges(v)
        return v

    @field_validator("routine")
    @classmethod
    def _known_routine(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ROUTINES:
            raise ValueError(f"Unknown routine: {v}")
        return v


class LeaderboardSettings(BaseModel):
    capacity: int = Field(default=200, ge=1)
    storage_dir: Optional[Path] = None
    key: str = "leaderboard"

    def resolved_storage_dir(self) -> Path:
        if self.storage_dir is None:
            return _REPO_ROOT / "data"
        p = Path(self.storage_dir).expanduser()
        return p if p.is_absolute() else _REPO_ROOT / p


class OracleSettings(BaseModel):
    model: str = "gemini-1.5-flash"
    timeout_sec: float = Field(default=8.0, gt=0)
    retries: int = Field(default=1, ge=0)
    api_key_env: str = "GEMINI_API_KEY"


class LoggingSettings(BaseModel):
    path: Optional[Path] = Path("logs/posearena.log")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def resolved_path(self) -> Optional[Path]:
        if self.path is None:
            return None
        p = Path(self.path).expanduser()
        return p if p.is_absolute() else _REPO_ROOT / p


class GameSettings(BaseModel):
    round: RoundSettings = Field(default_factory=RoundSettings)
    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    leaderboard: LeaderboardSettings = Field(default_factory=LeaderboardSettings)
    oracle: OracleSettings = Field(default_factory=OracleSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def _tracking_floor(self) -> "GameSettings":
        if self.tracking.quality_joint_confidence > self.tracking.min_joint_confidence:
            raise ValueError("quality_joint_confidence must not exceed min_joint_confidence")
        return self


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except Exception:
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def load_settings(path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> GameSettings:
    """Read ``config/game.yaml`` (or ``path``) into validated settings.

    A missing or unreadable file yields the defaults. Values that are present
    but invalid raise ``pydantic.ValidationError``.
    """
    data = _read_yaml(Path(path) if path is not None else DEFAULT_CONFIG_PATH)
    if overrides:
        data = _deep_merge(data, overrides)
    return GameSettings.model_validate(data)


def _deep_merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in extra.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out
