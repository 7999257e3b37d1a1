from __future__ import annotations

import os
import re
from typing import Any, Optional, Protocol

from .config import OracleSettings
from .errors import OracleUnavailable


PROMPT_TEMPLATE = """You are a pose detection expert. Analyze this image and determine how accurately the person is performing the "{name}" pose.

Pose Description: {description}

Rate the accuracy from 0-100 where:
- 0-39: Not performing the pose or very inaccurate
- 40-59: Attempting the pose but significant errors
- 60-79: Good attempt, minor adjustments needed
- 80-100: Excellent execution of the pose

Respond with ONLY a number between 0 and 100. No other text."""

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class Oracle(Protocol):
    def judge(self, image_jpeg: bytes, challenge_name: str, challenge_description: str) -> int:
        ...


def build_prompt(challenge_name: str, challenge_description: str) -> str:
    return PROMPT_TEMPLATE.format(name=challenge_name, description=challenge_description)


def parse_oracle_reply(text: Optional[str]) -> int:
    """Read the leading integer of a reply and clamp it into [0, 100]."""
    m = _LEADING_INT.match(text or "")
    if m is None:
        raise OracleUnavailable(f"Unparseable oracle reply: {text!r}")
    return max(0, min(100, int(m.group(1))))


class GeminiOracle:
    """Judges a JPEG frame with a Gemini vision model.

    The SDK is imported on construction so the core package works without it.
    """

    def __init__(self, settings: Optional[OracleSettings] = None, api_key: Optional[str] = None) -> None:
        self.settings = settings or OracleSettings()
        key = api_key or os.getenv(self.settings.api_key_env)
        if not key:
            raise OracleUnavailable(f"{self.settings.api_key_env} is not set")

        import google.generativeai as genai

        genai.configure(api_key=key)
        self._model: Any = genai.GenerativeModel(self.settings.model)

    def judge(self, image_jpeg: bytes, challenge_name: str, challenge_description: str) -> int:
        prompt = build_prompt(challenge_name, challenge_description)
        try:
            response = self._model.generate_content(
                [prompt, {"mime_type": "image/jpeg", "data": image_jpeg}],
                request_options={"timeout": self.settings.timeout_sec},
            )
            text = response.text
        except Exception as exc:
            raise OracleUnavailable(f"Gemini request failed: {exc}") from exc
        return parse_oracle_reply(text)
