from __future__ import annotations


class PoseArenaError(Exception):
    """Base class for errors raised by the game core."""


class MissingJointData(PoseArenaError):
    """A validator needed a joint that is absent or below the confidence floor."""

    def __init__(self, joint: str) -> None:
        super().__init__(f"Joint not usable: {joint}")
        self.joint = joint


class CorruptPersistedState(PoseArenaError):
    pass


class OracleUnavailable(PoseArenaError):
    pass


class InvalidPlayerName(PoseArenaError, ValueError):
    pass


class UnknownChallengeError(PoseArenaError, KeyError):
    def __init__(self, challenge_id: str) -> None:
        super().__init__(challenge_id)
        self.challenge_id = challenge_id

    def __str__(self) -> str:
        return f"Unknown challenge id: {self.challenge_id!r}"
