"""Exceptions raised by skillcheck."""


class SkillcheckError(Exception):
    """Base class for skillcheck errors."""


class UnknownMinigameError(SkillcheckError, ValueError):
    """Raised when a minigame identifier is not registered."""

    def __init__(self, minigame_type: str):
        super().__init__(f"Invalid minigame type: {minigame_type!r}")
        self.minigame_type = minigame_type


class SessionActiveError(SkillcheckError):
    """Raised when a session is requested while another one holds the gate."""

    def __init__(self, active: str | None = None):
        message = "Another minigame is already in progress"
        if active:
            message = f"{message} ({active})"
        super().__init__(message)
        self.active = active
