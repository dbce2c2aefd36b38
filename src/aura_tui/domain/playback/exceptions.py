"""Playback domain exceptions."""


class EngineError(Exception):
    """Base exception for audio engine failures."""


class EngineCommandError(EngineError):
    """The playback process rejected or never answered a command."""

    def __init__(self, command: str, message: str = None):
        self.command = command
        super().__init__(message or f"Engine rejected command: {command}")
