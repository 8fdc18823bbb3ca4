"""Engine command errors."""

from typing import Optional

from .base import LightDeckError


class CommandError(LightDeckError):
    """The engine rejected a command.

    The engine-provided message is what the user sees. Local optimistic
    state is not rolled back when this is raised.
    """

    def __init__(self, command: str, error: str, technical_message: Optional[str] = None):
        super().__init__(
            user_message=error,
            technical_message=technical_message or f"Engine command '{command}' failed: {error}",
            recoverable=True,
        )
        self.command = command
        self.error = error
