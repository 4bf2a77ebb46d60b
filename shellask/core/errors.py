"""Error taxonomy shared by the CLI and the interactive controller."""

from typing import Optional


class ShellAskError(Exception):
    """Base class for all errors raised by shellask."""


class UserInputError(ShellAskError):
    """Empty prompt, invalid run index, unknown REPL command."""


class StorageError(ShellAskError):
    """A session directory or file could not be created, read or written."""


class NotFoundError(StorageError):
    """No session exists yet."""


class UpstreamError(ShellAskError):
    """The completion call failed or returned nothing."""


class CommandExecutionError(ShellAskError):
    """
    A shell command exited non-zero.

    The captured output is kept on the exception so callers can still
    display and persist it.
    """

    def __init__(self, command: str, output: str, exit_code: Optional[int]):
        self.command = command
        self.output = output
        self.exit_code = exit_code
        super().__init__(f"command failed (exit code {exit_code}): {command}")
