"""Interactive editing of prompts and commands in the user's $EDITOR."""

import logging
import os
import shlex
import subprocess
import tempfile

from shellask.core.errors import ShellAskError

logger = logging.getLogger(__name__)


class EditorError(ShellAskError):
    """The editor could not be started or exited with an error."""


class Editor:
    """Opens a temp file in an external editor and returns what was saved."""

    def __init__(self, command: str = "vi"):
        self.command = command or "vi"

    def edit(self, initial_content: str = "") -> str:
        fd, path = tempfile.mkstemp(prefix="shellask_prompt_", suffix=".md")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(initial_content)

            # EDITOR may carry arguments, e.g. "code --wait"
            args = shlex.split(self.command) + [path]
            logger.debug("Opening editor: %s", " ".join(args))
            try:
                subprocess.run(args, check=True)
            except FileNotFoundError as e:
                raise EditorError(f"Editor not found: {self.command}") from e
            except subprocess.CalledProcessError as e:
                raise EditorError(f"Editor exited with status {e.returncode}") from e

            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        finally:
            os.unlink(path)
