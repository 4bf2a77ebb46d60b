"""Shell command execution with captured combined output."""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShellResult:
    """Outcome of one shell invocation."""

    command: str
    output: str
    exit_code: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0


def _get_no_pager_env() -> Dict[str, str]:
    """
    Copy of the environment with pagers disabled.

    Output is captured rather than shown on a terminal, so anything that
    would start `less` must print straight through instead.
    """
    env = os.environ.copy()
    env.update({
        'PAGER': 'cat',
        'GIT_PAGER': 'cat',
        'LESS': '',
        'MORE': '',
    })
    return env


class ShellRunner:
    """
    Runs a command string in a subshell and captures its output.

    The command is passed verbatim to `sh -c`, so a multi-line fenced block
    from an answer runs as a script.
    """

    def __init__(self, shell_path: str = "sh", cwd: Optional[Path] = None):
        """
        Args:
            shell_path: Shell used for `-c` execution
            cwd: Working directory (defaults to the current directory)
        """
        self.shell_path = shell_path
        self.cwd = cwd

    def run(self, command: str) -> ShellResult:
        """
        Execute `command` and return stdout followed by stderr.

        A missing shell binary is reported as exit code 127 with the OS
        error as output, the same way a shell reports an unknown command.
        """
        logger.debug('Running shell command: %s -c "%s"', self.shell_path, command)
        try:
            completed = subprocess.run(
                [self.shell_path, "-c", command],
                cwd=str(self.cwd) if self.cwd else None,
                env=_get_no_pager_env(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            logger.debug("Shell could not be started: %s", e)
            return ShellResult(command=command, output=f"{e}\n", exit_code=127)

        output = (
            completed.stdout.decode("utf-8", errors="replace")
            + completed.stderr.decode("utf-8", errors="replace")
        )
        logger.debug("Command exited with %d (%d chars of output)", completed.returncode, len(output))
        return ShellResult(command=command, output=output, exit_code=completed.returncode)
