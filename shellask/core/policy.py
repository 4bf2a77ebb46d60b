"""
Confirmation before running a command extracted from an answer.

Every command is shown first; the user may run it, edit it, or cancel.
Commands matching a destructive pattern get a warning and need an explicit
"yes". Simple substring matching only: this is a speed bump against
accidents, not a sandbox.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple


DANGEROUS_PATTERNS = [
    # Destructive file operations
    "rm -rf",
    "rm -fr",
    "rm -r",
    "sudo rm",
    "shred",

    # Disk operations
    "dd if=",
    "mkfs",
    "fdisk",

    # Permissions
    "chmod -R 777",
    "chown -R",

    # System shutdown/reboot
    "shutdown",
    "reboot",
    "poweroff",

    # Pipe to shell
    "| bash",
    "| sh",
    "|bash",
    "|sh",

    # Fork bomb and raw device writes
    ":(){ :|:& };:",
    "> /dev/sd",

    # Git force operations
    "git push --force",
    "git push -f",
    "git clean -fdx",

    # Databases and containers
    "DROP DATABASE",
    "DROP TABLE",
    "docker system prune -a",
    "kubectl delete",
]

YES_RESPONSES = {"yes", "y"}
CANCEL_RESPONSES = {"n", "no", "cancel"}


def is_dangerous(command: str) -> Tuple[bool, str]:
    """
    Check a command against the destructive patterns.

    Returns:
        (is_dangerous, reason)

    Example:
        >>> is_dangerous("rm -rf build")
        (True, "Destructive operation: 'rm -rf' detected")
    """
    command_lower = command.lower()
    for pattern in DANGEROUS_PATTERNS:
        if pattern.lower() in command_lower:
            return True, f"Destructive operation: '{pattern}' detected"
    return False, ""


@dataclass
class RunConfirmation:
    """Interactive run/edit/cancel prompt for one command."""

    ask: Callable[[str], str]
    edit: Callable[[str], str]
    warn: Callable[[str], None] = print

    def confirm(self, command: str) -> Optional[str]:
        """
        Show `command` and let the user decide.

        Returns:
            The command to run (possibly edited), or None if cancelled
        """
        self.warn(f"About to run: {command}")
        answer = self.ask("Press Enter to confirm, type 'edit' to modify, or 'n' to cancel: ").strip()

        if answer.lower() in CANCEL_RESPONSES:
            return None
        if answer.lower() == "edit":
            command = self.edit(command).strip()
            if not command:
                self.warn("No command to run after editing.")
                return None

        dangerous, reason = is_dangerous(command)
        if dangerous:
            self.warn(f"WARNING: {reason}. This command may cause data loss.")
            answer = self.ask("Type 'yes' to run it anyway: ").strip().lower()
            if answer not in YES_RESPONSES:
                return None

        return command
