"""
Confirm-then-run for commands extracted from an answer.
Shared by one-shot `ask --run` and the interactive `run` command.
"""

import logging
from typing import Optional

from shellask.core.assistant import Assistant
from shellask.core.editor import EditorError
from shellask.core.errors import CommandExecutionError
from shellask.core.policy import RunConfirmation
from shellask.core.session import Session
from shellask.ui.output import UIManager

logger = logging.getLogger(__name__)


def run_extracted_command(
    assistant: Assistant,
    confirmation: RunConfirmation,
    ui: UIManager,
    command: str,
    session: Optional[Session],
) -> bool:
    """
    Confirm and execute one command, printing its output.

    Returns:
        True if the command ran and exited zero, False otherwise
        (cancelled, editor failure or non-zero exit)
    """
    try:
        command = confirmation.confirm(command)
    except EditorError as e:
        ui.error(f"Error editing command: {e}")
        return False

    if command is None:
        ui.warning("Command cancelled.")
        return False

    ui.command(f"Running: {command}")
    try:
        outcome = assistant.run_command(command, session)
    except CommandExecutionError as e:
        if e.output:
            ui.plain(e.output.rstrip("\n"))
        ui.error(f"Error running command: {e}")
        return False

    if outcome.result.output:
        ui.plain(outcome.result.output.rstrip("\n"))
    if outcome.storage_error is not None:
        ui.warning(f"Warning: could not save run output: {outcome.storage_error}")
    return True
