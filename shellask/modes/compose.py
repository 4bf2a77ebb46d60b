"""
Compose loop: gather shell context before a one-shot prompt is sent.

    :context <cmd>   run <cmd> and keep its output as context
    :edit            re-open the prompt in the editor
    :done            send the prompt
"""

import logging
from typing import Callable

from shellask.core.context import ContextAccumulator
from shellask.core.editor import EditorError
from shellask.core.errors import CommandExecutionError, StorageError
from shellask.ui.output import UIManager

logger = logging.getLogger(__name__)

COMPOSE_HELP = (
    "Context mode. Commands:\n"
    "  :context <cmd>  run a command and attach its output\n"
    "  :edit           edit the prompt again\n"
    "  :done           send the prompt"
)


class ComposeLoop:
    """Collects context entries into the accumulator's buffer until :done."""

    def __init__(
        self,
        accumulator: ContextAccumulator,
        ui: UIManager,
        read_line: Callable[[str], str],
        edit: Callable[[str], str],
    ):
        self.accumulator = accumulator
        self.ui = ui
        self.read_line = read_line
        self.edit = edit

    def run(self, prompt: str) -> str:
        """Return the (possibly re-edited) prompt once the user is done."""
        self.ui.info(COMPOSE_HELP)

        while True:
            try:
                line = self.read_line("(context mode) > ").strip()
            except (KeyboardInterrupt, EOFError):
                return prompt

            if not line:
                continue
            if line == ":done":
                return prompt

            if line == ":edit":
                try:
                    prompt = self.edit(prompt)
                except EditorError as e:
                    self.ui.error(f"Error editing prompt: {e}")
                continue

            if line.startswith(":context"):
                command = line[len(":context"):].strip()
                if not command:
                    self.ui.warning("Usage: :context <command>")
                    continue
                self._add_context(command)
                continue

            self.ui.warning("Unknown command. Use :context <cmd>, :edit or :done.")

    def _add_context(self, command: str) -> None:
        try:
            result = self.accumulator.add(command)
        except CommandExecutionError as e:
            if e.output:
                self.ui.plain(e.output.rstrip("\n"))
            self.ui.error(f"Error adding context: {e}")
            return
        except StorageError as e:
            self.ui.error(f"Error adding context: {e}")
            return

        if result.entry.output:
            self.ui.plain(result.entry.output.rstrip("\n"))
        self.ui.success(f"Context added from command: {command}")
