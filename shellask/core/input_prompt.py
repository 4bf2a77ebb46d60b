"""
Line input for the interactive modes.
Arrow keys, history navigation and Ctrl+C handling come from prompt_toolkit.
"""

from pathlib import Path
from typing import Optional

from prompt_toolkit import prompt
from prompt_toolkit.history import FileHistory, History, InMemoryHistory


class ChatPrompt:
    """Reads one line at a time, with history that survives between runs."""

    def __init__(self, history_path: Optional[Path] = None):
        self.history = self._make_history(history_path)

    @staticmethod
    def _make_history(history_path: Optional[Path]) -> History:
        if history_path is None:
            return InMemoryHistory()
        history_path.parent.mkdir(parents=True, exist_ok=True)
        return FileHistory(str(history_path))

    def get_input(self, message: str) -> str:
        """
        Read a line.

        Raises:
            KeyboardInterrupt: On Ctrl+C
            EOFError: On Ctrl+D / end of input
        """
        return prompt(message, history=self.history).strip()

    def get_confirmation(self, message: str) -> str:
        """Read a line without recording it in history."""
        return prompt(message).strip()
