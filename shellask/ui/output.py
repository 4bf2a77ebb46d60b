"""
Colour-coded terminal output.
Answers and command output go to stdout; errors, warnings and status
lines go to stderr so the answer can be piped on its own.
"""

import sys
from typing import Optional, TextIO


TEXT_COLOR_MAPPING = {
    "blue": "36;1",
    "yellow": "33;1",
    "pink": "38;5;200",
    "green": "32;1",
    "red": "31;1",
    "cyan": "96;1",
    "gray": "90",
}


def get_colored_text(text: str, color: str) -> str:
    """
    Wrap text in ANSI colour codes.

    Raises:
        ValueError: If the specified color is not supported
    """
    if color not in TEXT_COLOR_MAPPING:
        raise ValueError(
            f"Unsupported color: {color}. Available colors: {', '.join(TEXT_COLOR_MAPPING.keys())}"
        )

    color_str = TEXT_COLOR_MAPPING[color]
    return f"\u001b[{color_str}m{text}\u001b[0m"


class UIManager:
    """Manages coloured terminal output."""

    def __init__(self, color: Optional[bool] = None):
        """
        Args:
            color: Force colour on/off; defaults to whether stdout is a TTY
        """
        self.color = sys.stdout.isatty() if color is None else color

    def success(self, message: str) -> None:
        """Print success message in green."""
        self._print_colored(message, "green", file=sys.stderr)

    def error(self, message: str) -> None:
        """Print error message in red."""
        self._print_colored(message, "red", file=sys.stderr)

    def warning(self, message: str) -> None:
        """Print warning message in yellow."""
        self._print_colored(message, "yellow", file=sys.stderr)

    def info(self, message: str) -> None:
        """Print info message in blue."""
        self._print_colored(message, "blue")

    def command(self, command: str) -> None:
        """Print command in cyan."""
        self._print_colored(command, "cyan")

    def dim(self, text: str) -> None:
        """Print dimmed text in gray, on stderr."""
        self._print_colored(text, "gray", file=sys.stderr)

    def plain(self, text: str) -> None:
        """Print text as-is (answers, command output)."""
        print(text)

    def _print_colored(
        self,
        text: str,
        color: str,
        end: str = "\n",
        file: Optional[TextIO] = None
    ) -> None:
        if self.color:
            try:
                text = get_colored_text(text, color)
            except ValueError:
                pass

        print(text, end=end, file=file)
        if file:
            file.flush()
