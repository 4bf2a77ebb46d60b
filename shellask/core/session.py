"""Durable session records, one directory per prompt/response exchange."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from shellask.core.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

PROMPT_FILE = "prompt.txt"
RESPONSE_FILE = "response.txt"
ORIGINAL_PROMPT_FILE = "original_prompt.txt"
CONTEXT_FILE = "context.txt"
RUN_OUTPUT_FILE = "run_output.txt"

FIELD_FILES = {
    "prompt": PROMPT_FILE,
    "response": RESPONSE_FILE,
    "original_prompt": ORIGINAL_PROMPT_FILE,
    "context": CONTEXT_FILE,
    "run_output": RUN_OUTPUT_FILE,
}

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
MAX_SUFFIX = 99

_SESSION_NAME = re.compile(r"^(\d{8}-\d{6})(?:-(\d+))?$")


@dataclass(frozen=True)
class Session:
    """Handle to one session directory."""

    session_id: str
    path: Path

    def __str__(self) -> str:
        return str(self.path)


def _sort_key(name: str) -> Optional[Tuple[str, int]]:
    match = _SESSION_NAME.match(name)
    if match is None:
        return None
    return match.group(1), int(match.group(2) or 0)


class SessionStore:
    """
    Creates, persists and retrieves timestamped sessions.

    Layout under the sessions root:
        <YYYYmmdd-HHMMSS>[-N]/
            prompt.txt
            response.txt
            original_prompt.txt
            context.txt       (optional, append-only)
            run_output.txt    (optional, overwritten per run)

    Two sessions created within the same second get a numeric suffix
    instead of overwriting each other.
    """

    def __init__(self, root: Path, clock: Callable[[], datetime] = datetime.now):
        """
        Args:
            root: Directory holding one subdirectory per session
            clock: Time source, injectable for tests
        """
        self.root = Path(root)
        self._clock = clock

    def create(self, prompt: str, response: str, original_prompt: str) -> Session:
        """
        Allocate a new session and write its three mandatory fields.

        Args:
            prompt: The exact text sent upstream
            response: Raw completion text
            original_prompt: First prompt of the refinement chain

        Returns:
            Handle to the new session

        Raises:
            StorageError: If the directory or any file cannot be written
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot create sessions directory {self.root}: {e}") from e

        session = self._allocate(self._clock().strftime(TIMESTAMP_FORMAT))
        logger.debug("Storing session in: %s", session.path)

        self._write(session, PROMPT_FILE, prompt)
        self._write(session, RESPONSE_FILE, response)
        self._write(session, ORIGINAL_PROMPT_FILE, original_prompt)
        return session

    def _allocate(self, timestamp: str) -> Session:
        for suffix in range(MAX_SUFFIX + 1):
            name = timestamp if suffix == 0 else f"{timestamp}-{suffix}"
            path = self.root / name
            try:
                path.mkdir()
            except FileExistsError:
                logger.debug("Session %s already exists, trying next suffix", name)
                continue
            except OSError as e:
                raise StorageError(f"cannot create session directory {path}: {e}") from e
            return Session(session_id=name, path=path)

        raise StorageError(
            f"more than {MAX_SUFFIX} sessions created at {timestamp}; refusing to overwrite"
        )

    def list_sessions(self) -> List[Session]:
        """All sessions, oldest first."""
        if not self.root.is_dir():
            return []

        entries = []
        for child in self.root.iterdir():
            key = _sort_key(child.name)
            if key is not None and child.is_dir():
                entries.append((key, child))

        entries.sort(key=lambda item: item[0])
        return [Session(session_id=path.name, path=path) for _, path in entries]

    def most_recent(self) -> Session:
        """
        Return the newest session.

        Raises:
            NotFoundError: If no session exists
        """
        sessions = self.list_sessions()
        if not sessions:
            raise NotFoundError("no previous sessions found")
        latest = sessions[-1]
        logger.debug("Last session path: %s", latest.path)
        return latest

    def read_field(self, session: Session, name: str) -> str:
        """
        Read a session field by name.

        Missing files read as empty string; only genuine I/O failures raise.

        Args:
            session: Session handle
            name: One of prompt, response, original_prompt, context, run_output
        """
        filename = FIELD_FILES.get(name)
        if filename is None:
            raise KeyError(f"Unknown session field: {name}")

        path = session.path / filename
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise StorageError(f"cannot read {path}: {e}") from e

    def append_context(self, session: Session, entry: str) -> None:
        """Append a formatted context entry to the session's context log."""
        path = session.path / CONTEXT_FILE
        try:
            with open(path, "a", encoding="utf-8", newline="") as f:
                f.write(entry)
        except OSError as e:
            raise StorageError(f"cannot append to {path}: {e}") from e

    def write_run_output(self, session: Session, text: str) -> None:
        """Replace the session's run output with the latest command output."""
        self._write(session, RUN_OUTPUT_FILE, text)

    def _write(self, session: Session, filename: str, text: str) -> None:
        path = session.path / filename
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as e:
            raise StorageError(f"cannot write {path}: {e}") from e
