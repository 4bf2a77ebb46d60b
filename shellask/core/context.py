"""Context accumulation: shell command output attached to prompts.

Entries go to the current session's context log when a session exists.
Otherwise they wait as "pending" context, either in the side file (shared
across separate invocations) or, during an interactive run, in memory.
Pending content is consumed exactly once, by the next prompt assembly.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from shellask.core.errors import CommandExecutionError, StorageError
from shellask.core.prompt_builder import with_context_section
from shellask.core.session import Session, SessionStore
from shellask.tools.exec_shell import ShellRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextEntry:
    """One recorded command and its captured output."""

    command: str
    output: str

    def format(self) -> str:
        return f"\n---\nCommand: {self.command}\n{self.output}\n"


class PendingContext:
    """Side file holding context entries that have no session yet."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> str:
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise StorageError(f"cannot read pending context {self.path}: {e}") from e

    def append(self, text: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as e:
            raise StorageError(f"cannot write pending context {self.path}: {e}") from e

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"cannot remove pending context {self.path}: {e}") from e


@dataclass(frozen=True)
class ContextResult:
    """Where a context entry ended up."""

    entry: ContextEntry
    session: Optional[Session]
    exit_code: int

    @property
    def pending(self) -> bool:
        return self.session is None


class ContextAccumulator:
    """
    Runs context commands and routes their output.

    Routing:
        session given        -> appended to that session's context.txt
        no session, buffered -> in-memory buffer (interactive runs)
        no session           -> pending side file
    """

    def __init__(
        self,
        store: SessionStore,
        runner: ShellRunner,
        pending: PendingContext,
        buffered: bool = False,
    ):
        """
        Args:
            store: Session store used for session-scoped entries
            runner: Shell runner used to execute context commands
            pending: Side file for session-less entries
            buffered: Keep session-less entries in memory instead of the side file
        """
        self.store = store
        self.runner = runner
        self.pending = pending
        self.buffered = buffered
        self._buffer: List[str] = []

    def add(self, command: str, session: Optional[Session] = None) -> ContextResult:
        """
        Run `command` and record its output as a context entry.

        A failing command is still recorded; the failure is raised afterwards
        so the caller can report it.

        Raises:
            CommandExecutionError: If the command exits non-zero (after recording)
            StorageError: If the entry could not be written
        """
        logger.debug("Running context command: %s", command)
        result = self.runner.run(command)
        entry = ContextEntry(command=command, output=result.output)
        self.record(entry, session)

        if not result.success:
            raise CommandExecutionError(command, result.output, result.exit_code)

        return ContextResult(entry=entry, session=session, exit_code=result.exit_code)

    def record(self, entry: ContextEntry, session: Optional[Session] = None) -> None:
        """Route an already captured entry."""
        text = entry.format()
        if session is not None:
            self.store.append_context(session, text)
        elif self.buffered:
            self._buffer.append(text)
        else:
            self.pending.append(text)

    def has_pending(self) -> bool:
        return bool(self._buffer) or bool(self.pending.load())

    def flush_pending_into(self, prompt: str) -> str:
        """
        Append all pending context to `prompt` and clear it.

        The side file is read first, then the in-memory buffer. Pending content
        is consumed at most once; an empty store leaves the prompt unchanged.
        """
        pending = self.pending.load() + "".join(self._buffer)
        if not pending:
            return prompt

        self._buffer.clear()
        self.pending.clear()
        logger.debug("Flushed %d chars of pending context into prompt", len(pending))
        return with_context_section(prompt, pending)

    def take_pending(self) -> str:
        """Return and clear pending content without wrapping it in a heading."""
        pending = self.pending.load() + "".join(self._buffer)
        if pending:
            self._buffer.clear()
            self.pending.clear()
        return pending
