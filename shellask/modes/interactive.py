"""
Interactive mode: a line-oriented REPL around ask, refine, run and context.

The controller moves through three states:

    IDLE          no prompt yet
    PROMPT_SET    prompt text held, no answer for it
    ANSWER_READY  answer received, extracted commands cached

The first successful ask fixes the original prompt for the whole run so
every later refinement cites it unchanged.
"""

import dataclasses
import logging
from enum import Enum
from typing import Callable, List, Optional

from shellask.core.assistant import Assistant, Exchange
from shellask.core.editor import EditorError
from shellask.core.errors import (
    CommandExecutionError,
    StorageError,
    UpstreamError,
    UserInputError,
)
from shellask.core.policy import RunConfirmation
from shellask.core.prompt_builder import PromptChain, build_refine_template
from shellask.core.session import Session
from shellask.modes.execution import run_extracted_command
from shellask.ui.output import UIManager

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  prompt          edit the prompt in your editor
  prompt <text>   set the prompt directly
  ask             send the current prompt
  refine          refine the last answer in your editor
  refine <text>   refine the last answer with <text>
  run             list the commands found in the last answer
  run <N>         run command N
  context         read a command on the next line and add its output as context
  context <cmd>   run <cmd> and add its output as context
  show            show the current prompt and answer
  help            show this help
  exit            quit"""

REFINE_EDITOR_HEADER = "Refine this answer with the following context:"


class ControllerState(Enum):
    IDLE = "idle"
    PROMPT_SET = "prompt_set"
    ANSWER_READY = "answer_ready"


class InteractiveController:
    """
    Runs the interactive loop.

    All collaborators are injected so the controller can be driven by tests
    without a terminal, an editor or a network connection.
    """

    def __init__(
        self,
        assistant: Assistant,
        ui: UIManager,
        read_line: Callable[[str], str],
        edit: Callable[[str], str],
        confirmation: RunConfirmation,
    ):
        self.assistant = assistant
        self.ui = ui
        self.read_line = read_line
        self.edit = edit
        self.confirmation = confirmation

        self.state = ControllerState.IDLE
        self.prompt = ""
        self.answer = ""
        self.last_prompt = ""
        self.original_prompt = ""
        self.session: Optional[Session] = None
        self.commands: List[str] = []

    def run(self) -> None:
        """Read and dispatch lines until exit, Ctrl+C or end of input."""
        self.ui.success("shellask interactive mode. Type 'help' for commands.")

        while True:
            try:
                line = self.read_line("> ")
            except (KeyboardInterrupt, EOFError):
                self.ui.dim("\nExiting.")
                break

            try:
                if not self.handle(line):
                    break
            except (KeyboardInterrupt, EOFError):
                self.ui.dim("\nExiting.")
                break

    def handle(self, line: str) -> bool:
        """
        Dispatch one input line.

        Returns:
            False when the loop should stop, True otherwise
        """
        line = line.strip()
        if not line:
            return True

        name, _, arg = line.partition(" ")
        arg = arg.strip()

        if name in ("exit", "quit"):
            return False

        handlers = {
            "help": self._help,
            "prompt": self._prompt,
            "ask": self._ask,
            "refine": self._refine,
            "run": self._run,
            "context": self._context,
            "show": self._show,
        }

        handler = handlers.get(name)
        try:
            if handler is None:
                raise UserInputError("Unknown command. Type 'help' for usage.")
            handler(arg)
        except UserInputError as e:
            self.ui.warning(str(e))
        except EditorError as e:
            self.ui.error(f"Editor error: {e}")
        except StorageError as e:
            self.ui.warning(f"Warning: {e}")

        return True

    def _help(self, arg: str) -> None:
        self.ui.info(HELP_TEXT)

    def _prompt(self, arg: str) -> None:
        text = arg if arg else self.edit(self.prompt)
        self.prompt = text.strip()
        if not self.prompt:
            self.state = ControllerState.IDLE
            self.ui.warning("Prompt is empty.")
            return

        self.state = ControllerState.PROMPT_SET
        self.ui.success("Prompt set. Type 'ask' to send it.")

    def _ask(self, arg: str) -> None:
        if not self.prompt:
            raise UserInputError("No prompt set. Use 'prompt' first.")

        try:
            exchange = self.assistant.ask(self.prompt, original_prompt=self.original_prompt or None)
        except UpstreamError as e:
            self.ui.error(f"Error getting response: {e}")
            return

        if not self.original_prompt:
            self.original_prompt = exchange.original_prompt
        self._accept(exchange)

    def _refine(self, arg: str) -> None:
        if not self.answer:
            raise UserInputError("No answer to refine. Use 'ask' first.")

        chain = self._current_chain()
        refinement = arg if arg else self.edit(build_refine_template(chain, REFINE_EDITOR_HEADER))
        if not refinement.strip():
            raise UserInputError("Refinement is empty; nothing sent.")

        try:
            exchange = self.assistant.refine(chain, refinement)
        except UpstreamError as e:
            self.ui.error(f"Error getting refinement: {e}")
            return

        self._accept(exchange)

    def _current_chain(self) -> PromptChain:
        if self.session is not None:
            try:
                chain = self.assistant.chain_from(self.session)
            except StorageError as e:
                self.ui.warning(f"Warning: could not read session {self.session}: {e}")
            else:
                return dataclasses.replace(chain, original_prompt=self.original_prompt)

        return PromptChain(
            original_prompt=self.original_prompt,
            previous_prompt=self.last_prompt,
            previous_response=self.answer,
        )

    def _accept(self, exchange: Exchange) -> None:
        self.answer = exchange.response
        self.last_prompt = exchange.prompt
        self.session = exchange.session
        self.commands = list(exchange.commands)
        self.state = ControllerState.ANSWER_READY

        if exchange.context_error is not None:
            self.ui.warning(f"Warning: pending context was not sent: {exchange.context_error}")
        if exchange.storage_error is not None:
            self.ui.warning(f"Warning: could not store session: {exchange.storage_error}")

        self.ui.plain(f"Answer:\n{self.answer}")
        if self.session is not None:
            self.ui.dim(f"Session stored in: {self.session.path}")
        if self.commands:
            self.ui.info(f"{len(self.commands)} command(s) found. Type 'run' to list them.")

    def _run(self, arg: str) -> None:
        if self.state is not ControllerState.ANSWER_READY or not self.commands:
            raise UserInputError("No commands available. Use 'ask' first.")

        if not arg:
            self._list_commands()
            return

        try:
            index = int(arg)
        except ValueError:
            raise UserInputError("Invalid command number.")
        if not 1 <= index <= len(self.commands):
            raise UserInputError("Invalid command number.")

        if self.session is None:
            self.session = self._store_current_answer()

        run_extracted_command(
            self.assistant, self.confirmation, self.ui, self.commands[index - 1], self.session
        )

    def _list_commands(self) -> None:
        self.ui.info("Commands found:")
        for i, command in enumerate(self.commands, start=1):
            self.ui.plain(f"  {i}. {command}")

    def _store_current_answer(self) -> Optional[Session]:
        exchange = self.assistant.record(self.last_prompt, self.answer, self.original_prompt)
        if exchange.storage_error is not None:
            self.ui.warning(f"Warning: could not store session: {exchange.storage_error}")
        return exchange.session

    def _context(self, arg: str) -> None:
        command = arg or self.read_line("Enter a command to run for additional context: ").strip()
        if not command:
            raise UserInputError("No command given.")

        try:
            result = self.assistant.context.add(command, self.session)
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
        if result.pending:
            self.ui.success(f"Context added for the next prompt: {command}")
        else:
            self.ui.success(f"Context added from command: {command}")

    def _show(self, arg: str) -> None:
        self.ui.info(f"State: {self.state.value}")
        self.ui.plain(f"Prompt:\n{self.prompt or '(none)'}")
        if self.answer:
            self.ui.plain(f"Answer:\n{self.answer}")
        if self.original_prompt:
            self.ui.dim(f"Original prompt: {self.original_prompt}")
        if self.assistant.context.has_pending():
            self.ui.dim("Context pending for the next prompt.")
