"""Ask / refine / run orchestration.

Each ask or refine is a single stateless completion request whose input is
rebuilt from stored artifacts; the result is persisted as a new session.
Storage problems never hide an answer: they are returned next to it.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from shellask.core.answer_parser import extract_all_commands, extract_first_command
from shellask.core.context import ContextAccumulator
from shellask.core.errors import CommandExecutionError, StorageError, UserInputError
from shellask.core.prompt_builder import PromptAssembler, PromptChain
from shellask.core.session import Session, SessionStore
from shellask.tools.exec_shell import ShellResult, ShellRunner

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    def complete(self, prompt: str) -> str:
        ...


@dataclass
class Exchange:
    """One completed prompt/response round trip."""

    prompt: str
    response: str
    original_prompt: str
    session: Optional[Session] = None
    storage_error: Optional[StorageError] = None
    context_error: Optional[StorageError] = None
    commands: List[str] = field(default_factory=list)

    @property
    def first_command(self) -> str:
        return extract_first_command(self.response)


@dataclass
class RunOutcome:
    """Result of running one command, plus any problem persisting it."""

    result: ShellResult
    storage_error: Optional[StorageError] = None


class Assistant:
    """Ties the completion client to the session store, context and assembler."""

    def __init__(
        self,
        client: CompletionClient,
        store: SessionStore,
        context: ContextAccumulator,
        assembler: PromptAssembler,
        runner: ShellRunner,
    ):
        self.client = client
        self.store = store
        self.context = context
        self.assembler = assembler
        self.runner = runner

    def ask(self, prompt: str, original_prompt: Optional[str] = None) -> Exchange:
        """
        Send a prompt, with any pending context flushed in.

        Args:
            prompt: The user's prompt text
            original_prompt: Chain origin to record; defaults to the text sent

        Raises:
            UserInputError: If the prompt is empty
            UpstreamError: If the completion call fails
        """
        if not prompt.strip():
            raise UserInputError("No prompt provided.")

        context_error = None
        try:
            text = self.context.flush_pending_into(prompt)
        except StorageError as e:
            logger.warning("Could not read pending context, sending without it: %s", e)
            text, context_error = prompt, e

        text = self.assembler.fit(text, essential_length=len(prompt))
        response = self.client.complete(text)
        exchange = self.record(text, response, original_prompt or text)
        exchange.context_error = context_error
        return exchange

    def chain_from(self, session: Session) -> PromptChain:
        """Rebuild the refinement chain from a stored session."""
        prompt = self.store.read_field(session, "prompt")
        original = self.store.read_field(session, "original_prompt") or prompt
        return PromptChain(
            original_prompt=original,
            previous_prompt=prompt,
            previous_response=self.store.read_field(session, "response"),
            previous_run_output=self.store.read_field(session, "run_output"),
            previous_context=self.store.read_field(session, "context"),
        )

    def refine(self, chain: PromptChain, refinement: str) -> Exchange:
        """
        Ask for a refinement of the previous exchange.

        The new session records the chain's original prompt unchanged.

        Raises:
            UpstreamError: If the completion call fails
        """
        context_error = None
        try:
            new_context = self.context.take_pending()
        except StorageError as e:
            logger.warning("Could not read pending context, sending without it: %s", e)
            new_context, context_error = "", e

        text = self.assembler.build_refine(chain, refinement, new_context)
        logger.debug("Refine finalPrompt:\n%s", text)
        response = self.client.complete(text)
        exchange = self.record(text, response, chain.original_prompt)
        exchange.context_error = context_error
        return exchange

    def record(self, prompt: str, response: str, original_prompt: str) -> Exchange:
        exchange = Exchange(
            prompt=prompt,
            response=response,
            original_prompt=original_prompt,
            commands=extract_all_commands(response),
        )
        try:
            exchange.session = self.store.create(prompt, response, original_prompt)
        except StorageError as e:
            logger.debug("Could not store session: %s", e)
            exchange.storage_error = e
        return exchange

    def run_command(self, command: str, session: Optional[Session]) -> RunOutcome:
        """
        Execute a command and keep its output as the session's run output.

        Output is persisted even when the command fails.

        Raises:
            CommandExecutionError: If the command exits non-zero
        """
        result = self.runner.run(command)
        outcome = RunOutcome(result=result)

        if result.output and session is not None:
            try:
                self.store.write_run_output(session, result.output)
            except StorageError as e:
                logger.warning("Could not save run output: %s", e)
                outcome.storage_error = e

        if not result.success:
            raise CommandExecutionError(command, result.output, result.exit_code)
        return outcome
