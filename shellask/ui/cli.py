"""Main CLI entry point - one subcommand per workflow."""

import logging
from pathlib import Path
from typing import List, Optional

import typer

from shellask.core.assistant import Assistant
from shellask.core.configs import Settings, load_settings
from shellask.core.context import ContextAccumulator, PendingContext
from shellask.core.editor import Editor, EditorError
from shellask.core.errors import (
    CommandExecutionError,
    NotFoundError,
    StorageError,
    UpstreamError,
    UserInputError,
)
from shellask.core.policy import RunConfirmation
from shellask.core.prompt_builder import PromptAssembler, TokenBudget, build_refine_template
from shellask.core.session import SessionStore
from shellask.providers.mistral import MistralChat
from shellask.tools.exec_shell import ShellRunner
from shellask.ui.output import UIManager
from shellask.utils import configure_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="shellask - ask an LLM for shell commands, refine the answer, run it.",
)

config_app = typer.Typer(
    no_args_is_help=True,
    help="View or change the shellask configuration.",
)
app.add_typer(config_app, name="config")

ui = UIManager()

MODEL_OPTION = typer.Option(None, "--model", "-m", help="Model to use for this invocation")
DEBUG_OPTION = typer.Option(False, "--debug", help="Log debug information to stderr")


# ============================================================================
# Shared Setup
# ============================================================================

def _load_settings(model: Optional[str], debug: bool, require_api_key: bool = True) -> Settings:
    """Configure logging and resolve settings. Exits on error."""
    configure_logging(debug)
    try:
        return load_settings({"model": model}, debug=debug, require_api_key=require_api_key)
    except ValueError as e:
        ui.error(f"Error loading configuration: {e}")
        raise typer.Exit(1)


def _build_accumulator(settings: Settings, buffered: bool) -> ContextAccumulator:
    return ContextAccumulator(
        SessionStore(settings.sessions_dir),
        ShellRunner(),
        PendingContext(settings.pending_context_path),
        buffered=buffered,
    )


def _build_assistant(settings: Settings, buffered: bool = False) -> Assistant:
    """Wire the collaborators for one invocation. Exits on error."""
    accumulator = _build_accumulator(settings, buffered)
    try:
        client = MistralChat(api_key=settings.api_key, model=settings.model)
    except ValueError as e:
        ui.error(f"Error initializing client: {e}")
        raise typer.Exit(1)

    return Assistant(
        client=client,
        store=accumulator.store,
        context=accumulator,
        assembler=PromptAssembler(TokenBudget(settings.max_tokens, settings.chars_per_token)),
        runner=accumulator.runner,
    )


def _compose_prompt(settings: Settings, assistant: Assistant) -> str:
    """Editor first, then the compose loop for gathering context."""
    from shellask.core.input_prompt import ChatPrompt
    from shellask.modes.compose import ComposeLoop

    editor = Editor(settings.editor)
    try:
        prompt = editor.edit("")
    except EditorError as e:
        ui.error(f"Error opening editor: {e}")
        raise typer.Exit(1)

    chat_prompt = ChatPrompt()
    return ComposeLoop(assistant.context, ui, chat_prompt.get_input, editor.edit).run(prompt)


def _read_prompt_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        ui.error(f"Error reading prompt file: {e}")
        raise typer.Exit(1)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def ask(
    prompt: Optional[List[str]] = typer.Argument(None, help="Prompt text (opens the editor if omitted)"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the prompt from a file"),
    run: bool = typer.Option(False, "--run", help="Confirm and run the first command in the answer"),
    model: Optional[str] = MODEL_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """
    Send a prompt and print the answer.

    Example: shellask ask "find all python files modified today"
    """
    settings = _load_settings(model, debug)
    assistant = _build_assistant(settings, buffered=True)

    text = " ".join(prompt or [])
    if not text and file is not None:
        text = _read_prompt_file(file)
    elif not text:
        text = _compose_prompt(settings, assistant)

    try:
        exchange = assistant.ask(text)
    except UserInputError as e:
        ui.error(f"Error: {e}")
        raise typer.Exit(1)
    except UpstreamError as e:
        ui.error(f"Error getting response: {e}")
        raise typer.Exit(1)

    if exchange.context_error is not None:
        ui.warning(f"Warning: pending context was not sent: {exchange.context_error}")
    if exchange.storage_error is not None:
        ui.warning(f"Warning: could not store session: {exchange.storage_error}")

    ui.plain(exchange.response)

    if exchange.session is not None:
        ui.dim(f"Session stored in: {exchange.session.path}")

    if not run:
        return

    command = exchange.first_command
    if not command:
        ui.warning("No runnable command found in the answer.")
        raise typer.Exit(1)

    from shellask.modes.execution import run_extracted_command

    editor = Editor(settings.editor)
    confirmation = RunConfirmation(ask=input, edit=editor.edit, warn=ui.warning)
    if not run_extracted_command(assistant, confirmation, ui, command, exchange.session):
        raise typer.Exit(1)


@app.command()
def refine(
    refinement: Optional[List[str]] = typer.Argument(None, help="Refinement text (opens the editor if omitted)"),
    model: Optional[str] = MODEL_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """
    Refine the answer from the most recent session.

    Example: shellask refine "only list directories"
    """
    settings = _load_settings(model, debug)
    assistant = _build_assistant(settings)

    try:
        session = assistant.store.most_recent()
        chain = assistant.chain_from(session)
    except StorageError as e:
        ui.error(f"Error retrieving last session: {e}")
        raise typer.Exit(1)

    text = " ".join(refinement or [])
    if not text:
        try:
            text = Editor(settings.editor).edit(build_refine_template(chain))
        except EditorError as e:
            ui.error(f"Error opening editor: {e}")
            raise typer.Exit(1)

    if not text.strip():
        ui.error("Error: refinement is empty.")
        raise typer.Exit(1)

    try:
        exchange = assistant.refine(chain, text)
    except UpstreamError as e:
        ui.error(f"Error getting refinement: {e}")
        raise typer.Exit(1)

    if exchange.context_error is not None:
        ui.warning(f"Warning: pending context was not sent: {exchange.context_error}")
    if exchange.storage_error is not None:
        ui.warning(f"Warning: could not store session: {exchange.storage_error}")

    ui.plain(exchange.response)
    if exchange.session is not None:
        ui.dim(f"Refined session stored in: {exchange.session.path}")


@app.command()
def interactive(
    model: Optional[str] = MODEL_OPTION,
    debug: bool = DEBUG_OPTION,
) -> None:
    """Start the interactive prompt / ask / refine / run loop."""
    from shellask.core.input_prompt import ChatPrompt
    from shellask.modes.interactive import InteractiveController

    settings = _load_settings(model, debug)
    assistant = _build_assistant(settings, buffered=True)

    chat_prompt = ChatPrompt(settings.history_path)
    editor = Editor(settings.editor)
    confirmation = RunConfirmation(
        ask=chat_prompt.get_confirmation, edit=editor.edit, warn=ui.warning
    )

    controller = InteractiveController(
        assistant, ui, chat_prompt.get_input, editor.edit, confirmation
    )
    controller.run()


@app.command()
def context(
    command: List[str] = typer.Argument(..., help="Shell command whose output becomes context"),
    debug: bool = DEBUG_OPTION,
) -> None:
    """
    Run a command and attach its output to the latest session.

    With no session yet, the output is kept for the next prompt.

    Example: shellask context "git status"
    """
    settings = _load_settings(None, debug, require_api_key=False)
    accumulator = _build_accumulator(settings, buffered=False)
    text = " ".join(command)

    try:
        session = accumulator.store.most_recent()
    except NotFoundError:
        session = None
    except StorageError as e:
        ui.error(f"Error retrieving last session: {e}")
        raise typer.Exit(1)

    try:
        result = accumulator.add(text, session)
    except CommandExecutionError as e:
        if e.output:
            ui.plain(e.output.rstrip("\n"))
        ui.error(f"Error adding context: {e}")
        raise typer.Exit(1)
    except StorageError as e:
        ui.error(f"Error adding context: {e}")
        raise typer.Exit(1)

    if result.entry.output:
        ui.plain(result.entry.output.rstrip("\n"))
    if result.pending:
        ui.success(f"Context added for future use (pending): {text}")
    else:
        ui.success(f"Context added from command: {text}")


@app.command()
def models(
    debug: bool = DEBUG_OPTION,
) -> None:
    """List the models available to your API key."""
    settings = _load_settings(None, debug)
    try:
        client = MistralChat(api_key=settings.api_key, model=settings.model)
        names = client.list_models()
    except UpstreamError as e:
        ui.error(f"Error listing models: {e}")
        raise typer.Exit(1)

    for name in names:
        marker = "*" if name == settings.model else " "
        ui.plain(f"{marker} {name}")


# ============================================================================
# Config subcommands - lazy import keeps Rich out of the hot path
# ============================================================================

@config_app.command("show")
def config_show() -> None:
    """Display the effective configuration."""
    from shellask.ui.config_commands import show_config
    show_config()


@config_app.command("edit")
def config_edit() -> None:
    """Open the config file in $EDITOR."""
    from shellask.ui.config_commands import edit_config
    edit_config()


@config_app.command("set-key")
def config_set_key(key: str = typer.Argument(..., help="Mistral API key")) -> None:
    """Store the API key."""
    from shellask.ui.config_commands import set_api_key
    set_api_key(key)


@config_app.command("set-model")
def config_set_model(model: str = typer.Argument(..., help="Model identifier")) -> None:
    """Set the default model."""
    from shellask.ui.config_commands import set_model
    set_model(model)


@config_app.command("set-max-tokens")
def config_set_max_tokens(value: str = typer.Argument(..., help="Positive integer token budget")) -> None:
    """Set the prompt token budget."""
    from shellask.ui.config_commands import set_max_tokens
    if not set_max_tokens(value):
        raise typer.Exit(1)


def run() -> None:
    """Entry point for console script mapping."""
    app()


if __name__ == "__main__":
    run()
