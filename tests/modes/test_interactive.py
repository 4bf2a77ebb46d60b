"""
Tests for modes/interactive.py - the interactive controller state machine.

These tests drive InteractiveController.handle() directly with a real
session store in a temp directory and mocked completion, shell and editor.
"""

import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

from shellask.core.assistant import Assistant
from shellask.core.context import ContextAccumulator, PendingContext
from shellask.core.errors import UpstreamError
from shellask.core.policy import RunConfirmation
from shellask.core.prompt_builder import PromptAssembler, TokenBudget
from shellask.core.session import SessionStore
from shellask.modes.interactive import ControllerState, InteractiveController
from shellask.tools.exec_shell import ShellResult

TWO_COMMANDS = "Try:\n```\nls\npwd\n```"


class TickingClock:

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


class TestInteractiveController(unittest.TestCase):
    """Test cases for InteractiveController."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        root = Path(self.temp_dir)
        self.store = SessionStore(root / "sessions", clock=TickingClock())
        self.pending = PendingContext(root / "pending_context.txt")

        self.runner = MagicMock()
        self.runner.run.side_effect = lambda cmd: ShellResult(cmd, f"output of {cmd}\n", 0)
        self.client = MagicMock()
        self.client.complete.return_value = TWO_COMMANDS

        self.accumulator = ContextAccumulator(self.store, self.runner, self.pending, buffered=True)
        self.assistant = Assistant(
            client=self.client,
            store=self.store,
            context=self.accumulator,
            assembler=PromptAssembler(TokenBudget(1000)),
            runner=self.runner,
        )

        self.ui = MagicMock()
        self.read_line = MagicMock()
        self.edit = MagicMock()
        self.confirm_replies = []
        confirmation = RunConfirmation(
            ask=lambda message: self.confirm_replies.pop(0),
            edit=self.edit,
            warn=self.ui.warning,
        )
        self.controller = InteractiveController(
            self.assistant, self.ui, self.read_line, self.edit, confirmation
        )

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _warnings(self):
        return [c.args[0] for c in self.ui.warning.call_args_list]

    def test_starts_idle(self):
        self.assertIs(self.controller.state, ControllerState.IDLE)

    def test_prompt_inline_sets_state(self):
        self.assertTrue(self.controller.handle("prompt list files"))
        self.assertIs(self.controller.state, ControllerState.PROMPT_SET)
        self.assertEqual(self.controller.prompt, "list files")

    def test_prompt_from_editor(self):
        self.edit.return_value = "from editor\n"
        self.controller.handle("prompt")
        self.edit.assert_called_once_with("")
        self.assertEqual(self.controller.prompt, "from editor")

    def test_ask_without_prompt_warns(self):
        self.controller.handle("ask")
        self.client.complete.assert_not_called()
        self.assertIs(self.controller.state, ControllerState.IDLE)
        self.assertIn("No prompt set. Use 'prompt' first.", self._warnings())

    def test_ask_caches_commands(self):
        self.controller.handle("prompt list files")
        self.controller.handle("ask")

        self.assertIs(self.controller.state, ControllerState.ANSWER_READY)
        self.assertEqual(self.controller.commands, ["ls", "pwd"])
        self.assertIsNotNone(self.controller.session)
        self.assertEqual(self.controller.original_prompt, "list files")

    def test_run_index_out_of_range_changes_nothing(self):
        self.controller.handle("prompt list files")
        self.controller.handle("ask")
        session = self.controller.session

        self.controller.handle("run 5")
        self.controller.handle("run two")

        self.assertEqual(self._warnings().count("Invalid command number."), 2)
        self.assertEqual(self.controller.commands, ["ls", "pwd"])
        self.assertIs(self.controller.state, ControllerState.ANSWER_READY)
        self.assertEqual(self.controller.session, session)
        self.runner.run.assert_not_called()

    def test_run_before_answer(self):
        self.controller.handle("run 1")
        self.assertIn("No commands available. Use 'ask' first.", self._warnings())

    def test_run_executes_and_stores_output(self):
        self.controller.handle("prompt list files")
        self.controller.handle("ask")
        self.confirm_replies = [""]

        self.controller.handle("run 2")

        self.runner.run.assert_called_once_with("pwd")
        self.assertEqual(
            self.store.read_field(self.controller.session, "run_output"), "output of pwd\n"
        )

    def test_run_cancelled(self):
        self.controller.handle("prompt list files")
        self.controller.handle("ask")
        self.confirm_replies = ["n"]

        self.controller.handle("run 1")
        self.runner.run.assert_not_called()

    def test_run_lists_commands(self):
        self.controller.handle("prompt list files")
        self.controller.handle("ask")
        self.controller.handle("run")
        printed = [c.args[0] for c in self.ui.plain.call_args_list]
        self.assertIn("  1. ls", printed)
        self.assertIn("  2. pwd", printed)

    def test_refine_without_answer_warns(self):
        self.controller.handle("refine more")
        self.client.complete.assert_not_called()
        self.assertIn("No answer to refine. Use 'ask' first.", self._warnings())

    def test_refinements_cite_first_prompt(self):
        self.controller.handle("prompt first question")
        self.controller.handle("ask")
        self.client.complete.return_value = "```\necho refined\n```"

        self.controller.handle("refine be brief")
        self.controller.handle("prompt a different question")
        self.controller.handle("ask")
        self.controller.handle("refine again")

        self.assertEqual(self.controller.original_prompt, "first question")
        self.assertEqual(self.controller.commands, ["echo refined"])
        sent = self.client.complete.call_args[0][0]
        self.assertIn("ORIGINAL PROMPT:\nfirst question", sent)
        for session in self.store.list_sessions():
            self.assertEqual(self.store.read_field(session, "original_prompt"), "first question")

    def test_refine_from_editor(self):
        self.controller.handle("prompt q")
        self.controller.handle("ask")
        self.edit.return_value = "use find instead"

        self.controller.handle("refine")

        seeded = self.edit.call_args[0][0]
        self.assertIn(TWO_COMMANDS, seeded)
        self.assertIn("REFINEMENT CONTEXT:\nuse find instead", self.client.complete.call_args[0][0])

    def test_upstream_error_keeps_state(self):
        self.controller.handle("prompt q")
        self.controller.handle("ask")
        self.client.complete.side_effect = UpstreamError("timeout")

        self.controller.handle("refine more")

        self.ui.error.assert_called_once()
        self.assertIs(self.controller.state, ControllerState.ANSWER_READY)
        self.assertEqual(self.controller.commands, ["ls", "pwd"])

    def test_context_before_ask_is_flushed_into_prompt(self):
        self.controller.handle("context uname -a")
        self.assertIs(self.controller.state, ControllerState.IDLE)

        self.controller.handle("prompt explain")
        self.controller.handle("ask")

        sent = self.client.complete.call_args[0][0]
        self.assertTrue(sent.startswith("explain\n\nAdditional Context:\n"))
        self.assertIn("Command: uname -a\noutput of uname -a\n", sent)
        self.assertFalse(self.pending.path.exists())

    def test_context_after_ask_goes_to_session(self):
        self.controller.handle("prompt q")
        self.controller.handle("ask")
        self.read_line.return_value = "df -h"

        self.controller.handle("context")

        self.assertIn("Command: df -h", self.store.read_field(self.controller.session, "context"))

    def test_unreadable_pending_context_is_a_warning(self):
        self.pending.path.mkdir()

        self.controller.handle("prompt hi")
        self.assertTrue(self.controller.handle("ask"))

        self.client.complete.assert_called_once_with("hi")
        self.assertIs(self.controller.state, ControllerState.ANSWER_READY)
        self.assertTrue(any("pending context was not sent" in w for w in self._warnings()))

    def test_storage_error_in_show_keeps_loop_running(self):
        self.pending.path.mkdir()
        self.assertTrue(self.controller.handle("show"))
        self.assertTrue(any("cannot read pending context" in w for w in self._warnings()))

    def test_show_mentions_pending_context(self):
        self.controller.handle("context uname")
        self.controller.handle("show")
        dimmed = [c.args[0] for c in self.ui.dim.call_args_list]
        self.assertIn("Context pending for the next prompt.", dimmed)

    def test_unknown_command(self):
        self.assertTrue(self.controller.handle("dance"))
        self.assertIn("Unknown command. Type 'help' for usage.", self._warnings())

    def test_exit(self):
        self.assertFalse(self.controller.handle("exit"))

    def test_run_loop_stops_on_eof(self):
        self.read_line.side_effect = ["prompt hi", EOFError()]
        self.controller.run()
        self.assertEqual(self.controller.prompt, "hi")

    def test_run_loop_stops_on_interrupt(self):
        self.read_line.side_effect = KeyboardInterrupt()
        self.controller.run()
        self.assertIs(self.controller.state, ControllerState.IDLE)


if __name__ == "__main__":
    unittest.main()
