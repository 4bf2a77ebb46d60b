"""
Tests for core/assistant.py - ask / refine / run orchestration.
"""

import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

from shellask.core.assistant import Assistant
from shellask.core.context import ContextAccumulator, PendingContext
from shellask.core.errors import (
    CommandExecutionError,
    StorageError,
    UpstreamError,
    UserInputError,
)
from shellask.core.prompt_builder import PromptAssembler, TokenBudget
from shellask.core.session import SessionStore
from shellask.tools.exec_shell import ShellResult


class TickingClock:
    """Advances one second per call so every session gets its own directory."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


class TestAssistant(unittest.TestCase):
    """Test cases for Assistant."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        root = Path(self.temp_dir)
        self.store = SessionStore(root / "sessions", clock=TickingClock())
        self.pending = PendingContext(root / "pending_context.txt")
        self.runner = MagicMock()
        self.runner.run.side_effect = lambda cmd: ShellResult(cmd, "ran " + cmd + "\n", 0)
        self.client = MagicMock()
        self.client.complete.return_value = "Use:\n```\nls -la\n```"
        self.accumulator = ContextAccumulator(self.store, self.runner, self.pending)
        self.assistant = Assistant(
            client=self.client,
            store=self.store,
            context=self.accumulator,
            assembler=PromptAssembler(TokenBudget(1000)),
            runner=self.runner,
        )

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_ask_creates_session(self):
        exchange = self.assistant.ask("list files")

        self.client.complete.assert_called_once_with("list files")
        self.assertEqual(exchange.commands, ["ls -la"])
        self.assertEqual(exchange.first_command, "ls -la")
        self.assertEqual(self.store.read_field(exchange.session, "prompt"), "list files")
        self.assertEqual(self.store.read_field(exchange.session, "original_prompt"), "list files")

    def test_ask_flushes_pending_context(self):
        self.accumulator.add("uname")
        exchange = self.assistant.ask("summarize")

        prompt = self.store.read_field(exchange.session, "prompt")
        self.assertTrue(prompt.startswith("summarize\n\nAdditional Context:\n"))
        self.assertTrue(prompt.endswith("\n---\nCommand: uname\nran uname\n\n"))
        self.assertFalse(self.pending.path.exists())

    def test_ask_empty_prompt(self):
        with self.assertRaises(UserInputError):
            self.assistant.ask("   ")
        self.client.complete.assert_not_called()

    def test_upstream_error_propagates_without_session(self):
        self.client.complete.side_effect = UpstreamError("down")
        with self.assertRaises(UpstreamError):
            self.assistant.ask("hi")
        self.assertEqual(self.store.list_sessions(), [])

    def test_storage_failure_still_returns_answer(self):
        store = MagicMock(wraps=self.store)
        store.create.side_effect = StorageError("disk full")
        self.assistant.store = store

        exchange = self.assistant.ask("hi")

        self.assertEqual(exchange.response, "Use:\n```\nls -la\n```")
        self.assertIsNone(exchange.session)
        self.assertIsInstance(exchange.storage_error, StorageError)

    def test_unreadable_pending_context_sends_prompt_alone(self):
        self.pending.path.mkdir()

        exchange = self.assistant.ask("hi")

        self.client.complete.assert_called_once_with("hi")
        self.assertIsInstance(exchange.context_error, StorageError)
        self.assertIsNotNone(exchange.session)

    def test_refine_with_unreadable_pending_context(self):
        first = self.assistant.ask("hi")
        self.pending.path.mkdir()

        second = self.assistant.refine(self.assistant.chain_from(first.session), "more")

        self.assertIsInstance(second.context_error, StorageError)
        self.assertNotIn("Additional Context:", self.client.complete.call_args[0][0])

    def test_refine_keeps_original_prompt(self):
        first = self.assistant.ask("original question")
        self.assistant.run_command("ls -la", first.session)

        chain = self.assistant.chain_from(first.session)
        self.assertEqual(chain.previous_run_output, "ran ls -la\n")

        second = self.assistant.refine(chain, "only directories")
        third = self.assistant.refine(self.assistant.chain_from(second.session), "sorted")

        for exchange in (second, third):
            self.assertEqual(
                self.store.read_field(exchange.session, "original_prompt"), "original question"
            )
        sent = self.client.complete.call_args[0][0]
        self.assertIn("ORIGINAL PROMPT:\noriginal question", sent)
        self.assertIn("REFINEMENT CONTEXT:\nsorted", sent)
        self.assertEqual(self.store.read_field(first.session, "original_prompt"), "original question")

    def test_run_command_persists_output_on_failure(self):
        exchange = self.assistant.ask("hi")
        self.runner.run.side_effect = lambda cmd: ShellResult(cmd, "nope\n", 1)

        with self.assertRaises(CommandExecutionError):
            self.assistant.run_command("false", exchange.session)

        self.assertEqual(self.store.read_field(exchange.session, "run_output"), "nope\n")

    def test_run_command_without_session(self):
        outcome = self.assistant.run_command("echo", None)
        self.assertTrue(outcome.result.success)
        self.assertIsNone(outcome.storage_error)


if __name__ == "__main__":
    unittest.main()
