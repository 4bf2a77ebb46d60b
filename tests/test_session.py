"""
Tests for core/session.py - timestamped session storage.
"""

import shutil
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from shellask.core.errors import NotFoundError, StorageError
from shellask.core.session import MAX_SUFFIX, Session, SessionStore


def fixed_clock(*timestamps):
    """Clock returning the given datetimes in order, repeating the last."""
    values = list(timestamps)

    def clock():
        return values.pop(0) if len(values) > 1 else values[0]

    return clock


class TestSessionStore(unittest.TestCase):
    """Test cases for SessionStore."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.root = Path(self.temp_dir) / "sessions"
        self.noon = datetime(2026, 1, 1, 12, 0, 0)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_create_writes_mandatory_fields(self):
        store = SessionStore(self.root, clock=fixed_clock(self.noon))
        session = store.create("prompt text", "response text", "original text")

        self.assertEqual(session.session_id, "20260101-120000")
        self.assertEqual((session.path / "prompt.txt").read_text(), "prompt text")
        self.assertEqual(store.read_field(session, "response"), "response text")
        self.assertEqual(store.read_field(session, "original_prompt"), "original text")
        self.assertFalse((session.path / "context.txt").exists())

    def test_round_trip_is_byte_identical(self):
        store = SessionStore(self.root, clock=fixed_clock(self.noon))
        prompt = "line one\r\nline two\n\ttabbed  \n"
        response = "```\nls -la\n```\r\n"
        session = store.create(prompt, response, prompt)

        self.assertEqual(store.read_field(session, "prompt"), prompt)
        self.assertEqual(store.read_field(session, "response"), response)

    def test_same_second_gets_suffix(self):
        store = SessionStore(self.root, clock=fixed_clock(self.noon))
        first = store.create("a", "a", "a")
        second = store.create("b", "b", "b")
        third = store.create("c", "c", "c")

        self.assertEqual(first.session_id, "20260101-120000")
        self.assertEqual(second.session_id, "20260101-120000-1")
        self.assertEqual(third.session_id, "20260101-120000-2")
        self.assertEqual(store.read_field(first, "prompt"), "a")
        self.assertEqual(store.most_recent(), third)

    def test_suffix_exhaustion_raises(self):
        store = SessionStore(self.root, clock=fixed_clock(self.noon))
        self.root.mkdir(parents=True)
        (self.root / "20260101-120000").mkdir()
        for n in range(1, MAX_SUFFIX + 1):
            (self.root / f"20260101-120000-{n}").mkdir()

        with self.assertRaises(StorageError):
            store.create("a", "a", "a")

    def test_most_recent_orders_by_timestamp_then_suffix(self):
        later = datetime(2026, 1, 1, 12, 0, 5)
        store = SessionStore(self.root, clock=fixed_clock(self.noon, self.noon, later))
        store.create("1", "1", "1")
        store.create("2", "2", "2")
        newest = store.create("3", "3", "3")

        # 10 sorts after 9 numerically, not lexically
        (self.root / "20260101-120000-10").mkdir()
        (self.root / "not-a-session").mkdir()

        self.assertEqual(store.most_recent(), newest)
        ids = [s.session_id for s in store.list_sessions()]
        self.assertEqual(
            ids,
            ["20260101-120000", "20260101-120000-1", "20260101-120000-10", "20260101-120005"],
        )

    def test_most_recent_without_sessions(self):
        store = SessionStore(self.root)
        with self.assertRaises(NotFoundError):
            store.most_recent()
        self.assertEqual(store.list_sessions(), [])

    def test_context_is_append_only(self):
        store = SessionStore(self.root, clock=fixed_clock(self.noon))
        session = store.create("p", "r", "o")
        store.append_context(session, "one\n")
        store.append_context(session, "two\n")
        self.assertEqual(store.read_field(session, "context"), "one\ntwo\n")

    def test_run_output_is_replaced(self):
        store = SessionStore(self.root, clock=fixed_clock(self.noon))
        session = store.create("p", "r", "o")
        store.write_run_output(session, "first")
        store.write_run_output(session, "second")
        self.assertEqual(store.read_field(session, "run_output"), "second")
        self.assertEqual(store.read_field(session, "original_prompt"), "o")

    def test_missing_optional_fields_read_empty(self):
        store = SessionStore(self.root, clock=fixed_clock(self.noon))
        session = store.create("p", "r", "o")
        self.assertEqual(store.read_field(session, "run_output"), "")
        self.assertEqual(store.read_field(session, "context"), "")

    def test_unknown_field(self):
        store = SessionStore(self.root)
        with self.assertRaises(KeyError):
            store.read_field(Session("x", self.root / "x"), "nope")

    def test_unwritable_root_raises_storage_error(self):
        blocker = Path(self.temp_dir) / "blocker"
        blocker.write_text("file, not a directory")
        store = SessionStore(blocker / "sessions")
        with self.assertRaises(StorageError):
            store.create("p", "r", "o")


if __name__ == "__main__":
    unittest.main()
