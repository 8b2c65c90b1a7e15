"""
Unit tests for repetition/digest_builder.py

Tests firing a single rule: due check, digest creation, rule advance and
email dispatch.
"""

import unittest
from unittest.mock import Mock, patch

from models import RepetitionRule
from repetition.context import RepetitionContext
from repetition.digest_builder import is_due, process
from repetition.errors import ConfigurationError, PersistenceError
from shared.clock import MockClock
from tests.fixtures.in_memory_repository import InMemoryRepetitionRepository
from tests.fixtures.repetition_factory import (
    create_test_account,
    create_test_book,
    create_test_note,
    create_test_rule,
    millis,
)

DUE_AT = millis(2009, 11, 4, 12, 2)


class DigestBuilderTestCase(unittest.TestCase):
    def setUp(self):
        print_patcher = patch("builtins.print")
        print_patcher.start()
        self.addCleanup(print_patcher.stop)

        self.repo = InMemoryRepetitionRepository()
        self.repo.add_account(create_test_account())
        self.book = self.repo.add_book(create_test_book("js"))
        self.repo.add_note(create_test_note(1, self.book))
        self.repo.add_note(create_test_note(2, self.book))

        self.notifier = Mock(return_value={"success": True, "email_id": "email_1"})
        self.context = RepetitionContext(
            repository=self.repo, clock=MockClock(), notifier=self.notifier
        )

    def add_rule(self, **kwargs) -> RepetitionRule:
        row = self.repo.add_rule(create_test_rule(**kwargs))
        return RepetitionRule.model_validate(row)


class TestIsDue(DigestBuilderTestCase):
    def test_due_boundaries(self):
        rule = self.add_rule(next_active=DUE_AT)

        self.assertFalse(is_due(rule, DUE_AT - 1))
        self.assertTrue(is_due(rule, DUE_AT))
        self.assertTrue(is_due(rule, DUE_AT + 1))

    def test_disabled_never_due(self):
        rule = self.add_rule(next_active=DUE_AT, enabled=False)

        self.assertFalse(is_due(rule, DUE_AT + 10**12))


class TestProcess(DigestBuilderTestCase):
    def test_not_due_is_noop(self):
        rule = self.add_rule(next_active=DUE_AT)

        created = process(self.context, rule, DUE_AT - 1000)

        self.assertFalse(created)
        self.assertEqual(self.repo.digests, [])
        self.notifier.assert_not_called()

    def test_disabled_is_noop(self):
        rule = self.add_rule(next_active=DUE_AT, enabled=False)

        created = process(self.context, rule, DUE_AT + 1000)

        self.assertFalse(created)
        self.assertEqual(self.repo.get_rule(rule.id).last_active, 0)
        self.assertEqual(self.repo.digests, [])

    def test_fires_due_rule(self):
        rule = self.add_rule(next_active=DUE_AT, note_count=5)

        created = process(self.context, rule, DUE_AT + 1000)

        self.assertTrue(created)
        stored = self.repo.get_rule(rule.id)
        self.assertEqual(stored.last_active, DUE_AT)
        self.assertEqual(stored.next_active, millis(2009, 11, 7, 12, 2))

        digests = self.repo.digests_for(rule.id)
        self.assertEqual(len(digests), 1)
        self.assertEqual(digests[0].note_ids, [1, 2])
        self.assertEqual(digests[0].version, 1)

    def test_sends_email_to_account(self):
        rule = self.add_rule(next_active=DUE_AT)

        process(self.context, rule, DUE_AT)

        self.notifier.assert_called_once()
        email, sent_rule, digest, notes = self.notifier.call_args[0]
        self.assertEqual(email, "alice@example.com")
        self.assertEqual(sent_rule.id, rule.id)
        self.assertEqual(digest.rule_id, rule.id)
        self.assertEqual([n.id for n in notes], [1, 2])

    def test_empty_digest_still_created(self):
        rule = self.add_rule(
            next_active=DUE_AT, book_domain="excluding", books=[self.book.uuid]
        )

        created = process(self.context, rule, DUE_AT)

        self.assertTrue(created)
        self.assertEqual(self.repo.digests_for(rule.id)[0].note_ids, [])
        self.assertEqual(self.repo.get_rule(rule.id).last_active, DUE_AT)

    def test_unverified_email_skips_notification(self):
        self.repo.add_account(create_test_account(email_verified=False))
        rule = self.add_rule(next_active=DUE_AT)

        created = process(self.context, rule, DUE_AT)

        self.assertTrue(created)
        self.notifier.assert_not_called()

    def test_missing_account_skips_notification(self):
        rule = self.add_rule(next_active=DUE_AT, user_id="user-without-account")

        created = process(self.context, rule, DUE_AT)

        self.assertTrue(created)
        self.notifier.assert_not_called()

    @patch("repetition.digest_builder.log_repetition_error")
    def test_notification_failure_keeps_digest(self, mock_log):
        mock_log.return_value = "/tmp/report.txt"
        self.notifier.return_value = {"success": False, "error": "mailbox full"}
        rule = self.add_rule(next_active=DUE_AT)

        created = process(self.context, rule, DUE_AT)

        self.assertTrue(created)
        self.assertEqual(len(self.repo.digests_for(rule.id)), 1)
        self.assertEqual(self.repo.get_rule(rule.id).last_active, DUE_AT)
        mock_log.assert_called_once()
        self.assertEqual(mock_log.call_args.kwargs["error_type"], "sending")
        self.assertEqual(mock_log.call_args.kwargs["error_message"], "mailbox full")

    @patch("repetition.digest_builder.log_repetition_error")
    def test_notifier_exception_keeps_digest(self, mock_log):
        mock_log.return_value = "/tmp/report.txt"
        self.notifier.side_effect = ConnectionError("resend unreachable")
        rule = self.add_rule(next_active=DUE_AT)

        created = process(self.context, rule, DUE_AT)

        self.assertTrue(created)
        self.assertEqual(len(self.repo.digests_for(rule.id)), 1)
        self.assertEqual(self.repo.get_rule(rule.id).next_active, millis(2009, 11, 7, 12, 2))
        mock_log.assert_called_once()
        self.assertEqual(mock_log.call_args.kwargs["error_type"], "sending")
        self.assertEqual(mock_log.call_args.kwargs["error_message"], "resend unreachable")

    @patch("repetition.digest_builder.log_repetition_error")
    def test_account_lookup_failure_keeps_digest(self, mock_log):
        mock_log.return_value = "/tmp/report.txt"
        self.repo.failing_account_users.add("user-1")
        rule = self.add_rule(next_active=DUE_AT)

        created = process(self.context, rule, DUE_AT)

        self.assertTrue(created)
        self.notifier.assert_not_called()
        mock_log.assert_called_once()

    def test_persistence_failure_leaves_rule_unchanged(self):
        rule = self.add_rule(rule_id=9, next_active=DUE_AT)
        self.repo.failing_rule_ids.add(9)

        with self.assertRaises(PersistenceError):
            process(self.context, rule, DUE_AT)

        stored = self.repo.get_rule(9)
        self.assertEqual(stored.next_active, DUE_AT)
        self.assertEqual(stored.last_active, 0)
        self.notifier.assert_not_called()

    def test_selection_failure_is_persistence_error(self):
        self.repo.failing_note_users.add("user-1")
        rule = self.add_rule(next_active=DUE_AT)

        with self.assertRaises(PersistenceError):
            process(self.context, rule, DUE_AT)

        self.assertEqual(self.repo.get_rule(rule.id).next_active, DUE_AT)

    def test_stale_rule_does_not_fire_twice(self):
        """A second run holding the old next_active loses the race"""
        rule = self.add_rule(next_active=DUE_AT)

        first = process(self.context, rule, DUE_AT)
        second = process(self.context, rule, DUE_AT + 1000)

        self.assertTrue(first)
        self.assertFalse(second)
        self.assertEqual(len(self.repo.digests_for(rule.id)), 1)
        self.notifier.assert_called_once()

    def test_zero_frequency_fails_fast(self):
        rule = self.add_rule(next_active=DUE_AT).model_copy(update={"frequency": 0})

        with self.assertRaises(ConfigurationError):
            process(self.context, rule, DUE_AT)

        self.assertEqual(self.repo.digests, [])


if __name__ == "__main__":
    unittest.main()
