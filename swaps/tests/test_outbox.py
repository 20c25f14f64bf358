from __future__ import annotations

from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings

from books.models import Book
from chats.models import Message

from swaps.models import SwapOffer, SwapOutboxEntry
from swaps.services import SwapOfferWorkflow, drain_outbox, notify_proposal

User = get_user_model()


class SwapOutboxTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="secret123")
        self.requester = User.objects.create_user(username="requester", password="secret123")
        self.book = Book.objects.create(title="Microeconomics", owner=self.owner)
        self.offered = Book.objects.create(title="Macroeconomics", owner=self.requester)
        self.offer = SwapOfferWorkflow.propose(
            self.requester,
            owner_id=self.owner.pk,
            requested_book_id=self.book.pk,
            offered_book_ids=[self.offered.pk],
        )

    def chat_entry(self) -> SwapOutboxEntry:
        return SwapOutboxEntry.objects.get(
            offer=self.offer,
            kind=SwapOutboxEntry.Kind.CHAT_MESSAGE,
        )

    def test_failed_notification_keeps_status_and_warns(self):
        with patch(
            "swaps.services.outbox.append_message",
            side_effect=RuntimeError("chat store unavailable"),
        ), self.assertLogs("swaps.services.outbox", level="WARNING"):
            result = SwapOfferWorkflow.transition(self.offer.pk, self.owner, "accepted")

        self.assertTrue(result.partial_failure)
        self.assertEqual(len(result.warnings), 1)
        warning = result.warnings[0]
        self.assertEqual(warning.kind, SwapOutboxEntry.Kind.CHAT_MESSAGE)
        self.assertIn("chat store unavailable", warning.detail)

        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, SwapOffer.Status.ACCEPTED)
        self.book.refresh_from_db()
        self.assertEqual(self.book.status, Book.Status.SOLD)

        entry = self.chat_entry()
        self.assertEqual(entry.state, SwapOutboxEntry.State.PENDING)
        self.assertEqual(entry.attempts, 1)
        self.assertIn("RuntimeError", entry.last_error)
        self.assertEqual(warning.entry_id, entry.pk)
        self.assertFalse(Message.objects.exists())

    def test_drain_redelivers_pending_entries(self):
        with patch(
            "swaps.services.outbox.append_message",
            side_effect=RuntimeError("chat store unavailable"),
        ), self.assertLogs("swaps.services.outbox", level="WARNING"):
            SwapOfferWorkflow.transition(self.offer.pk, self.owner, "declined")

        report = drain_outbox()

        self.assertEqual(report.delivered, 1)
        self.assertEqual(report.failed, 0)
        entry = self.chat_entry()
        self.assertEqual(entry.state, SwapOutboxEntry.State.DELIVERED)
        self.assertEqual(entry.attempts, 2)
        self.assertIsNotNone(entry.delivered_at)
        message = Message.objects.get()
        self.assertEqual(message.message_type, Message.MessageType.SWAP_DECLINED)
        self.assertEqual(message.receiver, self.requester)

        self.assertEqual(drain_outbox().delivered, 0)
        self.assertEqual(Message.objects.count(), 1)

    @override_settings(SWAP_OUTBOX_MAX_ATTEMPTS=2)
    def test_entry_fails_after_max_attempts(self):
        with patch(
            "swaps.services.outbox.append_message",
            side_effect=RuntimeError("chat store unavailable"),
        ):
            with self.assertLogs("swaps.services.outbox", level="WARNING"):
                notify_proposal(self.offer)
            with self.assertLogs("swaps.services.outbox", level="ERROR"):
                report = drain_outbox()

        self.assertEqual(report.failed, 1)
        entry = self.chat_entry()
        self.assertEqual(entry.state, SwapOutboxEntry.State.FAILED)
        self.assertEqual(entry.attempts, 2)

        self.assertEqual(drain_outbox().delivered, 0)
        self.assertFalse(Message.objects.exists())

    def test_validation_errors_are_reported_as_warnings(self):
        self.offer = SwapOffer.objects.create(
            chat_id="1_2_3",
            requester=self.requester,
            owner=self.owner,
            requested_book=self.offered,
        )
        with self.assertLogs("swaps.services.outbox", level="WARNING"):
            warnings = notify_proposal(self.offer)

        self.assertEqual(len(warnings), 1)
        self.assertEqual(self.chat_entry().state, SwapOutboxEntry.State.PENDING)

    @override_settings(SWAP_DRAIN_ON_COMMIT=False)
    def test_drain_command_delivers_deferred_entries(self):
        notify_proposal(self.offer)
        self.assertFalse(Message.objects.exists())

        out = StringIO()
        call_command("drain_swap_outbox", "--limit", "10", stdout=out)

        self.assertIn("Delivered: 1", out.getvalue())
        message = Message.objects.get()
        self.assertEqual(message.message_type, Message.MessageType.SWAP_OFFER)
        self.assertEqual(message.request_status, Message.RequestStatus.PENDING)
