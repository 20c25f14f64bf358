from django.contrib.auth import get_user_model
from django.test import TestCase

from books.models import Book
from swaps.models import SwapOffer

from .models import Transaction
from .services import complete_for_offer, completed_for_user, record_swap

User = get_user_model()


class SwapTransactionTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="secret123")
        self.requester = User.objects.create_user(username="requester", password="secret123")
        self.outsider = User.objects.create_user(username="outsider", password="secret123")
        self.book = Book.objects.create(title="Thermodynamics", owner=self.owner)
        self.offer = SwapOffer.objects.create(
            chat_id=f"{min(self.owner.pk, self.requester.pk)}_{max(self.owner.pk, self.requester.pk)}_{self.book.pk}",
            requester=self.requester,
            owner=self.owner,
            requested_book=self.book,
            status=SwapOffer.Status.ACCEPTED,
        )

    def test_record_swap_is_idempotent(self):
        first = record_swap(self.offer)
        second = record_swap(self.offer)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(first.transaction_type, Transaction.Type.SWAP)
        self.assertEqual(first.buyer, self.requester)
        self.assertEqual(first.seller, self.owner)
        self.assertEqual(first.book, self.book)
        self.assertEqual(first.status, Transaction.Status.PENDING)

    def test_complete_for_offer_creates_missing_record(self):
        transaction = complete_for_offer(self.offer)

        self.assertEqual(transaction.status, Transaction.Status.COMPLETED)
        self.assertIsNotNone(transaction.completed_at)
        self.assertEqual(Transaction.objects.count(), 1)

    def test_completed_for_user_lists_both_sides(self):
        record_swap(self.offer)
        self.assertEqual(list(completed_for_user(self.owner)), [])

        transaction = complete_for_offer(self.offer)

        self.assertEqual(list(completed_for_user(self.owner)), [transaction])
        self.assertEqual(list(completed_for_user(self.requester)), [transaction])
        self.assertEqual(list(completed_for_user(self.outsider)), [])
