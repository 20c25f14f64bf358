"""Transaction records linked to sales and swap offers."""

from __future__ import annotations

import logging
from typing import Optional

from django.db.models import Q, QuerySet
from django.utils import timezone

from .models import Transaction

logger = logging.getLogger(__name__)


def record_swap(offer) -> Transaction:
    """Create the pending transaction that belongs to an accepted swap offer."""

    transaction, created = Transaction.objects.get_or_create(
        swap_offer=offer,
        defaults={
            "book_id": offer.requested_book_id,
            "buyer_id": offer.requester_id,
            "seller_id": offer.owner_id,
            "transaction_type": Transaction.Type.SWAP,
            "status": Transaction.Status.PENDING,
        },
    )
    if created:
        logger.info("Transaction %s recorded for swap offer %s", transaction.pk, offer.pk)
    return transaction


def complete_for_offer(offer) -> Optional[Transaction]:
    transaction = Transaction.objects.filter(swap_offer=offer).first()
    if transaction is None:
        transaction = record_swap(offer)
    if transaction.status == Transaction.Status.COMPLETED:
        return transaction
    now = timezone.now()
    transaction.status = Transaction.Status.COMPLETED
    transaction.completed_at = now
    transaction.save(update_fields=["status", "completed_at", "updated_at"])
    return transaction


def completed_for_user(user) -> QuerySet:
    return (
        Transaction.objects.filter(Q(buyer=user) | Q(seller=user))
        .filter(status=Transaction.Status.COMPLETED)
        .select_related("book", "buyer", "seller")
        .order_by("-order_date", "-id")
    )


__all__ = ["complete_for_offer", "completed_for_user", "record_swap"]
