from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class SwapOffer(models.Model):
    """Proposal to exchange one or more owned books for another student's book."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        ACCEPTED = "accepted", _("Accepted")
        DECLINED = "declined", _("Declined")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    chat_id = models.CharField(max_length=64, db_index=True)
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="swap_offers_sent",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="swap_offers_received",
    )
    requested_book = models.ForeignKey(
        "books.Book",
        on_delete=models.CASCADE,
        related_name="swap_offers_as_requested",
    )
    offered_books = models.ManyToManyField(
        "books.Book",
        related_name="swap_offers_as_offered",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    message_to_owner = models.TextField(blank=True)
    message_to_requester = models.TextField(blank=True)
    timestamp = models.DateTimeField(default=timezone.now, editable=False)
    responded_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-timestamp", "-id"]
        verbose_name = _("Swap offer")
        verbose_name_plural = _("Swap offers")
        constraints = [
            models.CheckConstraint(
                condition=~Q(requester=F("owner")),
                name="swap_offer_distinct_parties",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return f"Swap #{self.pk} ({self.get_status_display()})"

    @property
    def is_pending(self) -> bool:
        return self.status == self.Status.PENDING

    def is_participant(self, user) -> bool:
        user_id = getattr(user, "pk", None)
        return user_id in {self.requester_id, self.owner_id}

    def counterparty_id(self, user_id: int) -> int:
        if user_id == self.owner_id:
            return self.requester_id
        if user_id == self.requester_id:
            return self.owner_id
        raise ValueError(f"User {user_id} does not take part in swap offer {self.pk}")


class SwapOutboxEntry(models.Model):
    """Side effect recorded together with a swap offer status change.

    Entries are written in the same database transaction as the status
    change and delivered afterwards, so a crash between the two steps leaves
    a pending entry instead of a lost notification.
    """

    class Kind(models.TextChoices):
        BOOK_STATUS = "book_status", _("Book status update")
        CHAT_MESSAGE = "chat_message", _("Chat notification")

    class State(models.TextChoices):
        PENDING = "pending", _("Pending")
        DELIVERED = "delivered", _("Delivered")
        FAILED = "failed", _("Failed")

    offer = models.ForeignKey(
        SwapOffer,
        on_delete=models.CASCADE,
        related_name="outbox_entries",
    )
    kind = models.CharField(max_length=32, choices=Kind.choices)
    payload = models.JSONField(default=dict)
    state = models.CharField(
        max_length=20,
        choices=State.choices,
        default=State.PENDING,
        db_index=True,
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = _("Swap outbox entry")
        verbose_name_plural = _("Swap outbox entries")

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return f"{self.kind} for swap #{self.offer_id} ({self.state})"
