from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxLengthValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Message(models.Model):
    """Single entry of a chat thread between two students about one book."""

    class MessageType(models.TextChoices):
        GENERAL = "general", _("General")
        SWAP_OFFER = "swap_offer", _("Swap offer")
        SWAP_ACCEPTED = "swap_accepted", _("Swap accepted")
        SWAP_DECLINED = "swap_declined", _("Swap declined")
        SWAP_CANCELLED = "swap_cancelled", _("Swap cancelled")
        SWAP_COMPLETED = "swap_completed", _("Swap completed")
        PURCHASE_REQUEST = "purchase_request", _("Purchase request")
        REQUEST_ACCEPTED = "request_accepted", _("Request accepted")
        REQUEST_DECLINED = "request_declined", _("Request declined")

    class RequestStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        ACCEPTED = "accepted", _("Accepted")
        DECLINED = "declined", _("Declined")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    REQUEST_TYPES = frozenset({MessageType.PURCHASE_REQUEST, MessageType.SWAP_OFFER})

    chat_id = models.CharField(max_length=64, db_index=True)
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_messages",
    )
    book = models.ForeignKey(
        "books.Book",
        on_delete=models.CASCADE,
        related_name="messages",
    )
    text = models.TextField(validators=[MaxLengthValidator(4000)])
    message_type = models.CharField(
        max_length=32,
        choices=MessageType.choices,
        default=MessageType.GENERAL,
    )
    request_status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        null=True,
        blank=True,
    )
    status_changed_at = models.DateTimeField(null=True, blank=True)
    read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ("timestamp", "id")
        verbose_name = _("Message")
        verbose_name_plural = _("Messages")

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return f"{self.chat_id}: {self.sender_id} → {self.receiver_id}"

    @property
    def is_request(self) -> bool:
        return self.message_type in self.REQUEST_TYPES
