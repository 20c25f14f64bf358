from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Transaction(models.Model):
    """Record of a book changing hands through a sale or an accepted swap."""

    class Type(models.TextChoices):
        BUY = "buy", _("Purchase")
        SWAP = "swap", _("Swap")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    book = models.ForeignKey(
        "books.Book",
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="purchases",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sales",
    )
    transaction_type = models.CharField(
        max_length=10,
        choices=Type.choices,
        default=Type.BUY,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    amount = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    swap_offer = models.OneToOneField(
        "swaps.SwapOffer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transaction",
    )
    order_date = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-order_date", "-id"]
        verbose_name = _("Transaction")
        verbose_name_plural = _("Transactions")

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return f"{self.get_transaction_type_display()} of {self.book} ({self.status})"
