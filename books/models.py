from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .utils import normalize_title


class Book(models.Model):
    """A physical or digital textbook listed by a student."""

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        PENDING = "pending", _("Pending")
        SOLD = "sold", _("Sold")

    class Condition(models.TextChoices):
        NEW = "new", _("New")
        LIKE_NEW = "like_new", _("Like new")
        GOOD = "good", _("Good")
        FAIR = "fair", _("Fair")
        POOR = "poor", _("Poor")
        DIGITAL = "digital", _("Digital copy")

    class BookType(models.TextChoices):
        FOR_SALE = "for_sale", _("For sale")
        FOR_SWAP = "for_swap", _("For swap")

    title = models.CharField(max_length=255)
    author = models.CharField(max_length=255, blank=True)
    course = models.CharField(max_length=120, blank=True)
    subject = models.CharField(max_length=120, blank=True)
    description = models.TextField(blank=True)
    condition = models.CharField(
        max_length=20,
        choices=Condition.choices,
        default=Condition.GOOD,
    )
    book_type = models.CharField(
        max_length=20,
        choices=BookType.choices,
        default=BookType.FOR_SALE,
    )
    price = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.AVAILABLE,
        db_index=True,
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="books",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name = _("Book")
        verbose_name_plural = _("Books")

    def __str__(self) -> str:
        return self.title

    @property
    def display_title(self) -> str:
        return normalize_title(self.title) or _("Untitled book")
