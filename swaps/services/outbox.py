"""Delivery of side effects recorded next to swap offer status changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from books.services import set_book_status
from chats.services import append_message

from ..exceptions import SideEffectWarning
from ..models import SwapOffer, SwapOutboxEntry

logger = logging.getLogger(__name__)


def _deliver_book_status(payload: Mapping) -> None:
    set_book_status(payload["book_id"], payload["status"])


def _deliver_chat_message(payload: Mapping) -> None:
    append_message(
        payload["chat_id"],
        sender_id=payload["sender_id"],
        receiver_id=payload["receiver_id"],
        text=payload["text"],
        message_type=payload["message_type"],
        book_id=payload.get("book_id"),
    )


_HANDLERS: dict[str, Callable[[Mapping], None]] = {
    SwapOutboxEntry.Kind.BOOK_STATUS: _deliver_book_status,
    SwapOutboxEntry.Kind.CHAT_MESSAGE: _deliver_chat_message,
}


@dataclass
class DrainReport:
    delivered: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0


def max_attempts() -> int:
    return max(1, int(getattr(settings, "SWAP_OUTBOX_MAX_ATTEMPTS", 5)))


def enqueue(offer: SwapOffer, kind: str, payload: Mapping) -> SwapOutboxEntry:
    return SwapOutboxEntry.objects.create(offer=offer, kind=kind, payload=dict(payload))


def _describe(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(exc.messages)
    return str(exc) or type(exc).__name__


def _record_failure(entry: SwapOutboxEntry, exc: Exception) -> SideEffectWarning:
    detail = _describe(exc)
    exhausted = entry.attempts >= max_attempts()
    entry.state = SwapOutboxEntry.State.FAILED if exhausted else SwapOutboxEntry.State.PENDING
    entry.last_error = f"{type(exc).__name__}: {detail}"
    entry.save(update_fields=["state", "last_error", "updated_at"])
    if exhausted:
        logger.error(
            "Outbox entry %s (%s) for swap offer %s failed permanently after %s attempts: %s",
            entry.pk,
            entry.kind,
            entry.offer_id,
            entry.attempts,
            detail,
        )
    else:
        logger.warning(
            "Outbox entry %s (%s) for swap offer %s failed on attempt %s: %s",
            entry.pk,
            entry.kind,
            entry.offer_id,
            entry.attempts,
            detail,
        )
    return SideEffectWarning(
        kind=entry.kind,
        detail=f"{entry.get_kind_display()} failed: {detail}",
        entry_id=entry.pk,
    )


def deliver_entry(entry: SwapOutboxEntry) -> Optional[SideEffectWarning]:
    """Try to deliver one entry; return a warning when delivery failed.

    The entry is claimed with a conditional update on its attempt counter so
    two drains never deliver the same attempt twice.
    """

    if entry.state != SwapOutboxEntry.State.PENDING:
        return None
    claimed = SwapOutboxEntry.objects.filter(
        pk=entry.pk,
        state=SwapOutboxEntry.State.PENDING,
        attempts=entry.attempts,
    ).update(attempts=F("attempts") + 1, updated_at=timezone.now())
    if not claimed:
        logger.debug("Outbox entry %s already claimed elsewhere", entry.pk)
        return None
    entry.attempts += 1

    handler = _HANDLERS.get(entry.kind)
    try:
        if handler is None:
            raise ValueError(f"Unknown outbox entry kind: {entry.kind}")
        with transaction.atomic():
            handler(entry.payload)
    except Exception as exc:  # recorded on the entry and reported as a warning
        return _record_failure(entry, exc)

    entry.state = SwapOutboxEntry.State.DELIVERED
    entry.delivered_at = timezone.now()
    entry.last_error = ""
    entry.save(update_fields=["state", "delivered_at", "last_error", "updated_at"])
    logger.debug("Outbox entry %s (%s) delivered", entry.pk, entry.kind)
    return None


def deliver_entries(entries: Iterable[SwapOutboxEntry]) -> tuple[SideEffectWarning, ...]:
    warnings = []
    for entry in entries:
        warning = deliver_entry(entry)
        if warning is not None:
            warnings.append(warning)
    return tuple(warnings)


def deliver_if_enabled(entries: Iterable[SwapOutboxEntry]) -> tuple[SideEffectWarning, ...]:
    """Deliver right away unless delivery is left to the drain command."""

    if not getattr(settings, "SWAP_DRAIN_ON_COMMIT", True):
        return ()
    return deliver_entries(entries)


def drain_outbox(*, limit: Optional[int] = None, offer: Optional[SwapOffer] = None) -> DrainReport:
    """Retry every pending entry, oldest first."""

    queryset = SwapOutboxEntry.objects.filter(state=SwapOutboxEntry.State.PENDING)
    if offer is not None:
        queryset = queryset.filter(offer=offer)
    queryset = queryset.order_by("created_at", "id")
    if limit:
        queryset = queryset[:limit]

    report = DrainReport()
    for entry in list(queryset):
        warning = deliver_entry(entry)
        if entry.state == SwapOutboxEntry.State.DELIVERED:
            report.delivered += 1
        elif entry.state == SwapOutboxEntry.State.FAILED:
            report.failed += 1
        elif warning is not None:
            report.retried += 1
        else:
            report.skipped += 1
    if report.delivered or report.failed or report.retried:
        logger.info(
            "Swap outbox drained: %s delivered, %s to retry, %s failed",
            report.delivered,
            report.retried,
            report.failed,
        )
    return report


__all__ = [
    "DrainReport",
    "deliver_entries",
    "deliver_if_enabled",
    "deliver_entry",
    "drain_outbox",
    "enqueue",
    "max_attempts",
]
