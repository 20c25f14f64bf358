"""Swap offer negotiation between a requester and the owner of a book."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from books.models import Book
from books.services import find_book, find_books
from chats.models import Message
from chats.services import build_chat_id
from transactions.services import complete_for_offer, record_swap

from ..exceptions import (
    Conflict,
    Forbidden,
    InvalidRequest,
    NotFound,
    SideEffectWarning,
    Unauthorized,
)
from ..models import SwapOffer, SwapOutboxEntry
from . import outbox
from .notifications import enqueue_notification

logger = logging.getLogger(__name__)

User = get_user_model()

OWNER = "owner"
REQUESTER = "requester"


class SwapAction(Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"

    @classmethod
    def parse(cls, value) -> "SwapAction":
        """Accept either the action name or the resulting status ("accepted")."""

        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for action in cls:
            if normalized in {action.value, TRANSITION_RULES[action].target}:
                return action
        raise InvalidRequest(
            "Invalid or missing status value. Must be one of: accepted, declined, cancelled."
        )


@dataclass(frozen=True)
class TransitionRule:
    target: str
    actor: str
    note_field: str
    message_type: str


TRANSITION_RULES: dict[SwapAction, TransitionRule] = {
    SwapAction.ACCEPT: TransitionRule(
        target=SwapOffer.Status.ACCEPTED,
        actor=OWNER,
        note_field="message_to_requester",
        message_type=Message.MessageType.SWAP_ACCEPTED,
    ),
    SwapAction.DECLINE: TransitionRule(
        target=SwapOffer.Status.DECLINED,
        actor=OWNER,
        note_field="message_to_requester",
        message_type=Message.MessageType.SWAP_DECLINED,
    ),
    SwapAction.CANCEL: TransitionRule(
        target=SwapOffer.Status.CANCELLED,
        actor=REQUESTER,
        note_field="message_to_owner",
        message_type=Message.MessageType.SWAP_CANCELLED,
    ),
}


@dataclass(frozen=True)
class TransitionResult:
    offer: SwapOffer
    warnings: tuple[SideEffectWarning, ...] = field(default_factory=tuple)

    @property
    def partial_failure(self) -> bool:
        return bool(self.warnings)


def _clean_id(value, label: str) -> int:
    if value in (None, "") or isinstance(value, bool):
        raise InvalidRequest(f"Missing required field: {label}.")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"Invalid {label}: {value!r}.") from None
    if number <= 0:
        raise InvalidRequest(f"Invalid {label}: {value!r}.")
    return number


def _clean_id_list(values, label: str) -> list[int]:
    if values in (None, "") or not isinstance(values, (list, tuple)):
        raise InvalidRequest(f"Missing required field: {label}.")
    cleaned: list[int] = []
    for value in values:
        number = _clean_id(value, label)
        if number not in cleaned:
            cleaned.append(number)
    if not cleaned:
        raise InvalidRequest(f"{label} must contain at least one book.")
    return cleaned


class SwapOfferWorkflow:
    """High-level API for proposing and resolving swap offers."""

    # --- helpers -------------------------------------------------------------
    @staticmethod
    def _require_caller(caller) -> None:
        if caller is None or not getattr(caller, "is_authenticated", False):
            raise Unauthorized()

    @classmethod
    def _load(cls, offer_id) -> SwapOffer:
        try:
            return SwapOffer.objects.select_related(
                "requester", "owner", "requested_book"
            ).get(pk=int(offer_id))
        except (SwapOffer.DoesNotExist, TypeError, ValueError):
            raise NotFound() from None

    # --- proposal ------------------------------------------------------------
    @classmethod
    def propose(
        cls,
        requester,
        *,
        owner_id,
        requested_book_id,
        offered_book_ids: Sequence,
        note: str = "",
        chat_id: Optional[str] = None,
    ) -> SwapOffer:
        """Create a pending offer after validating the ownership split.

        The requested book must belong to ``owner_id`` and every offered book
        to the requester. No notification is sent here; see
        :func:`swaps.services.notifications.notify_proposal`.
        """

        cls._require_caller(requester)
        owner_pk = _clean_id(owner_id, "owner")
        requested_pk = _clean_id(requested_book_id, "requestedBook")
        offered_pks = _clean_id_list(offered_book_ids, "offeredBooks")

        if owner_pk == requester.pk:
            raise InvalidRequest("You cannot propose a swap to yourself.")
        if requested_pk in offered_pks:
            raise InvalidRequest("The requested book cannot also be offered.")
        try:
            owner = User.objects.get(pk=owner_pk, is_active=True)
        except User.DoesNotExist:
            raise NotFound("Owner not found.") from None
        try:
            requested_book = find_book(requested_pk)
            offered_books = find_books(offered_pks)
        except Book.DoesNotExist as exc:
            raise NotFound(str(exc) or "Book not found.") from None

        if requested_book.owner_id != owner.pk:
            raise InvalidRequest("The requested book does not belong to the owner.")
        foreign = [book.pk for book in offered_books if book.owner_id != requester.pk]
        if foreign:
            raise InvalidRequest(
                "You can only offer your own books: "
                + ", ".join(str(book_id) for book_id in foreign)
            )
        if requested_book.status == Book.Status.SOLD:
            raise InvalidRequest("The requested book is no longer available.")
        sold = [book.pk for book in offered_books if book.status == Book.Status.SOLD]
        if sold:
            raise InvalidRequest(
                "Offered books are no longer available: "
                + ", ".join(str(book_id) for book_id in sold)
            )

        expected_chat_id = build_chat_id(requester.pk, owner.pk, requested_book.pk)
        if chat_id and chat_id != expected_chat_id:
            raise InvalidRequest(f"chatId must be {expected_chat_id!r} for this offer.")

        with transaction.atomic():
            offer = SwapOffer.objects.create(
                chat_id=expected_chat_id,
                requester=requester,
                owner=owner,
                requested_book=requested_book,
                status=SwapOffer.Status.PENDING,
                message_to_owner=(note or "").strip(),
            )
            offer.offered_books.set(offered_books)
        logger.info(
            "Swap offer %s proposed by user %s for book %s (chat %s)",
            offer.pk,
            requester.pk,
            requested_book.pk,
            offer.chat_id,
        )
        return offer

    # --- queries -------------------------------------------------------------
    @classmethod
    def list_for(cls, caller, user_id=None) -> QuerySet:
        """Offers in which the caller is either the requester or the owner."""

        cls._require_caller(caller)
        if user_id not in (None, "") and str(user_id) != str(caller.pk):
            raise Forbidden("You can only list your own swap offers.")
        return (
            SwapOffer.objects.filter(Q(requester=caller) | Q(owner=caller))
            .select_related("requester", "owner", "requested_book", "requested_book__owner")
            .prefetch_related("offered_books", "offered_books__owner")
            .order_by("-timestamp", "-id")
        )

    @classmethod
    def get_for(cls, offer_id, caller) -> SwapOffer:
        cls._require_caller(caller)
        offer = cls._load(offer_id)
        if not offer.is_participant(caller):
            raise Forbidden("You do not take part in this swap offer.")
        return offer

    # --- transitions ---------------------------------------------------------
    @classmethod
    def transition(cls, offer_id, caller, action, *, note: str = "") -> TransitionResult:
        cls._require_caller(caller)
        parsed = SwapAction.parse(action)
        offer = cls._load(offer_id)
        return cls.apply_transition(offer, caller, parsed, note=note)

    @classmethod
    def apply_transition(
        cls,
        offer: SwapOffer,
        caller,
        action: SwapAction,
        *,
        note: str = "",
    ) -> TransitionResult:
        """Move a pending offer to its terminal state.

        The status write is a compare-and-set on ``status = pending``; when a
        concurrent call got there first this raises :class:`Conflict` and
        nothing else is written. Side effects are recorded in the outbox in
        the same database transaction and delivered after it.
        """

        cls._require_caller(caller)
        action = SwapAction.parse(action)
        rule = TRANSITION_RULES[action]
        party_id = offer.owner_id if rule.actor == OWNER else offer.requester_id
        if caller.pk != party_id:
            raise Forbidden(f"Only the {rule.actor} can {action.value} this swap offer.")
        if not offer.is_pending:
            raise Conflict(f"Swap offer is already {offer.status}.")

        note = (note or "").strip()
        now = timezone.now()
        updates = {"status": rule.target, "responded_at": now, "updated_at": now}
        if note:
            updates[rule.note_field] = note

        with transaction.atomic():
            claimed = SwapOffer.objects.filter(
                pk=offer.pk,
                status=SwapOffer.Status.PENDING,
            ).update(**updates)
            if not claimed:
                offer.refresh_from_db(fields=["status"])
                logger.info(
                    "Swap offer %s: %s by user %s lost to concurrent change (now %s)",
                    offer.pk,
                    action.value,
                    caller.pk,
                    offer.status,
                )
                raise Conflict(f"Swap offer is already {offer.status}.")
            offer.refresh_from_db()

            entries: list[SwapOutboxEntry] = []
            if action is SwapAction.ACCEPT:
                record_swap(offer)
                entries.append(
                    outbox.enqueue(
                        offer,
                        SwapOutboxEntry.Kind.BOOK_STATUS,
                        {
                            "book_id": offer.requested_book_id,
                            "status": getattr(settings, "SWAP_SOLD_STATUS", Book.Status.SOLD),
                        },
                    )
                )
            entries.append(
                enqueue_notification(offer, rule.message_type, actor_id=caller.pk, note=note)
            )

        logger.info(
            "Swap offer %s %s by user %s",
            offer.pk,
            offer.status,
            caller.pk,
        )
        return TransitionResult(offer=offer, warnings=outbox.deliver_if_enabled(entries))

    @classmethod
    def complete(cls, offer_id, caller) -> TransitionResult:
        """Mark an accepted swap as handed over.

        Reachable only from ``accepted``; either participant may confirm.
        """

        cls._require_caller(caller)
        offer = cls._load(offer_id)
        if not offer.is_participant(caller):
            raise Forbidden("You do not take part in this swap offer.")
        if offer.status != SwapOffer.Status.ACCEPTED:
            raise Conflict(f"Only accepted swap offers can be completed; this one is {offer.status}.")

        now = timezone.now()
        with transaction.atomic():
            claimed = SwapOffer.objects.filter(
                pk=offer.pk,
                status=SwapOffer.Status.ACCEPTED,
            ).update(status=SwapOffer.Status.COMPLETED, completed_at=now, updated_at=now)
            if not claimed:
                offer.refresh_from_db(fields=["status"])
                raise Conflict(f"Swap offer is already {offer.status}.")
            offer.refresh_from_db()
            complete_for_offer(offer)
            entries = [
                enqueue_notification(
                    offer,
                    Message.MessageType.SWAP_COMPLETED,
                    actor_id=caller.pk,
                )
            ]

        logger.info("Swap offer %s completed by user %s", offer.pk, caller.pk)
        return TransitionResult(offer=offer, warnings=outbox.deliver_if_enabled(entries))


__all__ = [
    "SwapAction",
    "SwapOfferWorkflow",
    "TRANSITION_RULES",
    "TransitionResult",
    "TransitionRule",
]
