"""Chat notifications emitted for swap offer events."""

from __future__ import annotations

from typing import Optional

from accounts.services import display_name
from chats.models import Message

from ..exceptions import SideEffectWarning
from ..models import SwapOffer, SwapOutboxEntry
from . import outbox

_TEMPLATES = {
    Message.MessageType.SWAP_OFFER: '{actor} offered {offered} in exchange for "{requested}".',
    Message.MessageType.SWAP_ACCEPTED: '{actor} accepted your swap offer for "{requested}".',
    Message.MessageType.SWAP_DECLINED: '{actor} declined your swap offer for "{requested}".',
    Message.MessageType.SWAP_CANCELLED: '{actor} cancelled the swap offer for "{requested}".',
    Message.MessageType.SWAP_COMPLETED: '{actor} marked the swap for "{requested}" as completed.',
}


def _offered_summary(offer: SwapOffer) -> str:
    titles = [f'"{book.display_title}"' for book in offer.offered_books.all()]
    if not titles:
        return "their books"
    if len(titles) == 1:
        return titles[0]
    return ", ".join(titles[:-1]) + f" and {titles[-1]}"


def build_notification_text(
    offer: SwapOffer,
    message_type: str,
    *,
    actor_id: int,
    note: str = "",
) -> str:
    template = _TEMPLATES.get(message_type)
    if template is None:
        raise ValueError(f"No swap notification for message type {message_type!r}")
    text = template.format(
        actor=display_name(actor_id),
        offered=_offered_summary(offer),
        requested=offer.requested_book.display_title,
    )
    note = (note or "").strip()
    if note:
        text = f"{text} Note: {note}"
    return text


def enqueue_notification(
    offer: SwapOffer,
    message_type: str,
    *,
    actor_id: int,
    note: str = "",
) -> SwapOutboxEntry:
    """Record a chat message from the actor to the counterparty of the offer."""

    return outbox.enqueue(
        offer,
        SwapOutboxEntry.Kind.CHAT_MESSAGE,
        {
            "chat_id": offer.chat_id,
            "sender_id": actor_id,
            "receiver_id": offer.counterparty_id(actor_id),
            "book_id": offer.requested_book_id,
            "message_type": str(message_type),
            "text": build_notification_text(offer, message_type, actor_id=actor_id, note=note),
        },
    )


def notify_proposal(offer: SwapOffer, *, note: Optional[str] = None) -> tuple[SideEffectWarning, ...]:
    """Follow-up step after a successful proposal: tell the owner about it."""

    entry = enqueue_notification(
        offer,
        Message.MessageType.SWAP_OFFER,
        actor_id=offer.requester_id,
        note=offer.message_to_owner if note is None else note,
    )
    return outbox.deliver_if_enabled([entry])


__all__ = ["build_notification_text", "enqueue_notification", "notify_proposal"]
