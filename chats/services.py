"""Chat threads keyed by a deterministic chat id.

A chat id has the form ``"{low_user_id}_{high_user_id}_{book_id}"``: the two
participant ids in ascending numeric order followed by the book the
conversation is about. Threads are append-only; existing messages are never
rewritten apart from read receipts and the request status of request
messages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from django.core.exceptions import PermissionDenied, ValidationError
from django.db.models import Count, Q, QuerySet
from django.utils import timezone

from books.models import Book

from .models import Message

logger = logging.getLogger(__name__)

REQUEST_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    Message.RequestStatus.PENDING: frozenset(
        {
            Message.RequestStatus.ACCEPTED,
            Message.RequestStatus.DECLINED,
            Message.RequestStatus.CANCELLED,
        }
    ),
    Message.RequestStatus.ACCEPTED: frozenset(
        {Message.RequestStatus.COMPLETED, Message.RequestStatus.CANCELLED}
    ),
    Message.RequestStatus.DECLINED: frozenset({Message.RequestStatus.CANCELLED}),
    Message.RequestStatus.COMPLETED: frozenset(),
    Message.RequestStatus.CANCELLED: frozenset(),
}


class RequestStatusConflict(Exception):
    """Raised when a request message cannot move to the requested status."""


@dataclass(frozen=True)
class ChatKey:
    low_user_id: int
    high_user_id: int
    book_id: int

    @property
    def chat_id(self) -> str:
        return f"{self.low_user_id}_{self.high_user_id}_{self.book_id}"

    @property
    def participants(self) -> tuple[int, int]:
        return (self.low_user_id, self.high_user_id)

    def includes(self, user_id) -> bool:
        return user_id in self.participants

    def counterpart(self, user_id: int) -> int:
        if user_id == self.low_user_id:
            return self.high_user_id
        if user_id == self.high_user_id:
            return self.low_user_id
        raise ValueError(f"User {user_id} is not part of chat {self.chat_id}")


@dataclass(frozen=True)
class Conversation:
    chat_id: str
    book_id: int
    other_user_id: int
    last_message: Message
    unread_count: int


def build_chat_id(user_a, user_b, book_id) -> str:
    """Return the chat id for a pair of users and a book, independent of order."""

    low, high = sorted((int(user_a), int(user_b)))
    return f"{low}_{high}_{int(book_id)}"


def parse_chat_id(chat_id: str) -> ChatKey:
    parts = (chat_id or "").split("_")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValidationError(f"Malformed chat id: {chat_id!r}")
    first, second, book_id = (int(part) for part in parts)
    if first == second:
        raise ValidationError("A chat needs two different participants.")
    if min(first, second, book_id) <= 0:
        raise ValidationError(f"Malformed chat id: {chat_id!r}")
    low, high = sorted((first, second))
    return ChatKey(low_user_id=low, high_user_id=high, book_id=book_id)


def append_message(
    chat_id: str,
    *,
    sender_id: int,
    receiver_id: int,
    text: str,
    message_type: str = Message.MessageType.GENERAL,
    book_id: Optional[int] = None,
) -> Message:
    """Append a message to a thread.

    The sender and receiver must be the two participants encoded in the chat
    id. Request messages (purchase requests and swap offers) must be
    addressed to the owner of the book and start in the ``pending`` state.
    """

    key = parse_chat_id(chat_id)
    if key.chat_id != chat_id:
        raise ValidationError(f"Chat id {chat_id!r} is not in canonical form {key.chat_id!r}.")
    if sender_id == receiver_id:
        raise ValidationError("Cannot send a message to yourself.")
    if not (key.includes(sender_id) and key.includes(receiver_id)):
        raise ValidationError("Sender and receiver must be the participants of the chat.")
    if book_id is not None and int(book_id) != key.book_id:
        raise ValidationError("Book does not match the chat id.")
    if message_type not in Message.MessageType.values:
        raise ValidationError(f"Unknown message type: {message_type!r}")
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError("Message text cannot be empty.")

    book = Book.objects.only("id", "owner_id").get(pk=key.book_id)
    request_status = None
    if message_type in Message.REQUEST_TYPES:
        if book.owner_id != receiver_id:
            raise ValidationError("Invalid receiver: must be the book owner.")
        if book.owner_id == sender_id:
            raise ValidationError("Cannot send request to yourself.")
        request_status = Message.RequestStatus.PENDING

    message = Message.objects.create(
        chat_id=key.chat_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        book=book,
        text=cleaned,
        message_type=message_type,
        request_status=request_status,
    )
    logger.info(
        "Message %s (%s) appended to chat %s by user %s",
        message.pk,
        message_type,
        key.chat_id,
        sender_id,
    )
    return message


def update_request_status(message: Message, new_status: str) -> Message:
    """Move a request message to ``new_status`` following the allowed transitions."""

    if not message.is_request:
        raise ValidationError("Only request messages carry a request status.")
    current = message.request_status or Message.RequestStatus.PENDING
    allowed = REQUEST_STATUS_TRANSITIONS.get(current, frozenset())
    if new_status not in allowed:
        raise RequestStatusConflict(
            f"Invalid status transition from {current} to {new_status}"
        )
    now = timezone.now()
    updated = Message.objects.filter(pk=message.pk, request_status=current).update(
        request_status=new_status,
        status_changed_at=now,
    )
    message.refresh_from_db(fields=["request_status", "status_changed_at"])
    if not updated:
        raise RequestStatusConflict(
            f"Request status changed concurrently; it is now {message.request_status}"
        )
    return message


RECEIVER_ONLY_STATUSES = frozenset(
    {Message.RequestStatus.ACCEPTED, Message.RequestStatus.DECLINED}
)


def change_request_status(message_id, user, new_status: str) -> Message:
    """Let a participant answer or withdraw a request message.

    Only the receiver (the book owner) may accept or decline; either side
    may cancel or mark the request completed.
    """

    if new_status not in Message.RequestStatus.values:
        raise ValidationError(f"Unknown request status: {new_status!r}")
    message = Message.objects.get(pk=message_id)
    if user.pk not in {message.sender_id, message.receiver_id}:
        raise PermissionDenied("You are not a participant of this chat.")
    if new_status in RECEIVER_ONLY_STATUSES and user.pk != message.receiver_id:
        raise PermissionDenied("Only the receiver can answer this request.")
    update_request_status(message, new_status)
    logger.info(
        "Request message %s moved to %s by user %s",
        message.pk,
        message.request_status,
        user.pk,
    )
    return message


def thread(chat_id: str, user) -> QuerySet:
    key = parse_chat_id(chat_id)
    if not key.includes(user.pk):
        raise PermissionDenied("You are not a participant of this chat.")
    return (
        Message.objects.filter(chat_id=key.chat_id)
        .select_related("sender", "receiver")
        .order_by("timestamp", "id")
    )


def mark_thread_read(chat_id: str, user) -> int:
    key = parse_chat_id(chat_id)
    if not key.includes(user.pk):
        raise PermissionDenied("You are not a participant of this chat.")
    return Message.objects.filter(
        chat_id=key.chat_id,
        receiver=user,
        read=False,
    ).update(read=True, read_at=timezone.now())


def conversations_for(user) -> List[Conversation]:
    """Latest message of every thread the user takes part in, newest first."""

    messages = (
        Message.objects.filter(Q(sender=user) | Q(receiver=user))
        .select_related("sender", "receiver", "book")
        .order_by("-timestamp", "-id")
    )
    unread = dict(
        Message.objects.filter(receiver=user, read=False)
        .values("chat_id")
        .annotate(total=Count("id"))
        .values_list("chat_id", "total")
    )

    conversations: List[Conversation] = []
    seen: set[str] = set()
    for message in messages:
        if message.chat_id in seen:
            continue
        seen.add(message.chat_id)
        other_user_id = message.receiver_id if message.sender_id == user.pk else message.sender_id
        conversations.append(
            Conversation(
                chat_id=message.chat_id,
                book_id=message.book_id,
                other_user_id=other_user_id,
                last_message=message,
                unread_count=unread.get(message.chat_id, 0),
            )
        )
    return conversations


__all__ = [
    "ChatKey",
    "Conversation",
    "RequestStatusConflict",
    "append_message",
    "change_request_status",
    "build_chat_id",
    "conversations_for",
    "mark_thread_read",
    "parse_chat_id",
    "thread",
    "update_request_status",
]
