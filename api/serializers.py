from rest_framework import serializers

from books.models import Book
from books.services import is_available
from chats.models import Message
from swaps.models import SwapOffer
from transactions.models import Transaction


class UserBriefSerializer(serializers.Serializer):
    id = serializers.IntegerField(source="pk")
    username = serializers.CharField(source="get_username")


class BookSerializer(serializers.ModelSerializer):
    bookType = serializers.CharField(source="book_type")
    owner = UserBriefSerializer(read_only=True)
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")
    isAvailable = serializers.SerializerMethodField()

    class Meta:
        model = Book
        fields = [
            "id",
            "title",
            "author",
            "course",
            "subject",
            "description",
            "condition",
            "bookType",
            "price",
            "status",
            "isAvailable",
            "owner",
            "createdAt",
            "updatedAt",
        ]

    def get_isAvailable(self, obj: Book) -> bool:
        return is_available(obj)


class SwapOfferSerializer(serializers.ModelSerializer):
    chatId = serializers.CharField(source="chat_id", read_only=True)
    requester = UserBriefSerializer(read_only=True)
    owner = UserBriefSerializer(read_only=True)
    requestedBook = BookSerializer(source="requested_book", read_only=True)
    offeredBooks = BookSerializer(source="offered_books", many=True, read_only=True)
    messageToOwner = serializers.CharField(source="message_to_owner", read_only=True)
    messageToRequester = serializers.CharField(source="message_to_requester", read_only=True)
    respondedAt = serializers.DateTimeField(source="responded_at", read_only=True)
    completedAt = serializers.DateTimeField(source="completed_at", read_only=True)

    class Meta:
        model = SwapOffer
        fields = [
            "id",
            "chatId",
            "requester",
            "owner",
            "requestedBook",
            "offeredBooks",
            "status",
            "messageToOwner",
            "messageToRequester",
            "timestamp",
            "respondedAt",
            "completedAt",
        ]


class SwapOfferCreateSerializer(serializers.Serializer):
    """Input of the propose call; ids are checked again by the workflow."""

    owner = serializers.IntegerField(source="owner_id", min_value=1)
    requestedBook = serializers.IntegerField(source="requested_book_id", min_value=1)
    offeredBooks = serializers.ListField(
        source="offered_book_ids",
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
    )
    messageToOwner = serializers.CharField(
        source="note",
        required=False,
        allow_blank=True,
        default="",
        max_length=4000,
    )
    chatId = serializers.CharField(
        source="chat_id",
        required=False,
        allow_blank=True,
        allow_null=True,
        default=None,
    )


class SwapOfferStatusSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
    messageToRequester = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=4000
    )
    messageToOwner = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=4000
    )


class MessageSerializer(serializers.ModelSerializer):
    chatId = serializers.CharField(source="chat_id")
    sender = serializers.IntegerField(source="sender_id")
    receiver = serializers.IntegerField(source="receiver_id")
    book = serializers.IntegerField(source="book_id")
    messageType = serializers.CharField(source="message_type")
    requestStatus = serializers.CharField(source="request_status", allow_null=True)
    readAt = serializers.DateTimeField(source="read_at", allow_null=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "chatId",
            "sender",
            "receiver",
            "book",
            "text",
            "messageType",
            "requestStatus",
            "read",
            "readAt",
            "timestamp",
        ]


class MessageCreateSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=4000)


class ConversationSerializer(serializers.Serializer):
    chatId = serializers.CharField(source="chat_id")
    bookId = serializers.IntegerField(source="book_id")
    otherUserId = serializers.IntegerField(source="other_user_id")
    lastMessage = MessageSerializer(source="last_message")
    unreadCount = serializers.IntegerField(source="unread_count")


class TransactionSerializer(serializers.ModelSerializer):
    book = BookSerializer(read_only=True)
    buyer = UserBriefSerializer(read_only=True)
    seller = UserBriefSerializer(read_only=True)
    transactionType = serializers.CharField(source="transaction_type")
    swapOffer = serializers.IntegerField(source="swap_offer_id", allow_null=True)
    orderDate = serializers.DateTimeField(source="order_date")
    completedAt = serializers.DateTimeField(source="completed_at", allow_null=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "book",
            "buyer",
            "seller",
            "transactionType",
            "status",
            "amount",
            "swapOffer",
            "orderDate",
            "completedAt",
        ]


class TokenRequestSerializer(serializers.Serializer):
    username = serializers.CharField(required=False, allow_blank=True)
    email = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(trim_whitespace=False)

    def validate(self, attrs):
        identifier = (attrs.get("username") or attrs.get("email") or "").strip()
        if not identifier:
            raise serializers.ValidationError("Provide a username or an email.")
        attrs["identifier"] = identifier
        return attrs


class RequestStatusSerializer(serializers.Serializer):
    requestStatus = serializers.CharField()
