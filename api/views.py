from django.contrib.auth import authenticate
from django.core.exceptions import PermissionDenied
from django.db.models import Q
from django.utils import timezone
from rest_framework import exceptions, generics, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from books.models import Book
from chats.models import Message
from chats.services import (
    append_message,
    change_request_status,
    conversations_for,
    mark_thread_read,
    parse_chat_id,
    thread,
)
from swaps.exceptions import InvalidRequest
from swaps.services import SwapAction, SwapOfferWorkflow, notify_proposal
from transactions.services import completed_for_user

from .authentication import issue_api_token
from .pagination import StandardResultsSetPagination
from .serializers import (
    BookSerializer,
    ConversationSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    RequestStatusSerializer,
    SwapOfferCreateSerializer,
    SwapOfferSerializer,
    SwapOfferStatusSerializer,
    TokenRequestSerializer,
    TransactionSerializer,
)


def unwrap_payload(data):
    """Accept both ``{"data": {...}}`` and the bare object."""

    if hasattr(data, "get") and isinstance(data.get("data"), dict):
        return data["data"]
    return data


def first_error(errors) -> str:
    if isinstance(errors, dict):
        for field, messages in errors.items():
            message = first_error(messages)
            if field == "non_field_errors":
                return message
            return f"{field}: {message}"
    if isinstance(errors, (list, tuple)) and errors:
        return first_error(errors[0])
    return str(errors)


def validated_input(serializer_class, request) -> dict:
    serializer = serializer_class(data=unwrap_payload(request.data))
    if not serializer.is_valid():
        raise InvalidRequest(first_error(serializer.errors))
    return serializer.validated_data


def offer_response(offer, warnings=(), *, status_code=status.HTTP_200_OK) -> Response:
    return Response(
        {
            "data": SwapOfferSerializer(offer).data,
            "warnings": [warning.as_dict() for warning in warnings],
        },
        status=status_code,
    )


class HealthView(APIView):
    """Basic liveness check."""

    authentication_classes: list = []
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        return Response(
            {
                "status": "ok",
                "service": "campus-swap-api",
                "timestamp": timezone.now(),
            }
        )


class AuthTokenView(APIView):
    """Exchange username (or email) and password for an API token."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = TokenRequestSerializer(data=unwrap_payload(request.data))
        serializer.is_valid(raise_exception=True)
        user = authenticate(
            request,
            username=serializer.validated_data["identifier"],
            password=serializer.validated_data["password"],
        )
        if user is None:
            raise exceptions.AuthenticationFailed("Invalid credentials.")
        return Response(
            {
                "token": issue_api_token(user),
                "user": {"id": user.pk, "username": user.get_username()},
            }
        )


class BookListView(generics.ListAPIView):
    """Catalog of listed books, available ones by default."""

    serializer_class = BookSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        params = self.request.query_params
        queryset = Book.objects.select_related("owner").order_by("-created_at", "-id")

        book_status = params.get("status") or Book.Status.AVAILABLE
        if book_status != "all":
            queryset = queryset.filter(status=book_status)

        book_type = params.get("book_type") or params.get("bookType")
        if book_type:
            queryset = queryset.filter(book_type=book_type)

        owner = params.get("owner")
        if owner:
            if not owner.isdigit():
                raise InvalidRequest(f"Invalid owner: {owner!r}.")
            queryset = queryset.filter(owner_id=int(owner))

        query = params.get("q") or params.get("search")
        if query and query.strip():
            cleaned = query.strip()
            queryset = queryset.filter(
                Q(title__icontains=cleaned)
                | Q(author__icontains=cleaned)
                | Q(course__icontains=cleaned)
                | Q(subject__icontains=cleaned)
            )
        return queryset


class BookDetailView(generics.RetrieveAPIView):
    serializer_class = BookSerializer
    queryset = Book.objects.select_related("owner")


class SwapOfferListCreateView(generics.ListAPIView):
    """Offers of the caller; POST proposes a new one and notifies the owner."""

    serializer_class = SwapOfferSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return SwapOfferWorkflow.list_for(
            self.request.user,
            self.request.query_params.get("user"),
        )

    def post(self, request, *args, **kwargs):
        data = validated_input(SwapOfferCreateSerializer, request)
        offer = SwapOfferWorkflow.propose(request.user, **data)
        warnings = notify_proposal(offer)
        return offer_response(offer, warnings, status_code=status.HTTP_201_CREATED)


class SwapOfferDetailView(APIView):
    def get(self, request, pk, *args, **kwargs):
        return offer_response(SwapOfferWorkflow.get_for(pk, request.user))


class SwapOfferStatusView(APIView):
    """Accept, decline or cancel a pending offer."""

    def put(self, request, pk, *args, **kwargs):
        data = validated_input(SwapOfferStatusSerializer, request)
        action = SwapAction.parse(data.get("status"))
        if action is SwapAction.CANCEL:
            note = data.get("messageToOwner", "")
        else:
            note = data.get("messageToRequester", "")
        result = SwapOfferWorkflow.transition(pk, request.user, action, note=note)
        return offer_response(result.offer, result.warnings)

    patch = put


class SwapOfferCompleteView(APIView):
    def post(self, request, pk, *args, **kwargs):
        result = SwapOfferWorkflow.complete(pk, request.user)
        return offer_response(result.offer, result.warnings)


class ConversationListView(generics.ListAPIView):
    serializer_class = ConversationSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return conversations_for(self.request.user)


class ChatMessagesView(generics.ListAPIView):
    """Messages of one thread; POST appends a general message."""

    serializer_class = MessageSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return thread(self.kwargs["chat_id"], self.request.user)

    def post(self, request, chat_id, *args, **kwargs):
        data = validated_input(MessageCreateSerializer, request)
        key = parse_chat_id(chat_id)
        if not key.includes(request.user.pk):
            raise PermissionDenied("You are not a participant of this chat.")
        message = append_message(
            key.chat_id,
            sender_id=request.user.pk,
            receiver_id=key.counterpart(request.user.pk),
            text=data["text"],
            message_type=Message.MessageType.GENERAL,
            book_id=key.book_id,
        )
        return Response({"data": MessageSerializer(message).data}, status=status.HTTP_201_CREATED)


class ChatReadView(APIView):
    def post(self, request, chat_id, *args, **kwargs):
        updated = mark_thread_read(chat_id, request.user)
        return Response({"data": {"chatId": parse_chat_id(chat_id).chat_id, "updated": updated}})


class MessageRequestStatusView(APIView):
    """Answer, withdraw or complete a purchase request or swap offer message."""

    def patch(self, request, pk, *args, **kwargs):
        data = validated_input(RequestStatusSerializer, request)
        message = change_request_status(pk, request.user, data["requestStatus"])
        return Response({"data": MessageSerializer(message).data})

    put = patch


class TransactionListView(generics.ListAPIView):
    """Completed purchases and swaps of the caller."""

    serializer_class = TransactionSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return completed_for_user(self.request.user)
