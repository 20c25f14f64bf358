from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from books.models import Book
from chats.models import Message
from swaps.models import SwapOffer
from transactions.models import Transaction

User = get_user_model()


class SwapOfferApiTests(APITestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="secret123")
        self.requester = User.objects.create_user(username="requester", password="secret123")
        self.stranger = User.objects.create_user(username="stranger", password="secret123")
        self.requested_book = Book.objects.create(title="Linear Algebra", owner=self.owner)
        self.offered_book = Book.objects.create(title="Calculus", owner=self.requester)

    def propose(self, **overrides):
        payload = {
            "owner": self.owner.pk,
            "requestedBook": self.requested_book.pk,
            "offeredBooks": [self.offered_book.pk],
            "messageToOwner": "Swap after the exam?",
        }
        payload.update(overrides)
        self.client.force_authenticate(self.requester)
        return self.client.post(reverse("v1:swap-offers"), {"data": payload}, format="json")

    def set_status(self, offer_id, user, value, **extra):
        self.client.force_authenticate(user)
        return self.client.put(
            reverse("v1:swap-offer-status", args=[offer_id]),
            {"data": {"status": value, **extra}},
            format="json",
        )

    def test_propose_returns_offer_and_notifies_owner(self):
        response = self.propose()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body["warnings"], [])
        data = body["data"]
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["owner"]["id"], self.owner.pk)
        self.assertEqual(data["requestedBook"]["id"], self.requested_book.pk)
        self.assertEqual([book["id"] for book in data["offeredBooks"]], [self.offered_book.pk])
        self.assertEqual(data["messageToOwner"], "Swap after the exam?")

        message = Message.objects.get()
        self.assertEqual(message.message_type, Message.MessageType.SWAP_OFFER)
        self.assertEqual(message.chat_id, data["chatId"])
        self.assertEqual(message.receiver, self.owner)

    def test_propose_accepts_unwrapped_payload(self):
        self.client.force_authenticate(self.requester)
        response = self.client.post(
            reverse("v1:swap-offers"),
            {
                "owner": self.owner.pk,
                "requestedBook": self.requested_book.pk,
                "offeredBooks": [self.offered_book.pk],
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_propose_validation_errors(self):
        response = self.propose(offeredBooks=[])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"]["code"], "invalid_request")

        foreign = Book.objects.create(title="Genetics", owner=self.stranger)
        response = self.propose(offeredBooks=[foreign.pk])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.propose(owner=self.requester.pk)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.propose(requestedBook=99999)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["error"]["code"], "not_found")

        self.assertFalse(SwapOffer.objects.exists())

    def test_anonymous_cannot_propose(self):
        response = self.client.post(reverse("v1:swap-offers"), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["error"]["code"], "unauthorized")
        self.assertEqual(response["WWW-Authenticate"], "Token")

    def test_list_and_detail_restricted_to_participants(self):
        offer_id = self.propose().json()["data"]["id"]

        self.client.force_authenticate(self.owner)
        response = self.client.get(reverse("v1:swap-offers"))
        self.assertEqual([item["id"] for item in response.json()["results"]], [offer_id])

        self.client.force_authenticate(self.stranger)
        response = self.client.get(reverse("v1:swap-offers"))
        self.assertEqual(response.json()["results"], [])
        response = self.client.get(reverse("v1:swap-offer-detail", args=[offer_id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()["error"]["code"], "forbidden")

        response = self.client.get(reverse("v1:swap-offers"), {"user": self.owner.pk})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.requester)
        response = self.client.get(reverse("v1:swap-offer-detail", args=[offer_id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["data"]["id"], offer_id)

    def test_accept_flow(self):
        offer_id = self.propose().json()["data"]["id"]

        response = self.set_status(
            offer_id, self.owner, "accepted", messageToRequester="Deal!"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["data"]["status"], "accepted")
        self.assertEqual(body["data"]["messageToRequester"], "Deal!")
        self.assertEqual(body["warnings"], [])
        self.requested_book.refresh_from_db()
        self.assertEqual(self.requested_book.status, Book.Status.SOLD)
        self.assertTrue(
            Message.objects.filter(
                message_type=Message.MessageType.SWAP_ACCEPTED,
                receiver=self.requester,
            ).exists()
        )

        response = self.set_status(offer_id, self.owner, "declined")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.json()["error"]["code"], "conflict")

    def test_wrong_party_is_forbidden(self):
        offer_id = self.propose().json()["data"]["id"]

        response = self.set_status(offer_id, self.requester, "accepted")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.set_status(offer_id, self.owner, "cancelled")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.set_status(offer_id, self.requester, "cancelled", messageToOwner="Sorry")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["data"]["messageToOwner"], "Sorry")

    def test_invalid_status_value(self):
        offer_id = self.propose().json()["data"]["id"]

        for value in ("completed", "", "maybe"):
            with self.subTest(value=value):
                response = self.set_status(offer_id, self.owner, value)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_offer_is_not_found(self):
        response = self.set_status(424242, self.owner, "accepted")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_side_effect_failure_is_a_warning(self):
        offer_id = self.propose().json()["data"]["id"]

        with patch(
            "swaps.services.outbox.append_message",
            side_effect=RuntimeError("chat store unavailable"),
        ), self.assertLogs("swaps.services.outbox", level="WARNING"):
            response = self.set_status(offer_id, self.owner, "declined")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["data"]["status"], "declined")
        self.assertEqual(len(body["warnings"]), 1)
        self.assertEqual(body["warnings"][0]["kind"], "chat_message")
        self.assertIsNotNone(body["warnings"][0]["entryId"])

    def test_owner_closes_swap_offer_request_after_declining(self):
        offer_id = self.propose().json()["data"]["id"]
        self.set_status(offer_id, self.owner, "declined")
        request_message = Message.objects.get(message_type=Message.MessageType.SWAP_OFFER)
        self.assertEqual(request_message.request_status, Message.RequestStatus.PENDING)

        self.client.force_authenticate(self.owner)
        response = self.client.patch(
            reverse("v1:message-request-status", args=[request_message.pk]),
            {"requestStatus": "declined"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        request_message.refresh_from_db()
        self.assertEqual(request_message.request_status, Message.RequestStatus.DECLINED)

    def test_complete_and_transactions(self):
        offer_id = self.propose().json()["data"]["id"]
        self.set_status(offer_id, self.owner, "accepted")

        self.client.force_authenticate(self.owner)
        response = self.client.post(reverse("v1:swap-offer-complete", args=[offer_id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["data"]["status"], "completed")

        transaction = Transaction.objects.get(swap_offer_id=offer_id)
        response = self.client.get(reverse("v1:transactions"))
        results = response.json()["results"]
        self.assertEqual([item["id"] for item in results], [transaction.pk])
        self.assertEqual(results[0]["transactionType"], "swap")
        self.assertEqual(results[0]["swapOffer"], offer_id)

        response = self.client.post(reverse("v1:swap-offer-complete", args=[offer_id]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
