from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from books.models import Book

User = get_user_model()


class PublicApiTests(APITestCase):
    def test_health_endpoint_available(self):
        response = self.client.get(reverse("v1:health"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json().get("status"), "ok")

    def test_books_require_authentication(self):
        response = self.client.get(reverse("v1:books-list"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["error"]["code"], "unauthorized")


class AuthTokenApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="student",
            email="student@campus.edu",
            password="secret123",
        )

    def test_token_issued_for_email_login(self):
        response = self.client.post(
            reverse("v1:auth-token"),
            {"email": "Student@Campus.edu", "password": "secret123"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        payload = response.json()
        self.assertEqual(payload["user"], {"id": self.user.pk, "username": "student"})
        self.assertEqual(Token.objects.get(user=self.user).key, payload["token"])

    def test_issued_token_authenticates_requests(self):
        response = self.client.post(
            reverse("v1:auth-token"),
            {"data": {"username": "student", "password": "secret123"}},
            format="json",
        )
        token = response.json()["token"]

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        books = self.client.get(reverse("v1:books-list"))
        self.assertEqual(books.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token}")
        books = self.client.get(reverse("v1:books-list"))
        self.assertEqual(books.status_code, status.HTTP_200_OK)

    def test_wrong_password_rejected(self):
        response = self.client.post(
            reverse("v1:auth-token"),
            {"username": "student", "password": "wrong"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(Token.objects.exists())

    def test_inactive_user_token_rejected(self):
        token = Token.objects.create(user=self.user)
        self.user.is_active = False
        self.user.save()

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.key}")
        response = self.client.get(reverse("v1:books-list"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["error"]["code"], "unauthorized")

    def test_malformed_authorization_header_rejected(self):
        for header in ("Bearer", "Bearer one two", "Token"):
            with self.subTest(header=header):
                self.client.credentials(HTTP_AUTHORIZATION=header)
                response = self.client.get(reverse("v1:books-list"))
                self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unknown_scheme_is_ignored(self):
        self.client.credentials(HTTP_AUTHORIZATION="Basic abc")
        response = self.client.get(reverse("v1:books-list"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["error"]["code"], "unauthorized")


class BookApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="reader", password="secret123")
        self.seller = User.objects.create_user(username="seller", password="secret123")
        self.client.force_authenticate(self.user)
        self.swap_book = Book.objects.create(
            title="Organic Chemistry",
            course="CHEM 201",
            owner=self.seller,
            book_type=Book.BookType.FOR_SWAP,
        )
        self.sale_book = Book.objects.create(title="Art History", owner=self.seller)
        self.sold_book = Book.objects.create(
            title="Chemistry Lab Manual",
            owner=self.seller,
            status=Book.Status.SOLD,
        )

    def test_list_shows_available_books_only(self):
        response = self.client.get(reverse("v1:books-list"), {"page_size": 10})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = {item["id"] for item in response.json()["results"]}
        self.assertEqual(ids, {self.swap_book.pk, self.sale_book.pk})

    def test_filters(self):
        response = self.client.get(reverse("v1:books-list"), {"q": "chem"})
        self.assertEqual([item["id"] for item in response.json()["results"]], [self.swap_book.pk])

        response = self.client.get(reverse("v1:books-list"), {"book_type": "for_sale"})
        self.assertEqual([item["id"] for item in response.json()["results"]], [self.sale_book.pk])

        response = self.client.get(reverse("v1:books-list"), {"owner": self.user.pk})
        self.assertEqual(response.json()["results"], [])

    def test_detail_uses_camel_case(self):
        response = self.client.get(reverse("v1:book-detail", args=[self.swap_book.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data["bookType"], "for_swap")
        self.assertTrue(data["isAvailable"])
        self.assertEqual(data["owner"], {"id": self.seller.pk, "username": "seller"})

    def test_unknown_book_is_404(self):
        response = self.client.get(reverse("v1:book-detail", args=[99999]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
