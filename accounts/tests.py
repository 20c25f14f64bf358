from django.contrib.auth import authenticate, get_user_model
from django.test import TestCase

from .services import UserSummary, display_name, get_user

User = get_user_model()


class UserDirectoryTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="nima",
            email="nima@campus.edu",
            password="secret123",
        )

    def test_get_user_returns_summary(self):
        summary = get_user(self.user.pk)
        self.assertEqual(summary, UserSummary(id=self.user.pk, username="nima"))

    def test_get_user_unknown_raises(self):
        with self.assertRaises(User.DoesNotExist):
            get_user(424242)

    def test_get_user_skips_inactive_accounts(self):
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])
        with self.assertRaises(User.DoesNotExist):
            get_user(self.user.pk)

    def test_display_name_falls_back(self):
        self.assertEqual(display_name(self.user.pk), "nima")
        self.assertEqual(display_name(424242), "A student")
        self.assertEqual(display_name("not-a-number", default="Someone"), "Someone")


class EmailBackendTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="emad",
            email="Emad@Campus.edu",
            password="secret123",
        )

    def test_login_with_email_case_insensitive(self):
        user = authenticate(username="emad@campus.edu", password="secret123")
        self.assertEqual(user, self.user)

    def test_login_with_username(self):
        user = authenticate(username="EMAD", password="secret123")
        self.assertEqual(user, self.user)

    def test_wrong_password_is_rejected(self):
        self.assertIsNone(authenticate(username="emad", password="nope"))

    def test_inactive_user_is_rejected(self):
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])
        self.assertIsNone(authenticate(username="emad", password="secret123"))
