"""Read-only lookups over campus users."""

from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth import get_user_model

User = get_user_model()


@dataclass(frozen=True)
class UserSummary:
    id: int
    username: str

    @classmethod
    def from_user(cls, user) -> "UserSummary":
        return cls(id=user.pk, username=user.get_username())


def get_user(user_id) -> UserSummary:
    """Return the public identity of a user.

    Raises ``User.DoesNotExist`` for unknown or inactive accounts.
    """

    user = User.objects.only("id", "username").get(pk=user_id, is_active=True)
    return UserSummary.from_user(user)


def display_name(user_id, *, default: str = "A student") -> str:
    try:
        return get_user(user_id).username
    except (User.DoesNotExist, ValueError, TypeError):
        return default


__all__ = ["UserSummary", "display_name", "get_user"]
