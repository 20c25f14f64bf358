from __future__ import annotations

from rest_framework import exceptions
from rest_framework.authentication import TokenAuthentication, get_authorization_header
from rest_framework.authtoken.models import Token

_ACCEPTED_KEYWORDS = (b"token", b"bearer")


def issue_api_token(user) -> str:
    """Return the user's API token, creating it on first login."""

    token, _ = Token.objects.get_or_create(user=user)
    return token.key


class ApiTokenAuthentication(TokenAuthentication):
    """DRF token auth accepting both ``Token <key>`` and ``Bearer <key>``.

    The web client sends ``Bearer``; scripts and the browsable API use
    DRF's ``Token`` keyword. Both resolve to the same ``Token`` row.
    """

    def authenticate(self, request):
        parts = get_authorization_header(request).split()
        if not parts or parts[0].lower() not in _ACCEPTED_KEYWORDS:
            return None
        if len(parts) != 2:
            raise exceptions.AuthenticationFailed("Invalid token header.")
        try:
            key = parts[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed(
                "Invalid token header. Token string should not contain invalid characters."
            ) from None
        return self.authenticate_credentials(key)
