import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

logger = logging.getLogger(__name__)


class EmailBackend(ModelBackend):
    """Authenticate a student by email address or username (case insensitive).

    An exact email match wins over a username match so that students who
    registered with their campus address can always sign in with it.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        UserModel = get_user_model()
        if username is None:
            username = kwargs.get(UserModel.USERNAME_FIELD)
        if not username or password is None:
            return None

        identifier = username.strip()
        candidates = list(
            UserModel.objects.filter(
                Q(email__iexact=identifier) | Q(username__iexact=identifier)
            ).order_by("pk")[:5]
        )
        by_email = [user for user in candidates if (user.email or "").lower() == identifier.lower()]
        ordered = by_email + [user for user in candidates if user not in by_email]

        for user in ordered:
            if user.check_password(password) and self.user_can_authenticate(user):
                return user
        if candidates:
            logger.info("Rejected credentials for %s", identifier)
        return None
