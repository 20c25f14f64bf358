"""Maps workflow and collaborator errors to JSON API responses."""

from __future__ import annotations

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from chats.services import RequestStatusConflict
from swaps.exceptions import SwapError


def error_response(code: str, detail: str, status_code: int) -> Response:
    return Response({"error": {"code": code, "detail": detail}}, status=status_code)


def swap_exception_handler(exc, context):
    if isinstance(exc, SwapError):
        return error_response(exc.code, exc.detail, exc.status_code)
    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        code = "unauthorized" if exc.status_code == status.HTTP_401_UNAUTHORIZED else "forbidden"
        response = error_response(code, str(exc.detail), exc.status_code)
        auth_header = getattr(exc, "auth_header", None)
        if auth_header:
            response["WWW-Authenticate"] = auth_header
        return response
    if isinstance(exc, DjangoValidationError):
        return error_response(
            "invalid_request", "; ".join(exc.messages), status.HTTP_400_BAD_REQUEST
        )
    if isinstance(exc, RequestStatusConflict):
        return error_response("conflict", str(exc), status.HTTP_409_CONFLICT)
    if isinstance(exc, ObjectDoesNotExist):
        return error_response(
            "not_found", str(exc) or "Not found.", status.HTTP_404_NOT_FOUND
        )
    if isinstance(exc, PermissionDenied):
        return error_response(
            "forbidden",
            str(exc) or "You do not have permission to perform this action.",
            status.HTTP_403_FORBIDDEN,
        )

    return exception_handler(exc, context)
