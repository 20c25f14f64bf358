"""Error taxonomy of the swap offer workflow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class SwapError(Exception):
    """Base class for failures detected before any state is changed."""

    status_code = 400
    code = "swap_error"
    default_detail = "The swap offer request could not be processed."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthorized(SwapError):
    status_code = 401
    code = "unauthorized"
    default_detail = "You must be logged in to work with swap offers."


class InvalidRequest(SwapError):
    status_code = 400
    code = "invalid_request"
    default_detail = "The request is missing required fields or is malformed."


class NotFound(SwapError):
    status_code = 404
    code = "not_found"
    default_detail = "Swap offer not found."


class Forbidden(SwapError):
    status_code = 403
    code = "forbidden"
    default_detail = "You are not allowed to perform this action on the swap offer."


class Conflict(SwapError):
    status_code = 409
    code = "conflict"
    default_detail = "The swap offer is no longer in a state that allows this action."


@dataclass(frozen=True)
class SideEffectWarning:
    """A side effect that failed after the status change was committed."""

    kind: str
    detail: str
    entry_id: Optional[int] = None

    def as_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.detail, "entryId": self.entry_id}
