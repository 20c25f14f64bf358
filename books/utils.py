from __future__ import annotations

import re
from typing import Iterable

_MULTISPACE_RE = re.compile(r"\s+")


def normalize_title(title: str | None) -> str:
    if not title:
        return ""
    return _MULTISPACE_RE.sub(" ", title).strip()


def normalize_ids(values: Iterable) -> list[int]:
    """Convert incoming ids to unique positive integers, keeping order.

    Raises ``ValueError`` for anything that is not a positive integer.
    """

    seen: set[int] = set()
    result: list[int] = []
    for value in values:
        if isinstance(value, bool):
            raise ValueError(f"Invalid id: {value!r}")
        number = int(value)
        if number <= 0:
            raise ValueError(f"Invalid id: {value!r}")
        if number in seen:
            continue
        seen.add(number)
        result.append(number)
    return result
