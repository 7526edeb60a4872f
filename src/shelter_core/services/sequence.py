"""
shelter_core.services.sequence

Case number allocation (`CS-0000042`).

The next number is derived from the highest suffix among existing case papers, so
numbers only ever move forward from the current maximum. Deleted numbers are never
handed out again unless they were the maximum. Stored numbers are read raw, so a case
paper whose other fields no longer validate still holds its number.

Known race: two concurrent callers (or any caller during an outage) may receive the
same value. Operators resolve such collisions manually.
"""

from __future__ import annotations

from shelter_core.db.records import CasePaper
from shelter_core.db.repositories.base import Repository
from shelter_core.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_PREFIX = "CS"
SUFFIX_WIDTH = 7


def format_case_number(prefix: str, number: int) -> str:
    return f"{prefix}-{number:0{SUFFIX_WIDTH}d}"


def parse_case_number(prefix: str, value: str | None) -> int | None:
    if not value or not value.startswith(f"{prefix}-"):
        return None
    suffix = value[len(prefix) + 1 :]
    if not suffix.isascii() or not suffix.isdigit():
        return None
    return int(suffix)


class SequenceAllocator:
    def __init__(self, cases: Repository[CasePaper], *, prefix: str = DEFAULT_PREFIX) -> None:
        self._cases = cases
        self._prefix = prefix

    @property
    def first(self) -> str:
        return format_case_number(self._prefix, 1)

    async def next_case_number(self) -> str:
        try:
            values = await self._cases.field_values("case_number")
        except Exception:
            log.exception("case_number_fallback", fallback=self.first)
            return self.first

        highest = 0
        for value in values:
            number = parse_case_number(self._prefix, value if isinstance(value, str) else None)
            if number is not None and number > highest:
                highest = number
        return format_case_number(self._prefix, highest + 1)
