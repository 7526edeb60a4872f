"""
tests.test_sequence

Case number allocation.
"""

from __future__ import annotations

import pytest

from shelter_core.db.documents import DocumentStore
from shelter_core.db.records import CASE_PAPERS, CasePaper
from shelter_core.db.repositories.base import Repository
from shelter_core.services.sequence import SequenceAllocator, format_case_number, parse_case_number


async def _seed(cases: Repository[CasePaper], *numbers: str) -> None:
    for number in numbers:
        await cases.create(CasePaper(case_number=number))


@pytest.mark.asyncio
async def test_next_number_follows_highest_suffix(store: DocumentStore) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)
    await _seed(cases, "CS-0000001", "CS-0000005", "CS-0000003")

    assert await SequenceAllocator(cases).next_case_number() == "CS-0000006"


@pytest.mark.asyncio
async def test_empty_collection_starts_at_one(store: DocumentStore) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)

    assert await SequenceAllocator(cases).next_case_number() == "CS-0000001"


@pytest.mark.asyncio
async def test_malformed_numbers_are_ignored(store: DocumentStore) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)
    await _seed(cases, "CS-0000002", "CS-12a", "XX-0000099", "", "CS-", "CS-０００９")

    assert await SequenceAllocator(cases).next_case_number() == "CS-0000003"


@pytest.mark.asyncio
async def test_numbers_of_unreadable_case_papers_are_not_reused(store: DocumentStore, clock) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)
    await _seed(cases, "CS-0000002")
    # Legacy document: `age` stored as a number no longer validates as a case paper.
    await store.put(CASE_PAPERS, "legacy", {"case_number": "CS-0000009", "age": 4}, now=clock())
    await store.put(CASE_PAPERS, "odd", {"case_number": 12}, now=clock())

    assert [r.data.case_number for r in await cases.get_all()] == ["CS-0000002"]
    assert await SequenceAllocator(cases).next_case_number() == "CS-0000010"


@pytest.mark.asyncio
async def test_unavailable_store_falls_back_to_first_number(unavailable_store) -> None:
    cases = Repository(unavailable_store, CASE_PAPERS, CasePaper)

    assert await SequenceAllocator(cases).next_case_number() == "CS-0000001"


@pytest.mark.asyncio
async def test_unexpected_failure_falls_back_to_first_number() -> None:
    class Broken:
        async def field_values(self, field):
            raise RuntimeError("boom")

    allocator = SequenceAllocator(Broken(), prefix="CS")  # type: ignore[arg-type]

    assert await allocator.next_case_number() == "CS-0000001"


@pytest.mark.asyncio
async def test_custom_prefix(store: DocumentStore) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)
    await _seed(cases, "CS-0000040", "VT-0000007")

    assert await SequenceAllocator(cases, prefix="VT").next_case_number() == "VT-0000008"


def test_suffix_grows_past_seven_digits() -> None:
    assert format_case_number("CS", 12345678) == "CS-12345678"
    assert parse_case_number("CS", "CS-12345678") == 12345678
    assert parse_case_number("CS", None) is None
