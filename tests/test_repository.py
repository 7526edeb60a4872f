"""
tests.test_repository

Generic repository over the document store.
"""

from __future__ import annotations

import pytest

from shelter_core.db.documents import DocumentStore
from shelter_core.db.errors import RecordNotFound, StoreUnavailable
from shelter_core.db.records import CASE_PAPERS, USERS, CasePaper, UserProfile
from shelter_core.db.repositories.base import Repository


@pytest.mark.asyncio
async def test_create_stamps_timestamps_and_lists_newest_first(store: DocumentStore, clock) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper, clock=clock)

    first = await cases.create(CasePaper(case_number="CS-0000001", animal_type="Dog"))
    second = await cases.create(CasePaper(case_number="CS-0000002", animal_type="Cat"))

    records = await cases.get_all()
    assert [r.id for r in records] == [second, first]
    assert records[0].data.animal_type == "Cat"
    assert records[1].created_at == records[1].updated_at
    assert records[0].created_at > records[1].created_at


@pytest.mark.asyncio
async def test_update_sets_updated_at_only(store: DocumentStore, clock) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper, clock=clock)
    case_id = await cases.create(CasePaper(case_number="CS-0000001"))
    before = await cases.get(case_id)
    assert before is not None

    await cases.update(case_id, {"admitted": True, "location": "Gate 2"})

    after = await cases.get(case_id)
    assert after is not None
    assert after.data.admitted is True
    assert after.data.location == "Gate 2"
    assert after.data.case_number == "CS-0000001"
    assert after.created_at == before.created_at
    assert after.updated_at > before.updated_at


@pytest.mark.asyncio
async def test_empty_update_still_touches_updated_at(store: DocumentStore, clock) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper, clock=clock)
    case_id = await cases.create(CasePaper(case_number="CS-0000001"))
    before = await cases.get(case_id)

    await cases.update(case_id, {})

    after = await cases.get(case_id)
    assert before is not None and after is not None
    assert after.data == before.data
    assert after.updated_at > before.updated_at


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["id", "created_at", "createdAt", "updatedAt", "not_a_field"])
async def test_update_rejects_managed_and_unknown_fields(store: DocumentStore, field: str) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)
    case_id = await cases.create(CasePaper(case_number="CS-0000001"))

    with pytest.raises(ValueError):
        await cases.update(case_id, {field: "x"})


@pytest.mark.asyncio
async def test_update_validates_values(store: DocumentStore) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)
    case_id = await cases.create(CasePaper(case_number="CS-0000001"))

    with pytest.raises(ValueError):
        await cases.update(case_id, {"treatment_schedule": "every day"})


@pytest.mark.asyncio
async def test_update_missing_record_raises(store: DocumentStore) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)

    with pytest.raises(RecordNotFound):
        await cases.update("nope", {"admitted": True})


@pytest.mark.asyncio
async def test_delete_is_permanent(store: DocumentStore) -> None:
    cases = Repository(store, CASE_PAPERS, CasePaper)
    case_id = await cases.create(CasePaper(case_number="CS-0000001"))

    await cases.delete(case_id)

    assert await cases.get(case_id) is None
    assert await cases.get_all() == []
    # Deleting again is a no-op.
    await cases.delete(case_id)


@pytest.mark.asyncio
async def test_get_by_field_filters_on_equality(store: DocumentStore) -> None:
    users = Repository(store, USERS, UserProfile)
    await users.upsert("a", {"name": "A", "role": "staff"})
    await users.upsert("b", {"name": "B", "role": "doctor"})
    await users.upsert("c", {"name": "C", "role": "staff"})

    staff = await users.get_by_field("role", "staff")

    assert sorted(r.id for r in staff) == ["a", "c"]
    assert await users.get_by_field("role", "photographer") == []


@pytest.mark.asyncio
async def test_upsert_merges_fields(store: DocumentStore) -> None:
    users = Repository(store, USERS, UserProfile)
    await users.upsert("u1", {"name": "Asha", "phone": "123"})
    await users.upsert("u1", {"role": "admin"})

    record = await users.get("u1")
    assert record is not None
    assert record.data.name == "Asha"
    assert record.data.phone == "123"
    assert record.data.role == "admin"


@pytest.mark.asyncio
async def test_legacy_documents_are_read_leniently(store: DocumentStore, clock) -> None:
    await store.put(USERS, "legacy", {"name": 42, "role": "  ", "permissions": "all"}, now=clock())
    users = Repository(store, USERS, UserProfile)

    record = await users.get("legacy")

    assert record is not None
    assert record.data.name == ""
    assert record.data.role is None
    assert record.data.permissions is None


@pytest.mark.asyncio
async def test_reads_degrade_when_store_is_unavailable(unavailable_store) -> None:
    cases = Repository(unavailable_store, CASE_PAPERS, CasePaper)

    assert await cases.get_all() == []
    assert await cases.get("x") is None
    assert await cases.get_by_field("admitted", True) == []


@pytest.mark.asyncio
async def test_writes_and_strict_reads_propagate_when_unavailable(unavailable_store) -> None:
    cases = Repository(unavailable_store, CASE_PAPERS, CasePaper)

    with pytest.raises(StoreUnavailable):
        await cases.create(CasePaper(case_number="CS-0000001"))
    with pytest.raises(StoreUnavailable):
        await cases.update("x", {"admitted": True})
    with pytest.raises(StoreUnavailable):
        await cases.delete("x")
    with pytest.raises(StoreUnavailable):
        await cases.fetch("x")
