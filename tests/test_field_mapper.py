"""
Unit tests for the field mapper

Covers direct copies, sync and async computed fields, ordering under concurrency
and failure propagation.
"""

import asyncio

import pytest

from exceptions import FieldMappingError
from field_mapper import map_row, project, resolve
from models import FieldMapping


@pytest.fixture
def source_rows():
    return [
        {"id": 1, "firstName": "John", "lastName": "Doe"},
        {"id": 2, "firstName": "Jane", "lastName": "Diana"},
        {"id": 4, "firstName": "Rid", "lastName": "Lomba"},
    ]


@pytest.fixture
def mappings():
    return [
        FieldMapping(
            field_name="FullName", compute=lambda row: f"{row['firstName']} {row['lastName']}"
        ),
        FieldMapping(field_name="id", source_field="id", is_key=True),
    ]


@pytest.mark.asyncio
async def test_project_one_record_per_source_row(source_rows, mappings):
    mapped = await project(source_rows, mappings)

    assert mapped == [
        {"FullName": "John Doe", "id": 1},
        {"FullName": "Jane Diana", "id": 2},
        {"FullName": "Rid Lomba", "id": 4},
    ]
    assert all(list(row) == ["FullName", "id"] for row in mapped)


@pytest.mark.asyncio
async def test_project_empty_source(mappings):
    assert await project([], mappings) == []


@pytest.mark.asyncio
async def test_project_missing_source_field_is_none():
    mapped = await project([{"id": 1}], [FieldMapping(field_name="email", source_field="mail")])
    assert mapped == [{"email": None}]


@pytest.mark.asyncio
async def test_project_awaits_async_compute(source_rows):
    async def full_name(row):
        await asyncio.sleep(0)
        return f"{row['firstName']} {row['lastName']}"

    mapped = await project(source_rows, [FieldMapping(field_name="FullName", compute=full_name)])
    assert [row["FullName"] for row in mapped] == ["John Doe", "Jane Diana", "Rid Lomba"]


@pytest.mark.asyncio
async def test_project_preserves_order_when_rows_finish_out_of_order():
    """Earlier rows sleep longer; output still follows source order."""

    async def slow_id(row):
        await asyncio.sleep(0.01 * (5 - row["id"]))
        return row["id"]

    rows = [{"id": i} for i in range(5)]
    mapped = await project(rows, [FieldMapping(field_name="id", compute=slow_id)])
    assert [row["id"] for row in mapped] == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_project_failure_aborts_pass():
    def explode(row):
        if row["id"] == 2:
            raise ValueError("bad row")
        return row["id"]

    rows = [{"id": 1}, {"id": 2}, {"id": 3}]
    with pytest.raises(FieldMappingError) as exc_info:
        await project(rows, [FieldMapping(field_name="id", compute=explode)])

    assert exc_info.value.row_index == 1
    assert exc_info.value.field_name == "id"
    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_project_failure_cancels_rows_in_flight():
    calls = []

    async def slow_or_fail(row):
        if row["id"] == 0:
            raise ValueError("bad row")
        await asyncio.sleep(0.01)
        calls.append(row["id"])
        return row["id"]

    rows = [{"id": 0}, {"id": 1}, {"id": 2}]
    with pytest.raises(FieldMappingError) as exc_info:
        await project(rows, [FieldMapping(field_name="id", compute=slow_or_fail)])

    assert exc_info.value.row_index == 0
    await asyncio.sleep(0.05)
    assert calls == []


@pytest.mark.asyncio
async def test_map_row_stops_at_first_failing_mapping():
    calls = []

    def fail(row):
        raise RuntimeError("boom")

    def record_call(row):
        calls.append(row)
        return 1

    mappings = [
        FieldMapping(field_name="a", compute=fail),
        FieldMapping(field_name="b", compute=record_call),
    ]
    with pytest.raises(FieldMappingError):
        await map_row({"id": 1}, mappings)
    assert calls == []


@pytest.mark.asyncio
async def test_map_row_async_rejection_is_wrapped():
    async def reject(row):
        raise KeyError("missing")

    with pytest.raises(FieldMappingError) as exc_info:
        await map_row({"id": 1}, [FieldMapping(field_name="x", compute=reject)], row_index=3)
    assert exc_info.value.row_index == 3


@pytest.mark.asyncio
async def test_resolve_plain_and_awaitable_values():
    async def value():
        return 5

    assert await resolve(5) == 5
    assert await resolve(value()) == 5
