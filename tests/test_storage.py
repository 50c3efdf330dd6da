from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Iterator

import pytest

from sjr.errors import StorageError, ValidationError
from sjr.models import Journey, Sample
from sjr.storage import JourneyStore, MemoryJourneyStore, SQLiteJourneyStore, build_store


def _journey(name: str, start_time: int, throughput: float | None = 3.0) -> Journey:
    journey = Journey.create(name, start_time=start_time)
    journey.append_sample(
        Sample.from_record(
            {
                "timestamp": start_time + 10,
                "latitude": 48.1,
                "longitude": 11.5,
                "accuracy": 12.0,
                "throughputMbps": throughput,
                "transport": "cellular",
            }
        )
    )
    return journey


@pytest.fixture(params=["sqlite", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[JourneyStore]:
    if request.param == "sqlite":
        backend: JourneyStore = SQLiteJourneyStore(tmp_path / "journeys.db")
    else:
        backend = MemoryJourneyStore()
    yield backend
    backend.close()


def test_put_then_get_returns_equal_journey(store: JourneyStore) -> None:
    async def scenario() -> None:
        journey = _journey("Morning", 1000, throughput=None)
        await store.put(journey)
        loaded = await store.get(journey.id)
        assert loaded == journey
        assert loaded is not journey
        assert loaded.samples[0].throughput_mbps is None

    asyncio.run(scenario())


def test_get_missing_returns_none(store: JourneyStore) -> None:
    assert asyncio.run(store.get("does-not-exist")) is None


def test_get_all_orders_by_start_time_descending(store: JourneyStore) -> None:
    async def scenario() -> list[str]:
        j1, j2, j3 = _journey("one", 1000), _journey("two", 2000), _journey("three", 3000)
        for journey in (j2, j1, j3):
            await store.put(journey)
        return [j.name for j in await store.get_all()]

    assert asyncio.run(scenario()) == ["three", "two", "one"]


def test_put_is_an_upsert(store: JourneyStore) -> None:
    async def scenario() -> Journey:
        journey = _journey("Upsert", 1000)
        await store.put(journey)
        journey.append_sample(journey.samples[0])
        journey.end(5000)
        await store.put(journey)
        assert len(await store.get_all()) == 1
        loaded = await store.get(journey.id)
        assert loaded is not None
        return loaded

    loaded = asyncio.run(scenario())
    assert len(loaded.samples) == 2
    assert loaded.end_time == 5000


def test_delete_is_idempotent(store: JourneyStore) -> None:
    async def scenario() -> None:
        keep, drop = _journey("keep", 1000), _journey("drop", 2000)
        await store.put(keep)
        await store.put(drop)
        await store.delete(drop.id)
        assert await store.get(drop.id) is None
        await store.delete(drop.id)
        await store.delete("never-existed")
        assert [j.id for j in await store.get_all()] == [keep.id]

    asyncio.run(scenario())


def test_clear_all_empties_store(store: JourneyStore) -> None:
    async def scenario() -> None:
        for start in (1000, 2000):
            await store.put(_journey(f"j{start}", start))
        await store.clear_all()
        assert await store.get_all() == []
        await store.clear_all()

    asyncio.run(scenario())


def test_stored_copy_is_independent_of_caller(store: JourneyStore) -> None:
    async def scenario() -> Journey | None:
        journey = _journey("Snapshot", 1000)
        await store.put(journey)
        journey.append_sample(journey.samples[0])
        return await store.get(journey.id)

    loaded = asyncio.run(scenario())
    assert loaded is not None
    assert len(loaded.samples) == 1


def test_sqlite_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "journeys.db"
    journey = _journey("Durable", 1000)

    first = SQLiteJourneyStore(path)
    asyncio.run(first.put(journey))
    first.close()

    second = SQLiteJourneyStore(path)
    try:
        assert asyncio.run(second.get(journey.id)) == journey
    finally:
        second.close()


def test_sqlite_rejects_corrupted_rows(tmp_path: Path) -> None:
    store = SQLiteJourneyStore(tmp_path / "journeys.db")
    record = _journey("Corrupt", 1000).to_record()
    record["samples"][0]["latitude"] = 123.0
    with store.conn:
        store.conn.execute(
            "INSERT INTO journeys (id, name, start_time, end_time, record_json) VALUES (?, ?, ?, ?, ?)",
            (record["id"], record["name"], record["startTime"], None, json.dumps(record)),
        )
    try:
        with pytest.raises(ValidationError) as excinfo:
            asyncio.run(store.get(record["id"]))
        assert excinfo.value.field == "samples.0.latitude"
    finally:
        store.close()


def test_sqlite_operations_after_close_raise_storage_error(tmp_path: Path) -> None:
    store = SQLiteJourneyStore(tmp_path / "journeys.db")
    store.close()
    with pytest.raises(StorageError):
        asyncio.run(store.put(_journey("late", 1000)))
    store.close()


def test_sqlite_open_failure_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(StorageError):
        SQLiteJourneyStore(blocker / "journeys.db")


def test_memory_quota_raises_storage_error() -> None:
    store = MemoryJourneyStore(max_journeys=1)

    async def scenario() -> None:
        first = _journey("first", 1000)
        await store.put(first)
        # updates to an already stored journey do not count against the quota
        await store.put(first)
        with pytest.raises(StorageError):
            await store.put(_journey("second", 2000))

    asyncio.run(scenario())
    assert len(store) == 1


def test_build_store_from_config(tmp_path: Path) -> None:
    sqlite_store = build_store({"type": "sqlite", "path": str(tmp_path / "cfg.db")})
    assert isinstance(sqlite_store, SQLiteJourneyStore)
    sqlite_store.close()

    memory_store = build_store({"type": "memory", "max_journeys": 3})
    assert isinstance(memory_store, MemoryJourneyStore)
    assert memory_store.max_journeys == 3

    with pytest.raises(ValueError):
        build_store({"type": "indexeddb"})
