"""Record Store — transactional contract of the embedded key-value bucket.

Invariants:
    - open() is idempotent: reopening keeps data and the sequence value
    - next_id() is strictly increasing and never reissues a deleted id
    - A write transaction that raises keeps nothing, including the id it took
    - Reads inside one transaction see a snapshot unaffected by later commits
    - delete() of an absent key is not an error
    - close() is safe to call twice; operations after close fail cleanly
"""

import asyncio
import threading
from contextlib import aclosing
from datetime import datetime, timezone

import pytest
from sqlalchemy import event, insert

from email_subscribe.core.errors import (
    CorruptRecordError, StorageUnavailableError, SubscriptionNotFoundError,
    WriteFailureError,
)
from email_subscribe.core.subscription import confirm_subscription, new_subscription
from email_subscribe.infrastructure.record_store import RecordStore
from email_subscribe.models import Record

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _sub(sub_id: int, email: str = "ada@newsletter.io"):
    return new_subscription(sub_id, "Ada", email, NOW)


# -- open / close -------------------------------------------------------------

async def test_open_creates_backing_file(store_path):
    store = await RecordStore.open(store_path)
    try:
        assert store_path.exists()
        assert await store.health_check() is True
    finally:
        await store.close()


async def test_reopen_keeps_records_and_sequence(store_path):
    first = await RecordStore.open(store_path)
    async with first.write() as txn:
        sub_id = await txn.next_sequence()
        await txn.put(sub_id, _sub(sub_id))
    await first.close()

    second = await RecordStore.open(store_path)
    try:
        assert await second.get(sub_id) == _sub(sub_id)
        assert await second.next_id() == sub_id + 1
    finally:
        await second.close()


async def test_open_unreachable_path_raises_storage_unavailable(tmp_path):
    with pytest.raises(StorageUnavailableError) as exc_info:
        await RecordStore.open(tmp_path / "missing-dir" / "store.db")
    assert exc_info.value.operation == "open"


async def test_open_rejects_file_that_is_not_a_database(tmp_path):
    path = tmp_path / "garbage.db"
    path.write_bytes(b"this is definitely not a sqlite database" * 100)
    with pytest.raises(StorageUnavailableError):
        await RecordStore.open(path)


def _connection_threads() -> set[threading.Thread]:
    return {
        t for t in threading.enumerate() if "_connection_worker_thread" in t.name
    }


@pytest.mark.parametrize("case", ["missing_dir", "not_a_database"])
def test_failed_open_leaves_no_connection_threads(tmp_path, case):
    if case == "missing_dir":
        path = tmp_path / "missing-dir" / "store.db"
    else:
        path = tmp_path / "garbage.db"
        path.write_bytes(b"this is definitely not a sqlite database" * 100)
    before = _connection_threads()

    with pytest.raises(StorageUnavailableError):
        asyncio.run(RecordStore.open(path))

    leftover = _connection_threads() - before
    for thread in leftover:
        thread.join(timeout=2)
    assert not [t for t in leftover if t.is_alive()]


async def test_close_twice_is_noop(store_path):
    store = await RecordStore.open(store_path)
    await store.close()
    await store.close()
    assert store.closed


async def test_operations_after_close_fail(store_path):
    store = await RecordStore.open(store_path)
    await store.close()
    with pytest.raises(StorageUnavailableError):
        await store.get(1)
    with pytest.raises(StorageUnavailableError):
        await store.next_id()
    assert await store.health_check() is False


async def test_close_waits_for_inflight_write(store_path):
    store = await RecordStore.open(store_path)
    entered = asyncio.Event()

    async def slow_write():
        async with store.write() as txn:
            entered.set()
            sub_id = await txn.next_sequence()
            await asyncio.sleep(0.05)
            await txn.put(sub_id, _sub(sub_id))

    writer = asyncio.create_task(slow_write())
    await entered.wait()
    await store.close()
    await writer

    reopened = await RecordStore.open(store_path)
    try:
        assert (await reopened.get(1)).id == 1
    finally:
        await reopened.close()


# -- sequence -----------------------------------------------------------------

async def test_next_id_strictly_increasing(store):
    ids = [await store.next_id() for _ in range(5)]
    assert ids == [1, 2, 3, 4, 5]


async def test_failed_transaction_consumes_no_id(store):
    with pytest.raises(RuntimeError):
        async with store.write() as txn:
            await txn.next_sequence()
            raise RuntimeError("abort")
    assert await store.next_id() == 1


async def test_deleted_id_is_never_reissued(store):
    async with store.write() as txn:
        sub_id = await txn.next_sequence()
        await txn.put(sub_id, _sub(sub_id))
    await store.delete(sub_id)
    assert await store.next_id() == sub_id + 1


async def test_concurrent_next_id_never_duplicates(store):
    ids = await asyncio.gather(*(store.next_id() for _ in range(50)))
    assert sorted(ids) == list(range(1, 51))


# -- get / put / delete -------------------------------------------------------

async def test_put_then_get(store):
    await store.put(1, _sub(1))
    assert await store.get(1) == _sub(1)


async def test_put_overwrites(store):
    await store.put(1, _sub(1))
    await store.put(1, confirm_subscription(_sub(1)))
    assert (await store.get(1)).validated is True


async def test_put_with_mismatched_id_fails(store):
    with pytest.raises(WriteFailureError):
        await store.put(2, _sub(1))


async def test_get_missing_raises_not_found(store):
    with pytest.raises(SubscriptionNotFoundError):
        await store.get(99)


async def test_key_beyond_integer_range_maps_to_storage_errors(store):
    with pytest.raises(StorageUnavailableError):
        async with store.read() as txn:
            await txn.get(2**64)
    with pytest.raises(WriteFailureError):
        await store.delete(2**64)


async def test_delete_missing_is_not_an_error(store):
    await store.delete(99)


async def test_delete_removes_record(store):
    await store.put(1, _sub(1))
    await store.delete(1)
    with pytest.raises(SubscriptionNotFoundError):
        await store.get(1)


async def test_transaction_delete_reports_presence(store):
    await store.put(1, _sub(1))
    async with store.write() as txn:
        assert await txn.delete(1) is True
        assert await txn.delete(1) is False


# -- scan ---------------------------------------------------------------------

async def test_scan_all_ascending(store):
    for sub_id in (3, 1, 2):
        await store.put(sub_id, _sub(sub_id, f"user{sub_id}@newsletter.io"))
    items = [item async for item in store.scan_all()]
    assert [key for key, _ in items] == [1, 2, 3]
    assert [s.email for _, s in items] == [
        "user1@newsletter.io", "user2@newsletter.io", "user3@newsletter.io",
    ]


async def test_scan_all_is_restartable(store):
    await store.put(1, _sub(1))
    first = [item async for item in store.scan_all()]
    second = [item async for item in store.scan_all()]
    assert first == second


async def test_scan_all_stopped_early_releases_connection(store):
    for sub_id in (1, 2, 3):
        await store.put(sub_id, _sub(sub_id))

    released = []
    event.listen(
        store._engine.sync_engine, "checkin", lambda *args: released.append(True),
    )

    async with aclosing(store.scan_all()) as records:
        async for key, _ in records:
            assert key == 1
            break

    assert released


async def test_scan_empty_bucket(store):
    assert [item async for item in store.scan_all()] == []


async def test_read_snapshot_ignores_concurrent_commit(store):
    await store.put(1, _sub(1))
    async with store.read() as txn:
        before = [key async for key, _ in txn.scan()]
        await store.put(2, _sub(2))
        during = [key async for key, _ in txn.scan()]
    after = [key async for key, _ in store.scan_all()]

    assert before == during == [1]
    assert after == [1, 2]


async def test_corrupt_value_raises_corrupt_record(store):
    async with store.write() as txn:
        await txn._conn.execute(
            insert(Record).values(bucket=store.bucket, key=5, value="{broken"),
        )
    with pytest.raises(CorruptRecordError):
        await store.get(5)


# -- buckets ------------------------------------------------------------------

async def test_buckets_are_isolated(store_path):
    emails = await RecordStore.open(store_path, bucket="emails")
    other = await RecordStore.open(store_path, bucket="archive")
    try:
        await emails.put(1, _sub(1))
        assert [item async for item in other.scan_all()] == []
        assert await other.next_id() == 1
    finally:
        await emails.close()
        await other.close()


async def test_reset_bucket_wipes_records_and_sequence(store):
    for _ in range(3):
        async with store.write() as txn:
            sub_id = await txn.next_sequence()
            await txn.put(sub_id, _sub(sub_id))

    assert await store.reset_bucket() == 3
    assert [item async for item in store.scan_all()] == []
    assert await store.next_id() == 1
