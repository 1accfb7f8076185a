"""Record Store — embedded transactional key-value bucket for subscriptions.

Invariants:
    - Exactly one write transaction in flight at a time (asyncio.Lock + BEGIN IMMEDIATE)
    - Read transactions see a consistent snapshot and never wait for writers (WAL)
    - Every write transaction commits on normal exit and rolls back on any exception,
      so an id taken with next_sequence() is only kept if the record is kept too
    - Driver exceptions never escape: reads map to StorageUnavailableError,
      writes to WriteFailureError; domain errors raised in a block pass through
    - close() releases the engine exactly once, after the in-flight write finishes
    - scan_all() holds its read connection until exhausted or aclose()d

Design Decisions:
    - SQLite via SQLAlchemy async + aiosqlite: single file, ACID, nothing to run
    - The driver's implicit BEGIN is disabled and emitted from a "begin" event so
      reads run inside a real transaction (snapshot) and writes take the lock up front
    - Store instance is constructed explicitly and handed to the service (no global)
"""

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy import delete, event, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from email_subscribe.core.domain_types import BucketName, DEFAULT_BUCKET, SubscriptionId
from email_subscribe.core.errors import (
    StorageError, StorageUnavailableError, SubscriptionNotFoundError, WriteFailureError,
)
from email_subscribe.core.record_codec import decode_record, encode_record
from email_subscribe.core.subscription import Subscription
from email_subscribe.db.base import Base
from email_subscribe.models import BucketSequence, Record

logger = logging.getLogger(__name__)

_DRIVER_ERRORS = (SQLAlchemyError, sqlite3.Error, OSError, OverflowError)


def _install_transaction_hooks(engine: AsyncEngine) -> None:
    """Put BEGIN under our control and enable WAL on every new connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=FULL")
        except Exception:
            # Not owned by the pool yet; nothing else closes it
            cursor.close()
            dbapi_connection.close()
            raise
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        mode = conn.get_execution_options().get("begin_mode", "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")


class ReadTransaction:
    """Snapshot view of one bucket. Valid only inside RecordStore.read()/write()."""

    def __init__(self, conn: AsyncConnection, bucket: str):
        self._conn = conn
        self.bucket = bucket

    async def get(self, key: int) -> Subscription | None:
        result = await self._conn.execute(
            select(Record.value)
            .where(Record.bucket == self.bucket)
            .where(Record.key == key),
        )
        raw = result.scalar_one_or_none()
        if raw is None:
            return None
        return decode_record(key, raw)

    async def scan(self) -> AsyncIterator[tuple[SubscriptionId, Subscription]]:
        """Yield (id, record) pairs in ascending id order, streamed from a cursor."""
        result = await self._conn.stream(
            select(Record.key, Record.value)
            .where(Record.bucket == self.bucket)
            .order_by(Record.key),
        )
        try:
            async for key, raw in result:
                yield SubscriptionId(key), decode_record(key, raw)
        finally:
            await result.close()

    async def current_sequence(self) -> int:
        """Last id issued in this bucket (0 when none yet)."""
        result = await self._conn.execute(
            select(BucketSequence.value).where(BucketSequence.bucket == self.bucket),
        )
        value = result.scalar_one_or_none()
        if value is None:
            raise StorageUnavailableError(
                f"bucket '{self.bucket}' does not exist", "sequence",
            )
        return value


class WriteTransaction(ReadTransaction):
    """Mutating view of one bucket. Valid only inside RecordStore.write()."""

    async def next_sequence(self) -> SubscriptionId:
        await self._conn.execute(
            update(BucketSequence)
            .where(BucketSequence.bucket == self.bucket)
            .values(value=BucketSequence.value + 1),
        )
        return SubscriptionId(await self.current_sequence())

    async def put(self, key: int, subscription: Subscription) -> None:
        """Store the record under key, overwriting any previous value."""
        if subscription.id != key:
            raise WriteFailureError(
                f"record id {subscription.id} does not match key {key}", "put",
            )
        stmt = sqlite_insert(Record).values(
            bucket=self.bucket, key=key, value=encode_record(subscription),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Record.bucket, Record.key],
            set_={"value": stmt.excluded.value},
        )
        await self._conn.execute(stmt)

    async def delete(self, key: int) -> bool:
        """Remove key. Returns False when it was already absent."""
        result = await self._conn.execute(
            delete(Record)
            .where(Record.bucket == self.bucket)
            .where(Record.key == key),
        )
        return result.rowcount > 0

    async def clear(self) -> int:
        """Drop every record of the bucket and restart its sequence at zero."""
        result = await self._conn.execute(
            delete(Record).where(Record.bucket == self.bucket),
        )
        await self._conn.execute(
            update(BucketSequence)
            .where(BucketSequence.bucket == self.bucket)
            .values(value=0),
        )
        return result.rowcount


class RecordStore:
    """Durable subscription records keyed by sequence id, in one SQLite file."""

    def __init__(
        self,
        path: str | Path,
        bucket: str = DEFAULT_BUCKET,
        busy_timeout_seconds: float = 5.0,
    ):
        self.path = Path(path)
        self.bucket = BucketName(bucket)
        self._engine = create_async_engine(
            f"sqlite+aiosqlite:///{self.path}",
            connect_args={"timeout": busy_timeout_seconds},
        )
        _install_transaction_hooks(self._engine)
        self._write_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    async def open(
        cls,
        path: str | Path,
        bucket: str = DEFAULT_BUCKET,
        busy_timeout_seconds: float = 5.0,
    ) -> "RecordStore":
        """Open or create the backing file and the bucket. Safe to repeat."""
        store = cls(path, bucket, busy_timeout_seconds)
        try:
            if not store.path.parent.is_dir():
                raise FileNotFoundError(f"no such directory: {store.path.parent}")
            async with store._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                await conn.execute(
                    sqlite_insert(BucketSequence)
                    .values(bucket=store.bucket, value=0)
                    .on_conflict_do_nothing(index_elements=[BucketSequence.bucket]),
                )
        except _DRIVER_ERRORS as e:
            await store._engine.dispose()
            store._closed = True
            logger.error(
                f"Cannot open record store at {store.path}: {e}",
                extra={"operation": "open"},
            )
            raise StorageUnavailableError(
                f"cannot open backing file '{store.path}'", "open",
            ) from e
        logger.info(
            f"Record store opened at {store.path} (bucket '{store.bucket}')",
            extra={"operation": "open"},
        )
        return store

    @property
    def closed(self) -> bool:
        return self._closed

    def _require_open(self, operation: str) -> AsyncEngine:
        if self._closed:
            raise StorageUnavailableError("store is closed", operation)
        return self._engine

    # ─── Transactions ───────────────────────────────────────────

    @asynccontextmanager
    async def read(self) -> AsyncIterator[ReadTransaction]:
        """Snapshot read transaction. Runs concurrently with other reads and the writer."""
        engine = self._require_open("read")
        try:
            async with engine.connect() as conn:
                async with conn.begin():
                    yield ReadTransaction(conn, self.bucket)
        except _DRIVER_ERRORS as e:
            logger.error(f"Store read failed: {e}", extra={"operation": "read"})
            raise StorageUnavailableError("read transaction failed", "read") from e

    @asynccontextmanager
    async def write(self) -> AsyncIterator[WriteTransaction]:
        """Serialized write transaction: commit on exit, rollback on exception."""
        async with self._write_lock:
            engine = self._require_open("write")
            try:
                async with engine.connect() as conn:
                    await conn.execution_options(begin_mode="IMMEDIATE")
                    async with conn.begin():
                        yield WriteTransaction(conn, self.bucket)
            except _DRIVER_ERRORS as e:
                logger.error(f"Store write failed: {e}", extra={"operation": "write"})
                raise WriteFailureError("transaction could not commit", "write") from e

    # ─── Single-operation helpers ───────────────────────────────

    async def next_id(self) -> SubscriptionId:
        """Issue an id in its own transaction. The id is consumed even if never used."""
        async with self.write() as txn:
            return await txn.next_sequence()

    async def put(self, key: int, subscription: Subscription) -> None:
        async with self.write() as txn:
            await txn.put(key, subscription)

    async def get(self, key: int) -> Subscription:
        async with self.read() as txn:
            subscription = await txn.get(key)
        if subscription is None:
            raise SubscriptionNotFoundError(key)
        return subscription

    async def delete(self, key: int) -> None:
        """Delete key; deleting an absent key is not an error."""
        async with self.write() as txn:
            await txn.delete(key)

    async def scan_all(self) -> AsyncIterator[tuple[SubscriptionId, Subscription]]:
        """Every (id, record) in ascending order, from one snapshot.

        The read connection stays checked out until the iterator is exhausted
        or closed. A caller that may stop early wraps it in
        contextlib.aclosing(), or uses read() and scan() so the block scopes it:

            async with aclosing(store.scan_all()) as records:
                async for key, subscription in records:
                    ...
        """
        async with self.read() as txn:
            async for item in txn.scan():
                yield item

    async def reset_bucket(self) -> int:
        """Wipe the bucket and its sequence. Returns the number of records removed."""
        async with self.write() as txn:
            removed = await txn.clear()
        logger.warning(
            f"Bucket '{self.bucket}' wiped ({removed} records)",
            extra={"operation": "reset"},
        )
        return removed

    async def health_check(self) -> bool:
        """Check the backing file is readable (for readiness probes)."""
        try:
            async with self.read() as txn:
                await txn.current_sequence()
            return True
        except StorageError as e:
            logger.error(f"Store health check failed: {e.message}")
            return False

    async def close(self) -> None:
        """Release the store. Waits for the in-flight write; repeated calls are no-ops."""
        if self._closed:
            return
        async with self._write_lock:
            if self._closed:
                return
            self._closed = True
            await self._engine.dispose()
        logger.info(f"Record store at {self.path} closed", extra={"operation": "close"})
