"""Record store: SQLite-backed document collections with live subscriptions."""

from __future__ import annotations

import asyncio
import json
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Literal, Sequence

import aiosqlite
import structlog

logger = structlog.get_logger(__name__)

Direction = Literal["asc", "desc"]
SnapshotCallback = Callable[[list[dict[str, Any]]], object]


class RecordStoreError(RuntimeError):
    """Raised when the store cannot complete a read or write."""


class DuplicateRecordError(RecordStoreError):
    """Raised when an insert collides with an existing dedup key."""


_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL DEFAULT '{}',
    dedup_key TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(collection, id),
    UNIQUE(collection, dedup_key)
);
"""

_CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_documents_collection_created ON documents (collection, created_at DESC, seq DESC);",
]

# Fields stored as columns rather than inside the JSON body
_COLUMN_FIELDS = {"id": "id", "createdAt": "created_at", "updatedAt": "updated_at"}


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # Fixed width so lexical order matches time order
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _field_expr(field: str) -> tuple[str, list[Any]]:
    column = _COLUMN_FIELDS.get(field)
    if column:
        return column, []
    return "json_extract(data, ?)", [f"$.{field}"]


def _row_to_document(row: aiosqlite.Row) -> dict[str, Any]:
    document: dict[str, Any] = json.loads(row["data"])
    document["id"] = row["id"]
    document["createdAt"] = row["created_at"]
    document["updatedAt"] = row["updated_at"]
    return document


@contextmanager
def _translate_errors(operation: str, collection: str) -> Iterator[None]:
    try:
        yield
    except aiosqlite.IntegrityError as exc:
        raise DuplicateRecordError(f"{operation} on {collection} violated a uniqueness constraint") from exc
    except aiosqlite.Error as exc:
        raise RecordStoreError(f"{operation} on {collection} failed: {exc}") from exc


@dataclass(eq=False)
class _Subscription:
    collection: str
    order_field: str
    direction: Direction
    limit: int
    callback: SnapshotCallback


class RecordStore:
    def __init__(
        self,
        db_path: str | Path = "~/.portfolio-events/records.db",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._db_path = Path(db_path).expanduser()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._conn: aiosqlite.Connection | None = None
        self._subscriptions: list[_Subscription] = []
        self._last_created: datetime | None = None

    async def init(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self._db_path))
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL;")
        await self._conn.execute(_CREATE_TABLE)
        for idx_sql in _CREATE_INDEXES:
            await self._conn.execute(idx_sql)
        await self._conn.commit()

    async def close(self) -> None:
        self._subscriptions.clear()
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _db(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("RecordStore not initialized. Call init() first.")
        return self._conn

    def _next_created_at(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    async def insert(self, collection: str, document: dict[str, Any], *, dedup_key: str | None = None) -> str:
        """Insert a document and return its store-assigned id."""
        doc_id = uuid.uuid4().hex
        now = _to_iso(self._next_created_at())
        body = {k: v for k, v in document.items() if k not in _COLUMN_FIELDS}
        with _translate_errors("insert", collection):
            try:
                await self._db().execute(
                    """
                    INSERT INTO documents (collection, id, data, dedup_key, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (collection, doc_id, json.dumps(body), dedup_key, now, now),
                )
                await self._db().commit()
            except aiosqlite.Error:
                await self._db().rollback()
                raise
        await self._publish(collection)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with _translate_errors("get", collection):
            cursor = await self._db().execute(
                "SELECT * FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            row = await cursor.fetchone()
        return _row_to_document(row) if row else None

    async def query_by_equality(
        self,
        collection: str,
        filters: Sequence[tuple[str, Any]] = (),
        *,
        since: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Documents whose fields equal every (field, value) pair; dotted fields reach nested keys."""
        conditions = ["collection = ?"]
        params: list[Any] = [collection]
        for field, value in filters:
            expr, expr_params = _field_expr(field)
            params.extend(expr_params)
            if value is None:
                conditions.append(f"{expr} IS NULL")
            else:
                conditions.append(f"{expr} = ?")
                params.append(value)
        if since is not None:
            conditions.append("created_at >= ?")
            params.append(_to_iso(since))

        with _translate_errors("query", collection):
            cursor = await self._db().execute(
                f"SELECT * FROM documents WHERE {' AND '.join(conditions)} ORDER BY created_at ASC, seq ASC",
                params,
            )
            rows = await cursor.fetchall()
        return [_row_to_document(r) for r in rows]

    async def query_ordered(
        self,
        collection: str,
        order_field: str = "createdAt",
        direction: Direction = "desc",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        if direction not in ("asc", "desc"):
            raise ValueError(f"Invalid direction: {direction}")
        expr, params = _field_expr(order_field)
        sql_dir = direction.upper()
        sql = f"SELECT * FROM documents WHERE collection = ? ORDER BY {expr} {sql_dir}, seq {sql_dir}"
        args: list[Any] = [collection, *params]
        if limit is not None:
            sql += " LIMIT ?"
            args.append(limit)
        with _translate_errors("query", collection):
            cursor = await self._db().execute(sql, args)
            rows = await cursor.fetchall()
        return [_row_to_document(r) for r in rows]

    async def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> bool:
        return await self.update_many(collection, [doc_id], partial) > 0

    async def update_many(self, collection: str, doc_ids: Sequence[str], partial: dict[str, Any]) -> int:
        """Merge `partial` into each document in a single transaction. Returns the number updated."""
        if not doc_ids:
            return 0
        body = {k: v for k, v in partial.items() if k not in _COLUMN_FIELDS}
        now = _to_iso(self._clock())
        with _translate_errors("update", collection):
            cursor = await self._db().executemany(
                "UPDATE documents SET data = json_patch(data, ?), updated_at = ? WHERE collection = ? AND id = ?",
                [(json.dumps(body), now, collection, doc_id) for doc_id in doc_ids],
            )
            await self._db().commit()
        updated = cursor.rowcount or 0
        if updated:
            await self._publish(collection)
        return updated

    async def delete(self, collection: str, doc_id: str) -> bool:
        with _translate_errors("delete", collection):
            cursor = await self._db().execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            await self._db().commit()
        deleted = (cursor.rowcount or 0) > 0
        if deleted:
            await self._publish(collection)
        return deleted

    async def subscribe(
        self,
        collection: str,
        order_field: str,
        direction: Direction,
        limit: int,
        callback: SnapshotCallback,
    ) -> Callable[[], None]:
        """Deliver the current top-`limit` documents now and after every change to the collection."""
        sub = _Subscription(collection, order_field, direction, limit, callback)
        self._subscriptions.append(sub)
        await self._deliver(sub)

        def unsubscribe() -> None:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

        return unsubscribe

    async def _publish(self, collection: str) -> None:
        for sub in [s for s in self._subscriptions if s.collection == collection]:
            await self._deliver(sub)

    async def _deliver(self, sub: _Subscription) -> None:
        try:
            snapshot = await self.query_ordered(sub.collection, sub.order_field, sub.direction, sub.limit)
            result = sub.callback(snapshot)
            if asyncio.iscoroutine(result):
                await result
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("subscription delivery failed", collection=sub.collection)
