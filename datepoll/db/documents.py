"""PostgreSQL-backed document store for events and participations."""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

import psycopg
from psycopg import errors as pg_errors
from psycopg.types.json import Json

from datepoll.db.core import _get_connection
from datepoll.store import (
    EVENTS,
    PARTICIPATIONS,
    StoreError,
    Where,
    check_where,
    check_writable,
    parse_sort,
)

logger = logging.getLogger("datepoll.db.documents")

COLUMNS: dict[str, tuple[str, ...]] = {
    EVENTS: (
        "id", "name", "description", "slug", "date_options", "creator",
        "closed_at", "created_at", "updated_at",
    ),
    PARTICIPATIONS: (
        "id", "event", "participant_name", "selected_dates", "comment",
        "created_at", "updated_at",
    ),
}
JSON_COLUMNS = frozenset({"date_options", "selected_dates"})
TIMESTAMP_COLUMNS = frozenset({"closed_at", "created_at", "updated_at"})


def _to_db(column: str, value: Any) -> Any:
    if column in JSON_COLUMNS and value is not None:
        return Json(value)
    if column in TIMESTAMP_COLUMNS and isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


def _row_to_doc(collection: str, row: tuple) -> dict[str, Any]:
    doc = {}
    for column, value in zip(COLUMNS[collection], row):
        if isinstance(value, datetime):
            value = value.astimezone(UTC).isoformat()
        doc[column] = value
    return doc


def _where_sql(where: Where | None) -> tuple[str, list[Any]]:
    if where is None or not where.clauses:
        return "", []
    # Field names were checked against INDEXED_FIELDS.
    parts = [f"{field} = %s" for field in where.clauses]
    return " WHERE " + " AND ".join(parts), list(where.clauses.values())


class PostgresDocumentStore:
    async def find(
        self,
        collection: str,
        where: Where | None = None,
        *,
        limit: int | None = None,
        sort: str | None = None,
    ) -> list[dict[str, Any]]:
        check_where(collection, where)
        order = parse_sort(sort) or ("created_at", False)
        clause, params = _where_sql(where)
        direction = "DESC" if order[1] else "ASC"
        sql = (
            f"SELECT {', '.join(COLUMNS[collection])} FROM {collection}{clause} "
            f"ORDER BY {order[0]} {direction}, id {direction}"
        )
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)
        try:
            async with _get_connection() as conn:
                rows = await conn.execute(sql, tuple(params))
                return [_row_to_doc(collection, row) async for row in rows]
        except psycopg.Error as e:
            logger.exception("find %s failed", collection)
            raise StoreError(f"Failed to query {collection}") from e

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        docs = await self.find(collection, Where(id=doc_id), limit=1)
        return docs[0] if docs else None

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        check_writable(collection, data)
        now = datetime.now(UTC)
        values = {"id": str(uuid.uuid4()), **data, "created_at": now, "updated_at": now}
        columns = [c for c in COLUMNS[collection] if c in values]
        sql = (
            f"INSERT INTO {collection} ({', '.join(columns)}) "
            f"VALUES ({', '.join(['%s'] * len(columns))}) "
            f"RETURNING {', '.join(COLUMNS[collection])}"
        )
        params = tuple(_to_db(c, values[c]) for c in columns)
        try:
            async with _get_connection() as conn:
                row = await (await conn.execute(sql, params)).fetchone()
        except pg_errors.UniqueViolation as e:
            raise StoreError(f"Duplicate {collection} document", status_code=409) from e
        except pg_errors.ForeignKeyViolation as e:
            raise StoreError(f"Referenced document does not exist for {collection}", status_code=404) from e
        except psycopg.Error as e:
            logger.exception("create %s failed", collection)
            raise StoreError(f"Failed to create {collection} document") from e
        return _row_to_doc(collection, row)

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
        check_writable(collection, data)
        if not data:
            existing = await self.get(collection, doc_id)
            if existing is None:
                raise StoreError(f"{collection} document {doc_id} not found", status_code=404)
            return existing
        values = {**data, "updated_at": datetime.now(UTC)}
        assignments = ", ".join(f"{c} = %s" for c in values)
        sql = (
            f"UPDATE {collection} SET {assignments} WHERE id = %s "
            f"RETURNING {', '.join(COLUMNS[collection])}"
        )
        params = (*(_to_db(c, v) for c, v in values.items()), doc_id)
        try:
            async with _get_connection() as conn:
                row = await (await conn.execute(sql, params)).fetchone()
        except pg_errors.UniqueViolation as e:
            raise StoreError(f"Duplicate {collection} document", status_code=409) from e
        except psycopg.Error as e:
            logger.exception("update %s %s failed", collection, doc_id)
            raise StoreError(f"Failed to update {collection} document") from e
        if row is None:
            raise StoreError(f"{collection} document {doc_id} not found", status_code=404)
        return _row_to_doc(collection, row)

