"""SQLite database client wrapper with CRUD operations and transactional boundaries."""

import asyncio
import contextvars
import json
import logging
import re
import sqlite3
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Raised when a store operation fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Record not found"


class UniqueConstraintError(DatabaseError):
    """Raised when a write violates a uniqueness constraint."""


# Columns stored as JSON text that are decoded on read
_JSON_FIELDS = {"scheduled_days"}

# Columns that hold foreign keys to integer ids
_FK_FIELDS = {
    "id",
    "family_id",
    "member_id",
    "task_id",
    "source_id",
    "created_by",
    "default_assignee_id",
}

_PAGE_SIZE = 500


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _convert_record(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ids to strings and decode JSON columns."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key in _FK_FIELDS or key.endswith("_id")):
            converted[key] = str(value)
        elif key in _JSON_FIELDS and isinstance(value, str):
            try:
                converted[key] = json.loads(value)
            except json.JSONDecodeError:
                logger.warning("Undecodable JSON column", extra={"column": key})
                converted[key] = None
    return converted


def _to_db_value(value: Any) -> Any:  # noqa: ANN401
    """Convert a Python value into something SQLite stores natively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, set):
        return json.dumps(sorted(value))
    if isinstance(value, dict | list | tuple):
        return json.dumps(value)
    if isinstance(value, bool):
        return int(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return value.replace("%", "\\%").replace("_", "\\_")

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _parse_single_comparison(comparison: str) -> tuple[str, list[str | int | float | None]]:
    """Parse a single comparison expression into a SQL condition and parameters."""
    null_match = re.match(r"^(\w+)\s*(=|!=)\s*null$", comparison, re.IGNORECASE)
    if null_match:
        field = null_match.group(1)
        negate = null_match.group(2) == "!="
        return f"{field} IS {'NOT ' if negate else ''}NULL", []

    match = re.match(
        r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])([^'"]*)\3$""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    raw_value = match.group(4)

    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(raw_value, is_like=is_like)
    if is_like:
        return f"{field} LIKE ? ESCAPE '\\'", [f"%{value}%"]

    return f"{field} {sql_op} ?", [value]


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]  # Remove parentheses
    or_parts = [p.strip() for p in inner.split("||")]
    or_conditions = []
    or_params: list[str | int | float | None] = []

    for part in or_parts:
        cond, values = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.extend(values)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params: list[str | int | float | None] = []

    for raw_part in parts:
        part = raw_part.strip()

        # Handle parenthesized OR groups
        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
        else:
            cond, cond_params = _parse_single_comparison(part)
        conditions.append(cond)
        params.extend(cond_params)

    return " AND ".join(conditions), params


def parse_sort(sort: str) -> str:
    """Translate "-field"/"+field"/"field DESC" into a safe ORDER BY clause."""
    clauses = []
    for raw in sort.split(","):
        part = raw.strip()
        if not part:
            continue
        direction = "ASC"
        if part.startswith("-"):
            direction, part = "DESC", part[1:]
        elif part.startswith("+"):
            part = part[1:]
        match = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)(?:\s+(ASC|DESC))?$", part, re.IGNORECASE)
        if not match:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
            return "id ASC"
        if match.group(2):
            direction = match.group(2).upper()
        clauses.append(f"{match.group(1)} {direction}")
    return ", ".join(clauses) or "id ASC"


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_write_locks: dict[tuple[int, int, str], asyncio.Lock] = {}
_db_lock = asyncio.Lock()

# True while the current task runs inside transaction(); writes then defer their commit
_in_transaction: contextvars.ContextVar[bool] = contextvars.ContextVar("famscore_in_transaction", default=False)


def _connection_key(db_path: str | None = None) -> tuple[int, int, str]:
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_event_loop())
    return (thread_id, loop_id, str(get_db_path(db_path)))


def _get_write_lock(cache_key: tuple[int, int, str]) -> asyncio.Lock:
    lock = _write_locks.get(cache_key)
    if lock is None:
        lock = asyncio.Lock()
        _write_locks[cache_key] = lock
    return lock


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    loop = asyncio.get_event_loop()
    cache_key = _connection_key(db_path)
    path = get_db_path(db_path)

    # Check if we have a cached connection and verify the loop is still valid
    if cache_key in _db_connections:
        cached_conn = _db_connections[cache_key]
        if not loop.is_closed():
            return cached_conn
        # Loop is closed, remove stale connection
        async with _db_lock:
            _db_connections.pop(cache_key, None)
            _write_locks.pop(cache_key, None)

    # Create new connection with async lock to prevent races
    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": cache_key[0], "loop_id": cache_key[1]},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _connection_key(db_path)

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            if cache_key in _db_connections:
                conn = _db_connections[cache_key]
                await conn.close()
                del _db_connections[cache_key]
                _write_locks.pop(cache_key, None)
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": cache_key[0], "loop_id": cache_key[1], "db_path": cache_key[2]},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": cache_key[0], "loop_id": cache_key[1]},
        )


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    schema = __import__("src.core.schema", fromlist=["init_db"])
    await schema.init_db(db_path=db_path)


@asynccontextmanager
async def transaction(*, db_path: str | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Run a multi-step pipeline as one atomic unit.

    Writes issued by the current task inside the block share a single commit.
    Any exception rolls every write back. Transactions on the same connection
    are serialized; a nested call joins the outer transaction.

    Usage:
        async with db_client.transaction():
            await db_client.create_record(collection="task_assignments", data=...)
            await db_client.update_record(collection="tasks", record_id=task_id, data=...)
    """
    conn = await get_connection(db_path=db_path)
    if _in_transaction.get():
        yield conn
        return

    lock = _get_write_lock(_connection_key(db_path))
    async with lock:
        token = _in_transaction.set(True)
        try:
            yield conn
        except BaseException:
            await conn.rollback()
            logger.warning("Transaction rolled back", extra={"db_path": str(get_db_path(db_path))})
            raise
        else:
            await conn.commit()
        finally:
            _in_transaction.reset(token)


def _raise_database_error(e: Exception, *, collection: str, action: str) -> NoReturn:
    """Translate a driver error into the store's error hierarchy."""
    if isinstance(e, sqlite3.IntegrityError) and "UNIQUE" in str(e).upper():
        msg = f"Unique constraint violated in {collection}: {e}"
        raise UniqueConstraintError(msg) from e
    if isinstance(e, sqlite3.OperationalError) and "no such table" in str(e):
        msg = f"Table '{collection}' does not exist. Call init_db() first."
        logger.error("Table not found", extra={"collection": collection})
        raise DatabaseError(msg) from e
    msg = f"Failed to {action} record in {collection}: {e}"
    raise DatabaseError(msg) from e


async def _execute_write(query: str, values: list[Any] | tuple[Any, ...]) -> sqlite3.Cursor:
    """Execute a write, committing immediately unless inside transaction()."""
    conn = await get_connection()
    if _in_transaction.get():
        return await conn.execute(query, values)

    async with _get_write_lock(_connection_key()):
        try:
            cursor = await conn.execute(query, values)
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise
        return cursor


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    try:
        _validate_collection_name(collection)

        columns = list(data.keys())
        placeholders = ", ".join("?" for _ in columns)
        columns_str = ", ".join(columns)
        values = [_to_db_value(data[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders})"  # noqa: S608 - collection is validated
        cursor = await _execute_write(query, values)

        record_id = cursor.lastrowid
        result = await get_record(collection=collection, record_id=str(record_id))

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except (DatabaseError, RecordNotFoundError, ValueError):
        raise
    except Exception as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        _raise_database_error(e, collection=collection, action="create")


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        try:
            numeric_id = int(record_id)
        except (TypeError, ValueError):
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg) from None

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (numeric_id,))
        row = await cursor.fetchone()

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        columns = [description[0] for description in cursor.description]
        record = dict(zip(columns, row, strict=True))

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return _convert_record(record)
    except (RecordNotFoundError, ValueError):
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        _raise_database_error(e, collection=collection, action="get")


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)

        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [_to_db_value(val) for val in data.values()]
        values.append(int(record_id))

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await _execute_write(query, values)

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)
    except (DatabaseError, RecordNotFoundError, ValueError):
        raise
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        _raise_database_error(e, collection=collection, action="update")


async def upsert_record(*, collection: str, data: dict[str, Any], conflict_field: str) -> dict[str, Any]:
    """Insert a record, or update the existing one that shares conflict_field."""
    if conflict_field not in data:
        msg = f"Upsert payload must include conflict field {conflict_field}"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        _validate_collection_name(conflict_field)

        columns = list(data.keys())
        placeholders = ", ".join("?" for _ in columns)
        columns_str = ", ".join(columns)
        updates = ", ".join(f"{key} = excluded.{key}" for key in columns if key != conflict_field)
        values = [_to_db_value(data[key]) for key in columns]

        query = (
            f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders}) "  # noqa: S608 - collection is validated
            f"ON CONFLICT({conflict_field}) DO UPDATE SET {updates}"
        )
        await _execute_write(query, values)

        record = await get_first_record(
            collection=collection,
            filter_query=f'{conflict_field} = "{sanitize_param(data[conflict_field])}"',
        )
        if record is None:
            msg = f"Upserted record vanished from {collection}"
            raise DatabaseError(msg)

        logger.info("Upserted record", extra={"collection": collection, conflict_field: data[conflict_field]})
        return record
    except (DatabaseError, ValueError):
        raise
    except Exception as e:
        logger.error("upsert_record_failed", extra={"collection": collection, "error": str(e)})
        _raise_database_error(e, collection=collection, action="upsert")


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await _execute_write(query, (int(record_id),))

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    except (RecordNotFoundError, ValueError):
        raise
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        _raise_database_error(e, collection=collection, action="delete")


async def delete_records(*, collection: str, filter_query: str) -> int:
    """Delete every record matching the filter and return how many were removed."""
    where_clause, params = parse_filter(filter_query)
    if not where_clause:
        msg = "Refusing to delete without a filter"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)

        query = f"DELETE FROM {collection} WHERE {where_clause}"  # noqa: S608 - collection is validated
        cursor = await _execute_write(query, params)

        logger.info("Deleted records", extra={"collection": collection, "count": cursor.rowcount})
        return cursor.rowcount
    except Exception as e:
        logger.error("delete_records_failed", extra={"collection": collection, "error": str(e)})
        _raise_database_error(e, collection=collection, action="delete")


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause = ""
        params: list[Any] = []
        if filter_query:
            where_clause, params = parse_filter(filter_query)
            where_clause = f"WHERE {where_clause}"

        safe_sort = parse_sort(sort) if sort else "id ASC"
        offset = (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {safe_sort} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        columns = [description[0] for description in cursor.description]
        records = [_convert_record(dict(zip(columns, row, strict=True))) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except ValueError:
        raise
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        _raise_database_error(e, collection=collection, action="list")


async def list_all_records(*, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
    """List every record matching the filter, paging through the table."""
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=_PAGE_SIZE,
            filter_query=filter_query,
            sort=sort,
        )
        records.extend(batch)
        if len(batch) < _PAGE_SIZE:
            return records
        page += 1


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None
