"""
Record store for the ``turfs`` and ``bookings`` collections.

The store is the only shared mutable resource in the system.  Services
receive a ``RecordStore`` instance at construction time instead of
reaching for a global connection, which lets tests substitute the
``InMemoryRecordStore`` for the ``SqliteRecordStore`` used in
production.

Every record read from either implementation is validated exactly once
by the pydantic models in ``schemas``.  A point read of a record that
fails validation raises ``ValidationError``; collection queries skip
such records and log a warning so that one malformed listing cannot
hide all the others.

Updates are single-document and atomic.  There is no locking between a
caller's read and its write: concurrent updates to the same record are
last-write-wins unless the caller passes ``expected_version``, in which
case the write only lands if the stored version is unchanged.
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from .db import get_connection, get_database_path, init_db
from .exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from ..schemas.booking import Booking
from ..schemas.turf import Turf


logger = logging.getLogger(__name__)

TURF_FIELDS = frozenset(Turf.model_fields)
BOOKING_FIELDS = frozenset(Booking.model_fields)
# Fields the store manages itself; callers may never write them.
_TURF_READONLY = frozenset({"id", "owner_id", "version", "created_at"})
_BOOKING_READONLY = frozenset({"id", "turf_id", "user_id", "created_at"})
_JSON_FIELDS = frozenset({"images", "amenities"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


def parse_turf(raw: Dict[str, Any]) -> Turf:
    """Validate a raw turf document, raising ``ValidationError`` on failure."""
    try:
        return Turf.model_validate(raw)
    except PydanticValidationError as exc:
        turf_id = raw.get("id")
        raise ValidationError(
            f"Turf {turf_id} is malformed ({_first_error(exc)})", record_id=turf_id
        ) from exc


def parse_booking(raw: Dict[str, Any]) -> Booking:
    """Validate a raw booking document, raising ``ValidationError`` on failure."""
    try:
        return Booking.model_validate(raw)
    except PydanticValidationError as exc:
        booking_id = raw.get("id")
        raise ValidationError(
            f"Booking {booking_id} is malformed ({_first_error(exc)})", record_id=booking_id
        ) from exc


def _check_fields(fields: Dict[str, Any], allowed: frozenset, readonly: frozenset, kind: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Unknown {kind} fields: {', '.join(sorted(unknown))}")
    blocked = set(fields) & readonly
    if blocked:
        raise ValidationError(f"{kind.capitalize()} fields cannot be changed: {', '.join(sorted(blocked))}")


class RecordStore(ABC):
    """Interface of the persistence layer used by the services."""

    # ------------------------------------------------------------------
    # Turfs
    # ------------------------------------------------------------------
    @abstractmethod
    async def get_turf(self, turf_id: str) -> Optional[Turf]:
        """Return the turf or ``None`` if it does not exist."""

    @abstractmethod
    async def create_turf(self, fields: Dict[str, Any]) -> Turf:
        """Insert a turf and return it with its store-assigned ``id``."""

    @abstractmethod
    async def update_turf(
        self,
        turf_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Turf:
        """Apply ``fields`` to one turf atomically and return the result.

        Raises ``NotFoundError`` if the turf is missing and
        ``ConflictError`` if ``expected_version`` is given and no longer
        matches the stored version.
        """

    @abstractmethod
    async def query_turfs(self, **equals: Any) -> List[Turf]:
        """Return turfs whose fields equal all of the given values."""

    async def list_turfs(self) -> List[Turf]:
        return await self.query_turfs()

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------
    @abstractmethod
    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        """Return the booking or ``None`` if it does not exist."""

    @abstractmethod
    async def create_booking(self, fields: Dict[str, Any]) -> Booking:
        """Insert a booking and return it with its store-assigned ``id``."""

    @abstractmethod
    async def update_booking(self, booking_id: str, fields: Dict[str, Any]) -> Booking:
        """Apply ``fields`` to one booking atomically and return the result."""

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------
    @abstractmethod
    async def append_audit_log(
        self,
        user_id: Optional[str],
        action: str,
        object_type: str,
        object_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Record one audit entry."""

    @abstractmethod
    async def list_audit_logs(
        self,
        user_id: Optional[str] = None,
        object_type: Optional[str] = None,
        object_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Return audit entries, newest first."""


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed store for tests and local runs.

    Documents are kept in their raw form, the way a document database
    would hold them, so a document may lack optional fields entirely.
    All work happens synchronously between awaits, which makes each
    update atomic with respect to other coroutines.
    """

    def __init__(self) -> None:
        self._turfs: Dict[str, Dict[str, Any]] = {}
        self._bookings: Dict[str, Dict[str, Any]] = {}
        self._audit_logs: List[Dict[str, Any]] = []

    def put_raw_turf(self, document: Dict[str, Any]) -> None:
        """Store a turf document exactly as given, bypassing validation."""
        self._turfs[document["id"]] = copy.deepcopy(document)

    def put_raw_booking(self, document: Dict[str, Any]) -> None:
        """Store a booking document exactly as given, bypassing validation."""
        self._bookings[document["id"]] = copy.deepcopy(document)

    async def get_turf(self, turf_id: str) -> Optional[Turf]:
        doc = self._turfs.get(turf_id)
        return parse_turf(doc) if doc is not None else None

    async def create_turf(self, fields: Dict[str, Any]) -> Turf:
        doc = copy.deepcopy(fields)
        doc.setdefault("id", uuid4().hex)
        doc.setdefault("created_at", _utcnow())
        doc.setdefault("is_verified", False)
        doc.setdefault("is_active", False)
        doc.setdefault("version", 0)
        turf = parse_turf(doc)
        if turf.id in self._turfs:
            raise ConflictError(f"Turf {turf.id} already exists", record_id=turf.id)
        self._turfs[turf.id] = doc
        return turf

    async def update_turf(
        self,
        turf_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Turf:
        _check_fields(fields, TURF_FIELDS, _TURF_READONLY, "turf")
        doc = self._turfs.get(turf_id)
        if doc is None:
            raise NotFoundError(f"Turf {turf_id} not found", record_id=turf_id)
        current_version = doc.get("version", 0)
        if expected_version is not None and current_version != expected_version:
            raise ConflictError(
                f"Turf {turf_id} was modified (version {current_version}, expected {expected_version})",
                record_id=turf_id,
            )
        merged = {**doc, **copy.deepcopy(fields), "version": current_version + 1}
        turf = parse_turf(merged)
        self._turfs[turf_id] = merged
        return turf

    async def query_turfs(self, **equals: Any) -> List[Turf]:
        unknown = set(equals) - TURF_FIELDS
        if unknown:
            raise ValidationError(f"Unknown turf fields: {', '.join(sorted(unknown))}")
        results: List[Turf] = []
        for doc in self._turfs.values():
            try:
                turf = parse_turf(doc)
            except ValidationError as exc:
                logger.warning("Skipping malformed turf: %s", exc)
                continue
            if all(getattr(turf, key) == value for key, value in equals.items()):
                results.append(turf)
        return results

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        doc = self._bookings.get(booking_id)
        return parse_booking(doc) if doc is not None else None

    async def create_booking(self, fields: Dict[str, Any]) -> Booking:
        doc = copy.deepcopy(fields)
        doc.setdefault("id", uuid4().hex)
        doc.setdefault("created_at", _utcnow())
        booking = parse_booking(doc)
        if booking.id in self._bookings:
            raise ConflictError(f"Booking {booking.id} already exists", record_id=booking.id)
        self._bookings[booking.id] = doc
        return booking

    async def update_booking(self, booking_id: str, fields: Dict[str, Any]) -> Booking:
        _check_fields(fields, BOOKING_FIELDS, _BOOKING_READONLY, "booking")
        doc = self._bookings.get(booking_id)
        if doc is None:
            raise NotFoundError(f"Booking {booking_id} not found", record_id=booking_id)
        merged = {**doc, **copy.deepcopy(fields)}
        booking = parse_booking(merged)
        self._bookings[booking_id] = merged
        return booking

    async def append_audit_log(
        self,
        user_id: Optional[str],
        action: str,
        object_type: str,
        object_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        self._audit_logs.append(
            {
                "id": len(self._audit_logs) + 1,
                "user_id": user_id,
                "action": action,
                "object_type": object_type,
                "object_id": object_id,
                "timestamp": _utcnow().strftime("%Y-%m-%d %H:%M:%S"),
                "details": copy.deepcopy(details) if details else None,
            }
        )

    async def list_audit_logs(
        self,
        user_id: Optional[str] = None,
        object_type: Optional[str] = None,
        object_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        filters = {"user_id": user_id, "object_type": object_type, "object_id": object_id, "action": action}
        rows = [
            dict(entry)
            for entry in reversed(self._audit_logs)
            if all(value is None or entry[key] == value for key, value in filters.items())
        ]
        return rows[offset:offset + limit]


def _encode(value: Any) -> Any:
    """Convert a Python value into something SQLite can store."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return value


def _decode_row(row: sqlite3.Row) -> Dict[str, Any]:
    data = dict(row)
    for key in _JSON_FIELDS & set(data):
        raw = data[key]
        if raw is None:
            continue
        try:
            data[key] = json.loads(raw)
        except json.JSONDecodeError:
            # Leave the raw string in place; validation reports it.
            pass
    return data


class SqliteRecordStore(RecordStore):
    """Record store backed by a SQLite database file.

    A new connection is opened for each operation and closed on exit,
    so the store holds no state between calls other than the database
    path.  ``sqlite3`` errors are re-raised as ``StoreError``.
    """

    def __init__(self, db_url: str) -> None:
        self.db_path = get_database_path(db_url)

    def initialise(self) -> None:
        """Create the schema and apply pending migrations."""
        try:
            init_db(self.db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not initialise database: {exc}") from exc

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor; commit on success, roll back on error, always close."""
        try:
            conn = get_connection(self.db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open database: {exc}") from exc
        try:
            yield conn.cursor()
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("Database operation failed: %s", exc)
            raise StoreError(f"Database operation failed: {exc}") from exc
        finally:
            conn.close()

    @staticmethod
    def _insert(cursor: sqlite3.Cursor, table: str, data: Dict[str, Any]) -> None:
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        cursor.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(_encode(value) for value in data.values()),
        )

    # ------------------------------------------------------------------
    # Turfs
    # ------------------------------------------------------------------
    async def get_turf(self, turf_id: str) -> Optional[Turf]:
        with self._cursor() as cursor:
            row = cursor.execute("SELECT * FROM turfs WHERE id = ?", (turf_id,)).fetchone()
        return parse_turf(_decode_row(row)) if row else None

    async def create_turf(self, fields: Dict[str, Any]) -> Turf:
        doc = dict(fields)
        doc.setdefault("id", uuid4().hex)
        doc.setdefault("created_at", _utcnow())
        turf = parse_turf(doc)
        try:
            with self._cursor() as cursor:
                self._insert(cursor, "turfs", turf.model_dump())
        except StoreError as exc:
            if isinstance(exc.__cause__, sqlite3.IntegrityError):
                raise ConflictError(f"Turf {turf.id} already exists", record_id=turf.id) from exc
            raise
        return turf

    async def update_turf(
        self,
        turf_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Turf:
        _check_fields(fields, TURF_FIELDS, _TURF_READONLY, "turf")
        with self._cursor() as cursor:
            row = cursor.execute("SELECT * FROM turfs WHERE id = ?", (turf_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Turf {turf_id} not found", record_id=turf_id)
            current = _decode_row(row)
            if expected_version is not None and current["version"] != expected_version:
                raise ConflictError(
                    f"Turf {turf_id} was modified (version {current['version']}, expected {expected_version})",
                    record_id=turf_id,
                )
            turf = parse_turf({**current, **fields, "version": current["version"] + 1})
            assignments = [f"{key} = ?" for key in fields] + ["version = version + 1"]
            params: List[Any] = [_encode(value) for value in fields.values()]
            query = f"UPDATE turfs SET {', '.join(assignments)} WHERE id = ?"
            params.append(turf_id)
            if expected_version is not None:
                query += " AND version = ?"
                params.append(expected_version)
            cursor.execute(query, tuple(params))
            if cursor.rowcount == 0:
                raise ConflictError(f"Turf {turf_id} was modified concurrently", record_id=turf_id)
        return turf

    async def query_turfs(self, **equals: Any) -> List[Turf]:
        unknown = set(equals) - TURF_FIELDS
        if unknown:
            raise ValidationError(f"Unknown turf fields: {', '.join(sorted(unknown))}")
        query = "SELECT * FROM turfs"
        if equals:
            query += " WHERE " + " AND ".join(f"{key} = ?" for key in equals)
        with self._cursor() as cursor:
            rows = cursor.execute(query, tuple(_encode(v) for v in equals.values())).fetchall()
        results: List[Turf] = []
        for row in rows:
            try:
                results.append(parse_turf(_decode_row(row)))
            except ValidationError as exc:
                logger.warning("Skipping malformed turf: %s", exc)
        return results

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------
    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._cursor() as cursor:
            row = cursor.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return parse_booking(_decode_row(row)) if row else None

    async def create_booking(self, fields: Dict[str, Any]) -> Booking:
        doc = dict(fields)
        doc.setdefault("id", uuid4().hex)
        doc.setdefault("created_at", _utcnow())
        booking = parse_booking(doc)
        try:
            with self._cursor() as cursor:
                self._insert(cursor, "bookings", booking.model_dump())
        except StoreError as exc:
            if isinstance(exc.__cause__, sqlite3.IntegrityError):
                raise ConflictError(f"Booking {booking.id} already exists", record_id=booking.id) from exc
            raise
        return booking

    async def update_booking(self, booking_id: str, fields: Dict[str, Any]) -> Booking:
        _check_fields(fields, BOOKING_FIELDS, _BOOKING_READONLY, "booking")
        with self._cursor() as cursor:
            row = cursor.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Booking {booking_id} not found", record_id=booking_id)
            booking = parse_booking({**_decode_row(row), **fields})
            assignments = ", ".join(f"{key} = ?" for key in fields)
            cursor.execute(
                f"UPDATE bookings SET {assignments} WHERE id = ?",
                tuple(_encode(value) for value in fields.values()) + (booking_id,),
            )
        return booking

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------
    async def append_audit_log(
        self,
        user_id: Optional[str],
        action: str,
        object_type: str,
        object_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO audit_logs (user_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, action, object_type, object_id, json.dumps(details) if details else None),
            )

    async def list_audit_logs(
        self,
        user_id: Optional[str] = None,
        object_type: Optional[str] = None,
        object_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        where_clauses: List[str] = []
        params: List[Any] = []
        for column, value in (
            ("user_id", user_id),
            ("object_type", object_type),
            ("object_id", object_id),
            ("action", action),
        ):
            if value is not None:
                where_clauses.append(f"{column} = ?")
                params.append(value)
        query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        with self._cursor() as cursor:
            rows = cursor.execute(query, tuple(params)).fetchall()
        logs = []
        for row in rows:
            entry = dict(row)
            if entry["details"]:
                try:
                    entry["details"] = json.loads(entry["details"])
                except json.JSONDecodeError:
                    entry["details"] = {"raw": entry["details"]}
            logs.append(entry)
        return logs


def build_store(database_url: str) -> RecordStore:
    """Create the store selected by ``DATABASE_URL``.

    ``memory`` selects the in-memory store; anything else is treated as
    a SQLite database path.
    """
    if database_url.strip().lower() == "memory":
        return InMemoryRecordStore()
    return SqliteRecordStore(database_url)
