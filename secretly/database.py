"""SQLite storage for environments and their key/value pairs."""

from __future__ import annotations

import itertools
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

_MIGRATIONS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS environment (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS environment_values (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        environment_id INTEGER NOT NULL,
        "key" TEXT NOT NULL,
        value TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
)

_ENVIRONMENT_COLUMNS = "id, name, created_at, updated_at"
_VALUE_COLUMNS = 'id, environment_id, "key", value, created_at, updated_at'

_savepoint_ids = itertools.count(1)


class NotFoundError(LookupError):
    """Raised when a query that expects one row finds none."""


def _timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        moment = raw
    else:
        moment = datetime.fromisoformat(str(raw).replace("T", " ").rstrip("Z"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class Environment:
    """A named set of values."""

    id: int
    name: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def _from_row(cls, row: Sequence[Any]) -> Environment:
        return cls(
            id=row[0],
            name=row[1],
            created_at=_timestamp(row[2]),
            updated_at=_timestamp(row[3]),
        )


@dataclass(frozen=True)
class EnvironmentValue:
    """One key/value pair that belongs to an environment."""

    id: int
    environment_id: int
    key: str
    value: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def _from_row(cls, row: Sequence[Any]) -> EnvironmentValue:
        return cls(
            id=row[0],
            environment_id=row[1],
            key=row[2],
            value=row[3],
            created_at=_timestamp(row[4]),
            updated_at=_timestamp(row[5]),
        )


def connect(path: str) -> sqlite3.Connection:
    """Open the database at *path* in autocommit mode."""
    return sqlite3.connect(path, isolation_level=None, check_same_thread=False)


@contextmanager
def _savepoint(connection: sqlite3.Connection) -> Iterator[None]:
    name = f"secretly_sp_{next(_savepoint_ids)}"
    connection.execute(f"SAVEPOINT {name}")
    try:
        yield
    except BaseException:
        connection.execute(f"ROLLBACK TO {name}")
        connection.execute(f"RELEASE {name}")
        raise
    connection.execute(f"RELEASE {name}")


def migrate(connection: sqlite3.Connection) -> int:
    """Bring the schema up to date and return its version."""
    (version,) = connection.execute("PRAGMA user_version").fetchone()
    pending = _MIGRATIONS[version:]
    if pending:
        with _savepoint(connection):
            for statement in pending:
                connection.execute(statement)
            connection.execute(f"PRAGMA user_version = {len(_MIGRATIONS)}")
    return len(_MIGRATIONS) if pending else version


class Queries:
    """The queries the application runs against the database."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Run the enclosed queries atomically; roll back on any exception."""
        with _savepoint(self._connection):
            yield self

    def _one(self, sql: str, params: Sequence[Any], what: str) -> Sequence[Any]:
        row = self._connection.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError(what)
        return row

    def _environment(self, sql: str, params: Sequence[Any], what: str) -> Environment:
        return Environment._from_row(self._one(sql, params, what))

    def _value(self, sql: str, params: Sequence[Any], what: str) -> EnvironmentValue:
        return EnvironmentValue._from_row(self._one(sql, params, what))

    def _values(self, sql: str, params: Sequence[Any] = ()) -> list[EnvironmentValue]:
        return [
            EnvironmentValue._from_row(row)
            for row in self._connection.execute(sql, params)
        ]

    def create_environment(self, name: str) -> Environment:
        cursor = self._connection.execute(
            "INSERT INTO environment (name) VALUES (?)", (name,)
        )
        return self.get_environment(cursor.lastrowid)

    def create_value(self, environment_id: int, key: str, value: str) -> EnvironmentValue:
        cursor = self._connection.execute(
            'INSERT INTO environment_values (environment_id, "key", value) VALUES (?, ?, ?)',
            (environment_id, key, value),
        )
        return self.get_value(cursor.lastrowid)

    def delete_environment(self, environment_id: int) -> None:
        self._connection.execute("DELETE FROM environment WHERE id = ?", (environment_id,))

    def delete_value(self, value_id: int) -> None:
        self._connection.execute("DELETE FROM environment_values WHERE id = ?", (value_id,))

    def get_all_environments(self) -> list[Environment]:
        return [
            Environment._from_row(row)
            for row in self._connection.execute(
                f"SELECT {_ENVIRONMENT_COLUMNS} FROM environment"
            )
        ]

    def get_all_values(self) -> list[EnvironmentValue]:
        return self._values(f"SELECT {_VALUE_COLUMNS} FROM environment_values")

    def get_environment(self, environment_id: int) -> Environment:
        return self._environment(
            f"SELECT {_ENVIRONMENT_COLUMNS} FROM environment WHERE id = ? LIMIT 1",
            (environment_id,),
            f"environment {environment_id} not found",
        )

    def get_environment_by_name(self, name: str) -> Environment:
        return self._environment(
            f"SELECT {_ENVIRONMENT_COLUMNS} FROM environment WHERE name = ? LIMIT 1",
            (name,),
            f"environment {name!r} not found",
        )

    def get_value(self, value_id: int) -> EnvironmentValue:
        return self._value(
            f"SELECT {_VALUE_COLUMNS} FROM environment_values WHERE id = ? LIMIT 1",
            (value_id,),
            f"value {value_id} not found",
        )

    def get_value_by_key(self, environment_id: int, key: str) -> EnvironmentValue:
        return self._value(
            f"SELECT {_VALUE_COLUMNS} FROM environment_values "
            'WHERE environment_id = ? AND "key" = ? LIMIT 1',
            (environment_id, key),
            f"key {key!r} not found in environment {environment_id}",
        )

    def get_values_by_environment_id(self, environment_id: int) -> list[EnvironmentValue]:
        return self._values(
            f"SELECT {_VALUE_COLUMNS} FROM environment_values WHERE environment_id = ?",
            (environment_id,),
        )

    def update_value(self, value_id: int, value: str) -> EnvironmentValue:
        cursor = self._connection.execute(
            "UPDATE environment_values SET value = ? WHERE id = ?", (value, value_id)
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"value {value_id} not found")
        return self.get_value(value_id)