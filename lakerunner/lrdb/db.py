"""Database access interfaces shared by the query classes."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, Sequence, runtime_checkable


class NoRowsError(LookupError):
    """A query expected to return a row returned none."""


@runtime_checkable
class BatchResults(Protocol):
    """Results of a sent batch, consumed one queued statement at a time."""

    def exec(self) -> Any: ...

    def close(self) -> None: ...


@runtime_checkable
class DBTX(Protocol):
    """Something that can run SQL: a pool, a connection or a transaction."""

    def exec(self, sql: str, *args: Any) -> Any: ...

    def query(self, sql: str, *args: Any) -> Iterable[Sequence[Any]]: ...

    def query_row(self, sql: str, *args: Any) -> Sequence[Any]:
        """Return one row; raise NoRowsError when there is none."""
        ...

    def send_batch(self, batch: Batch) -> BatchResults: ...


@runtime_checkable
class Transaction(DBTX, Protocol):
    """A database transaction."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@runtime_checkable
class Pool(DBTX, Protocol):
    """A connection pool able to start transactions."""

    def begin(self) -> Transaction: ...


@dataclass
class Batch:
    """Statements queued to be sent to the database together."""

    queries: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)

    def queue(self, sql: str, *args: Any) -> None:
        self.queries.append((sql, args))

    def __len__(self) -> int:
        return len(self.queries)

    def __iter__(self):
        return iter(self.queries)


class QueriesBase:
    """Base of the query classes: holds the executor the queries run on."""

    def __init__(self, db: DBTX) -> None:
        self.db = db

    def with_tx(self, tx: Transaction) -> QueriesBase:
        """Return a copy of these queries that runs on the given transaction."""
        clone = copy.copy(self)
        clone.db = tx
        return clone