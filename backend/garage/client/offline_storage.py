# Overview: Durable FIFO of write operations captured while offline.

"""
Offline Queue

Operations live in a local SQLite file so they survive a restart. The
`seq` column is an AUTOINCREMENT key: it only ever grows, and FIFO order is
`ORDER BY seq`. A failed replay stays in place with `retry_count` bumped and
`last_error` filled in.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.pool import StaticPool

from ..time_utils import to_utc_z, utcnow

metadata = MetaData()

queued_operations = Table(
    "queued_operations",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(36), nullable=False, unique=True),
    Column("timestamp", String(32), nullable=False),
    Column("method", String(10), nullable=False),
    Column("url", String(500), nullable=False),
    Column("data", JSON, nullable=True),
    Column("retry_count", Integer, nullable=False, default=0),
    Column("last_error", Text, nullable=True),
    sqlite_autoincrement=True,
)


@dataclass
class QueuedOperation:
    id: str
    timestamp: str
    method: str
    url: str
    data: Any = None
    retry_count: int = 0
    last_error: Optional[str] = None
    seq: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "method": self.method,
            "url": self.url,
            "data": self.data,
            "retry_count": self.retry_count,
            "last_error": self.last_error,
        }


def _row_to_operation(row) -> QueuedOperation:
    return QueuedOperation(
        id=row.id,
        timestamp=row.timestamp,
        method=row.method,
        url=row.url,
        data=row.data,
        retry_count=row.retry_count,
        last_error=row.last_error,
        seq=row.seq,
    )


class OfflineQueue:
    def __init__(self, path: str):
        if path == ":memory:":
            self._engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self._engine = create_engine(f"sqlite:///{path}")
        metadata.create_all(self._engine)

    def close(self) -> None:
        self._engine.dispose()

    def enqueue(self, method: str, url: str, data: Any = None) -> QueuedOperation:
        operation = QueuedOperation(
            id=str(uuid.uuid4()),
            timestamp=to_utc_z(utcnow()),
            method=method.upper(),
            url=url,
            data=data,
        )
        with self._engine.begin() as conn:
            result = conn.execute(
                queued_operations.insert().values(
                    id=operation.id,
                    timestamp=operation.timestamp,
                    method=operation.method,
                    url=operation.url,
                    data=operation.data,
                    retry_count=0,
                )
            )
            operation.seq = result.inserted_primary_key[0]
        return operation

    def head(self) -> Optional[QueuedOperation]:
        """Oldest queued operation, or None when the queue is empty."""
        stmt = select(queued_operations).order_by(queued_operations.c.seq.asc()).limit(1)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _row_to_operation(row) if row is not None else None

    def operations(self) -> list[QueuedOperation]:
        stmt = select(queued_operations).order_by(queued_operations.c.seq.asc())
        with self._engine.connect() as conn:
            return [_row_to_operation(row) for row in conn.execute(stmt)]

    def count(self) -> int:
        with self._engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(queued_operations)).scalar_one()

    def remove(self, operation_id: str) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(delete(queued_operations).where(queued_operations.c.id == operation_id))
        return result.rowcount > 0

    def mark_failed(self, operation_id: str, error: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(queued_operations)
                .where(queued_operations.c.id == operation_id)
                .values(retry_count=queued_operations.c.retry_count + 1, last_error=error)
            )

    def clear(self) -> int:
        """Discard every queued operation. Returns how many were dropped."""
        with self._engine.begin() as conn:
            result = conn.execute(delete(queued_operations))
        return result.rowcount
