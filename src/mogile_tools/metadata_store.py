"""Read-only access to the tracker metadata database."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import URL, Connection, Engine, Row
from sqlalchemy.exc import DBAPIError
from sqlalchemy.sql.expression import Executable

from . import schema
from .dialects import Dialect, dialect_for_url
from .domain_index import DomainClassIndex
from .queues import QueueRow

logger = logging.getLogger(__name__)


class DatabaseConnectionError(RuntimeError):
    """Raised when the metadata database cannot be reached. Carries the backend's message."""


@dataclass(frozen=True)
class DeviceRow:
    devid: int
    hostname: Optional[str]
    status: Optional[str]
    files: int


@dataclass(frozen=True)
class FileTotalsRow:
    dmid: Optional[int]
    classid: Optional[int]
    files: int
    total_length: int
    total_replicated_length: int


@dataclass(frozen=True)
class ReplicationRow:
    dmid: Optional[int]
    classid: Optional[int]
    devcount: Optional[int]
    files: int


class MetadataStore:
    """One database session for a report run.

    The connection is opened on first use and reused for every query until `close()`. Nothing is retried: a
    failed connect raises `DatabaseConnectionError` with the driver's error text.
    """

    def __init__(self, db_url: URL | str) -> None:
        self._dialect = dialect_for_url(db_url)
        self._engine: Engine = create_engine(db_url, future=True)
        self._connection: Optional[Connection] = None
        self._index: Optional[DomainClassIndex] = None

    def __enter__(self) -> "MetadataStore":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            try:
                self._connection = self._engine.connect()
            except DBAPIError as exc:
                raise DatabaseConnectionError(str(exc.orig)) from exc
            logger.debug("Connected to %s database", self._dialect.name)
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        self._engine.dispose()

    def current_time(self) -> int:
        """Unix time according to the database server."""

        now = self.connection.execute(self._dialect.current_time_query()).scalar_one()
        logger.debug("Database time is %s", now)
        return int(now)

    def domain_class_index(self) -> DomainClassIndex:
        if self._index is None:
            d, c = schema.domain, schema.class_
            stmt = select(d.c.dmid, d.c.namespace, c.c.classid, c.c.classname).select_from(
                d.outerjoin(c, c.c.dmid == d.c.dmid)
            )
            rows = self._execute(stmt)
            self._index = DomainClassIndex.from_rows((r[0], r[1], r[2], r[3]) for r in rows)
        return self._index

    def device_file_counts(self) -> List[DeviceRow]:
        dev, host, file_on = schema.device, schema.host, schema.file_on
        stmt = (
            select(dev.c.devid, host.c.hostname, dev.c.status, func.count(file_on.c.fid))
            .select_from(
                dev.outerjoin(host, host.c.hostid == dev.c.hostid).outerjoin(file_on, file_on.c.devid == dev.c.devid)
            )
            .group_by(dev.c.devid, host.c.hostname, dev.c.status)
            .order_by(dev.c.devid)
        )
        return [DeviceRow(int(r[0]), r[1], r[2], int(r[3])) for r in self._execute(stmt)]

    def max_fid(self) -> int:
        value = self.connection.execute(select(func.max(schema.file.c.fid))).scalar()
        return int(value or 0)

    def file_totals(self) -> List[FileTotalsRow]:
        f = schema.file
        stmt = select(
            f.c.dmid,
            f.c.classid,
            func.count(),
            func.coalesce(func.sum(f.c.length), 0),
            func.coalesce(func.sum(f.c.length * f.c.devcount), 0),
        ).group_by(f.c.dmid, f.c.classid)
        return [FileTotalsRow(r[0], r[1], int(r[2]), int(r[3]), int(r[4])) for r in self._execute(stmt)]

    def replication_counts(self) -> List[ReplicationRow]:
        f = schema.file
        stmt = select(f.c.dmid, f.c.classid, f.c.devcount, func.count()).group_by(f.c.dmid, f.c.classid, f.c.devcount)
        return [ReplicationRow(r[0], r[1], r[2], int(r[3])) for r in self._execute(stmt)]

    def replication_queue(self) -> List[QueueRow]:
        return self._queue_rows(schema.file_to_replicate)

    def delete_queue(self) -> List[QueueRow]:
        return self._queue_rows(schema.file_to_delete2)

    def general_queue(self) -> List[QueueRow]:
        q = schema.file_to_queue
        stmt = select(q.c.type, q.c.nexttry, func.count()).group_by(q.c.type, q.c.nexttry)
        return [QueueRow(queue_type=r[0], next_try=int(r[1] or 0), count=int(r[2])) for r in self._execute(stmt)]

    def _queue_rows(self, table: Any) -> List[QueueRow]:
        stmt = select(table.c.nexttry, func.count()).group_by(table.c.nexttry)
        return [QueueRow(queue_type=None, next_try=int(r[0] or 0), count=int(r[1])) for r in self._execute(stmt)]

    def _execute(self, stmt: Executable) -> Sequence[Row[Any]]:
        started = time.monotonic()
        rows = self.connection.execute(stmt).all()
        logger.debug("Fetched %d rows in %.3fs", len(rows), time.monotonic() - started)
        return rows
