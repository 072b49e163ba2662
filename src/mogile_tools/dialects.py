"""Database backend strategies and connection string handling.

Each supported backend knows the SQL expression that yields the server's current unix time. Connection
strings are accepted either as SQLAlchemy URLs or as the Perl DBI DSNs found in `mogilefsd.conf`.
"""

from __future__ import annotations

import re
from typing import Dict, Optional, Type

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.sql.elements import TextClause


class UnsupportedDialectError(ValueError):
    """Raised when a connection string names a backend without a strategy."""


class Dialect:
    """Backend-specific SQL fragments used by the metadata store."""

    name = "generic"
    default_driver = ""

    def now_expression(self) -> str:
        raise NotImplementedError

    def current_time_query(self) -> TextClause:
        return text(f"SELECT {self.now_expression()} AS now")


class MySQLDialect(Dialect):
    name = "mysql"
    default_driver = "mysql+pymysql"

    def now_expression(self) -> str:
        return "UNIX_TIMESTAMP()"


class PostgreSQLDialect(Dialect):
    name = "postgresql"
    default_driver = "postgresql+psycopg"

    def now_expression(self) -> str:
        return "CAST(EXTRACT(EPOCH FROM NOW()) AS INTEGER)"


class SQLiteDialect(Dialect):
    name = "sqlite"
    default_driver = "sqlite"

    def now_expression(self) -> str:
        return "CAST(strftime('%s', 'now') AS INTEGER)"


_BACKENDS: Dict[str, Type[Dialect]] = {
    "mysql": MySQLDialect,
    "mariadb": MySQLDialect,
    "postgresql": PostgreSQLDialect,
    "sqlite": SQLiteDialect,
}

_DBI_DRIVERS: Dict[str, Type[Dialect]] = {
    "mysql": MySQLDialect,
    "mariadb": MySQLDialect,
    "pg": PostgreSQLDialect,
    "sqlite": SQLiteDialect,
}

_DBI_KEYS = {
    "database": "database",
    "dbname": "database",
    "db": "database",
    "host": "host",
    "hostname": "host",
    "port": "port",
}


def dialect_for_url(url: URL | str) -> Dialect:
    """Select the backend strategy for a SQLAlchemy URL."""

    try:
        backend = make_url(url).get_backend_name()
    except ArgumentError as exc:
        raise UnsupportedDialectError(f"Unrecognised database URL: {url}") from exc
    dialect_cls = _BACKENDS.get(backend)
    if dialect_cls is None:
        raise UnsupportedDialectError(f"Unsupported database backend: {backend}")
    return dialect_cls()


def build_database_url(dsn: str, user: Optional[str] = None, password: Optional[str] = None) -> URL:
    """Turn a DBI DSN or SQLAlchemy URL plus optional credentials into a SQLAlchemy URL."""

    dsn = dsn.strip()
    if dsn.lower().startswith("dbi:"):
        return _url_from_dbi(dsn, user, password)
    if "://" not in dsn:
        raise UnsupportedDialectError(f"Unrecognised database DSN: {dsn}")
    try:
        url = make_url(dsn)
    except ArgumentError as exc:
        raise UnsupportedDialectError(f"Unrecognised database DSN: {dsn}") from exc
    dialect_for_url(url)
    if user and not url.username:
        url = url.set(username=user)
    if password and not url.password:
        url = url.set(password=password)
    return url


def _url_from_dbi(dsn: str, user: Optional[str], password: Optional[str]) -> URL:
    parts = dsn.split(":", 2)
    if len(parts) < 3 or not parts[1]:
        raise UnsupportedDialectError(f"Malformed DBI DSN: {dsn}")
    driver = parts[1].lower()
    dialect_cls = _DBI_DRIVERS.get(driver)
    if dialect_cls is None:
        raise UnsupportedDialectError(f"Unsupported DBI driver: {parts[1]}")
    rest = parts[2]

    if dialect_cls is SQLiteDialect:
        database = rest.split("=", 1)[1] if "=" in rest else rest
        return URL.create("sqlite", database=database or None)

    attrs: Dict[str, str] = {}
    positional = ["database", "host", "port"]
    for token in re.split(r"[;:]", rest):
        token = token.strip()
        if not token:
            continue
        if "=" in token:
            key, value = token.split("=", 1)
            mapped = _DBI_KEYS.get(key.strip().lower())
            if mapped is not None:
                attrs[mapped] = value.strip()
        elif positional:
            attrs.setdefault(positional.pop(0), token)

    port = attrs.get("port")
    return URL.create(
        dialect_cls.default_driver,
        username=user or None,
        password=password or None,
        host=attrs.get("host"),
        port=int(port) if port else None,
        database=attrs.get("database"),
    )
