"""SQLAlchemy table definitions for the tracker metadata tables read by the reports.

Only the columns the reports touch are declared. The tools never create or alter these tables; tests use
`metadata.create_all` to build throwaway copies.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, Integer, MetaData, SmallInteger, String, Table

metadata = MetaData()

domain = Table(
    "domain",
    metadata,
    Column("dmid", SmallInteger, primary_key=True),
    Column("namespace", String(255)),
)

class_ = Table(
    "class",
    metadata,
    Column("dmid", SmallInteger, primary_key=True),
    Column("classid", SmallInteger, primary_key=True),
    Column("classname", String(50)),
)

host = Table(
    "host",
    metadata,
    Column("hostid", SmallInteger, primary_key=True),
    Column("hostname", String(255)),
)

device = Table(
    "device",
    metadata,
    Column("devid", Integer, primary_key=True),
    Column("hostid", SmallInteger),
    Column("status", String(20)),
)

file = Table(
    "file",
    metadata,
    Column("fid", BigInteger, primary_key=True),
    Column("dmid", SmallInteger),
    Column("dkey", String(255)),
    Column("length", BigInteger),
    Column("classid", SmallInteger),
    Column("devcount", SmallInteger),
)

file_on = Table(
    "file_on",
    metadata,
    Column("fid", BigInteger, primary_key=True),
    Column("devid", Integer, primary_key=True),
)

file_to_replicate = Table(
    "file_to_replicate",
    metadata,
    Column("fid", BigInteger, primary_key=True),
    Column("nexttry", Integer),
)

file_to_delete2 = Table(
    "file_to_delete2",
    metadata,
    Column("fid", BigInteger, primary_key=True),
    Column("nexttry", Integer),
)

file_to_queue = Table(
    "file_to_queue",
    metadata,
    Column("fid", BigInteger, primary_key=True),
    Column("type", SmallInteger, primary_key=True),
    Column("nexttry", Integer),
)
