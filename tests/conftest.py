"""Shared fixtures: a seeded SQLite copy of the tracker metadata tables."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from mogile_tools import schema
from mogile_tools.config import ENV_OVERRIDES
from mogile_tools.queues import MANUAL_SENTINEL


@dataclass
class MetadataDatabase:
    url: str
    path: Path
    engine: Engine
    now: int


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ENV_OVERRIDES.values():
        monkeypatch.delenv(var, raising=False)


def seed_metadata(engine: Engine, now: int) -> None:
    rows = {
        schema.domain: [
            {"dmid": 1, "namespace": "photos"},
            {"dmid": 2, "namespace": "backups"},
            {"dmid": 3, "namespace": "empty"},
        ],
        schema.class_: [
            {"dmid": 1, "classid": 1, "classname": "thumbs"},
            {"dmid": 1, "classid": 2, "classname": "originals"},
            {"dmid": 2, "classid": 1, "classname": "weekly"},
        ],
        schema.host: [
            {"hostid": 1, "hostname": "store1"},
            {"hostid": 2, "hostname": "store2"},
        ],
        schema.device: [
            {"devid": 1, "hostid": 1, "status": "alive"},
            {"devid": 2, "hostid": 1, "status": "alive"},
            {"devid": 3, "hostid": 2, "status": "dead"},
        ],
        schema.file: [
            {"fid": 1, "dmid": 1, "dkey": "a", "length": 100, "classid": 1, "devcount": 2},
            {"fid": 2, "dmid": 1, "dkey": "b", "length": 200, "classid": 1, "devcount": 2},
            {"fid": 3, "dmid": 1, "dkey": "c", "length": 50, "classid": 0, "devcount": 1},
            {"fid": 4, "dmid": 1, "dkey": "d", "length": 25, "classid": None, "devcount": 3},
            {"fid": 5, "dmid": 2, "dkey": "e", "length": 1000, "classid": 1, "devcount": 2},
            {"fid": 6, "dmid": 2, "dkey": "f", "length": 10, "classid": 0, "devcount": 2},
        ],
        schema.file_on: [
            {"fid": fid, "devid": devid}
            for fid, devid in [
                (1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (4, 1),
                (4, 2), (4, 3), (5, 1), (5, 2), (6, 2), (6, 3),
            ]
        ],
        schema.file_to_replicate: (
            [{"fid": 100 + i, "nexttry": 0} for i in range(5)]
            + [{"fid": 105 + i, "nexttry": 1} for i in range(2)]
            + [{"fid": 107, "nexttry": MANUAL_SENTINEL}]
            + [{"fid": 108 + i, "nexttry": now - 100} for i in range(3)]
            + [{"fid": 111 + i, "nexttry": now + 100 + i} for i in range(4)]
        ),
        schema.file_to_delete2: [
            {"fid": 200, "nexttry": 0},
            {"fid": 201, "nexttry": 0},
            {"fid": 202, "nexttry": 500},
            {"fid": 203, "nexttry": 7},
        ],
        schema.file_to_queue: [
            {"fid": 300, "type": 1, "nexttry": 0},
            {"fid": 301, "type": 1, "nexttry": now - 100},
            {"fid": 302, "type": 2, "nexttry": 1},
            {"fid": 303, "type": 2, "nexttry": MANUAL_SENTINEL},
            {"fid": 304, "type": 9, "nexttry": now + 100},
        ],
    }
    with engine.begin() as conn:
        for table, values in rows.items():
            conn.execute(table.insert(), values)


@pytest.fixture
def metadata_db(tmp_path: Path) -> Generator[MetadataDatabase, None, None]:
    path = tmp_path / "mogilefs.db"
    url = f"sqlite+pysqlite:///{path}"
    engine = create_engine(url, future=True)
    schema.metadata.create_all(engine)
    now = int(time.time())
    seed_metadata(engine, now)
    yield MetadataDatabase(url=url, path=path, engine=engine, now=now)
    engine.dispose()
