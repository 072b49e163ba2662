from __future__ import annotations

import time
from typing import Generator

import pytest

pytest.importorskip("testcontainers.postgres")

from sqlalchemy import create_engine  # noqa: E402
from testcontainers.postgres import PostgresContainer  # type: ignore[import-not-found,import-untyped]  # noqa: E402

from mogile_tools import schema  # noqa: E402
from mogile_tools.dialects import PostgreSQLDialect  # noqa: E402
from mogile_tools.metadata_store import MetadataStore  # noqa: E402
from mogile_tools.queues import QueueState  # noqa: E402
from mogile_tools.reports import general_queues_report, replication_queue_report  # noqa: E402

from conftest import seed_metadata  # noqa: E402


@pytest.fixture(scope="module")
def postgres_url() -> Generator[str, None, None]:
    try:
        with PostgresContainer("postgres:16") as pg:
            yield pg.get_connection_url().replace("postgresql://", "postgresql+psycopg://").replace(
                "postgresql+psycopg2://", "postgresql+psycopg://"
            )
    except Exception as exc:  # pragma: no cover - depends on a local docker daemon
        pytest.skip(f"PostgreSQL container unavailable: {exc}")


def test_queue_reports_against_postgres(postgres_url: str) -> None:
    engine = create_engine(postgres_url, future=True)
    schema.metadata.drop_all(engine)
    schema.metadata.create_all(engine)
    seed_metadata(engine, int(time.time()))
    engine.dispose()

    with MetadataStore(postgres_url) as store:
        assert isinstance(store.dialect, PostgreSQLDialect)
        assert abs(store.current_time() - int(time.time())) < 60
        replication = dict(replication_queue_report(store).rows)
        general = general_queues_report(store).rows

    assert replication[QueueState.NEWFILE] == 5
    assert replication[QueueState.OVERDUE] == 3
    assert replication[QueueState.DEFERRED] == 4
    assert ("REBAL_QUEUE", QueueState.MANUAL, 1) in general
