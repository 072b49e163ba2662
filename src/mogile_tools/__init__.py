"""Administrative tools for MogileFS: metadata statistics and uploads."""

from .config import ConfigError, ToolConfig, load_tool_config, parse_trackers
from .dialects import (
    Dialect,
    MySQLDialect,
    PostgreSQLDialect,
    SQLiteDialect,
    UnsupportedDialectError,
    build_database_url,
    dialect_for_url,
)
from .domain_index import DomainClassIndex
from .metadata_store import DatabaseConnectionError, MetadataStore
from .queues import (
    MANUAL_SENTINEL,
    QueueRow,
    QueueState,
    aggregate_general_queues,
    aggregate_queue,
    classify,
    queue_kind_name,
)
from .reports import REPORTS, ReportKind, ReportTable, UnknownReportError, render_table, run_reports
from .tracker import MogileFSError, NewFile, StorageWriteError, TrackerClient, TrackerError
from .upload import upload_path, upload_stream

__all__ = [
    "ConfigError",
    "ToolConfig",
    "load_tool_config",
    "parse_trackers",
    "Dialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "SQLiteDialect",
    "UnsupportedDialectError",
    "build_database_url",
    "dialect_for_url",
    "DomainClassIndex",
    "DatabaseConnectionError",
    "MetadataStore",
    "MANUAL_SENTINEL",
    "QueueRow",
    "QueueState",
    "aggregate_general_queues",
    "aggregate_queue",
    "classify",
    "queue_kind_name",
    "REPORTS",
    "ReportKind",
    "ReportTable",
    "UnknownReportError",
    "render_table",
    "run_reports",
    "MogileFSError",
    "NewFile",
    "StorageWriteError",
    "TrackerClient",
    "TrackerError",
    "upload_path",
    "upload_stream",
]
