"""Report kinds, their aggregators and fixed-width rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Tuple

from .domain_index import DomainClassIndex
from .metadata_store import FileTotalsRow, MetadataStore, ReplicationRow
from .queues import QueueState, aggregate_general_queues, aggregate_queue

logger = logging.getLogger(__name__)

ALL_REPORTS = "all"
_STATE_ORDER = {state: position for position, state in enumerate(QueueState)}


class UnknownReportError(ValueError):
    """Raised for a `--stats` name that is neither a report kind nor `all`."""


class ReportKind(str, Enum):
    DEVICES = "devices"
    FIDS = "fids"
    FILES = "files"
    DOMAINS = "domains"
    REPLICATION = "replication"
    REPLICATION_QUEUE = "replication-queue"
    DELETE_QUEUE = "delete-queue"
    GENERAL_QUEUES = "general-queues"

    @classmethod
    def parse_selection(cls, value: str) -> List["ReportKind"]:
        """Parse a comma separated selection into report kinds, in canonical order without duplicates."""

        names = [name.strip() for name in value.split(",") if name.strip()]
        if not names:
            raise UnknownReportError("No statistics selected")
        selected = set()
        for name in names:
            if name == ALL_REPORTS:
                selected.update(cls)
                continue
            try:
                selected.add(cls(name))
            except ValueError as exc:
                raise UnknownReportError(f"Unknown statistics name: {name}") from exc
        return [kind for kind in cls if kind in selected]


@dataclass
class ReportTable:
    title: str
    columns: Tuple[str, ...]
    rows: List[Tuple[Any, ...]] = field(default_factory=list)


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def render_table(table: ReportTable) -> str:
    """Render a report as a fixed-width text table. Numbers are right aligned."""

    cells = [[_format_cell(value) for value in row] for row in table.rows]
    widths = [len(header) for header in table.columns]
    for row in cells:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    numeric = [
        bool(table.rows) and all(isinstance(row[idx], int) and not isinstance(row[idx], bool) for row in table.rows)
        for idx in range(len(table.columns))
    ]

    def _line(values: Iterable[str]) -> str:
        parts = [
            value.rjust(widths[idx]) if numeric[idx] else value.ljust(widths[idx]) for idx, value in enumerate(values)
        ]
        return "  " + " ".join(parts).rstrip()

    rule = "  " + " ".join("-" * width for width in widths)
    lines = [f"Statistics for {table.title}...", _line(table.columns), rule]
    lines.extend(_line(row) for row in cells)
    lines.append(rule)
    return "\n".join(lines) + "\n"


def group_file_totals(rows: Iterable[FileTotalsRow], index: DomainClassIndex) -> Dict[Tuple[str, str], List[int]]:
    """Sum `(files, length, replicated length)` per resolved `(domain, class)` name pair."""

    totals: Dict[Tuple[str, str], List[int]] = {}
    for row in rows:
        bucket = totals.setdefault(index.resolve(row.dmid, row.classid), [0, 0, 0])
        bucket[0] += row.files
        bucket[1] += row.total_length
        bucket[2] += row.total_replicated_length
    return totals


def group_replication(rows: Iterable[ReplicationRow], index: DomainClassIndex) -> Dict[Tuple[str, str, int], int]:
    totals: Dict[Tuple[str, str, int], int] = {}
    for row in rows:
        domain, cls = index.resolve(row.dmid, row.classid)
        key = (domain, cls, int(row.devcount or 0))
        totals[key] = totals.get(key, 0) + row.files
    return totals


def _state_rows(totals: Mapping[QueueState, int]) -> List[Tuple[Any, ...]]:
    return [(state, totals[state]) for state in sorted(totals, key=_STATE_ORDER.__getitem__)]


def devices_report(store: MetadataStore) -> ReportTable:
    table = ReportTable("devices", ("device", "host", "files", "status"))
    for row in store.device_file_counts():
        table.rows.append((f"dev{row.devid}", row.hostname or "", row.files, row.status or ""))
    return table


def fids_report(store: MetadataStore) -> ReportTable:
    return ReportTable("file ids", ("max",), [(store.max_fid(),)])


def files_report(store: MetadataStore) -> ReportTable:
    totals = group_file_totals(store.file_totals(), store.domain_class_index())
    table = ReportTable("files", ("domain", "class", "files", "size (bytes)", "replicated size (bytes)"))
    for (domain, cls), (files, length, replicated) in sorted(totals.items()):
        table.rows.append((domain, cls, files, length, replicated))
    return table


def domains_report(store: MetadataStore) -> ReportTable:
    totals = group_file_totals(store.file_totals(), store.domain_class_index())
    table = ReportTable("domains", ("domain", "class", "files"))
    for (domain, cls), values in sorted(totals.items()):
        table.rows.append((domain, cls, values[0]))
    return table


def replication_report(store: MetadataStore) -> ReportTable:
    totals = group_replication(store.replication_counts(), store.domain_class_index())
    table = ReportTable("replication", ("domain", "class", "devcount", "files"))
    for (domain, cls, devcount), files in sorted(totals.items()):
        table.rows.append((domain, cls, devcount, files))
    return table


def replication_queue_report(store: MetadataStore) -> ReportTable:
    totals = aggregate_queue(store.replication_queue(), store.current_time(), new_label=QueueState.NEWFILE)
    return ReportTable("replication queue", ("status", "count"), _state_rows(totals))


def delete_queue_report(store: MetadataStore) -> ReportTable:
    totals = aggregate_queue(store.delete_queue(), store.current_time())
    return ReportTable("delete queue", ("status", "count"), _state_rows(totals))


def general_queues_report(store: MetadataStore) -> ReportTable:
    totals = aggregate_general_queues(store.general_queue(), store.current_time())
    table = ReportTable("general queues", ("queue", "status", "count"))
    for queue_name in sorted(totals):
        for state, count in _state_rows(totals[queue_name]):
            table.rows.append((queue_name, state, count))
    return table


REPORTS: Dict[ReportKind, Callable[[MetadataStore], ReportTable]] = {
    ReportKind.DEVICES: devices_report,
    ReportKind.FIDS: fids_report,
    ReportKind.FILES: files_report,
    ReportKind.DOMAINS: domains_report,
    ReportKind.REPLICATION: replication_report,
    ReportKind.REPLICATION_QUEUE: replication_queue_report,
    ReportKind.DELETE_QUEUE: delete_queue_report,
    ReportKind.GENERAL_QUEUES: general_queues_report,
}


def run_reports(store: MetadataStore, kinds: Iterable[ReportKind]) -> Iterator[ReportTable]:
    for kind in kinds:
        logger.debug("Fetching statistics... (%s)", kind.value)
        yield REPORTS[kind](store)
