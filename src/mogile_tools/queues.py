"""Classification and aggregation of MogileFS work queue rows.

Queue tables store a `nexttry` column per queued fid. Small values are an enum
(0 = new, 1 = redo), 2147483647 means "wait for manual intervention", and every
other value is the unix time of the next automatic attempt. Operators read the
resulting state buckets to spot stuck replication and deletes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

ENUM_CEILING = 1000
MANUAL_SENTINEL = 2147483647


class QueueState(str, Enum):
    NEW = "new"
    NEWFILE = "newfile"
    REDO = "redo"
    UNKNOWN = "unknown"
    MANUAL = "manual"
    OVERDUE = "overdue"
    DEFERRED = "deferred"


QUEUE_KINDS: Dict[int, str] = {
    1: "FSCK_QUEUE",
    2: "REBAL_QUEUE",
}
UNKNOWN_QUEUE = "UNKNOWN_QUEUE"


@dataclass(frozen=True)
class QueueRow:
    """Aggregate count of queued fids sharing one retry schedule."""

    queue_type: Optional[int]
    next_try: int
    count: int


def queue_kind_name(queue_type: Optional[int]) -> str:
    if queue_type is None:
        return UNKNOWN_QUEUE
    return QUEUE_KINDS.get(int(queue_type), UNKNOWN_QUEUE)


def classify(next_try: int, current_db_time: int, new_label: QueueState = QueueState.NEW) -> QueueState:
    """Map a `nexttry` value to exactly one operational state.

    `current_db_time` must come from the database server so that a skewed client clock cannot turn deferred
    work into overdue work. `new_label` is the name used for code 0; the replication queue calls it "newfile".
    """

    if next_try < ENUM_CEILING:
        if next_try == 0:
            return new_label
        if next_try == 1:
            return QueueState.REDO
        return QueueState.UNKNOWN
    if next_try == MANUAL_SENTINEL:
        return QueueState.MANUAL
    if next_try < current_db_time:
        return QueueState.OVERDUE
    return QueueState.DEFERRED


def aggregate_queue(
    rows: Iterable[QueueRow],
    current_db_time: int,
    new_label: QueueState = QueueState.NEW,
) -> Dict[QueueState, int]:
    """Sum row counts per state."""

    totals: Dict[QueueState, int] = {}
    for row in rows:
        state = classify(row.next_try, current_db_time, new_label)
        totals[state] = totals.get(state, 0) + row.count
    return totals


def aggregate_general_queues(rows: Iterable[QueueRow], current_db_time: int) -> Dict[str, Dict[QueueState, int]]:
    """Group rows of the multiplexed queue table by queue name, then by state."""

    totals: Dict[str, Dict[QueueState, int]] = {}
    for row in rows:
        per_queue = totals.setdefault(queue_kind_name(row.queue_type), {})
        state = classify(row.next_try, current_db_time)
        per_queue[state] = per_queue.get(state, 0) + row.count
    return totals
