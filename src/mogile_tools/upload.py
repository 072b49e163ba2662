"""Chunked upload of a local file or stream through the tracker client."""

from __future__ import annotations

import logging
import os
import sys
from typing import BinaryIO, Optional, Protocol

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB
STDIN_MARKER = "-"


class WritableFile(Protocol):
    def write(self, data: bytes) -> int: ...

    def discard(self) -> None: ...

    def close(self) -> int: ...


class FileStore(Protocol):
    """Subset of TrackerClient used by the upload loop."""

    def new_file(self, key: str, storage_class: Optional[str] = None) -> WritableFile: ...


def upload_stream(
    store: FileStore,
    key: str,
    source: BinaryIO,
    storage_class: Optional[str] = None,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Copy `source` into a new file stored under `key`; returns the number of bytes written.

    Any read or write error propagates as is. The new file is discarded instead of closed in that case, so
    nothing is committed.
    """

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    handle = store.new_file(key, storage_class)
    total = 0
    try:
        while True:
            chunk = source.read(chunk_size)
            if not chunk:
                break
            handle.write(chunk)
            total += len(chunk)
    except Exception:
        handle.discard()
        raise
    handle.close()
    return total


def upload_path(
    store: FileStore,
    key: str,
    path: str,
    storage_class: Optional[str] = None,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Upload the file at `path`, or standard input when `path` is "-"."""

    if path == STDIN_MARKER:
        logger.debug("Reading %s from standard input", key)
        return upload_stream(store, key, sys.stdin.buffer, storage_class, chunk_size)

    size = os.stat(path).st_size
    logger.debug("Uploading %s (%d bytes) as %s", path, size, key)
    with open(path, "rb") as source:
        return upload_stream(store, key, source, storage_class, chunk_size)
