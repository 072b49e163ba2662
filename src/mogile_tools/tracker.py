"""Minimal MogileFS tracker client: enough of the protocol to store a new file.

The tracker speaks a line protocol over TCP. A request is `command arg=value&...\\r\\n` with URL-encoded
arguments; the reply is `OK <args>` or `ERR <code> <message>`. Storing a file takes three steps:
`create_open` reserves a fid and a destination path, the body is PUT to that path on a storage node over
HTTP, and `create_close` commits the fid with its final size.
"""

from __future__ import annotations

import logging
import socket
import tempfile
from typing import IO, Any, Dict, List, Optional, Sequence
from urllib.parse import parse_qsl, quote_plus, unquote_plus, urlencode

import requests

from .config import DEFAULT_TRACKER_PORT, parse_trackers

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_SPOOL_BYTES = 16 * 1024 * 1024  # 16 MiB


class MogileFSError(RuntimeError):
    """Base error for tracker and storage node failures."""


class TrackerError(MogileFSError):
    """The tracker answered with `ERR` or could not be reached."""

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message


class StorageWriteError(MogileFSError):
    """The storage node rejected or failed the HTTP PUT."""


def encode_args(args: Dict[str, Any]) -> str:
    return urlencode({k: "" if v is None else str(v) for k, v in args.items()}, quote_via=quote_plus)


def decode_args(payload: str) -> Dict[str, str]:
    return dict(parse_qsl(payload, keep_blank_values=True))


def parse_response(line: str) -> Dict[str, str]:
    """Parse one tracker reply line; raise `TrackerError` for `ERR` replies."""

    line = line.rstrip("\r\n")
    if line == "OK" or line.startswith("OK "):
        return decode_args(line[3:].strip())
    if line.startswith("ERR "):
        code, _, message = line[4:].partition(" ")
        raise TrackerError(code, unquote_plus(message))
    raise TrackerError("invalid_response", line)


class TrackerClient:
    """Talks to the first reachable tracker of `trackers` and keeps the connection for later requests."""

    def __init__(
        self,
        trackers: Sequence[str],
        domain: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        spool_bytes: int = DEFAULT_SPOOL_BYTES,
    ) -> None:
        self._trackers = parse_trackers(list(trackers))
        if not self._trackers:
            raise ValueError("At least one tracker is required")
        if not domain:
            raise ValueError("domain is required")
        self.domain = domain
        self.timeout = timeout
        self.session = session or requests.Session()
        self.spool_bytes = spool_bytes
        self._sock: Optional[socket.socket] = None
        self._reader: Optional[IO[bytes]] = None

    def __enter__(self) -> "TrackerClient":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def new_file(self, key: str, storage_class: Optional[str] = None) -> "NewFile":
        """Reserve a fid for `key` and return a writable handle for its contents."""

        reply = self.request(
            "create_open",
            {"domain": self.domain, "key": key, "class": storage_class or "", "fid": 0, "multi_dest": 0},
        )
        try:
            fid = int(reply["fid"])
            devid = int(reply["devid"])
            path = reply["path"]
        except (KeyError, ValueError) as exc:
            raise TrackerError("invalid_response", f"create_open reply missing destination: {reply}") from exc
        logger.debug("Opened fid=%d devid=%d path=%s", fid, devid, path)
        return NewFile(self, key=key, storage_class=storage_class, fid=fid, devid=devid, path=path)

    def create_close(self, key: str, fid: int, devid: int, path: str, size: int) -> None:
        self.request(
            "create_close",
            {"domain": self.domain, "key": key, "fid": fid, "devid": devid, "path": path, "size": size},
        )

    def request(self, command: str, args: Dict[str, Any]) -> Dict[str, str]:
        line = f"{command} {encode_args(args)}\r\n"
        logger.debug("tracker> %s", line.rstrip())
        sock, reader = self._connection()
        try:
            sock.sendall(line.encode("utf-8"))
            raw = reader.readline()
        except OSError as exc:
            self.close()
            raise TrackerError("socket_error", str(exc)) from exc
        if not raw:
            self.close()
            raise TrackerError("socket_error", "tracker closed the connection")
        reply = raw.decode("utf-8", errors="replace")
        logger.debug("tracker< %s", reply.rstrip())
        return parse_response(reply)

    def _connection(self) -> tuple[socket.socket, IO[bytes]]:
        if self._sock is None or self._reader is None:
            self._sock = self._open_connection()
            self._reader = self._sock.makefile("rb")
        return self._sock, self._reader

    def _open_connection(self) -> socket.socket:
        errors: List[str] = []
        for tracker in self._trackers:
            host, _, port = tracker.rpartition(":")
            try:
                sock = socket.create_connection((host, int(port or DEFAULT_TRACKER_PORT)), timeout=self.timeout)
            except OSError as exc:
                logger.debug("Tracker %s unreachable: %s", tracker, exc)
                errors.append(f"{tracker}: {exc}")
                continue
            logger.debug("Connected to tracker %s", tracker)
            return sock
        raise TrackerError("no_trackers", "; ".join(errors))


class NewFile:
    """Write handle for a file being stored.

    Written bytes are spooled locally (in memory up to the client's spool size, then in a temporary file) and
    sent to the storage node with a single PUT when the handle is closed.
    """

    def __init__(self, client: TrackerClient, key: str, storage_class: Optional[str], fid: int, devid: int, path: str):
        self._client = client
        self.key = key
        self.storage_class = storage_class
        self.fid = fid
        self.devid = devid
        self.path = path
        self.size = 0
        self.closed = False
        self._buffer = tempfile.SpooledTemporaryFile(max_size=client.spool_bytes)

    def __enter__(self) -> "NewFile":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()

    def write(self, data: bytes) -> int:
        if self.closed:
            raise ValueError("write to closed file")
        written = self._buffer.write(data)
        self.size += len(data)
        return written

    def discard(self) -> None:
        """Drop the spooled body without storing it; the reserved fid is never committed."""

        if self.closed:
            return
        self.closed = True
        self._buffer.close()
        logger.debug("Discarded key=%s fid=%d after %d bytes", self.key, self.fid, self.size)

    def close(self) -> int:
        """Send the spooled body to the storage node and commit the fid. Returns the stored size."""

        if self.closed:
            return self.size
        self.closed = True
        try:
            self._buffer.seek(0)
            self._put()
        finally:
            self._buffer.close()
        self._client.create_close(self.key, self.fid, self.devid, self.path, self.size)
        logger.info("Stored key=%s fid=%d size=%d", self.key, self.fid, self.size)
        return self.size

    def _body(self) -> bytes | IO[bytes]:
        # requests calls fileno() on file bodies, which rolls the spool to disk, and sends an empty one chunked.
        if self.size <= self._client.spool_bytes:
            return self._buffer.read()
        return self._buffer

    def _put(self) -> None:
        try:
            response = self._client.session.put(
                self.path,
                data=self._body(),
                headers={"Content-Length": str(self.size)},
                timeout=self._client.timeout,
            )
        except requests.RequestException as exc:
            raise StorageWriteError(f"PUT {self.path} failed: {exc}") from exc
        if response.status_code not in (200, 201, 204):
            raise StorageWriteError(f"PUT {self.path} failed with HTTP {response.status_code}")
