from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import pytest
from click.testing import CliRunner

from mogile_tools import cli_upload
from mogile_tools.tracker import TrackerError


class DummyHandle:
    def __init__(self, log: List[tuple]) -> None:
        self._log = log
        self.size = 0

    def write(self, data: bytes) -> int:
        self._log.append(("write", data))
        self.size += len(data)
        return len(data)

    def discard(self) -> None:
        self._log.append(("discard",))

    def close(self) -> int:
        self._log.append(("close",))
        return self.size


class DummyClient:
    instances: List["DummyClient"] = []
    fail_open = False

    def __init__(self, trackers: List[str], domain: str) -> None:
        self.trackers = trackers
        self.domain = domain
        self.log: List[tuple] = []
        DummyClient.instances.append(self)

    def __enter__(self) -> "DummyClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.log.append(("disconnect",))

    def new_file(self, key: str, storage_class: Optional[str] = None) -> DummyHandle:
        if DummyClient.fail_open:
            raise TrackerError("unreg_domain", "Domain name invalid")
        self.log.append(("open", key, storage_class))
        return DummyHandle(self.log)


@pytest.fixture
def dummy_client(monkeypatch: pytest.MonkeyPatch) -> type[DummyClient]:
    DummyClient.instances = []
    DummyClient.fail_open = False
    monkeypatch.setattr(cli_upload, "TrackerClient", DummyClient)
    return DummyClient


@pytest.fixture
def empty_config(tmp_path: Path) -> str:
    path = tmp_path / "empty.conf"
    path.write_text("")
    return str(path)


def test_uploads_file(tmp_path: Path, dummy_client: type[DummyClient], empty_config: str) -> None:
    source = tmp_path / "hello.txt"
    source.write_bytes(b"hello")

    result = CliRunner().invoke(
        cli_upload.upload,
        [
            "--config", empty_config,
            "--trackers", "t1,t2:7002",
            "--domain", "photos",
            "--class", "thumbs",
            "--key", "/hello.txt",
            "--file", str(source),
        ],
    )

    assert result.exit_code == 0, result.output
    (client,) = dummy_client.instances
    assert client.trackers == ["t1:7001", "t2:7002"]
    assert client.domain == "photos"
    assert client.log == [("open", "/hello.txt", "thumbs"), ("write", b"hello"), ("close",), ("disconnect",)]


def test_zero_byte_file(tmp_path: Path, dummy_client: type[DummyClient], empty_config: str) -> None:
    source = tmp_path / "empty.bin"
    source.write_bytes(b"")

    result = CliRunner().invoke(
        cli_upload.upload,
        ["--config", empty_config, "--trackers", "t1", "--domain", "d", "--key", "k", "--file", str(source)],
    )

    assert result.exit_code == 0, result.output
    log = dummy_client.instances[0].log
    assert [entry[0] for entry in log].count("open") == 1
    assert [entry[0] for entry in log].count("close") == 1
    assert not [entry for entry in log if entry[0] == "write"]


def test_reads_stdin(dummy_client: type[DummyClient], empty_config: str) -> None:
    result = CliRunner().invoke(
        cli_upload.upload,
        ["--config", empty_config, "--trackers", "t1", "--domain", "d", "--key", "k", "--file", "-"],
        input=b"piped bytes",
    )

    assert result.exit_code == 0, result.output
    assert ("write", b"piped bytes") in dummy_client.instances[0].log


def test_trackers_and_domain_from_config(tmp_path: Path, dummy_client: type[DummyClient]) -> None:
    config = tmp_path / "mogilefs.conf"
    config.write_text("trackers = cfg-tracker\ndomain = cfg-domain\nclass = cfg-class\n")
    source = tmp_path / "f"
    source.write_bytes(b"x")

    result = CliRunner().invoke(
        cli_upload.upload, ["--config", str(config), "--key", "k", "--file", str(source)]
    )

    assert result.exit_code == 0, result.output
    client = dummy_client.instances[0]
    assert client.trackers == ["cfg-tracker:7001"]
    assert client.domain == "cfg-domain"
    assert client.log[0] == ("open", "k", "cfg-class")


def test_missing_trackers(tmp_path: Path, dummy_client: type[DummyClient], empty_config: str) -> None:
    result = CliRunner().invoke(
        cli_upload.upload, ["--config", empty_config, "--domain", "d", "--key", "k", "--file", "-"]
    )

    assert result.exit_code == 1
    assert "No trackers given" in result.output
    assert dummy_client.instances == []


def test_missing_source_file(tmp_path: Path, dummy_client: type[DummyClient], empty_config: str) -> None:
    result = CliRunner().invoke(
        cli_upload.upload,
        ["--config", empty_config, "--trackers", "t1", "--domain", "d", "--key", "k", "--file", str(tmp_path / "nope")],
    )

    assert result.exit_code == 1
    assert "Cannot read" in result.output


def test_tracker_error_aborts(tmp_path: Path, dummy_client: type[DummyClient], empty_config: str) -> None:
    dummy_client.fail_open = True
    source = tmp_path / "f"
    source.write_bytes(b"x")

    result = CliRunner().invoke(
        cli_upload.upload,
        ["--config", empty_config, "--trackers", "t1", "--domain", "d", "--key", "k", "--file", str(source)],
    )

    assert result.exit_code == 1
    assert "unreg_domain" in result.output
