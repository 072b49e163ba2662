"""`mogupload`: store a local file (or standard input) under a key."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click

from .config import ConfigError, load_tool_config
from .tracker import MogileFSError, TrackerClient
from .upload import STDIN_MARKER, upload_path

logger = logging.getLogger("mogupload")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s mogupload %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


@click.command()
@click.option("--trackers", help="Comma separated tracker list, host[:port].")
@click.option("--domain", help="Domain to store the file in.")
@click.option("--class", "storage_class", help="Storage class; the domain default when omitted.")
@click.option("--key", required=True, help="Key to store the file under.")
@click.option("--file", "source", required=True, help=f"File to upload, or '{STDIN_MARKER}' for standard input.")
@click.option("--config", "config_path", help="Config file to read instead of the default locations.")
@click.option("--verbose", is_flag=True, help="Log tracker traffic to stderr.")
def upload(
    trackers: Optional[str],
    domain: Optional[str],
    storage_class: Optional[str],
    key: str,
    source: str,
    config_path: Optional[str],
    verbose: bool,
) -> None:
    """Upload a file into MogileFS."""

    _setup_logging(verbose)
    try:
        config = load_tool_config(config_path).with_overrides(
            trackers=trackers, domain=domain, storage_class=storage_class
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if not config.trackers:
        raise click.ClickException("No trackers given; use --trackers or set trackers in a config file")
    if not config.domain:
        raise click.ClickException("No domain given; use --domain or set domain in a config file")

    try:
        with TrackerClient(config.trackers, config.domain) as client:
            size = upload_path(client, key, source, config.storage_class)
    except OSError as exc:
        raise click.ClickException(f"Cannot read {source}: {exc}") from exc
    except MogileFSError as exc:
        raise click.ClickException(f"Upload of {key} failed: {exc}") from exc

    logger.debug("Uploaded %d bytes to key %s", size, key)


def main() -> None:
    upload()


if __name__ == "__main__":  # pragma: no cover
    main()
