"""`mogstats`: print statistics gathered from the tracker metadata database."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, NoReturn

from sqlalchemy.exc import SQLAlchemyError

from .config import ConfigError, load_tool_config
from .dialects import UnsupportedDialectError, build_database_url
from .metadata_store import DatabaseConnectionError, MetadataStore
from .reports import ALL_REPORTS, ReportKind, UnknownReportError, render_table, run_reports

logger = logging.getLogger("mogstats")


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s mogstats %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    kinds = ", ".join(kind.value for kind in ReportKind)
    parser = _ArgumentParser(prog="mogstats", description="Show MogileFS statistics from the metadata database.")
    parser.add_argument("--db-dsn", "--db_dsn", dest="db_dsn", help="DBI DSN or SQLAlchemy URL of the database.")
    parser.add_argument("--db-user", "--db_user", dest="db_user", help="Database user.")
    parser.add_argument("--db-pass", "--db_pass", dest="db_pass", help="Database password.")
    parser.add_argument("--config", help="Config file to read instead of the default locations.")
    parser.add_argument(
        "--stats",
        default=ALL_REPORTS,
        help=f"Comma separated statistics to show: {kinds} or {ALL_REPORTS} (default).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log queries and progress to stderr.")
    args = parser.parse_args(argv)
    try:
        args.kinds = ReportKind.parse_selection(args.stats)
    except UnknownReportError as exc:
        parser.error(str(exc))
    return args


def _print_reports(store: MetadataStore, kinds: Iterable[ReportKind]) -> None:
    for table in run_reports(store, kinds):
        print(render_table(table))


def main(argv: Iterable[str] | None = None) -> None:
    args = _parse_args(list(argv) if argv is not None else None)
    _setup_logging(args.verbose)

    try:
        config = load_tool_config(args.config).with_overrides(
            db_dsn=args.db_dsn, db_user=args.db_user, db_pass=args.db_pass
        )
        if not config.db_dsn:
            raise ConfigError("No database DSN given; use --db-dsn or set db_dsn in a config file")
        db_url = build_database_url(config.db_dsn, config.db_user, config.db_pass)
    except (ConfigError, UnsupportedDialectError) as exc:
        logger.error('stage="config" error="%s"', exc)
        sys.exit(1)

    try:
        with MetadataStore(db_url) as store:
            _print_reports(store, args.kinds)
    except DatabaseConnectionError as exc:
        logger.error('stage="connect" error="%s"', exc)
        sys.exit(1)
    except ImportError as exc:
        logger.error('stage="driver" error="%s"', exc)
        sys.exit(1)
    except SQLAlchemyError as exc:
        logger.error('stage="query" error="%s"', exc)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
