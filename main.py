# main.py
"""
Main command-line interface for the database wrapper.

Connection settings are read from the environment (see `config.py`).
Provides commands to list the handled DBMSs, check a connection, run a select
query and execute a SQL script.
"""

import argparse
import logging
import sys
from typing import List, Tuple

import structlog

from config import get_db_config_from_env, setup_logging
from database.db import Db, FetchStyle

log = structlog.get_logger(__name__)


def _parse_param(raw: str) -> Tuple[str, str]:
    """Splits a `name=value` command-line parameter."""
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"Parameter must look like name=value, got '{raw}'.")
    return name, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MySQL/MariaDB and PostgreSQL query tool.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log debug messages, including query dumps."
    )
    subparsers = parser.add_subparsers(
        dest="command", required=True, help="Available commands"
    )

    # --- 'list-dbms' command ---
    subparsers.add_parser("list-dbms", help="List the DBMS names this tool handles.")

    # --- 'check' command ---
    subparsers.add_parser("check", help="Connect to the configured database and report.")

    # --- 'select' command ---
    parser_select = subparsers.add_parser(
        "select", help="Run a select query and print its rows."
    )
    parser_select.add_argument("query", help='Query with :name placeholders, e.g. "select * from users where id = :id".')
    parser_select.add_argument(
        "-p",
        "--param",
        action="append",
        type=_parse_param,
        default=[],
        metavar="NAME=VALUE",
        help="Parameter to bind (repeatable).",
    )
    parser_select.add_argument(
        "--num", action="store_true", help="Print rows as tuples instead of dictionaries."
    )

    # --- 'exec-script' command ---
    parser_script = subparsers.add_parser(
        "exec-script", help="Execute the SQL statements of a file."
    )
    parser_script.add_argument("file", help="Path of the SQL script.")
    parser_script.add_argument(
        "-p",
        "--param",
        action="append",
        type=_parse_param,
        default=[],
        metavar="NAME=VALUE",
        help="Parameter to bind (repeatable).",
    )

    return parser


def _bind_all(db: Db, params: List[Tuple[str, str]]):
    db.empty_params()
    for name, value in params:
        db.add_param_to_bind(name, value)


def run_command(args: argparse.Namespace) -> int:
    """Executes the parsed command. Returns the process exit status."""
    if args.command == "list-dbms":
        print(Db.list_handled_dbms())
        return 0

    db = Db(**get_db_config_from_env())
    with db:
        if not db.is_connected:
            log.error("Could not connect to the database.", error=db.err_message)
            return 1

        if args.command == "check":
            log.info("Database is reachable.", database=repr(db))
            return 0

        if args.command == "select":
            _bind_all(db, args.param)
            if not db.select(args.query):
                log.error("Select query failed.", error=db.err_message)
                return 1
            style = FetchStyle.NUM if args.num else FetchStyle.ASSOC
            count = 0
            while (row := db.get_next_row(style)) is not None:
                print(row)
                count += 1
            log.info(f"{count} row(s) returned.")
            if db.debug:
                print(db.query_dump)
            return 0

        if args.command == "exec-script":
            with open(args.file, "r", encoding="utf-8") as f:
                script = f.read()
            _bind_all(db, args.param)
            if not db.exec_script(script):
                log.error("Script execution failed.", file=args.file, error=db.err_message)
                return 1
            log.info("Script executed successfully.", file=args.file)
            return 0

    return 1


def main(argv: List[str] | None = None):
    """Parses command-line arguments and executes the requested action."""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        status = run_command(args)
    except Exception:
        log.exception("A fatal error occurred in the database tool.")
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
