# database/mysql_connector.py
"""
MySQL / MariaDB database connector implementation.

This module provides a concrete implementation of the `DatabaseConnector`
for MySQL and MariaDB servers. It wraps the `PyMySQL` library.
"""

from typing import Any, Dict, Tuple, Type

import pymysql
import pymysql.charset
import structlog
from pymysql.constants import CLIENT

from config import CONNECT_TIMEOUT_SECONDS
from database.base_connector import DatabaseConnector

log = structlog.get_logger(__name__)

MAX_PORT = 65535


class MySQLConnector(DatabaseConnector):
    """
    Opens PyMySQL connections and interprets PyMySQL errors.

    This class fulfills the `DatabaseConnector` contract for MySQL/MariaDB.
    """

    dbms = "mysql"

    @property
    def driver_errors(self) -> Tuple[Type[BaseException], ...]:
        return (pymysql.MySQLError,)

    def connect(self, settings: Dict[str, Any]) -> Any:
        """
        Opens a PyMySQL connection.

        Workflow:
        1.  Builds the keyword arguments for `pymysql.connect()`, leaving the
            port out when it is 0 so PyMySQL uses its default (3306).
        2.  Passes the charset only when one is configured (PyMySQL defaults
            to utf8mb4).
        3.  Rejects an out-of-range port or an unknown charset with a
            PyMySQL `OperationalError`, as the driver would for a refused
            connection, so `Db` captures it like any connection failure.
        4.  Enables multi-statement support so whole SQL scripts can be sent
            in one call, and autocommit so each statement is applied at once.
        """
        if settings["port"] > MAX_PORT:
            raise pymysql.err.OperationalError(2003, f"Can't connect to MySQL server: port {settings['port']} out of range")
        if settings["charset"] and pymysql.charset.charset_by_name(settings["charset"]) is None:
            raise pymysql.err.OperationalError(2019, f"Can't initialize character set {settings['charset']}")

        kwargs: Dict[str, Any] = {
            "host": settings["host"],
            "user": settings["login"],
            "password": settings["password"],
            "database": settings["dbname"],
            "autocommit": True,
            "client_flag": CLIENT.MULTI_STATEMENTS,
            "connect_timeout": CONNECT_TIMEOUT_SECONDS,
        }
        if settings["port"] > 0:
            kwargs["port"] = settings["port"]
        if settings["charset"]:
            kwargs["charset"] = settings["charset"]

        return pymysql.connect(**kwargs)

    def last_insert_id(self, connection: Any, cursor: Any, sequence: str | None = None) -> str | None:
        """
        Reads the AUTO_INCREMENT value generated by the insert.

        MySQL has no sequences; a `sequence` argument is ignored. Like the
        server's own LAST_INSERT_ID(), "0" means no value was generated.
        """
        if sequence:
            log.debug("Sequence name ignored by MySQL.", sequence=sequence)
        return str(cursor.lastrowid or 0)

    def format_error(self, error: BaseException) -> str:
        """Formats PyMySQL errors as "[code] message"."""
        if len(error.args) >= 2 and isinstance(error.args[0], int):
            return f"[{error.args[0]}] {error.args[1]}"
        return str(error)
