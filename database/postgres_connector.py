# database/postgres_connector.py
"""
PostgreSQL database connector implementation.

This module provides a concrete implementation of the `DatabaseConnector`
for PostgreSQL. It wraps the `psycopg` (version 3) library.
"""

from typing import Any, Dict, Tuple, Type

import psycopg
import structlog

from config import CONNECT_TIMEOUT_SECONDS
from database.base_connector import DatabaseConnector

log = structlog.get_logger(__name__)


class PostgreSQLConnector(DatabaseConnector):
    """
    Opens psycopg connections and interprets psycopg errors.

    This class fulfills the `DatabaseConnector` contract for PostgreSQL.
    """

    dbms = "pgsql"

    @property
    def driver_errors(self) -> Tuple[Type[BaseException], ...]:
        return (psycopg.Error,)

    def connect(self, settings: Dict[str, Any]) -> Any:
        """
        Opens a psycopg connection.

        Workflow:
        1.  Builds the connection keywords, leaving the port out when it is 0
            so libpq uses its default (5432). The charset setting is not used
            for PostgreSQL.
        2.  Selects `psycopg.ClientCursor` as the cursor class. Parameters are
            then merged into the query on the client, which is what allows a
            script of several statements to be executed with parameters, and
            what makes `mogrify()` available for query dumps.
        3.  Turns on autocommit so each statement is applied at once.
        """
        kwargs: Dict[str, Any] = {
            "dbname": settings["dbname"],
            "host": settings["host"],
            "user": settings["login"],
            "password": settings["password"],
            "connect_timeout": CONNECT_TIMEOUT_SECONDS,
        }
        if settings["port"] > 0:
            kwargs["port"] = settings["port"]
        if settings["charset"]:
            log.debug("Charset ignored by PostgreSQL.", charset=settings["charset"])

        return psycopg.connect(autocommit=True, cursor_factory=psycopg.ClientCursor, **kwargs)

    def last_insert_id(self, connection: Any, cursor: Any, sequence: str | None = None) -> str | None:
        """
        Reads the value most recently produced by a sequence in this session.

        Without a sequence name this is LASTVAL(), i.e. the value of whatever
        sequence the insert advanced (a SERIAL / IDENTITY column). With a name
        it is CURRVAL() of that sequence. If the session has no such value yet
        (the table has no sequence), None is returned.
        """
        if sequence:
            sql, params = "SELECT CURRVAL(%(sequence)s)", {"sequence": sequence}
        else:
            sql, params = "SELECT LASTVAL()", None

        try:
            with connection.cursor() as id_cursor:
                id_cursor.execute(sql, params)
                row = id_cursor.fetchone()
        except psycopg.Error as e:
            log.warning(
                "Could not retrieve the last inserted id.",
                sequence=sequence,
                error=self.format_error(e),
            )
            return None

        if not row or row[0] is None:
            return None
        return str(row[0])

    def format_error(self, error: BaseException) -> str:
        """Formats psycopg errors as "SQLSTATE[code]: message"."""
        message = str(error).strip()
        sqlstate = getattr(error, "sqlstate", None)
        if sqlstate:
            return f"SQLSTATE[{sqlstate}]: {message}"
        return message
