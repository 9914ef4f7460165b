# database/db.py
"""
The `Db` wrapper: one object-oriented interface over MySQL/MariaDB and PostgreSQL.

A `Db` instance owns a single driver connection and runs one statement at a
time through the same lifecycle:

    stage parameters -> prepare -> bind -> execute -> iterate rows / read error

Driver errors do not propagate. Each query method returns True or False and
the driver's message is kept in `err_message`, so calling code reads like:

    db = Db(Db.MYSQL, "shop", "localhost", "user", "secret")
    db.empty_params()
    db.add_param_to_bind("id", 5)
    if db.select("select * from users where id = :id"):
        while (row := db.get_next_row()) is not None:
            ...
    else:
        print(db.err_message)

An instance is not safe for concurrent use: every call mutates its state.
"""

from enum import Enum
from typing import Any, Dict, List, Tuple, Type

import structlog

from config import mask_sensitive_data
from database import statement
from database.base_connector import DatabaseConnector
from database.errors import NotConnectedError, ParameterBindingError, UnsupportedDbmsError
from database.mysql_connector import MySQLConnector
from database.postgres_connector import PostgreSQLConnector

log = structlog.get_logger(__name__)

CONNECTORS: Dict[str, Type[DatabaseConnector]] = {
    MySQLConnector.dbms: MySQLConnector,
    PostgreSQLConnector.dbms: PostgreSQLConnector,
}


class FetchStyle(Enum):
    """Shape of the rows returned by `Db.get_next_row`."""

    ASSOC = "assoc"  # dict keyed by column name
    NUM = "num"  # tuple in column order


class Db:
    """
    Database management wrapper.

    Configuration attributes (`dbms`, `dbname`, `host`, `port`, `login`,
    `password`, `charset`, `debug`) may be changed after construction; the
    connection settings take effect on the next `connect()`.
    """

    # DBMS handled
    MYSQL = "mysql"
    MARIADB = "mysql"
    POSTGRESQL = "pgsql"

    DBMSS = (MYSQL, MARIADB, POSTGRESQL)

    def __init__(
        self,
        dbms: str,
        dbname: str,
        host: str,
        login: str,
        password: str,
        port: int = 0,
        charset: str = "",
        debug: bool = False,
    ):
        """
        Stores the configuration and attempts a connection to the database.

        A failed connection does not raise: check `is_connected` and
        `err_message` afterwards.

        Args:
            - dbms (str): DBMS to use, one of the class constants.
            - dbname (str): Database name.
            - host (str): Hostname.
            - login (str): User login.
            - password (str): User password.
            - port (int): Port on the host; 0 uses the driver default.
            - charset (str): Connection character set (only used with MySQL).
            - debug (bool): Keep a dump of each executed query and its
                            parameters in `query_dump`.

        Raises:
            - UnsupportedDbmsError: If `dbms` is not handled by this library.
        """
        if dbms not in self.DBMSS:
            raise UnsupportedDbmsError(
                f"Cannot use DBMS '{dbms}'. Handled DBMSs are: {self.list_handled_dbms()}"
            )

        self.dbms = dbms
        self.dbname = dbname
        self.host = host
        self.port = port
        self.login = login
        self.password = password
        self.charset = charset
        self.debug = debug

        self._connector: DatabaseConnector | None = None
        self._connection: Any = None
        self._connected = False
        self._parameters: List[Tuple[str, Any]] = []
        self._statement: statement.PreparedStatement | None = None
        self._cursor: Any = None
        self._err_message = ""
        self._last_id: str | None = None
        self._query_dump = ""

        self.connect()

    def __enter__(self) -> "Db":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()

    def __repr__(self) -> str:
        return (
            f"Db(dbms={self.dbms!r}, dbname={self.dbname!r}, host={self.host!r}, "
            f"port={self.port!r}, login={self.login!r}, connected={self._connected})"
        )

    # --- Read accessors ---

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def err_message(self) -> str:
        """Message of the last captured error, empty when the last call succeeded."""
        return self._err_message

    @property
    def query_dump(self) -> str:
        """Dump of the last successfully executed query (debug mode only)."""
        return self._query_dump

    @property
    def last_id(self) -> str | None:
        """Id generated by the last successful `insert`, None before one."""
        return self._last_id

    @property
    def row_count(self) -> int:
        """Rows affected or returned by the last statement, -1 if unknown."""
        if self._cursor is None:
            return -1
        return self._cursor.rowcount

    @staticmethod
    def list_handled_dbms() -> str:
        """
        List all DBMS handled by this library.

        Returns:
            - Comma separated list of DBMS names available for use.
        """
        return ", ".join(dict.fromkeys(Db.DBMSS))

    # --- Parameters ---

    def empty_params(self):
        """Reset binding parameters."""
        self._parameters = []

    def add_param_to_bind(self, name: str, value: Any):
        """
        Add a parameter to bind to the next query.

        Args:
            - name (str): Placeholder name, with or without the leading ':'.
            - value (Any): Value sent for `:name`.
        """
        if name.startswith(":"):
            name = name[1:]
        self._parameters.append((name, value))

    # --- Connection lifecycle ---

    def _settings(self) -> Dict[str, Any]:
        return {
            "dbname": self.dbname,
            "host": self.host,
            "port": self.port,
            "login": self.login,
            "password": self.password,
            "charset": self.charset,
        }

    def connect(self):
        """
        Attempt a connection to the database.

        Workflow:
        1.  Closes any connection still open and resets the connection status
            and error message.
        2.  Picks the connector for `dbms` and asks it to open a connection.
        3.  On success marks the object as connected; on a driver error keeps
            the message in `err_message` and stays disconnected.

        Raises:
            - UnsupportedDbmsError: If `dbms` was changed to an unhandled value.
        """
        self.disconnect()
        self._err_message = ""

        connector_class = CONNECTORS.get(self.dbms)
        if connector_class is None:
            raise UnsupportedDbmsError(
                f"Cannot use DBMS '{self.dbms}'. Handled DBMSs are: {self.list_handled_dbms()}"
            )
        connector = connector_class()
        settings = self._settings()

        try:
            self._connection = connector.connect(settings)
        except connector.driver_errors as e:
            self._err_message = connector.format_error(e)
            log.error(
                "Failed to connect to database.",
                dbms=self.dbms,
                settings=mask_sensitive_data(settings),
                error=self._err_message,
            )
            return

        self._connector = connector
        self._connected = True
        log.info("Database connection successful.", dbms=self.dbms, host=self.host, dbname=self.dbname)

    def disconnect(self):
        """Disconnect from database and mark object as disconnected."""
        self._close_cursor()
        if self._connection is not None:
            try:
                self._connection.close()
                log.info("Database connection closed.", dbms=self.dbms)
            except self._connector.driver_errors as e:
                log.warning("Error while closing the connection.", error=self._connector.format_error(e))
        self._connection = None
        self._connected = False

    def _close_cursor(self):
        if self._cursor is not None:
            try:
                self._cursor.close()
            except self._connector.driver_errors as e:
                log.warning("Error while closing the cursor.", error=self._connector.format_error(e))
        self._cursor = None

    # --- Query lifecycle ---

    def _reset_result(self):
        self._close_cursor()
        self._statement = None
        self._err_message = ""

    def _prepare_query(self, query: str):
        """
        Prepare query before binding parameters.

        Raises:
            - NotConnectedError: If there is no open connection.
        """
        if self._connection is None:
            raise NotConnectedError("Query failed to prepare: database not connected. Call connect() first.")
        self._statement = statement.prepare(query)

    def _bind_parameters(self) -> Dict[str, Any]:
        return self._statement.bind(self._parameters)

    def _execute_query(self, all_result_sets: bool = False) -> bool:
        """
        Bind the staged parameters, execute the prepared query, catch the error (if any).

        Args:
            - all_result_sets (bool): Step through every result set the
              statement produced, so an error in any statement of a script
              is reported.

        Returns:
            - True on success, False on error.
        """
        try:
            values = self._bind_parameters()
        except ParameterBindingError as e:
            self._err_message = str(e)
            log.error("Query parameter binding failed.", sql=self._statement.sql, error=self._err_message)
            return False

        try:
            self._cursor = self._connection.cursor()
            self._cursor.execute(self._statement.text, values)
            if all_result_sets:
                while self._cursor.nextset():
                    pass
        except self._connector.driver_errors as e:
            self._err_message = self._connector.format_error(e)
            log.error("Query execution failed.", sql=self._statement.sql, error=self._err_message)
            return False

        if self.debug:
            self._dump_query(values)
        return True

    def _dump_query(self, values: Dict[str, Any]):
        """Dump the prepared query along with its parameters into `query_dump`."""
        sql = self._statement.sql
        sent = self._cursor.mogrify(self._statement.text, values)
        lines = [
            f"SQL: [{len(sql)}] {sql}",
            f"Sent SQL: [{len(sent)}] {sent}",
            f"Params:  {len(self._parameters)}",
            "",
        ]
        for i, (name, value) in enumerate(self._parameters, start=1):
            lines.append(f"[{i}] {name}: {value}")
        self._query_dump = "\n".join(lines) + "\n"
        log.debug("Query executed.", dump=self._query_dump)

    def _retrieve_last_id(self, sequence: str | None):
        self._last_id = self._connector.last_insert_id(self._connection, self._cursor, sequence)

    # --- Result set ---

    def _column_names(self) -> List[str]:
        return [column[0] for column in self._cursor.description]

    def get_next_row(self, fetch_style: FetchStyle | str = FetchStyle.ASSOC) -> Dict[str, Any] | Tuple[Any, ...] | None:
        """
        Get the next row of the result set of the last query.

        Args:
            - fetch_style (FetchStyle | str): ASSOC (or "assoc") for a dict
              keyed by column name, NUM (or "num") for a tuple.

        Returns:
            - The row, or None when the result set is exhausted, the last
              query failed, or it produced no result set.

        Raises:
            - ValueError: If `fetch_style` is not a `FetchStyle` member or value.
        """
        fetch_style = FetchStyle(fetch_style)
        if self._cursor is None or self._cursor.description is None:
            return None
        row = self._cursor.fetchone()
        if row is None:
            return None
        if fetch_style is FetchStyle.NUM:
            return tuple(row)
        return dict(zip(self._column_names(), row))

    def get_all_rows(self, fetch_style: FetchStyle | str = FetchStyle.ASSOC) -> List[Dict[str, Any] | Tuple[Any, ...]]:
        """Get the remaining rows of the result set as a list."""
        rows = []
        while (row := self.get_next_row(fetch_style)) is not None:
            rows.append(row)
        return rows

    # --- Statements ---
    # select, update, delete and exec_script run the same steps; they are
    # kept apart so each can grow its own behavior.

    def select(self, query: str) -> bool:
        """
        Execute a select query.

        Returns:
            - True on success, False on failure (see `err_message`).
        """
        self._reset_result()
        self._prepare_query(query)
        return self._execute_query()

    def insert(self, query: str, sequence: str | None = None) -> bool:
        """
        Execute an insert query and capture the id it generated.

        Args:
            - query (str): The insert statement.
            - sequence (str | None): PostgreSQL only, the sequence to read the
              id from instead of the last one the session used.

        Returns:
            - True on success, False on failure (see `err_message`).
        """
        self._reset_result()
        self._last_id = None
        self._prepare_query(query)

        executed = self._execute_query()
        if executed:
            self._retrieve_last_id(sequence)
        return executed

    def update(self, query: str) -> bool:
        """
        Execute an update query.

        Returns:
            - True on success, False on failure (see `err_message`).
        """
        self._reset_result()
        self._prepare_query(query)
        return self._execute_query()

    def delete(self, query: str) -> bool:
        """
        Execute a delete query.

        Returns:
            - True on success, False on failure (see `err_message`).
        """
        self._reset_result()
        self._prepare_query(query)
        return self._execute_query()

    def exec_script(self, script: str) -> bool:
        """
        Execute a SQL script, possibly made of several statements.

        Returns:
            - True on success, False if any statement failed (see `err_message`).
        """
        self._reset_result()
        self._prepare_query(script)
        return self._execute_query(all_result_sets=True)
