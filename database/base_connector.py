# database/base_connector.py
"""
Defines the abstract base class for all database connectors.

This module provides the `DatabaseConnector` Abstract Base Class (ABC).
A connector holds everything that differs between the supported DBMSs: how a
driver connection is opened, which exceptions the driver raises, how those
exceptions read as a message, and how the last auto-generated id is fetched.
The `Db` wrapper only talks to this interface, so its query lifecycle is the
same for MySQL/MariaDB and PostgreSQL.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple, Type


class DatabaseConnector(ABC):
    """
    Abstract Base Class that defines the interface for database connectors.

    Any class that inherits from DatabaseConnector MUST implement all methods
    decorated with `@abstractmethod`.
    """

    #: DBMS identifier the connector is registered under (e.g. "mysql").
    dbms: str = ""

    @property
    @abstractmethod
    def driver_errors(self) -> Tuple[Type[BaseException], ...]:
        """
        The driver exception classes a connect or execute call may raise.

        `Db` captures these into its error message instead of letting them
        propagate.
        """

    @abstractmethod
    def connect(self, settings: Dict[str, Any]) -> Any:
        """
        Opens and returns a DB-API connection.

        Args:
            - settings (Dict[str, Any]): Connection settings with the keys
              'dbname', 'host', 'port', 'login', 'password' and 'charset'.
              A port of 0 and an empty charset mean "driver default".

        The returned connection must be in autocommit mode and its cursors
        must accept pyformat (`%(name)s`) parameters and offer `mogrify()`.
        """

    @abstractmethod
    def last_insert_id(self, connection: Any, cursor: Any, sequence: str | None = None) -> str | None:
        """
        Retrieves the id generated by the last successful insert.

        Args:
            - connection: The open connection the insert ran on.
            - cursor: The cursor that executed the insert.
            - sequence (str | None): Sequence to read, for DBMSs that have them.

        Returns:
            - The id as a string, or None if the DBMS cannot report one.
        """

    def format_error(self, error: BaseException) -> str:
        """Renders a driver exception as the message stored by `Db`."""
        return str(error)
