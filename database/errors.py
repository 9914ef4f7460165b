# database/errors.py
"""
Exceptions raised by the database wrapper.

Driver errors raised while connecting or executing a statement are NOT
propagated: the wrapper captures their message (see `Db.err_message`). The
exceptions below signal misuse of the wrapper itself.
"""


class DatabaseError(Exception):
    """Base class for all errors raised by the `database` package."""


class UnsupportedDbmsError(DatabaseError, ValueError):
    """Raised when a `Db` is created for a DBMS this library does not handle."""


class NotConnectedError(DatabaseError, ConnectionError):
    """Raised when a statement is prepared while no connection is open."""


class ParameterBindingError(DatabaseError):
    """
    Raised when the staged parameters do not match the statement placeholders.

    `Db` catches it and stores its message like a driver error, so callers
    only see it through `err_message`.
    """
