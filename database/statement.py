# database/statement.py
"""
Named-placeholder handling for prepared statements.

Queries are written with `:name` placeholders, the same style for both
supported DBMSs. The drivers underneath (PyMySQL and psycopg) both expect the
Python "pyformat" style instead (`%(name)s`, with literal `%` doubled), so
`prepare()` rewrites the query once and remembers which names it needs.
`PreparedStatement.bind()` then checks the staged parameters against those
names before anything is sent to the server.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from database.errors import ParameterBindingError

_PLACEHOLDER = re.compile(r":([A-Za-z0-9_]+)")
# PostgreSQL dollar quoting: $$ ... $$ or $tag$ ... $tag$.
_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")
_QUOTES = ("'", '"', "`")


@dataclass(frozen=True)
class PreparedStatement:
    """
    A query rewritten for the driver, plus the placeholder names it uses.

    Attributes:
        - sql (str): The query as written by the caller.
        - text (str): The query in pyformat style, ready for `cursor.execute`.
        - names (Tuple[str, ...]): Placeholder names, unique, in order of
                                   first appearance.
    """

    sql: str
    text: str
    names: Tuple[str, ...]

    def bind(self, parameters: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
        """
        Folds the staged name/value pairs into the mapping handed to the driver.

        A name bound twice keeps its last value. Every placeholder must have a
        value and every bound name must appear in the statement.

        Raises:
            - ParameterBindingError: On any mismatch between the two.
        """
        values: Dict[str, Any] = {}
        for name, value in parameters:
            values[name] = value

        missing = [name for name in self.names if name not in values]
        if missing:
            raise ParameterBindingError(
                "Invalid parameter number: no value bound for "
                + ", ".join(f":{name}" for name in missing)
            )
        unknown = [name for name in values if name not in self.names]
        if unknown:
            raise ParameterBindingError(
                "Invalid parameter number: parameter was not defined: "
                + ", ".join(f":{name}" for name in unknown)
            )
        return values


def _skip_quoted(sql: str, start: int, quote: str) -> int:
    """Returns the index just past the quoted section opened at `start`."""
    i = start + 1
    length = len(sql)
    while i < length:
        ch = sql[i]
        if ch == "\\" and quote != "`":
            i += 2
            continue
        if ch == quote:
            # A doubled quote is an escaped quote, not the end of the section.
            if i + 1 < length and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return length


def _skip_until(sql: str, start: int, terminator: str) -> int:
    end = sql.find(terminator, start)
    return len(sql) if end == -1 else end + len(terminator)


def prepare(sql: str) -> PreparedStatement:
    """
    Rewrites `:name` placeholders into pyformat and escapes literal `%`.

    Workflow:
    1.  Walks the query once, copying quoted strings, quoted identifiers,
        comments and dollar-quoted bodies through untouched (apart from `%`
        escaping), so a `:word` inside them is never taken for a placeholder.
    2.  Keeps PostgreSQL `::type` casts as they are.
    3.  Replaces each remaining `:name` with `%(name)s` and records the name.

    Args:
        - sql (str): The query, e.g. "select * from users where id = :id".

    Returns:
        - The `PreparedStatement` for the query.
    """
    out: List[str] = []
    names: List[str] = []
    i = 0
    length = len(sql)

    while i < length:
        ch = sql[i]
        end = None

        if ch in _QUOTES:
            end = _skip_quoted(sql, i, ch)
        elif sql.startswith("--", i):
            end = _skip_until(sql, i + 2, "\n")
        elif sql.startswith("/*", i):
            end = _skip_until(sql, i + 2, "*/")
        elif ch == "$":
            tag = _DOLLAR_TAG.match(sql, i)
            if tag:
                end = _skip_until(sql, tag.end(), tag.group(0))

        if end is not None:
            out.append(sql[i:end].replace("%", "%%"))
            i = end
            continue

        if sql.startswith("::", i):
            out.append("::")
            i += 2
            continue

        if ch == ":":
            match = _PLACEHOLDER.match(sql, i)
            if match:
                name = match.group(1)
                if name not in names:
                    names.append(name)
                out.append(f"%({name})s")
                i = match.end()
                continue

        out.append("%%" if ch == "%" else ch)
        i += 1

    return PreparedStatement(sql=sql, text="".join(out), names=tuple(names))
