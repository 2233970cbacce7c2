"""Failure taxonomy for one scrape.

Every failure in the collect-and-render pipeline is raised as an
``ExporterError`` subclass tagged with the stage that failed.  The HTTP
layer turns these into a 5xx response for the current request only;
the process keeps serving.
"""

from __future__ import annotations


class ExporterError(Exception):
    """Base class for scrape failures."""

    stage = "internal"

    def __init__(self, message: str, *, query: str | None = None) -> None:
        super().__init__(message)
        self.query = query


class DatabaseConnectError(ExporterError):
    """Host unreachable, authentication rejected, or unknown database."""

    stage = "connect"


class QueryPrepareError(ExporterError):
    """The server rejected a statement before running it."""

    stage = "prepare"


class QueryExecutionError(ExporterError):
    stage = "execute"


class DecodeError(ExporterError):
    """A result row did not match the record's column layout."""

    stage = "decode"

    def __init__(self, message: str, *, column: int | None = None) -> None:
        super().__init__(message)
        self.column = column
        # Filled in by the collector from the query's select list.
        self.column_name: str | None = None

    def __str__(self) -> str:
        message = super().__str__()
        if self.column_name is not None:
            return f"{message} ({self.column_name})"
        return message
