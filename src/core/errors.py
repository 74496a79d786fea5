from typing import Any, Dict, Optional


class Error(Exception):
    """Base exception for contest engine errors."""

    pass


class ConfigurationError(Error):
    """Raised when configuration is invalid."""

    pass


class QueryError(Error):
    """Base class for errors raised by the contest query entry points.

    ``reason`` is a stable machine-readable code; ``context`` carries the
    offending values (chain ids, contest ids, cursor text, ...).
    """

    kind = "QUERY_ERROR"

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.context: Dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} ({self.reason}: {self.context})"
        return self.message


class InputInvalidError(QueryError):
    """Malformed cursor, time range, selector or filter value."""

    kind = "INPUT_INVALID"


class ResourceUnsupportedError(QueryError):
    """One or more chain ids are outside the supported set."""

    kind = "RESOURCE_UNSUPPORTED"


class NotFoundError(QueryError):
    """Requested data (e.g. a leaderboard version) is absent."""

    kind = "NOT_FOUND"
