# a11y_query/core/errors.py
from __future__ import annotations

"""Query error taxonomy
-----------------------
Every failure surfaced by find/find_all/wait_for is a `QueryError` tagged
with a kind in `name`, so callers can branch on either the class or the tag.
Each error records the stack it was constructed on; the stack attributor
later merges it with the caller's stack.
"""

import traceback
from typing import List


class QueryError(Exception):
    """Base error. `name` is the kind tag, e.g. "QueryEmptyError"."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name
        self.message = message
        self.stack: List[traceback.FrameSummary] = traceback.extract_stack()[:-1]
        self.attributed = False

    def __repr__(self) -> str:
        return f"{self.name}({self.message!r})"


class QueryParametersError(QueryError):
    """The query has nothing to match on. Raised before any polling starts."""

    def __init__(self, message: str) -> None:
        super().__init__("QueryParametersError", message)


class QueryEmptyError(QueryError):
    def __init__(self, message: str) -> None:
        super().__init__("QueryEmptyError", message)


class QueryMultipleError(QueryError):
    def __init__(self, message: str) -> None:
        super().__init__("QueryMultipleError", message)


class QueryIframeError(QueryError):
    def __init__(self, message: str) -> None:
        super().__init__("QueryIframeError", message)


class QueryTimeoutError(QueryError):
    """A wait timed out before any attempt had a chance to fail."""

    def __init__(self, message: str) -> None:
        super().__init__("QueryTimeoutError", message)


class QueryFoundError(QueryError):
    """Used by the negated assertion: a match exists where none was expected."""

    def __init__(self, message: str = "Found an element matching the query.") -> None:
        super().__init__("QueryFoundError", message)


__all__ = [
    "QueryError",
    "QueryParametersError",
    "QueryEmptyError",
    "QueryMultipleError",
    "QueryIframeError",
    "QueryTimeoutError",
    "QueryFoundError",
]
