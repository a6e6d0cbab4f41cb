"""
a11y-query
----------
Find elements by accessibility role, accessible name and text, and wait for
them with bounded retries.

    from a11y_query import PlaywrightDocument, configure, find

    configure(document=PlaywrightDocument(page))
    button = await find({"role": "button", "name": "Save"})
"""

from a11y_query.core.errors import (
    QueryEmptyError,
    QueryError,
    QueryFoundError,
    QueryIframeError,
    QueryMultipleError,
    QueryParametersError,
    QueryTimeoutError,
)
from a11y_query.core.launch import launch_args
from a11y_query.core.queries import find, find_all
from a11y_query.core.query import FindOptions, Query
from a11y_query.core.wait import wait_for
from a11y_query.selectors.document import DocumentContext, PlaywrightDocument
from a11y_query.selectors.matcher import query_all
from a11y_query.utils.config import Configuration, configure, configured, get_config

__all__ = [
    "find",
    "find_all",
    "query_all",
    "wait_for",
    "launch_args",
    "configure",
    "configured",
    "get_config",
    "Configuration",
    "Query",
    "FindOptions",
    "DocumentContext",
    "PlaywrightDocument",
    "QueryError",
    "QueryParametersError",
    "QueryEmptyError",
    "QueryMultipleError",
    "QueryIframeError",
    "QueryTimeoutError",
    "QueryFoundError",
]
