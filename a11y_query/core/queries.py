# a11y_query/core/queries.py
from __future__ import annotations

"""find / find_all
------------------
Public lookups: run the matcher under wait_for() until something matches,
then enforce multiplicity. Options left as None are read from the
configuration at call time.
"""

from typing import Any, List, Literal, Mapping, Optional, Union

from a11y_query.core.errors import QueryEmptyError, QueryError, QueryMultipleError, QueryParametersError
from a11y_query.core.query import FindOptions, Query, coerce_query
from a11y_query.core.stack import StackAttributor
from a11y_query.core.wait import wait_for
from a11y_query.selectors.document import DocumentContext, release_all
from a11y_query.selectors.matcher import query_all
from a11y_query.utils.config import Configuration, get_config
from a11y_query.utils.logger import get_logger

log = get_logger(__name__)

QueryLike = Union[Query, Mapping[str, Any]]
TimeoutOption = Union[int, float, Literal[False], None]


def _empty_message(timeout: TimeoutOption) -> str:
    return "Unable to find any nodes" + (f" within {timeout}ms." if timeout else ".")


def _prepare(
    query: QueryLike,
    options: FindOptions,
    cfg: Configuration,
) -> tuple[Query, FindOptions]:
    q = coerce_query(query)
    opts = options.resolve(cfg)
    if opts.document is None:
        raise QueryParametersError("No document context: pass document=... or configure(document=...).")
    return q, opts


async def find_all(
    query: QueryLike,
    *,
    root: Any = None,
    document: Optional[DocumentContext] = None,
    visible: Optional[bool] = None,
    timeout: TimeoutOption = None,
    config: Optional[Configuration] = None,
) -> List[Any]:
    """
    Wait until at least one node matches and return all matching handles.

    Raises QueryParametersError at once for an unusable query, and
    QueryEmptyError if nothing matched before the timeout.
    """
    attributor = StackAttributor()
    caller = attributor.capture()
    cfg = config or get_config()
    try:
        q, opts = _prepare(query, FindOptions(root, document, visible, timeout), cfg)
    except QueryError as exc:
        raise attributor.attribute(exc, caller)

    doc: DocumentContext = opts.document

    async def attempt() -> List[Any]:
        handles = await query_all(q, document=doc, root=opts.root, visible=bool(opts.visible))
        if not handles:
            raise QueryEmptyError(_empty_message(opts.timeout))
        return handles

    async def discard(handles: List[Any]) -> None:
        await release_all(doc, handles)

    return await wait_for(
        attempt,
        timeout=opts.timeout,
        config=cfg,
        timeout_error=lambda t: QueryEmptyError(_empty_message(t)),
        discard=discard,
    )


async def find(
    query: QueryLike,
    *,
    root: Any = None,
    document: Optional[DocumentContext] = None,
    visible: Optional[bool] = None,
    timeout: TimeoutOption = None,
    config: Optional[Configuration] = None,
) -> Any:
    """
    Wait for exactly one matching node and return its handle.

    More than one match releases every matched handle and raises
    QueryMultipleError; no match raises QueryEmptyError.
    """
    attributor = StackAttributor()
    caller = attributor.capture()
    cfg = config or get_config()
    try:
        q, opts = _prepare(query, FindOptions(root, document, visible, timeout), cfg)
    except QueryError as exc:
        raise attributor.attribute(exc, caller)

    handles = await find_all(
        q,
        root=opts.root,
        document=opts.document,
        visible=opts.visible,
        timeout=opts.timeout,
        config=cfg,
    )
    if len(handles) > 1:
        log.debug(f"Found {len(handles)} nodes where one was expected; releasing them")
        await release_all(opts.document, handles)
        raise attributor.attribute(QueryMultipleError("Found more than one node."), caller)
    return handles[0]
