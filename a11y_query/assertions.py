# a11y_query/assertions.py
from __future__ import annotations

"""Assertion helpers
--------------------
Test-facing checks built on find()/wait_for(). Failures raise AssertionError
so they read naturally under pytest; the underlying QueryError, if any, is
chained as the cause.
"""

import re
from typing import Any, Awaitable, Dict, List, Optional

from pydantic import ValidationError
from rich.pretty import pretty_repr

from a11y_query.core.errors import QueryEmptyError, QueryError, QueryFoundError, QueryParametersError
from a11y_query.core.queries import QueryLike, TimeoutOption, find, find_all
from a11y_query.core.query import Query, coerce_query, matches_text
from a11y_query.core.wait import wait_for
from a11y_query.selectors.document import DocumentContext, release_all
from a11y_query.selectors.matcher import same_value
from a11y_query.selectors.names import flatten_text
from a11y_query.utils.config import Configuration, get_config

_VISIBLE_SCRIPT = """
(node) => {
  const style = (node.ownerDocument.defaultView || window).getComputedStyle(node);
  if (!style || style.visibility === 'hidden') return false;
  const rect = node.getBoundingClientRect();
  return !!(rect.top || rect.bottom || rect.width || rect.height);
}
"""
_FOCUSED_SCRIPT = "(node) => node === node.ownerDocument.activeElement"
_TEXT_SCRIPT = "(node) => node.textContent"
_ROLE_SCRIPT = "(node) => node.computedRole"
_MATCHES_SCRIPT = "(node, selector) => node.matches(selector)"
_SAME_SCRIPT = "(node, other) => node === other"


def _document(document: Optional[DocumentContext], cfg: Configuration) -> DocumentContext:
    doc = document if document is not None else cfg.document
    if doc is None:
        raise QueryParametersError("No document context: pass document=... or configure(document=...).")
    return doc


def _expected_of(query: Query) -> Dict[str, Any]:
    expected: Dict[str, Any] = {}
    for key in ("role", "name", "text"):
        val = getattr(query, key)
        if val:
            expected[key] = val
    expected.update(query.properties)
    return expected


def _value_matches(expected: Any, actual: Any) -> bool:
    if isinstance(expected, (str, re.Pattern)):
        return isinstance(actual, str) and matches_text(expected, actual)
    return same_value(actual, expected)


async def assert_matches_query(
    handle: Any,
    query: QueryLike,
    *,
    document: Optional[DocumentContext] = None,
    config: Optional[Configuration] = None,
) -> Dict[str, Any]:
    """
    Check an element against a (partial) query and return the snapshot used.

    `text` is compared against the element's flattened text content and
    `selector` with Element.matches(); everything else against the
    accessibility snapshot.
    """
    try:
        q = query if isinstance(query, Query) else Query.model_validate(dict(query))
    except ValidationError as exc:
        raise QueryParametersError(f"Invalid query: {exc.errors()[0]['msg']}") from exc
    doc = _document(document, config or get_config())

    snapshot: Dict[str, Any] = dict(await doc.snapshot(handle) or {})
    if q.text:
        snapshot["text"] = flatten_text(await doc.evaluate(handle, _TEXT_SCRIPT) or "").strip()
    # the snapshot can omit role even when the element has one
    if q.role and not snapshot.get("role"):
        snapshot["role"] = await doc.evaluate(handle, _ROLE_SCRIPT)

    problems: List[str] = []
    if q.selector and not await doc.evaluate(handle, _MATCHES_SCRIPT, q.selector):
        problems.append(f"selector: element does not match {q.selector!r}")
    for key, expected in _expected_of(q).items():
        actual = snapshot.get(key)
        if not _value_matches(expected, actual):
            problems.append(f"{key}: expected {expected!r}, received {actual!r}")

    if problems:
        raise AssertionError(
            "Element does not match the query.\n"
            + "\n".join(f"  - {p}" for p in problems)
            + f"\n\nExpected: {pretty_repr(_expected_of(q))}\nReceived: {pretty_repr(snapshot)}"
        )
    return snapshot


async def assert_same_element(
    handle: Any,
    expected: Any,
    *,
    document: Optional[DocumentContext] = None,
    config: Optional[Configuration] = None,
) -> None:
    doc = _document(document, config or get_config())
    if not await doc.evaluate(handle, _SAME_SCRIPT, expected):
        raise AssertionError("Expected the elements to be the same.")


async def _assert_state(
    handle: Any,
    script: str,
    wanted: bool,
    description: str,
    *,
    timeout: TimeoutOption,
    document: Optional[DocumentContext],
    config: Optional[Configuration],
) -> None:
    cfg = config or get_config()
    doc = _document(document, cfg)
    message = f"Expected the element to{'' if wanted else ' not'} {description}."

    async def attempt() -> bool:
        state = bool(await doc.evaluate(handle, script))
        if state is not wanted:
            raise AssertionError(message)
        return state

    try:
        await wait_for(attempt, timeout=timeout, config=cfg)
    except AssertionError:
        raise
    except Exception as exc:
        raise AssertionError(f"{message}\nInstead, it raised the following error:\n{exc!r}") from exc


async def assert_visible(
    handle: Any,
    visible: bool = True,
    *,
    timeout: TimeoutOption = None,
    document: Optional[DocumentContext] = None,
    config: Optional[Configuration] = None,
) -> None:
    """Wait for the element to become visible (or hidden with visible=False)."""
    await _assert_state(
        handle, _VISIBLE_SCRIPT, visible, "be visible", timeout=timeout, document=document, config=config
    )


async def assert_focused(
    handle: Any,
    focused: bool = True,
    *,
    timeout: TimeoutOption = None,
    document: Optional[DocumentContext] = None,
    config: Optional[Configuration] = None,
) -> None:
    await _assert_state(
        handle, _FOCUSED_SCRIPT, focused, "have focus", timeout=timeout, document=document, config=config
    )


async def assert_found(
    query: QueryLike,
    *,
    timeout: TimeoutOption = None,
    document: Optional[DocumentContext] = None,
    config: Optional[Configuration] = None,
    **options: Any,
) -> Any:
    """Wait until exactly one node matches and return its handle."""
    cfg = config or get_config()
    query = coerce_query(query)
    doc = _document(document, cfg)

    async def attempt() -> Any:
        return await find(query, timeout=0, document=doc, config=cfg, **options)

    async def discard(handle: Any) -> None:
        await release_all(doc, [handle])

    try:
        return await wait_for(attempt, timeout=timeout, config=cfg, discard=discard)
    except QueryParametersError:
        raise
    except QueryError as exc:
        raise AssertionError(f"Expected the query to be found.\nInstead, it raised {exc.name}: {exc}") from exc


async def assert_not_found(
    query: QueryLike,
    *,
    timeout: TimeoutOption = None,
    document: Optional[DocumentContext] = None,
    config: Optional[Configuration] = None,
    **options: Any,
) -> None:
    """Wait until no node matches the query."""
    cfg = config or get_config()
    query = coerce_query(query)
    doc = _document(document, cfg)

    async def attempt() -> bool:
        try:
            handles = await find_all(query, timeout=0, document=doc, config=cfg, **options)
        except QueryEmptyError:
            return True
        await release_all(doc, handles)
        raise QueryFoundError(f"Found {len(handles)} element(s) matching the query.")

    try:
        await wait_for(attempt, timeout=timeout, config=cfg)
    except QueryFoundError as exc:
        raise AssertionError(f"Expected the query not to be found.\n{exc.name}: {exc}") from exc


async def assert_raises_query_empty(awaitable: Awaitable[Any]) -> QueryEmptyError:
    """Await a lookup and require it to fail with QueryEmptyError."""
    try:
        result = await awaitable
    except QueryEmptyError as exc:
        return exc
    except Exception as exc:
        raise AssertionError(
            f'Expected the query to raise "QueryEmptyError", instead it raised:\n{exc!r}'
        ) from exc
    raise AssertionError(
        f'Expected the query to raise "QueryEmptyError", instead it returned {pretty_repr(result)}.'
    )
