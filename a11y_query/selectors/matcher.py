# a11y_query/selectors/matcher.py
from __future__ import annotations

"""Query matching
-----------------
One poll of the live tree: enumerate nodes under the root with the selector,
then narrow them by role, accessible name, text, visibility and finally
snapshot properties. Nothing is cached between calls. Every handle that is
created but not returned is disposed before returning.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from a11y_query.core.errors import QueryIframeError, QueryParametersError
from a11y_query.core.query import Query, coerce_query, matches_text
from a11y_query.selectors.document import DocumentContext, NodeInfo, release_all
from a11y_query.selectors.names import flatten_text, resolve_accessible_name
from a11y_query.utils.logger import get_logger
from a11y_query.utils.timing import measure

log = get_logger(__name__)


# ---------------- Node predicates ----------------

def is_visible(node: NodeInfo) -> bool:
    """Not visibility:hidden, and the box has some extent or offset."""
    if node.visibility == "hidden":
        return False
    r = node.rect
    return bool(r.top or r.bottom or r.width or r.height)


def node_text(node: NodeInfo) -> str:
    return flatten_text(node.text).strip()


def same_value(actual: Any, expected: Any) -> bool:
    """Snapshot comparison: True never equals 1, and a missing key equals None."""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return actual is expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def snapshot_matches(snapshot: Mapping[str, Any], properties: Mapping[str, Any]) -> bool:
    return all(same_value(snapshot.get(k), v) for k, v in properties.items())


def filter_nodes(query: Query, nodes: Sequence[NodeInfo], *, visible: bool = True) -> List[NodeInfo]:
    """Apply role -> name -> text -> visibility, keeping document order."""
    kept = list(nodes)
    if query.role:
        kept = [n for n in kept if n.role == query.role]
    if query.name:
        kept = [n for n in kept if matches_text(query.name, resolve_accessible_name(n))]
    if query.text:
        kept = [n for n in kept if matches_text(query.text, node_text(n))]
    if visible:
        kept = [n for n in kept if is_visible(n)]
    return kept


# ---------------- Root resolution ----------------

async def _resolve_root(document: DocumentContext, root: Any) -> tuple[Any, bool]:
    """
    Return (root handle, owned). Owned handles were created here and must be
    disposed by the caller. An iframe root is swapped for its document.
    """
    owned = root is None
    handle = await document.document() if owned else root
    try:
        if await document.is_frame(handle):
            frame_doc = await document.frame_document(handle)
            if frame_doc is None:
                raise QueryIframeError("Content frame document is not available in the iframe.")
            if owned:
                await document.dispose(handle)
            return frame_doc, True
    except BaseException:
        if owned:
            await release_all(document, [handle])
        raise
    return handle, owned


# ---------------- Public ----------------

@measure("query_all")
async def query_all(
    query: Union[Query, Mapping[str, Any]],
    *,
    document: Optional[DocumentContext] = None,
    root: Any = None,
    visible: bool = True,
) -> List[Any]:
    """
    Handles of every node matching `query` right now, in document order.
    No retrying happens here; see find_all() for that.
    """
    query = coerce_query(query)
    if document is None:
        raise QueryParametersError("No document context: pass document=... or configure(document=...).")

    root_handle, owned = await _resolve_root(document, root)
    try:
        batch = await document.candidates(root_handle, query.selector or "*")
    finally:
        if owned:
            await release_all(document, [root_handle])

    try:
        kept = filter_nodes(query, batch.infos, visible=visible)
        handles = await batch.take([n.index for n in kept])
    finally:
        await batch.release()

    log.debug(f"{query.describe()}: {len(batch.infos)} candidate(s), {len(handles)} after filters")
    if not query.properties:
        return handles

    matched: List[Any] = []
    pending = list(handles)
    try:
        while pending:
            snap: Dict[str, Any] = await document.snapshot(pending[0]) or {}
            handle = pending.pop(0)
            if snapshot_matches(snap, query.properties):
                matched.append(handle)
            else:
                await document.dispose(handle)
    except BaseException:
        await release_all(document, [*matched, *pending])
        raise
    return matched
