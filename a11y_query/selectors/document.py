# a11y_query/selectors/document.py
from __future__ import annotations

"""Live document access
-----------------------
The matcher never talks to Playwright directly. It goes through a
`DocumentContext`, which can enumerate candidates under a root, describe them
in one round-trip, hand out handles for the ones that survive filtering, and
fetch accessibility snapshots. `PlaywrightDocument` is the implementation
backed by an async Playwright `Page`.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from playwright.async_api import CDPSession, ElementHandle, Error as PlaywrightError, JSHandle, Page

from a11y_query.utils.logger import get_logger

log = get_logger(__name__)


@dataclass
class Rect:
    top: float = 0.0
    bottom: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass
class NodeInfo:
    """Facts about one candidate node, gathered in a single evaluation."""

    index: int
    tag: str = ""
    role: str = ""
    computed_name: str = ""
    labelledby_resolves: bool = False
    aria_label: str = ""
    has_labels: bool = False
    label_texts: List[str] = field(default_factory=list)
    text: str = ""
    visibility: str = "visible"
    rect: Rect = field(default_factory=Rect)

    @classmethod
    def from_dict(cls, index: int, d: Dict[str, Any]) -> "NodeInfo":
        r = d.get("rect") or {}
        return cls(
            index=index,
            tag=d.get("tag") or "",
            role=d.get("role") or "",
            computed_name=d.get("computedName") or "",
            labelledby_resolves=bool(d.get("labelledbyResolves")),
            aria_label=d.get("ariaLabel") or "",
            has_labels=bool(d.get("hasLabels")),
            label_texts=list(d.get("labelTexts") or []),
            text=d.get("text") or "",
            visibility=d.get("visibility") or "visible",
            rect=Rect(
                top=float(r.get("top") or 0),
                bottom=float(r.get("bottom") or 0),
                width=float(r.get("width") or 0),
                height=float(r.get("height") or 0),
            ),
        )


@runtime_checkable
class CandidateBatch(Protocol):
    """Nodes selected by one enumeration. Must be released after use."""

    infos: Sequence[NodeInfo]

    async def take(self, indices: Sequence[int]) -> List[Any]:
        """Handles for the given candidates, in the order given."""

    async def release(self) -> None:
        ...


@runtime_checkable
class DocumentContext(Protocol):
    async def document(self) -> Any:
        """Handle to the top-level document node."""

    async def is_frame(self, handle: Any) -> bool:
        ...

    async def frame_document(self, handle: Any) -> Optional[Any]:
        """Document of an iframe element, or None if it is not reachable."""

    async def candidates(self, root: Any, selector: str) -> CandidateBatch:
        ...

    async def snapshot(self, handle: Any) -> Dict[str, Any]:
        """Accessibility snapshot (role, name, states) of the node."""

    async def evaluate(self, handle: Any, script: str, arg: Any = None) -> Any:
        ...

    async def dispose(self, handle: Any) -> None:
        ...


# ---------------- Playwright implementation ----------------

_SELECT_SCRIPT = """(root, selector) => Array.from((root || document).querySelectorAll(selector))"""

# Needs Chromium launched with --enable-blink-features=ComputedAccessibilityInfo
# for computedRole/computedName; see core.launch.launch_args().
_DESCRIBE_SCRIPT = """
(nodes) => nodes.map((node) => {
  const doc = node.ownerDocument || document;
  const labelledby = node.getAttribute('aria-labelledby');
  const labels = node.labels ? Array.from(node.labels) : [];
  const style = (doc.defaultView || window).getComputedStyle(node);
  const r = node.getBoundingClientRect();
  return {
    tag: node.tagName.toLowerCase(),
    role: node.computedRole || '',
    computedName: node.computedName || '',
    labelledbyResolves: !!labelledby && labelledby.split(' ').some((id) => doc.getElementById(id)),
    ariaLabel: node.getAttribute('aria-label') || '',
    hasLabels: labels.length > 0,
    labelTexts: labels.filter((label) => label.control === node).map((label) => label.textContent || ''),
    text: node.textContent || '',
    visibility: style ? style.visibility : 'hidden',
    rect: {top: r.top, bottom: r.bottom, width: r.width, height: r.height},
  };
})
"""

_PICK_SCRIPT = """(nodes, indices) => indices.map((i) => nodes[i])"""

# CDP Runtime.evaluate runs in the top frame, so nodes are parked there.
_PARKED_GLOBAL = "__a11yQuerySnapshotTarget"
_OBJECT_GROUP = "a11y-query-snapshot"
_PARK_SCRIPT = """(node, key) => { (window.top || window)[key] = node; }"""
_UNPARK_SCRIPT = """(node, key) => { delete (window.top || window)[key]; }"""

# AX property tokens that mean "not set"
_UNSET_TOKENS = {"invalid": "false", "haspopup": "false"}
_TRISTATE = {"true": True, "false": False}


def snapshot_from_ax_node(ax: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten a CDP Accessibility.AXNode into snapshot keys:
    role, name, value, description plus the AX properties.
    `checked` and `pressed` become True, False or "mixed".
    """
    if ax.get("ignored"):
        return {}
    snap: Dict[str, Any] = {}
    for key in ("role", "name", "value", "description"):
        val = (ax.get(key) or {}).get("value")
        if val is not None and val != "":
            snap[key] = val
    for prop in ax.get("properties") or []:
        name = prop.get("name")
        val = (prop.get("value") or {}).get("value")
        if not name or val is None:
            continue
        if name in ("checked", "pressed"):
            val = _TRISTATE.get(val, val) if isinstance(val, str) else val
        elif _UNSET_TOKENS.get(name) == val:
            continue
        snap[name] = val
    return snap


class PlaywrightBatch:
    def __init__(self, nodes: JSHandle, infos: List[NodeInfo]) -> None:
        self._nodes = nodes
        self.infos = infos

    async def take(self, indices: Sequence[int]) -> List[ElementHandle]:
        if not indices:
            return []
        picked = await self._nodes.evaluate_handle(_PICK_SCRIPT, list(indices))
        try:
            props = await picked.get_properties()
            ordered = sorted(((int(k), v) for k, v in props.items() if k.isdigit()), key=lambda kv: kv[0])
            handles: List[ElementHandle] = []
            for _, prop in ordered:
                el = prop.as_element()
                if el is None:
                    await prop.dispose()
                    continue
                handles.append(el)
            return handles
        finally:
            await picked.dispose()

    async def release(self) -> None:
        await self._nodes.dispose()


class PlaywrightDocument:
    """DocumentContext over an async Playwright page."""

    def __init__(self, page: Page) -> None:
        self.page = page
        self._session: Optional[CDPSession] = None
        self._snapshot_lock = asyncio.Lock()

    async def document(self) -> JSHandle:
        return await self.page.evaluate_handle("document")

    async def is_frame(self, handle: JSHandle) -> bool:
        return bool(await handle.evaluate("(node) => node.tagName === 'IFRAME'"))

    async def frame_document(self, handle: JSHandle) -> Optional[JSHandle]:
        el = handle.as_element()
        frame = await el.content_frame() if el is not None else None
        if frame is None:
            return None
        return await frame.evaluate_handle("document")

    async def candidates(self, root: JSHandle, selector: str) -> PlaywrightBatch:
        nodes = await root.evaluate_handle(_SELECT_SCRIPT, selector)
        try:
            raw = await nodes.evaluate(_DESCRIBE_SCRIPT)
        except PlaywrightError:
            await nodes.dispose()
            raise
        return PlaywrightBatch(nodes, [NodeInfo.from_dict(i, d) for i, d in enumerate(raw)])

    async def _cdp(self) -> CDPSession:
        if self._session is None:
            self._session = await self.page.context.new_cdp_session(self.page)
        return self._session

    async def snapshot(self, handle: ElementHandle) -> Dict[str, Any]:
        """
        Accessibility snapshot of one node, read over CDP.

        The node is parked on a global of the top window so that a CDP remote
        object can be obtained for it; Playwright handles carry no CDP id.
        """
        async with self._snapshot_lock:
            client = await self._cdp()
            await handle.evaluate(_PARK_SCRIPT, _PARKED_GLOBAL)
            try:
                found = await client.send(
                    "Runtime.evaluate",
                    {"expression": f"globalThis.{_PARKED_GLOBAL}", "objectGroup": _OBJECT_GROUP},
                )
                object_id = (found.get("result") or {}).get("objectId")
                if not object_id:
                    return {}
                tree = await client.send(
                    "Accessibility.getPartialAXTree",
                    {"objectId": object_id, "fetchRelatives": False},
                )
            finally:
                await client.send("Runtime.releaseObjectGroup", {"objectGroup": _OBJECT_GROUP})
                await handle.evaluate(_UNPARK_SCRIPT, _PARKED_GLOBAL)
        nodes = tree.get("nodes") or []
        return snapshot_from_ax_node(nodes[0]) if nodes else {}

    async def close(self) -> None:
        """Detach the cached CDP session, if any."""
        if self._session is not None:
            session, self._session = self._session, None
            await session.detach()

    async def evaluate(self, handle: JSHandle, script: str, arg: Any = None) -> Any:
        return await handle.evaluate(script, arg)

    async def dispose(self, handle: JSHandle) -> None:
        await handle.dispose()


async def release_all(document: DocumentContext, handles: Sequence[Any]) -> None:
    """
    Dispose every handle. A node that is already gone cannot be disposed
    twice; that is logged and skipped so the remaining handles still go.
    """
    for h in handles:
        try:
            await document.dispose(h)
        except PlaywrightError as exc:
            log.debug(f"Handle dispose failed: {exc!r}")
