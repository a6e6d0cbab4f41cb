"""In-memory DocumentContext used by the unit tests (no browser needed)."""

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from a11y_query.selectors.document import NodeInfo, Rect

_ids = itertools.count(1)


@dataclass(eq=False)
class FakeNode:
    tag: str = "div"
    role: str = ""
    computed_name: str = ""
    text: str = ""
    labelledby_resolves: bool = False
    aria_label: str = ""
    labels: Optional[List[str]] = None  # texts of labels controlling this node
    visibility: str = "visible"
    rect: Rect = field(default_factory=lambda: Rect(top=10, bottom=30, width=100, height=20))
    snapshot: Dict[str, Any] = field(default_factory=dict)
    selectors: Set[str] = field(default_factory=set)
    children: List["FakeNode"] = field(default_factory=list)
    frame_doc: Optional["FakeNode"] = None

    def matches(self, selector: str) -> bool:
        return selector in ("*", self.tag) or selector in self.selectors

    def descendants(self) -> List["FakeNode"]:
        out: List[FakeNode] = []
        for c in self.children:
            out.append(c)
            out.extend(c.descendants())
        return out

    def info(self, index: int) -> NodeInfo:
        return NodeInfo(
            index=index,
            tag=self.tag,
            role=self.role,
            computed_name=self.computed_name,
            labelledby_resolves=self.labelledby_resolves,
            aria_label=self.aria_label,
            has_labels=self.labels is not None,
            label_texts=list(self.labels or []),
            text=self.text,
            visibility=self.visibility,
            rect=self.rect,
        )


def button(name: str, **kw: Any) -> FakeNode:
    return FakeNode(tag="button", role="button", computed_name=name, text=name, **kw)


@dataclass(eq=False)
class FakeHandle:
    node: FakeNode
    id: int = field(default_factory=lambda: next(_ids))
    disposed: bool = False

    def __repr__(self) -> str:
        return f"<FakeHandle {self.id} {self.node.tag}>"


class FakeBatch:
    def __init__(self, doc: "FakeDocument", nodes: List[FakeNode]) -> None:
        self.doc = doc
        self.nodes = nodes
        self.infos = [n.info(i) for i, n in enumerate(nodes)]
        self.released = False

    async def take(self, indices):
        return [self.doc.new_handle(self.nodes[i]) for i in indices]

    async def release(self) -> None:
        self.released = True
        self.doc.batches_released += 1


class FakeDocument:
    """
    Tree of FakeNodes with handle bookkeeping.

    `live` holds every handle created and not yet disposed, so tests can
    check that nothing leaked. `delay` (seconds) slows each enumeration down.
    """

    def __init__(self, *children: FakeNode) -> None:
        self.root = FakeNode(tag="#document", children=list(children))
        self.handles: List[FakeHandle] = []
        self.candidate_calls = 0
        self.batches_released = 0
        self.snapshot_calls = 0
        self.delay = 0.0
        self.focused: Optional[FakeNode] = None

    # ---- test helpers ----

    def add(self, *nodes: FakeNode) -> None:
        self.root.children.extend(nodes)

    def clear(self) -> None:
        self.root.children.clear()

    def new_handle(self, node: FakeNode) -> FakeHandle:
        h = FakeHandle(node)
        self.handles.append(h)
        return h

    @property
    def live(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.disposed]

    # ---- DocumentContext ----

    async def document(self) -> FakeHandle:
        return self.new_handle(self.root)

    async def is_frame(self, handle: FakeHandle) -> bool:
        return handle.node.tag == "iframe"

    async def frame_document(self, handle: FakeHandle) -> Optional[FakeHandle]:
        if handle.node.frame_doc is None:
            return None
        return self.new_handle(handle.node.frame_doc)

    async def candidates(self, root: FakeHandle, selector: str) -> FakeBatch:
        self.candidate_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return FakeBatch(self, [n for n in root.node.descendants() if n.matches(selector)])

    async def snapshot(self, handle: FakeHandle) -> Dict[str, Any]:
        self.snapshot_calls += 1
        node = handle.node
        snap: Dict[str, Any] = {"role": node.role, "name": node.computed_name}
        snap.update(node.snapshot)
        return snap

    async def evaluate(self, handle: FakeHandle, script: str, arg: Any = None) -> Any:
        node = handle.node
        if "activeElement" in script:
            return node is self.focused
        if "getBoundingClientRect" in script:
            r = node.rect
            return node.visibility != "hidden" and bool(r.top or r.bottom or r.width or r.height)
        if "matches(selector)" in script:
            return node.matches(arg)
        if "node === other" in script:
            return node is arg.node
        if "computedRole" in script:
            return node.role
        if "textContent" in script:
            return node.text
        raise NotImplementedError(script)

    async def dispose(self, handle: FakeHandle) -> None:
        assert not handle.disposed, f"{handle!r} disposed twice"
        handle.disposed = True
