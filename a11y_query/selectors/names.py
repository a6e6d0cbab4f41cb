# a11y_query/selectors/names.py
from __future__ import annotations

"""Accessible name resolution
-----------------------------
Chromium's computedName comes back empty for controls named only through a
<label>, so that one case is computed here from the label text. Every other
case defers to the engine's computed name.
"""

import re

from a11y_query.selectors.document import NodeInfo

_WS = re.compile(r"\s+")


def flatten_text(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return _WS.sub(" ", text or "")


def label_name(node: NodeInfo) -> str:
    """Joined text of the labels whose control is this node."""
    parts = [flatten_text(t).strip() for t in node.label_texts]
    return " ".join(p for p in parts if p)


def resolve_accessible_name(node: NodeInfo) -> str:
    """
    Precedence, first match wins:
      1. aria-labelledby pointing at an existing element -> engine name
      2. non-empty aria-label                            -> engine name
      3. associated <label> elements                     -> label text
      4. anything else                                   -> engine name
    """
    if node.labelledby_resolves:
        return node.computed_name
    if node.aria_label:
        return node.computed_name
    if node.has_labels:
        return label_name(node)
    return node.computed_name
