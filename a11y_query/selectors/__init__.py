"""
Selectors package
-----------------
Live-document access, accessible-name resolution and the query matcher.
"""

from .document import CandidateBatch, DocumentContext, NodeInfo, PlaywrightDocument, Rect
from .matcher import query_all
from .names import resolve_accessible_name

__all__ = [
    "CandidateBatch",
    "DocumentContext",
    "NodeInfo",
    "PlaywrightDocument",
    "Rect",
    "query_all",
    "resolve_accessible_name",
]
