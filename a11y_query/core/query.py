# a11y_query/core/query.py
from __future__ import annotations

"""Query schema
---------------
`Query` is what callers describe an element with: role, accessible name,
text and a CSS selector, plus accessibility properties (checked, level, ...)
compared against the node's snapshot. Unknown keyword arguments are treated
as properties and checked against the keys an accessibility snapshot can
carry.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Literal, Mapping, Optional, Pattern, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from a11y_query.core.errors import QueryParametersError
from a11y_query.utils.config import Configuration

# Keys an accessibility snapshot node may carry besides role/name/children.
SNAPSHOT_PROPERTIES = frozenset(
    {
        "value",
        "description",
        "keyshortcuts",
        "roledescription",
        "valuetext",
        "disabled",
        "expanded",
        "focused",
        "modal",
        "multiline",
        "multiselectable",
        "readonly",
        "required",
        "selected",
        "checked",
        "pressed",
        "level",
        "valuemin",
        "valuemax",
        "autocomplete",
        "haspopup",
        "invalid",
        "orientation",
    }
)

TextMatch = Union[str, Pattern[str]]
Scalar = Union[StrictBool, StrictInt, StrictFloat, StrictStr, None]

MISSING_FIELDS_MESSAGE = 'At least one of "role", "name", "text", or "selector" is required in the query.'


def matches_text(expected: TextMatch, actual: str) -> bool:
    """Exact equality for strings, `search` for compiled patterns."""
    if isinstance(expected, re.Pattern):
        return expected.search(actual) is not None
    return actual == expected


class Query(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    role: Optional[str] = None
    name: Optional[TextMatch] = None
    text: Optional[TextMatch] = None
    selector: Optional[str] = None
    properties: Dict[str, Scalar] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_properties(cls, data: Any) -> Any:
        # Query(role="heading", level=2) -> properties={"level": 2}
        if not isinstance(data, Mapping):
            return data
        known = set(cls.model_fields)
        extra = {k: v for k, v in data.items() if k not in known}
        if not extra:
            return data
        out = {k: v for k, v in data.items() if k in known}
        props = dict(out.get("properties") or {})
        props.update(extra)
        out["properties"] = props
        return out

    @field_validator("properties")
    @classmethod
    def _known_properties(cls, v: Dict[str, Scalar]) -> Dict[str, Scalar]:
        unknown = sorted(set(v) - SNAPSHOT_PROPERTIES)
        if unknown:
            raise ValueError(f"unknown accessibility propert{'y' if len(unknown) == 1 else 'ies'}: {', '.join(unknown)}")
        return v

    @property
    def is_empty(self) -> bool:
        return not (self.role or self.name or self.text or self.selector)

    def describe(self) -> str:
        """Compact one-line form for logs and CLI output."""
        parts = []
        for key in ("role", "name", "text", "selector"):
            val = getattr(self, key)
            if not val:
                continue
            if isinstance(val, re.Pattern):
                parts.append(f"{key}=/{val.pattern}/")
            else:
                parts.append(f"{key}={val!r}")
        parts.extend(f"{k}={v!r}" for k, v in self.properties.items())
        return " ".join(parts) or "<empty>"


def coerce_query(value: Union[Query, Mapping[str, Any]]) -> Query:
    """
    Accept a Query or a plain mapping and make sure it can match something.
    Any problem here is a programming error and raises QueryParametersError.
    """
    if isinstance(value, Query):
        query = value
    else:
        try:
            query = Query.model_validate(dict(value))
        except ValidationError as exc:
            raise QueryParametersError(f"Invalid query: {exc.errors()[0]['msg']}") from exc
    if query.is_empty:
        raise QueryParametersError(MISSING_FIELDS_MESSAGE)
    return query


@dataclass
class FindOptions:
    """Per-call options; None means "use the configuration in effect"."""

    root: Any = None
    document: Any = None
    visible: Optional[bool] = None
    timeout: Union[int, float, Literal[False], None] = None

    def resolve(self, cfg: Configuration) -> "FindOptions":
        return FindOptions(
            root=self.root,
            document=self.document if self.document is not None else cfg.document,
            visible=cfg.visible if self.visible is None else self.visible,
            timeout=cfg.timeout if self.timeout is None else self.timeout,
        )
