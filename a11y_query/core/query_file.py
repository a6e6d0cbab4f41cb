# a11y_query/core/query_file.py
from __future__ import annotations

"""Query files
--------------
Queries kept in YAML, one per document or as a `queries:` list:

    role: button
    name: /save/i
    ---
    queries:
      - {role: heading, level: 1}
      - {selector: "#email", role: textbox}

Strings written as /source/flags become compiled patterns; ${VAR} is
replaced from the environment.
"""

import os
import re
from pathlib import Path
from typing import Any, List

import yaml
from pydantic import ValidationError

from a11y_query.core.query import Query

_REGEX_LITERAL = re.compile(r"^/(?P<source>.+)/(?P<flags>[a-z]*)$", re.DOTALL)
_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}
# JavaScript-only flags with no effect on a single search
_IGNORED_FLAGS = frozenset("guyd")

PATTERN_FIELDS = ("name", "text")


def parse_pattern(value: str) -> Any:
    """
    '/save/i' -> re.compile('save', re.I); anything else is returned as is.
    g, u, y and d are accepted and ignored; other flags raise ValueError.
    """
    m = _REGEX_LITERAL.match(value)
    if not m:
        return value
    flags = 0
    for ch in m.group("flags"):
        if ch in _IGNORED_FLAGS:
            continue
        if ch not in _FLAGS:
            raise ValueError(f"unsupported pattern flag '{ch}' in {value}")
        flags |= _FLAGS[ch]
    try:
        return re.compile(m.group("source"), flags)
    except re.error as exc:
        raise ValueError(f"invalid pattern {value}: {exc}") from exc


def _subst_env(obj: Any) -> Any:
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(0)), obj)
    if isinstance(obj, list):
        return [_subst_env(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _subst_env(v) for k, v in obj.items()}
    return obj


def query_from_mapping(data: dict) -> Query:
    out = dict(data)
    for key in PATTERN_FIELDS:
        if isinstance(out.get(key), str):
            out[key] = parse_pattern(out[key])
    return Query.model_validate(out)


def load_queries_file(path: Path | str) -> List[Query]:
    """Load every query from a (possibly multi-document) YAML file."""
    qf = Path(path)
    if not qf.exists():
        raise FileNotFoundError(f"Query file not found: {qf}")
    try:
        docs = list(yaml.safe_load_all(qf.read_text(encoding="utf-8")))
    except yaml.YAMLError as ye:
        raise ValueError(f"YAML parse error in {qf}: {ye}") from ye

    out: List[Query] = []
    for idx, data in enumerate(docs, start=1):
        if data is None:
            continue
        if not isinstance(data, dict):
            raise ValueError(f"Document {idx} in {qf} must be a mapping.")
        data = _subst_env(data)
        items = data["queries"] if "queries" in data else [data]
        for pos, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                raise ValueError(f"Query {pos} of document {idx} in {qf} must be a mapping.")
            try:
                q = query_from_mapping(item)
            except ValidationError as ve:
                lines = [f"Invalid query in '{qf}' (document {idx}, query {pos}):"]
                for e in ve.errors():
                    loc = ".".join(str(p) for p in e.get("loc", []))
                    lines.append(f"  - {loc or 'query'}: {e.get('msg', 'invalid value')}")
                raise ValueError("\n".join(lines)) from ve
            except ValueError as e:
                raise ValueError(f"Invalid query in '{qf}' (document {idx}, query {pos}): {e}") from e
            if q.is_empty:
                raise ValueError(
                    f"Invalid query in '{qf}' (document {idx}, query {pos}): "
                    'needs at least one of "role", "name", "text", or "selector".'
                )
            out.append(q)
    if not out:
        raise ValueError(f"No queries found in {qf}")
    return out


__all__ = ["load_queries_file", "parse_pattern", "query_from_mapping"]
