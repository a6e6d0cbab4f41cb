import re

import pytest

from a11y_query.core.errors import QueryParametersError
from a11y_query.core.query import MISSING_FIELDS_MESSAGE, FindOptions, Query, coerce_query, matches_text
from a11y_query.utils.config import Configuration


def test_extra_keywords_become_properties():
    q = Query(role="heading", level=2, expanded=False)

    assert q.role == "heading"
    assert q.properties == {"level": 2, "expanded": False}


def test_unknown_property_is_a_parameters_error():
    with pytest.raises(QueryParametersError, match="Invalid query"):
        coerce_query({"role": "button", "colour": "red"})


def test_empty_query_is_rejected_with_fixed_message():
    with pytest.raises(QueryParametersError) as info:
        coerce_query({"checked": True})

    assert str(info.value) == MISSING_FIELDS_MESSAGE


def test_coerce_accepts_model_instances_unchanged():
    q = Query(selector="#email")

    assert coerce_query(q) is q


def test_name_and_text_accept_patterns():
    q = coerce_query({"name": re.compile(r"save", re.I), "text": "Save"})

    assert isinstance(q.name, re.Pattern)
    assert q.text == "Save"


def test_matches_text_is_exact_for_strings_and_search_for_patterns():
    assert matches_text("Save", "Save")
    assert not matches_text("Save", "Save draft")
    assert matches_text(re.compile("draft"), "Save draft")
    assert not matches_text(re.compile("^draft"), "Save draft")


def test_describe():
    q = Query(role="checkbox", name=re.compile("terms"), checked=True)

    assert q.describe() == "role='checkbox' name=/terms/ checked=True"
    assert Query().describe() == "<empty>"


def test_find_options_fall_back_to_configuration():
    cfg = Configuration(timeout=1200, interval=10, visible=False, document="doc")

    resolved = FindOptions(timeout=0).resolve(cfg)

    assert resolved.timeout == 0
    assert resolved.visible is False
    assert resolved.document == "doc"
    assert FindOptions(timeout=False).resolve(cfg).timeout is False
    assert FindOptions().resolve(cfg).timeout == 1200
