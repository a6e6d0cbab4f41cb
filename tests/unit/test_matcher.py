import re

import pytest

from a11y_query.core.errors import QueryIframeError, QueryParametersError
from a11y_query.selectors.document import Rect
from a11y_query.selectors.matcher import filter_nodes, is_visible, query_all, same_value
from a11y_query.core.query import Query

from fakes import FakeDocument, FakeNode, button


@pytest.mark.asyncio
async def test_filters_by_role_and_keeps_document_order(doc: FakeDocument):
    doc.add(button("One"), FakeNode(tag="a", role="link", computed_name="Home"), button("Two"))

    handles = await query_all({"role": "button"}, document=doc)

    assert [h.node.computed_name for h in handles] == ["One", "Two"]


@pytest.mark.asyncio
async def test_name_literal_and_pattern(doc: FakeDocument):
    doc.add(button("Button 1"), button("Button 2"))

    exact = await query_all({"role": "button", "name": "Button 1"}, document=doc)
    pattern = await query_all({"role": "button", "name": re.compile("button 2", re.I)}, document=doc)
    partial = await query_all({"name": "Button"}, document=doc)

    assert [h.node.computed_name for h in exact] == ["Button 1"]
    assert [h.node.computed_name for h in pattern] == ["Button 2"]
    assert partial == []


@pytest.mark.asyncio
async def test_name_uses_label_text_when_engine_name_is_missing(doc: FakeDocument):
    doc.add(FakeNode(tag="input", role="textbox", computed_name="", labels=["Username"], selectors={"#username"}))

    handles = await query_all({"role": "textbox", "name": "Username"}, document=doc)

    assert len(handles) == 1
    assert "#username" in handles[0].node.selectors


@pytest.mark.asyncio
async def test_text_matches_flattened_content(doc: FakeDocument):
    doc.add(FakeNode(role="group", text="\n  A  \n"), FakeNode(role="group", text="B"))

    handles = await query_all({"role": "group", "text": "A"}, document=doc)
    by_pattern = await query_all({"text": re.compile("^b$", re.I)}, document=doc)

    assert [h.node.text for h in handles] == ["\n  A  \n"]
    assert [h.node.text for h in by_pattern] == ["B"]


@pytest.mark.asyncio
async def test_selector_narrows_candidates(doc: FakeDocument):
    doc.add(button("Save", selectors={".primary"}), button("Cancel"))

    handles = await query_all({"selector": ".primary"}, document=doc)

    assert [h.node.computed_name for h in handles] == ["Save"]


@pytest.mark.asyncio
async def test_hidden_nodes_excluded_unless_visible_false(doc: FakeDocument):
    doc.add(
        button("shown"),
        button("visibility hidden", visibility="hidden"),
        button("zero box", rect=Rect()),
    )

    visible = await query_all({"role": "button"}, document=doc)
    everything = await query_all({"role": "button"}, document=doc, visible=False)

    assert [h.node.computed_name for h in visible] == ["shown"]
    assert [h.node.computed_name for h in everything] == ["shown", "visibility hidden", "zero box"]


def test_offset_alone_counts_as_visible():
    n = FakeNode(rect=Rect(top=0, bottom=5, width=0, height=0)).info(0)
    assert is_visible(n)


@pytest.mark.asyncio
async def test_extra_properties_compare_snapshot_and_release_rejects(doc: FakeDocument):
    checked = FakeNode(tag="input", role="checkbox", computed_name="a", snapshot={"checked": True})
    unchecked = FakeNode(tag="input", role="checkbox", computed_name="b", snapshot={"checked": False})
    doc.add(checked, unchecked)

    handles = await query_all(Query(role="checkbox", checked=True), document=doc)

    assert [h.node for h in handles] == [checked]
    assert doc.live == handles


@pytest.mark.asyncio
async def test_property_equality_is_strict(doc: FakeDocument):
    doc.add(FakeNode(role="heading", computed_name="Title", snapshot={"level": 1}))

    assert await query_all(Query(role="heading", level=1), document=doc)
    assert await query_all(Query(role="heading", pressed=True), document=doc) == []


@pytest.mark.asyncio
async def test_only_returned_handles_stay_live(doc: FakeDocument):
    doc.add(button("a"), button("b"), FakeNode(role="link"))

    handles = await query_all({"role": "button", "name": "a"}, document=doc)

    assert doc.live == handles
    assert doc.batches_released == 1


@pytest.mark.asyncio
async def test_root_scopes_the_search(doc: FakeDocument):
    section = FakeNode(tag="section", role="region", children=[FakeNode(role="group", text="A")])
    doc.add(section, FakeNode(role="group", text="C"))
    root = doc.new_handle(section)

    handles = await query_all({"role": "group"}, document=doc, root=root)

    assert [h.node.text for h in handles] == ["A"]
    assert not root.disposed


@pytest.mark.asyncio
async def test_iframe_root_redirects_to_frame_document(doc: FakeDocument):
    inner = FakeNode(tag="#document", children=[button("Inside")])
    frame = FakeNode(tag="iframe", frame_doc=inner)
    doc.add(frame, button("Outside"))
    root = doc.new_handle(frame)

    handles = await query_all({"role": "button"}, document=doc, root=root)

    assert [h.node.computed_name for h in handles] == ["Inside"]
    assert doc.live == [root, *handles]


@pytest.mark.asyncio
async def test_iframe_without_document_raises(doc: FakeDocument):
    frame = FakeNode(tag="iframe")
    doc.add(frame)

    with pytest.raises(QueryIframeError) as info:
        await query_all({"role": "button"}, document=doc, root=doc.new_handle(frame))
    assert info.value.name == "QueryIframeError"


@pytest.mark.asyncio
async def test_empty_query_is_rejected_before_touching_the_document(doc: FakeDocument):
    with pytest.raises(QueryParametersError):
        await query_all({}, document=doc)
    assert doc.candidate_calls == 0


def test_filter_order_role_before_name():
    nodes = [FakeNode(role="link", computed_name="Go").info(0), FakeNode(role="button", computed_name="Go").info(1)]
    kept = filter_nodes(Query(role="button", name="Go"), nodes)
    assert [n.index for n in kept] == [1]


def test_same_value_does_not_mix_bool_and_int():
    assert same_value(True, True)
    assert not same_value(1, True)
    assert same_value(None, None)
    assert same_value(2, 2.0)
    assert not same_value("2", 2)
