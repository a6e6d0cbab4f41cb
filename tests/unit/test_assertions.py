import asyncio
import re

import pytest

from a11y_query import QueryEmptyError, QueryParametersError, find, find_all
from a11y_query.assertions import (
    assert_focused,
    assert_found,
    assert_matches_query,
    assert_not_found,
    assert_raises_query_empty,
    assert_same_element,
    assert_visible,
)
from a11y_query.selectors.document import Rect
from a11y_query.utils.config import Configuration

from fakes import FakeDocument, FakeNode, button


@pytest.mark.asyncio
async def test_matches_query_passes_and_returns_snapshot(doc: FakeDocument, config: Configuration):
    doc.add(FakeNode(tag="input", role="checkbox", computed_name="Accept terms", snapshot={"checked": True}))
    handle = await find({"role": "checkbox"})

    snap = await assert_matches_query(handle, {"name": re.compile("terms"), "checked": True})

    assert snap["name"] == "Accept terms"


@pytest.mark.asyncio
async def test_matches_query_lists_each_mismatch(doc: FakeDocument, config: Configuration):
    doc.add(FakeNode(tag="input", role="checkbox", computed_name="Accept terms", snapshot={"checked": False}))
    handle = await find({"role": "checkbox"})

    with pytest.raises(AssertionError) as info:
        await assert_matches_query(handle, {"name": "Terms", "checked": True, "selector": "button"})

    message = str(info.value)
    assert "name: expected 'Terms', received 'Accept terms'" in message
    assert "checked: expected True, received False" in message
    assert "selector: element does not match 'button'" in message


@pytest.mark.asyncio
async def test_matches_query_uses_text_content(doc: FakeDocument, config: Configuration):
    doc.add(FakeNode(tag="p", role="paragraph", text="  Hello\n   world  "))
    handle = await find({"role": "paragraph"})

    await assert_matches_query(handle, {"text": "Hello world"})


@pytest.mark.asyncio
async def test_same_element(doc: FakeDocument, config: Configuration):
    doc.add(button("a"), button("b"))
    a = await find({"name": "a"})
    a_again = await find({"role": "button", "name": "a"})
    b = await find({"name": "b"})

    await assert_same_element(a, a_again)
    with pytest.raises(AssertionError, match="the same"):
        await assert_same_element(a, b)


@pytest.mark.asyncio
async def test_visible_waits_for_element_to_show(doc: FakeDocument, config: Configuration):
    node = button("later", visibility="hidden")
    doc.add(node)
    handle = await find({"role": "button"}, visible=False)
    asyncio.get_running_loop().call_later(0.05, setattr, node, "visibility", "visible")

    await assert_visible(handle, timeout=200)


@pytest.mark.asyncio
async def test_hidden_assertion_fails_after_timeout(doc: FakeDocument, config: Configuration):
    doc.add(button("there"))
    handle = await find({"role": "button"})

    with pytest.raises(AssertionError, match="Expected the element to not be visible."):
        await assert_visible(handle, False, timeout=40)


@pytest.mark.asyncio
async def test_visibility_of_zero_box(doc: FakeDocument, config: Configuration):
    doc.add(button("flat", rect=Rect()))
    handle = await find({"role": "button"}, visible=False)

    await assert_visible(handle, False, timeout=0)


@pytest.mark.asyncio
async def test_focused(doc: FakeDocument, config: Configuration):
    node = button("focus me")
    doc.add(node)
    handle = await find({"role": "button"})

    with pytest.raises(AssertionError, match="have focus"):
        await assert_focused(handle, timeout=0)
    doc.focused = node
    await assert_focused(handle, timeout=0)


@pytest.mark.asyncio
async def test_found_returns_the_single_match(doc: FakeDocument, config: Configuration):
    target = button("ok")
    asyncio.get_running_loop().call_later(0.03, doc.add, target)

    handle = await assert_found({"role": "button"}, timeout=200)

    assert handle.node is target


@pytest.mark.asyncio
async def test_found_fails_on_multiple_matches(doc: FakeDocument, config: Configuration):
    doc.add(button("one"), button("two"))

    with pytest.raises(AssertionError, match="QueryMultipleError: Found more than one node."):
        await assert_found({"role": "button"}, timeout=40)
    assert doc.live == []


@pytest.mark.asyncio
async def test_found_propagates_parameter_errors(doc: FakeDocument, config: Configuration):
    with pytest.raises(QueryParametersError):
        await assert_found({}, timeout=1000)
    assert doc.candidate_calls == 0


@pytest.mark.asyncio
async def test_not_found_waits_for_removal(doc: FakeDocument, config: Configuration):
    doc.add(button("going"))
    asyncio.get_running_loop().call_later(0.04, doc.clear)

    await assert_not_found({"role": "button"}, timeout=200)

    assert doc.live == []


@pytest.mark.asyncio
async def test_not_found_fails_while_present(doc: FakeDocument, config: Configuration):
    doc.add(button("a"), button("b"))

    with pytest.raises(AssertionError, match=r"Found 2 element\(s\)"):
        await assert_not_found({"role": "button"}, timeout=40)
    assert doc.live == []


@pytest.mark.asyncio
async def test_raises_query_empty(doc: FakeDocument, config: Configuration):
    err = await assert_raises_query_empty(find_all({"role": "button"}, timeout=0))
    assert isinstance(err, QueryEmptyError)

    doc.add(button("present"))
    with pytest.raises(AssertionError, match="instead it returned"):
        await assert_raises_query_empty(find({"role": "button"}, timeout=0))
    with pytest.raises(AssertionError, match="QueryParametersError"):
        await assert_raises_query_empty(find({}, timeout=0))
