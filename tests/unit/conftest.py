import pytest

from a11y_query.utils.config import Configuration, get_config

from fakes import FakeDocument


@pytest.fixture
def doc() -> FakeDocument:
    return FakeDocument()


@pytest.fixture
def config(doc: FakeDocument) -> Configuration:
    """Process-wide configuration pointed at the fake document, restored afterwards."""
    cfg = get_config()
    previous = cfg.configure(document=doc, timeout=300, interval=20, visible=True)
    yield cfg
    cfg.restore(previous)
