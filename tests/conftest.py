"""
Pytest configuration and fixtures.

FakeDocument is an in-memory IDocument: every query builder yields an
element set keyed by a selector label, match counts come from a dict, and
in-page scripts answer from dicts keyed by script name.
"""

import pytest
from typing import Any, Dict, List, Optional

from adaptive_resolver.config import Settings, ResolutionSettings
from adaptive_resolver.engine.scripts import ALL_SCRIPTS
from adaptive_resolver.interfaces.document import IDocument, IElementSet

_SCRIPT_NAMES = {script.source: name for name, script in ALL_SCRIPTS.items()}


class FakeElementSet(IElementSet):
    """Element set over a FakeDocument."""

    def __init__(self, document: "FakeDocument", selector: str):
        self._document = document
        self._selector = selector

    @property
    def selector(self) -> str:
        return self._selector

    async def count(self) -> int:
        self._document.probes.append(self._selector)
        error = self._document.errors.get(self._selector)
        if error:
            raise error
        return self._document.counts.get(self._selector, 0)

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        name = _SCRIPT_NAMES.get(expression, expression)
        results = self._document.element_results.get(self._selector, {})
        value = results.get(name, self._document.element_results.get("*", {}).get(name))
        if isinstance(value, Exception):
            raise value
        return value


class FakeDocument(IDocument):
    """
    In-memory document.

    Selector labels: query(s) -> s, query_xpath(x) -> "xpath=x",
    query_by_text(t) -> "getByText:t", query_by_test_id(i) -> "getByTestId:i",
    query_by_role(r, n) -> "getByRole:r" or "getByRole:r:n",
    query_by_placeholder(p) -> "getByPlaceholder:p".
    """

    def __init__(
        self,
        counts: Optional[Dict[str, int]] = None,
        page_results: Optional[Dict[str, Any]] = None,
        element_results: Optional[Dict[str, Dict[str, Any]]] = None,
        url: str = "https://example.test/form",
        markup: str = "<html><body><button>Submit</button></body></html>",
    ):
        self.counts: Dict[str, int] = dict(counts or {})
        self.page_results: Dict[str, Any] = dict(page_results or {})
        self.element_results: Dict[str, Dict[str, Any]] = dict(element_results or {})
        self.errors: Dict[str, Exception] = {}
        self.probes: List[str] = []
        self.evaluated: List[str] = []
        self.markup = markup
        self._url = url
        self._generation = 0

    @property
    def url(self) -> str:
        return self._url

    @property
    def generation(self) -> int:
        return self._generation

    def navigate(self) -> None:
        """Simulate a main-frame navigation or reload."""
        self._generation += 1

    def query(self, selector: str) -> IElementSet:
        return FakeElementSet(self, selector)

    def query_xpath(self, xpath: str) -> IElementSet:
        return FakeElementSet(self, f"xpath={xpath}")

    def query_by_text(self, text: str, exact: bool = False) -> IElementSet:
        return FakeElementSet(self, f"getByText:{text}")

    def query_by_test_id(self, test_id: str) -> IElementSet:
        return FakeElementSet(self, f"getByTestId:{test_id}")

    def query_by_role(self, role: str, name: Optional[str] = None) -> IElementSet:
        label = f"getByRole:{role}:{name}" if name else f"getByRole:{role}"
        return FakeElementSet(self, label)

    def query_by_placeholder(self, placeholder: str) -> IElementSet:
        return FakeElementSet(self, f"getByPlaceholder:{placeholder}")

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        name = _SCRIPT_NAMES.get(expression, expression)
        self.evaluated.append(name)
        value = self.page_results.get(name)
        if isinstance(value, Exception):
            raise value
        return value

    async def screenshot(self, full_page: bool = False) -> bytes:
        return b"\x89PNG-fake"

    async def content(self) -> str:
        return self.markup


@pytest.fixture
def settings():
    """Provide test settings with short probe timeouts."""
    return Settings(
        resolution=ResolutionSettings(
            element_timeout_ms=500,
            default_timeout_ms=2000,
        ),
    )


@pytest.fixture
def document():
    """Provide an empty fake document."""
    return FakeDocument()
