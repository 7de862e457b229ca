"""
Document Interface - Abstract driver contract used by the resolution engine.

The engine never talks to a browser directly. It only needs a live document
that can build element queries, count their matches, run in-page scripts,
and hand back markup and screenshots.

Example:
    >>> from adaptive_resolver.browsers import PlaywrightBrowser
    >>> browser = PlaywrightBrowser()
    >>> await browser.launch(headless=True)
    >>> document = await browser.open("https://example.com")
    >>> await document.count(document.query("#login"))
    1
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class IElementSet(ABC):
    """
    A lazily evaluated query over the live document.

    Like a Playwright Locator, an element set holds no element reference;
    every call re-runs the query against the current document.
    """

    @property
    @abstractmethod
    def selector(self) -> str:
        """The selector (or finder description) this set was built from."""
        ...

    @abstractmethod
    async def count(self) -> int:
        """
        Count the elements currently matching this query.

        Returns:
            Number of matching elements
        """
        ...

    @abstractmethod
    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """
        Run a script against the first matching element.

        Args:
            expression: JavaScript function source taking (element, arg)
            arg: Serializable argument passed to the function

        Returns:
            The deserialized return value
        """
        ...


class IDocument(ABC):
    """
    Abstract interface for a live, rendered document.

    One document is owned by one worker at a time. ``generation`` increases
    on every main-frame navigation or reload so that bound handles can
    detect that they have gone stale.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Get the current document URL."""
        ...

    @property
    @abstractmethod
    def generation(self) -> int:
        """Navigation counter, bumped whenever the document navigates or reloads."""
        ...

    # Query builders (synchronous, nothing is evaluated until count/evaluate)
    @abstractmethod
    def query(self, selector: str) -> IElementSet:
        """
        Build a query from a CSS (or engine-prefixed) selector.

        Args:
            selector: CSS selector, or an engine selector such as ``text=...``
        """
        ...

    @abstractmethod
    def query_xpath(self, xpath: str) -> IElementSet:
        """Build a query from an XPath expression."""
        ...

    @abstractmethod
    def query_by_text(self, text: str, exact: bool = False) -> IElementSet:
        """Build a query matching elements by visible text."""
        ...

    @abstractmethod
    def query_by_test_id(self, test_id: str) -> IElementSet:
        """Build a query matching the configured test id attribute."""
        ...

    @abstractmethod
    def query_by_role(self, role: str, name: Optional[str] = None) -> IElementSet:
        """Build a query matching an ARIA role (optionally with accessible name)."""
        ...

    @abstractmethod
    def query_by_placeholder(self, placeholder: str) -> IElementSet:
        """Build a query matching input placeholder text."""
        ...

    async def count(self, element_set: IElementSet) -> int:
        """
        Count matches of an element set.

        Args:
            element_set: Query built by this document

        Returns:
            Number of matching elements
        """
        return await element_set.count()

    @abstractmethod
    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """
        Evaluate a script in the page.

        Args:
            expression: JavaScript function source taking a single argument
            arg: Serializable argument

        Returns:
            The deserialized return value
        """
        ...

    @abstractmethod
    async def screenshot(self, full_page: bool = False) -> bytes:
        """Capture a PNG screenshot of the document."""
        ...

    @abstractmethod
    async def content(self) -> str:
        """Get the full serialized markup of the document."""
        ...
