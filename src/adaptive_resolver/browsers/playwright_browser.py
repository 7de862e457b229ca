"""
Playwright Driver - Implementation of IDocument using Playwright's async API.

This module provides the Playwright-based document driver used by the CLI
and by callers that already hold a Playwright ``Page``.
"""

from typing import Any, Optional
import logging

from adaptive_resolver.interfaces.document import IDocument, IElementSet
from adaptive_resolver.exceptions.browser import (
    BrowserLaunchError,
    BrowserConnectionError,
    NavigationError,
)

logger = logging.getLogger(__name__)


class PlaywrightElementSet(IElementSet):
    """
    Playwright implementation of IElementSet.

    Wraps a Playwright Locator; nothing is resolved until it is used.
    """

    def __init__(self, locator: Any, selector: str):
        """
        Initialize the element set wrapper.

        Args:
            locator: Playwright Locator
            selector: Human-readable selector the locator was built from
        """
        self._locator = locator
        self._selector = selector

    @property
    def selector(self) -> str:
        return self._selector

    @property
    def locator(self) -> Any:
        """The underlying Playwright Locator."""
        return self._locator

    async def count(self) -> int:
        """Count matching elements."""
        return await self._locator.count()

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run a script against the first matching element."""
        return await self._locator.first.evaluate(expression, arg)

    def __repr__(self) -> str:
        return f"PlaywrightElementSet({self._selector!r})"


class PlaywrightDocument(IDocument):
    """
    Playwright implementation of IDocument.

    Wraps a Playwright Page. Main-frame navigations bump ``generation``.
    """

    def __init__(self, page: Any):
        """
        Initialize the document wrapper.

        Args:
            page: Playwright Page object
        """
        self._page = page
        self._generation = 0
        page.on("framenavigated", self._on_frame_navigated)

    def _on_frame_navigated(self, frame: Any) -> None:
        if frame == self._page.main_frame:
            self._generation += 1
            logger.debug(f"Document navigated to {frame.url} (generation {self._generation})")

    @property
    def page(self) -> Any:
        """The underlying Playwright Page."""
        return self._page

    @property
    def url(self) -> str:
        """Get current URL."""
        return self._page.url

    @property
    def generation(self) -> int:
        return self._generation

    async def goto(self, url: str, **options: Any) -> None:
        """Navigate to URL."""
        try:
            await self._page.goto(url, **options)
        except Exception as e:
            raise NavigationError(f"Failed to navigate to {url}: {e}", url=url)

    def query(self, selector: str) -> IElementSet:
        return PlaywrightElementSet(self._page.locator(selector), selector)

    def query_xpath(self, xpath: str) -> IElementSet:
        return PlaywrightElementSet(self._page.locator(f"xpath={xpath}"), f"xpath={xpath}")

    def query_by_text(self, text: str, exact: bool = False) -> IElementSet:
        return PlaywrightElementSet(self._page.get_by_text(text, exact=exact), f"text={text}")

    def query_by_test_id(self, test_id: str) -> IElementSet:
        return PlaywrightElementSet(self._page.get_by_test_id(test_id), f"testId={test_id}")

    def query_by_role(self, role: str, name: Optional[str] = None) -> IElementSet:
        if name:
            locator = self._page.get_by_role(role, name=name)
            return PlaywrightElementSet(locator, f"role={role}[name={name}]")
        return PlaywrightElementSet(self._page.get_by_role(role), f"role={role}")

    def query_by_placeholder(self, placeholder: str) -> IElementSet:
        locator = self._page.get_by_placeholder(placeholder)
        return PlaywrightElementSet(locator, f"placeholder={placeholder}")

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Execute JavaScript in the page."""
        return await self._page.evaluate(expression, arg)

    async def screenshot(self, full_page: bool = False) -> bytes:
        """Take screenshot."""
        return await self._page.screenshot(full_page=full_page)

    async def content(self) -> str:
        """Get page HTML."""
        return await self._page.content()

    async def close(self) -> None:
        """Close page."""
        await self._page.close()


class PlaywrightBrowser:
    """
    Launches a Playwright browser and opens documents.

    Example:
        >>> browser = PlaywrightBrowser()
        >>> await browser.launch(headless=True)
        >>> document = await browser.open("https://example.com")
        >>> await browser.close()
    """

    def __init__(self):
        """Initialize the browser (not launched yet)."""
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None

    @property
    def is_connected(self) -> bool:
        """Check if browser is connected."""
        return self._browser is not None and self._browser.is_connected()

    async def launch(
        self,
        headless: bool = True,
        browser_type: str = "chromium",
        viewport: Optional[dict] = None,
        **options: Any,
    ) -> None:
        """
        Launch the browser.

        Args:
            headless: Whether to run headless
            browser_type: chromium, firefox or webkit
            viewport: Optional viewport size for the default context
            **options: Additional Playwright launch options
        """
        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, browser_type, self._playwright.chromium)
            self._browser = await launcher.launch(headless=headless, **options)
            self._context = await self._browser.new_context(viewport=viewport)

            logger.info(f"Launched {browser_type} browser (headless={headless})")

        except Exception as e:
            raise BrowserLaunchError(f"Failed to launch browser: {e}")

    async def new_document(self) -> PlaywrightDocument:
        """
        Open a blank document.

        Returns:
            New document instance
        """
        if not self._context:
            raise BrowserConnectionError("Browser not launched. Call launch() first.")

        page = await self._context.new_page()
        return PlaywrightDocument(page)

    async def open(self, url: str, timeout_ms: int = 30000) -> PlaywrightDocument:
        """
        Open a document and navigate it to a URL.

        Args:
            url: URL to load
            timeout_ms: Navigation timeout

        Returns:
            Loaded document
        """
        document = await self.new_document()
        await document.goto(url, timeout=timeout_ms)
        return document

    async def close(self) -> None:
        """Close the browser and cleanup."""
        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Browser closed")
