"""
Browser-related exceptions.

Raised by the bundled Playwright driver, never by the resolution engine.
"""

from adaptive_resolver.exceptions.base import ResolverError


class BrowserError(ResolverError):
    """Base exception for browser-related errors."""
    pass


class BrowserLaunchError(BrowserError):
    """
    Error launching the browser.

    Raised when the browser fails to start, e.g. missing browser binaries.
    """
    pass


class BrowserConnectionError(BrowserError):
    """
    Browser is not available.

    Raised when a document is requested before launch() or after close().
    """
    pass


class NavigationError(BrowserError):
    """
    Error during document navigation.

    Raised when opening a URL fails (invalid URL, network error, timeout).
    """

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, {"url": url})
        self.url = url
