"""
Browsers module - Document driver implementations.
"""

from adaptive_resolver.browsers.playwright_browser import (
    PlaywrightBrowser,
    PlaywrightDocument,
    PlaywrightElementSet,
)

__all__ = [
    "PlaywrightBrowser",
    "PlaywrightDocument",
    "PlaywrightElementSet",
]
