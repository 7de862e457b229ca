"""
Utilities module - Common utility functions.
"""

from adaptive_resolver.utils.logging import setup_logging, get_logger
from adaptive_resolver.utils.retry import retry_async, with_timeout, RetryConfig

__all__ = [
    "setup_logging",
    "get_logger",
    "retry_async",
    "with_timeout",
    "RetryConfig",
]
