"""Storage backends used by the poller."""

from .cache import ResponseCache

__all__ = ["ResponseCache"]
