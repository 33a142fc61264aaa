"""
Process-wide cache for the rendered file browser page.

Each cached page is tagged with the version of the notes document it was
rendered from. A note saved by any worker process changes that version,
so the page is re-rendered everywhere, not only in the worker that
handled the save. The TTL bounds how long objects added outside the app
stay hidden.
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PageCache:
    """Holds one rendered page. A TTL of 0 disables caching."""

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._html: Optional[str] = None
        self._version: Optional[str] = None
        self._stored_at = 0.0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, version: Optional[str] = None) -> Optional[str]:
        """Cached page, if fresh and rendered from the given version."""
        if self._html is None:
            return None
        if self._clock() - self._stored_at >= self._ttl:
            self._html = None
            return None
        if version != self._version:
            logger.debug(
                "Cached page is from another notes version",
                extra={"cached": self._version, "current": version}
            )
            self._html = None
            return None
        return self._html

    def set(self, html: str, version: Optional[str] = None) -> None:
        if not self.enabled:
            return
        self._html = html
        self._version = version
        self._stored_at = self._clock()

    def invalidate(self) -> None:
        if self._html is not None:
            logger.debug("Page cache invalidated")
        self._html = None
