"""
Time-boxed cache of the visible, newest-first post list.
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional

from sheetboard.table import Post

DEFAULT_TTL_SECONDS = 5 * 60


class PostCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._posts: Optional[List[Post]] = None
        self._captured_at = 0.0

    def get(self) -> Optional[List[Post]]:
        if self._posts is None:
            return None
        if self.clock() - self._captured_at >= self.ttl_seconds:
            return None
        return self._posts

    def put(self, posts: List[Post]) -> None:
        self._posts = list(posts)
        self._captured_at = self.clock()

    def invalidate(self) -> None:
        self._posts = None
        self._captured_at = 0.0
