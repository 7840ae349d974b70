"""
Post service: paginated listing plus password-guarded create, update and
soft delete over the row table.

Writes take the document lock, re-read the table under it, write, and drop
the whole post cache. Reads are not synchronized; they see either the cached
list (at most one TTL old) or a fresh table scan.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, TypeVar

from sheetboard.board_config import DEFAULT_LOCK_TIMEOUT_SECONDS, ConfigService
from sheetboard.cache import PostCache
from sheetboard.errors import BoardError, NotFoundError, StorageError, ValidationError
from sheetboard.locks import BoardLock, held
from sheetboard.table import (
    COL_NAME,
    COL_UPDATED_AT,
    COL_VISIBLE,
    FIRST_DATA_ROW,
    Post,
    PostTable,
    is_visible,
    parse_id,
    row_to_post,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PostPage:
    posts: List[Post]
    current_page: int
    total_pages: int
    total_posts: int


def paginate(posts: List[Post], page: int, page_size: int) -> PostPage:
    total = len(posts)
    start = (page - 1) * page_size
    return PostPage(
        posts=posts[start : start + page_size],
        current_page=page,
        total_pages=math.ceil(total / page_size),
        total_posts=total,
    )


def find_row_number(ids: list, post_id: Any) -> Optional[int]:
    """Sheet row number of the first row whose ID cell matches ``post_id``."""
    wanted = parse_id(post_id)
    if not wanted:
        return None
    for index, cell in enumerate(ids):
        if parse_id(cell) == wanted:
            return index + FIRST_DATA_ROW
    return None


class PostService:
    def __init__(
        self,
        table: PostTable,
        config: ConfigService,
        cache: PostCache,
        lock: BoardLock,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.table = table
        self.config = config
        self.cache = cache
        self.lock = lock
        self.lock_timeout = lock_timeout
        self.clock = clock

    def _now(self) -> str:
        return self.clock().isoformat(timespec="seconds")

    def _load_visible_posts(self) -> List[Post]:
        try:
            rows = self.table.read_rows()
        except Exception as e:
            logger.exception("Failed to read posts")
            raise StorageError(f"Failed to read posts: {e}") from e
        visible_rows = [row for row in rows if is_visible(row[5])]
        posts = [row_to_post(row, i + 1) for i, row in enumerate(visible_rows)]
        # Table is append-ordered (oldest first); listings are newest first.
        posts.reverse()
        return posts

    def list_posts(self, page: int = 1, page_size: Optional[int] = None) -> PostPage:
        if page_size is None:
            page_size = self.config.page_size
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive")

        posts = self.cache.get()
        if posts is None:
            posts = self._load_visible_posts()
            self.cache.put(posts)
        return paginate(posts, page, page_size)

    def _write(self, action: str, fn: Callable[[], T]) -> T:
        with held(self.lock, self.lock_timeout):
            try:
                result = fn()
            except BoardError:
                raise
            except Exception as e:
                logger.exception("Failed to %s", action)
                raise StorageError(f"Failed to {action}: {e}") from e
            self.cache.invalidate()
            return result

    def create_post(self, name: str, text: str, password: Any) -> Post:
        self.config.check_password(password)

        def create() -> Post:
            ids = self.table.read_ids()
            new_id = max((parse_id(cell) for cell in ids), default=0) + 1
            now = self._now()
            post = Post(id=new_id, name=name, text=text, created_at=now, updated_at=now)
            self.table.append_row([new_id, name, text, now, now, 1])
            return post

        post = self._write("save post", create)
        logger.info("Created post %s", post.id)
        return post

    def update_post(self, post_id: Any, name: str, text: str, password: Any) -> Post:
        self.config.check_password(password)

        def update() -> Post:
            rows = self.table.read_rows()
            row_number = find_row_number([row[0] for row in rows], post_id)
            if row_number is None:
                raise NotFoundError()
            current = row_to_post(rows[row_number - FIRST_DATA_ROW], parse_id(post_id))
            now = self._now()
            self.table.write_cells(row_number, COL_NAME, [name, text])
            self.table.write_cells(row_number, COL_UPDATED_AT, [now])
            return Post(
                id=current.id,
                name=name,
                text=text,
                created_at=current.created_at,
                updated_at=now,
                visible=current.visible,
            )

        post = self._write("update post", update)
        logger.info("Updated post %s", post.id)
        return post

    def delete_post(self, post_id: Any, password: Any) -> None:
        self.config.check_password(password)

        def hide() -> None:
            row_number = find_row_number(self.table.read_ids(), post_id)
            if row_number is None:
                raise NotFoundError()
            self.table.write_cells(row_number, COL_VISIBLE, [0])

        self._write("delete post", hide)
        logger.info("Hid post %s", post_id)
