import math
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from app.config.settings import settings
from app.core import messages
from app.core.exceptions.exceptions import CacheUnavailableError, ConflictError, NotFoundError
from app.models.my_list_item import MyListItem
from app.schemas.my_list import (
    ContentType,
    CursorPagination,
    ListItemOut,
    ListResult,
    OffsetPagination,
    PaginatedListResult,
    PaginationType,
)
from app.services.content_lookup import ContentLookup
from app.services.my_list_store import MyListStore
from app.services.pagination_cache import PaginationCache
from app.utils.cache_keys import list_cache_key
from app.utils.cursor import Cursor, decode_cursor, encode_cursor
from app.utils.log import app_logger
from app.utils.timeutil import utc_now


class MyListService:
    """Add, remove and paginate a user's list, with a read-through page cache.

    Mutations clear every cached page of the user before they return, so a
    read that starts after a mutation was acknowledged never sees the old
    list. Cache failures on the read path are logged and treated as misses.
    """

    def __init__(
        self,
        store: MyListStore,
        cache: PaginationCache,
        content_lookup: ContentLookup,
        clock: Callable[[], datetime] = utc_now,
        default_limit: Optional[int] = None,
    ):
        self.store = store
        self.cache = cache
        self.content_lookup = content_lookup
        self.clock = clock
        self.default_limit = default_limit or settings.DEFAULT_PAGE_LIMIT

    # mutations

    def add_to_list(self, user_id: str, content_id: str, content_type: ContentType) -> ListItemOut:
        snapshot = self.content_lookup.resolve(content_id, content_type)

        if self.store.find_entry(user_id, content_id) is not None:
            raise ConflictError(messages.ITEM_ALREADY_IN_LIST)

        # a concurrent add that passed the check above still loses on the unique constraint
        item = self.store.create_entry(user_id, content_id, content_type, snapshot, self.clock())
        app_logger.info("my_list.add", user_id=user_id, content_id=content_id, entry_id=item.id)

        self._invalidate(user_id)
        return self._to_item_out(item)

    def remove_from_list(self, user_id: str, content_id: str) -> None:
        deleted = self.store.delete_entry(user_id, content_id)
        if deleted == 0:
            raise NotFoundError(messages.ITEM_NOT_IN_LIST)
        app_logger.info("my_list.remove", user_id=user_id, content_id=content_id)

        self._invalidate(user_id)

    def _invalidate(self, user_id: str) -> None:
        try:
            deleted = self.cache.invalidate_user(user_id)
            app_logger.debug("cache.invalidate", user_id=user_id, keys_deleted=deleted)
        except CacheUnavailableError as e:
            # the store write is already committed; pages expire at the latest after the TTL
            app_logger.error("cache.invalidate.failed", user_id=user_id, exc_info=e)

    # reads

    def get_list(
        self,
        user_id: str,
        pagination_type: PaginationType = PaginationType.OFFSET,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> PaginatedListResult:
        pagination_type = PaginationType(pagination_type)
        limit = limit or self.default_limit
        page = page or 1
        cursor = cursor or None

        # decoded before the cache lookup: a malformed cursor is rejected even
        # when its text happens to equal a cached key part such as "first"
        position: Optional[Cursor] = None
        if pagination_type is PaginationType.CURSOR and cursor is not None:
            position = decode_cursor(cursor)

        cache_key = list_cache_key(
            self.cache.namespace, user_id, pagination_type, page=page, cursor=cursor, limit=limit
        )

        cached = self._read_cache(cache_key)
        if cached is not None:
            return PaginatedListResult(items=cached.items, pagination=cached.pagination, cache_hit=True)

        # read before the store so a mutation that lands mid-read blocks the write-back
        generation = self.cache.generation(user_id)

        if pagination_type is PaginationType.OFFSET:
            result = self._offset_page(user_id, page, limit)
        else:
            result = self._cursor_page(user_id, cursor, position, limit)

        if generation is not None:
            self.cache.set_if_current(cache_key, result.model_dump_json(by_alias=True), user_id, generation)
        return PaginatedListResult(items=result.items, pagination=result.pagination, cache_hit=False)

    def _read_cache(self, key: str) -> Optional[ListResult]:
        cached = self.cache.get(key)
        if not cached.hit:
            if cached.error is not None:
                app_logger.warning("cache.degraded", key=key, error=str(cached.error))
            return None
        try:
            return ListResult.model_validate_json(cached.value)
        except ValidationError as e:
            app_logger.warning("cache.payload.invalid", key=key, exc_info=e)
            return None

    def _offset_page(self, user_id: str, page: int, limit: int) -> ListResult:
        skip = (page - 1) * limit

        # count and page are separate reads; a concurrent mutation can skew them slightly
        total_items = self.store.count_entries(user_id)
        rows = self.store.list_page(user_id, skip, limit)

        total_pages = math.ceil(total_items / limit)
        pagination = OffsetPagination(
            page=page,
            limit=limit,
            total_items=total_items,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )
        return ListResult(items=[self._to_item_out(r) for r in rows], pagination=pagination)

    def _cursor_page(self, user_id: str, cursor: Optional[str], position: Optional[Cursor], limit: int) -> ListResult:
        # one extra row tells whether another page exists
        rows = self.store.list_after(user_id, position, limit + 1)
        has_next_page = len(rows) > limit
        rows = rows[:limit]

        next_cursor = None
        if has_next_page and rows:
            last = rows[-1]
            next_cursor = encode_cursor(Cursor(added_at=last.added_at, entry_id=last.id))

        # prev_cursor only echoes the request; walking backwards is not supported
        pagination = CursorPagination(
            limit=limit,
            next_cursor=next_cursor,
            prev_cursor=cursor,
            has_next_page=has_next_page,
            has_prev_page=cursor is not None,
        )
        return ListResult(items=[self._to_item_out(r) for r in rows], pagination=pagination)

    @staticmethod
    def _to_item_out(item: MyListItem) -> ListItemOut:
        return ListItemOut(
            id=str(item.id),
            content_id=item.content_id,
            content_type=item.content_type,
            title=item.title,
            description=item.description,
            genres=item.genres,
            release_date=item.release_date,
            director=item.director,
            actors=item.actors,
            added_at=item.added_at,
        )
