"""Cache key derivation for list pages.

Every key for a user starts with `<namespace>:<user_id>:` so a mutation can
drop all of that user's pages with one prefix sweep. Keys depend only on the
explicit arguments, never on request headers or dict ordering.
"""
import re
from typing import Optional

from app.schemas.my_list import PaginationType

_GLOB_SPECIALS = re.compile(r"([*?\[\]\\])")


def user_prefix(namespace: str, user_id: str) -> str:
    return f"{namespace}:{user_id}:"


def offset_cache_key(namespace: str, user_id: str, page: int, limit: int) -> str:
    return f"{user_prefix(namespace, user_id)}offset:page:{page}:limit:{limit}"


def cursor_cache_key(namespace: str, user_id: str, cursor: Optional[str], limit: int) -> str:
    cursor_part = cursor or "first"
    return f"{user_prefix(namespace, user_id)}cursor:{cursor_part}:limit:{limit}"


def list_cache_key(
    namespace: str,
    user_id: str,
    pagination_type: PaginationType,
    page: Optional[int] = None,
    cursor: Optional[str] = None,
    limit: int = 10,
) -> str:
    """Key for one page request; `page` defaults to 1, an empty cursor means the first page."""
    if PaginationType(pagination_type) is PaginationType.OFFSET:
        return offset_cache_key(namespace, user_id, page or 1, limit)
    return cursor_cache_key(namespace, user_id, cursor, limit)


def user_cache_pattern(namespace: str, user_id: str) -> str:
    """Redis MATCH pattern for every key of `user_id`, glob characters escaped."""
    return _GLOB_SPECIALS.sub(r"\\\1", user_prefix(namespace, user_id)) + "*"


def generation_key(namespace: str, user_id: str) -> str:
    """Counter bumped on every invalidation of `user_id`.

    Lives outside the `<namespace>:<user_id>:` prefix so the sweep that it
    guards never deletes it.
    """
    return f"{namespace}-generation:{user_id}"
