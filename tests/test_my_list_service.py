import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
import redis

from app.core.exceptions.exceptions import ConflictError, InvalidCursorError, NotFoundError
from app.schemas.my_list import ContentType, PaginationType
from app.services.content_lookup import ContentLookup
from app.services.my_list_service import MyListService
from app.services.my_list_store import MyListStore
from app.services.pagination_cache import RedisPaginationCache
from app.utils.cache_keys import offset_cache_key
from app.utils.cursor import Cursor, decode_cursor, encode_cursor

MOVIE = ContentType.MOVIE
OFFSET = PaginationType.OFFSET
CURSOR = PaginationType.CURSOR


def _walk_cursor(service, user_id, limit):
    """Follow next_cursor from the first page to the end; returns (entry ids, pages)."""
    ids, pages, cursor = [], 0, None
    while True:
        result = service.get_list(user_id, CURSOR, limit=limit, cursor=cursor)
        pages += 1
        ids.extend(item.id for item in result.items)
        if not result.pagination.has_next_page:
            assert result.pagination.next_cursor is None
            return ids, pages
        cursor = result.pagination.next_cursor
        assert cursor is not None


def _walk_offset(service, user_id, limit):
    first = service.get_list(user_id, OFFSET, page=1, limit=limit)
    ids = [item.id for item in first.items]
    for page in range(2, first.pagination.total_pages + 1):
        ids.extend(item.id for item in service.get_list(user_id, OFFSET, page=page, limit=limit).items)
    return ids


@pytest.fixture
def populated(service, make_movie, clock):
    """12 entries for user u1 over 3 distinct timestamps (4 ties each), plus noise for u2."""
    base = datetime(2024, 5, 1, 9, 0, 0)
    for i in range(12):
        clock.set(base + timedelta(minutes=i % 3))
        service.add_to_list("u1", make_movie(f"Film {i}"), MOVIE)
    clock.set(base + timedelta(hours=1))
    service.add_to_list("u2", make_movie("Other user film"), MOVIE)
    return "u1"


def _canonical_ids(db, user_id):
    rows = MyListStore(db).list_page(user_id, 0, 1000)
    assert [(r.added_at, r.id) for r in rows] == sorted(((r.added_at, r.id) for r in rows), reverse=True)
    return [str(r.id) for r in rows]


# add

def test_add_creates_entry_with_snapshot(service, make_movie, clock, db):
    movie_id = make_movie("Arrival", genres=["SciFi"], director="D. V.", actors=["Amy"])

    item = service.add_to_list("u1", movie_id, MOVIE)

    assert item.content_id == movie_id
    assert item.content_type is ContentType.MOVIE
    assert item.title == "Arrival"
    assert item.director == "D. V."
    assert item.added_at == clock.now
    assert MyListStore(db).count_entries("u1") == 1


def test_add_tv_show_snapshot(service, make_tv_show):
    show_id = make_tv_show(title="Orbit")
    item = service.add_to_list("u1", show_id, ContentType.TV_SHOW)
    assert item.content_type is ContentType.TV_SHOW
    assert item.director == "Pilot Director"
    assert item.release_date == datetime(2021, 5, 1)


def test_add_duplicate_is_conflict(service, make_movie, db):
    movie_id = make_movie()
    service.add_to_list("u1", movie_id, MOVIE)

    with pytest.raises(ConflictError) as exc_info:
        service.add_to_list("u1", movie_id, MOVIE)

    assert exc_info.value.message == "Item already exists in list"
    assert MyListStore(db).count_entries("u1") == 1


def test_same_content_for_different_users_is_allowed(service, make_movie):
    movie_id = make_movie()
    service.add_to_list("u1", movie_id, MOVIE)
    service.add_to_list("u2", movie_id, MOVIE)


def test_add_unknown_content_is_not_found(service, db):
    with pytest.raises(NotFoundError) as exc_info:
        service.add_to_list("u1", "does-not-exist", MOVIE)
    assert exc_info.value.message == "Movie not found"
    assert MyListStore(db).count_entries("u1") == 0


def test_unique_constraint_decides_when_the_precheck_is_raced(db, cache, make_movie):
    movie_id = make_movie()
    MyListService(MyListStore(db), cache, ContentLookup(db)).add_to_list("u1", movie_id, MOVIE)

    # a second request that checked before the first one committed
    racing_store = MyListStore(db)
    racing_store.find_entry = MagicMock(return_value=None)
    racer = MyListService(racing_store, cache, ContentLookup(db))

    with pytest.raises(ConflictError):
        racer.add_to_list("u1", movie_id, MOVIE)
    assert MyListStore(db).count_entries("u1") == 1


def test_concurrent_duplicate_adds_yield_exactly_one_success(session_factory, cache, make_movie, db):
    movie_id = make_movie()
    workers = 8
    barrier = threading.Barrier(workers)

    def attempt():
        session = session_factory()
        try:
            svc = MyListService(MyListStore(session), cache, ContentLookup(session))
            barrier.wait()
            try:
                svc.add_to_list("u1", movie_id, MOVIE)
                return "ok"
            except ConflictError:
                return "conflict"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = [f.result() for f in [pool.submit(attempt) for _ in range(workers)]]

    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == workers - 1
    assert MyListStore(db).count_entries("u1") == 1


# remove

def test_remove_deletes_entry(service, make_movie, db):
    movie_id = make_movie()
    service.add_to_list("u1", movie_id, MOVIE)

    service.remove_from_list("u1", movie_id)

    assert MyListStore(db).count_entries("u1") == 0


def test_remove_missing_is_not_found(service, make_movie):
    movie_id = make_movie()
    service.add_to_list("u1", movie_id, MOVIE)

    with pytest.raises(NotFoundError) as exc_info:
        service.remove_from_list("u2", movie_id)
    assert exc_info.value.message == "Item not in list"


# offset pagination

def test_offset_second_page_of_three(service, make_movie, clock):
    for i in range(3):
        clock.advance(seconds=1)
        service.add_to_list("u1", make_movie(), MOVIE)

    result = service.get_list("u1", OFFSET, page=2, limit=2)

    assert len(result.items) == 1
    p = result.pagination
    assert p.type == "offset"
    assert (p.page, p.limit, p.total_items, p.total_pages) == (2, 2, 3, 2)
    assert p.has_next_page is False
    assert p.has_prev_page is True


def test_offset_first_page_is_newest_first(service, make_movie, clock):
    for i in range(3):
        clock.advance(seconds=1)
        service.add_to_list("u1", make_movie(f"T{i}"), MOVIE)

    result = service.get_list("u1", OFFSET, page=1, limit=2)

    assert [i.title for i in result.items] == ["T2", "T1"]
    assert result.pagination.has_next_page is True
    assert result.pagination.has_prev_page is False


def test_offset_page_past_the_end_is_empty_not_an_error(service, make_movie):
    service.add_to_list("u1", make_movie(), MOVIE)

    result = service.get_list("u1", OFFSET, page=7, limit=10)

    assert result.items == []
    assert result.pagination.total_items == 1
    assert result.pagination.total_pages == 1
    assert result.pagination.has_next_page is False
    assert result.pagination.has_prev_page is True


def test_offset_on_empty_list(service):
    result = service.get_list("nobody", OFFSET)
    assert result.items == []
    assert result.pagination.total_pages == 0
    assert result.pagination.page == 1
    assert result.pagination.limit == 10
    assert result.pagination.has_next_page is False


# cursor pagination

def test_cursor_walk_breaks_timestamp_ties_by_entry_id(service, make_movie, clock):
    t1 = datetime(2024, 1, 2, 8, 0, 0)
    t2 = datetime(2024, 1, 1, 8, 0, 0)
    ids = {name: make_movie(name) for name in ("A", "B", "C")}

    clock.set(t2)
    c = service.add_to_list("u1", ids["C"], MOVIE)
    b = service.add_to_list("u1", ids["B"], MOVIE)
    clock.set(t1)
    service.add_to_list("u1", ids["A"], MOVIE)
    assert int(c.id) < int(b.id)

    first = service.get_list("u1", CURSOR, limit=1)
    assert [i.title for i in first.items] == ["A"]
    assert first.pagination.has_prev_page is False
    assert first.pagination.prev_cursor is None
    assert decode_cursor(first.pagination.next_cursor) == Cursor(added_at=t1, entry_id=int(first.items[0].id))

    second = service.get_list("u1", CURSOR, limit=1, cursor=first.pagination.next_cursor)
    assert [i.title for i in second.items] == ["B"]
    assert second.pagination.has_prev_page is True
    assert second.pagination.prev_cursor == first.pagination.next_cursor

    third = service.get_list("u1", CURSOR, limit=1, cursor=second.pagination.next_cursor)
    assert [i.title for i in third.items] == ["C"]
    assert third.pagination.has_next_page is False
    assert third.pagination.next_cursor is None


@pytest.mark.parametrize("limit", [1, 2, 3, 4, 5, 7, 12, 13, 100])
def test_cursor_walk_visits_every_entry_once(service, populated, db, limit):
    expected = _canonical_ids(db, populated)

    ids, pages = _walk_cursor(service, populated, limit)

    assert ids == expected
    assert len(set(ids)) == 12
    assert pages == max(1, -(-12 // limit))


@pytest.mark.parametrize("limit", [1, 3, 5, 12])
def test_offset_pages_agree_with_cursor_walk(service, populated, limit):
    assert _walk_offset(service, populated, limit) == _walk_cursor(service, populated, limit)[0]


def test_cursor_on_empty_list(service):
    result = service.get_list("nobody", CURSOR, limit=5)
    assert result.items == []
    assert result.pagination.type == "cursor"
    assert result.pagination.has_next_page is False
    assert result.pagination.next_cursor is None


def test_invalid_cursor_is_bad_request(service):
    with pytest.raises(InvalidCursorError) as exc_info:
        service.get_list("u1", CURSOR, cursor="%%%not-a-cursor")
    assert exc_info.value.status_code == 400


def test_literal_first_cursor_is_rejected_even_when_first_page_is_cached(service, make_movie):
    service.add_to_list("u1", make_movie(), MOVIE)

    with pytest.raises(InvalidCursorError):
        service.get_list("u1", CURSOR, cursor="first", limit=5)

    # the no-cursor first page is cached under the ".../cursor:first:..." key
    assert service.get_list("u1", CURSOR, limit=5).cache_hit is False
    assert service.get_list("u1", CURSOR, limit=5).cache_hit is True

    with pytest.raises(InvalidCursorError):
        service.get_list("u1", CURSOR, cursor="first", limit=5)


def test_cursor_without_id_filters_on_timestamp_only(service, make_movie, clock):
    t_new = datetime(2024, 2, 1)
    t_old = datetime(2024, 1, 1)
    clock.set(t_old)
    service.add_to_list("u1", make_movie("Old 1"), MOVIE)
    service.add_to_list("u1", make_movie("Old 2"), MOVIE)
    clock.set(t_new)
    service.add_to_list("u1", make_movie("New"), MOVIE)

    after_new = service.get_list("u1", CURSOR, cursor=encode_cursor(Cursor(added_at=t_new)))
    assert sorted(i.title for i in after_new.items) == ["Old 1", "Old 2"]

    # known gap: every entry sharing the cursor timestamp is skipped, seen or not
    after_old = service.get_list("u1", CURSOR, cursor=encode_cursor(Cursor(added_at=t_old)))
    assert after_old.items == []


# caching

def test_repeat_request_is_served_from_cache(service, populated):
    first = service.get_list(populated, OFFSET, page=1, limit=5)
    second = service.get_list(populated, OFFSET, page=1, limit=5)

    assert first.cache_hit is False
    assert second.cache_hit is True
    assert second.model_dump(exclude={"cache_hit"}) == first.model_dump(exclude={"cache_hit"})


def test_cursor_pages_are_cached_with_their_pagination_block(service, populated):
    first = service.get_list(populated, CURSOR, limit=5)
    again = service.get_list(populated, CURSOR, limit=5)

    assert again.cache_hit is True
    assert again.pagination.type == "cursor"
    assert again.pagination.next_cursor == first.pagination.next_cursor


def test_default_parameters_share_a_cache_entry(service, populated):
    service.get_list(populated, OFFSET)
    assert service.get_list(populated, OFFSET, page=1, limit=10).cache_hit is True


def test_add_invalidates_cached_pages(service, make_movie, clock):
    service.add_to_list("u1", make_movie(), MOVIE)
    service.get_list("u1", OFFSET)
    service.get_list("u1", CURSOR)
    assert service.get_list("u1", OFFSET).cache_hit is True

    clock.advance(seconds=5)
    added = service.add_to_list("u1", make_movie("Fresh"), MOVIE)

    offset = service.get_list("u1", OFFSET)
    cursor = service.get_list("u1", CURSOR)
    assert offset.cache_hit is False
    assert cursor.cache_hit is False
    assert offset.pagination.total_items == 2
    assert offset.items[0].id == added.id
    assert cursor.items[0].id == added.id


def test_remove_invalidates_cached_pages(service, make_movie):
    movie_id = make_movie()
    service.add_to_list("u1", movie_id, MOVIE)
    assert len(service.get_list("u1", OFFSET).items) == 1

    service.remove_from_list("u1", movie_id)

    result = service.get_list("u1", OFFSET)
    assert result.cache_hit is False
    assert result.items == []


def test_mutation_leaves_other_users_cache_alone(service, make_movie, cache):
    service.add_to_list("u2", make_movie(), MOVIE)
    service.get_list("u2", OFFSET)

    service.add_to_list("u1", make_movie(), MOVIE)

    assert service.get_list("u2", OFFSET).cache_hit is True


def test_failed_remove_keeps_cache(service, make_movie):
    service.add_to_list("u1", make_movie(), MOVIE)
    service.get_list("u1", OFFSET)

    with pytest.raises(NotFoundError):
        service.remove_from_list("u1", "unknown")

    assert service.get_list("u1", OFFSET).cache_hit is True


def test_page_read_while_a_mutation_lands_is_not_cached(service, make_movie, clock, monkeypatch):
    service.add_to_list("u1", make_movie(), MOVIE)
    late_movie = make_movie()
    read_page = service.store.list_page

    def list_page_then_add(*args, **kwargs):
        rows = read_page(*args, **kwargs)
        # another request commits and invalidates before this read writes back
        clock.advance(seconds=1)
        service.add_to_list("u1", late_movie, MOVIE)
        return rows

    monkeypatch.setattr(service.store, "list_page", list_page_then_add)
    stale = service.get_list("u1", OFFSET)
    monkeypatch.undo()

    fresh = service.get_list("u1", OFFSET)

    assert len(stale.items) == 1
    assert fresh.cache_hit is False
    assert [i.content_id for i in fresh.items][0] == late_movie
    assert fresh.pagination.total_items == 2


def test_unreadable_cache_payload_is_a_miss(service, cache, make_movie):
    service.add_to_list("u1", make_movie(), MOVIE)
    cache.set(offset_cache_key("mylist", "u1", 1, 10), "{not json")

    result = service.get_list("u1", OFFSET)

    assert result.cache_hit is False
    assert len(result.items) == 1
    assert service.get_list("u1", OFFSET).cache_hit is True


def test_cache_outage_never_fails_reads_or_writes(db, make_movie):
    client = MagicMock(spec=redis.Redis)
    client.get.side_effect = redis.ConnectionError("down")
    client.setex.side_effect = redis.ConnectionError("down")
    client.scan_iter.side_effect = redis.ConnectionError("down")
    svc = MyListService(MyListStore(db), RedisPaginationCache(client=client), ContentLookup(db))

    movie_id = make_movie()
    svc.add_to_list("u1", movie_id, MOVIE)
    first = svc.get_list("u1", OFFSET)
    second = svc.get_list("u1", OFFSET)
    svc.remove_from_list("u1", movie_id)

    assert first.cache_hit is False
    assert second.cache_hit is False
    assert len(second.items) == 1
