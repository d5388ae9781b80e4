"""
Pytest fixtures and configuration for My List tests
"""
import os

# must be set before anything under app/ reads the settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from app.models.content import Movie, TVShow
from app.services.content_lookup import ContentLookup
from app.services.database import build_engine, create_tables
from app.services.my_list_service import MyListService
from app.services.my_list_store import MyListStore
from app.services.pagination_cache import MemoryPaginationCache


class FakeClock:
    """Deterministic replacement for utc_now; only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


@pytest.fixture
def engine(tmp_path):
    # file-backed so that several threads can share the database
    eng = build_engine(f"sqlite:///{tmp_path / 'mylist.db'}")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cache():
    return MemoryPaginationCache(namespace="mylist", ttl_seconds=300)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_movie(db):
    """Factory that inserts a movie and returns its id."""
    counter = {"n": 0}

    def _make(title=None, **overrides) -> str:
        counter["n"] += 1
        data = {
            "title": title or f"Movie {counter['n']}",
            "description": "A test movie",
            "genres": ["Action"],
            "release_date": datetime(2020, 1, counter["n"] % 28 + 1),
            "director": "Test Director",
            "actors": ["Actor A", "Actor B"],
        }
        data.update(overrides)
        movie = Movie(**data)
        db.add(movie)
        db.commit()
        return movie.id

    return _make


@pytest.fixture
def make_tv_show(db):
    def _make(title="Test Show", episodes=None, **overrides) -> str:
        data = {
            "title": title,
            "description": "A test show",
            "genres": ["Drama"],
            "episodes": episodes if episodes is not None else [
                {
                    "season_number": 1,
                    "episode_number": 1,
                    "release_date": "2021-05-01T00:00:00Z",
                    "director": "Pilot Director",
                    "actors": ["Lead"],
                },
            ],
        }
        data.update(overrides)
        show = TVShow(**data)
        db.add(show)
        db.commit()
        return show.id

    return _make


@pytest.fixture
def service(db, cache, clock):
    return MyListService(MyListStore(db), cache, ContentLookup(db), clock=clock, default_limit=10)
