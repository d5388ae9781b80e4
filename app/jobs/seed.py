"""Load a small sample catalog of movies and TV shows.

Run with `python -m app.jobs.seed`. Rows are keyed by title, so running it
again only adds what is missing.
"""
from datetime import datetime
from typing import List

from sqlmodel import select
from sqlalchemy.orm import Session

from app.models.content import Movie, TVShow
from app.services.database import SessionLocal, create_tables
from app.utils.log import app_logger


SAMPLE_MOVIES: List[dict] = [
    {
        "title": "The Last Signal",
        "description": "A radio operator picks up a message from a ship lost decades ago.",
        "genres": ["SciFi", "Drama"],
        "release_date": datetime(2019, 3, 14),
        "director": "Ana Ferreira",
        "actors": ["Mia Cole", "Tom Reyes"],
    },
    {
        "title": "Laugh Track",
        "description": "A failing sitcom writer discovers his jokes come true.",
        "genres": ["Comedy", "Fantasy"],
        "release_date": datetime(2021, 7, 2),
        "director": "Jon Baptiste",
        "actors": ["Lena Park", "Omar Said"],
    },
    {
        "title": "Cold Harbor",
        "description": "A detective returns to the fishing town where her sister vanished.",
        "genres": ["Drama", "Horror"],
        "release_date": datetime(2017, 11, 24),
        "director": "Kai Lindqvist",
        "actors": ["Sara Holm", "Erik Dahl", "Mia Cole"],
    },
]

SAMPLE_TV_SHOWS: List[dict] = [
    {
        "title": "Orbit Station",
        "description": "Life and politics aboard the first commercial space station.",
        "genres": ["SciFi", "Drama"],
        "episodes": [
            {
                "season_number": 1,
                "episode_number": 1,
                "release_date": "2020-01-10T00:00:00Z",
                "director": "Priya Nair",
                "actors": ["Tom Reyes", "Lena Park"],
            },
            {
                "season_number": 1,
                "episode_number": 2,
                "release_date": "2020-01-17T00:00:00Z",
                "director": "Priya Nair",
                "actors": ["Lena Park", "Omar Said"],
            },
        ],
    },
    {
        "title": "Second Date",
        "description": "Strangers meet again, one episode per couple.",
        "genres": ["Romance", "Comedy"],
        "episodes": [
            {
                "season_number": 1,
                "episode_number": 1,
                "release_date": "2022-02-14T00:00:00Z",
                "director": "Jon Baptiste",
                "actors": ["Sara Holm", "Erik Dahl"],
            },
        ],
    },
]


def seed_catalog(db: Session) -> dict:
    """Insert missing sample content; returns how many rows of each kind were added."""
    added = {"movies": 0, "tv_shows": 0}

    for data in SAMPLE_MOVIES:
        exists = db.execute(select(Movie).where(Movie.title == data["title"])).scalars().first()
        if exists is None:
            db.add(Movie(**data))
            added["movies"] += 1

    for data in SAMPLE_TV_SHOWS:
        exists = db.execute(select(TVShow).where(TVShow.title == data["title"])).scalars().first()
        if exists is None:
            db.add(TVShow(**data))
            added["tv_shows"] += 1

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return added


def main() -> None:
    create_tables()
    db = SessionLocal()
    try:
        added = seed_catalog(db)
        app_logger.info("seed.finished", **added)
    finally:
        db.close()


if __name__ == "__main__":
    main()
