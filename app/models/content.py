from typing import List
from datetime import datetime
from uuid import uuid4

from sqlmodel import Field, Column, DateTime, SQLModel
from sqlalchemy import JSON


def _content_id() -> str:
    return uuid4().hex


class Movie(SQLModel, table=True):
    __tablename__ = "movies"

    id: str = Field(default_factory=_content_id, primary_key=True, max_length=50)
    title: str = Field(index=True, nullable=False, max_length=200)
    description: str = Field(nullable=False, max_length=2000)
    genres: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    release_date: datetime = Field(sa_column=Column(DateTime, nullable=False))
    director: str = Field(nullable=False, max_length=100)
    actors: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class TVShow(SQLModel, table=True):
    __tablename__ = "tv_shows"

    id: str = Field(default_factory=_content_id, primary_key=True, max_length=50)
    title: str = Field(index=True, nullable=False, max_length=200)
    description: str = Field(nullable=False, max_length=2000)
    genres: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # each episode: {season_number, episode_number, release_date (ISO), director, actors}
    episodes: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
