from datetime import datetime
from typing import Dict, List

from sqlalchemy.orm import Session

from app.core import messages
from app.core.exceptions.exceptions import NotFoundError
from app.models.content import Movie, TVShow
from app.schemas.my_list import ContentSnapshot, ContentType
from app.utils.timeutil import parse_instant, utc_now


def _episode_order(episode: Dict) -> tuple:
    return (int(episode.get("season_number") or 0), int(episode.get("episode_number") or 0))


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return parse_instant(str(value))


class ContentLookup:
    """Resolves catalog content into the snapshot stored on a list entry."""

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, content_id: str, content_type: ContentType) -> ContentSnapshot:
        if ContentType(content_type) is ContentType.MOVIE:
            return self._resolve_movie(content_id)
        return self._resolve_tv_show(content_id)

    def _resolve_movie(self, content_id: str) -> ContentSnapshot:
        movie = self.db.get(Movie, content_id)
        if movie is None:
            raise NotFoundError(messages.MOVIE_NOT_FOUND)
        return ContentSnapshot(
            title=movie.title,
            description=movie.description,
            genres=movie.genres,
            release_date=movie.release_date,
            director=movie.director,
            actors=movie.actors,
        )

    def _resolve_tv_show(self, content_id: str) -> ContentSnapshot:
        show = self.db.get(TVShow, content_id)
        if show is None:
            raise NotFoundError(messages.TV_SHOW_NOT_FOUND)

        episodes = sorted(show.episodes or [], key=_episode_order)
        first = episodes[0] if episodes else {}

        # union of the cast across episodes, first appearance wins
        actors: List[str] = []
        seen = set()
        for episode in episodes:
            for actor in episode.get("actors") or []:
                if actor not in seen:
                    seen.add(actor)
                    actors.append(actor)

        release_date = first.get("release_date")
        return ContentSnapshot(
            title=show.title,
            description=show.description,
            genres=show.genres,
            release_date=_as_datetime(release_date) if release_date else utc_now(),
            director=first.get("director"),
            actors=actors,
        )
