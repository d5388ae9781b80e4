from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Genre(str, Enum):
    ACTION = "Action"
    COMEDY = "Comedy"
    DRAMA = "Drama"
    FANTASY = "Fantasy"
    HORROR = "Horror"
    ROMANCE = "Romance"
    SCIFI = "SciFi"


class ContentType(str, Enum):
    MOVIE = "movie"
    TV_SHOW = "tvshow"


class PaginationType(str, Enum):
    OFFSET = "offset"
    CURSOR = "cursor"


class CamelModel(BaseModel):
    """Python field names in, camelCase on the wire (and in the cache)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContentSnapshot(BaseModel):
    """Content fields copied onto a list entry when it is added."""
    title: str
    description: str
    genres: List[Genre]
    release_date: datetime
    director: Optional[str] = None
    actors: List[str]


class AddToListRequest(CamelModel):
    content_id: str = Field(..., min_length=1, max_length=50)
    content_type: ContentType


class ListItemOut(CamelModel):
    id: str
    content_id: str
    content_type: ContentType
    title: str
    description: str
    genres: List[Genre]
    release_date: datetime
    director: Optional[str] = None
    actors: List[str]
    added_at: datetime


class OffsetPagination(CamelModel):
    type: Literal["offset"] = "offset"
    page: int
    limit: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class CursorPagination(CamelModel):
    type: Literal["cursor"] = "cursor"
    limit: int
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    has_next_page: bool
    has_prev_page: bool


Pagination = Annotated[Union[OffsetPagination, CursorPagination], Field(discriminator="type")]


class ListResult(CamelModel):
    """A page as stored in the cache."""
    items: List[ListItemOut]
    pagination: Pagination


class PaginatedListResult(ListResult):
    cache_hit: bool = False


class ListResponse(CamelModel):
    success: bool = True
    data: List[ListItemOut]
    pagination: Pagination


class ItemResponse(CamelModel):
    success: bool = True
    data: ListItemOut


class MessageResponse(CamelModel):
    success: bool = True
    message: str
