from typing import Optional, List
from datetime import datetime

from sqlmodel import Field, Column, DateTime, SQLModel
from sqlalchemy import JSON, Index, UniqueConstraint


class MyListItem(SQLModel, table=True):
    """One entry of a user's list, with the content fields copied in at add time."""

    __tablename__ = "my_list_items"
    __table_args__ = (
        # the only guard against duplicate adds, also across processes
        UniqueConstraint("user_id", "content_id", name="uq_my_list_user_content"),
        # canonical order for both pagination modes: added_at DESC, id DESC
        Index("ix_my_list_user_added_id", "user_id", "added_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, nullable=False, max_length=50)
    content_id: str = Field(nullable=False, max_length=50)
    content_type: str = Field(nullable=False, max_length=16)
    added_at: datetime = Field(sa_column=Column(DateTime, nullable=False))

    # denormalized content snapshot
    title: str = Field(nullable=False)
    description: str = Field(nullable=False)
    genres: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    release_date: datetime = Field(sa_column=Column(DateTime, nullable=False))
    director: Optional[str] = Field(default=None)
    actors: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
