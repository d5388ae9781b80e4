from datetime import datetime
from typing import List, Optional

from sqlmodel import select
from sqlalchemy import and_, delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import messages
from app.core.exceptions.exceptions import ConflictError
from app.models.my_list_item import MyListItem
from app.schemas.my_list import ContentSnapshot, ContentType
from app.utils.cursor import Cursor


class MyListStore:
    """Queries and writes for `my_list_items`.

    Every read is ordered canonically (added_at DESC, id DESC). Each write is
    a single statement committed on its own, so an aborted request never
    leaves a half-written entry behind.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _canonical_order():
        return (MyListItem.added_at.desc(), MyListItem.id.desc())

    def find_entry(self, user_id: str, content_id: str) -> Optional[MyListItem]:
        stmt = select(MyListItem).where(
            MyListItem.user_id == user_id,
            MyListItem.content_id == content_id,
        )
        return self.db.execute(stmt).scalars().one_or_none()

    def create_entry(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType,
        snapshot: ContentSnapshot,
        added_at: datetime,
    ) -> MyListItem:
        """Insert a new entry; the unique constraint turns a duplicate into ConflictError."""
        item = MyListItem(
            user_id=user_id,
            content_id=content_id,
            content_type=ContentType(content_type).value,
            added_at=added_at,
            title=snapshot.title,
            description=snapshot.description,
            genres=[g.value for g in snapshot.genres],
            release_date=snapshot.release_date,
            director=snapshot.director,
            actors=list(snapshot.actors),
        )
        try:
            self.db.add(item)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(messages.ITEM_ALREADY_IN_LIST) from e
        self.db.refresh(item)
        return item

    def delete_entry(self, user_id: str, content_id: str) -> int:
        """Delete the (user, content) entry and return the number of rows removed."""
        stmt = delete(MyListItem).where(
            MyListItem.user_id == user_id,
            MyListItem.content_id == content_id,
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return int(result.rowcount or 0)

    def count_entries(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(MyListItem).where(MyListItem.user_id == user_id)
        # scalar_one returns the single aggregated integer result
        return int(self.db.execute(stmt).scalar_one())

    def list_page(self, user_id: str, skip: int, limit: int) -> List[MyListItem]:
        stmt = (
            select(MyListItem)
            .where(MyListItem.user_id == user_id)
            .order_by(*self._canonical_order())
            .offset(skip)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_after(self, user_id: str, cursor: Optional[Cursor], limit: int) -> List[MyListItem]:
        """Up to `limit` entries strictly after `cursor` in canonical order."""
        stmt = select(MyListItem).where(MyListItem.user_id == user_id)
        if cursor is not None:
            if cursor.entry_id is not None:
                stmt = stmt.where(
                    or_(
                        MyListItem.added_at < cursor.added_at,
                        and_(MyListItem.added_at == cursor.added_at, MyListItem.id < cursor.entry_id),
                    )
                )
            else:
                # legacy cursor without a tie-break id
                stmt = stmt.where(MyListItem.added_at < cursor.added_at)
        stmt = stmt.order_by(*self._canonical_order()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())
