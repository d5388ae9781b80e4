from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core import messages
from app.core.exceptions.exceptions import DomainError
from app.middleware.security import Security
from app.schemas.my_list import (
    AddToListRequest,
    ItemResponse,
    ListResponse,
    MessageResponse,
    PaginationType,
)
from app.services.content_lookup import ContentLookup
from app.services.database import get_db
from app.services.my_list_service import MyListService
from app.services.my_list_store import MyListStore
from app.services.pagination_cache import PaginationCache
from app.utils.log import app_logger

router = APIRouter(prefix="/api/my-list", tags=["My_List"])

sec = Security()


def get_cache(request: Request) -> PaginationCache:
    return request.app.state.cache


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Mock identification: the caller is whoever the x-user-id header names."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": messages.UNAUTHORIZED, "details": [messages.MISSING_USER_ID_HEADER]},
        )
    if not sec.is_valid_user_id(x_user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": messages.UNAUTHORIZED, "details": [messages.INVALID_USER_ID_FORMAT]},
        )
    return x_user_id


def get_my_list_service(
    db: Session = Depends(get_db),
    cache: PaginationCache = Depends(get_cache),
) -> MyListService:
    return MyListService(MyListStore(db), cache, ContentLookup(db))


def _http_error(e: DomainError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail={"error": e.message, "details": e.details})


@router.get("", response_model=ListResponse)
def get_list(
    response: Response,
    type: PaginationType = Query(default=PaginationType.OFFSET),
    page: int = Query(default=1, ge=1, description=messages.PAGE_MIN),
    limit: int = Query(default=settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    cursor: Optional[str] = Query(default=None),
    user_id: str = Depends(get_user_id),
    svc: MyListService = Depends(get_my_list_service),
) -> ListResponse:
    """Return one page of the caller's list, offset- or cursor-paginated."""
    try:
        result = svc.get_list(user_id, type, page=page, limit=limit, cursor=cursor)
    except DomainError as e:
        app_logger.warning("api.my_list.get.rejected", user_id=user_id, error=e.message)
        raise _http_error(e)

    # cache status header, like a CDN
    response.headers["X-Cache"] = "HIT" if result.cache_hit else "MISS"
    return ListResponse(data=result.items, pagination=result.pagination)


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def add_to_list(
    payload: AddToListRequest,
    user_id: str = Depends(get_user_id),
    svc: MyListService = Depends(get_my_list_service),
) -> ItemResponse:
    try:
        item = svc.add_to_list(user_id, payload.content_id, payload.content_type)
    except DomainError as e:
        app_logger.warning("api.my_list.add.rejected", user_id=user_id, content_id=payload.content_id, error=e.message)
        raise _http_error(e)
    return ItemResponse(data=item)


@router.delete("/{content_id}", response_model=MessageResponse)
def remove_from_list(
    content_id: str,
    user_id: str = Depends(get_user_id),
    svc: MyListService = Depends(get_my_list_service),
) -> MessageResponse:
    if not sec.is_valid_content_id(content_id):
        raise HTTPException(status_code=400, detail={"error": messages.BAD_REQUEST, "details": [messages.CONTENT_ID_TOO_LONG]})
    try:
        svc.remove_from_list(user_id, content_id)
    except DomainError as e:
        app_logger.warning("api.my_list.remove.rejected", user_id=user_id, content_id=content_id, error=e.message)
        raise _http_error(e)
    return MessageResponse(message=messages.ITEM_REMOVED)
