from fastapi import APIRouter, Depends, Query, Request

from app.api.dependencies import UnitOfWork, get_current_user, get_uow
from app.api.openapi_responses import (
    not_found_response,
    rate_limited_response,
    unauthorized_response,
)
from app.api.schemas import ContentResponse, SaveContentResponse
from app.core.errors import not_found_error
from app.db.models.content import ContentSource
from app.db.models.user import User

router = APIRouter()


@router.get(
    "",
    summary="List content",
    description="Approved content, newest first, optionally filtered by source.",
    response_model=list[ContentResponse],
    responses=rate_limited_response(),
)
async def list_content(
    request: Request,
    source: ContentSource | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    uow: UnitOfWork = Depends(get_uow),
) -> list[ContentResponse]:
    items = await uow.content_service.list_content(
        source.value if source else None, limit=limit, offset=offset
    )
    return [ContentResponse.from_content(item) for item in items]


@router.get(
    "/search",
    summary="Search content",
    description="Case-insensitive match on title and description.",
    response_model=list[ContentResponse],
    responses=rate_limited_response(),
)
async def search_content(
    request: Request,
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(default=50, ge=1, le=200),
    uow: UnitOfWork = Depends(get_uow),
) -> list[ContentResponse]:
    items = await uow.content_service.search_content(q, limit=limit)
    return [ContentResponse.from_content(item) for item in items]


@router.get(
    "/saved",
    summary="List saved content",
    description="Content protected from retention cleanup, most recently saved first.",
    response_model=list[ContentResponse],
    responses={**unauthorized_response(), **rate_limited_response()},
)
async def list_saved_content(
    request: Request,
    limit: int = Query(default=100, ge=1, le=200),
    _current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> list[ContentResponse]:
    items = await uow.content_service.list_saved(limit=limit)
    return [ContentResponse.from_content(item) for item in items]


@router.get(
    "/{content_id}",
    summary="Get content",
    response_model=ContentResponse,
    responses={**not_found_response("Content"), **rate_limited_response()},
)
async def get_content(
    request: Request, content_id: str, uow: UnitOfWork = Depends(get_uow)
) -> ContentResponse:
    content = await uow.content_service.get_content(content_id)
    if content is None:
        raise not_found_error("Content")
    return ContentResponse.from_content(content)


@router.post(
    "/{content_id}/save",
    summary="Toggle saved",
    description="Flip the saved flag; saved content is kept by retention cleanup.",
    response_model=SaveContentResponse,
    responses={
        **unauthorized_response(),
        **not_found_response("Content"),
        **rate_limited_response(),
    },
)
async def save_content(
    request: Request,
    content_id: str,
    _current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> SaveContentResponse:
    existing = await uow.content_service.get_content(content_id)
    if existing is None:
        raise not_found_error("Content")
    content = await uow.content_service.set_saved(content_id, not existing.is_saved)
    assert content is not None
    return SaveContentResponse(content_id=content.id, is_saved=content.is_saved)
