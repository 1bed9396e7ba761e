from datetime import UTC, date, datetime, time

from fastapi import APIRouter, Depends, Query, Request, status

from app.api.dependencies import (
    UnitOfWork,
    ensure_self_or_admin,
    get_current_user,
    get_uow,
)
from app.api.openapi_responses import (
    ErrorExample,
    error_responses,
    forbidden_response,
    not_found_response,
    rate_limited_response,
    unauthorized_response,
)
from app.api.schemas import (
    ContentResponse,
    CreateSubmissionRequest,
    DailyDropResponse,
    PreferenceResponse,
    SavePreferencesRequest,
    SubmissionResponse,
)
from app.core.errors import build_http_error, not_found_error
from app.core.rate_limit import SUBMISSION_RATE_LIMIT, limit, rate_limit_user_or_ip_key
from app.db.models.user import User
from app.services.preference_service import PreferenceError, UnknownTopicError

router = APIRouter()

_COMMON_RESPONSES = {
    **unauthorized_response(),
    **forbidden_response("Users may only access their own data"),
    **rate_limited_response(),
}


@router.get(
    "/{user_id}/preferences",
    summary="Get preferences",
    response_model=list[PreferenceResponse],
    responses=_COMMON_RESPONSES,
)
async def get_preferences(
    request: Request,
    user_id: str,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> list[PreferenceResponse]:
    ensure_self_or_admin(user_id, current_user)
    preferences = await uow.preference_service.get_preferences(user_id)
    return [PreferenceResponse.from_preference(preference) for preference in preferences]


@router.post(
    "/{user_id}/preferences",
    summary="Replace preferences",
    description=(
        "Replace the full preference set and mark the user onboarded. "
        "An empty list clears all preferences."
    ),
    response_model=list[PreferenceResponse],
    responses={
        **_COMMON_RESPONSES,
        **error_responses(
            ErrorExample(
                status_code=status.HTTP_400_BAD_REQUEST,
                error="unknown_topic",
                message="Unknown topic ids: 00000000-0000-0000-0000-000000000000",
                description="A topic id does not exist",
                summary="Unknown topic",
            ),
            ErrorExample(
                status_code=status.HTTP_404_NOT_FOUND,
                error="user_not_found",
                message="User 00000000-0000-0000-0000-000000000000 not found",
                description="User does not exist",
                summary="User not found",
            ),
        ),
    },
)
async def save_preferences(
    request: Request,
    user_id: str,
    body: SavePreferencesRequest,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> list[PreferenceResponse]:
    ensure_self_or_admin(user_id, current_user)
    try:
        preferences = await uow.preference_service.replace_preferences(
            user_id, body.as_weights()
        )
    except PreferenceError as e:
        status_code = (
            status.HTTP_400_BAD_REQUEST
            if isinstance(e, UnknownTopicError)
            else status.HTTP_404_NOT_FOUND
        )
        raise build_http_error(
            status_code=status_code, error=e.error_code, message=str(e)
        ) from e
    return [PreferenceResponse.from_preference(preference) for preference in preferences]


@router.get(
    "/{user_id}/daily-drops",
    summary="Get daily drops",
    description="Drops for the given UTC day (default today), best match first.",
    response_model=list[DailyDropResponse],
    responses=_COMMON_RESPONSES,
)
async def get_daily_drops(
    request: Request,
    user_id: str,
    day: date | None = Query(default=None, alias="date"),
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> list[DailyDropResponse]:
    ensure_self_or_admin(user_id, current_user)
    moment = datetime.combine(day, time.min, tzinfo=UTC) if day is not None else None
    drops = await uow.drop_service.get_user_daily_drops(user_id, moment)
    return [DailyDropResponse.from_drop(drop) for drop in drops]


@router.post(
    "/{user_id}/daily-drops/{content_id}/view",
    summary="Mark a drop viewed",
    response_model=DailyDropResponse,
    responses={**_COMMON_RESPONSES, **not_found_response("Daily drop")},
)
async def mark_viewed(
    request: Request,
    user_id: str,
    content_id: str,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> DailyDropResponse:
    ensure_self_or_admin(user_id, current_user)
    drop = await uow.drop_service.mark_viewed(user_id, content_id)
    if drop is None:
        raise not_found_error("Daily drop")
    return DailyDropResponse.from_drop(drop, with_content=False)


@router.post(
    "/{user_id}/daily-drops/{content_id}/bookmark",
    summary="Toggle a drop bookmark",
    description="Flips the bookmark flag; bookmarking also saves the content.",
    response_model=DailyDropResponse,
    responses={**_COMMON_RESPONSES, **not_found_response("Daily drop")},
)
async def toggle_bookmark(
    request: Request,
    user_id: str,
    content_id: str,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> DailyDropResponse:
    ensure_self_or_admin(user_id, current_user)
    drop = await uow.drop_service.toggle_bookmark(user_id, content_id)
    if drop is None:
        raise not_found_error("Daily drop")
    return DailyDropResponse.from_drop(drop, with_content=False)


@router.get(
    "/{user_id}/bookmarks",
    summary="List bookmarked content",
    response_model=list[ContentResponse],
    responses=_COMMON_RESPONSES,
)
async def list_bookmarks(
    request: Request,
    user_id: str,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> list[ContentResponse]:
    ensure_self_or_admin(user_id, current_user)
    drops = await uow.drop_service.get_bookmarked_drops(user_id)
    return [ContentResponse.from_content(drop.content) for drop in drops]


@router.post(
    "/{user_id}/submissions",
    summary="Submit content",
    description="Suggest a link for moderation.",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_COMMON_RESPONSES,
)
@limit(SUBMISSION_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def create_submission(
    request: Request,
    user_id: str,
    body: CreateSubmissionRequest,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> SubmissionResponse:
    ensure_self_or_admin(user_id, current_user)
    submission = await uow.submission_service.create_submission(
        user_id,
        str(body.url),
        body.title,
        description=body.description,
        suggested_topics=body.suggested_topics,
    )
    return SubmissionResponse.model_validate(submission)


@router.get(
    "/{user_id}/submissions",
    summary="List own submissions",
    response_model=list[SubmissionResponse],
    responses=_COMMON_RESPONSES,
)
async def list_submissions(
    request: Request,
    user_id: str,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> list[SubmissionResponse]:
    ensure_self_or_admin(user_id, current_user)
    submissions = await uow.submission_service.list_user_submissions(user_id)
    return [SubmissionResponse.model_validate(submission) for submission in submissions]
