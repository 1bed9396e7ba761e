from fastapi import APIRouter, Depends, Query, Request, status

from app.api.dependencies import UnitOfWork, get_uow, require_admin
from app.api.openapi_responses import (
    ErrorExample,
    error_responses,
    forbidden_response,
    not_found_response,
    rate_limited_response,
    unauthorized_response,
)
from app.api.schemas import (
    CleanupRequest,
    CleanupResponse,
    DailyDropRunResponse,
    DailyDropStatsResponse,
    FeedResponse,
    GeneratedDropsResponse,
    IngestedCountResponse,
    IngestFeedRequest,
    IngestionRunResponse,
    IngestionStatsResponse,
    LoadFeedsResponse,
    ModerateSubmissionRequest,
    ScheduledCleanupResponse,
    SocialIngestionResponse,
    SourceCount,
    StorageStatsResponse,
    SubmissionResponse,
    SystemStatsResponse,
)
from app.core.errors import build_http_error, not_found_error
from app.core.rate_limit import ADMIN_JOB_RATE_LIMIT, limit, rate_limit_user_or_ip_key
from app.db.models.user import User
from app.db.models.user_submission import SubmissionStatus
from app.ingestion.feeds_loader import FeedConfigError
from app.ingestion.social_sources import Platform
from app.services.ingestion_service import (
    DatabaseUnavailableError,
    FeedNotConfiguredError,
    IngestionError,
)
from app.services.submission_service import (
    SubmissionAlreadyModeratedError,
    SubmissionError,
)

# Every route requires an admin; the dependency runs before each handler.
router = APIRouter(dependencies=[Depends(require_admin)])

_ADMIN_RESPONSES = {
    **unauthorized_response(),
    **forbidden_response("Admin access required"),
    **rate_limited_response(),
}

_JOB_RESPONSES = {
    **_ADMIN_RESPONSES,
    **error_responses(
        ErrorExample(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="invalid_feed_config",
            message="Feed validation failed: 0.url: Input should be a valid URL",
            description="The feeds file is missing or invalid",
            summary="Invalid feed configuration",
        ),
        ErrorExample(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error="database_unavailable",
            message="Database is unreachable",
            description="Database unavailable",
            summary="Database unreachable",
        ),
    ),
}


def _ingestion_http_error(error: IngestionError | FeedConfigError) -> Exception:
    if isinstance(error, DatabaseUnavailableError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(error, FeedNotConfiguredError):
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return build_http_error(status_code=status_code, error=error.error_code, message=str(error))


@router.get(
    "/submissions",
    summary="List submissions",
    response_model=list[SubmissionResponse],
    responses=_ADMIN_RESPONSES,
)
async def list_submissions(
    request: Request,
    submission_status: SubmissionStatus | None = Query(default=None, alias="status"),
    uow: UnitOfWork = Depends(get_uow),
) -> list[SubmissionResponse]:
    submissions = await uow.submission_service.list_submissions(
        submission_status.value if submission_status else None
    )
    return [SubmissionResponse.model_validate(submission) for submission in submissions]


@router.patch(
    "/submissions/{submission_id}",
    summary="Moderate a submission",
    description="Approve (ingesting the link as content) or reject a pending submission.",
    response_model=SubmissionResponse,
    responses={
        **_ADMIN_RESPONSES,
        **not_found_response("Submission"),
        **error_responses(
            ErrorExample(
                status_code=status.HTTP_409_CONFLICT,
                error="submission_already_moderated",
                message="Submission was already approved",
                description="Submission is not pending",
                summary="Already moderated",
            )
        ),
    },
)
async def moderate_submission(
    request: Request,
    submission_id: str,
    body: ModerateSubmissionRequest,
    admin: User = Depends(require_admin),
    uow: UnitOfWork = Depends(get_uow),
) -> SubmissionResponse:
    try:
        submission = await uow.submission_service.moderate(
            submission_id, SubmissionStatus(body.status), admin.id, body.notes
        )
    except SubmissionError as e:
        if isinstance(e, SubmissionAlreadyModeratedError):
            raise build_http_error(
                status_code=status.HTTP_409_CONFLICT, error=e.error_code, message=str(e)
            ) from e
        raise not_found_error("Submission") from e
    return SubmissionResponse.model_validate(submission)


@router.get(
    "/stats",
    summary="System stats",
    response_model=SystemStatsResponse,
    responses=_ADMIN_RESPONSES,
)
async def system_stats(request: Request, uow: UnitOfWork = Depends(get_uow)) -> SystemStatsResponse:
    stats = await uow.stats_service.get_system_stats()
    return SystemStatsResponse(
        total_content=stats.total_content,
        pending_submissions=stats.pending_submissions,
        active_users=stats.active_users,
        daily_matches=stats.daily_matches,
    )


@router.post(
    "/ingest/rss",
    summary="Run RSS ingestion",
    description="Ingest every configured feed, or a single configured feed when a url is given.",
    response_model=IngestionRunResponse,
    responses=_JOB_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def ingest_rss(
    request: Request,
    body: IngestFeedRequest | None = None,
    uow: UnitOfWork = Depends(get_uow),
) -> IngestionRunResponse:
    try:
        if body is not None and body.url is not None:
            run = await uow.ingestion_service.ingest_single_feed(str(body.url))
        else:
            run = await uow.ingestion_service.run_daily_ingestion()
    except (IngestionError, FeedConfigError) as e:
        raise _ingestion_http_error(e) from e
    return IngestionRunResponse.model_validate(run)


@router.post(
    "/ingest/social-media",
    summary="Run mocked social media ingestion",
    response_model=SocialIngestionResponse,
    responses=_ADMIN_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def ingest_social_media(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> SocialIngestionResponse:
    result = await uow.social_media_service.run_social_media_ingestion()
    return SocialIngestionResponse(
        twitter=result.twitter, youtube=result.youtube, reddit=result.reddit, total=result.total
    )


async def _ingest_platform(uow: UnitOfWork, platform: Platform) -> IngestedCountResponse:
    stored = await uow.social_media_service.ingest_platform(platform)
    return IngestedCountResponse(platform=platform, stored=stored)


@router.post(
    "/ingest/youtube",
    summary="Ingest sample YouTube videos",
    response_model=IngestedCountResponse,
    responses=_ADMIN_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def ingest_youtube(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> IngestedCountResponse:
    stored = await uow.social_media_service.ingest_sample_videos()
    return IngestedCountResponse(platform="youtube", stored=stored)


@router.post(
    "/ingest/twitter",
    summary="Ingest mocked Twitter posts",
    response_model=IngestedCountResponse,
    responses=_ADMIN_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def ingest_twitter(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> IngestedCountResponse:
    return await _ingest_platform(uow, "twitter")


@router.post(
    "/ingest/reddit",
    summary="Ingest mocked Reddit posts",
    response_model=IngestedCountResponse,
    responses=_ADMIN_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def ingest_reddit(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> IngestedCountResponse:
    return await _ingest_platform(uow, "reddit")


@router.post(
    "/rss/daily-drops",
    summary="Generate and send daily drops",
    description="Generate, store and email today's drop for every onboarded user.",
    response_model=DailyDropRunResponse,
    responses=_ADMIN_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def run_daily_drops(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> DailyDropRunResponse:
    run = await uow.daily_drop_service.generate_and_send_daily_drops()
    return DailyDropRunResponse.model_validate(run)


@router.get(
    "/rss/stats",
    summary="Ingestion stats",
    response_model=IngestionStatsResponse,
    responses=_ADMIN_RESPONSES,
)
async def ingestion_stats(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> IngestionStatsResponse:
    stats = await uow.ingestion_service.get_ingestion_stats()
    return IngestionStatsResponse(
        total_feeds=stats.total_feeds,
        active_feeds=stats.active_feeds,
        total_content=stats.total_content,
        recent_content=stats.recent_content,
        last_ingestion=stats.last_ingestion,
    )


@router.get(
    "/rss/feeds",
    summary="Configured feeds",
    response_model=list[FeedResponse],
    responses=_JOB_RESPONSES,
)
async def list_feeds(request: Request, uow: UnitOfWork = Depends(get_uow)) -> list[FeedResponse]:
    try:
        feeds = uow.feeds_loader.get_feeds()
    except FeedConfigError as e:
        raise _ingestion_http_error(e) from e
    return [FeedResponse(name=feed.name, url=feed.url_str, tags=feed.tags) for feed in feeds]


@router.post(
    "/rss/load-feeds",
    summary="Reload feeds file",
    description="Re-read the feeds file and upsert every feed into storage.",
    response_model=LoadFeedsResponse,
    responses=_JOB_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def load_feeds(request: Request, uow: UnitOfWork = Depends(get_uow)) -> LoadFeedsResponse:
    try:
        feeds = uow.feeds_loader.load_feeds()
    except FeedConfigError as e:
        raise _ingestion_http_error(e) from e
    saved = await uow.feeds_loader.save_feeds(uow.session, feeds)
    return LoadFeedsResponse(loaded=len(feeds), saved=len(saved))


@router.post(
    "/generate-drops/{user_id}",
    summary="Generate drops for one user",
    response_model=GeneratedDropsResponse,
    responses=_ADMIN_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def generate_drops(
    request: Request, user_id: str, uow: UnitOfWork = Depends(get_uow)
) -> GeneratedDropsResponse:
    stored = await uow.daily_drop_service.generate_drops_for_user(user_id)
    return GeneratedDropsResponse(user_id=user_id, drops_created=len(stored))


@router.get(
    "/daily-drops/stats",
    summary="Daily drop stats",
    response_model=DailyDropStatsResponse,
    responses=_ADMIN_RESPONSES,
)
async def daily_drop_stats(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> DailyDropStatsResponse:
    stats = await uow.daily_drop_service.get_daily_drop_stats()
    return DailyDropStatsResponse(
        total_drops_today=stats.total_drops_today,
        average_score=stats.average_score,
        top_sources=[
            SourceCount(source=source, count=count) for source, count in stats.top_sources
        ],
    )


@router.get(
    "/content/storage-stats",
    summary="Storage stats",
    response_model=StorageStatsResponse,
    responses=_ADMIN_RESPONSES,
)
async def storage_stats(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> StorageStatsResponse:
    stats = await uow.cleanup_service.get_storage_stats()
    return StorageStatsResponse.model_validate(stats)


@router.post(
    "/content/cleanup",
    summary="Delete old content",
    response_model=CleanupResponse,
    responses=_ADMIN_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def cleanup_content(
    request: Request,
    body: CleanupRequest | None = None,
    uow: UnitOfWork = Depends(get_uow),
) -> CleanupResponse:
    options = body or CleanupRequest()
    result = await uow.cleanup_service.cleanup_old_content(
        retention_days=options.retention_days,
        batch_size=options.batch_size,
        keep_bookmarked=options.keep_bookmarked,
    )
    return CleanupResponse.model_validate(result)


@router.post(
    "/content/schedule-cleanup",
    summary="Conditional cleanup",
    description="Run a cleanup only when storage has grown past the configured thresholds.",
    response_model=ScheduledCleanupResponse,
    responses=_ADMIN_RESPONSES,
)
@limit(ADMIN_JOB_RATE_LIMIT, key_func=rate_limit_user_or_ip_key)
async def schedule_cleanup(
    request: Request, uow: UnitOfWork = Depends(get_uow)
) -> ScheduledCleanupResponse:
    result = await uow.cleanup_service.schedule_cleanup()
    if result is None:
        return ScheduledCleanupResponse(ran=False)
    return ScheduledCleanupResponse(ran=True, result=CleanupResponse.model_validate(result))
