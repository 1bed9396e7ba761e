"""API request and response schemas.

Import request/response models from the submodules (e.g. auth_request_models,
content_response_models) or from this package for a single entry point.
"""

from __future__ import annotations

from app.api.schemas.admin_request_models import CleanupRequest, IngestFeedRequest
from app.api.schemas.admin_response_models import (
    CleanupResponse,
    DailyDropRunResponse,
    DailyDropStatsResponse,
    FeedResponse,
    GeneratedDropsResponse,
    IngestedCountResponse,
    IngestionRunResponse,
    IngestionStatsResponse,
    LoadFeedsResponse,
    ScheduledCleanupResponse,
    SocialIngestionResponse,
    SourceCount,
    StorageStatsResponse,
    SystemStatsResponse,
)
from app.api.schemas.auth_request_models import (
    LoginUserRequest,
    RegisterUserRequest,
    UpdateProfileRequest,
)
from app.api.schemas.auth_response_models import AccessTokenResponse, UserResponse
from app.api.schemas.content_response_models import (
    ContentResponse,
    ContentTopicResponse,
    DailyDropResponse,
    SaveContentResponse,
)
from app.api.schemas.meta_response_models import HealthResponse
from app.api.schemas.preference_request_models import PreferenceItem, SavePreferencesRequest
from app.api.schemas.preference_response_models import PreferenceResponse
from app.api.schemas.submission_request_models import (
    CreateSubmissionRequest,
    ModerateSubmissionRequest,
)
from app.api.schemas.submission_response_models import SubmissionResponse
from app.api.schemas.topic_response_models import TopicResponse

__all__ = [
    "AccessTokenResponse",
    "CleanupRequest",
    "CleanupResponse",
    "ContentResponse",
    "ContentTopicResponse",
    "CreateSubmissionRequest",
    "DailyDropResponse",
    "DailyDropRunResponse",
    "DailyDropStatsResponse",
    "FeedResponse",
    "GeneratedDropsResponse",
    "HealthResponse",
    "IngestFeedRequest",
    "IngestedCountResponse",
    "IngestionRunResponse",
    "IngestionStatsResponse",
    "LoadFeedsResponse",
    "LoginUserRequest",
    "ModerateSubmissionRequest",
    "PreferenceItem",
    "PreferenceResponse",
    "RegisterUserRequest",
    "SaveContentResponse",
    "SavePreferencesRequest",
    "ScheduledCleanupResponse",
    "SocialIngestionResponse",
    "SourceCount",
    "StorageStatsResponse",
    "SubmissionResponse",
    "SystemStatsResponse",
    "TopicResponse",
    "UpdateProfileRequest",
    "UserResponse",
]
