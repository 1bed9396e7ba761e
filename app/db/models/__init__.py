from app.db.models.content import Content, ContentSource, ContentStatus, ContentTopic
from app.db.models.daily_drop import DailyDrop
from app.db.models.feed import Feed
from app.db.models.topic import Topic
from app.db.models.user import User, UserRole
from app.db.models.user_preference import UserPreference
from app.db.models.user_profile_vector import UserProfileVector
from app.db.models.user_submission import SubmissionStatus, UserSubmission

__all__ = [
    "Content",
    "ContentSource",
    "ContentStatus",
    "ContentTopic",
    "DailyDrop",
    "Feed",
    "SubmissionStatus",
    "Topic",
    "User",
    "UserPreference",
    "UserProfileVector",
    "UserRole",
    "UserSubmission",
]
