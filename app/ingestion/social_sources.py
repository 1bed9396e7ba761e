"""Mocked social platforms.

No platform API is called; each function returns a fixed catalogue of posts
with timestamps relative to ``now`` so they always fall inside the daily drop
lookback window.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Literal

from app.ingestion.metadata import Engagement

Platform = Literal["twitter", "youtube", "reddit"]


@dataclass(frozen=True)
class SocialPost:
    platform: Platform
    original_id: str
    title: str
    description: str
    url: str
    author: str
    published_at: datetime
    engagement: Engagement
    thumbnail_url: str | None = None
    duration_seconds: int | None = None
    extra: dict[str, object] = field(default_factory=dict)


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


def twitter_posts(now: datetime | None = None) -> list[SocialPost]:
    current = _now(now)
    return [
        SocialPost(
            platform="twitter",
            original_id="tweet_1",
            title="AI will revolutionize coding in the next 2 years",
            description=(
                "The rise of AI coding assistants like GitHub Copilot and ChatGPT is just the "
                "beginning. Soon we'll see AI that can architect entire applications from "
                "natural language descriptions."
            ),
            url="https://twitter.com/example/status/123456789",
            author="Tech Leader",
            published_at=current - timedelta(hours=2),
            engagement=Engagement(likes=2341, shares=456, comments=123),
            extra={"verified": True, "followers": 150000},
        ),
        SocialPost(
            platform="twitter",
            original_id="tweet_2",
            title="The future of remote work is hybrid AI collaboration",
            description=(
                "Remote work tools are evolving beyond video calls. We're moving toward "
                "AI-powered collaborative workspaces where human creativity meets machine "
                "efficiency."
            ),
            url="https://twitter.com/example/status/123456790",
            author="Remote Work Expert",
            published_at=current - timedelta(hours=4),
            engagement=Engagement(likes=1234, shares=234, comments=89),
        ),
        SocialPost(
            platform="twitter",
            original_id="tweet_3",
            title="Web3 infrastructure is finally maturing",
            description=(
                "Layer 2 solutions, better UX, and institutional adoption are making Web3 "
                "accessible to mainstream users. The next wave of innovation is here."
            ),
            url="https://twitter.com/example/status/123456791",
            author="Crypto Builder",
            published_at=current - timedelta(hours=6),
            engagement=Engagement(likes=892, shares=178, comments=67),
        ),
    ]


def youtube_posts(now: datetime | None = None) -> list[SocialPost]:
    current = _now(now)
    return [
        SocialPost(
            platform="youtube",
            original_id="video_1",
            title="The Complete Guide to React Server Components in 2025",
            description=(
                "Learn everything about React Server Components, their benefits, and how to "
                "implement them in your Next.js applications. Includes practical examples and "
                "performance comparisons."
            ),
            url="https://youtube.com/watch?v=example1",
            author="React Experts",
            published_at=current - timedelta(days=1),
            engagement=Engagement(views=45234, likes=2890, comments=234),
            thumbnail_url="https://img.youtube.com/vi/example1/maxresdefault.jpg",
            duration_seconds=1248,
            extra={"channel": "React Experts", "subscribers": 250000},
        ),
        SocialPost(
            platform="youtube",
            original_id="video_2",
            title="Building Scalable APIs with Node.js and TypeScript",
            description=(
                "Comprehensive tutorial on building production-ready APIs using Node.js, "
                "TypeScript, and modern best practices. Covers authentication, validation, "
                "error handling, and deployment."
            ),
            url="https://youtube.com/watch?v=example2",
            author="Backend Masters",
            published_at=current - timedelta(days=2),
            engagement=Engagement(views=32156, likes=1987, comments=145),
            thumbnail_url="https://img.youtube.com/vi/example2/maxresdefault.jpg",
            duration_seconds=2156,
            extra={"channel": "Backend Masters", "subscribers": 180000},
        ),
        SocialPost(
            platform="youtube",
            original_id="video_3",
            title="AI Code Generation: GitHub Copilot vs ChatGPT vs Claude",
            description=(
                "Detailed comparison of AI coding assistants in 2025. Real-world testing with "
                "complex programming tasks to see which AI performs best for different "
                "scenarios."
            ),
            url="https://youtube.com/watch?v=example3",
            author="AI Code Review",
            published_at=current - timedelta(days=3),
            engagement=Engagement(views=78923, likes=4521, comments=567),
            thumbnail_url="https://img.youtube.com/vi/example3/maxresdefault.jpg",
            duration_seconds=1789,
            extra={"channel": "AI Code Review", "subscribers": 420000},
        ),
    ]


def reddit_posts(now: datetime | None = None) -> list[SocialPost]:
    current = _now(now)
    return [
        SocialPost(
            platform="reddit",
            original_id="reddit_1",
            title="I built a SaaS in 30 days using AI tools - here's what I learned",
            description=(
                "My journey building a complete SaaS application using ChatGPT, GitHub Copilot, "
                "and Cursor IDE. Revenue, challenges, and lessons learned from AI-assisted "
                "development."
            ),
            url="https://reddit.com/r/entrepreneurs/comments/example1",
            author="indie_dev_2025",
            published_at=current - timedelta(hours=8),
            engagement=Engagement(likes=1247, comments=89),
            extra={"subreddit": "r/entrepreneurs", "flair": "Lessons Learned", "awards": 3},
        ),
        SocialPost(
            platform="reddit",
            original_id="reddit_2",
            title="Senior developers: what are the most important skills for 2025?",
            description=(
                "Looking for advice on which technologies and skills to prioritize. AI/ML "
                "integration, cloud architecture, or something else? Share your thoughts."
            ),
            url="https://reddit.com/r/cscareerquestions/comments/example2",
            author="career_seeker_25",
            published_at=current - timedelta(hours=12),
            engagement=Engagement(likes=456, comments=134),
            extra={"subreddit": "r/cscareerquestions", "flair": "Career Question"},
        ),
        SocialPost(
            platform="reddit",
            original_id="reddit_3",
            title="New JavaScript framework benchmarks - performance comparison 2025",
            description=(
                "Comprehensive performance testing of React, Vue, Svelte, and Solid.js. Bundle "
                "sizes, rendering speed, and memory usage analyzed."
            ),
            url="https://reddit.com/r/javascript/comments/example3",
            author="perf_tester",
            published_at=current - timedelta(hours=18),
            engagement=Engagement(likes=892, comments=67),
            extra={"subreddit": "r/javascript", "flair": "Benchmarks"},
        ),
    ]


def sample_youtube_videos(now: datetime | None = None) -> list[SocialPost]:
    """Small curated video set used by the manual YouTube ingest endpoint."""
    current = _now(now)
    return [
        SocialPost(
            platform="youtube",
            original_id="sample_video_1",
            title="Advanced React Patterns for Production Applications",
            description=(
                "Learn about advanced React patterns that will help you build more "
                "maintainable and scalable applications in production environments."
            ),
            url="https://youtube.com/watch?v=advanced-react-patterns",
            author="React Development",
            published_at=current,
            engagement=Engagement(views=15420),
            thumbnail_url="https://images.unsplash.com/photo-1633356122544-f134324a6cee?w=400",
            duration_seconds=25 * 60,
            extra={
                "channel": "React Development",
                "transcript": (
                    "In this video, we'll explore advanced React patterns including render "
                    "props, compound components, and custom hooks that help you build reusable "
                    "and maintainable code..."
                ),
            },
        ),
        SocialPost(
            platform="youtube",
            original_id="sample_video_2",
            title="Machine Learning for Product Managers: A Practical Guide",
            description=(
                "Understand how to leverage machine learning in product development, from "
                "identifying use cases to working with engineering teams."
            ),
            url="https://youtube.com/watch?v=ml-for-product-managers",
            author="Product Management Insights",
            published_at=current,
            engagement=Engagement(views=8930),
            thumbnail_url="https://images.unsplash.com/photo-1677442136019-21780ecad995?w=400",
            duration_seconds=18 * 60,
            extra={
                "channel": "Product Management Insights",
                "transcript": (
                    "As a product manager, understanding machine learning doesn't mean you need "
                    "to know how to code, but you do need to understand the possibilities and "
                    "limitations..."
                ),
            },
        ),
    ]


POSTS_BY_PLATFORM = {
    "twitter": twitter_posts,
    "youtube": youtube_posts,
    "reddit": reddit_posts,
}
