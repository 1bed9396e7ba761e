"""Fixed topic catalogue shared by classification and user preferences."""

from __future__ import annotations

from typing import Final, NamedTuple


class TopicDefinition(NamedTuple):
    name: str
    description: str


DEFAULT_TOPICS: Final[tuple[TopicDefinition, ...]] = (
    TopicDefinition(
        "AI/ML",
        "Artificial Intelligence and Machine Learning technologies, frameworks, and applications",
    ),
    TopicDefinition(
        "Product",
        "Product management, strategy, development lifecycle, and user experience",
    ),
    TopicDefinition(
        "Design",
        "User interface design, user experience, design systems, and visual design",
    ),
    TopicDefinition(
        "Engineering",
        "Software engineering practices, architecture, development methodologies",
    ),
    TopicDefinition(
        "Business",
        "Business strategy, operations, management, and organizational development",
    ),
    TopicDefinition(
        "Marketing",
        "Digital marketing, growth strategies, brand development, and customer acquisition",
    ),
    TopicDefinition(
        "Mobile Dev",
        "Mobile application development for iOS, Android, and cross-platform solutions",
    ),
    TopicDefinition(
        "DevOps",
        "Development operations, CI/CD, infrastructure, and deployment practices",
    ),
    TopicDefinition(
        "Security",
        "Cybersecurity, application security, data protection, and privacy",
    ),
    TopicDefinition(
        "Data Science",
        "Data analysis, statistics, data visualization, and business intelligence",
    ),
    TopicDefinition(
        "Startups",
        "Entrepreneurship, startup culture, venture capital, and scaling businesses",
    ),
    TopicDefinition(
        "Leadership",
        "Management skills, team leadership, organizational culture, and professional development",
    ),
)

TOPIC_NAMES: Final[frozenset[str]] = frozenset(topic.name for topic in DEFAULT_TOPICS)


def topic_embedding_text(name: str, description: str | None) -> str:
    """Text embedded for a topic; the same string feeds the pseudo-embedding fallback."""
    return f"Topic: {name}. Description: {description or name}"
