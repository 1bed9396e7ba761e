"""Daily drop email rendering. There is no mail transport; the HTML is logged."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from jinja2 import Environment, select_autoescape

from app.db.base import utcnow
from app.db.models.daily_drop import DailyDrop
from app.db.models.user import User

logger = logging.getLogger(__name__)

_environment = Environment(autoescape=select_autoescape(default_for_string=True))

DAILY_DROP_TEMPLATE = _environment.from_string(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Your Daily Drop - {{ today }}</title>
</head>
<body style="font-family: sans-serif; color: #334155; max-width: 600px; margin: 0 auto;">
  <h1 style="text-align: center;">DropDaily</h1>
  <p style="text-align: center; color: #64748b;">Your personalized content for {{ today }}</p>
  <h2>Good morning, {{ name }}!</h2>
  <p>Here are {{ items | length }} carefully selected articles based on your interests:</p>
  {% for item in items %}
  <div style="margin-bottom: 30px; padding: 20px; border-left: 4px solid #3b82f6;">
    <h3><a href="{{ item.url }}">{{ item.title }}</a></h3>
    {% if item.summary %}<p>{{ item.summary }}</p>{% endif %}
    {% if item.description %}<p>{{ item.description }}</p>{% endif %}
    <span style="text-transform: uppercase; font-size: 12px;">{{ item.source }}</span>
    {% if item.published_at %}<span> {{ item.published_at.strftime("%Y-%m-%d") }}</span>{% endif %}
    <p><a href="{{ item.url }}">Read Article</a></p>
  </div>
  {% endfor %}
  <p style="color: #94a3b8; font-size: 12px;">
    You are receiving this because you signed up for DropDaily.
  </p>
</body>
</html>
"""
)


class EmailService:
    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock

    def render_daily_drop(self, user: User, drops: Sequence[DailyDrop]) -> str:
        return DAILY_DROP_TEMPLATE.render(
            today=self._clock().strftime("%A, %B %d, %Y"),
            name=user.first_name or user.email,
            items=[drop.content for drop in drops if drop.content is not None],
        )

    def subject(self) -> str:
        return f"Your Daily Drop - {self._clock().strftime('%Y-%m-%d')}"

    async def send_daily_drop_email(self, user: User, drops: Sequence[DailyDrop]) -> bool:
        html = self.render_daily_drop(user, drops)
        logger.info(
            f"Daily drop email for {user.email}: {self.subject()}",
            extra={"user_id": user.id, "item_count": len(drops)},
        )
        logger.debug(html)
        return True
