"""User-submitted links and their moderation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.content import ContentSource
from app.db.models.user_submission import SubmissionStatus, UserSubmission
from app.ingestion.metadata import SubmissionMetadata
from app.services.content_service import ContentDraft, ContentIngestor, ContentService

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """Base error for submission operations."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class SubmissionNotFoundError(SubmissionError):
    def __init__(self, submission_id: str) -> None:
        super().__init__(f"Submission {submission_id} not found", "submission_not_found")


class SubmissionAlreadyModeratedError(SubmissionError):
    def __init__(self, submission_id: str, status: str) -> None:
        super().__init__(
            f"Submission {submission_id} was already {status}", "submission_already_moderated"
        )


class SubmissionService:
    def __init__(self, session: AsyncSession, ingestor: ContentIngestor) -> None:
        self._session = session
        self._ingestor = ingestor

    async def create_submission(
        self,
        user_id: str,
        url: str,
        title: str,
        description: str | None = None,
        suggested_topics: Sequence[str] = (),
    ) -> UserSubmission:
        submission = UserSubmission(
            user_id=user_id,
            url=url,
            title=title,
            description=description,
            suggested_topics=list(suggested_topics),
            status=SubmissionStatus.PENDING.value,
        )
        self._session.add(submission)
        await self._session.flush()
        logger.info("Submission created", extra={"user_id": user_id, "url": url})
        return submission

    async def list_user_submissions(self, user_id: str) -> list[UserSubmission]:
        result = await self._session.execute(
            select(UserSubmission)
            .where(UserSubmission.user_id == user_id)
            .order_by(UserSubmission.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_submissions(self, status: str | None = None) -> list[UserSubmission]:
        stmt = select(UserSubmission).order_by(UserSubmission.created_at.desc())
        if status:
            stmt = stmt.where(UserSubmission.status == status)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def moderate(
        self,
        submission_id: str,
        status: SubmissionStatus,
        moderator_id: str,
        notes: str | None = None,
    ) -> UserSubmission:
        """Approve or reject a pending submission.

        Approval ingests the link as content (or links the existing item with
        the same url) and records it on the submission.
        """
        submission = await self._session.get(UserSubmission, submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        if submission.status != SubmissionStatus.PENDING.value:
            raise SubmissionAlreadyModeratedError(submission_id, submission.status)

        if status == SubmissionStatus.APPROVED:
            draft = ContentDraft(
                title=submission.title,
                url=submission.url,
                source=ContentSource.USER_SUBMISSION,
                description=submission.description or "",
                categories=tuple(submission.suggested_topics or ()),
                metadata=SubmissionMetadata(
                    submitted_by=submission.user_id, submission_id=submission.id
                ),
            )
            content = await self._ingestor.ingest(self._session, draft)
            if content is None:
                content = await ContentService(self._session).find_duplicate(submission.url)
            submission.content_id = content.id if content is not None else None

        submission.status = status.value
        submission.moderated_by = moderator_id
        submission.moderation_notes = notes
        await self._session.flush()
        logger.info(
            f"Submission {submission_id} {status.value}",
            extra={"moderator_id": moderator_id, "content_id": submission.content_id},
        )
        return submission


def submission_service_factory_provider(
    ingestor: ContentIngestor,
) -> Callable[[AsyncSession], SubmissionService]:
    def factory(session: AsyncSession) -> SubmissionService:
        return SubmissionService(session, ingestor)

    return factory
