from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    RateLimitError,
)
from openai.types.chat import ChatCompletion
from pydantic import ValidationError

from app.core.config import settings
from app.core.prompt_sanitizer import neutralize_untrusted_text
from app.llm.prompts import (
    CLASSIFICATION_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    get_classification_prompt,
    get_summary_prompt,
)
from app.llm.schemas import ContentClassification

logger = logging.getLogger(__name__)

# Shorter texts are returned as their own summary.
MIN_SUMMARY_INPUT_LENGTH = 100
MAX_PROMPT_TEXT_LENGTH = 4000


class LLMServiceError(Exception):
    """Base error raised when the LLM service cannot fulfill a request."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class LLMUnavailableError(LLMServiceError):
    """LLM is unavailable (timeout, rate limit, or upstream outage)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "llm_unavailable")


class LLMAuthenticationError(LLMServiceError):
    """LLM authentication failed (service credentials invalid)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "llm_auth_failed")


class LLMInvalidResponseError(LLMServiceError):
    """LLM returned an invalid or unexpected response."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "llm_response_invalid")


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def create_embedding(self, text: str) -> list[float]:
        """Return the embedding vector for ``text``."""
        raise NotImplementedError

    @abstractmethod
    async def classify_content(
        self, title: str, description: str, topic_names: Sequence[str]
    ) -> ContentClassification:
        """Assign catalogue topics and a short summary to a piece of content."""
        raise NotImplementedError

    @abstractmethod
    async def summarize_article(self, title: str, content: str) -> str:
        """Return a 2-3 sentence summary of an article."""
        raise NotImplementedError


class OpenAIClient(LLMClient):
    """OpenAI implementation of LLM client."""

    def __init__(
        self,
        api_key: str | None = None,
        embedding_model: str | None = None,
        chat_model: str | None = None,
        embedding_dimensions: int | None = None,
    ) -> None:
        """Initialize OpenAI client."""
        self.client = AsyncOpenAI(api_key=api_key or settings.openai_api_key)
        self.embedding_model = embedding_model or settings.embedding_model
        self.chat_model = chat_model or settings.chat_model
        self.embedding_dimensions = embedding_dimensions or settings.embedding_dimensions

    def _handle_errors(self, error: Exception, operation: str) -> LLMServiceError:
        """Log error with appropriate message based on error type."""
        if isinstance(error, APIConnectionError):
            logger.error(f"OpenAI API connection failed during {operation}. Error: {error}")
            return LLMUnavailableError("LLM service unreachable. Try again shortly.")
        elif isinstance(error, APITimeoutError):
            logger.error(f"OpenAI API request timed out during {operation}. Error: {error}")
            return LLMUnavailableError("LLM request timed out. Try again.")
        elif isinstance(error, RateLimitError):
            # Quota exhaustion is reported as a rate limit as well.
            logger.error(f"OpenAI API rate limit exceeded during {operation}. Error: {error}")
            return LLMUnavailableError("LLM rate limit exceeded. Try again later.")
        elif isinstance(error, AuthenticationError):
            logger.error(f"OpenAI API authentication failed during {operation}. Error: {error}")
            return LLMAuthenticationError("LLM authentication failed.")
        elif isinstance(error, APIError):
            logger.error(f"OpenAI API error during {operation}. Error: {error}")
            return LLMUnavailableError("LLM service error. Try again later.")
        elif isinstance(error, (IndexError, AttributeError)):
            logger.error(f"Unexpected response structure from OpenAI. Error: {error}")
            return LLMInvalidResponseError("LLM returned an unexpected response.")
        elif isinstance(error, json.JSONDecodeError):
            logger.error(f"Invalid JSON response from OpenAI. Error: {error}")
            return LLMInvalidResponseError("LLM returned invalid JSON.")
        elif isinstance(error, ValidationError):
            logger.error(f"Pydantic validation failed. Error: {error}")
            return LLMInvalidResponseError("LLM response did not match expected format.")
        elif isinstance(error, ValueError):
            logger.error(f"Invalid value encountered. Error: {error}")
            return LLMInvalidResponseError(str(error))
        else:
            logger.error(f"Unexpected error during {operation}. Error: {error}")
            return LLMServiceError("LLM request failed. Try again later.", "llm_error")

    async def create_embedding(self, text: str) -> list[float]:
        """Create an embedding with the configured embedding model."""
        try:
            response = await self.client.embeddings.create(
                model=self.embedding_model,
                input=text,
                dimensions=self.embedding_dimensions,
            )
            vector = list(response.data[0].embedding)
            if not vector:
                raise ValueError("Empty embedding from OpenAI")
            return vector
        except Exception as e:
            raise self._handle_errors(e, "embedding") from e

    async def classify_content(
        self, title: str, description: str, topic_names: Sequence[str]
    ) -> ContentClassification:
        """Classify content into catalogue topics using a JSON chat completion."""
        try:
            response: ChatCompletion = await self.client.chat.completions.create(
                model=self.chat_model,
                messages=[
                    {"role": "system", "content": CLASSIFICATION_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": get_classification_prompt(
                            neutralize_untrusted_text(title, MAX_PROMPT_TEXT_LENGTH),
                            neutralize_untrusted_text(description, MAX_PROMPT_TEXT_LENGTH),
                            topic_names,
                        ),
                    },
                ],
                response_format={"type": "json_object"},
                temperature=0.3,
            )

            content = response.choices[0].message.content
            if not content:
                raise ValueError("Empty response from OpenAI")

            parsed = ContentClassification(**json.loads(content))
            return parsed.restricted_to(set(topic_names))

        except Exception as e:
            raise self._handle_errors(e, "classification") from e

    async def summarize_article(self, title: str, content: str) -> str:
        """Summarize an article in 2-3 sentences; short texts are returned unchanged."""
        if len(content) < MIN_SUMMARY_INPUT_LENGTH:
            return content
        try:
            response: ChatCompletion = await self.client.chat.completions.create(
                model=self.chat_model,
                messages=[
                    {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": get_summary_prompt(
                            neutralize_untrusted_text(title, MAX_PROMPT_TEXT_LENGTH),
                            neutralize_untrusted_text(content, MAX_PROMPT_TEXT_LENGTH),
                        ),
                    },
                ],
                max_tokens=150,
                temperature=0.3,
            )

            summary = response.choices[0].message.content
            if not summary or not summary.strip():
                raise ValueError("Empty summary from OpenAI")
            return summary.strip()

        except Exception as e:
            raise self._handle_errors(e, "summary") from e
