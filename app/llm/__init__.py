from app.llm.client import LLMClient, LLMServiceError, OpenAIClient
from app.llm.schemas import ContentClassification, TopicScore

__all__ = ["ContentClassification", "LLMClient", "LLMServiceError", "OpenAIClient", "TopicScore"]
