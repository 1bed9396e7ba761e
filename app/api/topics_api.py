from fastapi import APIRouter, Depends, Request

from app.api.dependencies import UnitOfWork, get_uow
from app.api.openapi_responses import rate_limited_response
from app.api.schemas import TopicResponse

router = APIRouter()


@router.get(
    "",
    summary="List topics",
    description="All topics users can express preferences for, ordered by name.",
    response_model=list[TopicResponse],
    responses=rate_limited_response(),
)
async def list_topics(request: Request, uow: UnitOfWork = Depends(get_uow)) -> list[TopicResponse]:
    topics = await uow.topic_service.list_topics()
    return [TopicResponse.model_validate(topic) for topic in topics]
