"""Direct message API routes."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from src.api.deps import CurrentIdentity, MessageServiceDep
from src.schemas.message import MessageCreate, MessageResponse

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
    description="Send a direct message to another user.",
)
async def send_message(
    data: MessageCreate,
    identity: CurrentIdentity,
    service: MessageServiceDep,
) -> MessageResponse:
    message = await service.send_message(
        sender_id=identity.user_id,
        receiver_id=data.receiver_id,
        content=data.content,
        listing_id=data.listing_id,
    )
    return MessageResponse.model_validate(message)


@router.get(
    "/conversation/{other_user_id}",
    response_model=list[MessageResponse],
    summary="Get conversation",
    description="Messages exchanged between the authenticated user and another user, oldest first.",
)
async def get_conversation(
    other_user_id: UUID,
    identity: CurrentIdentity,
    service: MessageServiceDep,
    limit: int = Query(default=50, ge=1, le=200),
) -> list[MessageResponse]:
    messages = await service.list_conversation(identity.user_id, other_user_id, limit=limit)
    return [MessageResponse.model_validate(m) for m in messages]
