from __future__ import annotations

from fastapi import APIRouter, Query, Response

from teamchat.api.deps import BroadcasterDep, MessageAuthor, UoWDep
from teamchat.api.v1.schemas.message import MessageResponse, SendMessageRequest
from teamchat.config import settings
from teamchat.services import message_service

router = APIRouter(prefix="/api/v1/channels", tags=["channel-messages"])


@router.get("/{channel_ref}/messages", response_model=list[MessageResponse])
async def list_channel_messages(
    channel_ref: str,
    response: Response,
    uow: UoWDep,
    before: str | None = Query(None),
    limit: int = Query(settings.HISTORY_DEFAULT_LIMIT, ge=1, le=settings.HISTORY_MAX_LIMIT),
) -> list[MessageResponse]:
    views = await message_service.list_channel_messages(channel_ref, before, limit, uow)
    cursor = message_service.next_page_cursor(views, limit)
    if cursor is not None:
        response.headers["X-Next-Cursor"] = cursor
    return [MessageResponse.from_view(v) for v in views]


@router.post("/{channel_ref}/messages", response_model=MessageResponse, status_code=201)
async def send_channel_message(
    channel_ref: str,
    body: SendMessageRequest,
    author: MessageAuthor,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
) -> MessageResponse:
    view, _created = await message_service.send_channel_message(
        channel_ref, author, body.to_draft(), uow, broadcaster,
    )
    return MessageResponse.from_view(view)
