from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response

from teamchat.api.deps import BroadcasterDep, CurrentPrincipal, UoWDep
from teamchat.api.v1.schemas.message import EditMessageRequest, MessageResponse
from teamchat.services import message_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.put("/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: UUID,
    body: EditMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
) -> MessageResponse:
    view = await message_service.edit_message(
        message_id, principal, body.content, uow, broadcaster,
    )
    return MessageResponse.from_view(view)


@router.delete("/{message_id}", status_code=204)
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
) -> Response:
    await message_service.delete_message(message_id, principal, uow, broadcaster)
    return Response(status_code=204)
