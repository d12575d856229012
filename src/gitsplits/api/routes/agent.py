"""Agent message endpoint: one command in, one reply out."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from gitsplits.agents.types import InboundMessage
from gitsplits.api.dependencies import get_controller
from gitsplits.api.schemas import AgentMessageRequest, AgentMessageResponse, ErrorResponse
from gitsplits.observability.logging import get_logger
from gitsplits.pipeline import AgentController

router = APIRouter(prefix="/v1/agent", tags=["agent"])
logger = get_logger(__name__)


@router.post(
    "/messages",
    response_model=AgentMessageResponse,
    responses={401: {"model": ErrorResponse}},
)
async def post_message(
    body: AgentMessageRequest,
    controller: AgentController = Depends(get_controller),
) -> AgentMessageResponse:
    message = InboundMessage(
        text=body.text,
        author=body.author,
        channel=body.channel,
        wallet_address=body.wallet_address,
        near_account_id=body.near_account_id,
        evm_address=body.evm_address,
    )
    reply = await controller.handle_message(message)
    logger.info(
        "agent_message_handled", author=body.author, channel=body.channel, event_id=reply.event_id
    )
    return AgentMessageResponse(response=reply.response, event_id=reply.event_id)
