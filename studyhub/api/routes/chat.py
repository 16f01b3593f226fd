"""Tutor chat routes with streaming support."""

import logging

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse

from studyhub.api.deps import CurrentUser
from studyhub.config import sanitize_error
from studyhub.schemas.chat import ChatRequest, ChatResponse
from studyhub.services import tutor_chat_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    user: CurrentUser,
) -> ChatResponse:
    """Get the tutor's reply to a conversation."""
    messages = [turn.model_dump() for turn in request.messages]
    response = await tutor_chat_service.reply(messages, request.topic)
    return ChatResponse(response=response)


@router.post("/stream")
async def chat_stream(
    request: ChatRequest,
    user: CurrentUser,
):
    """
    Stream the tutor's reply using Server-Sent Events.

    Events: "message" per text chunk, then "done"; "error" if the stream
    breaks.
    """
    messages = [turn.model_dump() for turn in request.messages]

    async def event_generator():
        """Generate SSE events for streaming response."""
        try:
            async for chunk in tutor_chat_service.stream_reply(messages, request.topic):
                yield {"event": "message", "data": chunk}
            yield {"event": "done", "data": ""}
        except Exception as e:
            logger.exception("Error during tutor chat streaming")
            safe_msg = sanitize_error(e, generic_message="An error occurred during chat.")
            yield {"event": "error", "data": safe_msg}

    return EventSourceResponse(event_generator())
