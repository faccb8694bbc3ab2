from __future__ import annotations

import logging
from typing import AsyncIterator, List

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import StreamingResponse

from ...llm.chat import ChatClient, ChatServiceError
from ...models import Message, MessageRole
from ...schemas import ChatRequest
from ...storyboard.parser import parse_storyboard
from ...store import StoryboardStore
from ..deps import get_chat_client, get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def format_stream_chunk(text: str) -> str:
    """Prefix every line of a text delta with the ``0:`` stream marker."""
    return "".join(f"0:{line}\n" for line in text.split("\n"))


async def relay_reply(
    chat_client: ChatClient,
    history: List[Message],
    store: StoryboardStore,
) -> AsyncIterator[str]:
    parts: List[str] = []
    try:
        async for text in chat_client.stream_reply(history):
            parts.append(text)
            yield format_stream_chunk(text)
    except ChatServiceError as exc:
        logger.error("Chat stream aborted: %s", exc)

    reply = "".join(parts)
    if not reply:
        return

    store.add_message(MessageRole.ASSISTANT, reply)
    storyboard = parse_storyboard(reply)
    if storyboard is not None:
        store.set_storyboard(storyboard)


@router.post("/chat")
async def chat(
    chat_in: ChatRequest,
    store: StoryboardStore = Depends(get_store),
    chat_client: ChatClient = Depends(get_chat_client),
) -> StreamingResponse:
    chat_client.ensure_configured()

    history = [Message(role=message.role, content=message.content) for message in chat_in.messages]
    latest = history[-1]
    if latest.role is MessageRole.USER:
        store.add_message(MessageRole.USER, latest.content)

    return StreamingResponse(
        relay_reply(chat_client, history, store),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/messages", response_model=List[Message])
async def list_messages(store: StoryboardStore = Depends(get_store)) -> List[Message]:
    return store.messages


@router.delete("/messages", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def clear_messages(store: StoryboardStore = Depends(get_store)) -> Response:
    store.clear_messages()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
