from __future__ import annotations

import asyncio
import json as _json

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from reflink.models.events import SSEEvent
from reflink.models.schemas import AnswerFinishedRequest, Chat
from reflink.services import logger as log_service
from reflink.services import streaming
from reflink.services.annotation_coordinator import AnnotationAttachmentCoordinator, get_coordinator
from reflink.services.chat_store import ChatStore, get_chat_store
from reflink.services.stream_finish import handle_stream_finish

router = APIRouter(prefix="/api/chats", tags=["chats"])

# Finish handlers keep running after a client disconnects.
_inflight: set[asyncio.Task] = set()


def _sse(event: SSEEvent) -> dict[str, str]:
    return {"event": event.event.value, "data": _json.dumps(event.data)}


@router.get("/{chat_id}", response_model=Chat)
async def get_chat(chat_id: str, store: ChatStore = Depends(get_chat_store)):
    chat = await store.load(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat


@router.post("/{chat_id}/answers")
async def answer_finished(
    chat_id: str,
    request: AnswerFinishedRequest,
    coordinator: AnnotationAttachmentCoordinator = Depends(get_coordinator),
    store: ChatStore = Depends(get_chat_store),
):
    """Record a finished answer and stream its reference annotations as SSE."""
    if not request.message.content.strip():
        raise HTTPException(status_code=400, detail="Answer content is empty")

    async def event_generator():
        queue: asyncio.Queue[SSEEvent] = asyncio.Queue()
        finish = asyncio.ensure_future(
            handle_stream_finish(
                chat_id,
                request.message,
                coordinator=coordinator,
                store=store,
                emit=queue.put_nowait,
            )
        )
        _inflight.add(finish)
        finish.add_done_callback(_inflight.discard)
        try:
            while not (finish.done() and queue.empty()):
                getter = asyncio.ensure_future(queue.get())
                await asyncio.wait({getter, finish}, return_when=asyncio.FIRST_COMPLETED)
                if getter.done():
                    yield _sse(getter.result())
                else:
                    getter.cancel()

            result = finish.result()
            yield _sse(streaming.answer_saved(chat_id, request.message.id, result.persisted))
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in answer stream",
                error=str(e),
                chat_id=chat_id,
            )
            yield _sse(streaming.error("Answer annotation stream failed unexpectedly."))

    return EventSourceResponse(event_generator())
