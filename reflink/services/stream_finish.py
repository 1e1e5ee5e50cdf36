from __future__ import annotations

from dataclasses import dataclass

from reflink.config import settings
from reflink.models.schemas import Chat, ChatMessage, FinishedAnswer
from reflink.services import logger as log_service
from reflink.services.annotation_coordinator import (
    AnnotationAttachmentCoordinator,
    AttachmentOutcome,
    EmitFn,
)
from reflink.services.chat_store import ChatStore
from reflink.services.logger import logger


@dataclass
class StreamFinishResult:
    chat: Chat
    outcome: AttachmentOutcome
    persisted: bool = False


def _chat_title(chat: Chat, answer: FinishedAnswer) -> str:
    for message in chat.messages:
        if message.role == "user" and message.content.strip():
            return message.content[:100]
    return answer.content[:100]


async def handle_stream_finish(
    chat_id: str,
    answer: FinishedAnswer,
    *,
    coordinator: AnnotationAttachmentCoordinator,
    store: ChatStore,
    emit: EmitFn | None = None,
) -> StreamFinishResult:
    """Attach references to a finished answer and persist the chat.

    The answer is part of the returned chat whatever the annotation outcome;
    a failed save is logged, not raised.
    """
    chat = await store.load(chat_id) or Chat(id=chat_id)
    if not any(message.id == answer.id for message in chat.messages):
        chat.messages.append(ChatMessage(id=answer.id, role="assistant", content=answer.content))
    if not chat.title:
        chat.title = _chat_title(chat, answer)

    outcome = await coordinator.on_answer_finished(answer, chat.messages, emit=emit)
    chat = chat.model_copy(update={"messages": outcome.messages})

    if not settings.save_chat_history:
        return StreamFinishResult(chat=chat, outcome=outcome)

    try:
        await store.save(chat)
    except OSError as e:
        logger.error(f"Failed to save chat {chat_id}: {e}")
        return StreamFinishResult(chat=chat, outcome=outcome)

    log_service.log_event(
        event_type="chat_saved",
        message="Chat saved after answer finished",
        chat_id=chat_id,
        message_id=answer.id,
        annotation_status=outcome.status.value,
    )
    return StreamFinishResult(chat=chat, outcome=outcome, persisted=True)
