from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from reflink.config import settings
from reflink.errors import AnnotationError, InvalidInput
from reflink.models.events import REFERENCE_ANNOTATIONS, AnnotationStatus, SSEEvent
from reflink.models.references import ReferenceEntry, content_key
from reflink.models.schemas import ChatMessage, FinishedAnswer
from reflink.services import streaming
from reflink.services.annotation_cache import AnnotationCache, get_annotation_cache
from reflink.services.logger import log_event, logger
from reflink.services.ranking import rank
from reflink.tools import wikifier

ExtractFn = Callable[[str], Awaitable[Sequence[ReferenceEntry]]]
EmitFn = Callable[[SSEEvent], Awaitable[None] | None]

FAILED_MESSAGE = "Unable to retrieve references"


@dataclass
class AttachmentOutcome:
    message_id: str
    status: AnnotationStatus
    entries: tuple[ReferenceEntry, ...] = ()
    messages: list[ChatMessage] = field(default_factory=list)
    attached: bool = False
    error: str | None = None
    events: list[SSEEvent] = field(default_factory=list)


def attach_references(
    messages: Sequence[ChatMessage],
    message_id: str,
    annotation: dict[str, Any],
) -> tuple[list[ChatMessage], bool]:
    """Copy of `messages` with `annotation` set on the message whose id matches.

    A reference annotation already present on that message is replaced, so
    repeated attachment never duplicates it. Other messages are untouched even
    when they share the role.
    """
    updated: list[ChatMessage] = []
    attached = False
    for message in messages:
        if message.id != message_id or attached:
            updated.append(message)
            continue
        kept = [a for a in message.annotations if a.get("type") != REFERENCE_ANNOTATIONS]
        updated.append(message.model_copy(update={"annotations": [*kept, annotation]}))
        attached = True
    return updated, attached


class AnnotationAttachmentCoordinator:
    """Runs reference annotation for finished answers.

    Per answer: loading -> resolved | empty | failed. Every path ends in a
    terminal event; errors are reported through events and never raised.
    """

    def __init__(
        self,
        *,
        cache: AnnotationCache | None = None,
        extract: ExtractFn | None = None,
        top_n: int | None = None,
    ):
        self.cache = cache if cache is not None else get_annotation_cache()
        self.extract = extract if extract is not None else wikifier.extract
        self.top_n = int(settings.annotation_top_n if top_n is None else top_n)
        self._background: set[asyncio.Task[AttachmentOutcome]] = set()

    async def references_for(self, text: str) -> tuple[ReferenceEntry, ...]:
        """Top `top_n` references for `text`, extracted at most once per distinct text."""
        if not text or not text.strip():
            raise InvalidInput("text is empty")

        # Cached ranking is untruncated; each coordinator applies its own limit.
        async def compute() -> list[ReferenceEntry]:
            return rank(await self.extract(text))

        ranked = await self.cache.get_or_compute(content_key(text), compute)
        return ranked[: max(self.top_n, 0)]

    async def on_answer_finished(
        self,
        message: ChatMessage | FinishedAnswer,
        messages: Sequence[ChatMessage] = (),
        *,
        emit: EmitFn | None = None,
    ) -> AttachmentOutcome:
        outcome = AttachmentOutcome(
            message_id=message.id,
            status=AnnotationStatus.LOADING,
            messages=list(messages),
        )

        async def send(event: SSEEvent) -> None:
            outcome.events.append(event)
            if emit is None:
                return
            try:
                result = emit(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Annotation event for message {message.id} not delivered: {e}")

        await send(streaming.annotations_loading(message.id))

        try:
            entries = await self.references_for(message.content)
        except AnnotationError as e:
            logger.warning(f"References for message {message.id} failed: {e.message}")
            outcome.status = AnnotationStatus.FAILED
            outcome.error = e.message
        except Exception as e:
            logger.exception(f"Unexpected failure annotating message {message.id}: {e}")
            outcome.status = AnnotationStatus.FAILED
            outcome.error = FAILED_MESSAGE
        else:
            outcome.entries = entries
            outcome.status = AnnotationStatus.RESOLVED if entries else AnnotationStatus.EMPTY

        if outcome.status is AnnotationStatus.RESOLVED:
            event = streaming.annotations_resolved(outcome.entries, message.id)
            outcome.messages, outcome.attached = attach_references(
                outcome.messages, message.id, event.data
            )
            if not outcome.attached:
                logger.warning(f"Message {message.id} not found; references not attached")
        elif outcome.status is AnnotationStatus.EMPTY:
            event = streaming.annotations_empty(message.id)
        else:
            event = streaming.annotations_failed(outcome.error or FAILED_MESSAGE, message.id)

        await send(event)
        log_event(
            event_type="references_annotated",
            message="Answer annotation finished",
            message_id=message.id,
            status=outcome.status.value,
            entries=len(outcome.entries),
            attached=outcome.attached,
        )
        return outcome

    def schedule(
        self,
        message: ChatMessage | FinishedAnswer,
        messages: Sequence[ChatMessage] = (),
        *,
        emit: EmitFn | None = None,
    ) -> asyncio.Task[AttachmentOutcome]:
        """Fire-and-forget variant; the task is referenced until it finishes."""
        task = asyncio.ensure_future(self.on_answer_finished(message, messages, emit=emit))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task


_coordinator: AnnotationAttachmentCoordinator | None = None


def get_coordinator() -> AnnotationAttachmentCoordinator:
    global _coordinator
    if _coordinator is None:
        _coordinator = AnnotationAttachmentCoordinator()
    return _coordinator
