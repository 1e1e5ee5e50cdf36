from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from reflink.models.events import REFERENCE_ANNOTATIONS, AnnotationStatus, EventType, SSEEvent
from reflink.models.references import ReferenceEntry


def annotation_payload(
    status: AnnotationStatus,
    entries: Sequence[ReferenceEntry] = (),
    *,
    message_id: str | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Envelope shared by every annotation state so the UI can type-check all of them alike."""
    payload: dict[str, Any] = {
        "type": REFERENCE_ANNOTATIONS,
        "status": status.value,
        "data": {"annotations": [entry.to_dict() for entry in entries]},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if message_id is not None:
        payload["message_id"] = message_id
    if error is not None:
        payload["error"] = error
    return payload


def annotations_loading(message_id: str | None = None) -> SSEEvent:
    return SSEEvent(
        event=EventType.REFERENCE_ANNOTATIONS,
        data=annotation_payload(AnnotationStatus.LOADING, message_id=message_id),
    )


def annotations_resolved(entries: Sequence[ReferenceEntry], message_id: str | None = None) -> SSEEvent:
    return SSEEvent(
        event=EventType.REFERENCE_ANNOTATIONS,
        data=annotation_payload(AnnotationStatus.RESOLVED, entries, message_id=message_id),
    )


def annotations_empty(message_id: str | None = None) -> SSEEvent:
    return SSEEvent(
        event=EventType.REFERENCE_ANNOTATIONS,
        data=annotation_payload(AnnotationStatus.EMPTY, message_id=message_id),
    )


def annotations_failed(error: str, message_id: str | None = None) -> SSEEvent:
    return SSEEvent(
        event=EventType.REFERENCE_ANNOTATIONS,
        data=annotation_payload(AnnotationStatus.FAILED, message_id=message_id, error=error),
    )


def answer_saved(chat_id: str, message_id: str, persisted: bool) -> SSEEvent:
    return SSEEvent(
        event=EventType.ANSWER_SAVED,
        data={"chat_id": chat_id, "message_id": message_id, "persisted": persisted},
    )


def error(message: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(event=EventType.ERROR, data={"message": message, **kwargs})
