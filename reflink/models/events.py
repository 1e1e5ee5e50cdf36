from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

REFERENCE_ANNOTATIONS = "reference-annotations"


class EventType(str, Enum):
    ANSWER_SAVED = "answer_saved"
    REFERENCE_ANNOTATIONS = "reference_annotations"
    ERROR = "error"


class AnnotationStatus(str, Enum):
    LOADING = "loading"
    RESOLVED = "resolved"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"
