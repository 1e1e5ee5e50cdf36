from __future__ import annotations

import asyncio
import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from reflink.config import settings
from reflink.models.schemas import Chat
from reflink.services.logger import logger


class ChatStore(Protocol):
    async def load(self, chat_id: str) -> Chat | None: ...
    async def save(self, chat: Chat) -> None: ...


class LocalChatStore:
    """One JSON document per chat under `base_dir`."""

    def __init__(self, *, base_dir: str = ".cache/chats"):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, chat_id: str) -> Path:
        key = hashlib.sha1(chat_id.encode("utf-8")).hexdigest()
        return self.base_dir / f"{key}.json"

    async def load(self, chat_id: str) -> Chat | None:
        path = self.path_for(chat_id)
        if not path.exists():
            return None
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        try:
            chat = Chat.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable chat file {path.name}: {e.error_count()} errors")
            return None
        return chat if chat.id == chat_id else None

    async def save(self, chat: Chat) -> None:
        chat = chat.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        path = self.path_for(chat.id)
        await asyncio.to_thread(path.write_text, chat.model_dump_json(indent=2), encoding="utf-8")


_store: ChatStore | None = None


def get_chat_store() -> ChatStore:
    global _store
    if _store is None:
        _store = LocalChatStore(base_dir=settings.chat_store_dir)
    return _store
