"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from reflink.config import settings

# Configure loguru
LOG_DIR = Path("logs")
LOG_DIR.mkdir(exist_ok=True)

# Remove default handler
logger.remove()

# Console handler with color
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=settings.app_log_level.upper(),
    colorize=True,
)

# Daily file handler, debug and up
logger.add(
    LOG_DIR / "reflink_{time:YYYY-MM-DD}.log",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    level="DEBUG",
    rotation="00:00",  # New file at midnight
    retention="7 days",  # Keep logs for 7 days
    compression="zip",
)

# Quiet framework and HTTP client loggers
for logger_name in (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "asyncio",
):
    logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def log_extraction_call(
    content_key: str,
    status: str,
    entries: int = 0,
    duration_ms: int = 0,
    error: Optional[str] = None,
) -> None:
    """Log one outbound call to the entity-linking service."""
    call_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "content_key": content_key[:16],
        "status": status,
        "entries": entries,
        "duration_ms": duration_ms,
        "error": error,
    }
    if error:
        logger.error(f"EXTRACTION_CALL_FAILED: {call_data}")
    else:
        logger.info(f"EXTRACTION_CALL: {call_data}")


def log_cache_event(content_key: str, outcome: str) -> None:
    """Log an annotation cache lookup outcome (hit, joined, miss, stored, ...)."""
    logger.debug(f"ANNOTATION_CACHE: {{'content_key': '{content_key[:16]}', 'outcome': '{outcome}'}}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {event_data}")
