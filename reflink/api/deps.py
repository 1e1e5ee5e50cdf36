from __future__ import annotations

import secrets

from fastapi import Header, HTTPException

from reflink.config import settings


def require_api_token(authorization: str | None = Header(default=None)) -> None:
    """Bearer-token gate, active only when ANNOTATIONS_API_TOKEN is set."""
    expected = settings.annotations_api_token
    if not expected:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token.strip(), expected):
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
