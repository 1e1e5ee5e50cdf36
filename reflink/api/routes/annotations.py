from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from reflink.api.deps import require_api_token
from reflink.errors import AnnotationError
from reflink.models.schemas import AnnotateRequest, AnnotationsData, AnnotationsResponse, ReferenceEntryModel
from reflink.services import logger as log_service
from reflink.services.annotation_coordinator import AnnotationAttachmentCoordinator, get_coordinator

router = APIRouter(prefix="/api/annotations", tags=["annotations"])


@router.post("", response_model=AnnotationsResponse, dependencies=[Depends(require_api_token)])
async def annotate(
    request: AnnotateRequest,
    coordinator: AnnotationAttachmentCoordinator = Depends(get_coordinator),
):
    """Ranked reference annotations for a block of text."""
    if not request.text or not request.text.strip():
        raise HTTPException(status_code=400, detail="Missing text in request body")

    try:
        entries = await coordinator.references_for(request.text)
    except AnnotationError as e:
        log_service.log_event(
            event_type="annotate_failed",
            message="Annotation request failed",
            error=e.message,
            status_code=e.status_code,
        )
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    return AnnotationsResponse(
        data=AnnotationsData(
            annotations=[
                ReferenceEntryModel(title=e.title, url=e.url, confidence=e.confidence)
                for e in entries
            ]
        ),
        timestamp=datetime.now(timezone.utc),
    )
