"""
Feature request endpoints: users leave short requests for the maintainers.
"""
import logging
from typing import List

from fastapi import APIRouter, HTTPException, Response

from events import FeatureRequestCreated, FeatureRequestDeleted, emit_event
from models import FeatureRequest, FeatureRequestCreate
from services import feature_requests as feature_requests_service
from utils.timestamp import utcnow_iso

logger = logging.getLogger("people_web")

router = APIRouter(prefix="/api/feature-requests", tags=["feature-requests"])


@router.get("", response_model=List[FeatureRequest])
async def list_feature_requests():
    try:
        return feature_requests_service.list_feature_requests()
    except Exception as e:
        logger.error(f"Error fetching feature requests: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch feature requests")


@router.post("", status_code=201, response_model=FeatureRequest)
async def create_feature_request(payload: FeatureRequestCreate):
    if not payload.id or not (payload.request_text or "").strip():
        raise HTTPException(status_code=400, detail="id and requestText are required")

    request = FeatureRequest(
        id=payload.id,
        author_name=(payload.author_name or "").strip() or None,
        request_text=payload.request_text.strip(),
        created_at=payload.created_at or utcnow_iso(),
    )

    try:
        feature_requests_service.insert_feature_request(request)
    except Exception as e:
        logger.error(f"Error creating feature request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create feature request")

    emit_event(FeatureRequestCreated(request=request))
    return request


@router.delete("/{request_id}", status_code=204)
async def delete_feature_request(request_id: str):
    if feature_requests_service.get_feature_request(request_id) is None:
        raise HTTPException(status_code=404, detail="Feature request not found")

    try:
        feature_requests_service.delete_feature_request(request_id)
    except Exception as e:
        logger.error(f"Error deleting feature request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete feature request")

    emit_event(FeatureRequestDeleted(id=request_id))
    return Response(status_code=204)
