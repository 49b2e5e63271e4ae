"""
Link endpoints: manual relationships between two people.

Only manual link types are stored. Stream and interest links are computed on
the client from person attributes and are rejected here.
"""
import logging
import sqlite3
from typing import List

from fastapi import APIRouter, HTTPException, Response

from events import LinkCreated, LinkDeleted, LinkUpdated, emit_event
from models import DERIVED_LINK_TYPES, Link, LinkCreate, LinkUpdate
from services.graph import links as links_service
from services.graph import people as people_service
from utils.timestamp import utcnow_iso

logger = logging.getLogger("people_web")

router = APIRouter(prefix="/api/links", tags=["links"])


def _ensure_endpoints_exist(source_id: str, target_id: str) -> None:
    if not people_service.person_exists(source_id) or not people_service.person_exists(target_id):
        raise HTTPException(status_code=400, detail="Source or target person not found")


@router.get("", response_model=List[Link], response_model_exclude_none=True)
async def list_links():
    """List all manual links, newest first."""
    try:
        return links_service.list_links()
    except Exception as e:
        logger.error(f"Error fetching links: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch links")


@router.get("/{link_id}", response_model=Link, response_model_exclude_none=True)
async def read_link(link_id: str):
    link = links_service.get_link(link_id)
    if link is None:
        raise HTTPException(status_code=404, detail="Link not found")
    return link


@router.post("", status_code=201, response_model=Link, response_model_exclude_none=True)
async def create_link(payload: LinkCreate):
    if not (payload.id and payload.source_id and payload.target_id and payload.description and payload.type):
        raise HTTPException(
            status_code=400,
            detail="id, sourceId, targetId, description, and type are required",
        )
    if payload.type in DERIVED_LINK_TYPES:
        raise HTTPException(status_code=400, detail=f"{payload.type.value} links are derived and cannot be stored")

    _ensure_endpoints_exist(payload.source_id, payload.target_id)
    if links_service.get_link(payload.id) is not None:
        raise HTTPException(status_code=409, detail="Link already exists")

    now = utcnow_iso()
    link = Link(
        id=payload.id,
        source_id=payload.source_id,
        target_id=payload.target_id,
        description=payload.description,
        type=payload.type,
        url=payload.url,
        created_at=payload.created_at or now,
        updated_at=payload.updated_at or payload.created_at or now,
    )

    try:
        links_service.insert_link(link)
    except sqlite3.IntegrityError:
        # An endpoint was deleted between the check and the insert
        raise HTTPException(status_code=400, detail="Source or target person not found")
    except Exception as e:
        logger.error(f"Error creating link: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create link")

    emit_event(LinkCreated(link=link))
    return link


@router.put("/{link_id}", response_model=Link, response_model_exclude_none=True)
async def update_link(link_id: str, payload: LinkUpdate):
    existing = links_service.get_link(link_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Link not found")

    changes = payload.model_dump(exclude_unset=True)
    for required in ("source_id", "target_id", "description", "type"):
        if changes.get(required) is None:
            changes.pop(required, None)
    if not changes.get("updated_at"):
        changes["updated_at"] = utcnow_iso()
    link = Link.model_validate({**existing.model_dump(), **changes})

    if not link.description:
        raise HTTPException(status_code=400, detail="description cannot be empty")
    if link.type in DERIVED_LINK_TYPES:
        raise HTTPException(status_code=400, detail=f"{link.type.value} links are derived and cannot be stored")
    if link.source_id != existing.source_id or link.target_id != existing.target_id:
        _ensure_endpoints_exist(link.source_id, link.target_id)

    try:
        links_service.update_link(link)
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=400, detail="Source or target person not found")
    except Exception as e:
        logger.error(f"Error updating link: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update link")

    emit_event(LinkUpdated(link=link))
    return link


@router.delete("/{link_id}", status_code=204)
async def delete_link(link_id: str):
    if links_service.get_link(link_id) is None:
        raise HTTPException(status_code=404, detail="Link not found")

    try:
        links_service.delete_link(link_id)
    except Exception as e:
        logger.error(f"Error deleting link: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete link")

    emit_event(LinkDeleted(id=link_id))
    return Response(status_code=204)
