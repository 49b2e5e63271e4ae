"""
People endpoints: list/get/create/update/delete persons (graph nodes).

Clients generate ids and timestamps themselves so they can render the new
person before the request completes. Every successful write is broadcast to
all connected clients, the caller included.
"""
import logging
from typing import List

from fastapi import APIRouter, HTTPException, Response

from events import PersonCreated, PersonDeleted, PersonUpdated, LinkDeleted, emit_event
from models import Person, PersonCreate, PersonUpdate
from services.graph import people as people_service
from utils.timestamp import utcnow_iso

logger = logging.getLogger("people_web")

router = APIRouter(prefix="/api/people", tags=["people"])


@router.get("", response_model=List[Person], response_model_exclude_none=True)
async def list_people():
    """List all people, newest first."""
    try:
        return people_service.list_people()
    except Exception as e:
        logger.error(f"Error fetching people: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch people")


@router.get("/{person_id}", response_model=Person, response_model_exclude_none=True)
async def read_person(person_id: str):
    person = people_service.get_person(person_id)
    if person is None:
        raise HTTPException(status_code=404, detail="Person not found")
    return person


@router.post("", status_code=201, response_model=Person, response_model_exclude_none=True)
async def create_person(payload: PersonCreate):
    """
    Create a person.

    The body carries the client-assigned id. createdAt/updatedAt are filled in
    with the server clock when the client didn't send them.
    """
    if not payload.id or not payload.name or payload.position is None:
        raise HTTPException(status_code=400, detail="id, name, and position are required")

    now = utcnow_iso()
    person = Person(
        id=payload.id,
        name=payload.name,
        affiliations=payload.affiliations,
        photo_url=payload.photo_url,
        peeps=payload.peeps,
        stream=payload.stream,
        interests=payload.interests,
        position=payload.position,
        created_at=payload.created_at or now,
        updated_at=payload.updated_at or payload.created_at or now,
    )

    if people_service.person_exists(person.id):
        raise HTTPException(status_code=409, detail="Person already exists")

    try:
        people_service.insert_person(person)
    except Exception as e:
        logger.error(f"Error creating person: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create person")

    emit_event(PersonCreated(person=person))
    return person


@router.put("/{person_id}", response_model=Person, response_model_exclude_none=True)
async def update_person(person_id: str, payload: PersonUpdate):
    """
    Update a person (full-row write; fields left out of the body keep their
    stored value). createdAt always comes from the stored row.
    """
    existing = people_service.get_person(person_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Person not found")

    changes = payload.model_dump(exclude_unset=True)
    for required in ("name", "position"):
        if changes.get(required) is None:
            changes.pop(required, None)
    if not changes.get("name", existing.name):
        raise HTTPException(status_code=400, detail="name cannot be empty")
    if not changes.get("updated_at"):
        changes["updated_at"] = utcnow_iso()
    person = Person.model_validate({**existing.model_dump(), **changes})

    try:
        people_service.update_person(person)
    except Exception as e:
        logger.error(f"Error updating person: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update person")

    emit_event(PersonUpdated(person=person))
    return person


@router.delete("/{person_id}", status_code=204)
async def delete_person(person_id: str):
    """
    Delete a person and every link that references it.

    A link:deleted event goes out for each dependent link before the
    person:deleted event, so clients never hold a dangling edge.
    """
    if not people_service.person_exists(person_id):
        raise HTTPException(status_code=404, detail="Person not found")

    try:
        link_ids = people_service.list_link_ids_for_person(person_id)
        people_service.delete_person(person_id)
    except Exception as e:
        logger.error(f"Error deleting person: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete person")

    for link_id in link_ids:
        emit_event(LinkDeleted(id=link_id))
    emit_event(PersonDeleted(id=person_id))
    return Response(status_code=204)
