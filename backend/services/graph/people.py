"""
Person CRUD against the people table.
"""
import json
from typing import Any, Dict, List, Optional

from db_sqlite import execute_query, execute_update
from models import Person


def _json_or_none(values: Optional[List[str]]) -> Optional[str]:
    if not values:
        return None
    return json.dumps(values)


def _list_or_none(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        # Older rows stored a single affiliation as plain text
        return [raw]
    return parsed if isinstance(parsed, list) else [str(parsed)]


def row_to_person(row: Dict[str, Any]) -> Person:
    """Convert a database row to a Person."""
    return Person(
        id=row["id"],
        name=row["name"],
        affiliations=_list_or_none(row.get("affiliations")),
        photo_url=row.get("photo_url"),
        peeps=row.get("peeps"),
        stream=row.get("stream"),
        interests=_list_or_none(row.get("interests")),
        position={"x": row["position_x"], "y": row["position_y"]},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def list_people() -> List[Person]:
    rows = execute_query("SELECT * FROM people ORDER BY created_at DESC")
    return [row_to_person(row) for row in rows]


def get_person(person_id: str) -> Optional[Person]:
    rows = execute_query("SELECT * FROM people WHERE id = ?", (person_id,))
    if not rows:
        return None
    return row_to_person(rows[0])


def person_exists(person_id: str) -> bool:
    rows = execute_query("SELECT id FROM people WHERE id = ?", (person_id,))
    return bool(rows)


def insert_person(person: Person) -> Person:
    execute_update(
        """
        INSERT INTO people (id, name, affiliations, photo_url, peeps, stream, interests,
                            position_x, position_y, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            person.id,
            person.name,
            _json_or_none(person.affiliations),
            person.photo_url or None,
            person.peeps or None,
            person.stream or None,
            _json_or_none(person.interests),
            person.position.x,
            person.position.y,
            person.created_at,
            person.updated_at,
        ),
    )
    return person


def update_person(person: Person) -> Person:
    """Full-row update. created_at is never rewritten."""
    execute_update(
        """
        UPDATE people SET
            name = ?,
            affiliations = ?,
            photo_url = ?,
            peeps = ?,
            stream = ?,
            interests = ?,
            position_x = ?,
            position_y = ?,
            updated_at = ?
        WHERE id = ?
        """,
        (
            person.name,
            _json_or_none(person.affiliations),
            person.photo_url or None,
            person.peeps or None,
            person.stream or None,
            _json_or_none(person.interests),
            person.position.x,
            person.position.y,
            person.updated_at,
            person.id,
        ),
    )
    return person


def list_link_ids_for_person(person_id: str) -> List[str]:
    rows = execute_query(
        "SELECT id FROM links WHERE source_id = ? OR target_id = ?",
        (person_id, person_id),
    )
    return [row["id"] for row in rows]


def delete_person(person_id: str) -> bool:
    """Delete a person. Links referencing it go with it (ON DELETE CASCADE)."""
    return execute_update("DELETE FROM people WHERE id = ?", (person_id,)) > 0
