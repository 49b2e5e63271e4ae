"""
Manual link CRUD against the links table.
"""
from typing import Any, Dict, List, Optional

from db_sqlite import execute_query, execute_update
from models import Link


def row_to_link(row: Dict[str, Any]) -> Link:
    """Convert a database row to a Link."""
    return Link(
        id=row["id"],
        source_id=row["source_id"],
        target_id=row["target_id"],
        description=row["description"],
        type=row["type"],
        url=row.get("url"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def list_links() -> List[Link]:
    rows = execute_query("SELECT * FROM links ORDER BY created_at DESC")
    return [row_to_link(row) for row in rows]


def get_link(link_id: str) -> Optional[Link]:
    rows = execute_query("SELECT * FROM links WHERE id = ?", (link_id,))
    if not rows:
        return None
    return row_to_link(rows[0])


def insert_link(link: Link) -> Link:
    """
    Insert a link. Raises sqlite3.IntegrityError if an endpoint is missing,
    since the foreign keys are enforced on every connection.
    """
    execute_update(
        """
        INSERT INTO links (id, source_id, target_id, description, type, url, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            link.id,
            link.source_id,
            link.target_id,
            link.description,
            link.type.value,
            link.url or None,
            link.created_at,
            link.updated_at,
        ),
    )
    return link


def update_link(link: Link) -> Link:
    execute_update(
        """
        UPDATE links SET
            source_id = ?,
            target_id = ?,
            description = ?,
            type = ?,
            url = ?,
            updated_at = ?
        WHERE id = ?
        """,
        (
            link.source_id,
            link.target_id,
            link.description,
            link.type.value,
            link.url or None,
            link.updated_at,
            link.id,
        ),
    )
    return link


def delete_link(link_id: str) -> bool:
    return execute_update("DELETE FROM links WHERE id = ?", (link_id,)) > 0
