"""
Feature request CRUD against the feature_requests table.
"""
from typing import Any, Dict, List, Optional

from db_sqlite import execute_query, execute_update
from models import FeatureRequest


def row_to_feature_request(row: Dict[str, Any]) -> FeatureRequest:
    return FeatureRequest(
        id=row["id"],
        author_name=row.get("author_name"),
        request_text=row["request_text"],
        created_at=row["created_at"],
    )


def list_feature_requests() -> List[FeatureRequest]:
    rows = execute_query("SELECT * FROM feature_requests ORDER BY created_at DESC")
    return [row_to_feature_request(row) for row in rows]


def get_feature_request(request_id: str) -> Optional[FeatureRequest]:
    rows = execute_query("SELECT * FROM feature_requests WHERE id = ?", (request_id,))
    if not rows:
        return None
    return row_to_feature_request(rows[0])


def insert_feature_request(request: FeatureRequest) -> FeatureRequest:
    execute_update(
        "INSERT INTO feature_requests (id, author_name, request_text, created_at) VALUES (?, ?, ?, ?)",
        (request.id, request.author_name or None, request.request_text, request.created_at),
    )
    return request


def delete_feature_request(request_id: str) -> bool:
    return execute_update("DELETE FROM feature_requests WHERE id = ?", (request_id,)) > 0
