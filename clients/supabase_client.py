"""
Supabase access for books, courses, user progress and caller identity.

Functions take an explicit Client so the process entry point owns its
lifecycle; nothing is created at import time.
"""

from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
from enum import Enum
import logging

from supabase import create_client, Client

logger = logging.getLogger(__name__)

# Columns the content tables accept on write
BOOK_COLUMNS = {
    "id", "title", "subtitle", "topic", "level", "chapters", "adult_content",
    "protected", "created_by", "author_name", "language", "status", "updated_at",
}
COURSE_COLUMNS = {
    "id", "title", "description", "topic", "level", "tier", "content_structure",
    "adult_content", "protected", "created_by", "language", "status", "updated_at",
}
TABLE_COLUMNS = {"books": BOOK_COLUMNS, "courses": COURSE_COLUMNS}

PROGRESS_TABLE = "user_progress"


def create_supabase(url: str, key: str) -> Client:
    """Build a Supabase client. Raises ValueError when not configured."""
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(url, key)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialize_for_supabase(data: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively convert enums → .value, datetimes → .isoformat() for Supabase writes."""
    result = {}
    for key, value in data.items():
        if isinstance(value, Enum):
            result[key] = value.value
        elif isinstance(value, datetime):
            result[key] = value.isoformat()
        elif isinstance(value, dict):
            result[key] = _serialize_for_supabase(value)
        elif isinstance(value, list):
            result[key] = [
                _serialize_for_supabase(item) if isinstance(item, dict)
                else item.value if isinstance(item, Enum)
                else item.isoformat() if isinstance(item, datetime)
                else item
                for item in value
            ]
        else:
            result[key] = value
    return result


def _serialize_content_data(table: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize content for insert/update. Drops fields the table does not have."""
    columns = TABLE_COLUMNS.get(table)
    filtered = {k: v for k, v in data.items() if columns is None or k in columns}
    return _serialize_for_supabase(filtered)


# --- Content rows ---

def get_content_row(client: Client, table: str, content_id: str) -> Optional[Dict[str, Any]]:
    """Get one book/course by id."""
    response = client.table(table).select("*").eq("id", content_id).execute()
    if response.data and len(response.data) > 0:
        return response.data[0]
    return None


def list_content_rows(client: Client, table: str, created_by: Optional[str] = None) -> List[Dict[str, Any]]:
    """List books/courses, optionally only those created by one user."""
    query = client.table(table).select("*")
    if created_by:
        query = query.eq("created_by", created_by)
    response = query.execute()
    return response.data or []


def insert_content_row(client: Client, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert a new book/course and return the stored row (with its id).
    Raises:
        Exception if insertion fails or id is not returned.
    """
    payload = _serialize_content_data(table, {**data, "updated_at": utc_now_iso()})
    payload.pop("id", None)
    response = client.table(table).insert(payload).execute()
    if not response.data or "id" not in response.data[0]:
        raise Exception(f"Supabase insert failed or id not returned: {response}")
    return response.data[0]


def update_content_row(
    client: Client,
    table: str,
    content_id: str,
    fields: Dict[str, Any],
    expected_updated_at: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Update a row by id, stamping a fresh updated_at.

    With expected_updated_at the update only matches if the row still carries
    that token; an empty result then means someone else wrote first.
    Returns the updated rows.
    """
    payload = _serialize_content_data(table, {**fields, "updated_at": utc_now_iso()})
    payload.pop("id", None)
    query = client.table(table).update(payload).eq("id", content_id)
    if expected_updated_at is not None:
        query = query.eq("updated_at", expected_updated_at)
    response = query.execute()
    return response.data or []


def delete_content_row(client: Client, table: str, content_id: str) -> None:
    client.table(table).delete().eq("id", content_id).execute()


# --- Progress ---

def list_progress_for_user(client: Client, email: str) -> List[Dict[str, Any]]:
    """All progress rows for a user, keyed by email."""
    response = client.table(PROGRESS_TABLE).select("*").eq("user_email", email).execute()
    return response.data or []


# --- Auth ---

def get_user_for_token(client: Client, access_token: str) -> Optional[Dict[str, Any]]:
    """
    Resolve a Supabase access token to {"id", "email", "role"}.
    Returns None when the token is invalid or expired.
    """
    try:
        response = client.auth.get_user(access_token)
    except Exception as e:
        logger.info(f"Token rejected by Supabase auth: {e}")
        return None

    user = getattr(response, "user", None)
    if user is None:
        return None

    app_metadata = getattr(user, "app_metadata", None) or {}
    user_metadata = getattr(user, "user_metadata", None) or {}
    role = app_metadata.get("role") or user_metadata.get("role") or "user"

    return {"id": getattr(user, "id", None), "email": getattr(user, "email", None), "role": role}
