"""
Content store: books and courses in Supabase.

Wraps the synchronous Supabase calls in asyncio.to_thread and adds the
domain rules the rest of the service relies on (validity, protection,
conditional write-back).
"""

import asyncio
import logging
from typing import Dict, Any, List, Optional

from supabase import Client

from clients import supabase_client as db
from models.content_models import ContentType
from utils.exceptions import (
    ConflictError, ForbiddenError, NotFoundError, PersistenceError, ProtectedContentError, StorageError,
)

logger = logging.getLogger(__name__)


def is_valid_document(content_type: ContentType, document: Optional[Dict[str, Any]]) -> bool:
    """A document needs a title, a topic and at least one chapter/module."""
    if not document:
        return False
    if not document.get("title") or not document.get("topic"):
        return False
    items = document.get(content_type.items_field)
    return isinstance(items, list) and len(items) > 0


class ContentStore:
    """Async facade over the books/courses tables"""

    def __init__(self, client: Client):
        self.client = client

    async def get(self, content_type: ContentType, content_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(db.get_content_row, self.client, content_type.table, content_id)
        except Exception as e:
            logger.error(f"Failed to fetch {content_type.value} {content_id}: {e}")
            raise StorageError(f"Failed to fetch {content_type.value}", context={"content_id": content_id})

    async def update(
        self,
        content_type: ContentType,
        content_id: str,
        fields: Dict[str, Any],
        expected_updated_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Write fields back to one row.

        When expected_updated_at is given the write only lands if the row
        still carries that token; otherwise ConflictError (or NotFoundError
        if the row is gone).
        """
        try:
            rows = await asyncio.to_thread(
                db.update_content_row, self.client, content_type.table, content_id, fields, expected_updated_at
            )
        except Exception as e:
            logger.error(f"Failed to update {content_type.value} {content_id}: {e}")
            raise PersistenceError(f"Failed to save {content_type.value}: {e}", context={"content_id": content_id})

        if rows:
            return rows[0]

        current = await self.get(content_type, content_id)
        if current is None:
            raise NotFoundError(context={"content_id": content_id})
        raise ConflictError(
            f"{content_type.value.capitalize()} was modified while it was being refined",
            context={
                "content_id": content_id,
                "expected_updated_at": expected_updated_at,
                "current_updated_at": current.get("updated_at"),
            },
        )

    async def create(self, content_type: ContentType, fields: Dict[str, Any]) -> Dict[str, Any]:
        try:
            row = await asyncio.to_thread(db.insert_content_row, self.client, content_type.table, fields)
        except Exception as e:
            logger.error(f"Failed to create {content_type.value}: {e}")
            raise StorageError(f"Failed to save {content_type.value}")
        logger.info(f"Created {content_type.value} {row.get('id')}")
        return row

    async def delete(
        self,
        content_type: ContentType,
        content_id: str,
        owner_email: Optional[str] = None,
    ) -> None:
        """
        Delete one row. Protected rows are refused whatever the caller's role.

        When owner_email is given the row must have been created by that
        user; admins and the cleanup job pass None.
        """
        document = await self.get(content_type, content_id)
        if document is None:
            raise NotFoundError(context={"content_id": content_id})
        if document.get("protected"):
            raise ProtectedContentError(content_type.value, content_id)
        if owner_email is not None and document.get("created_by") != owner_email:
            raise ForbiddenError(
                f"Only the owner or an admin can delete this {content_type.value}",
                context={"content_id": content_id},
            )

        try:
            await asyncio.to_thread(db.delete_content_row, self.client, content_type.table, content_id)
        except Exception as e:
            logger.error(f"Failed to delete {content_type.value} {content_id}: {e}")
            raise StorageError(f"Failed to delete {content_type.value}", context={"content_id": content_id})
        logger.info(f"Deleted {content_type.value} {content_id}")

    async def list(
        self,
        content_type: ContentType,
        created_by: Optional[str] = None,
        include_invalid: bool = False,
    ) -> List[Dict[str, Any]]:
        try:
            rows = await asyncio.to_thread(db.list_content_rows, self.client, content_type.table, created_by)
        except Exception as e:
            logger.error(f"Failed to list {content_type.table}: {e}")
            raise StorageError(f"Failed to list {content_type.table}")
        if include_invalid:
            return rows
        return [row for row in rows if is_valid_document(content_type, row)]

    async def list_user_progress(self, email: str) -> List[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(db.list_progress_for_user, self.client, email)
        except Exception as e:
            logger.error(f"Failed to load progress for {email}: {e}")
            raise StorageError("Failed to load user progress")

    async def get_user_for_token(self, access_token: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(db.get_user_for_token, self.client, access_token)
