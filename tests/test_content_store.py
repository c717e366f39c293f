"""
Content store tests against an in-memory Supabase double.

Run with:
    python3 -m pytest tests/test_content_store.py -v
"""

import asyncio

import pytest

from clients.supabase_client import _serialize_for_supabase
from models.content_models import ContentLevel, ContentType
from services.content_store import is_valid_document
from utils.exceptions import ConflictError, ForbiddenError, NotFoundError, ProtectedContentError, StorageError


def test_get_returns_row_or_none(store):
    assert asyncio.run(store.get(ContentType.BOOK, "b1"))["title"] == "Rust for Beginners"
    assert asyncio.run(store.get(ContentType.BOOK, "missing")) is None


def test_get_wraps_database_errors(store, supabase):
    supabase.fail_ops.add("select")
    with pytest.raises(StorageError):
        asyncio.run(store.get(ContentType.BOOK, "b1"))


def test_conditional_update_succeeds_with_current_token(store, supabase):
    saved = asyncio.run(store.update(
        ContentType.BOOK, "b1", {"title": "New"}, expected_updated_at="2026-01-01T00:00:00+00:00"
    ))
    assert saved["title"] == "New"
    assert saved["updated_at"] != "2026-01-01T00:00:00+00:00"
    assert supabase.row("books", "b1")["title"] == "New"


def test_conditional_update_with_stale_token_conflicts(store, supabase):
    with pytest.raises(ConflictError) as exc_info:
        asyncio.run(store.update(ContentType.BOOK, "b1", {"title": "New"}, expected_updated_at="stale"))
    assert exc_info.value.status_code == 409
    assert supabase.row("books", "b1")["title"] == "Rust for Beginners"


def test_update_of_missing_row_is_not_found(store):
    with pytest.raises(NotFoundError):
        asyncio.run(store.update(ContentType.BOOK, "ghost", {"title": "New"}, expected_updated_at="x"))


def test_update_drops_unknown_columns(store, supabase):
    asyncio.run(store.update(ContentType.BOOK, "b1", {"title": "New", "changes_summary": "nope"}))
    assert "changes_summary" not in supabase.row("books", "b1")


def test_create_assigns_id(store, supabase):
    row = asyncio.run(store.create(ContentType.COURSE, {
        "id": "client-chosen",
        "title": "Knots",
        "topic": "sailing",
        "level": ContentLevel.BEGINNER,
        "content_structure": [{"module_title": "Bowline", "sections": []}],
    }))
    assert row["id"] == "courses-2"
    assert row["level"] == "beginner"
    assert supabase.row("courses", "courses-2")["title"] == "Knots"


def test_delete_removes_unprotected_row(store, supabase):
    asyncio.run(store.delete(ContentType.BOOK, "b1"))
    assert supabase.row("books", "b1") is None


def test_delete_refuses_protected_row(store, supabase):
    with pytest.raises(ProtectedContentError) as exc_info:
        asyncio.run(store.delete(ContentType.COURSE, "c1"))
    assert exc_info.value.status_code == 403
    assert exc_info.value.error_code == "CONTENT_PROTECTED"
    assert supabase.row("courses", "c1") is not None
    assert supabase.ops("delete") == []


def test_delete_refuses_other_users_row(store, supabase):
    with pytest.raises(ForbiddenError) as exc_info:
        asyncio.run(store.delete(ContentType.BOOK, "b1", owner_email="mallory@example.com"))
    assert exc_info.value.status_code == 403
    assert supabase.row("books", "b1") is not None
    assert supabase.ops("delete") == []


def test_delete_by_owner(store, supabase):
    asyncio.run(store.delete(ContentType.BOOK, "b1", owner_email="ann@example.com"))
    assert supabase.row("books", "b1") is None


def test_delete_missing_row_is_not_found(store):
    with pytest.raises(NotFoundError):
        asyncio.run(store.delete(ContentType.BOOK, "ghost"))


def test_list_hides_invalid_documents_by_default(store, supabase):
    supabase.tables["books"].append({"id": "b2", "title": "Empty", "topic": "x", "chapters": []})
    supabase.tables["books"].append({"id": "b3", "title": "Other author", "topic": "y",
                                     "chapters": [{"title": "c"}], "created_by": "bob@example.com"})

    visible = asyncio.run(store.list(ContentType.BOOK))
    everything = asyncio.run(store.list(ContentType.BOOK, include_invalid=True))
    mine = asyncio.run(store.list(ContentType.BOOK, created_by="ann@example.com"))

    assert [row["id"] for row in visible] == ["b1", "b3"]
    assert [row["id"] for row in everything] == ["b1", "b2", "b3"]
    assert [row["id"] for row in mine] == ["b1"]


def test_user_progress_filters_by_email(store, supabase):
    supabase.tables["user_progress"] = [
        {"user_email": "ann@example.com", "progress_percentage": 100},
        {"user_email": "bob@example.com", "progress_percentage": 10},
    ]
    rows = asyncio.run(store.list_user_progress("ann@example.com"))
    assert rows == [{"user_email": "ann@example.com", "progress_percentage": 100}]


@pytest.mark.parametrize("document,valid", [
    ({"title": "T", "topic": "t", "chapters": [{}]}, True),
    ({"title": "T", "topic": "t", "chapters": []}, False),
    ({"title": "T", "topic": "t"}, False),
    ({"title": "", "topic": "t", "chapters": [{}]}, False),
    ({"title": "T", "chapters": [{}]}, False),
    (None, False),
])
def test_book_validity(document, valid):
    assert is_valid_document(ContentType.BOOK, document) is valid


def test_course_validity_uses_content_structure():
    assert is_valid_document(ContentType.COURSE, {"title": "T", "topic": "t", "content_structure": [{}]})
    assert not is_valid_document(ContentType.COURSE, {"title": "T", "topic": "t", "chapters": [{}]})


def test_user_lookup_reads_role_from_metadata(store):
    assert asyncio.run(store.get_user_for_token("admin-token"))["role"] == "admin"
    assert asyncio.run(store.get_user_for_token("user-token"))["role"] == "user"
    assert asyncio.run(store.get_user_for_token("bogus")) is None


def test_serializer_converts_enums_recursively():
    data = _serialize_for_supabase({"level": ContentLevel.PHD, "nested": {"kind": ContentType.BOOK},
                                    "items": [ContentType.COURSE, {"x": ContentLevel.ADVANCED}]})
    assert data == {"level": "phd", "nested": {"kind": "book"}, "items": ["course", {"x": "advanced"}]}
