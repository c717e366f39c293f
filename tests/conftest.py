"""
Shared fakes for the test suite.

FakeSupabase mimics the slice of the supabase-py query builder the content
store uses (table/select/insert/update/delete/eq/execute and auth.get_user),
so ContentStore itself runs unmodified against in-memory tables.
FakeGateway stands in for a provider client with scripted replies.
"""

import copy
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from models.provider_models import CompletionRequest, ProviderResponse, TokenUsage
from services.content_store import ContentStore
from utils.settings import load_settings


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Optional[Dict[str, Any]] = None
        self.filters: List[tuple] = []

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def execute(self):
        self.db.executed.append((self.table_name, self.op, list(self.filters)))
        if self.op in self.db.fail_ops:
            raise RuntimeError("database unavailable")

        rows = self.db.tables.setdefault(self.table_name, [])
        matched = [row for row in rows if all(row.get(col) == val for col, val in self.filters)]

        if self.op == "select":
            return FakeResponse(copy.deepcopy(matched))
        if self.op == "insert":
            row = copy.deepcopy(self.payload)
            row["id"] = f"{self.table_name}-{len(rows) + 1}"
            rows.append(row)
            return FakeResponse([copy.deepcopy(row)])
        if self.op == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(matched))
        for row in matched:
            rows.remove(row)
        return FakeResponse(copy.deepcopy(matched))


class FakeAuth:
    def __init__(self, users: Dict[str, Dict[str, Any]]):
        self.users = users

    def get_user(self, token):
        if token not in self.users:
            raise RuntimeError("invalid JWT")
        user = self.users[token]
        return SimpleNamespace(user=SimpleNamespace(
            id=user.get("id", "user-1"),
            email=user.get("email"),
            app_metadata=user.get("app_metadata", {}),
            user_metadata=user.get("user_metadata", {}),
        ))


class FakeSupabase:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None, users=None):
        self.tables = copy.deepcopy(tables or {})
        self.auth = FakeAuth(users or {})
        self.executed: List[tuple] = []
        self.fail_ops: set = set()

    def table(self, name):
        return FakeQuery(self, name)

    def row(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        for row in self.tables.get(table, []):
            if row.get("id") == row_id:
                return row
        return None

    def ops(self, op: str) -> List[tuple]:
        return [entry for entry in self.executed if entry[1] == op]


Reply = Union[str, ProviderResponse, Callable[[CompletionRequest], Union[str, ProviderResponse]]]


class FakeGateway:
    """Provider client double. Replies are consumed in order, then `default` is used."""

    def __init__(self, provider_name: str, replies: Optional[List[Reply]] = None,
                 default: Reply = "{}", configured: bool = True):
        self.provider_name = provider_name
        self.replies = list(replies or [])
        self.default = default
        self.configured = configured
        self.settings = SimpleNamespace(api_key_env=f"{provider_name.upper()}_API_KEY")
        self.requests: List[CompletionRequest] = []
        self.closed = False

    async def complete(self, request: CompletionRequest, cancel_event=None) -> ProviderResponse:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else self.default
        if callable(reply):
            reply = reply(request)
        if isinstance(reply, ProviderResponse):
            return reply
        return ProviderResponse(
            ok=True,
            provider=self.provider_name,
            model=f"{self.provider_name}-test",
            text=reply,
            usage=TokenUsage(input_tokens=10, output_tokens=20),
        )

    async def research(self, query, research_depth="standard", include_citations=True,
                       system=None, cancel_event=None) -> ProviderResponse:
        return await self.complete(CompletionRequest(prompt=query, system=system), cancel_event=cancel_event)

    async def ping(self) -> ProviderResponse:
        return await self.complete(CompletionRequest(prompt="test", max_tokens=10))

    async def aclose(self) -> None:
        self.closed = True


def failure(provider: str, message: str = "500 - upstream exploded", status_code: int = 500) -> ProviderResponse:
    return ProviderResponse.failure(provider, message, status_code=status_code)


BOOK_ROW = {
    "id": "b1",
    "title": "Rust for Beginners",
    "subtitle": "Ownership without tears",
    "topic": "rust",
    "level": "beginner",
    "chapters": [{"chapter_number": 1, "title": "Intro", "content": "", "key_takeaways": []}],
    "protected": False,
    "created_by": "ann@example.com",
    "updated_at": "2026-01-01T00:00:00+00:00",
}

COURSE_ROW = {
    "id": "c1",
    "title": "Baking Bread",
    "description": "From starter to loaf",
    "topic": "baking",
    "level": "intermediate",
    "content_structure": [
        {"module_title": "Starters", "sections": [{"title": "Feeding", "content": "Flour and water", "key_points": []}]}
    ],
    "protected": True,
    "created_by": "ann@example.com",
    "updated_at": "2026-01-01T00:00:00+00:00",
}

USERS = {
    "user-token": {"id": "u1", "email": "ann@example.com", "user_metadata": {"role": "user"}},
    "other-token": {"id": "u3", "email": "mallory@example.com", "user_metadata": {"role": "user"}},
    "admin-token": {"id": "u2", "email": "root@example.com", "app_metadata": {"role": "admin"}},
}


@pytest.fixture
def supabase():
    return FakeSupabase(
        tables={"books": [copy.deepcopy(BOOK_ROW)], "courses": [copy.deepcopy(COURSE_ROW)], "user_progress": []},
        users=USERS,
    )


@pytest.fixture
def store(supabase):
    return ContentStore(supabase)


@pytest.fixture
def settings():
    return load_settings(env={
        "CLAUDE_API_KEY": "test-claude",
        "GROK_API_KEY": "test-grok",
        "PERPLEXITY_API_KEY": "test-perplexity",
        "SUPABASE_URL": "https://example.supabase.co",
        "SUPABASE_KEY": "test-key",
        "MAX_REFINEMENT_ITERATIONS": "5",
    })
