"""
HTTP surface tests with FastAPI's TestClient, fake providers and an
in-memory Supabase.

Run with:
    python3 -m pytest tests/test_routes.py -v
"""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeGateway, failure
from main import create_app
from models.provider_models import ProviderResponse

USER = {"Authorization": "Bearer user-token"}
ADMIN = {"Authorization": "Bearer admin-token"}
OTHER_USER = {"Authorization": "Bearer other-token"}

REFINED = json.dumps({
    "title": "Rust, Gently",
    "chapters": [{"chapter_number": 1, "title": "Intro", "content": "Expanded text.", "key_takeaways": ["a"]}],
    "changes_summary": "added content",
})


@pytest.fixture
def providers():
    return {
        "claude": FakeGateway("claude", default=REFINED),
        "grok": FakeGateway("grok"),
        "perplexity": FakeGateway("perplexity"),
    }


@pytest.fixture
def client(settings, store, providers):
    app = create_app(settings=settings, store=store, **providers)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# ── Authentication ───────────────────────────────────────────────────────────

def test_missing_token_is_401(client):
    response = client.post("/api/v1/refineContent", json={"contentId": "b1", "contentType": "book"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized", "code": "UNAUTHENTICATED"}


def test_invalid_token_is_401(client):
    response = client.post("/api/v1/brainstorm", json={"topic": "x"}, headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_admin_endpoint_refuses_plain_user(client):
    response = client.post("/api/v1/systemAudit", headers=USER)
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


# ── refineContent ────────────────────────────────────────────────────────────

def test_refine_content_success(client, supabase):
    response = client.post(
        "/api/v1/refineContent",
        json={"contentId": "b1", "contentType": "book", "iterations": 2, "tone": "friendly"},
        headers=USER,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Content refined through 2 iterations"
    assert [entry["iteration"] for entry in body["changes_log"]] == [1, 2]
    assert body["changes_log"][0]["summary"] == "added content"
    assert body["refined_content"]["title"] == "Rust, Gently"
    assert supabase.row("books", "b1")["title"] == "Rust, Gently"


def test_refine_content_missing_parameters_is_400(client):
    response = client.post("/api/v1/refineContent", json={"contentType": "book"}, headers=USER)
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required parameters"
    assert response.json()["code"] == "INVALID_PARAMETERS"


def test_refine_content_bad_body_is_400(client):
    response = client.post(
        "/api/v1/refineContent", json={"contentId": "b1", "contentType": "book", "iterations": "many"}, headers=USER
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PARAMETERS"


def test_refine_content_too_many_iterations_is_400(client):
    response = client.post(
        "/api/v1/refineContent", json={"contentId": "b1", "contentType": "book", "iterations": 50}, headers=USER
    )
    assert response.status_code == 400


def test_refine_content_not_found_is_404(client, providers):
    response = client.post("/api/v1/refineContent", json={"contentId": "zz", "contentType": "book"}, headers=USER)
    assert response.status_code == 404
    assert response.json()["error"] == "Content not found"
    assert providers["claude"].requests == []


def test_refine_content_primary_failure_is_500(client, providers, supabase):
    providers["claude"].replies = [failure("claude")]
    response = client.post(
        "/api/v1/refineContent", json={"contentId": "b1", "contentType": "book", "iterations": 1}, headers=USER
    )
    assert response.status_code == 500
    assert response.json()["code"] == "UPSTREAM_PROVIDER_FAILURE"
    assert supabase.ops("update") == []


# ── Authoring ────────────────────────────────────────────────────────────────

def test_generate_content_and_save(client, providers, supabase):
    providers["claude"].replies = [json.dumps({
        "title": "Sourdough 101",
        "description": "Bake it",
        "modules": [{"module_title": "Starter", "sections": [{"title": "Feed", "content": "...", "key_points": []}]}],
    })]
    response = client.post(
        "/api/v1/generateContent",
        json={"contentType": "course", "topic": "sourdough", "includeQuizzes": True, "save": True},
        headers=USER,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["data"]["content_structure"][0]["module_title"] == "Starter"
    assert body["usage"] == {"input_tokens": 10, "output_tokens": 20}

    stored = supabase.row("courses", body["data"]["id"])
    assert stored["created_by"] == "ann@example.com"
    assert stored["protected"] is False
    assert "quiz_questions" in providers["claude"].requests[0].prompt


def test_generate_content_requires_topic(client):
    response = client.post("/api/v1/generateContent", json={"contentType": "book"}, headers=USER)
    assert response.status_code == 400


def test_brainstorm_falls_back_to_raw_text(client, providers):
    providers["grok"].replies = ["Just vibes, no JSON."]
    response = client.post("/api/v1/brainstorm", json={"topic": "chess"}, headers=USER)
    assert response.status_code == 200
    brainstorm = response.json()["brainstorm"]
    assert brainstorm["raw_response"] == "Just vibes, no JSON."
    assert brainstorm["unique_angles"] == []
    assert response.json()["usage"]["tokens"] == 30


def test_research_returns_citations(client, providers):
    providers["perplexity"].replies = [ProviderResponse(
        ok=True, provider="perplexity", model="sonar", text="Findings", citations=["https://a.example"]
    )]
    response = client.post("/api/v1/research", json={"query": "bread history"}, headers=USER)
    assert response.status_code == 200
    assert response.json()["content"] == "Findings"
    assert response.json()["citations"] == ["https://a.example"]
    assert response.json()["model"] == "sonar"


def test_research_provider_failure_is_500(client, providers):
    providers["perplexity"].replies = [failure("perplexity", "PERPLEXITY_API_KEY not configured", status_code=None)]
    response = client.post("/api/v1/research", json={"query": "bread"}, headers=USER)
    assert response.status_code == 500
    assert "PERPLEXITY_API_KEY" in response.json()["error"]


def test_edit_content(client, providers):
    providers["claude"].replies = ["Improved paragraph."]
    response = client.post("/api/v1/editContent", json={"content": "draft", "action": "improve"}, headers=USER)
    assert response.status_code == 200
    assert response.json()["result"] == {"content": "Improved paragraph."}
    assert response.json()["action"] == "improve"


def test_edit_content_rejects_unknown_action(client):
    response = client.post("/api/v1/editContent", json={"content": "draft", "action": "shout"}, headers=USER)
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ACTION"


def test_summarize_content(client, providers):
    providers["claude"].replies = ['{"overview": "A gentle intro."}']
    response = client.post(
        "/api/v1/summarizeContent", json={"contentId": "b1", "contentType": "book"}, headers=USER
    )
    assert response.status_code == 200
    assert response.json()["summary"] == {"overview": "A gentle intro."}


def test_recommendations(client, providers, supabase):
    supabase.tables["user_progress"] = [{"user_email": "ann@example.com", "progress_percentage": 100}]
    providers["claude"].replies = [json.dumps({
        "recommendations": [{"title": "Async Rust", "topic": "rust", "level": "intermediate"}],
        "learning_path_insights": "Ready for concurrency",
        "skill_gaps": ["lifetimes"],
    })]
    response = client.post("/api/v1/recommendations", headers=USER)
    assert response.status_code == 200
    body = response.json()
    assert body["recommendations"][0]["title"] == "Async Rust"
    assert body["skill_gaps"] == ["lifetimes"]
    assert body["user_stats"] == {"created_courses": 1, "created_books": 1, "in_progress": 1, "completed": 1}


# ── deleteContent ────────────────────────────────────────────────────────────

def test_delete_protected_content_is_403_even_for_admin(client, supabase):
    response = client.post("/api/v1/deleteContent", json={"contentId": "c1", "contentType": "course"}, headers=ADMIN)
    assert response.status_code == 403
    assert response.json()["code"] == "CONTENT_PROTECTED"
    assert supabase.row("courses", "c1") is not None


def test_delete_someone_elses_content_is_403(client, supabase):
    response = client.post(
        "/api/v1/deleteContent", json={"contentId": "b1", "contentType": "book"}, headers=OTHER_USER
    )
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"
    assert supabase.row("books", "b1") is not None


def test_admin_can_delete_any_unprotected_content(client, supabase):
    response = client.post("/api/v1/deleteContent", json={"contentId": "b1", "contentType": "book"}, headers=ADMIN)
    assert response.status_code == 200
    assert supabase.row("books", "b1") is None


def test_delete_content(client, supabase):
    response = client.post("/api/v1/deleteContent", json={"contentId": "b1", "contentType": "book"}, headers=USER)
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert supabase.row("books", "b1") is None


# ── Admin ────────────────────────────────────────────────────────────────────

def test_cleanup_dry_run_by_default(client, supabase):
    supabase.tables["books"].append({"id": "b9", "title": "", "topic": "x", "chapters": []})
    response = client.post("/api/v1/cleanupInvalidContent", json={}, headers=ADMIN)
    assert response.status_code == 200
    body = response.json()
    assert body["dryRun"] is True
    assert body["results"]["books"]["found"] == 1
    assert body["results"]["books"]["deleted"] == 0
    assert supabase.row("books", "b9") is not None


def test_system_audit(client):
    response = client.post("/api/v1/systemAudit", headers=ADMIN)
    assert response.status_code == 200
    audit = response.json()["audit"]
    assert audit["aiServices"]["CLAUDE_API_KEY"]["apiStatus"] == "WORKING"
    assert audit["database"]["books"]["total"] == 1
