"""
Single-shot authoring operations: draft, brainstorm, research, edit,
summarize and recommend. Each is one provider call plus light post-processing.
"""

import asyncio
import logging
from typing import Dict, Any, Optional

from clients.llm_gateway import GatewayClient
from clients.perplexity_client import PerplexityClient
from models.content_models import (
    BrainstormRequest, ContentType, EditContentRequest, EditorAction, GenerateContentRequest,
    QuizMode, ResearchRequest, SummarizeContentRequest,
)
from models.provider_models import CompletionRequest, ProviderResponse
from prompts.generation_prompts import (
    build_brainstorm_prompts,
    build_editor_prompts,
    build_generation_prompts,
    build_recommendations_prompt,
    build_summary_prompt,
)
from services.content_store import ContentStore, is_valid_document
from utils.exceptions import (
    GenerationError, NotFoundError, UpstreamProviderError, ValidationError,
)
from utils.json_extraction import (
    BRAINSTORM_DEFAULTS, extract_json, extract_json_strict, is_fallback,
)

logger = logging.getLogger(__name__)


def _usage(response: ProviderResponse) -> Dict[str, int]:
    return response.usage_dict() or {"input_tokens": 0, "output_tokens": 0}


def _require_ok(response: ProviderResponse) -> ProviderResponse:
    if not response.ok:
        raise UpstreamProviderError(
            response.provider,
            response.error_message or "unknown error",
            context={"status_code": response.status_code},
        )
    return response


class AuthoringService:
    """Draft and edit content with the primary, trends and research models"""

    def __init__(
        self,
        store: ContentStore,
        general: GatewayClient,
        trends: GatewayClient,
        research: PerplexityClient,
    ):
        self.store = store
        self.general = general
        self.trends = trends
        self.research_client = research

    async def generate(self, request: GenerateContentRequest, created_by: Optional[str] = None) -> Dict[str, Any]:
        """
        Draft a new book or course. With request.save the draft is stored and
        its id returned in data["id"].
        """
        if not request.content_type or not request.topic:
            raise ValidationError(
                "Missing required fields: contentType and topic",
                context={"missing": [k for k, v in (("contentType", request.content_type),
                                                    ("topic", request.topic)) if not v]},
            )
        content_type = ContentType.parse(request.content_type)
        quiz_mode = QuizMode.from_flag(request.include_quizzes and content_type is ContentType.COURSE)
        system_prompt, user_prompt = build_generation_prompts(request, quiz_mode)

        logger.info(f"Generating {content_type.value} on '{request.topic}' ({request.level}, {quiz_mode.value})")
        response = _require_ok(await self.general.complete(
            CompletionRequest(system=system_prompt, prompt=user_prompt, max_tokens=16000, temperature=0.7)
        ))
        data = extract_json_strict(response.text)

        # Courses come back as "modules"; the store calls them content_structure
        if content_type is ContentType.COURSE and "content_structure" not in data and "modules" in data:
            data["content_structure"] = data.pop("modules")

        if request.save:
            data = await self._save_draft(content_type, request, data, created_by)

        return {"success": True, "data": data, "usage": _usage(response)}

    async def _save_draft(
        self,
        content_type: ContentType,
        request: GenerateContentRequest,
        data: Dict[str, Any],
        created_by: Optional[str],
    ) -> Dict[str, Any]:
        row = {
            **data,
            "topic": request.topic,
            "level": request.level,
            "language": request.language,
            "adult_content": request.adult_content,
            "protected": False,
            "created_by": created_by,
        }
        if not row.get("title"):
            row["title"] = request.title or request.topic
        if not is_valid_document(content_type, row):
            raise GenerationError(
                f"Generated {content_type.value} has no {content_type.items_field}",
                error_code="INCOMPLETE_CONTENT",
            )
        created = await self.store.create(content_type, row)
        return {**data, "id": created.get("id")}

    async def brainstorm(self, request: BrainstormRequest) -> Dict[str, Any]:
        if not request.topic:
            raise ValidationError("Topic is required", context={"missing": ["topic"]})

        system_prompt, user_prompt = build_brainstorm_prompts(
            request.topic,
            content_type=request.content_type,
            level=request.level,
            current_angles=request.current_angles,
            include_real_time_data=request.include_real_time_data,
        )
        response = _require_ok(await self.trends.complete(
            CompletionRequest(system=system_prompt, prompt=user_prompt, temperature=0.9, max_tokens=4000)
        ))
        usage = _usage(response)
        return {
            "success": True,
            "brainstorm": extract_json(response.text, BRAINSTORM_DEFAULTS),
            "usage": {"model": response.model, "tokens": usage["input_tokens"] + usage["output_tokens"]},
        }

    async def research(self, request: ResearchRequest) -> Dict[str, Any]:
        if not request.query:
            raise ValidationError("Query is required", context={"missing": ["query"]})

        response = _require_ok(await self.research_client.research(
            request.query,
            research_depth=request.research_depth,
            include_citations=request.include_citations,
        ))
        return {
            "success": True,
            "content": response.text,
            "citations": response.citations,
            "model": response.model,
            "usage": _usage(response),
        }

    async def edit(self, request: EditContentRequest) -> Dict[str, Any]:
        if not request.content or not request.action:
            raise ValidationError("Content and action required")
        try:
            action = EditorAction(request.action)
        except ValueError:
            raise ValidationError("Invalid action", error_code="INVALID_ACTION", context={"action": request.action})

        system_prompt, user_prompt = build_editor_prompts(
            action, request.content, instructions=request.instructions, content_type=request.content_type
        )
        response = _require_ok(await self.general.complete(
            CompletionRequest(system=system_prompt, prompt=user_prompt, max_tokens=8000, temperature=0.7)
        ))

        if action is EditorAction.SUMMARIZE:
            parsed = extract_json(response.text)
            result = {"summary": response.text} if is_fallback(parsed) else parsed
        else:
            result = {"content": response.text}

        return {"success": True, "result": result, "action": action.value, "usage": _usage(response)}

    async def summarize(self, request: SummarizeContentRequest) -> Dict[str, Any]:
        if not request.content_id or not request.content_type:
            raise ValidationError("Missing required parameters")
        content_type = ContentType.parse(request.content_type)

        document = await self.store.get(content_type, request.content_id)
        if document is None:
            raise NotFoundError(context={"content_id": request.content_id})

        response = _require_ok(await self.general.complete(
            CompletionRequest(
                prompt=build_summary_prompt(content_type, document, request.summary_type),
                max_tokens=2000,
                temperature=0.5,
            )
        ))
        parsed = extract_json(response.text)
        return {"success": True, "summary": {"text": response.text} if is_fallback(parsed) else parsed}

    async def recommendations(self, email: str) -> Dict[str, Any]:
        """Suggest next topics from what the user has created and studied."""
        courses, books, progress = await asyncio.gather(
            self.store.list(ContentType.COURSE, created_by=email),
            self.store.list(ContentType.BOOK, created_by=email),
            self.store.list_user_progress(email),
        )
        completed = [p for p in progress if p.get("progress_percentage") == 100]

        prompt = build_recommendations_prompt(
            courses + books,
            course_count=len(courses),
            book_count=len(books),
            in_progress=len(progress),
            completed=len(completed),
        )
        response = _require_ok(await self.general.complete(
            CompletionRequest(prompt=prompt, max_tokens=4000, temperature=0.8)
        ))
        parsed = extract_json_strict(response.text)

        return {
            "success": True,
            "recommendations": parsed.get("recommendations") or [],
            "insights": parsed.get("learning_path_insights") or "",
            "skill_gaps": parsed.get("skill_gaps") or [],
            "user_stats": {
                "created_courses": len(courses),
                "created_books": len(books),
                "in_progress": len(progress),
                "completed": len(completed),
            },
        }
