"""
FastAPI routes for content authoring and refinement.
All endpoints take JSON bodies in the UI's camelCase and require a signed-in user.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from models.content_models import (
    BrainstormRequest, ContentType, DeleteContentRequest, EditContentRequest,
    GenerateContentRequest, RefineContentRequest, RefinementOptions, ResearchRequest,
    SummarizeContentRequest,
)
from services.auth import CurrentUser, get_current_user
from services.authoring_service import AuthoringService
from services.refinement_service import RefinementOrchestrator
from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["content"])

DISCONNECT_POLL_SECONDS = 1.0


def get_authoring_service(request: Request) -> AuthoringService:
    return request.app.state.authoring_service


def get_orchestrator(request: Request) -> RefinementOrchestrator:
    """A fresh orchestrator per request; it carries the run's state."""
    state = request.app.state
    return RefinementOrchestrator(
        state.store,
        state.claude,
        state.grok,
        state.perplexity,
        max_iterations=state.settings.max_iterations,
    )


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling refinement")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post("/refineContent")
async def refine_content(
    body: RefineContentRequest,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    orchestrator: RefinementOrchestrator = Depends(get_orchestrator),
):
    """
    Refine a stored book/course through several AI passes and save the result.

    **Blocking operation** - one primary model call per iteration.
    The document is written once at the end; 409 if it changed meanwhile.
    """
    options = RefinementOptions(goals=body.refinement_goals, audience=body.target_audience, tone=body.tone)
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        result = await orchestrator.refine(
            body.content_id,
            body.content_type,
            iterations=body.iterations,
            options=options,
            cancel_event=cancel_event,
        )
    finally:
        watcher.cancel()

    logger.info(f"{user.email} refined {body.content_type} {body.content_id}")
    return {
        "success": True,
        "message": f"Content refined through {len(result.change_log)} iterations",
        "changes_log": [run.model_dump(mode="json") for run in result.change_log],
        "refined_content": result.final_document,
    }


@router.post("/generateContent")
async def generate_content(
    body: GenerateContentRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AuthoringService = Depends(get_authoring_service),
):
    """Draft a new book/course. Set save=true to store it under the caller."""
    return await service.generate(body, created_by=user.email)


@router.post("/brainstorm")
async def brainstorm(
    body: BrainstormRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AuthoringService = Depends(get_authoring_service),
):
    return await service.brainstorm(body)


@router.post("/research")
async def research(
    body: ResearchRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AuthoringService = Depends(get_authoring_service),
):
    return await service.research(body)


@router.post("/editContent")
async def edit_content(
    body: EditContentRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AuthoringService = Depends(get_authoring_service),
):
    return await service.edit(body)


@router.post("/summarizeContent")
async def summarize_content(
    body: SummarizeContentRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AuthoringService = Depends(get_authoring_service),
):
    return await service.summarize(body)


@router.post("/recommendations")
async def recommendations(
    user: CurrentUser = Depends(get_current_user),
    service: AuthoringService = Depends(get_authoring_service),
):
    return await service.recommendations(user.email)


@router.post("/deleteContent")
async def delete_content(
    body: DeleteContentRequest,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
):
    """
    Delete a book/course. Only its creator or an admin may delete it, and
    protected content is refused (403) for every role.
    """
    if not body.content_id or not body.content_type:
        raise ValidationError("Missing required parameters")
    content_type = ContentType.parse(body.content_type)
    owner_email = None if user.is_admin else user.email
    await request.app.state.store.delete(content_type, body.content_id, owner_email=owner_email)
    logger.info(f"{user.email} deleted {content_type.value} {body.content_id}")
    return {"success": True}
