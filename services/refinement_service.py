"""
Multi-iteration refinement of a stored book or course.

One canonical flow: fetch the document once, run N refinement iterations
against a working copy, then write the refinable fields back once,
conditional on the document not having changed since it was read.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple, Union

from clients.llm_gateway import GatewayClient
from clients.perplexity_client import PerplexityClient
from models.content_models import (
    ContentType, RefinementOptions, RefinementResult, RefinementRun,
)
from models.provider_models import CompletionRequest, ProviderResponse
from prompts.refinement_prompts import (
    build_creative_prompt,
    build_refinement_prompts,
    build_research_prompt,
    build_trends_prompt,
    stage_label,
)
from services.content_store import ContentStore
from utils.exceptions import (
    NotFoundError, PersistenceError, RefineryError, RefinementCancelledError,
    UpstreamProviderError, ValidationError,
)
from utils.json_extraction import (
    RESEARCH_DEFAULTS, TRENDS_DEFAULTS, extract_json, extract_json_strict,
)
from utils.settings import DEFAULT_MAX_ITERATIONS

logger = logging.getLogger(__name__)


class RefinementState(str, Enum):
    IDLE = "idle"
    FETCHING_DOCUMENT = "fetching_document"
    ITERATING = "iterating"
    PERSISTING = "persisting"
    DONE = "done"


class IterationStep(str, Enum):
    BUILDING_PROMPT = "building_prompt"
    INVOKING_PROVIDERS = "invoking_providers"
    EXTRACTING_RESULT = "extracting_result"
    MERGING_DOCUMENT = "merging_document"
    LOGGING_CHANGE = "logging_change"


def merge_refinement(
    document: Dict[str, Any],
    result: Dict[str, Any],
    content_type: ContentType,
) -> Dict[str, Any]:
    """
    Shallow-merge a refinement result into a copy of the document.

    Only the refinable fields of the content type are taken, and only when
    the result carries a usable value: None and blank strings are skipped,
    and the chapter/module array is only replaced by a non-empty list.
    """
    merged = dict(document)
    for field in content_type.refinable_fields:
        value = result.get(field)
        if value is None:
            continue
        if field == content_type.items_field:
            if not isinstance(value, list) or not value:
                continue
        elif not isinstance(value, str) or not value.strip():
            continue
        merged[field] = value
    return merged


class RefinementOrchestrator:
    """
    Runs one refinement request.

    Iteration plan:
    1. trends + research (concurrently, best effort), then the primary model
    2. creative suggestions (best effort), then the primary model
    3+. primary model only

    Auxiliary failures are recorded in the run log; a primary failure aborts
    the whole request before anything is written.
    """

    def __init__(
        self,
        store: ContentStore,
        general: GatewayClient,
        trends: GatewayClient,
        research: PerplexityClient,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        self.store = store
        self.general = general
        self.trends = trends
        self.research = research
        self.max_iterations = max_iterations
        self.state = RefinementState.IDLE
        self.step: Optional[IterationStep] = None

    def _set_state(self, state: RefinementState, step: Optional[IterationStep] = None) -> None:
        self.state = state
        self.step = step
        logger.debug(f"Refinement state -> {state.value}{f'/{step.value}' if step else ''}")

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise RefinementCancelledError()

    def _validate(
        self,
        document_id: Optional[str],
        content_type: Union[ContentType, str, None],
        iterations: Any,
    ) -> Tuple[ContentType, int]:
        missing = []
        if not document_id:
            missing.append("contentId")
        if not content_type:
            missing.append("contentType")
        if missing:
            raise ValidationError("Missing required parameters", context={"missing": missing})

        parsed_type = ContentType.parse(content_type)

        if isinstance(iterations, bool) or not isinstance(iterations, int):
            raise ValidationError("iterations must be an integer", context={"iterations": iterations})
        if iterations < 1 or iterations > self.max_iterations:
            raise ValidationError(
                f"iterations must be between 1 and {self.max_iterations}",
                context={"iterations": iterations},
            )
        return parsed_type, iterations

    async def refine(
        self,
        document_id: Optional[str],
        content_type: Union[ContentType, str, None],
        iterations: int = 3,
        options: Union[RefinementOptions, Dict[str, Any], None] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RefinementResult:
        """
        Refine a stored document through `iterations` passes and save it once.

        Raises:
            ValidationError: missing id/type or iterations out of range
            NotFoundError: no such document (no provider is called)
            UpstreamProviderError / ResponseParseError: primary model failed
            ConflictError: the document changed while it was being refined
            PersistenceError: the final write failed
            RefinementCancelledError: cancel_event was set
        """
        parsed_type, iterations = self._validate(document_id, content_type, iterations)
        if not isinstance(options, RefinementOptions):
            options = RefinementOptions.model_validate(options or {})
        start_time = time.time()

        self._check_cancelled(cancel_event)
        self._set_state(RefinementState.FETCHING_DOCUMENT)
        document = await self.store.get(parsed_type, document_id)
        if document is None:
            raise NotFoundError(context={"content_id": document_id, "content_type": parsed_type.value})
        version_token = document.get("updated_at")

        logger.info(f"Refining {parsed_type.value} {document_id} through {iterations} iteration(s)")

        working = dict(document)
        change_log: List[RefinementRun] = []

        for iteration in range(1, iterations + 1):
            self._check_cancelled(cancel_event)
            working, run = await self._run_iteration(
                working, parsed_type, iteration, iterations, options, cancel_event
            )
            change_log.append(run)
            logger.info(f"Iteration {iteration}/{iterations} complete: {run.summary[:120]}")

        self._check_cancelled(cancel_event)
        self._set_state(RefinementState.PERSISTING)
        fields = {field: working.get(field) for field in parsed_type.refinable_fields}
        try:
            saved = await self.store.update(parsed_type, document_id, fields, expected_updated_at=version_token)
        except RefineryError:
            raise
        except Exception as e:
            logger.error(f"Saving refined {parsed_type.value} {document_id} failed: {e}")
            raise PersistenceError(f"Failed to save refined {parsed_type.value}: {e}")

        if isinstance(saved, dict) and saved.get("updated_at"):
            working["updated_at"] = saved["updated_at"]

        self._set_state(RefinementState.DONE)
        logger.info(
            f"Refined {parsed_type.value} {document_id} in {round(time.time() - start_time, 2)}s"
        )
        return RefinementResult(change_log=change_log, final_document=working)

    async def _run_iteration(
        self,
        working: Dict[str, Any],
        content_type: ContentType,
        iteration: int,
        total: int,
        options: RefinementOptions,
        cancel_event: Optional[asyncio.Event],
    ) -> Tuple[Dict[str, Any], RefinementRun]:
        self._set_state(RefinementState.ITERATING, IterationStep.INVOKING_PROVIDERS)
        trends, research = await self._gather_context(working, content_type, iteration, options, cancel_event)
        self._check_cancelled(cancel_event)

        context = {}
        if trends is not None:
            context["trends"] = trends
        if research is not None:
            context["research"] = research

        self._set_state(RefinementState.ITERATING, IterationStep.BUILDING_PROMPT)
        prompt = build_refinement_prompts(working, content_type, iteration, total, options, context=context)

        self._set_state(RefinementState.ITERATING, IterationStep.INVOKING_PROVIDERS)
        response = await self.general.complete(
            CompletionRequest(system=prompt.system_prompt, prompt=prompt.user_prompt),
            cancel_event=cancel_event,
        )
        self._check_cancelled(cancel_event)
        if not response.ok:
            raise UpstreamProviderError(
                self.general.provider_name,
                response.error_message or "unknown error",
                context={"iteration": iteration, "status_code": response.status_code},
            )

        self._set_state(RefinementState.ITERATING, IterationStep.EXTRACTING_RESULT)
        result = extract_json_strict(response.text)

        self._set_state(RefinementState.ITERATING, IterationStep.MERGING_DOCUMENT)
        working = merge_refinement(working, result, content_type)

        self._set_state(RefinementState.ITERATING, IterationStep.LOGGING_CHANGE)
        originality = result.get("originality_estimate")
        run = RefinementRun(
            iteration=iteration,
            stage_label=stage_label(iteration),
            summary=str(result.get("changes_summary") or ""),
            trends=trends,
            research=research,
            originality_estimate=str(originality) if originality is not None else None,
            usage=response.usage_dict(),
        )
        return working, run

    async def _gather_context(
        self,
        working: Dict[str, Any],
        content_type: ContentType,
        iteration: int,
        options: RefinementOptions,
        cancel_event: Optional[asyncio.Event],
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Auxiliary provider calls for this iteration. Never raises on provider failure."""
        topic = working.get("topic")

        if iteration == 1:
            trends_response, research_response = await asyncio.gather(
                self.trends.complete(
                    CompletionRequest(
                        prompt=build_trends_prompt(topic, content_type),
                        temperature=0.7,
                        max_tokens=2000,
                    ),
                    cancel_event=cancel_event,
                ),
                self.research.research(
                    build_research_prompt(topic, content_type, working.get("level")),
                    cancel_event=cancel_event,
                ),
            )
            return self._trends_insights(trends_response), self._research_insights(research_response)

        if iteration == 2:
            creative_response = await self.trends.complete(
                CompletionRequest(
                    prompt=build_creative_prompt(topic, content_type, options.audience),
                    temperature=0.9,
                    max_tokens=1500,
                ),
                cancel_event=cancel_event,
            )
            if not creative_response.ok:
                return self._aux_error(creative_response), None
            return {"creative_suggestions": creative_response.text}, None

        return None, None

    @staticmethod
    def _aux_error(response: ProviderResponse) -> Dict[str, Any]:
        logger.warning(f"{response.provider} unavailable for this iteration: {response.error_message}")
        return {"error": response.error_message or "unknown error"}

    def _trends_insights(self, response: ProviderResponse) -> Dict[str, Any]:
        if not response.ok:
            return self._aux_error(response)
        return extract_json(response.text, TRENDS_DEFAULTS)

    def _research_insights(self, response: ProviderResponse) -> Dict[str, Any]:
        if not response.ok:
            return self._aux_error(response)
        insights = extract_json(response.text, RESEARCH_DEFAULTS)
        if response.citations:
            insights["citations"] = list(response.citations)
        return insights
