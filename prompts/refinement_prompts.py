"""
Prompt templates for multi-iteration content refinement.
Each iteration has its own focus; every prompt asks for the document's own
field names back plus a changes_summary.
"""

import json
from dataclasses import dataclass
from typing import Dict, Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from models.content_models import ContentType, RefinementOptions
from utils.exceptions import ValidationError


STAGE_LABELS = {
    1: "Foundation - Real-time data, fact-checking, grammar fixes",
    2: "Enhancement - Creative injection, depth, consistency",
    3: "Optimization - Originality check, citations, final polish",
}

FOCUS_AREAS = {
    1: "- Grammar, spelling, and basic corrections\n- Structural improvements and flow",
    2: "- Tone consistency and audience adaptation\n- Factual accuracy and depth enhancement",
    3: "- Creative enhancements and memorable elements\n- Final polish and perfection\n"
       "- Estimate how original the final text is",
}


@dataclass(frozen=True)
class RefinementPrompt:
    system_prompt: str
    user_prompt: str


def _content_type(value: Any) -> ContentType:
    try:
        return ContentType.parse(value)
    except ValidationError:
        return ContentType.BOOK


def _iteration_number(value: Any, default: int = 1) -> int:
    """Positive int, or default for anything that isn't one."""
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def stage_label(iteration: int) -> str:
    return STAGE_LABELS[min(_iteration_number(iteration), 3)]



def _options(options: Union[RefinementOptions, Dict[str, Any], None]) -> RefinementOptions:
    if isinstance(options, RefinementOptions):
        return options
    if isinstance(options, dict):
        try:
            return RefinementOptions.model_validate(options)
        except PydanticValidationError:
            return RefinementOptions()
    return RefinementOptions()


def _dump(value: Any) -> str:
    try:
        return json.dumps(value if value is not None else [], indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def _context_block(context: Optional[Dict[str, Any]]) -> str:
    if not context:
        return ""
    parts = []
    for name, insight in context.items():
        if not insight or (isinstance(insight, dict) and "error" in insight):
            continue
        parts.append(f"{name.upper()}:\n{_dump(insight) if not isinstance(insight, str) else insight}")
    if not parts:
        return ""
    return "\n\nSUPPORTING CONTEXT (use where it improves accuracy or relevance):\n" + "\n\n".join(parts)


def build_refinement_prompts(
    document: Optional[Dict[str, Any]],
    content_type: Union[ContentType, str],
    iteration: int,
    total_iterations: int,
    options: Union[RefinementOptions, Dict[str, Any], None] = None,
    context: Optional[Dict[str, Any]] = None,
) -> RefinementPrompt:
    """
    Build the system and user prompts for one refinement iteration.

    Args:
        document: current working copy (missing fields are rendered empty)
        content_type: book or course
        iteration: 1-based iteration number
        total_iterations: N, for the "iteration i of N" framing
        options: goals / audience / tone
        context: auxiliary provider output keyed by kind ("trends", "research")
    """
    document = document if isinstance(document, dict) else {}
    content_type = _content_type(content_type)
    iteration = _iteration_number(iteration)
    total_iterations = max(_iteration_number(total_iterations), iteration)
    opts = _options(options)
    context = context if isinstance(context, dict) else None
    focus = FOCUS_AREAS[min(iteration, 3)]

    goals = [f"- {opts.goals}" if opts.goals else "- Improve overall quality, clarity, and engagement"]
    if opts.audience:
        goals.append(f"- Target audience: {opts.audience}")
    if opts.tone:
        goals.append(f"- Tone: {opts.tone}")

    originality = ""
    if iteration >= 3:
        originality = ',\n    "originality_estimate": "your estimate of originality, e.g. 90%+"'

    system_prompt = f"""You are an expert educational content editor and refinement specialist. You're working on iteration {iteration} of {total_iterations} to perfect this {content_type.value}.

Your goals for this iteration:
{chr(10).join(goals)}

Focus areas:
{focus}

Return a JSON object with the refined content in the exact same structure as the input, plus a "changes_summary" field explaining what you improved. Return ONLY valid JSON, no other text."""

    if content_type is ContentType.BOOK:
        user_prompt = f"""Refine this book:

Title: {document.get("title") or ""}
Subtitle: {document.get("subtitle") or ""}
Level: {document.get("level") or ""}
Topic: {document.get("topic") or ""}

Chapters: {_dump(document.get("chapters"))}{_context_block(context)}

Return JSON with:
{{
    "title": "refined title",
    "subtitle": "refined subtitle",
    "chapters": [refined chapters array, same fields as the input],
    "changes_summary": "explanation of improvements made"{originality}
}}"""
    else:
        user_prompt = f"""Refine this course:

Title: {document.get("title") or ""}
Description: {document.get("description") or ""}
Level: {document.get("level") or ""}
Topic: {document.get("topic") or ""}

Modules: {_dump(document.get("content_structure"))}{_context_block(context)}

Return JSON with:
{{
    "title": "refined title",
    "description": "refined description",
    "content_structure": [refined modules array, same fields as the input],
    "changes_summary": "explanation of improvements made"{originality}
}}"""

    return RefinementPrompt(system_prompt=system_prompt, user_prompt=user_prompt)


def build_trends_prompt(topic: Optional[str], content_type: ContentType) -> str:
    """Real-time context for the foundation iteration"""
    return f"""Analyze this {content_type.value} topic: "{topic or 'general'}"

Provide:
1. Current trends and real-time data related to this topic
2. Recent developments or news (last 6 months)
3. Popular discussions or controversies
4. Relevant statistics or data points
5. Sources for all information (URLs if available)

Return as JSON:
{{
    "trends": ["trend1", "trend2"],
    "recent_developments": ["dev1", "dev2"],
    "statistics": [{{"stat": "description", "source": "url"}}],
    "discussions": "summary",
    "sources": ["url1", "url2"]
}}"""


def build_research_prompt(topic: Optional[str], content_type: ContentType, level: Optional[str] = None) -> str:
    """Fact sources for the foundation iteration"""
    level_line = f" at {level} level" if level else ""
    return f"""Find verified, citable facts for a {content_type.value} on "{topic or 'general'}"{level_line}.

List the most important facts a learner should get right, each with a source.

Return as JSON:
{{
    "facts": [{{"fact": "statement", "source": "url"}}],
    "sources": ["url1", "url2"]
}}"""


def build_creative_prompt(
    topic: Optional[str],
    content_type: ContentType,
    audience: Optional[str] = None,
) -> str:
    """Creative suggestions for the enhancement iteration"""
    audience = audience or "general"
    return f"""Add creative flair to this {content_type.value} on "{topic or 'general'}" for {audience}:

Suggest:
1. 3 memorable metaphors or analogies
2. 2 witty hooks or taglines
3. Real-world examples from current events
4. Engaging storytelling elements

Keep it appropriate for {audience}."""
