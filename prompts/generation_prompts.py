"""
Prompt templates for drafting and editing content.
"""

from typing import Dict, Any, List, Optional, Tuple

from models.content_models import (
    ContentType, EditorAction, GenerateContentRequest, QuizMode, TargetLength,
)

LANGUAGE_NAMES = {
    "en-US": "US English",
    "en-GB": "UK English",
}

COURSE_LENGTHS = {
    TargetLength.SHORT: "3-4 modules",
    TargetLength.MEDIUM: "5-6 modules",
    TargetLength.LONG: "8-10 modules",
}

BOOK_LENGTHS = {
    TargetLength.SHORT: "6-8 chapters",
    TargetLength.MEDIUM: "10-12 chapters",
    TargetLength.LONG: "15-20 chapters",
}

# Section shape per quiz mode; chosen up front rather than patched into the schema
SECTION_SCHEMAS = {
    QuizMode.WITHOUT_QUIZ: """{
                    "title": "Section title",
                    "content": "Detailed markdown content (300-500 words)",
                    "key_points": ["point 1", "point 2", "point 3"]
                }""",
    QuizMode.WITH_QUIZ: """{
                    "title": "Section title",
                    "content": "Detailed markdown content (300-500 words)",
                    "key_points": ["point 1", "point 2", "point 3"],
                    "quiz_questions": [{"question": "...", "options": ["A", "B", "C", "D"], "correct_answer": 0}]
                }""",
}


def language_name(language: Optional[str]) -> str:
    return LANGUAGE_NAMES.get(language or "en-US", language or "US English")


def build_generation_prompts(request: GenerateContentRequest, quiz_mode: QuizMode) -> Tuple[str, str]:
    """
    Build (system_prompt, user_prompt) for a new book or course draft.
    Books ignore quiz_mode.
    """
    content_type = ContentType.parse(request.content_type)
    lang = language_name(request.language)

    humor = ""
    if request.british_humor:
        humor = ("\n\nSTYLE: Use British humor - dry wit, dark humor and cheeky references where "
                 "appropriate. Make it irreverent and witty.")
    if request.adult_content:
        rating = ("\n\nCONTENT RATING: This is adult content (18+). You may include mature themes, "
                  "explicit language, and adult humor.")
    else:
        rating = "\n\nCONTENT RATING: Keep content appropriate for general audiences."

    title = request.title or request.topic

    if content_type is ContentType.COURSE:
        system_prompt = (f"You are an expert educational content creator. Create comprehensive, engaging "
                         f"course content in {lang}.{humor}{rating} Return ONLY valid JSON, no other text.")
        user_prompt = f"""Create a {request.level}-level course on "{request.topic}" in {lang}.

Title: {title}
Unique angle: {request.unique_twist or "engaging and practical"}
Audience: {request.audience or "general learners"}
Length: {COURSE_LENGTHS[request.target_length]}

Return JSON:
{{
    "title": "Course title",
    "description": "Course description (100-150 words)",
    "modules": [
        {{
            "module_title": "Module name",
            "sections": [
                {SECTION_SCHEMAS[quiz_mode]}
            ]
        }}
    ]
}}"""
    else:
        system_prompt = (f"You are an expert author. Create compelling book content in {lang}."
                         f"{humor}{rating} Return ONLY valid JSON, no other text.")
        user_prompt = f"""Write a {request.level}-level book on "{request.topic}" in {lang}.

Title: {title}
Perspective: {request.unique_twist or "fresh and engaging"}
Length: {BOOK_LENGTHS[request.target_length]}

Return JSON:
{{
    "title": "Book title",
    "subtitle": "Compelling subtitle",
    "chapters": [
        {{
            "chapter_number": 1,
            "title": "Chapter title",
            "content": "Full chapter in markdown (1000-2000 words)",
            "key_takeaways": ["takeaway 1", "takeaway 2", "takeaway 3"]
        }}
    ]
}}"""

    return system_prompt, user_prompt


BRAINSTORM_SYSTEM_PROMPT = (
    "You are CreativeSpark, a witty AI brainstorming assistant. You specialize in generating unique, "
    "engaging angles for educational content. Be creative, bold, and inject personality while "
    "maintaining educational value."
)


def build_brainstorm_prompts(
    topic: str,
    content_type: str = "course",
    level: str = "beginner",
    current_angles: Optional[str] = None,
    include_real_time_data: bool = True,
) -> Tuple[str, str]:
    angles = f"Current ideas to build upon: {current_angles}\n" if current_angles else ""
    real_time = ("5. **Real-Time Context**: Current trends, news, or cultural references related to this topic\n"
                 if include_real_time_data else "")

    user_prompt = f"""Brainstorm creative angles for a {content_type} on "{topic}" at {level} level.

{angles}
Generate:
1. **5 Unique Angles**: Unconventional approaches, creative metaphors, or unexpected connections
2. **Witty Hooks**: Attention-grabbing opening lines or taglines
3. **Creative Formats**: Innovative ways to present the content (storytelling, gamification, etc.)
4. **Engagement Ideas**: Interactive elements, challenges, or viral-worthy concepts
{real_time}
Be specific, actionable, and inject personality. Make learning unforgettable!

Return as JSON:
{{
    "unique_angles": [{{"angle": "description", "why_it_works": "reason"}}],
    "witty_hooks": ["hook1", "hook2", "hook3"],
    "creative_formats": [{{"format": "name", "description": "how it works"}}],
    "engagement_ideas": [{{"idea": "concept", "implementation": "how to do it"}}],
    "real_time_context": {{"trends": ["trend1", "trend2"], "cultural_references": ["ref1", "ref2"], "current_discussions": "summary"}}
}}"""
    return BRAINSTORM_SYSTEM_PROMPT, user_prompt


# action -> (system prompt, user prompt template, instructions label, default instructions)
EDITOR_PROMPTS: Dict[EditorAction, Tuple[str, str, str, str]] = {
    EditorAction.SUMMARIZE: (
        "You are an expert content summarizer. Create concise, insightful summaries.",
        "Summarize this {content_type}:\n\n{content}\n\nProvide:\n1. Brief summary (2-3 sentences)\n"
        "2. Key points (3-5 bullet points)\n3. Main takeaway\n\n"
        'Return JSON: {{"summary": "...", "key_points": ["..."], "main_takeaway": "..."}}',
        "",
        "",
    ),
    EditorAction.IMPROVE: (
        "You are an expert editor. Improve clarity, flow, and engagement while maintaining the original meaning.",
        "Improve this {content_type}:\n\n{content}\n\n{instructions}\n\nReturn the improved version as plain text.",
        "Focus on",
        "Enhance clarity, engagement, and professionalism.",
    ),
    EditorAction.EXPAND: (
        "You are an expert content writer. Expand content with relevant details, examples, and insights.",
        "Expand this {content_type}:\n\n{content}\n\n{instructions}\n\nReturn the expanded version as markdown.",
        "Guidelines",
        "Add depth, examples, and detailed explanations.",
    ),
    EditorAction.SIMPLIFY: (
        "You are an expert at making complex content accessible. Simplify without losing essential information.",
        "Simplify this {content_type} for easier understanding:\n\n{content}\n\n{instructions}\n\n"
        "Return the simplified version as markdown.",
        "Target audience",
        "Make it clear and accessible.",
    ),
    EditorAction.REWRITE: (
        "You are an expert content rewriter. Transform content while preserving core information.",
        "Rewrite this {content_type}:\n\n{content}\n\n{instructions}\n\nReturn the rewritten version as markdown.",
        "Style",
        "Make it fresh and engaging.",
    ),
    EditorAction.TRANSLATE: (
        "You are an expert translator. Provide accurate, natural translations.",
        "Translate this {content_type}:\n\n{content}\n\n{instructions}\n\nReturn the translated version.",
        "Target language",
        "Target language: Spanish",
    ),
}


def build_editor_prompts(
    action: EditorAction,
    content: str,
    instructions: Optional[str] = None,
    content_type: str = "text",
) -> Tuple[str, str]:
    system_prompt, template, label, default = EDITOR_PROMPTS[action]
    rendered_instructions = f"{label}: {instructions}" if instructions and label else default
    user_prompt = template.format(content_type=content_type, content=content, instructions=rendered_instructions)
    return system_prompt, user_prompt


def build_summary_prompt(content_type: ContentType, document: Dict[str, Any], summary_type: str = "brief") -> str:
    """Summary of a stored book/course, built from its metadata and size"""
    overview = "2-3 sentence overview" if summary_type == "brief" else "Detailed multi-paragraph summary"
    items = document.get(content_type.items_field) or []

    if content_type is ContentType.BOOK:
        return f"""Summarize this book:

Title: {document.get("title") or ""}
Topic: {document.get("topic") or ""}
Level: {document.get("level") or ""}
Chapters: {len(items)}
Summary type: {summary_type}

Provide:
1. {overview}
2. Key learning outcomes (3-5 points)
3. Target audience
4. Estimated reading time

Return as JSON."""

    return f"""Summarize this course:

Title: {document.get("title") or ""}
Topic: {document.get("topic") or ""}
Modules: {len(items)}
Summary type: {summary_type}

Provide:
1. {overview}
2. Learning objectives (3-5 points)
3. Skills gained
4. Who should take this

Return as JSON."""


def build_recommendations_prompt(
    documents: List[Dict[str, Any]],
    course_count: int,
    book_count: int,
    in_progress: int,
    completed: int,
) -> str:
    """Personalized next-topic recommendations from what the user has made and studied"""
    topics = ", ".join(str(d.get("topic")) for d in documents if d.get("topic"))
    levels = ", ".join(str(d.get("level")) for d in documents if d.get("level"))

    return f"""Analyze this user's learning profile and recommend 5 new topics/courses:

Created Content:
- Topics: {topics or "none yet"}
- Levels: {levels or "none yet"}
- Total created: {course_count} courses, {book_count} books

Learning Progress:
- Courses in progress: {in_progress}
- Completed courses: {completed}

Provide recommendations that:
1. Build on existing interests
2. Introduce complementary skills
3. Progress to next difficulty level
4. Include trending/relevant topics
5. Mix theoretical and practical content

Return JSON:
{{
    "recommendations": [
        {{
            "title": "suggested title",
            "topic": "topic area",
            "reason": "why this fits the user",
            "level": "beginner/intermediate/advanced/phd",
            "type": "course or book",
            "trending": true
        }}
    ],
    "learning_path_insights": "personalized insights about their learning journey",
    "skill_gaps": ["gap1", "gap2"]
}}"""
