"""
Pydantic models for books, courses and refinement runs.
Documents move through the service as plain dicts in the store's row shape;
these models validate request bodies and describe the shapes prompts ask for.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum

from utils.exceptions import ValidationError


# Enums for type safety and validation
class ContentType(str, Enum):
    BOOK = "book"
    COURSE = "course"

    @classmethod
    def parse(cls, value: Any) -> "ContentType":
        """Accept "book"/"books"/"course"/"courses" (any case); reject anything else."""
        if isinstance(value, cls):
            return value
        if not value or not isinstance(value, str):
            raise ValidationError("Missing required parameters", context={"missing": ["contentType"]})
        normalized = value.strip().lower().rstrip("s")
        try:
            return cls(normalized)
        except ValueError:
            raise ValidationError(
                f"Invalid contentType: {value}. Expected 'book' or 'course'",
                error_code="INVALID_CONTENT_TYPE",
                context={"contentType": value},
            )

    @property
    def table(self) -> str:
        return f"{self.value}s"

    @property
    def items_field(self) -> str:
        """Field holding the chapter/module array."""
        return "chapters" if self is ContentType.BOOK else "content_structure"

    @property
    def blurb_field(self) -> str:
        """Secondary text field refinement may rewrite."""
        return "subtitle" if self is ContentType.BOOK else "description"

    @property
    def refinable_fields(self) -> List[str]:
        return ["title", self.blurb_field, self.items_field]


class ContentLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    PHD = "phd"


class TargetLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class QuizMode(str, Enum):
    """Whether generated course sections carry quiz questions."""
    WITH_QUIZ = "with_quiz"
    WITHOUT_QUIZ = "without_quiz"

    @classmethod
    def from_flag(cls, include_quizzes: Optional[bool]) -> "QuizMode":
        return cls.WITH_QUIZ if include_quizzes else cls.WITHOUT_QUIZ


class EditorAction(str, Enum):
    SUMMARIZE = "summarize"
    IMPROVE = "improve"
    EXPAND = "expand"
    SIMPLIFY = "simplify"
    REWRITE = "rewrite"
    TRANSLATE = "translate"


# Book Models
class Chapter(BaseModel):
    """Book chapter"""
    chapter_number: int
    title: str
    content: str = ""  # Markdown
    key_takeaways: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)


class Book(BaseModel):
    """Full book document"""
    id: str
    title: str
    subtitle: Optional[str] = None
    topic: str
    level: str
    chapters: List[Chapter] = Field(default_factory=list)
    adult_content: bool = False
    protected: bool = False
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None


# Course Models
class QuizQuestion(BaseModel):
    """Multiple choice question attached to a section"""
    question: str
    options: List[str]
    correct_answer: int  # Index of correct option


class Section(BaseModel):
    """Course section"""
    title: str
    content: str = ""  # Markdown
    key_points: List[str] = Field(default_factory=list)
    quiz_questions: Optional[List[QuizQuestion]] = None


class Module(BaseModel):
    """Course module"""
    module_title: str
    sections: List[Section] = Field(default_factory=list)


class Course(BaseModel):
    """Full course document"""
    id: str
    title: str
    description: Optional[str] = None
    topic: str
    level: str
    tier: Optional[str] = None
    content_structure: List[Module] = Field(default_factory=list)
    adult_content: bool = False
    protected: bool = False
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None


# Refinement Models
class RefinementOptions(BaseModel):
    """Caller-supplied refinement preferences. Unknown fields are ignored."""
    model_config = ConfigDict(extra="ignore")

    goals: Optional[str] = None
    audience: Optional[str] = None
    tone: Optional[str] = None


class RefinementRun(BaseModel):
    """One change-log entry; lives only for the duration of a request"""
    iteration: int = Field(..., ge=1)
    stage_label: str
    summary: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    trends: Optional[Dict[str, Any]] = None
    research: Optional[Dict[str, Any]] = None
    originality_estimate: Optional[str] = None
    usage: Optional[Dict[str, int]] = None


class RefinementResult(BaseModel):
    """What the orchestrator hands back to the route"""
    change_log: List[RefinementRun]
    final_document: Dict[str, Any]


# Request Models (camelCase bodies sent by the UI)
class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RefineContentRequest(_CamelRequest):
    """Multi-iteration refinement of a stored book/course"""
    content_id: Optional[str] = Field(None, alias="contentId")
    content_type: Optional[str] = Field(None, alias="contentType")
    refinement_goals: Optional[str] = Field(None, alias="refinementGoals")
    target_audience: Optional[str] = Field(None, alias="targetAudience")
    tone: Optional[str] = None
    iterations: int = 3


class GenerateContentRequest(_CamelRequest):
    """Draft a new book/course from a topic"""
    content_type: Optional[str] = Field(None, alias="contentType")
    topic: Optional[str] = None
    title: Optional[str] = None
    level: str = "beginner"
    unique_twist: Optional[str] = Field(None, alias="uniqueTwist")
    target_length: TargetLength = Field(TargetLength.MEDIUM, alias="targetLength")
    audience: Optional[str] = None
    include_quizzes: bool = Field(False, alias="includeQuizzes")
    language: str = "en-US"
    adult_content: bool = Field(False, alias="adultContent")
    british_humor: bool = Field(False, alias="britishHumor")
    save: bool = False


class BrainstormRequest(_CamelRequest):
    """Creative angles from the trends model"""
    topic: Optional[str] = None
    content_type: str = Field("course", alias="contentType")
    level: str = "beginner"
    current_angles: Optional[str] = Field(None, alias="currentAngles")
    include_real_time_data: bool = Field(True, alias="includeRealTimeData")


class ResearchRequest(_CamelRequest):
    """Cited research from the research model"""
    query: Optional[str] = None
    research_depth: str = Field("standard", alias="researchDepth")
    include_citations: bool = Field(True, alias="includeCitations")


class EditContentRequest(_CamelRequest):
    """Single-shot edit of a text fragment"""
    content: Optional[str] = None
    action: Optional[str] = None
    instructions: Optional[str] = None
    content_type: str = Field("text", alias="contentType")


class SummarizeContentRequest(_CamelRequest):
    content_id: Optional[str] = Field(None, alias="contentId")
    content_type: Optional[str] = Field(None, alias="contentType")
    summary_type: str = Field("brief", alias="summaryType")


class DeleteContentRequest(_CamelRequest):
    content_id: Optional[str] = Field(None, alias="contentId")
    content_type: Optional[str] = Field(None, alias="contentType")


class CleanupRequest(_CamelRequest):
    """Admin cleanup of documents with no chapters/sections"""
    content_type: str = Field("all", alias="contentType")
    dry_run: bool = Field(True, alias="dryRun")
