"""Shared type definitions for practice sessions."""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

InterviewStage = Literal[
    "phone-screening",
    "functional-team",
    "hiring-manager",
    "technical-specialist",
    "executive-final",
]
SessionStage = Literal["setup", "active", "completed"]
Role = Literal["user", "assistant"]
FieldSource = Literal["model", "synthesized"]
RecordSource = Literal["model", "partial", "synthesized"]

INTERVIEW_STAGES = (
    "phone-screening",
    "functional-team",
    "hiring-manager",
    "technical-specialist",
    "executive-final",
)
CRITERIA = ("relevance", "structured", "specific", "honest", "confident", "aligned", "outcomeOriented")
STAR_COMPONENTS = ("situation", "task", "action", "result")
MIN_OVERALL_SCORE = len(CRITERIA)
MAX_OVERALL_SCORE = 5 * len(CRITERIA)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Persona(CamelModel):
    name: str
    role: str
    personality: str
    communication_style: str
    background: str
    objectives: List[str] = Field(min_length=1)


class ConversationMessage(CamelModel):
    id: str
    session_id: str
    role: Role
    content: str
    message_order: int = Field(ge=1)
    timestamp: str


class CriterionFeedback(CamelModel):
    score: int = Field(ge=1, le=5)
    feedback: str = Field(min_length=1)
    suggestions: List[str] = Field(min_length=1)


class StarComponent(CamelModel):
    present: bool
    score: int = Field(ge=1, le=5)
    feedback: str = Field(min_length=1)


class StarAnalysis(CamelModel):
    situation: StarComponent
    task: StarComponent
    action: StarComponent
    result: StarComponent
    overall_star_score: int = Field(ge=1, le=5)


class FeedbackRecord(CamelModel):
    overall_score: int = Field(ge=MIN_OVERALL_SCORE, le=MAX_OVERALL_SCORE)
    criteria_scores: Dict[str, int]
    criteria_feedback: Dict[str, CriterionFeedback]
    star_analysis: StarAnalysis
    feedback: str = Field(min_length=1)
    improvements: List[str] = Field(min_length=1)
    provenance: Dict[str, FieldSource] = Field(default_factory=dict)
    source: RecordSource = "synthesized"


class PracticeSession(CamelModel):
    id: str
    user_id: str
    position: str
    company: str
    industry: Optional[str] = None
    interview_stage: InterviewStage
    job_description_id: Optional[str] = None
    language: str = "English"
    stage: SessionStage = "setup"
    persona: Optional[Persona] = None
    voice: str = "nova"
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: str
    updated_at: str
    duration: Optional[int] = None
    overall_score: Optional[int] = None
    criteria_scores: Optional[Dict[str, int]] = None
    criteria_feedback: Optional[Dict[str, CriterionFeedback]] = None
    star_analysis: Optional[StarAnalysis] = None
    feedback: Optional[str] = None
    improvements: Optional[List[str]] = None
    feedback_provenance: Optional[Dict[str, str]] = None


class JobDescription(CamelModel):
    id: str
    user_id: str
    file_name: str
    extracted_text: str
    mime_type: str = "text/plain"
    file_size: int = 0
    uploaded_at: str
