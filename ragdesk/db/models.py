# =============================================
# File: ragdesk/db/models.py
# Purpose: Pydantic models for logged interactions and the stats read back from the index
# =============================================
from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

QualityLabel = Literal["good", "fair", "poor"]
QuestionType = Literal[
    "factual", "procedural", "analytical", "comparative",
    "troubleshooting", "conversational", "other",
]
QuestionComplexity = Literal["simple", "moderate", "complex"]

GOOD_THRESHOLD = 0.7
FAIR_THRESHOLD = 0.4


def quality_label_for(score: float) -> QualityLabel:
    if score >= GOOD_THRESHOLD:
        return "good"
    if score >= FAIR_THRESHOLD:
        return "fair"
    return "poor"


class Source(BaseModel):
    filename: str
    relevance_score: float = 0.0


class AnalysisResult(BaseModel):
    """Structured judgment of one question/answer pair."""
    quality_score: float = Field(ge=0.0, le=1.0)
    quality_label: QualityLabel
    needs_improvement: bool
    improvement_reason: Optional[str] = None
    category: str = "General"
    subcategory: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    question_type: QuestionType = "other"
    question_complexity: QuestionComplexity = "moderate"
    has_citations: bool = False
    confidence_expressed: bool = False
    model_used: Optional[str] = None


class InteractionEntry(BaseModel):
    """One logged Q&A exchange. Written once, never edited."""
    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    question: str
    answer: str
    timestamp: datetime
    latency_ms: int = Field(ge=0)
    quality_score: float = Field(ge=0.0, le=1.0)
    quality_label: QualityLabel
    needs_improvement: bool
    improvement_reason: Optional[str] = None
    category: str
    subcategory: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    question_type: QuestionType
    question_complexity: QuestionComplexity
    answer_length: int = Field(ge=0)
    has_citations: bool
    confidence_expressed: bool
    sources: List[Source] = Field(default_factory=list)
    model_used: Optional[str] = None
    flow_id: Optional[str] = None

    def to_document(self) -> Dict:
        return self.model_dump(mode="json")


class CategoryCount(BaseModel):
    name: str
    count: int


class AggregateStats(BaseModel):
    total_queries: int = 0
    avg_latency: float = 0.0
    quality_distribution: Dict[str, int] = Field(
        default_factory=lambda: {"good": 0, "fair": 0, "poor": 0}
    )
    top_categories: List[CategoryCount] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "AggregateStats":
        return cls()
