"""Domain entities for the ContextRank system."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping


@dataclass(slots=True)
class Document:
    """A stored record: text, free-form metadata and its embedding."""

    id: str
    text: str
    meta: dict[str, Any] = field(default_factory=dict)
    vector: list[float] = field(default_factory=list)
    dim: int = 0


@dataclass(slots=True)
class NewDocument:
    """Input accepted by vector stores before embedding."""

    text: str
    id: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "NewDocument":
        return cls(text=data.get("text"), id=data.get("id"), meta=dict(data.get("meta") or {}))


@dataclass(slots=True)
class Explanation:
    """Debug information attached to a result when explain mode is on."""

    query_terms: list[str]
    matched_terms: list[str]
    match_count: int
    match_ratio: float
    cosine_similarity: float
    reason: str


@dataclass(slots=True)
class ScoreComponent:
    score: float
    weight: float
    contribution: float


@dataclass(slots=True)
class RetrievalResult:
    """A document scored against a query, optionally re-ranked."""

    document: Document
    score: float
    explanation: Explanation | None = None
    keyword_match: float | None = None
    weighted_score: float | None = None
    score_breakdown: dict[str, ScoreComponent] = field(default_factory=dict)
    original_score: float | None = None
    boosted: bool = False
    boost_reason: str | None = None

    @property
    def id(self) -> str:
        return self.document.id

    @property
    def text(self) -> str:
        return self.document.text

    @property
    def meta(self) -> dict[str, Any]:
        return self.document.meta

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "meta": dict(self.meta),
            "score": self.score,
        }
        if self.explanation is not None:
            payload["explanation"] = asdict(self.explanation)
        if self.keyword_match is not None:
            payload["keyword_match"] = self.keyword_match
        if self.weighted_score is not None:
            payload["weighted_score"] = self.weighted_score
            payload["original_score"] = self.original_score
            payload["score_breakdown"] = {name: asdict(component) for name, component in self.score_breakdown.items()}
        if self.boosted:
            payload["boosted"] = True
            payload["boost_reason"] = self.boost_reason
        return payload


@dataclass(slots=True)
class StoreStats:
    backend: str
    document_count: int
    dimensions: list[int] = field(default_factory=list)
    location: str | None = None


@dataclass(slots=True)
class Feedback:
    """User feedback attached to a query; rating is on a 0-5 scale."""

    rating: float = 0
    has_filters: bool = False


@dataclass(slots=True, frozen=True)
class QueryPattern:
    """Immutable history entry recorded by the heuristic engine."""

    query: str
    timestamp: float
    result_count: int
    avg_score: float
    feedback_rating: float
    query_length: int
    has_filters: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QueryPattern":
        return cls(
            query=str(data["query"]),
            timestamp=float(data.get("timestamp", 0.0)),
            result_count=int(data.get("result_count", 0)),
            avg_score=float(data.get("avg_score", 0.0)),
            feedback_rating=float(data.get("feedback_rating", 0)),
            query_length=int(data.get("query_length", len(str(data["query"]).split()))),
            has_filters=bool(data.get("has_filters", False)),
        )


@dataclass(slots=True)
class RuleContext:
    """Mutable context shared by the rules of a single retrieval call."""

    weights: dict[str, float] | None = None
    critical: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RuleOutcome:
    query: str | None = None
    suggestion: str | None = None


RuleCondition = Callable[[str, RuleContext], bool]
RuleAction = Callable[[str, RuleContext], RuleOutcome]


@dataclass(slots=True, frozen=True)
class Rule:
    """Condition/action pair applied to queries, higher priority first."""

    name: str
    condition: RuleCondition
    action: RuleAction
    priority: int = 0


@dataclass(slots=True)
class QueryRewrite:
    original_query: str
    modified_query: str
    suggestions: list[str] = field(default_factory=list)
    applied_rules: list[str] = field(default_factory=list)


class LearningState(str, Enum):
    IDLE = "idle"
    HISTORY_APPENDED = "history_appended"
    PATTERNS_RECOMPUTED = "patterns_recomputed"


@dataclass(slots=True)
class LearningInsights:
    total_queries: int = 0
    avg_query_length: float = 0.0
    avg_retrieval_score: float = 0.0
    avg_user_rating: float = 0.0
    detected_patterns: int = 0
    active_rules: int = 0
    successful_patterns: list[str] = field(default_factory=list)


@dataclass(slots=True)
class KnowledgeSnapshot:
    """Serializable view of learned state; storage is the caller's concern."""

    rules: list[str] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    history: list[QueryPattern] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rules": list(self.rules),
            "patterns": list(self.patterns),
            "history": [pattern.to_dict() for pattern in self.history],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KnowledgeSnapshot":
        return cls(
            rules=[str(name) for name in data.get("rules") or []],
            patterns=[str(term) for term in data.get("patterns") or []],
            history=[QueryPattern.from_dict(item) for item in data.get("history") or []],
        )


@dataclass(slots=True)
class RetrievalDecisions:
    applied_rules: list[str]
    suggestions: list[str]
    weights: dict[str, float]
    results_modified: bool


@dataclass(slots=True)
class SmartRetrievalResponse:
    query: str
    original_query: str
    results: list[RetrievalResult]
    decisions: RetrievalDecisions

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "original_query": self.original_query,
            "results": [result.to_dict() for result in self.results],
            "decisions": asdict(self.decisions),
        }


__all__ = [
    "Document",
    "NewDocument",
    "Explanation",
    "ScoreComponent",
    "RetrievalResult",
    "StoreStats",
    "Feedback",
    "QueryPattern",
    "RuleContext",
    "RuleOutcome",
    "RuleCondition",
    "RuleAction",
    "Rule",
    "QueryRewrite",
    "LearningState",
    "LearningInsights",
    "KnowledgeSnapshot",
    "RetrievalDecisions",
    "SmartRetrievalResponse",
]
