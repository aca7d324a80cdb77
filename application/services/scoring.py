"""Weighted multi-factor scoring for retrieved documents.

Each candidate gets five normalized factor scores which are combined linearly:

* ``semanticSimilarity`` - the raw cosine score from the vector store;
* ``keywordMatch`` - share of query terms found in the text (computed upstream);
* ``recency`` - ``max(0.1, exp(-age_days / 180))`` from ``meta["date"]``,
  0.5 when the date is missing or unparsable;
* ``sourceQuality`` - first case-insensitive substring hit in
  :data:`SOURCE_QUALITY` for ``meta["source"]``, 0.5 otherwise;
* ``contextRelevance`` - supplied by the caller.

Weights always sum to 1.0; any update is clamped to ``[0, 1]`` and
re-normalized.
"""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Mapping

from domain.entities import RetrievalResult, ScoreComponent
from domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

FACTORS = ("semanticSimilarity", "keywordMatch", "recency", "sourceQuality", "contextRelevance")

DEFAULT_WEIGHTS: dict[str, float] = {
    "semanticSimilarity": 0.5,
    "keywordMatch": 0.2,
    "recency": 0.15,
    "sourceQuality": 0.1,
    "contextRelevance": 0.05,
}

SOURCE_QUALITY: tuple[tuple[str, float], ...] = (
    ("official", 1.0),
    ("documentation", 0.95),
    ("research", 0.9),
    ("tutorial", 0.75),
    ("blog", 0.7),
    ("forum", 0.6),
    ("social", 0.5),
)

NEUTRAL_SCORE = 0.5
RECENCY_HALF_LIFE_DAYS = 180.0
RECENCY_FLOOR = 0.1
WEIGHT_TOLERANCE = 1e-9


def normalize_weights(
    weights: Mapping[str, float],
    base: Mapping[str, float] | None = None,
) -> dict[str, float]:
    """Merge ``weights`` over ``base`` (defaults), clamp and scale to sum 1.0."""
    merged = dict(DEFAULT_WEIGHTS if base is None else base)
    for name, value in weights.items():
        if name not in FACTORS:
            raise ConfigurationError(f"Unknown scoring factor '{name}'", factor=name, expected=list(FACTORS))
        merged[name] = _clamp(name, float(value))
    total = sum(merged.values())
    if total <= 0.0:
        raise ConfigurationError("Scoring weights must not all be zero", weights=merged)
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        merged = {name: value / total for name, value in merged.items()}
    return merged


def _clamp(name: str, value: float) -> float:
    if 0.0 <= value <= 1.0:
        return value
    clamped = min(1.0, max(0.0, value))
    logger.warning("Weight %s=%s is outside [0, 1], clamped to %s", name, value, clamped)
    return clamped


def parse_date(value: Any) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, date):
            parsed = datetime(value.year, value.month, value.day)
        elif isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        elif isinstance(value, str):
            text = value.strip()
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class WeightedScoringEngine:
    """Scores documents with a configurable, always-normalized weight set."""

    def __init__(self, weights: Mapping[str, float] | None = None) -> None:
        self._lock = threading.Lock()
        self._weights = normalize_weights(weights or {})

    @property
    def weights(self) -> dict[str, float]:
        return self.get_weights()

    def get_weights(self) -> dict[str, float]:
        with self._lock:
            return dict(self._weights)

    def set_weights(self, weights: Mapping[str, float]) -> dict[str, float]:
        """Merge ``weights`` into the current set and re-normalize."""
        with self._lock:
            self._weights = normalize_weights(weights, base=self._weights)
            return dict(self._weights)

    def preview_weights(self, weights: Mapping[str, float]) -> dict[str, float]:
        """Weights ``set_weights`` would produce, without applying them."""
        return normalize_weights(weights, base=self.get_weights())

    def adjust_weight(self, factor: str, delta: float) -> dict[str, float]:
        if factor not in FACTORS:
            raise ConfigurationError(f"Unknown scoring factor '{factor}'", factor=factor, expected=list(FACTORS))
        with self._lock:
            current = self._weights[factor]
            adjusted = min(1.0, max(0.0, current + delta))
            self._weights = normalize_weights({factor: adjusted}, base=self._weights)
            return dict(self._weights)

    @staticmethod
    def recency(value: Any, now: datetime | None = None) -> float:
        published = parse_date(value)
        if published is None:
            return NEUTRAL_SCORE
        reference = now or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        age_days = (reference - published).total_seconds() / 86400.0
        return min(1.0, max(RECENCY_FLOOR, math.exp(-age_days / RECENCY_HALF_LIFE_DAYS)))

    @staticmethod
    def source_quality(label: Any) -> float:
        if not label:
            return NEUTRAL_SCORE
        lowered = str(label).lower()
        for source_type, quality in SOURCE_QUALITY:
            if source_type in lowered:
                return quality
        return NEUTRAL_SCORE

    def score_document(
        self,
        result: RetrievalResult,
        *,
        keyword_match: float = 0.0,
        context_relevance: float = 0.0,
        weights: Mapping[str, float] | None = None,
        now: datetime | None = None,
    ) -> RetrievalResult:
        """Return a copy of ``result`` carrying ``weighted_score`` and its breakdown.

        ``weights`` overrides the engine weights for this call only.
        """
        active = self.get_weights() if weights is None else self.preview_weights(weights)
        meta = result.meta or {}
        factor_scores = {
            "semanticSimilarity": result.score or 0.0,
            "keywordMatch": keyword_match or 0.0,
            "recency": self.recency(meta.get("date"), now),
            "sourceQuality": self.source_quality(meta.get("source")),
            "contextRelevance": context_relevance or 0.0,
        }
        breakdown: dict[str, ScoreComponent] = {}
        total = 0.0
        for name in FACTORS:
            contribution = factor_scores[name] * active[name]
            total += contribution
            breakdown[name] = ScoreComponent(score=factor_scores[name], weight=active[name], contribution=contribution)
        return replace(
            result,
            keyword_match=keyword_match,
            weighted_score=total,
            score_breakdown=breakdown,
            original_score=result.score,
        )


__all__ = [
    "FACTORS",
    "DEFAULT_WEIGHTS",
    "SOURCE_QUALITY",
    "WeightedScoringEngine",
    "normalize_weights",
    "parse_date",
]
