"""Heuristic rule engine with adaptive pattern learning.

Query rules rewrite or annotate a query before retrieval; result rules
deduplicate, boost and filter the ranked results. Learning is split into two
steps so each can be driven on its own:

``record()``   Idle -> HistoryAppended (bounded FIFO history)
``recompute()`` HistoryAppended -> PatternsRecomputed (when a threshold is crossed)

``learn()`` runs both and never raises: learning is best-effort.
"""
from __future__ import annotations

import logging
import re
import threading
import time
from collections import Counter, deque
from dataclasses import replace
from typing import Any, Iterable, Mapping, Sequence

from domain.entities import (
    Feedback,
    KnowledgeSnapshot,
    LearningInsights,
    LearningState,
    QueryPattern,
    QueryRewrite,
    RetrievalResult,
    Rule,
    RuleContext,
    RuleOutcome,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 100
FINGERPRINT_LENGTH = 100
PATTERN_BOOST = 0.05
LOW_QUALITY_SOURCES = ("social", "forum", "comment")
LOW_QUALITY_THRESHOLD = 0.6

SHORT_QUERY_RULE = "expand-short-queries"
SHORT_QUERY_MAX_TERMS = 2
SHORT_QUERY_SCORE_CEILING = 0.6
SHORT_QUERY_MIN_ENTRIES = 5
HIGH_RATING = 4
HIGH_RATED_MIN_ENTRIES = 10
PATTERN_MIN_FREQUENCY = 3
MAX_PATTERNS = 10
EXPORTED_HISTORY = 20

_TECHNICAL_RE = re.compile(r"\b(code|api|function|error|bug)\b", re.IGNORECASE)
_TIME_SENSITIVE_RE = re.compile(r"\b(latest|new|recent|current|today)\b", re.IGNORECASE)


def fingerprint(text: str) -> str:
    return text[:FINGERPRINT_LENGTH].lower().strip()


class HeuristicRuleEngine:
    """Priority-ordered rules plus a bounded query history they are learned from."""

    def __init__(self, max_history_size: int = DEFAULT_MAX_HISTORY) -> None:
        self._lock = threading.RLock()
        self._rules: dict[str, Rule] = {}
        self._patterns: list[str] = []
        self._history: deque[QueryPattern] = deque(maxlen=max_history_size)

    @property
    def max_history_size(self) -> int:
        return self._history.maxlen or DEFAULT_MAX_HISTORY

    @property
    def rules(self) -> list[Rule]:
        """Snapshot of the registered rules, highest priority first."""
        with self._lock:
            rules = list(self._rules.values())
        return sorted(rules, key=lambda rule: rule.priority, reverse=True)

    @property
    def patterns(self) -> list[str]:
        with self._lock:
            return list(self._patterns)

    @property
    def history(self) -> list[QueryPattern]:
        with self._lock:
            return list(self._history)

    def add_rule(self, rule: Rule) -> None:
        with self._lock:
            self._rules[rule.name] = rule

    def remove_rule(self, name: str) -> bool:
        with self._lock:
            return self._rules.pop(name, None) is not None

    def has_rule(self, name: str) -> bool:
        with self._lock:
            return name in self._rules

    # Query rules

    def apply_query_rules(self, query: str, context: RuleContext | None = None) -> QueryRewrite:
        ctx = context or RuleContext()
        rewrite = QueryRewrite(original_query=query, modified_query=query)
        for rule in self.rules:
            try:
                if not rule.condition(query, ctx):
                    continue
                outcome = rule.action(rewrite.modified_query, ctx) or RuleOutcome()
            except Exception:
                logger.exception("Heuristic rule %s failed, skipping it", rule.name)
                continue
            if outcome.query:
                rewrite.modified_query = outcome.query
            if outcome.suggestion:
                rewrite.suggestions.append(outcome.suggestion)
            rewrite.applied_rules.append(rule.name)
        if rewrite.applied_rules:
            logger.debug("Query rules applied to %r: %s", query, ", ".join(rewrite.applied_rules))
        return rewrite

    # Result rules

    def apply_result_rules(
        self,
        results: Sequence[RetrievalResult],
        context: RuleContext | None = None,
    ) -> list[RetrievalResult]:
        ctx = context or RuleContext()
        modified = self.remove_duplicates(results)
        modified = self.boost_by_patterns(modified)
        if ctx.critical:
            modified = self.filter_low_quality(modified)
        return modified

    @staticmethod
    def remove_duplicates(results: Iterable[RetrievalResult]) -> list[RetrievalResult]:
        seen: set[str] = set()
        unique: list[RetrievalResult] = []
        for result in results:
            key = fingerprint(result.text)
            if key in seen:
                continue
            seen.add(key)
            unique.append(result)
        return unique

    def boost_by_patterns(self, results: Iterable[RetrievalResult]) -> list[RetrievalResult]:
        patterns = self.patterns
        if not patterns:
            return list(results)
        boosted: list[RetrievalResult] = []
        for result in results:
            text = result.text.lower()
            hits = sum(1 for pattern in patterns if pattern in text)
            if hits:
                result = replace(
                    result,
                    score=min(1.0, (result.score or 0.0) + hits * PATTERN_BOOST),
                    boosted=True,
                    boost_reason=f"Matches {hits} successful pattern(s)",
                )
            boosted.append(result)
        return boosted

    @staticmethod
    def filter_low_quality(
        results: Iterable[RetrievalResult],
        threshold: float = LOW_QUALITY_THRESHOLD,
    ) -> list[RetrievalResult]:
        kept: list[RetrievalResult] = []
        for result in results:
            source = str((result.meta or {}).get("source") or "").lower()
            if any(marker in source for marker in LOW_QUALITY_SOURCES) and (result.score or 0.0) < threshold:
                continue
            kept.append(result)
        return kept

    # Learning

    def learn(
        self,
        query: str,
        results: Sequence[RetrievalResult],
        feedback: Feedback | Mapping[str, Any] | None = None,
    ) -> LearningState:
        try:
            self.record(query, results, feedback)
        except Exception:
            logger.warning("Could not record query %r, skipping learning", query, exc_info=True)
            return LearningState.IDLE
        try:
            return self.recompute()
        except Exception:
            logger.exception("Pattern recompute failed; keeping previous rules and patterns")
            return LearningState.HISTORY_APPENDED

    def record(
        self,
        query: str,
        results: Sequence[RetrievalResult],
        feedback: Feedback | Mapping[str, Any] | None = None,
    ) -> QueryPattern:
        """Append one history entry, evicting the oldest beyond the size limit."""
        if not isinstance(query, str) or not query.strip():
            raise ValueError("query must be a non-empty string")
        if isinstance(feedback, Mapping):
            feedback = Feedback(
                rating=feedback.get("rating", 0),
                has_filters=bool(feedback.get("has_filters", False)),
            )
        feedback = feedback or Feedback()
        rating = float(feedback.rating or 0)
        scores = [float(result.score or 0.0) for result in results]
        pattern = QueryPattern(
            query=query.lower(),
            timestamp=time.time(),
            result_count=len(scores),
            avg_score=sum(scores) / len(scores) if scores else 0.0,
            feedback_rating=rating,
            query_length=len(query.split()),
            has_filters=bool(feedback.has_filters),
        )
        with self._lock:
            self._history.append(pattern)
        return pattern

    def recompute(self) -> LearningState:
        with self._lock:
            history = list(self._history)
            rule_added = self._derive_rules(history)
            patterns = self._derive_patterns(history)
            if patterns is not None:
                self._patterns = patterns
        if rule_added or patterns is not None:
            return LearningState.PATTERNS_RECOMPUTED
        return LearningState.HISTORY_APPENDED

    def _derive_rules(self, history: Sequence[QueryPattern]) -> bool:
        short_and_weak = [
            entry
            for entry in history
            if entry.query_length <= SHORT_QUERY_MAX_TERMS and entry.avg_score < SHORT_QUERY_SCORE_CEILING
        ]
        if len(short_and_weak) <= SHORT_QUERY_MIN_ENTRIES:
            return False
        if SHORT_QUERY_RULE not in self._rules:
            logger.info("Learned rule %s from %d weak short queries", SHORT_QUERY_RULE, len(short_and_weak))
        self._rules[SHORT_QUERY_RULE] = Rule(
            name=SHORT_QUERY_RULE,
            condition=lambda query, _ctx: len(query.split()) <= SHORT_QUERY_MAX_TERMS,
            action=lambda query, _ctx: RuleOutcome(
                query=query,
                suggestion="Consider adding more specific terms to improve results",
            ),
            priority=10,
        )
        return True

    @staticmethod
    def _derive_patterns(history: Sequence[QueryPattern]) -> list[str] | None:
        high_rated = [entry for entry in history if entry.feedback_rating >= HIGH_RATING]
        if len(high_rated) <= HIGH_RATED_MIN_ENTRIES:
            return None
        frequencies: Counter[str] = Counter()
        for entry in high_rated:
            frequencies.update(entry.query.split())
        # most_common keeps first-seen order among equal counts.
        return [term for term, count in frequencies.most_common() if count >= PATTERN_MIN_FREQUENCY][:MAX_PATTERNS]

    # Insights and persistence

    def get_insights(self) -> LearningInsights:
        with self._lock:
            history = list(self._history)
            patterns = list(self._patterns)
            rule_count = len(self._rules)
        if not history:
            return LearningInsights(active_rules=rule_count, successful_patterns=patterns, detected_patterns=len(patterns))
        rated = [entry.feedback_rating for entry in history if entry.feedback_rating > 0]
        return LearningInsights(
            total_queries=len(history),
            avg_query_length=sum(entry.query_length for entry in history) / len(history),
            avg_retrieval_score=sum(entry.avg_score for entry in history) / len(history),
            avg_user_rating=sum(rated) / len(rated) if rated else 0.0,
            detected_patterns=len(patterns),
            active_rules=rule_count,
            successful_patterns=patterns,
        )

    def export_knowledge(self) -> KnowledgeSnapshot:
        with self._lock:
            return KnowledgeSnapshot(
                rules=sorted(self._rules),
                patterns=list(self._patterns),
                history=list(self._history)[-EXPORTED_HISTORY:],
            )

    def import_knowledge(self, knowledge: KnowledgeSnapshot | Mapping[str, Any]) -> None:
        """Restore patterns and history, then re-derive history-based rules."""
        snapshot = knowledge if isinstance(knowledge, KnowledgeSnapshot) else KnowledgeSnapshot.from_dict(knowledge)
        with self._lock:
            self._patterns = list(snapshot.patterns)
            self._history.clear()
            self._history.extend(snapshot.history)
            self._derive_rules(list(self._history))


def default_rules() -> list[Rule]:
    """Built-in query rules registered by the smart retriever."""

    def boost_recent(query: str, context: RuleContext) -> RuleOutcome:
        if context.weights is not None:
            context.weights["recency"] = 0.4
            context.weights["semanticSimilarity"] = 0.35
        return RuleOutcome(query=query, suggestion="Time-sensitive query detected. Prioritizing recent documents.")

    return [
        Rule(
            name="expand-short-query",
            condition=lambda query, _ctx: len(query.split()) == 1,
            action=lambda query, _ctx: RuleOutcome(
                query=query,
                suggestion="Single-word queries may return broad results. Consider adding more context.",
            ),
            priority=5,
        ),
        Rule(
            name="suggest-technical-filters",
            condition=lambda query, _ctx: bool(_TECHNICAL_RE.search(query)),
            action=lambda query, _ctx: RuleOutcome(
                query=query,
                suggestion="Technical query detected. Consider filtering by source:documentation or source:official",
            ),
            priority=3,
        ),
        Rule(
            name="boost-recent-for-news",
            condition=lambda query, _ctx: bool(_TIME_SENSITIVE_RE.search(query)),
            action=boost_recent,
            priority=8,
        ),
    ]


__all__ = ["HeuristicRuleEngine", "default_rules", "fingerprint"]
