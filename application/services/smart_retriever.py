"""Retriever that re-ranks base results with weighted scoring and heuristics."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping, Sequence

from application.services.heuristics import HeuristicRuleEngine, default_rules
from application.services.keywords import keyword_match_ratio
from application.services.scoring import WeightedScoringEngine
from domain.entities import (
    Feedback,
    KnowledgeSnapshot,
    RetrievalDecisions,
    RetrievalResult,
    RuleContext,
    SmartRetrievalResponse,
)
from domain.errors import ConfigurationError
from domain.interfaces import BaseRetriever
from domain.options import SmartRetrievalOptions

logger = logging.getLogger(__name__)

NEWS_RULE = "boost-recent-for-news"


@dataclass(slots=True)
class SmartRetrieverConfig:
    weights: Mapping[str, float] | None = None
    enable_learning: bool = True
    max_history_size: int = 100
    overfetch_factor: int = 2
    register_default_rules: bool = True


class SmartRetriever:
    """Over-fetches from a base retriever, re-scores, applies rules and truncates."""

    def __init__(
        self,
        retriever: BaseRetriever,
        config: SmartRetrieverConfig | None = None,
        *,
        scoring_engine: WeightedScoringEngine | None = None,
        heuristic_engine: HeuristicRuleEngine | None = None,
    ) -> None:
        if retriever is None:
            raise ConfigurationError("Base retriever is required")
        self._config = config or SmartRetrieverConfig()
        if self._config.overfetch_factor < 1:
            raise ConfigurationError("overfetch_factor must be positive", overfetch_factor=self._config.overfetch_factor)
        self._retriever = retriever
        self._scoring = scoring_engine or WeightedScoringEngine(self._config.weights)
        self._heuristics = heuristic_engine or HeuristicRuleEngine(self._config.max_history_size)
        if self._config.register_default_rules:
            for rule in default_rules():
                self._heuristics.add_rule(rule)

    @property
    def retriever(self) -> BaseRetriever:
        return self._retriever

    @property
    def scoring_engine(self) -> WeightedScoringEngine:
        return self._scoring

    @property
    def heuristic_engine(self) -> HeuristicRuleEngine:
        return self._heuristics

    @property
    def enable_learning(self) -> bool:
        return self._config.enable_learning

    def get_relevant(
        self,
        query: str,
        top_k: int = 3,
        options: SmartRetrievalOptions | None = None,
    ) -> SmartRetrievalResponse:
        if top_k < 1:
            raise ConfigurationError("top_k must be positive", top_k=top_k)
        opts = options or SmartRetrievalOptions()
        context = RuleContext(
            weights=dict(opts.weights) if opts.weights is not None else None,
            critical=opts.critical,
        )

        rewrite = self._heuristics.apply_query_rules(query, context)
        effective_query = rewrite.modified_query

        candidates = self._retriever.get_relevant(
            effective_query,
            top_k * self._config.overfetch_factor,
            replace(opts.retrieval, explain=True),
        )

        # Rule-adjusted override becomes the engine's weights for time-sensitive queries.
        if context.weights is not None and NEWS_RULE in rewrite.applied_rules:
            self._scoring.set_weights(context.weights)
            call_weights = None
        else:
            call_weights = context.weights
        used_weights = self._scoring.get_weights() if call_weights is None else self._scoring.preview_weights(call_weights)

        scored = [
            self._scoring.score_document(
                candidate,
                keyword_match=keyword_match_ratio(effective_query, candidate.text),
                context_relevance=opts.context_relevance,
                weights=used_weights,
            )
            for candidate in candidates
        ]
        scored.sort(key=lambda result: result.weighted_score or 0.0, reverse=True)

        results = self._heuristics.apply_result_rules(scored, context)[:top_k]
        logger.debug(
            "Smart retrieval for %r: %d candidates, %d returned, rules=%s",
            query,
            len(candidates),
            len(results),
            rewrite.applied_rules,
        )
        return SmartRetrievalResponse(
            query=effective_query,
            original_query=query,
            results=results,
            decisions=RetrievalDecisions(
                applied_rules=list(rewrite.applied_rules),
                suggestions=list(rewrite.suggestions),
                weights=dict(used_weights),
                results_modified=any(result.boosted for result in results),
            ),
        )

    def provide_feedback(
        self,
        query: str,
        results: Sequence[RetrievalResult],
        feedback: Feedback | Mapping[str, Any] | None = None,
        options: SmartRetrievalOptions | None = None,
    ) -> None:
        """Feed a finished query to the learner; filtered calls are recorded as such."""
        if not self._config.enable_learning:
            return
        if options is not None and options.retrieval.has_filters:
            if isinstance(feedback, Mapping):
                feedback = {**feedback, "has_filters": True}
            else:
                feedback = replace(feedback or Feedback(), has_filters=True)
        self._heuristics.learn(query, results, feedback)

    def get_insights(self) -> dict[str, Any]:
        return {
            "heuristics": self._heuristics.get_insights(),
            "weights": self._scoring.get_weights(),
        }

    def export_knowledge(self) -> KnowledgeSnapshot:
        return self._heuristics.export_knowledge()

    def import_knowledge(self, knowledge: KnowledgeSnapshot | Mapping[str, Any]) -> None:
        self._heuristics.import_knowledge(knowledge)


def create_smart_retriever(retriever: BaseRetriever, **kwargs: Any) -> SmartRetriever:
    """Build a :class:`SmartRetriever` from keyword arguments of :class:`SmartRetrieverConfig`."""
    return SmartRetriever(retriever, SmartRetrieverConfig(**kwargs))


__all__ = ["SmartRetriever", "SmartRetrieverConfig", "create_smart_retriever"]
