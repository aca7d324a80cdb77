"""Base retriever delegating to a vector store."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Sequence

from application.services.keywords import matched_terms, query_terms
from domain.entities import Explanation, RetrievalResult
from domain.errors import ConfigurationError, ContextRankError, RetrievalError
from domain.filters import MetadataFilter, build_filters
from domain.interfaces import BaseRetriever, VectorStore
from domain.options import RetrievalOptions, SearchOptions

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RetrieverConfig:
    k: int = 3
    filters: Sequence[MetadataFilter] = field(default_factory=list)
    debug: bool = False


class Retriever(BaseRetriever):
    """Similarity search with metadata filters, score floor and explanations."""

    def __init__(self, vector_store: VectorStore, config: RetrieverConfig | None = None) -> None:
        if vector_store is None:
            raise ConfigurationError("Vector store is required")
        self._store = vector_store
        base = config or RetrieverConfig()
        self._config = replace(base, filters=build_filters(base.filters))

    @property
    def config(self) -> RetrieverConfig:
        return self._config

    def configure(
        self,
        *,
        k: int | None = None,
        filters: Mapping[str, Any] | Sequence[MetadataFilter] | None = None,
        debug: bool | None = None,
    ) -> None:
        if k is not None:
            if k < 1:
                raise ConfigurationError("k must be positive", k=k)
            self._config.k = k
        if filters is not None:
            self._config.filters = build_filters(filters)
        if debug is not None:
            self._config.debug = debug

    def get_relevant(
        self,
        query: str,
        top_k: int | None = None,
        options: RetrievalOptions | None = None,
    ) -> list[RetrievalResult]:
        opts = options or RetrievalOptions()
        limit = top_k or self._config.k
        search_options = SearchOptions(
            filters=[*self._config.filters, *build_filters(opts.filters, opts.filter)],
            min_score=opts.min_score,
            dim=opts.dim,
        )
        level = logging.INFO if self._config.debug else logging.DEBUG
        logger.log(level, "Searching for %r (k=%d, filters=%d)", query, limit, len(search_options.filters))
        try:
            results = self._store.similarity_search(query, limit, search_options)
        except ContextRankError:
            raise
        except Exception as exc:
            raise RetrievalError(f"Retrieval failed: {exc}", query=query) from exc
        logger.log(level, "Found %d documents for %r", len(results), query)

        if opts.explain:
            for result in results:
                result.explanation = explain(query, result)
        return results


def explain(query: str, result: RetrievalResult) -> Explanation:
    terms = query_terms(query)
    matched = matched_terms(terms, result.text)
    return Explanation(
        query_terms=terms,
        matched_terms=matched,
        match_count=len(matched),
        match_ratio=len(matched) / len(terms) if terms else 0.0,
        cosine_similarity=result.score,
        reason=f"Matched query with similarity score of {result.score * 100:.1f}%",
    )


__all__ = ["Retriever", "RetrieverConfig", "explain"]
