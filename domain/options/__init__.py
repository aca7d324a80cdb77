"""Explicit per-call option structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from domain.filters import MetadataFilter

ProgressCallback = Callable[[int, int], None]


@dataclass(slots=True)
class IngestOptions:
    """How documents are embedded during ingestion."""

    dim: int | None = None
    batch_size: int = 20
    max_concurrent: int = 5
    pause_seconds: float = 0.01
    on_progress: ProgressCallback | None = None


@dataclass(slots=True)
class SearchOptions:
    """Store-level search options; filters are already normalized."""

    filters: Sequence[MetadataFilter] = ()
    min_score: float | None = None
    dim: int | None = None


@dataclass(slots=True)
class RetrievalOptions:
    """Retriever-level options.

    ``filters`` accepts the ``{key: value}`` shorthand (regex values match by
    pattern, list metadata values match by containment) or explicit filter
    objects; ``filter`` is an arbitrary predicate over the metadata. Both are
    combined with ``min_score`` using AND semantics.
    """

    filters: Mapping[str, Any] | Sequence[MetadataFilter] | None = None
    filter: Callable[[Mapping[str, Any]], bool] | None = None
    min_score: float | None = None
    explain: bool = False
    dim: int | None = None

    @property
    def has_filters(self) -> bool:
        return bool(self.filters) or self.filter is not None


@dataclass(slots=True)
class SmartRetrievalOptions:
    retrieval: RetrievalOptions = field(default_factory=RetrievalOptions)
    weights: Mapping[str, float] | None = None
    context_relevance: float = 0.5
    critical: bool = False


__all__ = [
    "ProgressCallback",
    "IngestOptions",
    "SearchOptions",
    "RetrievalOptions",
    "SmartRetrievalOptions",
]
