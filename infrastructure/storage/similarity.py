"""Exact cosine-similarity ranking shared by the vector stores."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from domain.entities import Document, RetrievalResult
from domain.errors import EmptyStoreError, NoFilterMatchError
from domain.filters import matches
from domain.options import SearchOptions


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``; 0.0 if either norm is zero."""
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.shape != vec_b.shape:
        return 0.0
    denom = float(np.linalg.norm(vec_a) * np.linalg.norm(vec_b))
    if denom == 0.0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / denom)


def rank_documents(
    query_vector: Sequence[float],
    documents: Sequence[Document],
    k: int,
    options: SearchOptions | None = None,
) -> list[RetrievalResult]:
    """Score every candidate of matching dimension and keep the best ``k``.

    Ordering is stable: documents with equal scores keep their storage order.
    """
    opts = options or SearchOptions()
    query = np.asarray(query_vector, dtype=np.float64)
    dim = int(query.shape[0])

    candidates = [doc for doc in documents if doc.dim == dim]
    if not candidates:
        raise EmptyStoreError(dimension=dim)
    if opts.filters:
        candidates = [doc for doc in candidates if matches(doc.meta, opts.filters)]
        if not candidates:
            raise NoFilterMatchError(filters=[repr(item) for item in opts.filters])

    scores = _cosine_scores(query, np.asarray([doc.vector for doc in candidates], dtype=np.float64))
    scored = [
        RetrievalResult(document=doc, score=float(score))
        for doc, score in zip(candidates, scores)
        if opts.min_score is None or score >= opts.min_score
    ]
    scored.sort(key=lambda result: result.score, reverse=True)
    return scored[:k]


def _cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.zeros_like(dots)
    nonzero = norms != 0.0
    scores[nonzero] = dots[nonzero] / norms[nonzero]
    return scores


__all__ = ["cosine_similarity", "rank_documents"]
