"""Matryoshka-style adapter producing nested lower-dimension embeddings."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from domain.interfaces import Embedder


class MatryoshkaEmbedder(Embedder):
    """Derive ``dim``-sized vectors from a full-dimension base embedder.

    The full vector is split into ``dim`` contiguous blocks whose means form
    the reduced vector, which is then L2-normalized.
    """

    def __init__(self, base: Embedder, full_dim: int | None = None) -> None:
        self._base = base
        self._full_dim = full_dim or base.dimension

    @property
    def model_id(self) -> str:
        return f"mrl-{self._base.model_id}"

    @property
    def dimension(self) -> int:
        return self._full_dim

    def embed_text(self, text: str, dim: int | None = None) -> list[float]:
        return self._reduce(self._base.embed_text(text, self._full_dim), dim)

    def embed_texts(self, texts: Sequence[str], dim: int | None = None) -> list[list[float]]:
        return [self._reduce(vector, dim) for vector in self._base.embed_texts(texts, self._full_dim)]

    def _reduce(self, vector: Sequence[float], dim: int | None) -> list[float]:
        full = np.asarray(vector, dtype=np.float64)
        target = dim or self._full_dim
        if target >= full.shape[0]:
            reduced = full
        else:
            edges = np.floor(np.arange(target + 1) * (full.shape[0] / target)).astype(int)
            reduced = np.array(
                [full[start:end].mean() if end > start else full[min(start, full.shape[0] - 1)]
                 for start, end in zip(edges[:-1], edges[1:])]
            )
        norm = np.linalg.norm(reduced)
        if norm == 0.0:
            return reduced.tolist()
        return (reduced / norm).tolist()


__all__ = ["MatryoshkaEmbedder"]
