"""Embedder that averages hashed word vectors (GloVe-like toy model)."""
from __future__ import annotations

import hashlib
import math
import re
from collections import Counter
from typing import Sequence

from domain.interfaces import Embedder

_WORD_RE = re.compile(r"\w+", re.UNICODE)


class HashEmbedder(Embedder):
    """Produces deterministic vectors by hashing individual words.

    Texts sharing words get similar vectors, which is enough for demos and
    tests without downloading a model. Any requested ``dim`` is honoured.
    """

    def __init__(self, dimension: int = 64) -> None:
        self._dimension = dimension

    @property
    def model_id(self) -> str:
        return f"hash-words-{self._dimension}"

    @property
    def dimension(self) -> int:
        return self._dimension

    def _word_vector(self, word: str, dim: int) -> list[float]:
        raw = bytearray()
        block = 0
        while len(raw) < dim:
            raw.extend(hashlib.md5(f"{word}:{block}".encode("utf-8")).digest())
            block += 1
        # Centre around zero so unrelated words are close to orthogonal.
        return [raw[i] / 127.5 - 1.0 for i in range(dim)]

    def _combine(self, text: str, dim: int) -> list[float]:
        counts = Counter(word.lower() for word in _WORD_RE.findall(text))
        vector = [0.0] * dim
        if not counts:
            return vector
        total = sum(counts.values())
        for word, count in counts.items():
            for idx, value in enumerate(self._word_vector(word, dim)):
                vector[idx] += value * count / total
        norm = math.sqrt(sum(value * value for value in vector)) or 1.0
        return [value / norm for value in vector]

    def embed_text(self, text: str, dim: int | None = None) -> list[float]:
        return self._combine(text, dim or self._dimension)

    def embed_texts(self, texts: Sequence[str], dim: int | None = None) -> list[list[float]]:
        return [self._combine(text, dim or self._dimension) for text in texts]


__all__ = ["HashEmbedder"]
