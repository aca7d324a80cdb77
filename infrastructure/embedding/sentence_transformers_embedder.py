"""Эмбеддеры на базе sentence-transformers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import logging

import numpy as np
from sentence_transformers import SentenceTransformer

from domain.interfaces import Embedder


@dataclass(slots=True)
class SentenceTransformersConfig:
    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    device: str = "cpu"
    normalize_embeddings: bool = True
    batch_size: int = 16
    prefix: str | None = None


logger = logging.getLogger(__name__)


class SentenceTransformersEmbedder(Embedder):
    """Эмбеддер на базе библиотеки sentence-transformers.

    Запрошенная размерность ``dim`` получается усечением вектора
    с последующей нормализацией (для моделей, обученных по схеме Matryoshka).
    """

    def __init__(self, config: SentenceTransformersConfig | None = None) -> None:
        self._config = config or SentenceTransformersConfig()
        logger.info("Загрузка модели sentence-transformers: %s", self._config.model_name)
        self._model = SentenceTransformer(self._config.model_name, device=self._config.device)
        self._dimension = int(self._model.get_sentence_embedding_dimension())

    @property
    def model_id(self) -> str:
        return self._config.model_name

    @property
    def dimension(self) -> int:
        return self._dimension

    def _apply_prefix(self, text: str) -> str:
        if self._config.prefix:
            return f"{self._config.prefix}{text}"
        return text

    def _encode(self, texts: Sequence[str], dim: int | None) -> np.ndarray:
        embeddings = self._model.encode(
            [self._apply_prefix(text) for text in texts],
            batch_size=self._config.batch_size,
            normalize_embeddings=self._config.normalize_embeddings,
            show_progress_bar=False,
            convert_to_numpy=True,
        )
        if dim and dim < embeddings.shape[1]:
            embeddings = embeddings[:, :dim]
            norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
            norms[norms == 0] = 1.0
            embeddings = embeddings / norms
        return embeddings

    def embed_text(self, text: str, dim: int | None = None) -> list[float]:
        logger.debug("Кодирование запроса моделью %s", self._config.model_name)
        return self._encode([text], dim)[0].tolist()

    def embed_texts(self, texts: Sequence[str], dim: int | None = None) -> list[list[float]]:
        logger.debug("Кодирование %d документов моделью %s", len(texts), self._config.model_name)
        return self._encode(texts, dim).tolist()


__all__ = ["SentenceTransformersEmbedder", "SentenceTransformersConfig"]
