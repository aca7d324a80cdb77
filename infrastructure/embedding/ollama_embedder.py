"""Embedder backed by a local Ollama server."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import requests

from domain.errors import EmbeddingError
from domain.interfaces import Embedder

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OllamaEmbedderConfig:
    model: str = "embeddinggemma"
    base_url: str = "http://localhost:11434"
    dimension: int = 768
    timeout: float = 60.0
    headers: dict[str, str] = field(default_factory=dict)


class OllamaEmbedder(Embedder):
    """Call ``/api/embed`` with a list input; one request per batch."""

    def __init__(self, config: OllamaEmbedderConfig | None = None) -> None:
        self._config = config or OllamaEmbedderConfig()

    @property
    def model_id(self) -> str:
        return f"ollama/{self._config.model}"

    @property
    def dimension(self) -> int:
        return self._config.dimension

    def embed_text(self, text: str, dim: int | None = None) -> list[float]:
        return self._request([text], dim)[0]

    def embed_texts(self, texts: Sequence[str], dim: int | None = None) -> list[list[float]]:
        return self._request(list(texts), dim)

    def _request(self, texts: list[str], dim: int | None) -> list[list[float]]:
        payload: dict[str, Any] = {"model": self._config.model, "input": texts}
        if dim:
            payload["dimensions"] = dim
        logger.debug("Requesting %d embeddings from %s", len(texts), self._config.base_url)
        try:
            response = requests.post(
                f"{self._config.base_url.rstrip('/')}/api/embed",
                json=payload,
                headers=self._config.headers or None,
                timeout=self._config.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise EmbeddingError(
                "Failed to fetch embeddings from Ollama",
                model_id=self.model_id,
                original_error=str(exc),
                suggestion="Check that the Ollama server is running and the model is pulled",
            ) from exc
        vectors = self._parse(response.json())
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Ollama returned {len(vectors)} embeddings for {len(texts)} inputs",
                model_id=self.model_id,
            )
        return vectors

    def _parse(self, payload: Any) -> list[list[float]]:
        if isinstance(payload, dict):
            if isinstance(payload.get("embeddings"), list):
                return [self._as_vector(item) for item in payload["embeddings"]]
            if isinstance(payload.get("data"), list):
                return [self._as_vector(item) for item in payload["data"]]
            if isinstance(payload.get("embedding"), list):
                return [self._as_vector(payload["embedding"])]
        raise EmbeddingError(
            "Unrecognized embedding response shape from Ollama",
            model_id=self.model_id,
            payload=str(payload)[:200],
        )

    def _as_vector(self, item: Any) -> list[float]:
        if isinstance(item, dict):
            item = item.get("embedding")
        if not isinstance(item, list) or not all(isinstance(value, (int, float)) for value in item):
            raise EmbeddingError("Malformed embedding vector in Ollama response", model_id=self.model_id)
        return [float(value) for value in item]


__all__ = ["OllamaEmbedder", "OllamaEmbedderConfig"]
