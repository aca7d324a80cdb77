"""Dependency wiring for the ContextRank application."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal, Mapping

from application.services.retriever import Retriever, RetrieverConfig
from application.services.smart_retriever import SmartRetriever, SmartRetrieverConfig
from domain.errors import ConfigurationError
from domain.interfaces import Embedder, VectorStore
from infrastructure.embedding.hash_embedder import HashEmbedder
from infrastructure.embedding.ollama_embedder import OllamaEmbedder, OllamaEmbedderConfig
from infrastructure.embedding.registry import EmbedderRegistry
from infrastructure.storage.in_memory_vector_store import InMemoryVectorStore
from infrastructure.storage.sqlite_vector_store import SqliteVectorStore

logger = logging.getLogger(__name__)

EmbedderName = Literal["hash", "sentence_transformers", "ollama"]
StoreName = Literal["memory", "sqlite"]

ENV_PREFIX = "CONTEXTRANK_"


@dataclass(slots=True)
class Container:
    """Simple container bundling concrete infrastructure implementations."""

    embedders: EmbedderRegistry
    embedder: Embedder
    vector_store: VectorStore
    retriever: Retriever
    smart_retriever: SmartRetriever

    def close(self) -> None:
        self.embedders.close()


@dataclass(slots=True)
class ContainerConfig:
    """Configuration for selecting the embedder, the store and retrieval defaults."""

    embedder: EmbedderName = "hash"
    store: StoreName = "memory"
    db_path: str = "contextrank.db"
    dimension: int | None = None
    default_k: int = 3
    enable_learning: bool = True
    max_history_size: int = 100
    weights: dict[str, float] = field(default_factory=dict)
    models_dir: str | None = None
    st_model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "embeddinggemma"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ContainerConfig":
        """Read ``CONTEXTRANK_*`` variables; unset ones keep their defaults."""
        env = os.environ if environ is None else environ
        cfg = cls()
        for variable, (attribute, parse) in _ENV_FIELDS.items():
            raw = env.get(ENV_PREFIX + variable)
            if raw is None or not raw.strip():
                continue
            setattr(cfg, attribute, parse(variable, raw.strip()))
        return cfg


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer", value=value) from exc


def _parse_str(_name: str, value: str) -> str:
    return value


def _parse_bool(_name: str, value: str) -> bool:
    return value.lower() in {"1", "true", "yes", "on"}


def _parse_weights(_name: str, value: str) -> dict[str, float]:
    """Parse ``factor=weight`` pairs separated by commas."""
    weights: dict[str, float] = {}
    for pair in value.split(","):
        if not pair.strip():
            continue
        name, sep, raw = pair.partition("=")
        if not sep:
            raise ConfigurationError(f"Malformed weight '{pair.strip()}', expected factor=value", value=value)
        try:
            weights[name.strip()] = float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Weight for '{name.strip()}' is not a number", value=value) from exc
    return weights


_ENV_FIELDS: dict[str, tuple[str, Callable[[str, str], Any]]] = {
    "EMBEDDER": ("embedder", _parse_str),
    "STORE": ("store", _parse_str),
    "DB_PATH": ("db_path", _parse_str),
    "DIMENSION": ("dimension", _parse_int),
    "DEFAULT_K": ("default_k", _parse_int),
    "ENABLE_LEARNING": ("enable_learning", _parse_bool),
    "MAX_HISTORY": ("max_history_size", _parse_int),
    "WEIGHTS": ("weights", _parse_weights),
    "MODELS_DIR": ("models_dir", _parse_str),
    "ST_MODEL": ("st_model_name", _parse_str),
    "OLLAMA_URL": ("ollama_url", _parse_str),
    "OLLAMA_MODEL": ("ollama_model", _parse_str),
}


def _resolve_model_reference(model_ref: str, cfg: ContainerConfig) -> str:
    """Prefer a pre-downloaded copy of the model under ``models_dir``."""
    if cfg.models_dir:
        candidate = Path(cfg.models_dir) / model_ref
        if candidate.exists():
            return str(candidate)
    return model_ref


def build_embedder_registry(cfg: ContainerConfig) -> EmbedderRegistry:
    def sentence_transformers() -> Embedder:
        from infrastructure.embedding.sentence_transformers_embedder import (
            SentenceTransformersConfig,
            SentenceTransformersEmbedder,
        )

        return SentenceTransformersEmbedder(
            SentenceTransformersConfig(model_name=_resolve_model_reference(cfg.st_model_name, cfg))
        )

    return EmbedderRegistry(
        {
            "hash": lambda: HashEmbedder(cfg.dimension or 64),
            "sentence_transformers": sentence_transformers,
            "ollama": lambda: OllamaEmbedder(
                OllamaEmbedderConfig(
                    model=cfg.ollama_model,
                    base_url=cfg.ollama_url,
                    dimension=cfg.dimension or 768,
                )
            ),
        }
    )


def build_default_container(config: ContainerConfig | None = None) -> Container:
    """Instantiate the default infrastructure stack."""

    cfg = config or ContainerConfig()
    embedders = build_embedder_registry(cfg)
    embedder = embedders.get(cfg.embedder)

    if cfg.store == "memory":
        vector_store: VectorStore = InMemoryVectorStore(embedder, default_dim=cfg.dimension)
    elif cfg.store == "sqlite":
        vector_store = SqliteVectorStore(embedder, db_path=cfg.db_path, default_dim=cfg.dimension)
    else:
        raise ConfigurationError(f"Unknown store '{cfg.store}'", store=cfg.store, expected=["memory", "sqlite"])

    retriever = Retriever(vector_store, RetrieverConfig(k=cfg.default_k))
    smart_retriever = SmartRetriever(
        retriever,
        SmartRetrieverConfig(
            weights=cfg.weights or None,
            enable_learning=cfg.enable_learning,
            max_history_size=cfg.max_history_size,
        ),
    )
    logger.info("Container ready: embedder=%s store=%s", embedder.model_id, cfg.store)
    return Container(
        embedders=embedders,
        embedder=embedder,
        vector_store=vector_store,
        retriever=retriever,
        smart_retriever=smart_retriever,
    )


__all__ = ["Container", "ContainerConfig", "build_default_container", "build_embedder_registry"]
