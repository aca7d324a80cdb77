"""Document validation and throttled batch embedding for the stores."""
from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Mapping, Sequence

from domain.entities import NewDocument
from domain.errors import ConfigurationError, EmbeddingError, InvalidDocumentError
from domain.interfaces import Embedder
from domain.options import IngestOptions

logger = logging.getLogger(__name__)


def prepare_documents(documents: Sequence[NewDocument | Mapping]) -> list[NewDocument]:
    """Validate every document up front and assign missing ids."""
    if isinstance(documents, (str, bytes, Mapping)):
        raise InvalidDocumentError("documents must be a sequence")
    prepared: list[NewDocument] = []
    for position, item in enumerate(documents):
        document = NewDocument.from_mapping(item) if isinstance(item, Mapping) else item
        if not isinstance(document, NewDocument):
            raise InvalidDocumentError(f"unsupported document type {type(item).__name__}", position=position)
        if not isinstance(document.text, str) or not document.text.strip():
            raise InvalidDocumentError("document must have a non-empty text field", position=position, id=document.id)
        if not document.id:
            document = replace(document, id=new_document_id())
        prepared.append(document)
    return prepared


def new_document_id() -> str:
    return f"doc_{uuid.uuid4().hex}"


def validate_options(options: IngestOptions) -> None:
    if options.batch_size < 1:
        raise ConfigurationError("batch_size must be positive", batch_size=options.batch_size)
    if options.max_concurrent < 1:
        raise ConfigurationError("max_concurrent must be positive", max_concurrent=options.max_concurrent)


def embed_one(embedder: Embedder, text: str, dim: int | None) -> list[float]:
    try:
        return [float(value) for value in embedder.embed_text(text, dim)]
    except EmbeddingError:
        raise
    except Exception as exc:
        raise EmbeddingError(f"Embedding request failed: {exc}", model_id=_model_id(embedder)) from exc


def embed_in_batches(
    embedder: Embedder,
    texts: Sequence[str],
    dim: int | None,
    options: IngestOptions,
) -> list[list[float]]:
    """Embed ``texts`` in ``batch_size`` chunks with bounded concurrency."""
    validate_options(options)
    total = len(texts)
    vectors: list[list[float]] = []
    for start in range(0, total, options.batch_size):
        batch = list(texts[start : start + options.batch_size])
        vectors.extend(_embed_batch(embedder, batch, dim, options.max_concurrent))
        if options.on_progress is not None:
            options.on_progress(len(vectors), total)
        if start + options.batch_size < total and options.pause_seconds > 0:
            time.sleep(options.pause_seconds)
    return vectors


def _embed_batch(embedder: Embedder, batch: list[str], dim: int | None, max_concurrent: int) -> list[list[float]]:
    try:
        vectors = embedder.embed_texts(batch, dim)
    except NotImplementedError:
        logger.debug("Embedder %s has no batch mode, embedding %d texts individually", _model_id(embedder), len(batch))
    except Exception as exc:
        logger.warning("Batch embedding of %d texts failed, falling back to per-item calls: %s", len(batch), exc)
    else:
        try:
            return _as_batch_vectors(vectors, len(batch))
        except (TypeError, ValueError) as exc:
            logger.warning("Malformed batch embedding answer, falling back to per-item calls: %s", exc)
    return _embed_individually(embedder, batch, dim, max_concurrent)


def _as_batch_vectors(vectors: Sequence[Sequence[float]], expected: int) -> list[list[float]]:
    if vectors is None or isinstance(vectors, (str, bytes)):
        raise TypeError(f"expected a sequence of vectors, got {type(vectors).__name__}")
    converted = [[float(value) for value in vector] for vector in vectors]
    if len(converted) != expected:
        raise ValueError(f"got {len(converted)} vectors for {expected} texts")
    return converted


def _embed_individually(
    embedder: Embedder, texts: list[str], dim: int | None, max_concurrent: int
) -> list[list[float]]:
    with ThreadPoolExecutor(max_workers=max_concurrent, thread_name_prefix="embed") as pool:
        futures = [pool.submit(embed_one, embedder, text, dim) for text in texts]
        return [future.result() for future in futures]


def _model_id(embedder: Embedder) -> str:
    try:
        return embedder.model_id
    except Exception:  # pragma: no cover - model_id is informational only
        return type(embedder).__name__


__all__ = ["prepare_documents", "new_document_id", "embed_one", "embed_in_batches", "validate_options"]
