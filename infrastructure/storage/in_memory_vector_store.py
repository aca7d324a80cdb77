"""Хранилище документов в памяти с точным поиском перебором."""
from __future__ import annotations

import logging
from typing import Mapping, Sequence

from domain.entities import Document, NewDocument, RetrievalResult, StoreStats
from domain.errors import ConfigurationError, EmptyStoreError, InvalidDocumentError, RetrievalError
from domain.interfaces import Embedder, VectorStore
from domain.options import IngestOptions, SearchOptions
from infrastructure.storage.ingestion import embed_in_batches, embed_one, prepare_documents
from infrastructure.storage.similarity import rank_documents

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStore):
    """Хранит документы в словаре Python и ищет перебором (O(n) на запрос)."""

    def __init__(self, embedder: Embedder, *, default_dim: int | None = None) -> None:
        self._embedder = embedder
        self._default_dim = default_dim
        self._documents: dict[str, Document] = {}

    @property
    def embedder(self) -> Embedder:
        return self._embedder

    def add_documents(
        self,
        documents: Sequence[NewDocument | Mapping],
        options: IngestOptions | None = None,
    ) -> list[str]:
        opts = options or IngestOptions()
        prepared = prepare_documents(documents)
        if not prepared:
            return []
        dim = opts.dim or self._default_dim
        vectors = embed_in_batches(self._embedder, [doc.text for doc in prepared], dim, opts)
        for doc, vector in zip(prepared, vectors):
            # A repeated id replaces the stored record in place.
            self._documents[doc.id] = Document(
                id=doc.id,
                text=doc.text,
                meta=dict(doc.meta),
                vector=vector,
                dim=len(vector),
            )
        logger.info("Stored %d documents (total %d)", len(prepared), len(self._documents))
        return [doc.id for doc in prepared]

    def similarity_search(
        self,
        query: str,
        k: int = 3,
        options: SearchOptions | None = None,
    ) -> list[RetrievalResult]:
        opts = options or SearchOptions()
        if not isinstance(query, str) or not query.strip():
            raise RetrievalError("Query must be a non-empty string")
        if k < 1:
            raise ConfigurationError("k must be positive", k=k)
        if not self._documents:
            raise EmptyStoreError()
        query_vector = embed_one(self._embedder, query, opts.dim or self._default_dim)
        return rank_documents(query_vector, list(self._documents.values()), k, opts)

    def get_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    def get_all_documents(self, limit: int | None = None, offset: int = 0) -> list[Document]:
        documents = list(self._documents.values())[offset:]
        if limit is not None:
            documents = documents[:limit]
        return documents

    def update_document(self, document_id: str, text: str, meta: dict | None = None) -> bool:
        existing = self._documents.get(document_id)
        if existing is None:
            return False
        if not isinstance(text, str) or not text.strip():
            raise InvalidDocumentError("document must have a non-empty text field", id=document_id)
        vector = embed_one(self._embedder, text, existing.dim or self._default_dim)
        existing.text = text
        existing.vector = vector
        existing.dim = len(vector)
        if meta is not None:
            existing.meta = dict(meta)
        return True

    def delete_document(self, document_id: str) -> bool:
        return self._documents.pop(document_id, None) is not None

    def clear(self) -> None:
        self._documents.clear()

    def stats(self) -> StoreStats:
        return StoreStats(
            backend="memory",
            document_count=len(self._documents),
            dimensions=sorted({doc.dim for doc in self._documents.values()}),
        )


__all__ = ["InMemoryVectorStore"]
