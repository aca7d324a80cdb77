"""Abstract interfaces for the ContextRank system."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence

from domain.entities import Document, NewDocument, RetrievalResult, StoreStats
from domain.options import IngestOptions, RetrievalOptions, SearchOptions


class TextSplitter(ABC):
    """Splits long texts into retrieval-sized chunks."""

    @abstractmethod
    def split(self, text: str) -> list[str]:
        """Return chunks for the provided text; blank input yields no chunks."""


class Embedder(ABC):
    """Turns text (documents or queries) into vector embeddings."""

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Return the stable identifier for this embedding model."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the native embedding dimension for this model."""

    @abstractmethod
    def embed_text(self, text: str, dim: int | None = None) -> list[float]:
        """Embed a single text, optionally at a reduced dimension."""

    def embed_texts(self, texts: Sequence[str], dim: int | None = None) -> list[list[float]]:
        """Embed several texts in one call.

        Providers without a batch endpoint keep this default; callers treat
        ``NotImplementedError`` as "fall back to per-item embedding".
        """
        raise NotImplementedError(f"{type(self).__name__} does not support batch embedding")


class VectorStore(ABC):
    """Storage contract every persistence backend has to satisfy."""

    @abstractmethod
    def add_documents(
        self,
        documents: Sequence[NewDocument | Mapping],
        options: IngestOptions | None = None,
    ) -> list[str]:
        """Validate, embed and store documents; return their ids."""

    def add_document(self, document: NewDocument | Mapping, options: IngestOptions | None = None) -> str:
        return self.add_documents([document], options)[0]

    @abstractmethod
    def similarity_search(
        self,
        query: str,
        k: int = 3,
        options: SearchOptions | None = None,
    ) -> list[RetrievalResult]:
        """Return up to ``k`` documents ordered by descending cosine similarity."""

    @abstractmethod
    def get_document(self, document_id: str) -> Document | None:
        """Retrieve a document by id."""

    @abstractmethod
    def get_all_documents(self, limit: int | None = None, offset: int = 0) -> list[Document]:
        """Return stored documents in insertion order."""

    @abstractmethod
    def update_document(self, document_id: str, text: str, meta: dict | None = None) -> bool:
        """Replace text (and metadata when given) and re-embed."""

    @abstractmethod
    def delete_document(self, document_id: str) -> bool:
        """Remove a document; False when it does not exist."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every document."""

    @abstractmethod
    def stats(self) -> StoreStats:
        """Describe the store contents."""


class BaseRetriever(ABC):
    """Returns documents relevant to a query."""

    @abstractmethod
    def get_relevant(
        self,
        query: str,
        top_k: int | None = None,
        options: RetrievalOptions | None = None,
    ) -> list[RetrievalResult]:
        """Return relevant documents for ``query``."""


__all__ = [
    "TextSplitter",
    "Embedder",
    "VectorStore",
    "BaseRetriever",
]
