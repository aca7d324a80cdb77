"""Exception hierarchy shared by every ContextRank layer."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


class ContextRankError(Exception):
    """Base error carrying a stable code and structured metadata."""

    code = "CONTEXTRANK_ERROR"

    def __init__(self, message: str, **metadata: Any) -> None:
        super().__init__(message)
        self.message = message
        self.metadata: dict[str, Any] = metadata
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp.isoformat(),
        }


class EmbeddingError(ContextRankError):
    """The embedding provider rejected a request."""

    code = "EMBEDDING_ERROR"


class VectorStoreError(ContextRankError):
    code = "VECTOR_STORE_ERROR"


class InvalidDocumentError(VectorStoreError):
    """A document without usable text was passed to the store."""

    def __init__(self, reason: str, **metadata: Any) -> None:
        metadata.setdefault("suggestion", "Ensure every document has a non-empty text field")
        super().__init__(f"Invalid document: {reason}", reason=reason, **metadata)


class RetrievalError(ContextRankError):
    code = "RETRIEVAL_ERROR"


class EmptyStoreError(RetrievalError):
    """Search ran against a store (or dimension slice) with no documents."""

    def __init__(self, message: str = "Cannot retrieve from an empty vector store", **metadata: Any) -> None:
        metadata.setdefault("suggestion", "Add documents with add_documents() first")
        super().__init__(message, **metadata)


class NoFilterMatchError(RetrievalError):
    """Metadata filters excluded every candidate."""

    def __init__(self, message: str = "No documents match the provided filters", **metadata: Any) -> None:
        metadata.setdefault("suggestion", "Try broader filter criteria")
        super().__init__(message, **metadata)


class ConfigurationError(ContextRankError):
    code = "CONFIGURATION_ERROR"


def get_error_code(error: BaseException) -> str:
    if isinstance(error, ContextRankError):
        return error.code
    return "UNKNOWN_ERROR"


__all__ = [
    "ContextRankError",
    "EmbeddingError",
    "VectorStoreError",
    "InvalidDocumentError",
    "RetrievalError",
    "EmptyStoreError",
    "NoFilterMatchError",
    "ConfigurationError",
    "get_error_code",
]
