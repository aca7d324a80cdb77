"""Персистентное хранилище документов и эмбеддингов в SQLite."""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Sequence

from domain.entities import Document, NewDocument, RetrievalResult, StoreStats
from domain.errors import ConfigurationError, EmptyStoreError, InvalidDocumentError, RetrievalError
from domain.interfaces import Embedder, VectorStore
from domain.options import IngestOptions, SearchOptions
from infrastructure.storage.ingestion import embed_in_batches, embed_one, prepare_documents
from infrastructure.storage.similarity import rank_documents

logger = logging.getLogger(__name__)

_SELECT_COLUMNS = "id, text, metadata, vector, dim"


def _json_default(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_metadata(meta: Mapping[str, Any], document_id: str | None = None) -> str:
    """Сериализовать метаданные в JSON; даты сохраняются в формате ISO 8601."""
    try:
        return json.dumps(meta, default=_json_default)
    except (TypeError, ValueError) as exc:
        raise InvalidDocumentError(f"metadata is not JSON serializable: {exc}", id=document_id) from exc


class SqliteVectorStore(VectorStore):
    """Хранит все документы в одном файле SQLite и ищет перебором."""

    def __init__(
        self,
        embedder: Embedder,
        *,
        db_path: str | Path = "contextrank.db",
        default_dim: int | None = None,
    ) -> None:
        self._embedder = embedder
        self._db_path = Path(db_path)
        self._default_dim = default_dim
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @property
    def embedder(self) -> Embedder:
        return self._embedder

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    text TEXT NOT NULL,
                    metadata TEXT NOT NULL,
                    vector TEXT NOT NULL,
                    dim INTEGER NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_documents_dim ON documents (dim)")

    def add_documents(
        self,
        documents: Sequence[NewDocument | Mapping],
        options: IngestOptions | None = None,
    ) -> list[str]:
        opts = options or IngestOptions()
        prepared = prepare_documents(documents)
        if not prepared:
            return []
        metadata = [encode_metadata(doc.meta, doc.id) for doc in prepared]
        dim = opts.dim or self._default_dim
        vectors = embed_in_batches(self._embedder, [doc.text for doc in prepared], dim, opts)
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO documents (id, text, metadata, vector, dim)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    text = excluded.text,
                    metadata = excluded.metadata,
                    vector = excluded.vector,
                    dim = excluded.dim,
                    updated_at = CURRENT_TIMESTAMP
                """,
                [
                    (doc.id, doc.text, encoded, json.dumps(vector), len(vector))
                    for doc, encoded, vector in zip(prepared, metadata, vectors)
                ],
            )
        logger.info("Stored %d documents in %s", len(prepared), self._db_path)
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
        with self._connect() as conn:
            (count,) = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
        if not count:
            raise EmptyStoreError(location=str(self._db_path))
        query_vector = embed_one(self._embedder, query, opts.dim or self._default_dim)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM documents WHERE dim = ? ORDER BY seq",
                (len(query_vector),),
            ).fetchall()
        if not rows:
            raise EmptyStoreError(location=str(self._db_path), dimension=len(query_vector))
        return rank_documents(query_vector, [self._row_to_document(row) for row in rows], k, opts)

    def get_document(self, document_id: str) -> Document | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM documents WHERE id = ?",
                (document_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_document(row)

    def get_all_documents(self, limit: int | None = None, offset: int = 0) -> list[Document]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM documents ORDER BY seq LIMIT ? OFFSET ?",
                (-1 if limit is None else limit, offset),
            ).fetchall()
        return [self._row_to_document(row) for row in rows]

    def update_document(self, document_id: str, text: str, meta: dict | None = None) -> bool:
        existing = self.get_document(document_id)
        if existing is None:
            return False
        if not isinstance(text, str) or not text.strip():
            raise InvalidDocumentError("document must have a non-empty text field", id=document_id)
        metadata = encode_metadata(existing.meta if meta is None else meta, document_id)
        vector = embed_one(self._embedder, text, existing.dim or self._default_dim)
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE documents
                SET text = ?, metadata = ?, vector = ?, dim = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (text, metadata, json.dumps(vector), len(vector), document_id),
            )
        return True

    def delete_document(self, document_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        return cursor.rowcount > 0

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM documents")

    def stats(self) -> StoreStats:
        with self._connect() as conn:
            (count,) = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
            dims = [row[0] for row in conn.execute("SELECT DISTINCT dim FROM documents ORDER BY dim")]
        return StoreStats(backend="sqlite", document_count=int(count), dimensions=dims, location=str(self._db_path))

    @staticmethod
    def _row_to_document(row: tuple) -> Document:
        return Document(
            id=row[0],
            text=row[1],
            meta=json.loads(row[2]),
            vector=json.loads(row[3]),
            dim=int(row[4]),
        )


__all__ = ["SqliteVectorStore", "encode_metadata"]
