"""Split documents into chunk documents before ingestion."""
from __future__ import annotations

import logging
from typing import Mapping, Sequence

from domain.entities import NewDocument
from domain.interfaces import TextSplitter
from infrastructure.splitting.fixed_window_splitter import FixedWindowSplitter

logger = logging.getLogger(__name__)


def chunk_documents(
    documents: Sequence[NewDocument | Mapping],
    splitter: TextSplitter | None = None,
) -> list[NewDocument]:
    """Разбить документы на фрагменты, сохранив метаданные исходного документа.

    Каждый фрагмент получает ``source_doc_index``, ``chunk_index``,
    ``total_chunks`` и ``original_id``; идентификатор фрагмента равен
    ``<id>_chunk_<n>``, а для документов без id остаётся пустым.
    """

    splitter = splitter or FixedWindowSplitter()
    chunked: list[NewDocument] = []
    for index, item in enumerate(documents):
        document = NewDocument.from_mapping(item) if isinstance(item, Mapping) else item
        pieces = splitter.split(document.text)
        for chunk_index, piece in enumerate(pieces):
            chunked.append(
                NewDocument(
                    text=piece,
                    id=f"{document.id}_chunk_{chunk_index}" if document.id else None,
                    meta={
                        **document.meta,
                        "source_doc_index": index,
                        "chunk_index": chunk_index,
                        "total_chunks": len(pieces),
                        "original_id": document.id,
                    },
                )
            )
    logger.debug("Split %d documents into %d chunks", len(documents), len(chunked))
    return chunked


__all__ = ["chunk_documents"]
