"""Сценарий использования для загрузки документов в векторное хранилище."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from domain.entities import NewDocument
from domain.interfaces import TextSplitter, VectorStore
from domain.options import IngestOptions
from infrastructure.splitting.chunking import chunk_documents

logger = logging.getLogger(__name__)

Source = NewDocument | Mapping[str, Any] | tuple[str, str]


@dataclass(slots=True)
class IngestError:
    source_id: str
    reason: str


@dataclass(slots=True)
class IngestReport:
    total: int
    indexed: int
    ids: list[str] = field(default_factory=list)
    errors: list[IngestError] = field(default_factory=list)


def ingest_documents(
    sources: Iterable[Source],
    *,
    vector_store: VectorStore,
    options: IngestOptions | None = None,
    splitter: TextSplitter | None = None,
) -> IngestReport:
    """Проверить источники и проиндексировать корректные одним вызовом хранилища.

    Некорректные источники попадают в ``report.errors`` и не прерывают загрузку.
    Если передан ``splitter``, документы сначала режутся на фрагменты, и
    ``report.ids`` содержит идентификаторы фрагментов.
    """

    items = list(sources)
    report = IngestReport(total=len(items), indexed=0)
    valid: list[NewDocument] = []
    for position, source in enumerate(items):
        try:
            document = _to_document(source)
        except (TypeError, ValueError) as exc:
            source_id = _source_id(source, position)
            logger.warning("Пропуск источника %s: %s", source_id, exc)
            report.errors.append(IngestError(source_id=source_id, reason=str(exc)))
            continue
        valid.append(document)

    if splitter is not None:
        valid = chunk_documents(valid, splitter)
    if not valid:
        return report

    report.ids = vector_store.add_documents(valid, options)
    report.indexed = len(report.ids)
    logger.info("Проиндексировано %d из %d документов", report.indexed, report.total)
    return report


def _to_document(source: Source) -> NewDocument:
    if isinstance(source, NewDocument):
        document = source
    elif isinstance(source, Mapping):
        document = NewDocument.from_mapping(source)
    elif isinstance(source, tuple) and len(source) == 2:
        document = NewDocument(id=source[0], text=source[1])
    else:
        raise TypeError(f"unsupported source type {type(source).__name__}")
    if not isinstance(document.text, str) or not document.text.strip():
        raise ValueError("document must have a non-empty text field")
    return document


def _source_id(source: Any, position: int) -> str:
    if isinstance(source, NewDocument) and source.id:
        return source.id
    if isinstance(source, Mapping) and source.get("id"):
        return str(source["id"])
    if isinstance(source, tuple) and source and source[0]:
        return str(source[0])
    return f"#{position}"


__all__ = ["IngestError", "IngestReport", "ingest_documents"]
