"""Chunk splitter that groups whole sentences."""
from __future__ import annotations

import re

from domain.errors import ConfigurationError
from domain.interfaces import TextSplitter

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class SentenceSplitter(TextSplitter):
    """Группирует предложения по ``sentences_per_chunk`` с перекрытием ``overlap_sentences``."""

    def __init__(self, sentences_per_chunk: int = 5, overlap_sentences: int = 1) -> None:
        if sentences_per_chunk < 1:
            raise ConfigurationError("sentences_per_chunk must be positive", sentences_per_chunk=sentences_per_chunk)
        if overlap_sentences < 0 or overlap_sentences >= sentences_per_chunk:
            raise ConfigurationError(
                "overlap_sentences must be in [0, sentences_per_chunk)",
                overlap_sentences=overlap_sentences,
                sentences_per_chunk=sentences_per_chunk,
            )
        self.sentences_per_chunk = sentences_per_chunk
        self.overlap_sentences = overlap_sentences

    def split(self, text: str) -> list[str]:
        if not isinstance(text, str) or not text.strip():
            return []
        sentences = [sentence.strip() for sentence in _SENTENCE_BOUNDARY.split(text) if sentence.strip()]
        if len(sentences) <= self.sentences_per_chunk:
            return [text.strip()]

        chunks: list[str] = []
        stride = self.sentences_per_chunk - self.overlap_sentences
        for start in range(0, len(sentences), stride):
            chunks.append(" ".join(sentences[start : start + self.sentences_per_chunk]))
            if start + self.sentences_per_chunk >= len(sentences):
                break
        return chunks


__all__ = ["SentenceSplitter"]
