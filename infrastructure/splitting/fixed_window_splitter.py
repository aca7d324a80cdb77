"""Chunk splitter that packs paragraphs into fixed-size windows."""
from __future__ import annotations

from domain.errors import ConfigurationError
from domain.interfaces import TextSplitter


class FixedWindowSplitter(TextSplitter):
    """Pack separator-delimited segments into chunks of at most ``chunk_size`` characters.

    Segments longer than ``chunk_size`` are cut with a sliding window whose
    consecutive pieces share ``overlap`` characters.
    """

    def __init__(self, chunk_size: int = 500, overlap: int = 50, separator: str = "\n\n") -> None:
        if chunk_size < 1:
            raise ConfigurationError("chunk_size must be positive", chunk_size=chunk_size)
        if overlap < 0 or overlap >= chunk_size:
            raise ConfigurationError("overlap must be in [0, chunk_size)", overlap=overlap, chunk_size=chunk_size)
        if not separator:
            raise ConfigurationError("separator must not be empty")
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.separator = separator

    def split(self, text: str) -> list[str]:
        if not isinstance(text, str) or not text.strip():
            return []
        if len(text) <= self.chunk_size:
            return [text]

        chunks: list[str] = []
        current = ""
        for segment in text.split(self.separator):
            if not segment.strip():
                continue
            if len(segment) > self.chunk_size:
                if current:
                    chunks.append(current.strip())
                    current = ""
                chunks.extend(self._windows(segment))
                continue
            if len(current) + len(self.separator) + len(segment) <= self.chunk_size:
                current = f"{current}{self.separator}{segment}" if current else segment
            else:
                if current:
                    chunks.append(current.strip())
                current = segment
        if current:
            chunks.append(current.strip())
        return chunks

    def _windows(self, segment: str) -> list[str]:
        stride = self.chunk_size - self.overlap
        windows: list[str] = []
        for start in range(0, len(segment), stride):
            fragment = segment[start : start + self.chunk_size].strip()
            if fragment:
                windows.append(fragment)
            if start + self.chunk_size >= len(segment):
                break
        return windows


__all__ = ["FixedWindowSplitter"]
