"""Line-based splitter for Markdown that never breaks inside a fenced code block."""
from __future__ import annotations

from domain.errors import ConfigurationError
from domain.interfaces import TextSplitter

_FENCE = "```"


class MarkdownSplitter(TextSplitter):
    def __init__(self, chunk_size: int = 1000, overlap: int = 100) -> None:
        if chunk_size < 1:
            raise ConfigurationError("chunk_size must be positive", chunk_size=chunk_size)
        if overlap < 0 or overlap >= chunk_size:
            raise ConfigurationError("overlap must be in [0, chunk_size)", overlap=overlap, chunk_size=chunk_size)
        self.chunk_size = chunk_size
        self.overlap = overlap

    def split(self, text: str) -> list[str]:
        if not isinstance(text, str) or not text.strip():
            return []
        if len(text) <= self.chunk_size:
            return [text]

        chunks: list[str] = []
        current: list[str] = []
        size = 0
        in_code = False
        for line in text.split("\n"):
            if not in_code and current and size + len(line) + 1 > self.chunk_size:
                chunks.append("\n".join(current).strip())
                current = self._overlap_tail(current)
                size = sum(len(kept) + 1 for kept in current)
            current.append(line)
            size += len(line) + 1
            if line.strip().startswith(_FENCE):
                in_code = not in_code
        tail = "\n".join(current).strip()
        if tail:
            chunks.append(tail)
        return chunks

    def _overlap_tail(self, lines: list[str]) -> list[str]:
        """Trailing whole lines that fit into ``overlap`` characters, stopping at a fence."""
        tail: list[str] = []
        size = 0
        for line in reversed(lines):
            if size + len(line) + 1 > self.overlap or line.strip().startswith(_FENCE):
                break
            tail.insert(0, line)
            size += len(line) + 1
        return tail


__all__ = ["MarkdownSplitter"]
