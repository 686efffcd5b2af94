# casemap/domain/services/chunking.py
# Pure domain service: no I/O, deterministic, no external libraries.
from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from casemap.domain.models import Chunk

_MANY_NEWLINES = re.compile(r"\n{3,}")
_PARAGRAPH_BREAK = re.compile(r"\n\n+")


@dataclass(frozen=True)
class ChunkingParams:
    target_chars: int = 600
    overlap_chars: int = 100
    chars_per_word: int = 5

    @property
    def overlap_words(self) -> int:
        return self.overlap_chars // self.chars_per_word

    @property
    def window_words(self) -> int:
        return self.target_chars // self.chars_per_word


def normalize_newlines(text: str) -> str:
    """CRLF/CR -> LF, then any run of 3+ newlines becomes one paragraph break."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _MANY_NEWLINES.sub("\n\n", text)


def split_into_paragraphs(text: str) -> list[str]:
    """Paragraphs are separated by blank lines; whitespace-only paragraphs are dropped."""
    return [p.strip() for p in _PARAGRAPH_BREAK.split(normalize_newlines(text)) if p.strip()]


def overlap_tail(buffer: str, n_words: int) -> str:
    """Last ``n_words`` words of the buffer, single-space joined."""
    if n_words <= 0:
        return ""
    return " ".join(buffer.split()[-n_words:])


def split_into_word_windows(text: str, n_words: int) -> list[str]:
    """Fixed windows of ``n_words`` words with no overlap."""
    words = text.split()
    return [" ".join(words[i : i + n_words]) for i in range(0, len(words), n_words)]


def _pack_paragraphs(paragraphs: Sequence[str], p: ChunkingParams) -> Iterator[str]:
    buffer = ""
    for para in paragraphs:
        if buffer and len(buffer) + len(para) + 1 > p.target_chars:
            yield buffer.strip()
            tail = overlap_tail(buffer, p.overlap_words)
            buffer = f"{tail} {para}" if tail else para
        else:
            buffer = f"{buffer}\n\n{para}" if buffer else para
    if buffer.strip():
        yield buffer.strip()


def chunk_text(text: str, params: ChunkingParams | None = None) -> list[Chunk]:
    """Split document text into overlapping, paragraph-aligned chunks.

    A paragraph is never split in this path, so a chunk may exceed
    ``target_chars`` by at most one paragraph. When no paragraph survives
    (but the text is non-empty) the text falls back to fixed word windows.
    Chunk ids are dense and 0-based in emission order.
    """
    p = params or ChunkingParams()
    texts = list(_pack_paragraphs(split_into_paragraphs(text), p))
    if not texts and text.strip():
        texts = split_into_word_windows(text, p.window_words)
    return [Chunk(id=i, text=t) for i, t in enumerate(texts)]
