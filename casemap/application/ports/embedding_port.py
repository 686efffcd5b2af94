from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingPort(Protocol):
    """One vector per input text, in input order. Raises EmbeddingError."""

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]: ...
