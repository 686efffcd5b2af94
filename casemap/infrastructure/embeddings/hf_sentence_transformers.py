from __future__ import annotations

from collections.abc import Sequence
from collections.abc import Sequence as SequenceType
from dataclasses import dataclass
from importlib import import_module
from typing import Any, cast

from casemap.application.ports.embedding_port import EmbeddingPort
from casemap.domain.errors import EmbeddingError


@dataclass
class HFEmbeddingAdapter(EmbeddingPort):
    """Local Sentence-Transformers embeddings (offline alternative to the OpenAI backend)."""

    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    device: str = "cpu"  # switch to "cuda" when available
    batch_size: int = 64
    local_files_only: bool = False  # support offline deployments
    _model: Any | None = None

    def _ensure_model(self) -> Any:
        if self._model is not None:
            return self._model
        try:
            module = import_module("sentence_transformers")
        except ImportError as ex:
            raise EmbeddingError("sentence-transformers not installed.") from ex
        try:
            self._model = module.SentenceTransformer(
                self.model_name,
                device=self.device,
                local_files_only=self.local_files_only,
            )
        except Exception as ex:  # noqa: BLE001
            raise EmbeddingError(
                f"Failed to load embedding model '{self.model_name}': {ex}"
            ) from ex
        return self._model

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        model = self._ensure_model()
        try:
            raw_vectors = model.encode(
                list(texts),
                batch_size=self.batch_size,
                normalize_embeddings=True,
                convert_to_numpy=True,
                show_progress_bar=False,
            )
        except Exception as ex:  # noqa: BLE001
            raise EmbeddingError(f"Embedding texts failed: {ex}") from ex
        vectors = cast(SequenceType[SequenceType[float]], raw_vectors)
        return [list(map(float, vec)) for vec in vectors]
