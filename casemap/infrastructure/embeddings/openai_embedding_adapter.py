from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from casemap.application.ports.embedding_port import EmbeddingPort
from casemap.domain.errors import EmbeddingError
from casemap.infrastructure.llm.openai_chat_adapter import build_openai_client


@dataclass
class OpenAIEmbeddingAdapter(EmbeddingPort):
    """OpenAI embeddings endpoint; one request per call, batching is the caller's job."""

    api_key: str
    model: str = "text-embedding-3-small"
    base_url: str | None = None

    def __post_init__(self) -> None:
        self._client: Any | None = None

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            if self._client is None:
                self._client = build_openai_client(self.api_key, self.base_url)
            resp: Any = self._client.embeddings.create(model=self.model, input=list(texts))
            # the API returns items with an explicit index; don't trust list order
            items = sorted(resp.data, key=lambda item: item.index)
            return [[float(x) for x in item.embedding] for item in items]
        except Exception as ex:  # noqa: BLE001
            raise EmbeddingError(f"Embedding texts failed: {ex}") from ex
