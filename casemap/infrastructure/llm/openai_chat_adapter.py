from collections.abc import Sequence
from dataclasses import dataclass
from importlib import import_module
from typing import Any, cast

from casemap.application.ports.llm_port import ChatMessage, LLMPort, LLMResponse
from casemap.domain.errors import LLMError


def build_openai_client(api_key: str, base_url: str | None = None) -> Any:
    """Create an ``openai.OpenAI`` client; imported lazily so tests can swap the module."""
    module = import_module("openai")
    kwargs: dict[str, Any] = {"api_key": api_key}
    if base_url:
        kwargs["base_url"] = base_url
    return module.OpenAI(**kwargs)


@dataclass
class OpenAIChatAdapter(LLMPort):
    api_key: str
    model: str = "gpt-4o"
    base_url: str | None = None  # any OpenAI-compatible endpoint, e.g. "http://localhost:8000/v1"

    def __post_init__(self) -> None:
        self._client: Any | None = None

    def chat(
        self,
        messages: Sequence[ChatMessage],
        temperature: float = 0.2,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        try:
            if self._client is None:
                self._client = build_openai_client(self.api_key, self.base_url)
            payload: Any = [m.__dict__ for m in messages]
            kwargs: dict[str, Any] = {
                "model": self.model,
                "messages": cast(Any, payload),
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}
            resp: Any = self._client.chat.completions.create(**kwargs)
            choice = resp.choices[0]
            usage = getattr(resp, "usage", None)
            return LLMResponse(
                text=choice.message.content or "",
                finish_reason=choice.finish_reason or "stop",
                usage_tokens=getattr(usage, "total_tokens", None),
            )
        except Exception as ex:  # noqa: BLE001
            # Translate external errors to domain-specific errors
            raise LLMError(f"LLM communication failed: {ex}") from ex
