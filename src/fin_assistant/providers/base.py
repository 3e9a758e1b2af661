"""Интерфейс провайдера (chat completion)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderCompletion:
    """Ответ провайдера: текст + usage (если получилось достать)."""

    text: str | None
    model: str = ""
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class ProviderError(RuntimeError):
    """Upstream ответил ошибкой. В тексте: статус, причина, message/code из тела."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class ProviderClient:
    """Базовый интерфейс провайдера."""

    name: str

    def complete(self, messages: list[dict], *, model: str | None = None) -> ProviderCompletion:
        raise NotImplementedError
