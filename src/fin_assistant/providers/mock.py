"""Mock провайдер для демо (без внешних ключей)."""

from __future__ import annotations

from fin_assistant.providers.base import ProviderClient, ProviderCompletion


class MockProvider(ProviderClient):
    name = "mock"

    def complete(self, messages: list[dict], *, model: str | None = None) -> ProviderCompletion:
        user_text = ""
        if messages:
            last = messages[-1]
            if isinstance(last, dict):
                user_text = str(last.get("content") or "")

        # Контекст приклеен к вопросу: отвечаем только на первую строку.
        question = user_text.split("\n", 1)[0]
        out_text = f"[mock] ok: {question[:120]}"
        prompt_tokens = max(1, sum(len(str(m.get("content") or "")) for m in messages) // 4)
        completion_tokens = max(1, len(out_text) // 4)
        return ProviderCompletion(
            text=out_text,
            model=model or "mock-1",
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )
