"""OpenAI-compatible провайдер (`/v1/chat/completions` через httpx)."""

from __future__ import annotations

import httpx

from fin_assistant.providers.base import ProviderClient, ProviderCompletion, ProviderError
from fin_assistant.settings import PLACEHOLDER_API_KEY, Settings, get_settings


def _int_or_none(value: object) -> int | None:
    return int(value) if value is not None else None


def _error_message(r: httpx.Response) -> tuple[str, str | None]:
    """Достаёт `error.message`/`error.code` из тела ответа (формат OpenAI)."""
    try:
        data = r.json()
    except ValueError:
        return r.text.strip(), None
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict):
        code = err.get("code") or err.get("type")
        return str(err.get("message") or ""), str(code) if code else None
    if isinstance(err, str):
        return err, None
    return "", None


class OpenAICompatibleProvider(ProviderClient):
    name = "openai"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        if not settings.openai_api_key or settings.openai_api_key == PLACEHOLDER_API_KEY:
            raise RuntimeError("OPENAI_API_KEY is not configured")
        base = settings.openai_base_url.rstrip("/")
        # Разрешаем как "https://api.openai.com", так и "https://api.openai.com/v1".
        if base.endswith("/v1"):
            base = base[: -len("/v1")]
        self._base_url = base.rstrip("/")
        self._model = settings.openai_model
        self._temperature = float(settings.openai_temperature)
        self._max_tokens = int(settings.openai_max_tokens)
        self._headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
        self._client = httpx.Client(
            timeout=httpx.Timeout(float(settings.openai_timeout_seconds)),
            transport=transport,
        )

    def complete(self, messages: list[dict], *, model: str | None = None) -> ProviderCompletion:
        """Один запрос без ретраев: ошибка upstream сразу уходит наверх."""
        payload = {
            "model": model or self._model,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        r = self._client.post(
            f"{self._base_url}/v1/chat/completions",
            json=payload,
            headers=self._headers,
        )
        if r.status_code >= 400:
            message, code = _error_message(r)
            text = f"{r.status_code} {r.reason_phrase}"
            if message:
                text = f"{text}: {message}"
            if code:
                text = f"{text} ({code})"
            raise ProviderError(text, status_code=r.status_code, code=code)

        data = r.json()
        choices = data.get("choices") or []
        content = None
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")
        if content is not None and not isinstance(content, str):
            raise ProviderError(
                f"Malformed response: content is {type(content).__name__}, expected string"
            )
        usage = data.get("usage") or {}
        return ProviderCompletion(
            text=content,
            model=str(data.get("model") or payload["model"]),
            prompt_tokens=_int_or_none(usage.get("prompt_tokens")),
            completion_tokens=_int_or_none(usage.get("completion_tokens")),
            total_tokens=_int_or_none(usage.get("total_tokens")),
        )

    def close(self) -> None:
        self._client.close()
