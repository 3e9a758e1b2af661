"""CompletionGateway: один вызов провайдера, результат всегда пригоден для UI.

Наружу никогда не летят исключения: недоступность провайдера, ошибки upstream,
сетевые сбои и пустые ответы превращаются в `CompletionResult` с fallback-текстом.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from fin_assistant.metrics import completion_latency_seconds, completions_total, tokens_total
from fin_assistant.providers.base import ProviderClient, ProviderError
from fin_assistant.providers.factory import SettingsConfigProvider, get_provider
from fin_assistant.services.context import FinancialContext, build_messages
from fin_assistant.services.errors import (
    DEFAULT_RULES,
    EMPTY_RESPONSE_CONTENT,
    EMPTY_RESPONSE_LABEL,
    NOT_CONFIGURED_CONTENT,
    NOT_CONFIGURED_LABEL,
    ErrorKind,
    ErrorRule,
    classify_failure,
    exception_text,
)
from fin_assistant.services.redaction import prompt_fingerprint, redact_secrets
from fin_assistant.settings import Settings, get_settings

log = structlog.get_logger()


class ConfigProvider(Protocol):
    def is_provider_configured(self) -> bool: ...


@dataclass(frozen=True)
class CompletionResult:
    """Ответ для UI. `error` задан => `tokens_used == 0`; `content` не пустой."""

    content: str
    error: str | None = None
    tokens_used: int = 0
    kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict:
        return {
            "content": self.content,
            "error": self.error,
            "tokens_used": self.tokens_used,
            "kind": self.kind.value if self.kind is not None else None,
        }


class CompletionGateway:
    def __init__(
        self,
        config: ConfigProvider,
        provider_factory: Callable[[], ProviderClient],
        rules: Sequence[ErrorRule] = DEFAULT_RULES,
        provider_name: str = "openai",
    ) -> None:
        self._config = config
        self._provider_factory = provider_factory
        self._rules = tuple(rules)
        self._provider_name = provider_name

    def complete(
        self,
        prompt: str,
        context: FinancialContext | None = None,
        system_prompt: str | None = None,
    ) -> CompletionResult:
        """Отправляет промпт провайдеру. Не бросает исключений."""
        provider_name = self._provider_name
        fp = prompt_fingerprint(prompt)

        if not self._config.is_provider_configured():
            log.warning("provider_not_configured", provider=provider_name, **fp)
            completions_total.labels(
                provider=provider_name, outcome=ErrorKind.NOT_CONFIGURED.value
            ).inc()
            return CompletionResult(
                content=NOT_CONFIGURED_CONTENT,
                error=NOT_CONFIGURED_LABEL,
                kind=ErrorKind.NOT_CONFIGURED,
            )

        t0 = time.time()
        try:
            provider = self._provider_factory()
            provider_name = getattr(provider, "name", provider_name)
            res = provider.complete(build_messages(prompt, context, system_prompt))
            text = res.text
            if text is not None and not isinstance(text, str):
                raise ProviderError(f"Malformed response: text is {type(text).__name__}")
            model = str(res.model or "-")
            tokens_used = max(0, int(res.total_tokens or 0))
        except Exception as e:
            rule = classify_failure(e, self._rules)
            log.error(
                "completion_failed",
                provider=provider_name,
                kind=rule.kind.value,
                err_type=type(e).__name__,
                err=redact_secrets(exception_text(e)),
                **fp,
            )
            completions_total.labels(provider=provider_name, outcome=rule.kind.value).inc()
            return CompletionResult(content=rule.content, error=rule.label, kind=rule.kind)
        finally:
            completion_latency_seconds.labels(provider=provider_name).observe(time.time() - t0)

        if not text or not text.strip():
            log.error(
                "completion_failed",
                provider=provider_name,
                kind=ErrorKind.EMPTY_RESPONSE.value,
                model=model,
                **fp,
            )
            completions_total.labels(
                provider=provider_name, outcome=ErrorKind.EMPTY_RESPONSE.value
            ).inc()
            return CompletionResult(
                content=EMPTY_RESPONSE_CONTENT,
                error=EMPTY_RESPONSE_LABEL,
                kind=ErrorKind.EMPTY_RESPONSE,
            )

        log.info(
            "completion_ok",
            provider=provider_name,
            model=model,
            tokens_used=tokens_used,
            **fp,
        )
        completions_total.labels(provider=provider_name, outcome="ok").inc()
        tokens_total.labels(provider=provider_name, model=model).inc(tokens_used)
        return CompletionResult(content=text, tokens_used=tokens_used)


def build_gateway(settings: Settings | None = None) -> CompletionGateway:
    """Gateway поверх провайдера из настроек (`DEFAULT_PROVIDER`)."""
    settings = settings or get_settings()
    name = settings.default_provider
    return CompletionGateway(
        config=SettingsConfigProvider(settings),
        provider_factory=lambda: get_provider(name),
        provider_name=name,
    )
