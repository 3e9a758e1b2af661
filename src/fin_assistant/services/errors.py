"""Нормализация ошибок провайдера (стабильные label/content для UI)."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass


class ErrorKind(str, enum.Enum):
    NOT_CONFIGURED = "not_configured"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    QUOTA_EXCEEDED = "quota_exceeded"
    EMPTY_RESPONSE = "empty_response"
    UNKNOWN = "unknown"


NOT_CONFIGURED_LABEL = "Provider not configured"
NOT_CONFIGURED_CONTENT = (
    "AI Assistant is not configured. Please set OPENAI_API_KEY in your environment variables."
)
EMPTY_RESPONSE_LABEL = "Empty response"
EMPTY_RESPONSE_CONTENT = "I apologize, but I was unable to generate a response. Please try again."


@dataclass(frozen=True)
class ErrorRule:
    """Правило классификации: любая из `needles` в тексте ошибки (без учёта регистра)."""

    kind: ErrorKind
    label: str
    content: str
    needles: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        return any(n.lower() in lowered for n in self.needles)


# Порядок важен: побеждает первое совпадение.
DEFAULT_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(
        kind=ErrorKind.RATE_LIMITED,
        label="Rate limit exceeded",
        content=(
            "AI Assistant is temporarily unavailable due to rate limits. "
            "Please try again in a moment."
        ),
        needles=("rate limit",),
    ),
    ErrorRule(
        kind=ErrorKind.AUTH_FAILED,
        label="Authentication failed",
        content="AI Assistant is not properly configured. Please check your API key settings.",
        needles=("invalid api key", "incorrect api key", "unauthorized", "api key"),
    ),
    ErrorRule(
        kind=ErrorKind.QUOTA_EXCEEDED,
        label="Insufficient quota",
        content=(
            "AI Assistant is temporarily unavailable. "
            "Please contact support if this issue persists."
        ),
        needles=("insufficient_quota", "exceeded your current quota"),
    ),
    ErrorRule(
        kind=ErrorKind.NOT_CONFIGURED,
        label=NOT_CONFIGURED_LABEL,
        content=NOT_CONFIGURED_CONTENT,
        needles=("not configured",),
    ),
)

UNKNOWN_RULE = ErrorRule(
    kind=ErrorKind.UNKNOWN,
    label="Unknown error",
    content=(
        "I encountered an error while processing your request. "
        "Please try again or rephrase your question."
    ),
)


def exception_text(exc: BaseException) -> str:
    """Текст исключения; для пустого `str(exc)` берём имя класса."""
    text = str(exc)
    return text if text else type(exc).__name__


def classify_failure(exc: BaseException, rules: Sequence[ErrorRule] = DEFAULT_RULES) -> ErrorRule:
    """Подбирает правило по тексту исключения (fallback: Unknown)."""
    text = exception_text(exc)
    for rule in rules:
        if rule.matches(text):
            return rule
    return UNKNOWN_RULE
